from __future__ import annotations

import logging
import types
import typing as tp

from ._cache import ResponseCache
from ._config import ClientOptions
from ._connection import Connection
from ._exceptions import (
    CacheInconsistency,
    MalformedStatusLine,
    ReadError,
    UnsupportedTransferEncoding,
)
from ._headers import Headers, contains_token, parse_header_line
from ._models import CacheEntry, Request, Response
from ._pool import ConnectionPool
from ._urls import parse_request_url
from ._utils import HEADERS_ENCODING, decode_gzip, partition

if tp.TYPE_CHECKING:  # pragma: no cover
    from typing_extensions import Self

__all__ = ("Transport",)

logger = logging.getLogger("rawfetch.transport")

# Headers the transport always controls. Caller headers with these names are dropped.
RESERVED_HEADERS = frozenset({"host", "connection", "accept-encoding", "if-none-match", "if-modified-since"})


def build_request_head(request: Request, entry: tp.Optional[CacheEntry]) -> bytes:
    """
    Encode the request line and header block of a GET request.

    Built-in headers come first, in a fixed order, followed by the caller's headers
    in their mapping order. Caller headers never override a built-in one.
    """
    fields: tp.List[tp.Tuple[str, str]] = [
        ("Host", request.host),
        ("Connection", "keep-alive"),
        ("Accept-Encoding", "gzip"),
    ]
    if entry is not None:
        if entry.etag:
            fields.append(("If-None-Match", entry.etag))
        if entry.last_modified:
            fields.append(("If-Modified-Since", entry.last_modified))

    custom, dropped = partition(request.headers.items(), lambda item: item[0].lower() not in RESERVED_HEADERS)
    for name, _ in dropped:
        logger.warning(f"Ignoring caller header {name!r}, it is managed by the transport")
    fields.extend(custom)

    lines = [f"GET {request.target} HTTP/1.1"]
    lines.extend(f"{name}: {value}" for name, value in fields)
    return ("\r\n".join(lines) + "\r\n\r\n").encode(HEADERS_ENCODING)


def parse_status_line(line: bytes) -> tp.Tuple[str, int]:
    text = line.decode(HEADERS_ENCODING).rstrip("\r\n")
    parts = text.split(" ", 2)
    if (
        len(parts) < 2
        or not parts[0].startswith("HTTP/")
        or len(parts[1]) != 3
        or not (parts[1].isascii() and parts[1].isdigit())
    ):
        raise MalformedStatusLine(f"Could not parse the status line {text!r}")
    return parts[0], int(parts[1])


def is_persistent(http_version: str, headers: Headers) -> bool:
    connection_header = headers.get("connection", "")
    if contains_token(connection_header, "close"):
        return False
    if http_version == "HTTP/1.0":
        return contains_token(connection_header, "keep-alive")
    return True


class Transport:
    """
    Performs single GET exchanges over pooled connections and keeps the cache current.

    :param pool: Pool that connections are taken from and returned to, defaults to None
    :type pool: tp.Optional[ConnectionPool], optional
    :param cache: Cache providing validators and answering 304 responses, defaults to None
    :type cache: tp.Optional[ResponseCache], optional
    :param options: Timeouts used when the pool is created here, defaults to None
    :type options: tp.Optional[ClientOptions], optional
    """

    def __init__(
        self,
        pool: tp.Optional[ConnectionPool] = None,
        cache: tp.Optional[ResponseCache] = None,
        options: tp.Optional[ClientOptions] = None,
    ) -> None:
        self._options = options if options is not None else ClientOptions()
        self._pool = pool if pool is not None else ConnectionPool(options=self._options)
        self._cache = cache if cache is not None else ResponseCache()

    @property
    def pool(self) -> ConnectionPool:
        return self._pool

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    def execute(self, url: str, headers: tp.Optional[tp.Mapping[str, str]] = None) -> Response:
        """
        Send one GET request for ``url`` without following redirects.

        :param url: An absolute http or https URL
        :type url: str
        :param headers: Extra request headers, appended after the built-in ones
        :type headers: tp.Optional[tp.Mapping[str, str]]
        :return: The response, with its body fully read and decoded
        :rtype: Response
        """
        origin, target, host = parse_request_url(url)
        request = Request(url=url, origin=origin, target=target, host=host, headers=dict(headers or {}))
        return self.handle_request(request)

    def handle_request(self, request: Request) -> Response:
        connection = self._pool.acquire(request.origin)
        reused = connection.requests_handled > 0

        try:
            response, keep_alive = self._exchange(connection, request)
        except BaseException:
            # The response boundary is unknown, the connection cannot be reused.
            self._pool.discard(connection)
            raise

        connection.requests_handled += 1
        response.metadata["connection_reused"] = reused
        if keep_alive:
            self._pool.release(request.origin, connection)
        else:
            self._pool.discard(connection)
        return response

    def _exchange(self, connection: Connection, request: Request) -> tp.Tuple[Response, bool]:
        entry = self._cache.get(request.url)
        logger.debug(f"Sending GET {request.url} (conditional: {entry is not None})")
        connection.write(build_request_head(request, entry))

        http_version, status_code = parse_status_line(connection.read_line())
        headers = self._read_headers(connection)
        keep_alive = is_persistent(http_version, headers)
        location = headers.get("location", "")

        if status_code == 304:
            # Answer with the entry whose validators were sent, not whatever the cache holds now.
            if entry is None:
                raise CacheInconsistency(f"Received 304 for {request.url} without a cached response")
            logger.debug(f"Not modified: {request.url}")
            response = Response(
                status_code=status_code,
                headers=headers,
                content=entry.body,
                location=location,
                http_version=http_version,
                metadata={"from_cache": True},
            )
            return response, keep_alive

        content, framed = self._read_body(connection, status_code, headers)
        response = Response(
            status_code=status_code,
            headers=headers,
            content=content,
            location=location,
            http_version=http_version,
            metadata={"from_cache": False},
        )
        self._cache.put(request.url, CacheEntry.from_response(response))
        return response, keep_alive and framed

    def _read_headers(self, connection: Connection) -> Headers:
        headers = Headers()
        while True:
            line = connection.read_line()
            if line in (b"\r\n", b"\n"):
                return headers
            if not line.endswith(b"\n"):
                raise ReadError(f"Connection to {connection.origin} closed before the end of the header block")
            field = parse_header_line(line.decode(HEADERS_ENCODING).rstrip("\r\n"))
            if field is None:
                logger.debug(f"Skipping malformed header line {line!r}")
                continue
            name, value = field
            headers[name] = value

    def _read_body(self, connection: Connection, status_code: int, headers: Headers) -> tp.Tuple[bytes, bool]:
        """
        Read the response body.

        Returns the decoded body and whether it ended on a known boundary, which is
        required for the connection to be reused.
        """
        if 100 <= status_code < 200 or status_code == 204:
            return b"", True

        transfer_encoding = headers.get("transfer-encoding", "").strip().lower()
        if transfer_encoding and transfer_encoding != "identity":
            raise UnsupportedTransferEncoding(f"Transfer-Encoding {transfer_encoding!r} is not supported")

        chunks: tp.Iterable[bytes]
        length = self._content_length(headers)
        if length is not None:
            chunks, framed = connection.iter_exact(length), True
        else:
            chunks, framed = connection.iter_until_eof(), False

        content_encoding = headers.get("content-encoding", "")
        if contains_token(content_encoding, "gzip") or contains_token(content_encoding, "x-gzip"):
            return decode_gzip(chunks), framed
        return b"".join(chunks), framed

    @staticmethod
    def _content_length(headers: Headers) -> tp.Optional[int]:
        value = headers.get("content-length")
        if value is None:
            return None
        try:
            length = int(value.strip())
        except ValueError:
            logger.debug(f"Ignoring invalid Content-Length {value!r}")
            return None
        return length if length >= 0 else None

    def close(self) -> None:
        self._pool.close()

    def __enter__(self) -> "Self":
        return self

    def __exit__(
        self,
        exc_type: tp.Optional[tp.Type[BaseException]] = None,
        exc_value: tp.Optional[BaseException] = None,
        traceback: tp.Optional[types.TracebackType] = None,
    ) -> None:
        self.close()
