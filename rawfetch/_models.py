from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional, TypedDict

from rawfetch._headers import Headers

__all__ = ("Origin", "Request", "Response", "ResponseMetadata", "CacheEntry")

DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class Origin:
    """
    The transport endpoint a request is sent to.

    Two requests share pooled connections only when their origins compare equal.
    """

    scheme: str
    host: str
    port: int

    @classmethod
    def create(cls, scheme: str, host: str, port: Optional[int] = None) -> "Origin":
        scheme = scheme.lower()
        return cls(scheme=scheme, host=host.lower(), port=port if port is not None else DEFAULT_PORTS[scheme])

    @property
    def is_tls(self) -> bool:
        return self.scheme == "https"

    def __str__(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"


@dataclass
class Request:
    url: str
    origin: Origin
    target: str
    host: str
    headers: Mapping[str, str] = field(default_factory=dict)


class ResponseMetadata(TypedDict, total=False):
    from_cache: bool
    """The body was taken from the cache after a 304 answer."""

    connection_reused: bool
    """The exchange ran over a connection taken from the idle pool."""


@dataclass
class Response:
    status_code: int
    headers: Headers = field(default_factory=Headers)
    content: bytes = b""
    location: str = ""
    http_version: str = "HTTP/1.1"
    metadata: ResponseMetadata = field(default_factory=lambda: ResponseMetadata())

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status_code <= 399

    @property
    def is_not_modified(self) -> bool:
        return self.status_code == 304


@dataclass(frozen=True)
class CacheEntry:
    body: bytes
    etag: Optional[str] = None
    last_modified: Optional[str] = None
    headers: Headers = field(default_factory=Headers)

    @classmethod
    def from_response(cls, response: Response) -> "CacheEntry":
        return cls(
            body=response.content,
            etag=response.headers.get("etag"),
            last_modified=response.headers.get("last-modified"),
            headers=response.headers.copy(),
        )
