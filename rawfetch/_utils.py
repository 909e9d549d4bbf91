from __future__ import annotations

import typing as tp
import zlib

from ._exceptions import DecodeError

HEADERS_ENCODING = "iso-8859-1"

GZIP_MAGIC = b"\x1f\x8b"
GZIP_WBITS = zlib.MAX_WBITS | 16

T = tp.TypeVar("T")


def partition(iterable: tp.Iterable[T], predicate: tp.Callable[[T], bool]) -> tp.Tuple[tp.List[T], tp.List[T]]:
    """
    Partition an iterable into two lists: one for matching items and one for non-matching items.

    Example:
        ```
        kept, dropped = partition([("X-A", "1"), ("Host", "b")], lambda item: item[0].lower() != "host")
        ```
    """
    matching, non_matching = [], []
    for item in iterable:
        if predicate(item):
            matching.append(item)
        else:
            non_matching.append(item)
    return matching, non_matching


def decode_gzip(chunks: tp.Iterable[bytes]) -> bytes:
    """
    Stream raw body chunks through a gzip decompressor.

    Concatenated gzip members decode to the concatenation of their contents.
    Raises DecodeError for a corrupt stream, one that ends before a gzip
    trailer, or bytes after a trailer that do not start another member. An
    empty body decodes to an empty body.
    """
    decompressor = zlib.decompressobj(GZIP_WBITS)
    decoded: tp.List[bytes] = []
    received = 0
    leftover = b""
    try:
        for chunk in chunks:
            received += len(chunk)
            data, leftover = leftover + chunk, b""
            while data:
                if decompressor.eof:
                    if len(data) < len(GZIP_MAGIC):
                        leftover = data
                        break
                    if not data.startswith(GZIP_MAGIC):
                        raise DecodeError("Unexpected bytes after the gzip trailer")
                    decompressor = zlib.decompressobj(GZIP_WBITS)
                decoded.append(decompressor.decompress(data))
                data = decompressor.unused_data
        decoded.append(decompressor.flush())
    except zlib.error as exc:
        raise DecodeError(f"Corrupt gzip stream: {exc}") from exc

    if leftover:
        raise DecodeError("Unexpected bytes after the gzip trailer")
    if received and not decompressor.eof:
        raise DecodeError("The gzip stream ended before its trailer")
    return b"".join(decoded)
