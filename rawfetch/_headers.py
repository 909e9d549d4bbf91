from __future__ import annotations

from typing import Any, Iterator, Mapping, MutableMapping, Optional, Tuple

__all__ = ("Headers", "parse_header_line", "contains_token")


def parse_header_line(line: str) -> Optional[Tuple[str, str]]:
    """
    Split a single ``name: value`` field line.

    The name is lower-cased and both parts are stripped of optional whitespace.
    Lines without a colon, or with an empty name, yield ``None``.

    Examples:
        >>> parse_header_line("Content-Type: text/html")
        ('content-type', 'text/html')
        >>> parse_header_line("garbage") is None
        True
    """
    name, sep, value = line.partition(":")
    name = name.strip().lower()
    if not sep or not name:
        return None
    return name, value.strip()


def contains_token(value: str, token: str) -> bool:
    """
    Check whether a comma separated header value lists ``token``, ignoring case.

    Examples:
        >>> contains_token("Keep-Alive, Upgrade", "upgrade")
        True
        >>> contains_token("x-gzip", "gzip")
        False
    """
    token = token.lower()
    return any(part.strip().lower() == token for part in value.split(","))


class Headers(MutableMapping[str, str]):
    """
    Case-insensitive header mapping.

    Names are stored lower-cased. Assigning a name that is already present
    replaces the previous value, so duplicated response fields keep the last one.
    """

    def __init__(self, headers: Mapping[str, str] | None = None) -> None:
        self._headers: dict[str, str] = {}
        for key, value in (headers or {}).items():
            self[key] = value

    def __getitem__(self, key: str) -> str:
        return self._headers[key.lower()]

    def __setitem__(self, key: str, value: str) -> None:
        self._headers[key.lower()] = value

    def __delitem__(self, key: str) -> None:
        del self._headers[key.lower()]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._headers

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def copy(self) -> "Headers":
        return Headers(self._headers)

    def __repr__(self) -> str:
        return f"Headers({self._headers!r})"

    def __str__(self) -> str:
        return str(self._headers)

    def __eq__(self, other_headers: Any) -> bool:
        if isinstance(other_headers, Headers):
            return self._headers == other_headers._headers
        if isinstance(other_headers, Mapping):
            return self._headers == {k.lower(): v for k, v in other_headers.items()}
        return False
