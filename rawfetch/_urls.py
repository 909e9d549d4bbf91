from __future__ import annotations

import typing as tp

import httpx

from ._exceptions import InvalidURL, MalformedURL
from ._models import DEFAULT_PORTS, Origin

__all__ = ("resolve_url", "parse_request_url")


def _parse(url: str) -> httpx.URL:
    return httpx.URL(url)


def resolve_url(base: str, target: str) -> str:
    """
    Resolve a redirect target against the URL that produced it.

    Follows the reference resolution rules of RFC 3986, section 5. Relative
    and scheme-relative targets inherit from ``base``; absolute targets replace it.

    :param base: The absolute URL of the current request
    :type base: str
    :param target: The ``Location`` value, absolute or relative
    :type target: str
    :return: The absolute URL to request next
    :rtype: str
    :raises MalformedURL: If either URL cannot be parsed, or ``base`` is not absolute
    """
    try:
        base_url = _parse(base)
        target_url = _parse(target)
    except httpx.InvalidURL as exc:
        raise MalformedURL(f"Could not parse {base!r} or {target!r}: {exc}") from exc

    if not base_url.scheme or not base_url.host:
        raise MalformedURL(f"The base URL {base!r} must have a scheme and a host.")

    try:
        return str(base_url.join(target_url))
    except httpx.InvalidURL as exc:
        raise MalformedURL(f"Could not resolve {target!r} against {base!r}: {exc}") from exc


def parse_request_url(url: str) -> tp.Tuple[Origin, str, str]:
    """
    Split a request URL into its origin, request-target and ``Host`` header value.

    Examples:
        >>> origin, target, host = parse_request_url("https://example.com:8443/a?b=1")
        >>> str(origin), target, host
        ('https://example.com:8443', '/a?b=1', 'example.com:8443')
    """
    try:
        parsed = _parse(url)
    except httpx.InvalidURL as exc:
        raise InvalidURL(f"Could not parse {url!r}: {exc}") from exc

    if parsed.scheme not in DEFAULT_PORTS:
        raise InvalidURL(f"Unsupported URL scheme in {url!r}, expected http or https.")
    if not parsed.host:
        raise InvalidURL(f"The URL {url!r} has no host.")

    origin = Origin.create(parsed.scheme, parsed.raw_host.decode("ascii"), parsed.port)
    target = parsed.raw_path.decode("ascii") or "/"
    host = parsed.netloc.decode("ascii")
    return origin, target, host
