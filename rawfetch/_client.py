from __future__ import annotations

import logging
import types
import typing as tp
from abc import ABC, abstractmethod
from dataclasses import dataclass

from typing_extensions import assert_never

from ._cache import ResponseCache
from ._config import ClientOptions
from ._exceptions import MissingLocationHeader, TooManyRedirects
from ._models import Response
from ._pool import ConnectionPool, Dialer
from ._transport import Transport
from ._urls import resolve_url

if tp.TYPE_CHECKING:  # pragma: no cover
    from typing_extensions import Self

__all__ = (
    "Client",
    "State",
    "Requesting",
    "Evaluating",
    "Done",
    "Failed",
    "AnyState",
)

logger = logging.getLogger("rawfetch.client")

SendRequest = tp.Callable[[str, tp.Mapping[str, str]], Response]


@dataclass
class State(ABC):
    url: str
    hop: int

    @abstractmethod
    def next(self, *args: tp.Any, **kwargs: tp.Any) -> tp.Union["State", None]:
        raise NotImplementedError()


@dataclass
class Requesting(State):
    """
    A request for ``url`` is about to be sent; ``hop`` redirects were followed so far.
    """

    def next(self, send_request: SendRequest, headers: tp.Mapping[str, str]) -> tp.Union["Evaluating", "Failed"]:
        try:
            response = send_request(self.url, headers)
        except Exception as exc:
            return Failed(url=self.url, hop=self.hop, error=exc)
        return Evaluating(url=self.url, hop=self.hop, response=response)


@dataclass
class Evaluating(State):
    """
    A response arrived and decides whether the loop ends or follows a redirect.

    State Transitions:
    -----------------
    - Done: 304 (answered from the cache) or any status outside 300-399
    - Failed: a redirect without a Location header, an unresolvable target,
      or a redirect beyond the hop limit
    - Requesting: a redirect to the resolved target
    """

    response: Response

    def next(self, max_redirects: int) -> tp.Union["Requesting", "Done", "Failed"]:
        response = self.response

        if response.is_not_modified:
            logger.info(f"Using cached response for {self.url}")
            return Done(url=self.url, hop=self.hop, response=response)

        if not response.is_redirect:
            return Done(url=self.url, hop=self.hop, response=response)

        if not response.location:
            return Failed(
                url=self.url,
                hop=self.hop,
                error=MissingLocationHeader(f"Redirect ({response.status_code}) from {self.url} has no Location"),
            )

        try:
            next_url = resolve_url(self.url, response.location)
        except Exception as exc:
            return Failed(url=self.url, hop=self.hop, error=exc)

        hop = self.hop + 1
        if hop > max_redirects:
            return Failed(
                url=self.url,
                hop=hop,
                error=TooManyRedirects(f"Exceeded {max_redirects} redirects, last target {next_url}"),
            )

        logger.info(f"Redirect {response.status_code} ({hop}/{max_redirects}): {self.url} -> {next_url}")
        return Requesting(url=next_url, hop=hop)


@dataclass
class Done(State):
    response: Response

    def next(self) -> None:
        return None


@dataclass
class Failed(State):
    error: Exception

    def next(self) -> None:
        return None


AnyState = tp.Union[Requesting, Evaluating, Done, Failed]


class Client:
    """
    Fetches URLs over raw sockets, following redirects and revalidating cached bodies.

    A client owns one connection pool and one response cache for its lifetime.
    Both are thread-safe, so a single client can serve many threads.

    :param options: Timeouts, TLS context and the default redirect limit, defaults to None
    :type options: tp.Optional[ClientOptions], optional
    :param pool: Connection pool to use, defaults to a new one built from ``options``
    :type pool: tp.Optional[ConnectionPool], optional
    :param cache: Response cache to use, defaults to an empty one
    :type cache: tp.Optional[ResponseCache], optional
    :param dialer: Socket factory for a pool created here, defaults to None
    :type dialer: tp.Optional[Dialer], optional
    """

    def __init__(
        self,
        options: tp.Optional[ClientOptions] = None,
        pool: tp.Optional[ConnectionPool] = None,
        cache: tp.Optional[ResponseCache] = None,
        dialer: tp.Optional[Dialer] = None,
    ) -> None:
        self.options = options if options is not None else ClientOptions()
        self.pool = pool if pool is not None else ConnectionPool(options=self.options, dialer=dialer)
        self.cache = cache if cache is not None else ResponseCache()
        self.transport = Transport(pool=self.pool, cache=self.cache, options=self.options)

    def _send(self, url: str, headers: tp.Mapping[str, str]) -> Response:
        logger.debug(f"Requesting {url}")
        return self.transport.execute(url, headers)

    def fetch(
        self,
        url: str,
        max_redirects: tp.Optional[int] = None,
        headers: tp.Optional[tp.Mapping[str, str]] = None,
    ) -> Response:
        """
        Fetch ``url``, following redirects, and return the final response.

        :param url: The absolute URL to start from
        :type url: str
        :param max_redirects: Redirect hops allowed, defaults to ``options.max_redirects``
        :type max_redirects: tp.Optional[int]
        :param headers: Extra headers sent with every hop
        :type headers: tp.Optional[tp.Mapping[str, str]]
        :return: The terminal response
        :rtype: Response
        """
        limit = self.options.max_redirects if max_redirects is None else max_redirects
        request_headers = dict(headers or {})
        state: AnyState = Requesting(url=url, hop=0)

        while True:
            logger.debug(f"Handling state: {state.__class__.__name__}")
            if isinstance(state, Requesting):
                state = state.next(self._send, request_headers)
            elif isinstance(state, Evaluating):
                state = state.next(limit)
            elif isinstance(state, Done):
                return state.response
            elif isinstance(state, Failed):
                raise state.error
            else:
                assert_never(state)

    def fetch_with_redirects(
        self,
        url: str,
        max_redirects: tp.Optional[int] = None,
        headers: tp.Optional[tp.Mapping[str, str]] = None,
    ) -> bytes:
        """
        Fetch ``url``, following up to ``max_redirects`` redirects, and return the final body.

        Success and error statuses alike end the loop with their body; a 304
        answer ends it with the cached body.
        """
        return self.fetch(url, max_redirects=max_redirects, headers=headers).content

    def close(self) -> None:
        self.pool.close()

    def __enter__(self) -> "Self":
        return self

    def __exit__(
        self,
        exc_type: tp.Optional[tp.Type[BaseException]] = None,
        exc_value: tp.Optional[BaseException] = None,
        traceback: tp.Optional[types.TracebackType] = None,
    ) -> None:
        self.close()
