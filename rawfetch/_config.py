from __future__ import annotations

import ssl
from dataclasses import dataclass
from typing import Optional

__all__ = ("ClientOptions",)


@dataclass
class ClientOptions:
    """
    Tunables shared by the client, its transport and its connection pool.

    Attributes:
    ----------
    connect_timeout : float
        Seconds allowed for the TCP connect and, for ``https``, the TLS handshake.

        Default: 10.0

    exchange_timeout : float
        Seconds allowed for one request/response exchange once a connection is
        checked out of the pool. Every read and write on the connection draws from
        this single window, so a slow peer cannot stretch an exchange by trickling
        bytes.

        Default: 15.0

    max_idle_time : float
        Idle connections older than this are closed instead of being reused.

        Default: 30.0

    max_redirects : int
        Redirect hops followed by ``Client.fetch_with_redirects`` when the caller
        does not pass a limit.

        Default: 5

    ssl_context : ssl.SSLContext | None
        Context used to wrap ``https`` connections. ``None`` means
        ``ssl.create_default_context()``.

    Examples:
    --------
    >>> options = ClientOptions(connect_timeout=3.0, max_redirects=10)
    >>> options.exchange_timeout
    15.0
    """

    connect_timeout: float = 10.0
    exchange_timeout: float = 15.0
    max_idle_time: float = 30.0
    max_redirects: int = 5
    ssl_context: Optional[ssl.SSLContext] = None

    def __post_init__(self) -> None:
        for name in ("connect_timeout", "exchange_timeout", "max_idle_time"):
            if getattr(self, name) < 0:
                raise ValueError(f"The option '{name}' must not be negative.")
        if self.max_redirects < 0:
            raise ValueError("The option 'max_redirects' must not be negative.")
