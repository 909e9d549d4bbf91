from __future__ import annotations

import logging
import socket
import ssl
import threading
import time
import types
import typing as tp

from ._config import ClientOptions
from ._connection import Connection, SocketLike
from ._exceptions import ConnectError, ConnectTimeout
from ._models import Origin

if tp.TYPE_CHECKING:  # pragma: no cover
    from typing_extensions import Self

__all__ = ("ConnectionPool", "Dialer")

logger = logging.getLogger("rawfetch.pool")

Dialer = tp.Callable[[Origin, float], SocketLike]


class ConnectionPool:
    """
    Keeps idle connections per origin so later requests can skip the handshake.

    Idle connections are handed out last-in-first-out. The pool lock only guards
    the idle lists; dialing and all socket I/O happen outside of it, so requests to
    different origins never wait on each other and concurrent requests to one
    origin each receive their own connection.

    :param options: Timeouts and TLS settings, defaults to None
    :type options: tp.Optional[ClientOptions], optional
    :param dialer: Callable opening a socket to an origin, defaults to a TCP/TLS dialer
    :type dialer: tp.Optional[Dialer], optional
    """

    def __init__(
        self,
        options: tp.Optional[ClientOptions] = None,
        dialer: tp.Optional[Dialer] = None,
    ) -> None:
        self._options = options if options is not None else ClientOptions()
        self._dialer = dialer if dialer is not None else self._dial
        self._ssl_context: tp.Optional[ssl.SSLContext] = self._options.ssl_context
        self._idle: tp.Dict[Origin, tp.List[Connection]] = {}
        self._lock = threading.Lock()
        self.dial_count = 0

    def _get_ssl_context(self) -> ssl.SSLContext:
        if self._ssl_context is None:
            self._ssl_context = ssl.create_default_context()
        return self._ssl_context

    def _dial(self, origin: Origin, timeout: float) -> SocketLike:
        sock = socket.create_connection((origin.host, origin.port), timeout=timeout)
        if not origin.is_tls:
            return sock
        try:
            return self._get_ssl_context().wrap_socket(sock, server_hostname=origin.host)
        except BaseException:
            sock.close()
            raise

    def _open(self, origin: Origin) -> Connection:
        logger.debug(f"Dialing {origin}")
        with self._lock:
            self.dial_count += 1
        try:
            sock = self._dialer(origin, self._options.connect_timeout)
        except socket.timeout as exc:
            raise ConnectTimeout(f"Timed out connecting to {origin}") from exc
        except OSError as exc:
            raise ConnectError(f"Could not connect to {origin}: {exc}") from exc

        return Connection(sock, origin)

    def acquire(self, origin: Origin) -> Connection:
        """
        Check out a connection for ``origin``, reusing an idle one when possible.

        :param origin: The origin to connect to
        :type origin: Origin
        :return: A connection owned by the caller until released or discarded
        :rtype: Connection
        :raises ConnectError: If a new connection cannot be established
        """
        while True:
            with self._lock:
                idle = self._idle.get(origin)
                connection = idle.pop() if idle else None
            if connection is None:
                break
            if connection.has_expired(self._options.max_idle_time):
                logger.debug(f"Idle connection to {origin} expired")
                connection.close()
                continue
            if connection.is_readable():
                logger.debug(f"Idle connection to {origin} was dropped by the peer")
                connection.close()
                continue
            logger.debug(f"Reusing idle connection to {origin}")
            connection.set_deadline(self._options.exchange_timeout)
            return connection

        connection = self._open(origin)
        connection.set_deadline(self._options.exchange_timeout)
        return connection

    def release(self, origin: Origin, connection: Connection) -> None:
        """
        Return a connection whose last response ended on a clean boundary.
        """
        if connection.closed:
            return
        connection.last_used = time.time()
        with self._lock:
            self._idle.setdefault(origin, []).append(connection)
        logger.debug(f"Released connection to {origin}")

    def discard(self, connection: Connection) -> None:
        with self._lock:
            idle = self._idle.get(connection.origin)
            if idle and connection in idle:
                idle.remove(connection)
        connection.close()
        logger.debug(f"Discarded connection to {connection.origin}")

    def idle_count(self, origin: tp.Optional[Origin] = None) -> int:
        with self._lock:
            if origin is not None:
                return len(self._idle.get(origin, []))
            return sum(len(idle) for idle in self._idle.values())

    def close(self) -> None:
        with self._lock:
            connections = [connection for idle in self._idle.values() for connection in idle]
            self._idle.clear()
        for connection in connections:
            connection.close()

    def __enter__(self) -> "Self":
        return self

    def __exit__(
        self,
        exc_type: tp.Optional[tp.Type[BaseException]] = None,
        exc_value: tp.Optional[BaseException] = None,
        traceback: tp.Optional[types.TracebackType] = None,
    ) -> None:
        self.close()
