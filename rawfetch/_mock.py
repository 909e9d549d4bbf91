from __future__ import annotations

import socket
import threading
import typing as tp
from types import TracebackType

from ._exceptions import ConnectError
from ._models import Origin

if tp.TYPE_CHECKING:  # pragma: no cover
    from typing_extensions import Self

__all__ = ("MockDialer", "MockSocket", "build_response")


def build_response(
    status_code: int,
    headers: tp.Optional[tp.Sequence[tp.Tuple[str, str]]] = None,
    content: bytes = b"",
    reason: str = "",
    http_version: str = "HTTP/1.1",
    content_length: bool = True,
) -> bytes:
    """
    Encode a raw HTTP/1.x response for :class:`MockDialer`.

    A ``Content-Length`` field is added unless one is given or ``content_length`` is False.
    """
    fields = list(headers or [])
    if content_length and not any(name.lower() == "content-length" for name, _ in fields):
        fields.append(("Content-Length", str(len(content))))
    head = f"{http_version} {status_code} {reason}".rstrip() + "\r\n"
    head += "".join(f"{name}: {value}\r\n" for name, value in fields)
    return (head + "\r\n").encode("iso-8859-1") + content


class MockSocket:
    """
    Client end of an in-process socket pair whose peer plays back canned responses.

    Each ``sendall`` is recorded as one request and answered with the next queued
    response. Once the queue is empty and ``close_after`` is set, the peer shuts
    down its sending side so the client reads end-of-stream. Responses are written
    from a background thread, so they may be larger than the socket buffer.
    """

    def __init__(self, origin: Origin, responses: tp.List[bytes], close_after: bool = False) -> None:
        self.origin = origin
        self._sock, self._peer = socket.socketpair()
        self._responses = list(responses)
        self._close_after = close_after
        self.requests: tp.List[bytes] = []
        self.timeouts: tp.List[tp.Optional[float]] = []
        self.closed = False

    def sendall(self, data: bytes) -> None:
        self._sock.sendall(data)
        self.requests.append(data)
        response = self._responses.pop(0) if self._responses else None
        shutdown = not self._responses and self._close_after
        if response is not None or shutdown:
            threading.Thread(target=self._play, args=(response, shutdown), daemon=True).start()

    def _play(self, response: tp.Optional[bytes], shutdown: bool) -> None:
        try:
            if response:
                self._peer.sendall(response)
            if shutdown:
                self._peer.shutdown(socket.SHUT_WR)
        except OSError:
            # The client closed the pair before reading the whole response.
            return

    def recv(self, bufsize: int) -> bytes:
        return self._sock.recv(bufsize)

    def settimeout(self, value: tp.Optional[float]) -> None:
        self.timeouts.append(value)
        self._sock.settimeout(value)

    def fileno(self) -> int:
        return self._sock.fileno()

    def close(self) -> None:
        self.closed = True
        self._sock.close()
        self._peer.close()

    def hang_up(self) -> None:
        """Close the server side, as a server does when dropping an idle keep-alive connection."""
        self._peer.close()

    def push(self, data: bytes) -> None:
        """Send unsolicited bytes to the client."""
        self._peer.sendall(data)


class MockDialer:
    """
    A dialer that hands out :class:`MockSocket` objects instead of network connections.

    Every call consumes one scripted connection added with :meth:`add_connection`.
    When none is left the dial fails with :class:`ConnectError`.

    Example:
        ```
        dialer = MockDialer()
        dialer.add_connection([b"HTTP/1.1 200 OK\\r\\nContent-Length: 2\\r\\n\\r\\nhi"])
        client = Client(dialer=dialer)
        ```
    """

    def __init__(self) -> None:
        self._scripts: tp.List[tp.Tuple[tp.List[bytes], bool]] = []
        self.sockets: tp.List[MockSocket] = []
        self.dialed: tp.List[tp.Tuple[Origin, float]] = []

    def add_connection(self, responses: tp.List[bytes], close_after: bool = False) -> None:
        self._scripts.append((list(responses), close_after))

    def __call__(self, origin: Origin, timeout: float) -> MockSocket:
        self.dialed.append((origin, timeout))
        if not self._scripts:
            raise ConnectError(f"No scripted connection left for {origin}")
        responses, close_after = self._scripts.pop(0)
        sock = MockSocket(origin, responses, close_after=close_after)
        self.sockets.append(sock)
        return sock

    @property
    def requests(self) -> tp.List[bytes]:
        return [request for sock in self.sockets for request in sock.requests]

    def close(self) -> None:
        for sock in self.sockets:
            if not sock.closed:
                sock.close()

    def __enter__(self) -> "Self":
        return self

    def __exit__(
        self,
        exc_type: tp.Optional[tp.Type[BaseException]] = None,
        exc_value: tp.Optional[BaseException] = None,
        traceback: tp.Optional[TracebackType] = None,
    ) -> None:
        self.close()
