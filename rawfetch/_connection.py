from __future__ import annotations

import select
import socket
import time
import typing as tp

from ._exceptions import ReadError, ReadTimeout, WriteError, WriteTimeout
from ._models import Origin

__all__ = ("Connection", "SocketLike")

READ_CHUNK_SIZE = 64 * 1024


class SocketLike(tp.Protocol):
    def sendall(self, data: bytes) -> None: ...

    def recv(self, bufsize: int) -> bytes: ...

    def settimeout(self, value: tp.Optional[float]) -> None: ...

    def fileno(self) -> int: ...

    def close(self) -> None: ...


class Connection:
    """
    One HTTP/1.1 transport connection.

    Wraps a connected (and possibly TLS-wrapped) socket with a read buffer and an
    exchange deadline. The deadline is absolute: every read and write after
    :meth:`set_deadline` shares the same window.

    Closing the connection from another thread aborts a blocked read or write.

    :param sock: A connected socket
    :type sock: SocketLike
    :param origin: The origin the socket is connected to
    :type origin: Origin
    """

    def __init__(self, sock: SocketLike, origin: Origin) -> None:
        self._sock = sock
        self.origin = origin
        self.last_used = time.time()
        self._deadline: tp.Optional[float] = None
        self._buffer = bytearray()
        self._closed = False
        self.requests_handled = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def set_deadline(self, seconds: float) -> None:
        self._deadline = time.monotonic() + seconds

    def _remaining(self, timeout_exc: tp.Type[Exception]) -> tp.Optional[float]:
        if self._deadline is None:
            return None
        remaining = self._deadline - time.monotonic()
        if remaining <= 0:
            raise timeout_exc(f"Deadline exceeded on {self.origin}")
        return remaining

    def write(self, data: bytes) -> None:
        try:
            self._sock.settimeout(self._remaining(WriteTimeout))
            self._sock.sendall(data)
        except socket.timeout as exc:
            raise WriteTimeout(f"Timed out writing to {self.origin}") from exc
        except OSError as exc:
            raise WriteError(f"Could not write to {self.origin}: {exc}") from exc

    def _fill(self) -> bool:
        """Receive more bytes into the buffer; ``False`` means the peer closed the stream."""
        try:
            self._sock.settimeout(self._remaining(ReadTimeout))
            chunk = self._sock.recv(READ_CHUNK_SIZE)
        except socket.timeout as exc:
            raise ReadTimeout(f"Timed out reading from {self.origin}") from exc
        except OSError as exc:
            raise ReadError(f"Could not read from {self.origin}: {exc}") from exc
        if not chunk:
            return False
        self._buffer.extend(chunk)
        return True

    def read_line(self) -> bytes:
        """
        Read one line, including its terminator.

        Returns whatever is left (possibly ``b""``) when the peer closes first.
        """
        while True:
            index = self._buffer.find(b"\n")
            if index != -1:
                line = bytes(self._buffer[: index + 1])
                del self._buffer[: index + 1]
                return line
            if not self._fill():
                line = bytes(self._buffer)
                self._buffer.clear()
                return line

    def iter_exact(self, length: int) -> tp.Iterator[bytes]:
        remaining = length
        while remaining > 0:
            if not self._buffer and not self._fill():
                raise ReadError(f"Connection to {self.origin} closed with {remaining} body bytes outstanding")
            chunk = bytes(self._buffer[:remaining])
            del self._buffer[: len(chunk)]
            remaining -= len(chunk)
            yield chunk

    def iter_until_eof(self) -> tp.Iterator[bytes]:
        while True:
            if self._buffer:
                chunk = bytes(self._buffer)
                self._buffer.clear()
                yield chunk
            if not self._fill():
                return

    def is_readable(self) -> bool:
        """
        Check an idle connection for pending input without blocking.

        An idle HTTP/1.1 connection should have nothing to read. Readable means the
        peer closed it or sent bytes we never asked for; either way it is unusable.
        """
        if self._buffer:
            return True
        try:
            readable, _, _ = select.select([self._sock], [], [], 0)
        except (OSError, ValueError):
            return True
        return bool(readable)

    def has_expired(self, max_idle_time: float, now: tp.Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return now - self.last_used > max_idle_time

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._sock.close()
        except OSError:  # pragma: no cover
            pass

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<Connection [{self.origin}, {state}, {self.requests_handled} requests]>"
