import socketserver
import threading
import typing as tp

import pytest

import rawfetch


class KeepAliveHandler(socketserver.StreamRequestHandler):
    """
    Serves any number of GET requests on one connection.

    Answers ``200`` with ``ETag: "v1"`` and a body naming the path, or ``304`` when
    the request carries ``If-None-Match: "v1"``.
    """

    server: "LocalHTTPServer"

    def handle(self) -> None:
        self.server.connections += 1
        while True:
            request_line = self.rfile.readline()
            if not request_line:
                return
            headers: tp.Dict[str, str] = {}
            while True:
                line = self.rfile.readline()
                if line in (b"\r\n", b"\n", b""):
                    break
                name, _, value = line.decode("iso-8859-1").partition(":")
                headers[name.strip().lower()] = value.strip()

            path = request_line.split()[1].decode("ascii")
            self.server.requests.append((path, headers))

            if headers.get("if-none-match") == '"v1"':
                self.wfile.write(rawfetch.build_response(304, [("ETag", '"v1"')], content_length=False))
            else:
                self.wfile.write(rawfetch.build_response(200, [("ETag", '"v1"')], f"hello from {path}".encode()))


class LocalHTTPServer(socketserver.ThreadingTCPServer):
    daemon_threads = True
    allow_reuse_address = True

    def __init__(self) -> None:
        super().__init__(("127.0.0.1", 0), KeepAliveHandler)
        self.connections = 0
        self.requests: tp.List[tp.Tuple[str, tp.Dict[str, str]]] = []

    @property
    def url(self) -> str:
        host, port = self.server_address[:2]
        return f"http://{host}:{port}"


@pytest.fixture
def http_server() -> tp.Iterator[LocalHTTPServer]:
    server = LocalHTTPServer()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def dialer() -> tp.Iterator[rawfetch.MockDialer]:
    with rawfetch.MockDialer() as mock_dialer:
        yield mock_dialer
