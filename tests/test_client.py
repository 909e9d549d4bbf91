import gzip
import typing as tp

import pytest
from inline_snapshot import snapshot

from rawfetch import (
    CacheEntry,
    Client,
    ClientOptions,
    ConnectError,
    Done,
    Evaluating,
    Failed,
    Headers,
    MalformedURL,
    MissingLocationHeader,
    MockDialer,
    Requesting,
    Response,
    TooManyRedirects,
    build_response,
)


class RecordingClient(Client):
    def __init__(self, *args: tp.Any, **kwargs: tp.Any) -> None:
        super().__init__(*args, **kwargs)
        self.sent: tp.List[str] = []

    def _send(self, url: str, headers: tp.Mapping[str, str]) -> Response:
        self.sent.append(url)
        return super()._send(url, headers)


def test_client_follows_redirect(dialer: MockDialer):
    dialer.add_connection(
        [
            build_response(301, [("Location", "/b")]),
            build_response(200, content=b"final body"),
        ]
    )
    with RecordingClient(dialer=dialer) as client:
        body = client.fetch_with_redirects("http://example.com/a", max_redirects=5)

    assert body == b"final body"
    assert client.sent == ["http://example.com/a", "http://example.com/b"]
    assert dialer.requests[1].startswith(b"GET /b HTTP/1.1\r\n")


def test_client_logs_hops_and_cache_hits(dialer: MockDialer, caplog: pytest.LogCaptureFixture):
    dialer.add_connection(
        [
            build_response(302, [("Location", "https://example.org/landing")]),
        ]
    )
    dialer.add_connection(
        [
            build_response(200, [("ETag", '"v1"')], b"landing"),
            build_response(304, content_length=False),
        ]
    )
    with Client(dialer=dialer) as client:
        with caplog.at_level("INFO", logger="rawfetch"):
            client.fetch_with_redirects("http://example.com/")
            client.fetch_with_redirects("https://example.org/landing")

    assert caplog.messages == snapshot(
        [
            "Redirect 302 (1/5): http://example.com/ -> https://example.org/landing",
            "Using cached response for https://example.org/landing",
        ]
    )


def test_client_too_many_redirects(dialer: MockDialer):
    dialer.add_connection([build_response(302, [("Location", f"/loop/{i}")]) for i in range(10)])
    with RecordingClient(dialer=dialer) as client:
        with pytest.raises(TooManyRedirects):
            client.fetch_with_redirects("http://example.com/loop", max_redirects=2)

    assert len(client.sent) == 3


def test_client_redirect_cycle_stops_at_limit(dialer: MockDialer):
    dialer.add_connection(
        [
            build_response(301, [("Location", "/b")]),
            build_response(301, [("Location", "/a")]),
            build_response(301, [("Location", "/b")]),
        ]
    )
    with RecordingClient(dialer=dialer) as client:
        with pytest.raises(TooManyRedirects):
            client.fetch_with_redirects("http://example.com/a", max_redirects=1)

    assert client.sent == ["http://example.com/a", "http://example.com/b"]


def test_client_zero_redirects_allows_direct_hit(dialer: MockDialer):
    dialer.add_connection([build_response(200, content=b"direct")])
    with Client(dialer=dialer) as client:
        assert client.fetch_with_redirects("http://example.com/", max_redirects=0) == b"direct"


def test_client_missing_location(dialer: MockDialer):
    dialer.add_connection([build_response(301)])
    with Client(dialer=dialer) as client:
        with pytest.raises(MissingLocationHeader):
            client.fetch_with_redirects("http://example.com/")


def test_client_unresolvable_location(dialer: MockDialer):
    dialer.add_connection([build_response(301, [("Location", "http://example.com:notaport/")])])
    with Client(dialer=dialer) as client:
        with pytest.raises(MalformedURL):
            client.fetch_with_redirects("http://example.com/")


def test_client_returns_error_status_body(dialer: MockDialer):
    dialer.add_connection([build_response(404, content=b"not here")])
    with Client(dialer=dialer) as client:
        response = client.fetch("http://example.com/missing")

    assert response.status_code == 404
    assert response.content == b"not here"


def test_client_revalidation_returns_cached_body_without_decoding(dialer: MockDialer):
    body = gzip.compress(b"compressed once")
    dialer.add_connection(
        [
            build_response(200, [("ETag", '"abc"'), ("Content-Encoding", "gzip")], body),
            build_response(304, [("ETag", '"abc"'), ("Content-Encoding", "gzip")], content_length=False),
        ]
    )
    with Client(dialer=dialer) as client:
        first = client.fetch_with_redirects("http://example.com/doc")
        second = client.fetch_with_redirects("http://example.com/doc")

    assert first == second == b"compressed once"
    assert b'If-None-Match: "abc"\r\n' in dialer.requests[1]


def test_client_revalidates_prepopulated_cache(dialer: MockDialer):
    dialer.add_connection([build_response(304, content_length=False)])
    with Client(dialer=dialer) as client:
        client.cache.put("http://example.com/", CacheEntry(body=b"\x00raw bytes\xff", etag='"abc"'))

        assert client.fetch_with_redirects("http://example.com/") == b"\x00raw bytes\xff"


def test_client_connection_close_forces_fresh_dial(dialer: MockDialer):
    dialer.add_connection([build_response(200, [("Connection", "close")], b"one")])
    dialer.add_connection([build_response(200, content=b"two")])
    with Client(dialer=dialer) as client:
        client.fetch_with_redirects("http://example.com/1")
        client.fetch_with_redirects("http://example.com/2")

        assert client.pool.dial_count == 2


def test_client_propagates_engine_errors_unchanged(dialer: MockDialer):
    with Client(dialer=dialer) as client:
        with pytest.raises(ConnectError, match="No scripted connection left"):
            client.fetch_with_redirects("http://example.com/")


def test_client_default_redirect_limit_from_options(dialer: MockDialer):
    dialer.add_connection([build_response(302, [("Location", "/next")]) for _ in range(3)])
    with RecordingClient(options=ClientOptions(max_redirects=1), dialer=dialer) as client:
        with pytest.raises(TooManyRedirects):
            client.fetch_with_redirects("http://example.com/")

    assert len(client.sent) == 2


def test_client_against_local_server(http_server):
    with Client() as client:
        first = client.fetch_with_redirects(f"{http_server.url}/page")
        second = client.fetch_with_redirects(f"{http_server.url}/page")

        assert client.pool.dial_count == 1

    assert first == second == b"hello from /page"
    assert http_server.connections == 1
    assert [path for path, _ in http_server.requests] == ["/page", "/page"]
    assert "if-none-match" not in http_server.requests[0][1]
    assert http_server.requests[1][1]["if-none-match"] == '"v1"'


def test_client_uses_given_cache_and_pool(dialer: MockDialer):
    dialer.add_connection([build_response(200, content=b"shared")])
    with Client(dialer=dialer) as first_client:
        second_client = Client(pool=first_client.pool, cache=first_client.cache)
        second_client.fetch_with_redirects("http://example.com/")

        assert first_client.cache.get("http://example.com/").body == b"shared"  # type: ignore[union-attr]
        assert first_client.pool.idle_count() == 1


def test_states_transitions():
    redirect = Response(status_code=307, headers=Headers({"location": "/next"}), location="/next")
    state = Evaluating(url="http://example.com/start", hop=0, response=redirect).next(max_redirects=3)
    assert state == Requesting(url="http://example.com/next", hop=1)

    ok = Response(status_code=200, content=b"done")
    assert isinstance(Evaluating(url="http://example.com/next", hop=1, response=ok).next(max_redirects=3), Done)

    exhausted = Evaluating(url="http://example.com/next", hop=3, response=redirect).next(max_redirects=3)
    assert isinstance(exhausted, Failed)
    assert isinstance(exhausted.error, TooManyRedirects)
