from rawfetch._cache import ResponseCache as ResponseCache
from rawfetch._client import (
    AnyState as AnyState,
    Client as Client,
    Done as Done,
    Evaluating as Evaluating,
    Failed as Failed,
    Requesting as Requesting,
    State as State,
)
from rawfetch._config import ClientOptions as ClientOptions
from rawfetch._connection import Connection as Connection
from rawfetch._exceptions import (
    CacheInconsistency as CacheInconsistency,
    ConnectError as ConnectError,
    ConnectTimeout as ConnectTimeout,
    DecodeError as DecodeError,
    InvalidURL as InvalidURL,
    MalformedStatusLine as MalformedStatusLine,
    MalformedURL as MalformedURL,
    MissingLocationHeader as MissingLocationHeader,
    ProtocolError as ProtocolError,
    RawFetchError as RawFetchError,
    ReadError as ReadError,
    ReadTimeout as ReadTimeout,
    RedirectError as RedirectError,
    TimeoutException as TimeoutException,
    TooManyRedirects as TooManyRedirects,
    TransportError as TransportError,
    UnsupportedTransferEncoding as UnsupportedTransferEncoding,
    URLError as URLError,
    WriteError as WriteError,
    WriteTimeout as WriteTimeout,
)
from rawfetch._headers import Headers as Headers
from rawfetch._mock import MockDialer as MockDialer, MockSocket as MockSocket, build_response as build_response
from rawfetch._models import (
    CacheEntry as CacheEntry,
    Origin as Origin,
    Request as Request,
    Response as Response,
    ResponseMetadata as ResponseMetadata,
)
from rawfetch._pool import ConnectionPool as ConnectionPool, Dialer as Dialer
from rawfetch._transport import Transport as Transport
from rawfetch._urls import parse_request_url as parse_request_url, resolve_url as resolve_url

__version__ = "0.1.0"

__all__ = (
    # Client
    "Client",
    "ClientOptions",
    ## States
    "AnyState",
    "State",
    "Requesting",
    "Evaluating",
    "Done",
    "Failed",
    # Engine
    "Transport",
    "ConnectionPool",
    "Connection",
    "Dialer",
    "ResponseCache",
    # Models
    "Origin",
    "Request",
    "Response",
    "ResponseMetadata",
    "CacheEntry",
    "Headers",
    # URLs
    "resolve_url",
    "parse_request_url",
    # Testing
    "MockDialer",
    "MockSocket",
    "build_response",
    # Exceptions
    "RawFetchError",
    "URLError",
    "InvalidURL",
    "MalformedURL",
    "TransportError",
    "TimeoutException",
    "ConnectError",
    "ConnectTimeout",
    "ReadError",
    "WriteError",
    "ReadTimeout",
    "WriteTimeout",
    "ProtocolError",
    "MalformedStatusLine",
    "DecodeError",
    "UnsupportedTransferEncoding",
    "CacheInconsistency",
    "RedirectError",
    "MissingLocationHeader",
    "TooManyRedirects",
)
