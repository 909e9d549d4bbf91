__all__ = (
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


class RawFetchError(Exception): ...


class URLError(RawFetchError): ...


class InvalidURL(URLError): ...


class MalformedURL(URLError): ...


class TransportError(RawFetchError): ...


class TimeoutException(TransportError): ...


class ConnectError(TransportError): ...


class ConnectTimeout(ConnectError, TimeoutException): ...


class ReadError(TransportError): ...


class WriteError(TransportError): ...


class ReadTimeout(TimeoutException): ...


class WriteTimeout(TimeoutException): ...


class ProtocolError(RawFetchError): ...


class MalformedStatusLine(ProtocolError): ...


class DecodeError(ProtocolError): ...


class UnsupportedTransferEncoding(ProtocolError): ...


class CacheInconsistency(ProtocolError): ...


class RedirectError(RawFetchError): ...


class MissingLocationHeader(RedirectError): ...


class TooManyRedirects(RedirectError): ...
