class HttpCallError(Exception):
    """Base class for httpcall exceptions."""


class InvalidMediaType(HttpCallError, ValueError):
    """The configured media type string could not be parsed."""

    def __init__(self, media_type: str):
        super().__init__(f"media type does not exist: {media_type!r}")
        self.media_type = media_type


class EmptyResponseBody(HttpCallError, ValueError):
    """The response carried no content to analyze."""


class TransportFailure(HttpCallError, ConnectionError):
    """Network-level failure while executing a request. Used to wrap
    the exceptions raised by the HTTP client (connect timeouts, DNS
    failures, connection resets, ...)."""


class QueryError(HttpCallError, LookupError):
    """A JSON path query matched nothing, or matched a value of an
    unexpected type."""
