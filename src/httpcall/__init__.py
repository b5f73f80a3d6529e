"""HTTP request helpers and mock server for testing them."""

from httpcall.error import (
    EmptyResponseBody,
    HttpCallError,
    InvalidMediaType,
    QueryError,
    TransportFailure,
)
from httpcall.media import MediaType
from httpcall.mock import ComputedResponse, MockResponder, StaticResponse
from httpcall.query import read_json_path
from httpcall.request import (
    DownloadProgress,
    Header,
    HttpMethod,
    ProxyConfig,
    ProxyType,
    RequestConfig,
    RequestExecutor,
)

__all__ = [
    "ComputedResponse",
    "DownloadProgress",
    "EmptyResponseBody",
    "Header",
    "HttpCallError",
    "HttpMethod",
    "InvalidMediaType",
    "MediaType",
    "MockResponder",
    "ProxyConfig",
    "ProxyType",
    "QueryError",
    "RequestConfig",
    "RequestExecutor",
    "StaticResponse",
    "TransportFailure",
    "read_json_path",
]
