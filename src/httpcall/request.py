"""Configure and issue single HTTP requests.

A RequestExecutor holds the configuration of a request and exposes one
accessor per result shape: text, byte stream, file, or a value selected with
a JSON path. Each accessor takes a snapshot of the configuration, builds a
single request from it and executes it synchronously with httpx.

Transport failures (connection refused, timeouts, DNS errors, ...) are
logged and reported as a None result. Configuration errors such as an
invalid media type are raised to the caller.
"""

from __future__ import annotations

import enum
import io
import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import (
    Any,
    BinaryIO,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Tuple,
    Type,
    TypeVar,
    Union,
    cast,
)

import httpx

from httpcall.config import default_timeout
from httpcall.error import EmptyResponseBody, TransportFailure
from httpcall.media import MediaType
from httpcall.query import read_json_path

logger = logging.getLogger(__name__)

T = TypeVar("T")

CHUNK_SIZE = 1024
"""Size of the chunks written to disk by RequestExecutor.fetch_file."""

BODYLESS_METHODS = frozenset({"GET", "HEAD"})


@enum.unique
class HttpMethod(str, enum.Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    CONNECT = "CONNECT"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"

    def __str__(self):
        return self.value


@enum.unique
class ProxyType(str, enum.Enum):
    """Kind of proxy to route requests through. The value is the scheme of
    the proxy URL."""

    DIRECT = "direct"
    HTTP = "http"
    SOCKS = "socks5"


@dataclass(frozen=True)
class Header:
    key: str
    value: str


@dataclass(frozen=True)
class ProxyConfig:
    host: str
    port: int
    type: ProxyType = ProxyType.HTTP

    @property
    def url(self) -> Optional[str]:
        """The proxy URL, or None for direct connections."""
        if self.type is ProxyType.DIRECT:
            return None
        return f"{self.type.value}://{self.host}:{self.port}"


@dataclass(frozen=True)
class DownloadProgress:
    """Progress of a file download.

    Attributes:
        file: The file being written.

        current: Number of bytes written so far.

        max: Declared length of the response body, or 0 when the server did
            not declare it. The ratio of current to max is meaningless in
            that case, use the fraction property instead.
    """

    file: Path
    current: int
    max: int

    @property
    def fraction(self) -> Optional[float]:
        """Fraction of the body written so far, or None if the total size
        is unknown."""
        if self.max <= 0:
            return None
        return self.current / self.max


ClientOptions = Callable[[Dict[str, Any]], None]
ProgressCallback = Callable[[DownloadProgress], None]


@dataclass(frozen=True)
class RequestSnapshot:
    """Immutable copy of a RequestConfig, used to execute one request."""

    url: Optional[str]
    method: Union[HttpMethod, str]
    body: str
    media_type: str
    headers: Tuple[Header, ...]
    timeout: float
    retry_on_failure: bool
    follow_redirects: bool
    proxy: Optional[ProxyConfig]
    proxy_username: Optional[str]
    proxy_password: Optional[str]
    client_options: Optional[ClientOptions]

    @property
    def method_name(self) -> str:
        return str(self.method).upper()

    @property
    def proxy_auth(self) -> Optional[Tuple[str, str]]:
        if self.proxy_username is None or self.proxy_password is None:
            return None
        return (self.proxy_username, self.proxy_password)

    def http_proxy(self) -> Optional[httpx.Proxy]:
        """Returns the proxy to route the request through, if any. Proxy
        credentials are sent as HTTP Basic authentication."""
        if self.proxy is None or self.proxy.url is None:
            return None
        return httpx.Proxy(self.proxy.url, auth=self.proxy_auth)

    def client_kwargs(self) -> Dict[str, Any]:
        """Returns the keyword arguments used to construct the httpx.Client
        executing the request."""
        transport: Dict[str, Any] = {"retries": 1 if self.retry_on_failure else 0}
        proxy = self.http_proxy()
        if proxy is not None:
            transport["proxy"] = proxy

        options: Dict[str, Any] = {
            "timeout": httpx.Timeout(self.timeout),
            "follow_redirects": self.follow_redirects,
            "transport": httpx.HTTPTransport(**transport),
        }
        if self.client_options is not None:
            self.client_options(options)
        return options

    def build_request(self, client: httpx.Client) -> httpx.Request:
        """Build the request to send with the client.

        Raises:
            InvalidMediaType: if the media type cannot be parsed.
        """
        media_type = MediaType.parse(self.media_type)
        method = self.method_name

        headers = [(h.key, h.value) for h in self.headers]
        content: Optional[bytes] = None
        if method not in BODYLESS_METHODS:
            content = media_type.encode(self.body)
            if not any(h.key.lower() == "content-type" for h in self.headers):
                headers.append(("Content-Type", str(media_type)))

        return client.build_request(
            method, cast(str, self.url), headers=headers, content=content
        )


@dataclass
class RequestConfig:
    """Mutable configuration of a RequestExecutor."""

    url: Optional[str] = None
    method: Union[HttpMethod, str] = HttpMethod.GET
    body: str = ""
    media_type: str = "text/plain"
    headers: List[Header] = field(default_factory=list)
    timeout: float = field(default_factory=default_timeout)
    retry_on_failure: bool = True
    follow_redirects: bool = True
    proxy: Optional[ProxyConfig] = None
    proxy_username: Optional[str] = None
    proxy_password: Optional[str] = None
    client_options: Optional[ClientOptions] = None

    def snapshot(self) -> RequestSnapshot:
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values["headers"] = tuple(self.headers)
        return RequestSnapshot(**values)


def declared_length(response: httpx.Response) -> int:
    """Returns the length of the decoded body declared by the server, or 0
    when it is unknown."""
    encoding = response.headers.get("Content-Encoding", "identity")
    if encoding.strip().lower() != "identity":
        # Content-Length counts encoded bytes, not what iter_bytes yields.
        return 0
    try:
        length = int(response.headers["Content-Length"])
    except (KeyError, ValueError):
        return 0
    return max(length, 0)


def _close(resource: Any, name: str):
    try:
        resource.close()
    except Exception:
        logger.warning("failed to close %s", name, exc_info=True)


def _read_text(response: httpx.Response) -> str:
    response.read()
    return response.text


def open_response(snapshot: RequestSnapshot) -> Tuple[httpx.Client, httpx.Response]:
    """Send the request described by the snapshot and return the client
    and the streaming response. The caller must close both.

    Raises:
        InvalidMediaType: if the media type cannot be parsed.
        TransportFailure: if the request could not be sent.
    """
    client = httpx.Client(**snapshot.client_kwargs())
    try:
        request = snapshot.build_request(client)
        logger.debug("sending %s %s", request.method, request.url)
        response = client.send(request, stream=True)
    except httpx.RequestError as e:
        _close(client, "http client")
        raise TransportFailure(f"{snapshot.method_name} {snapshot.url}: {e}") from e
    except BaseException:
        _close(client, "http client")
        raise

    logger.debug(
        "received %d response to %s %s",
        response.status_code,
        snapshot.method_name,
        snapshot.url,
    )
    return client, response


@contextmanager
def exchange(snapshot: RequestSnapshot) -> Iterator[httpx.Response]:
    """Context manager yielding the streaming response to the request
    described by the snapshot. The response and the client are closed on
    exit, and errors raised while reading the body are reported as
    TransportFailure."""
    client, response = open_response(snapshot)
    try:
        yield response
    except httpx.RequestError as e:
        raise TransportFailure(f"{snapshot.method_name} {snapshot.url}: {e}") from e
    finally:
        _close(response, "response")
        _close(client, "http client")


class BodyStream(io.RawIOBase):
    """Raw binary stream over a response body. Closing the stream, or
    reading it to the end, releases the response and its client."""

    def __init__(self, client: httpx.Client, response: httpx.Response):
        self._client = client
        self._response = response
        self._chunks = response.iter_bytes()
        self._pending = b""
        self._released = False

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        while not self._pending:
            try:
                chunk = next(self._chunks, None)
            except httpx.RequestError as e:
                self._release()
                raise TransportFailure(str(e)) from e
            if chunk is None:
                self._release()
                return 0
            self._pending = chunk

        n = min(len(buffer), len(self._pending))
        buffer[:n] = self._pending[:n]
        self._pending = self._pending[n:]
        return n

    def _release(self):
        if not self._released:
            self._released = True
            _close(self._response, "response")
            _close(self._client, "http client")

    def close(self):
        if not self.closed:
            self._release()
        super().close()


class RequestExecutor:
    """Issue HTTP requests and retrieve their results.

    The configuration lives in the config attribute and may be changed
    between calls; each call reads a snapshot of it.

    Example:

        request = RequestExecutor("http://localhost:8080/books")
        request.add_header("Accept", "application/json")
        prices = request.fetch_json_path("$.store.book[*].price")
    """

    def __init__(
        self,
        url: Optional[str] = None,
        method: Union[HttpMethod, str] = HttpMethod.GET,
        body: str = "",
        media_type: str = "text/plain",
        **options: Any,
    ):
        """Create a new executor.

        Args:
            url: The URL to request. Every accessor returns None while it is
                not set.

            method: The HTTP method.

            body: Text payload, sent with every method but GET and HEAD.

            media_type: Media type of the payload.

            options: Other RequestConfig fields (timeout, headers, proxy...).
        """
        self.config = RequestConfig(
            url=url, method=method, body=body, media_type=media_type, **options
        )

    def __repr__(self):
        return f"RequestExecutor({self.config.method} {self.config.url!r})"

    def add_header(self, key: str, value: str) -> bool:
        self.config.headers.append(Header(key, value))
        return True

    def add_headers(self, headers: Iterable[Union[Header, Tuple[str, str]]]):
        for header in headers:
            if not isinstance(header, Header):
                header = Header(*header)
            self.config.headers.append(header)

    def _fetch(
        self,
        consume: Callable[[httpx.Response], T],
        snapshot: Optional[RequestSnapshot] = None,
    ) -> Optional[T]:
        if snapshot is None:
            snapshot = self.config.snapshot()
        if snapshot.url is None:
            return None
        try:
            with exchange(snapshot) as response:
                return consume(response)
        except TransportFailure:
            logger.warning(
                "%s %s failed", snapshot.method_name, snapshot.url, exc_info=True
            )
            return None

    def connect(
        self, callback: Optional[Callable[[httpx.Response], None]] = None
    ) -> Optional[httpx.Response]:
        """Send the request and hand the response to the callback.

        The body is read before the callback runs, and the response is
        closed when it returns.
        """

        def consume(response: httpx.Response) -> httpx.Response:
            response.read()
            if callback is not None:
                callback(response)
            return response

        return self._fetch(consume)

    def fetch_text(self) -> Optional[str]:
        """Returns the body of the response decoded as text, or None if the
        URL is not set or the request failed."""
        return self._fetch(_read_text)

    def fetch_stream(self) -> Optional[BinaryIO]:
        """Returns a binary stream over the body of the response, or None if
        the URL is not set or the request failed.

        The caller must read the stream to the end or close it.
        """
        snapshot = self.config.snapshot()
        if snapshot.url is None:
            return None
        try:
            client, response = open_response(snapshot)
        except TransportFailure:
            logger.warning(
                "%s %s failed", snapshot.method_name, snapshot.url, exc_info=True
            )
            return None
        return cast(BinaryIO, io.BufferedReader(BodyStream(client, response)))

    def fetch_file(
        self,
        path: Union[str, os.PathLike],
        on_progress: Optional[ProgressCallback] = None,
    ) -> Optional[Path]:
        """Write the body of the response to a file.

        Args:
            path: The file to write.

            on_progress: Called with a DownloadProgress after each chunk of
                CHUNK_SIZE bytes is written.

        Returns:
            The path of the file, or None if the URL is not set or the
            request failed.
        """
        file = Path(path)

        def consume(response: httpx.Response) -> Path:
            total = declared_length(response)
            current = 0
            try:
                with open(file, "wb") as out:
                    for chunk in response.iter_bytes(CHUNK_SIZE):
                        out.write(chunk)
                        current += len(chunk)
                        if on_progress is not None:
                            on_progress(DownloadProgress(file, current, total))
            except BaseException:
                # no partial downloads left behind
                file.unlink(missing_ok=True)
                raise
            logger.debug("wrote %d bytes to %s", current, file)
            return file

        return self._fetch(consume)

    def fetch_json_path(
        self,
        path: str,
        debug: bool = False,
        expected_type: Optional[Type[T]] = None,
    ) -> Any:
        """Fetch the response as text and select a value in it with a JSON
        path expression (see httpcall.query).

        Returns:
            The selected value, or None if the URL is not set.

        Raises:
            EmptyResponseBody: if the request failed or the body is empty.
            QueryError: if the expression selects nothing or a value of the
                wrong type.
        """
        snapshot = self.config.snapshot()
        if snapshot.url is None:
            return None
        text = self._fetch(_read_text, snapshot)
        if not text:
            raise EmptyResponseBody(
                f"cannot analyze the response to {snapshot.url}: body is empty"
            )
        return read_json_path(text, path, debug=debug, expected_type=expected_type)

    def fetch_via_proxy(
        self,
        host: str,
        port: int,
        proxy_type: ProxyType = ProxyType.HTTP,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Optional[str]:
        """Route requests through a proxy, then fetch the response as text.

        The proxy settings are kept for subsequent calls. Credentials left
        to None keep their previous value.
        """
        self.config.proxy = ProxyConfig(host, port, proxy_type)
        if username is not None:
            self.config.proxy_username = username
        if password is not None:
            self.config.proxy_password = password
        return self.fetch_text()
