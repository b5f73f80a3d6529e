"""In-process mock HTTP server answering with programmable responses.

A MockResponder stands in for a real server in tests. Every incoming request
is answered by the current response strategy, which is either a
StaticResponse (the same response every time) or a ComputedResponse (a
function of the responder and the request)::

    with MockResponder().start(StaticResponse("pong")) as mock:
        assert RequestExecutor(mock.url).fetch_text() == "pong"
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple, Union

from pytest_httpserver import HTTPServer
from typing_extensions import TypeAlias
from werkzeug import Request, Response

from httpcall.config import default_mock_host

logger = logging.getLogger(__name__)

DEFAULT_BODY = "Hello World"

# Headers computed by werkzeug from the body of a response.
_DERIVED_HEADERS = frozenset({"content-type", "content-length"})


@dataclass(frozen=True)
class StaticResponse:
    """Answer every request with the same response."""

    body: Union[str, bytes] = ""
    status: int = 200
    headers: Tuple[Tuple[str, str], ...] = ()
    content_type: str = "text/plain"

    @classmethod
    def from_response(cls, response: Response) -> "StaticResponse":
        headers = tuple(
            (k, v) for k, v in response.headers.items() if k.lower() not in _DERIVED_HEADERS
        )
        return cls(
            body=response.get_data(),
            status=response.status_code,
            headers=headers,
            content_type=response.content_type or "text/plain",
        )

    def respond(self, responder: "MockResponder", request: Request) -> Response:
        return Response(
            self.body,
            status=self.status,
            headers=list(self.headers),
            content_type=self.content_type,
        )


ResponseFunction: TypeAlias = Callable[
    ["MockResponder", Request], Union[Response, StaticResponse, str, bytes]
]


@dataclass(frozen=True)
class ComputedResponse:
    """Answer each request with the result of a function."""

    function: ResponseFunction

    def respond(self, responder: "MockResponder", request: Request) -> Response:
        result = self.function(responder, request)
        if isinstance(result, Response):
            return result
        return as_strategy(result).respond(responder, request)


ResponseStrategy: TypeAlias = Union[StaticResponse, ComputedResponse]
Handler: TypeAlias = Union[ResponseStrategy, Response, str, bytes, ResponseFunction]

DEFAULT_RESPONSE = StaticResponse(DEFAULT_BODY)


def as_strategy(handler: Handler) -> ResponseStrategy:
    """Normalize a handler into a response strategy.

    Raises:
        TypeError: if the handler is of an unsupported type.
    """
    match handler:
        case StaticResponse() | ComputedResponse():
            return handler
        case Response():
            return StaticResponse.from_response(handler)
        case str() | bytes():
            return StaticResponse(handler)
    if callable(handler):
        return ComputedResponse(handler)
    raise TypeError(f"unsupported mock handler: {handler!r}")


class _Server(HTTPServer):
    def __init__(self, responder: "MockResponder", host: str, port: int):
        super().__init__(host=host, port=port, threaded=True)
        self._responder = responder

    def dispatch(self, request: Request) -> Response:
        return self._responder._dispatch(request)


class MockResponder:
    """Mock HTTP server.

    Args:
        port: Port to bind to, or 0 to bind to any available port. The port
            picked on the first start is kept across restarts.

        host: Hostname to bind to. Uses the value of the HTTPCALL_MOCK_HOST
            environment variable by default, or 127.0.0.1.
    """

    def __init__(self, port: int = 0, host: Optional[str] = None):
        self.host = host or default_mock_host()
        self.port = port
        self.requests: List[Request] = []
        self._handler: ResponseStrategy = DEFAULT_RESPONSE
        self._lock = threading.Lock()
        self._server: Optional[_Server] = None

    def __repr__(self):
        state = "running" if self.is_running() else "stopped"
        return f"MockResponder({self.host}:{self.port}, {state})"

    @property
    def url(self) -> str:
        """Returns the URL of the server."""
        return f"http://{self.host}:{self.port}"

    def url_for(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        return self.url + path

    @property
    def handler(self) -> ResponseStrategy:
        with self._lock:
            return self._handler

    def is_running(self) -> bool:
        return self._server is not None

    def start(self, handler: Optional[Handler] = None) -> "MockResponder":
        """Start the server, stopping the previous instance first.

        Args:
            handler: Response strategy to install. Keeps the current one
                when None.
        """
        self.stop()
        if handler is not None:
            self.set_handler(handler)

        server = _Server(self, self.host, self.port)
        server.start()
        self.port = server.port
        self._server = server
        logger.debug("mock responder listening on %s", self.url)
        return self

    def set_handler(self, handler: Handler) -> "MockResponder":
        """Replace the response strategy. Takes effect on the next request,
        whether the server is running or not."""
        strategy = as_strategy(handler)
        with self._lock:
            self._handler = strategy
        return self

    def stop(self) -> "MockResponder":
        """Stop the server and release its socket. Does nothing if the
        server is not running."""
        server, self._server = self._server, None
        if server is None:
            return self

        wsgi_server = server.server
        if server.is_running():
            server.stop()
        if wsgi_server is not None:
            wsgi_server.server_close()
        logger.debug("mock responder on %s:%d stopped", self.host, self.port)
        return self

    def clear(self):
        """Forget the recorded requests, including the server log."""
        with self._lock:
            self.requests.clear()
            if self._server is not None:
                self._server.clear_log()

    def _dispatch(self, request: Request) -> Response:
        with self._lock:
            handler = self._handler
            self.requests.append(request)

        try:
            return handler.respond(self, request)
        except Exception:
            logger.exception(
                "mock handler failed on %s %s", request.method, request.path
            )
            return Response("mock handler failed", status=500, content_type="text/plain")

    def __enter__(self):
        if not self.is_running():
            self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
