import pytest
from werkzeug import Response
from werkzeug.test import EnvironBuilder

from httpcall.mock import (
    DEFAULT_BODY,
    ComputedResponse,
    MockResponder,
    StaticResponse,
    as_strategy,
)


def make_request(path="/", method="GET", data=None):
    return EnvironBuilder(path=path, method=method, data=data).get_request()


def test_static_response():
    strategy = StaticResponse("pong", status=201, headers=(("X-Test", "1"),))
    response = strategy.respond(MockResponder(), make_request())
    assert response.status_code == 201
    assert response.get_data() == b"pong"
    assert response.headers["X-Test"] == "1"
    assert response.content_type == "text/plain"


def test_computed_response():
    def echo(responder, request):
        return f"{request.method} {request.path}"

    response = ComputedResponse(echo).respond(MockResponder(), make_request("/a", "PUT"))
    assert response.get_data(as_text=True) == "PUT /a"


def test_computed_response_passes_responder():
    responder = MockResponder()
    seen = []

    def remember(server, request):
        seen.append(server)
        return Response("ok", status=202)

    response = ComputedResponse(remember).respond(responder, make_request())
    assert response.status_code == 202
    assert seen == [responder]


def test_as_strategy():
    static = StaticResponse("a")
    assert as_strategy(static) is static
    assert as_strategy("b") == StaticResponse("b")
    assert as_strategy(b"c") == StaticResponse(b"c")

    def handler(server, request):
        return "d"

    assert as_strategy(handler) == ComputedResponse(handler)


def test_as_strategy_from_response():
    strategy = as_strategy(
        Response("{}", status=404, headers={"X-Test": "1"}, content_type="application/json")
    )
    assert strategy == StaticResponse(
        b"{}", status=404, headers=(("X-Test", "1"),), content_type="application/json"
    )


def test_as_strategy_rejects_unsupported_handlers():
    with pytest.raises(TypeError):
        as_strategy(42)  # type: ignore[arg-type]


def test_default_handler():
    responder = MockResponder()
    response = responder.handler.respond(responder, make_request())
    assert response.status_code == 200
    assert response.get_data(as_text=True) == DEFAULT_BODY == "Hello World"


def test_stop_never_started():
    responder = MockResponder()
    assert responder.stop() is responder
    assert responder.stop() is responder
    assert not responder.is_running()


def test_set_handler_without_server():
    responder = MockResponder(port=8123, host="localhost")
    assert responder.set_handler("pong") is responder
    assert responder.handler == StaticResponse("pong")
    assert not responder.is_running()
    assert responder.url == "http://localhost:8123"
    assert responder.url_for("a/b") == "http://localhost:8123/a/b"


def test_clear_without_server():
    responder = MockResponder()
    responder.requests.append(make_request())
    responder.clear()
    assert responder.requests == []
