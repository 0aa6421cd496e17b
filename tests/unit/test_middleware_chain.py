import pytest
from fastapi import FastAPI, Response
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from api.middleware.chain import ChainMiddleware, ServerContext, create_middleware_chain
from core.utils.exceptions import ValidationError
from tests.mocks.mock_stockbit_api import make_request


def recording(name, trace):
    async def middleware(request, context, call_next):
        trace.append(f"{name}:before")
        response = await call_next()
        trace.append(f"{name}:after")
        return response

    return middleware


async def ok_handler(request, context):
    return JSONResponse({"ok": True})


@pytest.mark.asyncio
async def test_middlewares_run_outermost_first_and_unwind_in_reverse():
    trace = []

    async def handler(request, context):
        trace.append("handler")
        return Response("done")

    chain = create_middleware_chain([recording("a", trace), recording("b", trace)], handler)
    response = await chain(make_request(), ServerContext())

    assert response.body == b"done"
    assert trace == ["a:before", "b:before", "handler", "b:after", "a:after"]


@pytest.mark.asyncio
async def test_short_circuit_skips_downstream():
    trace = []

    async def gate(request, context, call_next):
        return Response("blocked", status_code=403)

    chain = create_middleware_chain([gate, recording("inner", trace)], ok_handler)
    response = await chain(make_request(), ServerContext())

    assert response.status_code == 403
    assert trace == []


@pytest.mark.asyncio
async def test_middleware_can_post_process_response():
    async def stamp(request, context, call_next):
        response = await call_next()
        response.headers["x-stamped"] = "yes"
        return response

    chain = create_middleware_chain([stamp], ok_handler)
    response = await chain(make_request(), ServerContext())

    assert response.headers["x-stamped"] == "yes"


@pytest.mark.asyncio
async def test_empty_chain_calls_handler_directly():
    chain = create_middleware_chain([], ok_handler)
    response = await chain(make_request(), ServerContext())

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_chain_is_reusable_across_requests():
    trace = []
    chain = create_middleware_chain([recording("a", trace)], ok_handler)

    await chain(make_request(), ServerContext())
    await chain(make_request(), ServerContext())

    assert trace == ["a:before", "a:after", "a:before", "a:after"]


@pytest.mark.asyncio
async def test_errors_propagate_out_of_chain():
    async def failing(request, context, call_next):
        raise ValidationError("bad input")

    chain = create_middleware_chain([failing], ok_handler)

    with pytest.raises(ValidationError):
        await chain(make_request(), ServerContext())


def test_request_ip_prefers_forwarded_headers():
    context = ServerContext()

    assert context.request_ip(make_request(headers={"X-Forwarded-For": "1.1.1.1, 2.2.2.2"})) == "1.1.1.1"
    assert context.request_ip(make_request(headers={"X-Real-IP": " 3.3.3.3 "})) == "3.3.3.3"
    assert context.request_ip(make_request()) == "10.0.0.1"
    assert context.request_ip(make_request(client=None)) == "unknown"


def test_request_ip_ignores_forwarded_headers_when_untrusted():
    context = ServerContext(trust_forwarded_headers=False)

    assert context.request_ip(make_request(headers={"X-Forwarded-For": "1.1.1.1"})) == "10.0.0.1"


def _app_with_chain(middlewares):
    app = FastAPI()
    app.add_middleware(ChainMiddleware, middlewares=middlewares)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/api/v1/items")
    def items():
        return {"items": []}

    return app


def test_chain_middleware_translates_errors_into_json():
    async def failing(request, context, call_next):
        raise ValidationError("Broker code is invalid")

    client = TestClient(_app_with_chain([failing]))
    response = client.get("/api/v1/items")

    assert response.status_code == 400
    assert response.json() == {"error": "ValidationError", "message": "Broker code is invalid"}


def test_chain_middleware_hides_unexpected_errors():
    async def crashing(request, context, call_next):
        raise RuntimeError("database password is hunter2")

    client = TestClient(_app_with_chain([crashing]))
    response = client.get("/api/v1/items")

    assert response.status_code == 500
    assert response.json() == {"error": "InternalServerError", "message": "An unexpected error occurred"}


def test_chain_middleware_bypasses_health_path():
    async def blocking(request, context, call_next):
        return Response(status_code=403)

    client = TestClient(_app_with_chain([blocking]))

    assert client.get("/health").status_code == 200
    assert client.get("/api/v1/items").status_code == 403
