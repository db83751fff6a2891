import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from dailydoodle.core.middleware.request_id import RequestIdMiddleware


def _make_app():
    app = FastAPI()
    app.add_middleware(RequestIdMiddleware)

    @app.get("/")
    async def root(request: Request):
        return {"request_id": getattr(request.state, "request_id", None)}

    return app


def test_generates_request_id_when_missing():
    app = _make_app()
    client = TestClient(app)

    resp = client.get("/")
    assert resp.status_code == 200
    rid_header = resp.headers.get("x-request-id")
    body_rid = resp.json().get("request_id")

    assert rid_header
    assert body_rid
    assert rid_header == body_rid


def test_echoes_provided_request_id():
    app = _make_app()
    client = TestClient(app)

    provided = "test-rid-123"
    resp = client.get("/", headers={"X-Request-Id": provided})

    assert resp.status_code == 200
    assert resp.headers.get("x-request-id") == provided
    assert resp.json().get("request_id") == provided


def test_malformed_request_id_is_replaced():
    client = TestClient(_make_app())

    resp = client.get("/", headers={"X-Request-Id": "bad id\twith spaces"})

    rid = resp.headers.get("x-request-id")
    assert rid != "bad id\twith spaces"
    assert len(rid) == 36
    assert resp.json().get("request_id") == rid


def test_server_errors_logged_at_error_level(caplog):
    app = FastAPI()
    app.add_middleware(RequestIdMiddleware)

    @app.get("/down")
    async def down():
        return JSONResponse({"detail": "down"}, status_code=503)

    with caplog.at_level(logging.INFO, logger="dailydoodle"):
        TestClient(app).get("/down")

    completed = [r for r in caplog.records if r.getMessage() == "request.complete"]
    assert completed[-1].levelno == logging.ERROR
    assert completed[-1].status == 503
