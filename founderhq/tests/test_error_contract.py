"""Tests for normalized error responses."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import auth_headers
from founderhq.core.errors import (
    AIPaymentRequiredError,
    AITimeoutError,
    AppError,
    ConflictError,
    NotFoundError,
    PermissionError,
    app_error_handler,
    unhandled_exception_handler,
)
from founderhq.core.middleware.request_id import RequestIdMiddleware


def _make_app(exc):
    app = FastAPI()
    app.add_middleware(RequestIdMiddleware)
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/boom")
    async def boom():
        raise exc

    return app


@pytest.mark.parametrize(
    "exc,status,code",
    [
        (NotFoundError("missing"), 404, "not_found"),
        (PermissionError("nope"), 403, "forbidden"),
        (ConflictError("dupe"), 409, "conflict"),
        (AITimeoutError("slow"), 504, "ai_timeout"),
        (AIPaymentRequiredError("credits"), 402, "payment_required"),
        (AppError("teapot", code="teapot", status_code=418), 418, "teapot"),
    ],
)
def test_app_errors_have_standard_shape(exc, status, code):
    client = TestClient(_make_app(exc))
    resp = client.get("/boom")
    assert resp.status_code == status
    body = resp.json()
    assert body["error"]["code"] == code
    assert body["error"]["message"] == exc.message
    assert body["detail"] == exc.message
    assert body["error"]["request_id"] == resp.headers.get("x-request-id")


def test_unhandled_errors_do_not_leak_message():
    client = TestClient(_make_app(RuntimeError("db password is hunter2")), raise_server_exceptions=False)
    resp = client.get("/boom")
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"]["code"] == "internal_error"
    assert "hunter2" not in resp.text


def test_validation_error_on_app(client):
    resp = client.post("/v1/workspace/docs", json={"title": "  "}, headers=auth_headers("alice"))
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["code"] == "validation_error"
    assert body["error"]["request_id"] == resp.headers.get("x-request-id")


def test_unknown_route_is_normalized(client):
    resp = client.get("/v1/nothing-here")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "not_found"
