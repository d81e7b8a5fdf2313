"""Tests for the request logging middleware."""

import logging

import pytest
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.responses import PlainTextResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from webex_mcp.core.logging import request_id_ctx
from webex_mcp.middleware import RequestLoggingMiddleware


async def echo_request_id(request):
    return PlainTextResponse(request_id_ctx.get() or "")


async def explode(request):
    raise RuntimeError("boom")


@pytest.fixture
def client():
    app = Starlette(
        routes=[Route("/id", echo_request_id), Route("/explode", explode)],
        middleware=[Middleware(RequestLoggingMiddleware)],
    )
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


def test_sets_request_id(client):
    first = client.get("/id").text
    second = client.get("/id").text

    assert len(first) == 8
    assert first != second
    assert request_id_ctx.get() is None


def test_redacts_bearer_token(client, caplog):
    secret = "a" * 10 + "b" * 54

    with caplog.at_level(logging.INFO, logger="webex_mcp.middleware.logging"):
        client.get("/id", headers={"Authorization": f"Bearer {secret}"})

    assert secret not in caplog.text
    assert "auth=Bearer aaaaaaaa..." in caplog.text
    assert "GET /id -> 200" in caplog.text


def test_logs_unhandled_errors(client, caplog):
    with caplog.at_level(logging.INFO, logger="webex_mcp.middleware.logging"):
        response = client.get("/explode")

    assert response.status_code == 500
    assert "GET /explode raised" in caplog.text
