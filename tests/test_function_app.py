"""Smoke tests for the Function App route table."""

import functools

import pytest

import function_app
from conftest import make_request


@functools.cache  # FunctionApp.get_functions() may only be called once per app
def _functions():
    return {f.get_function_name(): f for f in function_app.app.get_functions()}


def test_routes_are_registered():
    functions = _functions()

    assert set(functions) == {"start_chat", "continue_chat", "get_status", "delete_conversation"}
    assert functions["start_chat"].get_trigger().route == "start"
    assert functions["continue_chat"].get_trigger().route == "continue"
    assert functions["get_status"].get_trigger().route == "status"
    assert functions["delete_conversation"].get_trigger().route == "conversation"


@pytest.mark.asyncio
async def test_options_is_answered_without_upstream(monkeypatch):
    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "https://example.org")
    handler = _functions()["start_chat"].get_user_function()

    resp = await handler(make_request(method="OPTIONS", headers={"Origin": "https://example.org"}))

    assert resp.status_code == 204
    assert resp.headers["Access-Control-Allow-Origin"] == "https://example.org"


@pytest.mark.asyncio
async def test_status_route_validates_input():
    handler = _functions()["get_status"].get_user_function()

    resp = await handler(make_request(method="GET", url="/api/status"))

    assert resp.status_code == 400
