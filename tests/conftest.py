"""
Root conftest.py: env defaults, a fake Genie upstream, shared fixtures.

Nothing here talks to Databricks; every upstream call goes through an
httpx.MockTransport backed by FakeGenie.
"""

import json
import os

import azure.functions as func
import httpx
import pytest

from genie.settings import GenieSettings

HOST = "https://genie.test"
SPACE = "space-1"
SPACE_PATH = f"/api/2.0/genie/spaces/{SPACE}"


@pytest.fixture(autouse=True)
def clear_genie_env(monkeypatch):
    """Keep real app settings from leaking into tests."""
    for key in list(os.environ):
        if key.startswith(("DATABRICKS_", "GENIE_")) or key == "CORS_ALLOWED_ORIGINS":
            monkeypatch.delenv(key, raising=False)


class FakeGenie:
    """Routes (method, path) to queued responses; the last one repeats."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, method, path, *responses):
        self.routes.setdefault((method, path), []).extend(responses)
        return self

    def calls(self, method=None, path=None):
        return [
            r for r in self.requests
            if (method is None or r.method == method) and (path is None or r.url.path == path)
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"error_code": "NOT_FOUND", "message": "no route"})
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_genie():
    return FakeGenie()


@pytest.fixture
def settings():
    return GenieSettings(host=HOST, token="static-token", space_id=SPACE)


@pytest.fixture
def sleeps():
    """Recording stand-in for asyncio.sleep."""
    recorded = []

    async def _sleep(seconds):
        recorded.append(seconds)

    _sleep.recorded = recorded
    return _sleep


def message_payload(status, message_id="msg-1", attachments=None, error=None):
    payload = {"id": message_id, "status": status}
    if attachments is not None:
        payload["attachments"] = attachments
    if error is not None:
        payload["error"] = error
    return payload


def make_request(method="POST", url="/api/start", body=None, params=None, headers=None):
    raw = body if isinstance(body, bytes) else (json.dumps(body).encode() if body is not None else b"")
    return func.HttpRequest(
        method=method,
        url=url,
        body=raw,
        params=params or {},
        headers=headers or {},
    )
