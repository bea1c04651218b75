"""
Request handlers behind the Function App routes.

Each handler takes an azure.functions.HttpRequest and always returns a JSON
HttpResponse: 200 with the payload, 400 for bad input, 500 otherwise. The
routes in function_app.py only bind these to URLs.
"""

import asyncio
import json
import logging
import os
import threading
from typing import Any, Awaitable, Callable, Optional

import azure.functions as func
import httpx

from .auth import TokenProvider
from .client import GenieClient
from .errors import (
    ConfigurationError,
    GenieError,
    PollTimeoutError,
    QueryFailedError,
    RequestValidationError,
    UpstreamError,
)
from .poller import poll_for_completion
from .settings import GenieSettings

_provider_lock = threading.Lock()
_provider: Optional[TokenProvider] = None


def get_token_provider(settings: GenieSettings) -> TokenProvider:
    """Process-wide provider; rebuilt only when the auth settings change."""
    global _provider
    with _provider_lock:
        if _provider is None or _provider.settings.auth_key != settings.auth_key:
            _provider = TokenProvider(settings)
        return _provider


# ---------------------------
# CORS (restricted; SWA is usually same-origin)
# ---------------------------
def _allowed_origins() -> set[str]:
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "").strip()
    if not raw:
        # Safe dev defaults (no wildcard).
        return {"http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:4280"}
    return {o.strip() for o in raw.split(",") if o.strip()}


def cors_headers(req: func.HttpRequest) -> dict:
    origin = req.headers.get("Origin")
    if not origin:
        return {}
    if origin not in _allowed_origins():
        return {}
    return {
        "Access-Control-Allow-Origin": origin,
        "Vary": "Origin",
        "Access-Control-Allow-Methods": "GET,POST,DELETE,OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
        "Access-Control-Max-Age": "86400",
    }


def preflight(req: func.HttpRequest) -> func.HttpResponse:
    return func.HttpResponse(status_code=204, headers=cors_headers(req))


def json_response(req: func.HttpRequest, payload: Any, status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps(payload, default=str),
        status_code=status_code,
        mimetype="application/json",
        headers=cors_headers(req),
    )


def error_response(req: func.HttpRequest, message: str, status_code: int) -> func.HttpResponse:
    return json_response(req, {"error": message}, status_code=status_code)


# ---------------------------
# Input helpers
# ---------------------------
def _json_body(req: func.HttpRequest) -> dict:
    try:
        body = req.get_json()
    except ValueError:
        raise RequestValidationError("Request body must be valid JSON")
    if not isinstance(body, dict):
        raise RequestValidationError("Request body must be a JSON object")
    return body


def _require_message(body: dict, error: str = "Message is required") -> str:
    message = body.get("message")
    if not isinstance(message, str) or not message.strip():
        raise RequestValidationError(error)
    return message


def _query_param(req: func.HttpRequest, name: str) -> str:
    return (req.params.get(name) or "").strip()


# ---------------------------
# Dispatch
# ---------------------------
Work = Callable[[GenieClient, GenieSettings], Awaitable[Any]]


async def _dispatch(
    req: func.HttpRequest,
    name: str,
    work: Work,
    settings: Optional[GenieSettings] = None,
    provider: Optional[TokenProvider] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> func.HttpResponse:
    try:
        settings = settings or GenieSettings.from_env()
        provider = provider or get_token_provider(settings)
        async with httpx.AsyncClient(transport=transport, timeout=settings.http_timeout_sec) as http:
            payload = await work(GenieClient(settings, provider, http), settings)
    except RequestValidationError as e:
        logging.warning("%s rejected request: %s", name, e)
        return error_response(req, str(e), 400)
    except ConfigurationError as e:
        logging.error("%s configuration error: %s", name, e)
        return error_response(req, str(e), 500)
    except (QueryFailedError, PollTimeoutError) as e:
        logging.error("%s query did not complete: %s", name, e)
        return error_response(req, str(e), 500)
    except UpstreamError as e:
        logging.error("%s upstream failure: %s", name, e)
        return error_response(req, str(e), 500)
    except GenieError as e:
        logging.error("%s failed: %s", name, e)
        return error_response(req, str(e), 500)
    except Exception:
        logging.exception("%s failed", name)
        return error_response(req, "Internal server error", 500)

    return json_response(req, payload)


def _poll_kwargs(settings: GenieSettings, sleep) -> dict:
    return {
        "max_attempts": settings.poll_max_attempts,
        "interval_ms": settings.poll_interval_ms,
        "max_wait_ms": settings.poll_max_wait_ms,
        "sleep": sleep,
    }


async def start_chat(req: func.HttpRequest, sleep=asyncio.sleep, **deps) -> func.HttpResponse:
    logging.info("Starting new Genie conversation.")

    async def work(client: GenieClient, settings: GenieSettings) -> dict:
        message = _require_message(_json_body(req))
        started = await client.start_conversation(message)
        result = await poll_for_completion(
            client, started.conversation_id, started.message_id, **_poll_kwargs(settings, sleep)
        )
        return {
            "conversationId": started.conversation_id,
            "messageId": started.message_id,
            "response": result.response.to_dict() if result.response else None,
        }

    return await _dispatch(req, "start_chat", work, **deps)


async def continue_chat(req: func.HttpRequest, sleep=asyncio.sleep, **deps) -> func.HttpResponse:
    logging.info("Sending message to existing conversation.")

    async def work(client: GenieClient, settings: GenieSettings) -> dict:
        body = _json_body(req)
        conversation_id = body.get("conversationId")
        if not isinstance(conversation_id, str) or not conversation_id.strip() or not body.get("message"):
            raise RequestValidationError("conversationId and message are required")
        message = _require_message(body, "Message must be a non-empty string")

        sent = await client.send_message(conversation_id, message)
        result = await poll_for_completion(
            client, conversation_id, sent.message_id, **_poll_kwargs(settings, sleep)
        )
        return {
            "conversationId": conversation_id,
            "messageId": sent.message_id,
            "response": result.response.to_dict() if result.response else None,
        }

    return await _dispatch(req, "continue_chat", work, **deps)


async def get_status(req: func.HttpRequest, **deps) -> func.HttpResponse:
    logging.info("Getting message status.")

    async def work(client: GenieClient, settings: GenieSettings) -> dict:
        conversation_id = _query_param(req, "conversationId")
        message_id = _query_param(req, "messageId")
        if not conversation_id or not message_id:
            raise RequestValidationError("conversationId and messageId query parameters are required")
        result = await client.get_message_status(conversation_id, message_id)
        return result.to_dict()

    return await _dispatch(req, "get_status", work, **deps)


async def delete_conversation(req: func.HttpRequest, **deps) -> func.HttpResponse:
    logging.info("Deleting Genie conversation.")

    async def work(client: GenieClient, settings: GenieSettings) -> dict:
        conversation_id = _query_param(req, "conversationId")
        if not conversation_id:
            raise RequestValidationError("conversationId query parameter is required")
        return await client.delete_conversation(conversation_id)

    return await _dispatch(req, "delete_conversation", work, **deps)
