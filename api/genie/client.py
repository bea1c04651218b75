import logging
from typing import Any, Optional

import httpx

from .auth import TokenProvider
from .errors import GenieError, SpaceNotConfiguredError, UpstreamError
from .models import (
    COMPLETED,
    FAILED,
    ConversationStarted,
    MessageResponse,
    MessageResult,
    MessageSent,
    QueryResultFetch,
)
from .results import shape_query_result
from .settings import GenieSettings


def _error_text(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("error") or error.get("message") or "Query failed")
    return str(error) if error else "Query failed"


class GenieClient:
    """
    One-shot calls against the Genie conversation API for a single space.

    Every call fetches a bearer token from the TokenProvider and raises
    UpstreamError with a generic message on failure; the upstream detail
    only goes to the log.
    """

    def __init__(
        self,
        settings: GenieSettings,
        token_provider: TokenProvider,
        http_client: httpx.AsyncClient,
    ):
        self.settings = settings
        self.token_provider = token_provider
        self.http = http_client

    def _space_path(self) -> str:
        if not self.settings.space_id:
            raise SpaceNotConfiguredError()
        return f"/api/2.0/genie/spaces/{self.settings.space_id}"

    async def _request(
        self,
        method: str,
        path: str,
        failure_message: str,
        json: Optional[dict] = None,
        log_level: int = logging.ERROR,
    ) -> httpx.Response:
        token = await self.token_provider.get_token(self.http)
        try:
            response = await self.http.request(
                method,
                f"{self.settings.host}{path}",
                json=json,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.settings.http_timeout_sec,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 401:
                # Revoked or rotated upstream; the next call fetches a new one.
                self.token_provider.invalidate()
            logging.log(
                log_level,
                "%s: HTTP %s %s",
                failure_message,
                e.response.status_code,
                e.response.text[:500],
            )
            raise UpstreamError(failure_message) from e
        except httpx.HTTPError as e:
            logging.log(log_level, "%s: %s", failure_message, e)
            raise UpstreamError(failure_message) from e
        return response

    async def _request_json(self, method: str, path: str, failure_message: str, **kwargs) -> dict:
        response = await self._request(method, path, failure_message, **kwargs)
        try:
            payload = response.json()
        except ValueError as e:
            logging.error("%s: response was not JSON", failure_message)
            raise UpstreamError(failure_message) from e
        if not isinstance(payload, dict):
            logging.error("%s: unexpected response body %r", failure_message, payload)
            raise UpstreamError(failure_message)
        return payload

    async def start_conversation(self, text: str) -> ConversationStarted:
        failure = "Failed to start conversation with Genie"
        payload = await self._request_json(
            "POST", f"{self._space_path()}/start-conversation", failure, json={"content": text}
        )
        try:
            return ConversationStarted(
                conversation_id=payload["conversation"]["id"],
                message_id=payload["message"]["id"],
                status=payload["message"].get("status"),
            )
        except (KeyError, TypeError, AttributeError) as e:
            logging.error("%s: malformed response %r", failure, payload)
            raise UpstreamError(failure) from e

    async def send_message(self, conversation_id: str, text: str) -> MessageSent:
        failure = "Failed to send message to Genie"
        payload = await self._request_json(
            "POST",
            f"{self._space_path()}/conversations/{conversation_id}/messages",
            failure,
            json={"content": text},
        )
        if not payload.get("id"):
            logging.error("%s: response missing message id", failure)
            raise UpstreamError(failure)
        return MessageSent(message_id=payload["id"], status=payload.get("status"))

    async def get_message_status(self, conversation_id: str, message_id: str) -> MessageResult:
        message_path = f"{self._space_path()}/conversations/{conversation_id}/messages/{message_id}"
        message = await self._request_json(
            "GET", message_path, "Failed to get message status from Genie"
        )

        result = MessageResult(status=message.get("status"), message_id=message.get("id"))
        attachments = message.get("attachments") or []

        if result.status == COMPLETED and attachments:
            attachment = attachments[0] or {}
            text = attachment.get("text") or {}
            query = attachment.get("query") or {}
            result.response = MessageResponse(
                text=text.get("value") or "",
                query=query.get("query") or None,
            )
            result_id = query.get("result_id")
            if result_id:
                fetch = await self._fetch_query_result(message_path, result_id)
                result.response.result_fetch = fetch
                result.response.data = fetch.data
        elif result.status == FAILED:
            result.error = _error_text(message.get("error"))

        return result

    async def _fetch_query_result(self, message_path: str, result_id: str) -> QueryResultFetch:
        try:
            payload = await self._request_json(
                "GET",
                f"{message_path}/query-result/{result_id}",
                "Failed to fetch query result data",
                log_level=logging.WARNING,
            )
        except GenieError as e:
            # Text and SQL are still worth returning without the table.
            logging.warning("Query result %s unavailable: %s", result_id, e)
            return QueryResultFetch(error=str(e))
        return QueryResultFetch(data=shape_query_result(payload))

    async def delete_conversation(self, conversation_id: str) -> dict:
        await self._request(
            "DELETE",
            f"{self._space_path()}/conversations/{conversation_id}",
            "Failed to delete conversation",
        )
        return {"success": True}
