from dataclasses import dataclass
from typing import Any, Optional

COMPLETED = "COMPLETED"
FAILED = "FAILED"
CANCELLED = "CANCELLED"
TERMINAL_STATUSES = frozenset({COMPLETED, FAILED, CANCELLED})


@dataclass
class ConversationStarted:
    conversation_id: str
    message_id: str
    status: Optional[str]

    def to_dict(self) -> dict:
        return {
            "conversationId": self.conversation_id,
            "messageId": self.message_id,
            "status": self.status,
        }


@dataclass
class MessageSent:
    message_id: str
    status: Optional[str]

    def to_dict(self) -> dict:
        return {"messageId": self.message_id, "status": self.status}


@dataclass
class QueryResultFetch:
    """Outcome of the follow-up query-result call: a payload, or the reason there is none."""

    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.data is not None


@dataclass
class MessageResponse:
    text: str = ""
    query: Optional[str] = None
    data: Any = None
    result_fetch: Optional[QueryResultFetch] = None

    def to_dict(self) -> dict:
        return {"text": self.text, "query": self.query, "data": self.data}


@dataclass
class MessageResult:
    status: Optional[str]
    message_id: Optional[str]
    response: Optional[MessageResponse] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> dict:
        out: dict = {"status": self.status, "messageId": self.message_id}
        if self.response is not None:
            out["response"] = self.response.to_dict()
        if self.error is not None:
            out["error"] = self.error
        return out
