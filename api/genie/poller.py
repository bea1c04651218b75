import asyncio
import logging
from typing import Awaitable, Callable

from .client import GenieClient
from .errors import PollTimeoutError, QueryFailedError
from .models import COMPLETED, MessageResult

POLL_INTERVAL_MS = 2000
MAX_POLL_WAIT_MS = 10000
MAX_POLL_ATTEMPTS = 60

POLL_TIMEOUT_MESSAGE = "Query timeout - taking too long to complete"


def poll_wait_ms(attempt: int, interval_ms: int = POLL_INTERVAL_MS, max_wait_ms: int = MAX_POLL_WAIT_MS) -> int:
    """Wait after 0-indexed attempt n: 2s,2s,4s,4s,6s,6s,... capped at max_wait_ms."""
    return min(interval_ms * (attempt // 2 + 1), max_wait_ms)


async def poll_for_completion(
    client: GenieClient,
    conversation_id: str,
    message_id: str,
    max_attempts: int = MAX_POLL_ATTEMPTS,
    interval_ms: int = POLL_INTERVAL_MS,
    max_wait_ms: int = MAX_POLL_WAIT_MS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> MessageResult:
    status = None
    for attempt in range(max_attempts):
        result = await client.get_message_status(conversation_id, message_id)
        status = result.status

        if result.is_terminal:
            if status == COMPLETED:
                logging.info("Message %s completed after %d poll(s).", message_id, attempt + 1)
                return result
            raise QueryFailedError(result.error or f"Query {status.lower()}", status=status)

        # No point waiting after the last allowed poll.
        if attempt + 1 < max_attempts:
            await sleep(poll_wait_ms(attempt, interval_ms, max_wait_ms) / 1000)

    logging.warning("Message %s still %s after %d polls.", message_id, status, max_attempts)
    raise PollTimeoutError(POLL_TIMEOUT_MESSAGE)
