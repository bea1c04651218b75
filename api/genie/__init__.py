from .auth import TokenProvider
from .client import GenieClient
from .errors import (
    AuthConfigurationError,
    AuthExchangeError,
    ConfigurationError,
    GenieError,
    PollTimeoutError,
    QueryFailedError,
    RequestValidationError,
    SpaceNotConfiguredError,
    UpstreamError,
)
from .models import MessageResponse, MessageResult, QueryResultFetch
from .poller import poll_for_completion, poll_wait_ms
from .settings import GenieSettings, load_env_file

__all__ = [
    "AuthConfigurationError",
    "AuthExchangeError",
    "ConfigurationError",
    "GenieClient",
    "GenieError",
    "GenieSettings",
    "MessageResponse",
    "MessageResult",
    "PollTimeoutError",
    "QueryFailedError",
    "QueryResultFetch",
    "RequestValidationError",
    "SpaceNotConfiguredError",
    "TokenProvider",
    "UpstreamError",
    "load_env_file",
    "poll_for_completion",
    "poll_wait_ms",
]
