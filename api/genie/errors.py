class GenieError(Exception):
    """Base class for every failure raised by the Genie proxy."""


class ConfigurationError(GenieError):
    """Required app settings are missing or unusable."""


class AuthConfigurationError(ConfigurationError):
    pass


class RequestValidationError(GenieError):
    """Caller input was malformed; maps to a 400."""


class UpstreamError(GenieError):
    """A call to the Genie API failed (non-2xx or network)."""


class AuthExchangeError(UpstreamError):
    pass


class QueryFailedError(GenieError):
    """The message reached FAILED or CANCELLED upstream."""

    def __init__(self, message: str, status: str = "FAILED"):
        super().__init__(message)
        self.status = status


class PollTimeoutError(GenieError):
    pass


class SpaceNotConfiguredError(ConfigurationError, UpstreamError):
    def __init__(self, message: str = "DATABRICKS_GENIE_SPACE_ID not configured"):
        super().__init__(message)
