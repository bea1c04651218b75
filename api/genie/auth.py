import asyncio
import logging
import time
from typing import Callable, Optional

import httpx
from azure.core.credentials import AccessToken
from azure.identity import DefaultAzureCredential

from .errors import AuthExchangeError
from .settings import GenieSettings

# Refresh this long before the upstream expiry.
REFRESH_BUFFER_SEC = 5 * 60
DEFAULT_TOKEN_LIFETIME_SEC = 3600

# AzureDatabricks first-party application id.
DATABRICKS_ENTRA_SCOPE = "2ff814a6-3304-4ab8-85cb-cd0e6f879c1d/.default"


class TokenProvider:
    """
    Owns the bearer credential for the Genie API.

    A static token is handed out as-is. OAuth and Entra tokens are cached
    and refreshed once they are within REFRESH_BUFFER_SEC of expiry; the
    refresh runs under a lock so concurrent callers share one exchange.
    """

    def __init__(
        self,
        settings: GenieSettings,
        clock: Callable[[], float] = time.time,
        azure_credential=None,
    ):
        self.settings = settings
        self._clock = clock
        self._azure_credential = azure_credential
        self._cached: Optional[AccessToken] = None
        self._lock = asyncio.Lock()

    def _is_fresh(self) -> bool:
        return self._cached is not None and self._clock() < self._cached.expires_on - REFRESH_BUFFER_SEC

    async def get_token(self, client: httpx.AsyncClient) -> str:
        self.settings.require_auth()

        if self.settings.auth_mode == "token":
            return self.settings.token

        if self._is_fresh():
            return self._cached.token

        async with self._lock:
            # Another caller may have refreshed while we waited.
            if self._is_fresh():
                return self._cached.token
            if self.settings.auth_mode == "oauth":
                self._cached = await self._exchange_client_credentials(client)
            else:
                self._cached = await self._azure_identity_token()
            return self._cached.token

    def invalidate(self) -> None:
        self._cached = None

    async def _exchange_client_credentials(self, client: httpx.AsyncClient) -> AccessToken:
        url = f"{self.settings.host}/oidc/v1/token"
        logging.info("Refreshing Databricks OAuth token.")
        try:
            response = await client.post(
                url,
                data={"grant_type": "client_credentials", "scope": "all-apis"},
                auth=(self.settings.client_id, self.settings.client_secret),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            logging.error(
                "OAuth token exchange failed: %s %s",
                e.response.status_code,
                e.response.text[:500],
            )
            raise AuthExchangeError("Failed to obtain Databricks OAuth token") from e
        except (httpx.HTTPError, ValueError) as e:
            logging.error("OAuth token exchange failed: %s", e)
            raise AuthExchangeError("Failed to obtain Databricks OAuth token") from e

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            logging.error("OAuth token response did not include access_token.")
            raise AuthExchangeError("Failed to obtain Databricks OAuth token")

        try:
            lifetime = int(payload.get("expires_in") or DEFAULT_TOKEN_LIFETIME_SEC)
        except (TypeError, ValueError):
            lifetime = DEFAULT_TOKEN_LIFETIME_SEC
        return AccessToken(token, int(self._clock()) + lifetime)

    async def _azure_identity_token(self) -> AccessToken:
        if self._azure_credential is None:
            self._azure_credential = DefaultAzureCredential()
        logging.info("Requesting Entra token for Databricks.")
        try:
            return await asyncio.to_thread(self._azure_credential.get_token, DATABRICKS_ENTRA_SCOPE)
        except Exception as e:
            logging.error("Entra token request failed: %s", e)
            raise AuthExchangeError("Failed to obtain Entra token for Databricks") from e
