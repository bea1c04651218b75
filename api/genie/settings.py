import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import AuthConfigurationError

_TRUTHY = ("1", "true", "yes", "on")


def load_env_file(env_path: str) -> None:
    """Populate os.environ from a KEY=VALUE file. Existing values win."""
    try:
        with open(env_path, "r", encoding="utf-8") as f:
            raw = f.read()
    except OSError:
        return

    pattern = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*(=|:)\s*(.*?)\s*$")

    for line in raw.splitlines():
        s = line.strip()
        if not s or s.startswith("#"):
            continue

        m = pattern.match(s)
        if not m:
            continue
        key, _, value = m.groups()

        if not key or key in os.environ:
            continue

        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]
        os.environ[key] = value


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    try:
        value = int((env.get(name) or "").strip() or default)
    except ValueError:
        return default
    return value if value > 0 else default


def _normalize_host(host: str) -> str:
    h = host.strip().rstrip("/")
    if h and not h.startswith(("http://", "https://")):
        h = f"https://{h}"
    return h


@dataclass(frozen=True)
class GenieSettings:
    host: str = ""
    token: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    use_azure_identity: bool = False
    space_id: Optional[str] = None
    http_timeout_sec: float = 30.0
    poll_max_attempts: int = 60
    poll_interval_ms: int = 2000
    poll_max_wait_ms: int = 10000

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "GenieSettings":
        env = os.environ if env is None else env

        def opt(name: str) -> Optional[str]:
            return (env.get(name) or "").strip() or None

        return cls(
            host=_normalize_host(env.get("DATABRICKS_HOST") or ""),
            token=opt("DATABRICKS_TOKEN"),
            client_id=opt("DATABRICKS_CLIENT_ID"),
            client_secret=opt("DATABRICKS_CLIENT_SECRET"),
            use_azure_identity=(env.get("DATABRICKS_USE_AZURE_IDENTITY") or "").strip().lower() in _TRUTHY,
            space_id=opt("DATABRICKS_GENIE_SPACE_ID"),
            http_timeout_sec=float(_int_env(env, "GENIE_HTTP_TIMEOUT_SEC", 30)),
            poll_max_attempts=_int_env(env, "GENIE_POLL_MAX_ATTEMPTS", 60),
            poll_interval_ms=_int_env(env, "GENIE_POLL_INTERVAL_MS", 2000),
            poll_max_wait_ms=_int_env(env, "GENIE_POLL_MAX_WAIT_MS", 10000),
        )

    @property
    def auth_key(self) -> tuple:
        """The fields a TokenProvider depends on."""
        return (self.host, self.token, self.client_id, self.client_secret, self.use_azure_identity)

    @property
    def auth_mode(self) -> str:
        """
        Auth precedence:
          1) DATABRICKS_TOKEN (static personal access token)
          2) DATABRICKS_CLIENT_ID + DATABRICKS_CLIENT_SECRET (OAuth M2M)
          3) DATABRICKS_USE_AZURE_IDENTITY=1 (DefaultAzureCredential)
        """
        if self.token:
            return "token"
        if self.client_id and self.client_secret:
            return "oauth"
        if self.use_azure_identity:
            return "azure_identity"
        return ""

    def require_auth(self) -> None:
        if not self.host:
            raise AuthConfigurationError(
                "Missing Databricks configuration. Set DATABRICKS_HOST."
            )
        if not self.auth_mode:
            raise AuthConfigurationError(
                "Missing Databricks configuration. Set DATABRICKS_TOKEN, or "
                "DATABRICKS_CLIENT_ID + DATABRICKS_CLIENT_SECRET, or DATABRICKS_USE_AZURE_IDENTITY=1."
            )
