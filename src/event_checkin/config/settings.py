"""Client configuration: shared secret, backend URL and request timeout."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

from dotenv import load_dotenv

from ..errors import ConfigurationError
from ..utils.logger import debug_detail

DEFAULT_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True)
class ClientConfig:
    """Immutable settings handed to the transport at construction."""

    secret: bytes
    base_url: str
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if not self.secret:
            raise ConfigurationError("APP_SECRET is not configured")
        if not self.base_url:
            raise ConfigurationError("API_BASE_URL is not configured")
        if self.timeout <= 0:
            raise ConfigurationError(f"Request timeout must be positive, got {self.timeout}")

    @classmethod
    def from_values(
        cls,
        secret: Optional[str],
        base_url: Optional[str],
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> "ClientConfig":
        secret = (secret or "").strip()
        base_url = (base_url or "").strip()
        return cls(
            secret=secret.encode("utf-8"),
            base_url=force_https(base_url) if base_url else "",
            timeout=timeout,
        )

    def url_for(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"


def force_https(url: str) -> str:
    """Rewrite ``url`` to the https scheme and drop a trailing slash."""
    url = url.strip()
    if "://" not in url:
        url = f"https://{url}"
    parts = urlsplit(url)
    if not parts.netloc:
        raise ConfigurationError(f"API_BASE_URL has no host: {url!r}")
    path = parts.path.rstrip("/")
    return urlunsplit(("https", parts.netloc, path, parts.query, parts.fragment))


def _parse_timeout(raw: Optional[str]) -> float:
    if raw is None or not raw.strip():
        return DEFAULT_TIMEOUT_SECONDS
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"CHECKIN_TIMEOUT must be a number of seconds, got {raw!r}") from exc


def load_config(env_file: Optional[str] = None) -> ClientConfig:
    """Populate the environment from ``env_file`` and build a :class:`ClientConfig`.

    Values already present in the process environment take precedence over
    the file.
    """
    path = env_file or os.getenv("ENV_FILE", ".env")
    if os.path.exists(path):
        load_dotenv(dotenv_path=path, override=False)
        debug_detail(f"Loaded environment from {path}")
    else:
        debug_detail(f"No env file at {path}; using process environment only")

    config = ClientConfig.from_values(
        os.getenv("APP_SECRET"),
        os.getenv("API_BASE_URL"),
        timeout=_parse_timeout(os.getenv("CHECKIN_TIMEOUT")),
    )
    debug_detail(f"Backend base URL: {config.base_url} (timeout {config.timeout:g}s)")
    return config
