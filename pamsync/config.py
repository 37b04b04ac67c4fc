"""Configuration settings for pamsync."""

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 300
DEFAULT_REQUEST_TIMEOUT = 10.0


def get_pamsync_home() -> Path:
    """Return the pamsync data directory (``PAMSYNC_DATA_DIR`` or ~/.pamsync)."""
    override = os.environ.get("PAMSYNC_DATA_DIR")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".pamsync"


def validate_backend_url(url: Optional[str], *, allow_localhost_http: bool = True) -> Optional[str]:
    """Validate a backend URL for safe credential transmission.

    Rejects non-http/https schemes, URLs with no host, and remote HTTP
    endpoints (only localhost/127.0.0.1 are allowed over plaintext HTTP).

    Returns:
        The URL unchanged if valid, or ``None`` if rejected.
    """
    if not url:
        return None
    from urllib.parse import urlparse

    parsed = urlparse(url)
    if parsed.scheme not in {"https", "http"}:
        logger.warning("Invalid backend_url scheme; only http/https allowed.")
        return None
    if not parsed.netloc:
        logger.warning("Invalid backend_url; missing host.")
        return None
    if parsed.scheme == "http":
        if not allow_localhost_http:
            logger.warning("HTTP not allowed in this context.")
            return None
        host = parsed.hostname or ""
        if host not in {"localhost", "127.0.0.1"}:
            logger.warning("Refusing non-local http backend_url for security.")
            return None
    return url


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_prefix="PAMSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    data_dir: Path = get_pamsync_home()
    db_path: Optional[Path] = None  # defaults to <data_dir>/pamsync.db

    # Remote store
    backend_url: Optional[str] = None
    auth_token: Optional[str] = None
    user_id: Optional[str] = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    # Query cache
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS

    log_level: str = "WARNING"

    @property
    def database_path(self) -> Path:
        return self.db_path or (self.data_dir / "pamsync.db")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def load_credentials(settings: Optional[Settings] = None) -> Dict[str, Optional[str]]:
    """Resolve backend credentials.

    Priority:
    1. <data_dir>/credentials.json
    2. Settings / environment variables (PAMSYNC_BACKEND_URL, ...)
    3. <data_dir>/config.json (legacy)

    Returns:
        Dict with 'backend_url', 'auth_token' and 'user_id' (values may be None).
    """
    settings = settings or get_settings()
    backend_url = None
    auth_token = None
    user_id = None

    credentials_path = settings.data_dir / "credentials.json"
    if credentials_path.exists():
        try:
            with open(credentials_path) as f:
                creds = json.load(f)
            backend_url = creds.get("backend_url")
            # "token" is accepted for older credential files
            auth_token = creds.get("auth_token") or creds.get("token")
            user_id = creds.get("user_id")
        except (json.JSONDecodeError, OSError) as e:
            logger.debug(f"Failed to load credentials file: {e}")

    backend_url = backend_url or settings.backend_url
    auth_token = auth_token or settings.auth_token
    user_id = user_id or settings.user_id

    if not backend_url or not auth_token:
        config_path = settings.data_dir / "config.json"
        if config_path.exists():
            try:
                with open(config_path) as f:
                    config = json.load(f)
                backend_url = backend_url or config.get("backend_url")
                auth_token = auth_token or config.get("auth_token")
                user_id = user_id or config.get("user_id")
            except (json.JSONDecodeError, OSError) as e:
                logger.debug(f"Failed to load legacy config file: {e}")

    backend_url = validate_backend_url(backend_url)

    return {
        "backend_url": backend_url.rstrip("/") if backend_url else None,
        "auth_token": auth_token,
        "user_id": user_id,
    }
