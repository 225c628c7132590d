"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    # Priority 1: Read from /run/secrets
    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                logger.info("[settings] Loaded %s from /run/secrets", secret_name)
                return secret_value
        except OSError as e:
            logger.warning("[settings] Failed to read /run/secrets/%s: %s", secret_name, e)

    # Priority 2: Fallback to environment variable
    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


def _env_bool(var_name: str, default: bool = False) -> bool:
    raw = os.environ.get(var_name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in {"true", "1", "yes", "on"}:
        return True
    if value in {"false", "0", "no", "off"}:
        return False
    raise RuntimeError(f"Environment variable {var_name} must be a boolean, got {raw!r}.")


def _env_int(var_name: str, default: int, minimum: int = 0) -> int:
    raw = os.environ.get(var_name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise RuntimeError(f"Environment variable {var_name} must be an integer, got {raw!r}.")
    if value < minimum:
        raise RuntimeError(f"Environment variable {var_name} must be >= {minimum}, got {value}.")
    return value


@dataclass
class AppConfig:
    """Application configuration container."""
    # Mode
    demo_mode: bool = False

    # Remote user service (empty URL -> in-memory store)
    user_service_url: str = ""
    user_service_token: str = ""
    user_service_timeout: int = 5

    # Handler behaviour
    lenient_edits: bool = False
    list_default_limit: int = 20
    list_max_limit: int = 1000

    # Proxy
    trusted_proxy_ips: str = "127.0.0.1/32,::1/128"

    # Audit
    audit_log_dir: str = ".runtime/audit"
    audit_log_signing_key: str = ""

    # Logging
    log_level: str = "INFO"

    @property
    def uses_remote_store(self) -> bool:
        """True when users live behind a remote user service."""
        return bool(self.user_service_url)

    @property
    def trusted_proxy_list(self) -> list[str]:
        return [entry.strip() for entry in self.trusted_proxy_ips.split(",") if entry.strip()]


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    demo_mode = _env_bool("DEMO_MODE")

    user_service_url = os.environ.get("USER_SERVICE_URL", "").strip().rstrip("/")
    user_service_token = _load_secret_from_file("user_service_token", "USER_SERVICE_TOKEN") or ""
    if user_service_url and not user_service_token:
        logger.warning("[settings] USER_SERVICE_URL set without USER_SERVICE_TOKEN; requests will be unauthenticated")

    list_default_limit = _env_int("LIST_DEFAULT_LIMIT", 20, minimum=1)
    list_max_limit = _env_int("LIST_MAX_LIMIT", 1000, minimum=1)
    if list_default_limit > list_max_limit:
        raise RuntimeError("LIST_DEFAULT_LIMIT must not exceed LIST_MAX_LIMIT.")

    audit_log_signing_key = _load_secret_from_file("audit_log_signing_key", "AUDIT_LOG_SIGNING_KEY") or ""
    if not audit_log_signing_key and not demo_mode:
        logger.warning("[settings] AUDIT_LOG_SIGNING_KEY not set; audit events will be unsigned")

    log_level = os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"
    if log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise RuntimeError(f"LOG_LEVEL must be a standard logging level, got {log_level!r}.")

    cfg = AppConfig(
        demo_mode=demo_mode,
        user_service_url=user_service_url,
        user_service_token=user_service_token,
        user_service_timeout=_env_int("USER_SERVICE_TIMEOUT", 5, minimum=1),
        lenient_edits=_env_bool("LENIENT_EDITS"),
        list_default_limit=list_default_limit,
        list_max_limit=list_max_limit,
        trusted_proxy_ips=os.environ.get("TRUSTED_PROXY_IPS", "127.0.0.1/32,::1/128"),
        audit_log_dir=os.environ.get("AUDIT_LOG_DIR", ".runtime/audit"),
        audit_log_signing_key=audit_log_signing_key,
        log_level=log_level,
    )

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    store_label = user_service_url or "memory"
    logger.info("[settings] Mode=%s; store=%s; lenient_edits=%s", mode_label, store_label, cfg.lenient_edits)

    return cfg
