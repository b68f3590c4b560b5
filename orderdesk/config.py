import os
from dataclasses import dataclass, replace
from typing import Dict, List, Optional


@dataclass(frozen=True)
class AppConfig:
    database_url: str
    secret_key: str
    log_level: str
    currency: str
    admin_username: str
    admin_password: str


ALLOWED_HOT_KEYS = {"CURRENCY", "LOG_LEVEL"}
SENSITIVE_KEYS = {"DATABASE_URL", "SECRET_KEY", "ADMIN_PASSWORD"}
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


def validate_currency(value: Optional[str]) -> str:
    v = (value or "INR").strip().upper()
    if len(v) != 3:
        raise ValueError("Invalid currency code: expected ISO4217 length 3")
    return v


def validate_log_level(value: Optional[str]) -> str:
    v = (value or "INFO").strip().upper()
    if v not in LOG_LEVELS:
        raise ValueError(f"Invalid log level: {value}")
    return v


def load_env(environ: Optional[Dict[str, str]] = None) -> AppConfig:
    env = os.environ if environ is None else environ
    return AppConfig(
        database_url=env.get("DATABASE_URL", "sqlite:///data/app.db"),
        secret_key=env.get("SECRET_KEY", "dev_secret"),
        log_level=validate_log_level(env.get("LOG_LEVEL")),
        currency=validate_currency(env.get("CURRENCY")),
        admin_username=env.get("ADMIN_USERNAME", "admin"),
        admin_password=env.get("ADMIN_PASSWORD", "admin"),
    )


def refresh_non_sensitive(overrides: Dict[str, str], current: AppConfig) -> AppConfig:
    updates = {k: v for k, v in (overrides or {}).items() if k in ALLOWED_HOT_KEYS}
    return replace(
        current,
        currency=validate_currency(updates.get("CURRENCY", current.currency)),
        log_level=validate_log_level(updates.get("LOG_LEVEL", current.log_level)),
    )


def requires_restart(changed_keys: List[str]) -> bool:
    if not changed_keys:
        return False
    return any(k in SENSITIVE_KEYS for k in changed_keys)
