"""Access-control configuration helpers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple
import math
import os


@dataclass(frozen=True)
class AccessConfig:
    """Configuration for the API process and its access-control engine."""

    db_host: str
    db_port: int
    db_name: str
    db_user: str
    db_password: str
    db_connect_timeout: int
    jwt_secret_key: str
    jwt_algorithm: str
    jwt_exp_minutes: int
    session_cookie_name: str
    session_secret_key: str
    upgrade_url: str
    billing_url: str
    sign_in_url: str
    cors_origins: Tuple[str, ...] = field(default_factory=tuple)
    log_level: str = "INFO"

    @property
    def db_settings(self) -> dict:
        return dict(
            host=self.db_host,
            port=self.db_port,
            dbname=self.db_name,
            user=self.db_user,
            password=self.db_password,
            connect_timeout=self.db_connect_timeout,
        )


def _to_int(value: Optional[str], *, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected integer value, got {value!r}") from exc


def _parse_connect_timeout(value: Optional[str]) -> int:
    if value is None or value == "":
        return 5
    try:
        timeout = float(value)
    except ValueError as exc:
        raise ValueError(f"DB_CONNECT_TIMEOUT must be a number, got {value!r}") from exc
    if timeout < 0:
        raise ValueError("DB_CONNECT_TIMEOUT must be non-negative")
    return int(math.ceil(timeout))


def _to_origins(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return ("http://localhost:5173",)
    return tuple(origin.strip() for origin in value.split(",") if origin.strip())


def load_access_config(env: Optional[Mapping[str, str]] = None) -> AccessConfig:
    """Load :class:`AccessConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    jwt_secret_key = env_mapping.get("JWT_SECRET_KEY", "dev-secret-change-me")

    return AccessConfig(
        db_host=env_mapping.get("DB_HOST", "127.0.0.1"),
        db_port=_to_int(env_mapping.get("DB_PORT"), default=5432),
        db_name=env_mapping.get("DB_NAME", "access_db"),
        db_user=env_mapping.get("DB_USER", "access_user"),
        db_password=env_mapping.get("DB_PASSWORD", "access_pass"),
        db_connect_timeout=_parse_connect_timeout(env_mapping.get("DB_CONNECT_TIMEOUT")),
        jwt_secret_key=jwt_secret_key,
        jwt_algorithm=env_mapping.get("JWT_ALGORITHM", "HS256"),
        jwt_exp_minutes=_to_int(env_mapping.get("JWT_EXP_MINUTES"), default=60 * 24 * 7),
        session_cookie_name=env_mapping.get("SESSION_COOKIE_NAME", "session"),
        session_secret_key=env_mapping.get("SESSION_SECRET_KEY") or jwt_secret_key,
        upgrade_url=env_mapping.get("SUBSCRIPTION_UPGRADE_URL", "/subscription/upgrade"),
        billing_url=env_mapping.get("SUBSCRIPTION_BILLING_URL", "/subscription/billing"),
        sign_in_url=env_mapping.get("SIGN_IN_URL", "/auth/sign-in"),
        cors_origins=_to_origins(env_mapping.get("CORS_ORIGINS")),
        log_level=(env_mapping.get("LOG_LEVEL") or "INFO").strip().upper(),
    )


__all__ = ["AccessConfig", "load_access_config"]
