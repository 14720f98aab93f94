"""Centralized configuration for the Clamp assistant service.

Secret resolution order (per variable):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

The SSM paths follow the convention ``/clamp/<VARIABLE_NAME>``.

Settings are read once into a frozen :class:`ClampSettings` and handed to
the components that need them; nothing else in the package reads the
environment.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Defaults that mirror the long-standing production values.
DEFAULT_MESSAGE_COUNT_CAP = 50
DEFAULT_TOOL_ITERATION_CAP = 8
DEFAULT_PADDING = 4


# ── Secret resolution ────────────────────────────────────────────────

def _get_ssm_parameter(name: str) -> str | None:
    """Fetch a SecureString from SSM Parameter Store.

    Returns ``None`` if the parameter does not exist or boto3 is
    unavailable.  Errors are logged but never raised so that local-dev
    fallback still works.
    """
    try:
        import boto3  # noqa: PLC0415 (lazy import, boto3 is only needed on AWS)

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"/clamp/{name}", WithDecryption=True)
        return resp["Parameter"]["Value"]
    except Exception:
        logger.debug("SSM lookup for %s failed (expected locally)", name)
        return None


def _resolve_secret(name: str) -> str | None:
    """Return a secret from env-var or SSM, or ``None`` when it is not configured."""
    value = os.getenv(name)
    if value and not value.startswith("your_"):
        return value

    if os.getenv("AWS_EXECUTION_ENV"):
        ssm_value = _get_ssm_parameter(name)
        if ssm_value:
            return ssm_value

    return None


def _int_env(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def parse_api_tokens(raw: str | None) -> dict[str, str]:
    """Parse ``"token=tenant,token2=tenant2"`` into a token → tenant map."""
    tokens: dict[str, str] = {}
    if not raw:
        return tokens
    for pair in raw.split(","):
        pair = pair.strip()
        if not pair:
            continue
        token, sep, tenant_id = pair.partition("=")
        if not sep or not token.strip() or not tenant_id.strip():
            raise ValueError(f"CLAMP_API_TOKENS entry {pair!r} is not token=tenant_id")
        tokens[token.strip()] = tenant_id.strip()
    return tokens


# ── Settings object ──────────────────────────────────────────────────


@dataclass(frozen=True)
class ClampSettings:
    """Immutable, explicitly passed configuration."""

    # LLM
    anthropic_api_key: str | None = None
    model_name: str = "claude-sonnet-4-20250514"
    max_tokens: int = 1024

    # Conversation policy
    message_count_cap: int = DEFAULT_MESSAGE_COUNT_CAP
    tool_iteration_cap: int = DEFAULT_TOOL_ITERATION_CAP
    request_timeout_seconds: float = 120.0
    timezone: str = "Pacific/Auckland"

    # Document numbering
    default_padding: int = DEFAULT_PADDING

    # Tenant data store
    store_backend: str = "memory"
    dynamodb_table: str = "clamp_tenant_data"
    aws_region: str = "eu-west-2"

    # Auth (bearer token → tenant id)
    api_tokens: dict[str, str] = field(default_factory=dict)

    # Server
    server_host: str = "0.0.0.0"
    server_port: int = 8000
    cors_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"],
    )

    @property
    def provider_configured(self) -> bool:
        return bool(self.anthropic_api_key)


def load_settings() -> ClampSettings:
    """Read settings from the environment (and ``.env``)."""
    load_dotenv()

    store_backend = os.getenv("CLAMP_STORE_BACKEND", "memory").strip().lower()
    if store_backend not in ("memory", "dynamodb"):
        raise ValueError(
            f"CLAMP_STORE_BACKEND must be 'memory' or 'dynamodb', got {store_backend!r}"
        )

    settings = ClampSettings(
        anthropic_api_key=_resolve_secret("ANTHROPIC_API_KEY"),
        model_name=os.getenv("CLAMP_MODEL_NAME", "claude-sonnet-4-20250514"),
        max_tokens=_int_env("CLAMP_MAX_TOKENS", 1024, minimum=1),
        message_count_cap=_int_env(
            "CLAMP_MESSAGE_COUNT_CAP", DEFAULT_MESSAGE_COUNT_CAP, minimum=1,
        ),
        tool_iteration_cap=_int_env(
            "CLAMP_TOOL_ITERATION_CAP", DEFAULT_TOOL_ITERATION_CAP, minimum=1,
        ),
        request_timeout_seconds=_float_env("CLAMP_REQUEST_TIMEOUT_SECONDS", 120.0),
        timezone=os.getenv("CLAMP_TIMEZONE", "Pacific/Auckland"),
        default_padding=_int_env("CLAMP_DEFAULT_PADDING", DEFAULT_PADDING),
        store_backend=store_backend,
        dynamodb_table=os.getenv("CLAMP_DYNAMODB_TABLE", "clamp_tenant_data"),
        aws_region=os.getenv("AWS_REGION", "eu-west-2"),
        api_tokens=parse_api_tokens(_resolve_secret("CLAMP_API_TOKENS")),
        server_host=os.getenv("SERVER_HOST", "0.0.0.0"),
        server_port=_int_env("SERVER_PORT", 8000, minimum=1),
        cors_origins=os.getenv(
            "CORS_ORIGINS",
            "http://localhost:3000,http://localhost:5173",
        ).split(","),
    )

    if not settings.provider_configured:
        logger.warning("ANTHROPIC_API_KEY is not configured; chat requests will return 503")
    return settings
