"""Per-call gateway context: where to send queries and with which credentials.

The context is passed explicitly through every call; nothing here is global.
"""
from __future__ import annotations

import asyncio
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from dsquery.common.settings import Settings, settings as default_settings


def _secret_value(secret: Optional[SecretStr]) -> str:
    return secret.get_secret_value() if secret is not None else ""


class GatewayCredentials(BaseModel):
    """Credential set resolved from the caller's context.

    An access-token / id-token pair (on-behalf-of auth) takes precedence over the
    API key when both halves of the pair are non-empty.
    """

    access_token: Optional[SecretStr] = None
    id_token: Optional[SecretStr] = None
    api_key: Optional[SecretStr] = None

    model_config = ConfigDict(frozen=True)

    @property
    def access_token_value(self) -> str:
        return _secret_value(self.access_token)

    @property
    def id_token_value(self) -> str:
        return _secret_value(self.id_token)

    @property
    def api_key_value(self) -> str:
        return _secret_value(self.api_key)

    @property
    def has_on_behalf_of(self) -> bool:
        return bool(self.access_token_value and self.id_token_value)


class GatewayContext(BaseModel):
    """Everything a single query call needs to reach the gateway."""

    url: str
    credentials: GatewayCredentials = Field(default_factory=GatewayCredentials)
    timeout_sec: Optional[float] = Field(
        default=30.0, description="Upper bound for one request/response cycle; None waits forever."
    )
    cancel_event: Optional[asyncio.Event] = Field(
        default=None, description="Set by the caller to abort the in-flight request."
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @field_validator("url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            raise ValueError("gateway url must not be empty")
        return value

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides: Any) -> "GatewayContext":
        """Builds a context from application settings, letting callers override fields."""
        settings = settings or default_settings
        values: dict = {
            "url": settings.grafana_url,
            "credentials": GatewayCredentials(
                access_token=settings.grafana_access_token,
                id_token=settings.grafana_id_token,
                api_key=settings.grafana_api_key,
            ),
            "timeout_sec": settings.gateway_timeout_sec,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)

    @property
    def is_cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()
