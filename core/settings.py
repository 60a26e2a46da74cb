"""
Payment-related settings using pydantic-settings v2 with nested env keys.

Env examples: PAYMENT_STRIPE__SECRET_KEY, PAYMENT_STRIPE__WEBHOOK_SECRET,
PAYMENT_WEBHOOK__DEV_BYPASS_ENABLED.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class WebhookSettings(BaseModel):
    tolerance_seconds: int = 300
    # Development only: accept unsigned payloads carrying `<dev_bypass_header>: true`
    dev_bypass_enabled: bool = False
    dev_bypass_header: str = "X-Stripe-Test"


class StripeSettings(BaseModel):
    secret_key: Optional[str] = None
    webhook_secret: Optional[str] = None
    api_version: Optional[str] = None


class PaymentSettings(BaseSettings):
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    webhook: WebhookSettings = Field(default_factory=WebhookSettings)
    stripe: StripeSettings = Field(default_factory=StripeSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PAYMENT_",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in {"prod", "production"}

    @model_validator(mode="after")
    def _refuse_bypass_in_production(self):
        if self.webhook.dev_bypass_enabled and self.is_production:
            raise ValueError("PAYMENT_WEBHOOK__DEV_BYPASS_ENABLED must not be set when ENVIRONMENT=production")
        return self


payment_settings = PaymentSettings()
