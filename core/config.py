"""
配置文件 - 项目配置管理
"""
import json
from typing import Annotated, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class NotificationSettings(BaseModel):
    # 为空时只记录日志，不对外投递
    webhook_url: Optional[str] = None
    timeout_seconds: float = 5.0
    max_attempts: int = 3
    backoff_seconds: float = 0.5


class Settings(BaseSettings):
    """项目配置"""

    # 基础配置
    PROJECT_NAME: str = Field(default="Storefront Payments", validation_alias=AliasChoices("PROJECT_NAME", "APP_NAME"))
    VERSION: str = Field(default="1.0.0", validation_alias=AliasChoices("VERSION", "APP_VERSION"))
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    API_PREFIX: str = "/api"

    # 日志
    LOG_LEVEL: Optional[str] = None
    LOG_JSON: Optional[bool] = None
    LOG_REQUEST_BODY: bool = False
    LOG_REQUEST_BODY_MAX_BYTES: int = 2048

    # CORS配置
    CORS_ORIGINS: Annotated[list[str], NoDecode] = Field(default=["http://localhost:3000", "http://localhost:8000"])

    # 订单
    ORDER_MAX_QUANTITY: int = Field(default=10, ge=1)

    notifications: NotificationSettings = Field(default_factory=NotificationSettings)

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() in {"prod", "production"}

    @field_validator("API_PREFIX")
    @classmethod
    def _normalize_prefix(cls, v: str) -> str:
        v = (v or "").strip().rstrip("/")
        if v and not v.startswith("/"):
            v = "/" + v
        return v

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """允许 JSON 字符串或逗号分隔字符串两种格式。"""
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("[") and s.endswith("]"):
                return json.loads(s)
            return [item.strip() for item in s.split(",") if item.strip()]
        return v


settings = Settings()
