"""
Structlog 日志配置模块
"""
import json
import logging
from typing import Any, List

import structlog
from structlog.contextvars import merge_contextvars
from structlog.dev import ConsoleRenderer
from structlog.processors import JSONRenderer, TimeStamper, add_log_level
from structlog.stdlib import ProcessorFormatter

from core.config import settings


# 第三方库日志过于啰嗦，统一降到 WARNING
NOISY_LOGGERS = ("stripe", "httpx", "httpcore", "uvicorn.access")

# 这些键的值在日志中只保留前 6 个字符
REDACTED_KEYS = frozenset({"client_secret", "stripe_signature", "signature", "secret_key", "webhook_secret"})


def redact_secrets(_logger: Any, _method: str, event_dict: dict) -> dict:
    for key in REDACTED_KEYS.intersection(event_dict):
        value = event_dict[key]
        if isinstance(value, str) and value:
            event_dict[key] = value[:6] + "***"
    return event_dict


def _use_json() -> bool:
    if settings.LOG_JSON is not None:
        return settings.LOG_JSON
    return not settings.DEBUG


def get_renderer() -> Any:
    """根据环境选择渲染器 (Console in DEBUG, JSON otherwise)."""
    if not _use_json():
        return ConsoleRenderer(colors=True)

    def _dumps(obj, default=None, **kwargs):
        return json.dumps(obj, ensure_ascii=False, default=default, **kwargs)
    return JSONRenderer(serializer=_dumps)


def _level() -> int:
    if settings.LOG_LEVEL:
        return logging.getLevelName(settings.LOG_LEVEL.upper())
    return logging.DEBUG if settings.DEBUG else logging.INFO


def configure_logging() -> None:
    """配置 structlog 并桥接标准库 logging 到同一处理链。"""
    shared_pre_chain: List[Any] = [
        merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_log_level,
        TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        redact_secrets,
    ]

    structlog.configure(
        processors=[
            *shared_pre_chain,
            ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = ProcessorFormatter(
        foreign_pre_chain=shared_pre_chain,
        processors=[
            ProcessorFormatter.remove_processors_meta,
            get_renderer(),
        ],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(_level())

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """获取 structlog logger 实例。"""
    return structlog.get_logger(name)


# 初始化配置
configure_logging()
