"""
请求/响应日志中间件
记录请求开始/结束与耗时；Webhook 原始报文不落日志
"""
import json
import time
from typing import Any, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from core.config import settings
from core.logging_config import get_logger


logger = get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    SKIP_PATHS = {"/docs", "/redoc", "/openapi.json"}

    # 敏感字段，日志中需要脱敏
    SENSITIVE_FIELDS = {"clientsecret", "client_secret", "secret", "token", "email"}

    def __init__(self, app: ASGIApp, *, log_body: Optional[bool] = None, max_body_bytes: Optional[int] = None):
        super().__init__(app)
        self.log_body = settings.LOG_REQUEST_BODY if log_body is None else log_body
        self.max_body_bytes = max_body_bytes or settings.LOG_REQUEST_BODY_MAX_BYTES

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if path in self.SKIP_PATHS or path.endswith("/health"):
            return await call_next(request)

        start = time.perf_counter()
        info: dict[str, Any] = {"method": request.method, "path": path}
        if request.query_params:
            info["query_params"] = dict(request.query_params)
        if self._should_log_body(request):
            body = await self._body_snippet(request)
            if body is not None:
                info["body"] = body

        logger.info("request_started", **info)
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "request_failed",
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
                error=str(exc),
                error_type=type(exc).__name__,
                **info,
                exc_info=True,
            )
            raise

        duration = time.perf_counter() - start
        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            "request_finished",
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2),
            **info,
        )
        response.headers["X-Process-Time"] = f"{duration:.3f}"
        return response

    def _should_log_body(self, request: Request) -> bool:
        if not self.log_body or request.method not in {"POST", "PUT", "PATCH"}:
            return False
        return "/webhook" not in request.url.path

    async def _body_snippet(self, request: Request) -> Any:
        body = await request.body()
        if not body:
            return None
        snippet = body[: self.max_body_bytes].decode("utf-8", errors="ignore")
        if "application/json" not in request.headers.get("content-type", "").lower():
            return snippet
        try:
            return self._sanitize(json.loads(snippet))
        except ValueError:
            return snippet

    def _sanitize(self, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: ("***" if k.lower() in self.SENSITIVE_FIELDS else self._sanitize(v)) for k, v in data.items()}
        if isinstance(data, list):
            return [self._sanitize(v) for v in data]
        return data
