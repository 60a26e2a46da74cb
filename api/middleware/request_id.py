"""
Request ID 中间件
生成或透传追踪ID，并绑定到 structlog 的 contextvars
"""
import uuid
from contextvars import ContextVar
from typing import Optional

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware


request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# 透传的ID长度上限，超长视为无效并重新生成
MAX_REQUEST_ID_LENGTH = 128


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Request ID 追踪中间件

    1. 从请求头获取或生成新的request_id
    2. 写入 request.state 与 structlog 上下文
    3. 在响应头中返回request_id
    """

    HEADER_NAME = "X-Request-ID"

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(self.HEADER_NAME) or ""
        if not request_id or len(request_id) > MAX_REQUEST_ID_LENGTH:
            request_id = str(uuid.uuid4())

        request.state.request_id = request_id
        token = request_id_var.set(request_id)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            client_ip=self._client_ip(request),
        )
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
            structlog.contextvars.clear_contextvars()

        response.headers[self.HEADER_NAME] = request_id
        return response

    @staticmethod
    def _client_ip(request: Request) -> str:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return request.headers.get("X-Real-IP") or (request.client.host if request.client else "unknown")


def get_request_id() -> Optional[str]:
    return request_id_var.get()
