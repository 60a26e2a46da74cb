"""
错误响应信封

成功响应直接返回各接口自己的模型；业务异常、参数校验失败、HTTP 异常
和未处理异常统一序列化为 ErrorEnvelope：

    {"code": 20003, "message": "...", "data": null,
     "error": {"type": "...", "field": null, "details": {...},
               "request_id": "...", "path": "/api/...", "timestamp": "...Z"}}
"""
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_serializer


def to_utc_iso(ts: datetime) -> str:
    """UTC ISO8601，统一使用 Z 结尾"""
    ts = ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts.astimezone(timezone.utc)
    return ts.isoformat().replace("+00:00", "Z")


class ErrorBody(BaseModel):
    type: str
    field: Optional[str] = None
    details: Optional[dict[str, Any]] = None
    request_id: Optional[str] = None
    path: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return to_utc_iso(value)


class ErrorEnvelope(BaseModel):
    code: int
    message: str
    data: None = None
    error: ErrorBody

    def to_response(self, status_code: int, headers: Optional[Mapping[str, str]] = None) -> JSONResponse:
        return JSONResponse(status_code=status_code, content=self.model_dump(mode="json"), headers=headers)


def error_response(
    code: int,
    message: str,
    error_type: str = "BusinessError",
    *,
    details: Optional[dict] = None,
    field: Optional[str] = None,
    request_id: Optional[str] = None,
    path: Optional[str] = None,
) -> ErrorEnvelope:
    return ErrorEnvelope(
        code=int(code),
        message=message,
        error=ErrorBody(
            type=error_type,
            field=field,
            details=details,
            request_id=request_id,
            path=path,
        ),
    )
