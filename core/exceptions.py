"""
业务码 -> HTTP 状态码映射与全局异常处理器
"""
import traceback
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette import status as http_status
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.logging_config import get_logger
from domain.common.exceptions import BusinessException
from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode

from .response import error_response


logger = get_logger(__name__)


_HTTP_STATUS_BY_CODE = {
    BusinessCode.PARAM_ERROR: http_status.HTTP_400_BAD_REQUEST,
    BusinessCode.PARAM_VALIDATION_ERROR: http_status.HTTP_400_BAD_REQUEST,

    BusinessCode.USER_NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
    BusinessCode.PRODUCT_NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
    BusinessCode.ORDER_NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
    BusinessCode.NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
    BusinessCode.INVALID_TRANSITION: http_status.HTTP_409_CONFLICT,
    BusinessCode.CONFLICT: http_status.HTTP_409_CONFLICT,

    BusinessCode.UNAUTHORIZED: http_status.HTTP_401_UNAUTHORIZED,
    BusinessCode.FORBIDDEN: http_status.HTTP_403_FORBIDDEN,

    BusinessCode.SYSTEM_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
    BusinessCode.SERVICE_UNAVAILABLE: http_status.HTTP_503_SERVICE_UNAVAILABLE,

    PaymentCode.PROVIDER_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
    PaymentCode.SIGNATURE_ERROR: http_status.HTTP_400_BAD_REQUEST,
}

_CODE_BY_HTTP_STATUS = {
    400: BusinessCode.PARAM_ERROR,
    401: BusinessCode.UNAUTHORIZED,
    403: BusinessCode.FORBIDDEN,
    404: BusinessCode.NOT_FOUND,
    405: BusinessCode.PARAM_ERROR,
    409: BusinessCode.CONFLICT,
    503: BusinessCode.SERVICE_UNAVAILABLE,
}


def business_code_to_http_status(code: int) -> int:
    """根据业务码映射HTTP状态码（默认400）。"""
    return _HTTP_STATUS_BY_CODE.get(code, http_status.HTTP_400_BAD_REQUEST)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def register_exception_handlers(app: FastAPI):
    """注册全局异常处理器；所有错误都走 ErrorEnvelope。"""

    @app.exception_handler(BusinessException)
    async def business_exception_handler(request: Request, exc: BusinessException):
        request_id = _request_id(request)
        status_code = business_code_to_http_status(exc.code)
        log = logger.error if status_code >= 500 else logger.info
        log(
            "business_exception",
            request_id=request_id,
            path=request.url.path,
            code=int(exc.code),
            error_type=exc.error_type,
            message=exc.message,
            details=exc.details,
        )
        return error_response(
            exc.code,
            exc.message,
            exc.error_type,
            details=exc.details,
            field=exc.field,
            request_id=request_id,
            path=request.url.path,
        ).to_response(status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # 只保留 loc/msg/type，避免把原始输入回显给调用方
        errors = [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
            for e in exc.errors()
        ]
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", [])[1:])
        return error_response(
            BusinessCode.PARAM_VALIDATION_ERROR,
            f"Validation failed: {first.get('msg', 'unknown')}",
            "ValidationError",
            details={"errors": errors},
            field=field or None,
            request_id=_request_id(request),
            path=request.url.path,
        ).to_response(http_status.HTTP_400_BAD_REQUEST)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(
            _CODE_BY_HTTP_STATUS.get(exc.status_code, BusinessCode.SYSTEM_ERROR),
            str(exc.detail),
            "HTTPError",
            details={"status_code": exc.status_code},
            request_id=_request_id(request),
            path=request.url.path,
        ).to_response(exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        request_id = _request_id(request)
        logger.error(
            "unhandled_exception",
            request_id=request_id,
            path=request.url.path,
            error=str(exc),
            exc_info=True,
        )
        details = None
        if app.debug:
            details = {"exception": str(exc), "traceback": traceback.format_exc()}
        return error_response(
            BusinessCode.SYSTEM_ERROR,
            "Internal server error",
            "SystemError",
            details=details,
            request_id=request_id,
            path=request.url.path,
        ).to_response(http_status.HTTP_500_INTERNAL_SERVER_ERROR)
