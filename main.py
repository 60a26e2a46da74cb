"""
FastAPI应用主入口
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.container import ServiceContainer, build_container
from api.middleware import LoggingMiddleware, RequestIDMiddleware
from api.routes import orders as orders_routes
from api.routes import payments as payments_routes
from api.routes import tax as tax_routes
from core.config import settings
from core.exceptions import register_exception_handlers
from core.logging_config import get_logger


logger = get_logger(__name__)


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """创建应用；未传入 container 时在启动阶段按配置装配。"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = container is None
        app.state.container = build_container() if owned else container
        logger.info(
            "application_started",
            environment=settings.ENVIRONMENT,
            provider=app.state.container.provider.provider,
            api_prefix=settings.API_PREFIX,
        )
        yield
        if owned:
            await app.state.container.aclose()
        else:
            await app.state.container.notifications.drain()
        logger.info("application_shutdown")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        description="Tax-aware checkout payments and order lifecycle",
    )
    if container is not None:
        app.state.container = container

    # 中间件注意顺序：后添加的先执行
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(payments_routes.router, prefix=settings.API_PREFIX)
    app.include_router(orders_routes.router, prefix=settings.API_PREFIX)
    app.include_router(tax_routes.router, prefix=settings.API_PREFIX)

    @app.get(f"{settings.API_PREFIX}/health", tags=["Health"])
    async def health_check():
        return {"status": "healthy", "version": settings.VERSION, "environment": settings.ENVIRONMENT}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
    )
