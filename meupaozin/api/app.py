"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from meupaozin.api.middleware import CorrelationIdMiddleware, RequestLoggingMiddleware
from meupaozin.api.routes import clientes, pedidos, tipos_pao
from meupaozin.container import AppContainer
from meupaozin.domain.errors import DomainError
from meupaozin.settings import get_setting

logger = logging.getLogger(__name__)


def create_app(container: AppContainer) -> FastAPI:
    """Build the app around an already-wired container. Lifespan starts and stops it."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await container.startup()
        try:
            yield
        finally:
            await container.shutdown()

    app = FastAPI(
        title=get_setting(container.settings, "http.title", "MeuPaoZin API"),
        version=get_setting(container.settings, "http.version", "2.0.0"),
        lifespan=lifespan,
    )
    app.state.container = container

    # last added runs first: correlation id is set before the request is logged
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.info("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.message)
        return JSONResponse({"detail": exc.message}, status_code=exc.status_code)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(clientes.router)
    app.include_router(tipos_pao.router)
    app.include_router(pedidos.router)
    return app
