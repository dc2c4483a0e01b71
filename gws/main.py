from contextlib import asynccontextmanager
from typing import Optional
import asyncio

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gws.api import availability, health, payments, shortener, uploads, webhooks
from gws.core.config import settings
from gws.core.exceptions import (
    CodeNotFound,
    CollaboratorFailure,
    CollaboratorTimeout,
    ConfigurationError,
    EntityNotFound,
    HubError,
    ResponderNotFound,
)
from gws.core.logging_config import configure_logging
from gws.core.rate_limit import RateLimiter, build_redis_client, get_client_ip, is_rate_limited_path
from gws.services.container import Services, build_services

logger = configure_logging(settings.LOG_LEVEL)


def _status_for(exc: HubError) -> int:
    if isinstance(exc, (CodeNotFound, EntityNotFound, ResponderNotFound)):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, CollaboratorTimeout):
        return status.HTTP_504_GATEWAY_TIMEOUT
    if isinstance(exc, CollaboratorFailure):
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(exc, ConfigurationError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def create_app(services: Optional[Services] = None, rate_limiter: Optional[RateLimiter] = None) -> FastAPI:
    services = services or build_services(settings)
    rate_limiter = rate_limiter or RateLimiter(
        build_redis_client(settings.REDIS_URL), settings.RATE_LIMIT_LIMIT, settings.RATE_LIMIT_WINDOW
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Application '{services.settings.PROJECT_NAME}' starting up.")
        tasks = [
            asyncio.create_task(services.expiry_sweeper.run_forever()),
            asyncio.create_task(services.status_sweeper.run_forever()),
        ]
        try:
            yield
        finally:
            logger.info("Shutting down gracefully...")
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            await services.aclose()

    app = FastAPI(
        title=services.settings.PROJECT_NAME,
        description="Operations hub: short links, technician availability checks and SMS webhooks",
        lifespan=lifespan,
    )
    app.state.services = services
    app.state.rate_limiter = rate_limiter

    app.include_router(health.router)
    app.include_router(availability.router)
    app.include_router(webhooks.router)
    app.include_router(payments.router)
    app.include_router(uploads.router)
    app.include_router(shortener.router)
    # Must stay last: /{code} would otherwise shadow /ty, /tn and /health
    app.include_router(shortener.redirect_router)

    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        if not is_rate_limited_path(request.url.path):
            return await call_next(request)

        limiter: RateLimiter = request.app.state.rate_limiter
        key = f"rate_limit:{get_client_ip(request)}"
        allowed = limiter.check(key)
        if allowed is False:
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                headers={"Retry-After": str(limiter.window)},
                content={"error": f"Too many requests. Limit is {limiter.limit} per {limiter.window} seconds."}
            )

        return await call_next(request)

    @app.exception_handler(HubError)
    async def hub_exception_handler(request: Request, exc: HubError):
        code = _status_for(exc)
        if code >= 500:
            logger.error(f"{exc.error_code} on {request.url.path}: {exc}")
        else:
            logger.warning(f"{exc.error_code} on {request.url.path}: {exc}")
        return JSONResponse(status_code=code, content={"error": str(exc), "code": exc.error_code})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
            content={"error": exc.detail},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Invalid request on {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return app


app = create_app()
