"""
BountyExpo API application

Run with `bountyexpo-api` or `uvicorn bountyexpo.main:app`.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from bountyexpo import __version__
from bountyexpo.api.v1.router import api_router
from bountyexpo.core.config import settings
from bountyexpo.core.database import init_db, close_db
from bountyexpo.core.exceptions import BountyExpoError, error_response
from bountyexpo.core.logging_config import logger
from bountyexpo.core.middleware import (
    RequestContextMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)
from bountyexpo.core.rate_limiter import limiter, rate_limit_exceeded_handler

PLACEHOLDER_SECRET = "CHANGE_ME"


def check_startup_config() -> None:
    """
    Refuse to start outside dev/test with placeholder secrets.

    In dev/test the same problems are only logged.
    """
    problems = [
        f"{name} is unset or still {PLACEHOLDER_SECRET}"
        for name in ("SECRET_KEY", "JWT_SECRET_KEY")
        if getattr(settings, name) in ("", PLACEHOLDER_SECRET)
    ]
    if not settings.DATABASE_URL:
        problems.append("DATABASE_URL is unset")

    if problems and not settings.is_dev_mode():
        for problem in problems:
            logger.critical(f"Startup aborted: {problem}")
        raise RuntimeError("Invalid configuration: " + "; ".join(problems))

    for problem in problems:
        logger.warning(f"Startup: {problem}")
    if not settings.RATE_LIMIT_ENABLED:
        logger.warning("Startup: rate limiting disabled")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME} {__version__} ({settings.ENVIRONMENT})")
    check_startup_config()
    await init_db()
    yield
    await close_db()
    logger.info(f"Stopped {settings.APP_NAME}")


def _add_middleware(app: FastAPI) -> None:
    # Starlette runs the last-added middleware first
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.MAX_REQUEST_SIZE_MB * 1024 * 1024)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Response-Time"],
    )
    app.add_middleware(RequestContextMiddleware)


def _add_exception_handlers(app: FastAPI) -> None:
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    @app.exception_handler(BountyExpoError)
    async def domain_error_handler(request: Request, exc: BountyExpoError):
        if exc.http_status >= 500:
            logger.log_unhandled(exc, request.url.path)
        else:
            logger.info(f"{exc.code}: {exc.message}")
        return JSONResponse(status_code=exc.http_status, content=error_response(exc))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.log_unhandled(exc, request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": str(exc) if settings.DEBUG else "An unexpected error occurred",
                    "details": {},
                },
            },
        )


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="Bounty marketplace: post tasks, apply as a hunter, chat, and pay through escrow",
        version=__version__,
        lifespan=lifespan,
        redirect_slashes=False,
    )
    _add_middleware(app)
    _add_exception_handlers(app)

    @app.get("/", tags=["Root"])
    async def root():
        return {"name": settings.APP_NAME, "version": __version__, "docs": "/docs"}

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "healthy", "version": __version__, "environment": settings.ENVIRONMENT}

    app.include_router(api_router, prefix=f"/api/{settings.API_VERSION}")
    return app


app = create_app()


def run():
    """Console entry point"""
    import uvicorn

    uvicorn.run(
        "bountyexpo.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.DEBUG,
    )


if __name__ == "__main__":
    run()
