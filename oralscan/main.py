import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware
from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

# Load environment variables as early as possible
load_dotenv()

from .core.config import ConfigurationError, Settings, get_settings
from .database import check_db_connection, create_db_engine, create_db_and_tables
from .exceptions import register_exception_handlers
from .middleware import (
    RateLimitMiddleware,
    SecurityMiddleware,
    LoggingMiddleware,
    ErrorHandlingMiddleware,
    RequestSizeLimitMiddleware,
)
from .application.ports.rate_limiter import RateLimiter
from .infrastructure.ai.gemini_provider import GeminiProvider
from .infrastructure.auth.firebase_provider import FirebaseIdentityProvider
from .infrastructure.rate_limit.memory_rate_limiter import InMemoryRateLimiter
from .infrastructure.rate_limit.redis_rate_limiter import RedisRateLimiter
from .routers import analysis_router
from .schemas.common.common import HealthResponse

logger = logging.getLogger(__name__)

NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "uvicorn.access")


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=settings.LOG_FORMAT,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def build_rate_limiter(settings: Settings) -> RateLimiter:
    if settings.REDIS_URL:
        logger.info("Using Redis rate limiter")
        return RedisRateLimiter(settings.REDIS_URL)
    return InMemoryRateLimiter()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info(f"Starting {settings.APP_NAME}...")

    # Fails the process before anything is built
    try:
        settings.ensure_required()
        service_account = settings.service_account_info()
    except ConfigurationError as e:
        logger.error(f"Failed to start server: {e}")
        raise

    engine = create_db_engine(settings)
    try:
        check_db_connection(engine)
    except SQLAlchemyError as e:
        logger.error(f"Failed to start server: database unreachable ({type(e).__name__})")
        engine.dispose()
        raise
    logger.info("Database connection successful")
    create_db_and_tables(engine)

    identity_provider = FirebaseIdentityProvider(service_account)
    rate_limiter = build_rate_limiter(settings)

    app.state.engine = engine
    app.state.ai_provider = GeminiProvider(
        api_key=settings.GEMINI_API_KEY,
        model_name=settings.GEMINI_MODEL,
        timeout_seconds=settings.INFERENCE_TIMEOUT_SECONDS,
        max_attempts=settings.INFERENCE_MAX_ATTEMPTS,
    )
    app.state.identity_provider = identity_provider
    app.state.rate_limiter = rate_limiter
    try:
        yield
    finally:
        logger.info(f"Shutting down {settings.APP_NAME}...")
        if isinstance(rate_limiter, RedisRateLimiter):
            rate_limiter.close()
        identity_provider.close()
        engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        docs_url=("/docs" if settings.DOCS_ENABLED else None),
        redoc_url=("/redoc" if settings.DOCS_ENABLED else None),
        openapi_url=("/openapi.json" if settings.DOCS_ENABLED else None),
    )
    app.state.settings = settings

    register_exception_handlers(app)

    # Last added runs first
    app.add_middleware(RateLimitMiddleware, settings=settings)
    app.add_middleware(RequestSizeLimitMiddleware, settings=settings)
    app.add_middleware(ErrorHandlingMiddleware, settings=settings)
    app.add_middleware(SecurityMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=settings.GZIP_MIN_SIZE)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(analysis_router.router)

    @app.get("/health", response_model=HealthResponse)
    def health_check():
        return HealthResponse(status="ok", service=settings.APP_NAME, version=settings.APP_VERSION)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "oralscan.main:app",
        host=_settings.HOST,
        port=_settings.PORT,
        log_level=_settings.LOG_LEVEL.lower(),
    )
