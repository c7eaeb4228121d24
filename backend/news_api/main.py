import logging
import sys
import time
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth.router import router as auth_router
from .categories.router import router as categories_router
from .config import settings
from .database import Database
from .exceptions import AppError, InternalError
from .models import error_response
from .news.router import router as news_router
from .users.router import router as users_router

APP_VERSION = "1.0.0"
API_PREFIX = "/api"

log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
logging.basicConfig(
    level=log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = Database(settings.DATABASE_URL)
    app.state.db = db
    if settings.AUTO_CREATE_TABLES:
        await db.create_all()
    logger.info(f"News Management API started ({settings.ENVIRONMENT}) on {settings.APP_HOST}:{settings.APP_PORT}")
    try:
        yield
    finally:
        await db.dispose()


def _validation_details(exc: RequestValidationError):
    details = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({"field": ".".join(loc), "message": error.get("msg", "Invalid value")})
    return details


def _integrity_message(exc: IntegrityError) -> str:
    text = str(exc.orig).upper()
    if "UNIQUE" in text or "DUPLICATE" in text:
        return "Duplicate entry found"
    if "FOREIGN KEY" in text:
        return "Foreign key constraint failed"
    return "Database constraint violation"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"Error {request.method} {request.url.path}: {exc.message}")
        else:
            logger.debug(f"{exc!r} on {request.method} {request.url.path}")
        return error_response(exc.message, status_code=exc.status_code, details=exc.details)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        details = _validation_details(exc)
        logger.debug(f"Validation error on {request.method} {request.url.path}: {details}")
        return error_response("Validation error", status_code=400, details=details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(str(exc.detail), status_code=exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        logger.warning(f"Constraint violation on {request.method} {request.url.path}: {exc.orig}")
        return error_response(_integrity_message(exc), status_code=400)

    # SlowAPIMiddleware calls this handler without awaiting it
    @app.exception_handler(RateLimitExceeded)
    def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        logger.warning(f"Rate limit exceeded for {get_remote_address(request)}")
        return error_response("Too many requests from this IP, please try again later.", status_code=429)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unexpected error {request.method} {request.url.path}: {exc}", exc_info=True)
        error = InternalError()
        if settings.is_development():
            error.details = {"stack": traceback.format_exception(type(exc), exc, exc.__traceback__)}
        return error_response(error.message, status_code=error.status_code, details=error.details)


def create_app() -> FastAPI:
    app = FastAPI(
        title="News Management API",
        version=APP_VERSION,
        lifespan=lifespan,
    )

    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit],
        enabled=settings.RATE_LIMIT_ENABLED,
    )
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"{request.method} {request.url.path} - {response.status_code} - {elapsed_ms:.0f}ms")
        return response

    register_exception_handlers(app)

    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(users_router, prefix=API_PREFIX)
    app.include_router(categories_router, prefix=API_PREFIX)
    app.include_router(news_router, prefix=API_PREFIX)

    @app.get("/health", tags=["health"])
    async def health():
        return {
            "status": "success",
            "message": "API is running successfully",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": settings.ENVIRONMENT,
        }

    @app.get("/", tags=["health"])
    async def root():
        return {
            "status": "success",
            "message": "Welcome to News Management API",
            "version": APP_VERSION,
            "documentation": {"swagger": "/docs", "json": "/openapi.json"},
            "endpoints": {
                "auth": f"{API_PREFIX}/auth",
                "users": f"{API_PREFIX}/users",
                "categories": f"{API_PREFIX}/categories",
                "news": f"{API_PREFIX}/news",
            },
        }

    return app


def _fatal_excepthook(exc_type, exc_value, exc_traceback):
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return
    logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))
    logging.shutdown()


def run() -> None:
    """Serve the app with uvicorn; a fatal error is logged and exits with status 1."""
    import uvicorn

    sys.excepthook = _fatal_excepthook
    try:
        uvicorn.run(
            "news_api.main:app",
            host=settings.APP_HOST,
            port=settings.APP_PORT,
            log_level=settings.LOG_LEVEL.lower(),
        )
    except Exception:
        logger.critical("Server terminated by an unrecoverable error", exc_info=True)
        logging.shutdown()
        sys.exit(1)


app = create_app()


if __name__ == "__main__":
    run()
