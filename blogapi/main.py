import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from blogapi.core.config import Settings, get_settings
from blogapi.core.db import build_engine, build_session_factory, create_tables
from blogapi.core.errors import ValidationFailed
from blogapi.core.mailer import EmailManager
from blogapi.core.redis_client import close_redis, create_redis
from blogapi.core.security import TokenService
from blogapi.middleware.rate_limit import RateLimiter, RateLimitMiddleware
from blogapi.services.auth import AuthService
from blogapi.services.blogs import BlogsService
from blogapi.services.comments import CommentsService
from blogapi.services.posts import PostsService
from blogapi.services.reactions import ReactionService
from blogapi.services.sessions import DeviceRegistry
from blogapi.services.users import UsersService
from blogapi.web.routers.auth import router as auth_router
from blogapi.web.routers.blogs import router as blogs_router
from blogapi.web.routers.comments import router as comments_router
from blogapi.web.routers.posts import router as posts_router
from blogapi.web.routers.security import router as security_router
from blogapi.web.routers.testing import router as testing_router
from blogapi.web.routers.users import router as users_router

logger = logging.getLogger("blogapi.main")

DEFAULT_MESSAGES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    408: "Request Timeout",
    409: "Conflict",
    413: "Payload Too Large",
    415: "Unsupported Media Type",
    429: "Too Many Requests",
}


def _configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info("Application startup...")

    engine = build_engine(settings)
    await create_tables(engine)
    session_factory = build_session_factory(engine)

    redis = create_redis(settings)
    rate_limiter = None
    if settings.RATE_LIMIT_ENABLED:
        rate_limiter = RateLimiter(redis, settings.RATE_LIMIT_MAX_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS)

    # Services are built once here and reached from handlers through app.state
    tokens = TokenService(settings)
    devices = DeviceRegistry(session_factory)
    reactions = ReactionService(session_factory)
    comments = CommentsService(session_factory, reactions)
    posts = PostsService(session_factory, reactions, comments)

    app.state.engine = engine
    app.state.rate_limiter = rate_limiter
    app.state.token_service = tokens
    app.state.device_registry = devices
    app.state.comments_service = comments
    app.state.posts_service = posts
    app.state.blogs_service = BlogsService(session_factory, posts)
    app.state.users_service = UsersService(session_factory, devices)
    app.state.auth_service = AuthService(settings, session_factory, tokens, devices, EmailManager(settings))

    yield

    logger.info("Application shutdown...")
    await close_redis(redis)
    await engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    _configure_logging(settings)

    app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG, lifespan=lifespan)
    app.state.settings = settings
    app.state.rate_limiter = None

    app.add_middleware(RateLimitMiddleware)

    # Routers
    app.include_router(auth_router)
    app.include_router(security_router)
    app.include_router(users_router)
    app.include_router(blogs_router)
    app.include_router(posts_router)
    app.include_router(comments_router)
    if settings.TESTING_ENDPOINTS_ENABLED:
        app.include_router(testing_router)

    @app.get("/healthz")
    async def healthz():
        return {"status": "ok"}

    _install_exception_handlers(app, settings)
    return app


def _errors_messages(errors) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"errorsMessages": [{"message": message, "field": field} for field, message in errors]},
    )


# -------------------
# Exception Handlers
# -------------------

def _install_exception_handlers(app: FastAPI, settings: Settings) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # first error per field only
        errors = {}
        for err in exc.errors():
            loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
            field = loc[-1] if loc else "body"
            errors.setdefault(field, err.get("msg", "Invalid value"))
        logger.debug("Validation failed on %s %s: %s", request.method, request.url.path, errors)
        return _errors_messages(errors.items())

    @app.exception_handler(ValidationFailed)
    async def validation_failed_handler(request: Request, exc: ValidationFailed):
        logger.debug("Validation failed on %s %s: %s", request.method, request.url.path, exc)
        return _errors_messages(exc.errors)

    @app.exception_handler(HTTPException)
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        code = exc.status_code
        message = getattr(exc, "detail", None) or DEFAULT_MESSAGES.get(code) or "Unexpected error"
        return JSONResponse({"detail": message}, status_code=code, headers=getattr(exc, "headers", None))

    # Only install a global 500 handler when NOT in debug mode.
    if not settings.DEBUG:
        @app.exception_handler(Exception)
        async def unhandled_exception_handler(request: Request, exc: Exception):
            logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
            return JSONResponse({"detail": "An internal server error occurred."}, status_code=500)


app = create_app()
