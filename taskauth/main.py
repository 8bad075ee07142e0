import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskauth.config import Settings, get_settings
from taskauth.database import init_db
from taskauth.errors import AppError, InternalError, ValidationFailed
from taskauth.logging_config import configure_logging
from taskauth.routers import auth_router, sessions_router
from taskauth.sessions import sweep_expired_sessions

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
}


async def sweep_sessions_periodically(settings: Settings):
    """
    Delete idle sessions on a fixed interval until cancelled.

    Revoke and sweep are both idempotent, so no coordination with
    request handlers is needed.
    """
    interval = settings.session_sweep_interval_minutes * 60
    while True:
        await asyncio.sleep(interval)
        try:
            await run_in_threadpool(sweep_expired_sessions, settings.session_retention)
        except Exception:
            logger.exception("Session sweep failed")


def flatten_validation_errors(errors) -> dict:
    """
    Group pydantic errors by field.

    Errors not tied to a single field (e.g. "at least one of") land in
    formErrors.
    """
    form_errors = []
    field_errors = {}
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        message = error.get("msg", "Invalid value")
        if loc:
            field_errors.setdefault(".".join(loc), []).append(message)
        else:
            form_errors.append(message)
    return {"formErrors": form_errors, "fieldErrors": field_errors}


def register_exception_handlers(app: FastAPI):
    """
    Single boundary translator: every error leaves as {"message": ...}.
    """

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        error = ValidationFailed(errors=flatten_validation_errors(exc.errors()))
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(status_code=exc.status_code, content={"message": message}, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", extra={"method": request.method, "path": request.url.path})
        error = InternalError()
        return JSONResponse(status_code=error.status_code, content=error.to_dict(), headers=SECURITY_HEADERS)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan handler.
        Runs on startup and shutdown.
        """
        configure_logging(settings.log_level)
        init_db()

        sweeper = None
        if settings.session_sweep_interval_minutes > 0:
            sweeper = asyncio.create_task(sweep_sessions_periodically(settings))
        yield
        if sweeper is not None:
            sweeper.cancel()
            try:
                await sweeper
            except asyncio.CancelledError:
                pass

    app = FastAPI(
        title="Task Tracker Auth",
        description="Authentication and session management for the task tracker API",
        version="1.0.0",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        logger.info("request_start", extra={"method": request.method, "path": request.url.path})
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            response.headers.update(SECURITY_HEADERS)
            return response
        finally:
            # Unhandled errors are answered outside this middleware, status 500
            logger.info(
                "request_end",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": status,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 1),
                },
            )

    register_exception_handlers(app)

    app.include_router(auth_router.router)
    app.include_router(sessions_router.router)

    @app.get("/health")
    async def health():
        """
        Health check endpoint.
        """
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "taskauth.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
