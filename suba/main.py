"""
FastAPI application factory
"""
import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from suba.config import Settings, get_settings
from suba.application.errors import NotFoundError, ValidationError
from suba.infrastructure.db.session import build_engine, build_session_factory, check_db_connection
from suba.api.v1 import (
    auth, subscriptions, payments, shared_plans, user, analytics, ai_insights, budget,
    notifications,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class ErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Catches every unhandled exception (sync routes included) and answers 500 JSON"""

    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            tb_str = traceback.format_exc()
            logger.error("\n%s\nERROR on %s %s\n%s%s", "=" * 60, request.method, request.url.path, tb_str, "=" * 60)
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Something went wrong!",
                    "details": str(exc),
                    "code": type(exc).__name__,
                },
            )


def _missing_fields(exc: RequestValidationError) -> list[str]:
    missing = []
    for err in exc.errors():
        if err.get("type") == "missing" and err.get("loc"):
            field = str(err["loc"][-1])
            if field not in missing:
                missing.append(field)
    return missing


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        content = {"message": exc.message}
        if exc.missing:
            content["missing"] = exc.missing
        return JSONResponse(status_code=400, content=content)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        missing = _missing_fields(exc)
        content = {
            "message": "Required fields are missing" if missing else "Invalid request",
            "errors": [
                {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg")}
                for err in exc.errors()
            ],
        }
        if missing:
            content["missing"] = missing
        return JSONResponse(status_code=400, content=content)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail},
            headers=getattr(exc, "headers", None),
        )


def create_app(settings: Settings | None = None, engine: Engine | None = None) -> FastAPI:
    """
    Application factory - creates and configures the FastAPI app

    Args:
        settings: defaults to the cached environment settings
        engine: defaults to a pooled engine for ``settings.DATABASE_URL``

    Returns:
        Configured FastAPI app; engine, session factory and settings live on ``app.state``
    """
    settings = settings or get_settings()
    engine = engine if engine is not None else build_engine(settings)

    app = FastAPI(
        title="Suba",
        debug=settings.DEBUG,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    app.add_middleware(ErrorLoggingMiddleware)
    register_exception_handlers(app)

    # Uploaded avatars
    app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")

    # Routers
    app.include_router(auth.router)
    app.include_router(subscriptions.router)
    app.include_router(payments.router)
    app.include_router(shared_plans.router)
    app.include_router(user.router)
    app.include_router(analytics.router)
    app.include_router(ai_insights.router)
    app.include_router(budget.router)
    app.include_router(notifications.router)

    @app.get("/api/health", tags=["system"])
    def health():
        """Health check endpoint (pings the database)"""
        try:
            check_db_connection(app.state.engine)
        except SQLAlchemyError as exc:
            logger.exception("Health check failed")
            return JSONResponse(
                status_code=500,
                content={"status": "ERROR", "database": "Disconnected", "error": str(exc)},
            )
        return {"status": "OK", "database": "Connected"}

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "suba.main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().DEBUG,
    )
