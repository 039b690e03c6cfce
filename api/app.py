"""
FastAPI application factory for BankIt web.

Usage:
    python -m api.app                       # Dev server on port 8000
    APP_DB_PATH=/data/bankit.sqlite python -m api.app
    APP_CONTEXT_PATH=/bankit python -m api.app

OpenAPI docs available at http://localhost:8000/docs after starting.

Structured JSON logging when APP_LOG_FORMAT=json.
CORS middleware with configurable origins via APP_CORS_ORIGINS.
"""

import json
import logging
import sqlite3
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

import api.database as _db_mod
from api.database import get_db_path, init_schema
from api.models import ErrorResponse
from api.routes import account, use
from api.routes import frontend as frontend_routes
from api.templating import build_templates
from utils.config import AppConfig, normalize_context_path

# ── Configuration ─────────────────────────────────────────────────────────────
_cfg = AppConfig.from_env()

# ── Structured JSON logging ───────────────────────────────────────────────────


class _JsonFormatter(logging.Formatter):
    """Emit log records as newline-delimited JSON."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Merge extra fields added via logger.info("...", extra={...})
        for key in ("method", "path", "status", "duration_ms", "request_id"):
            if hasattr(record, key):
                data[key] = getattr(record, key)
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data)


_logger = logging.getLogger("bankit_api")
_handler = logging.StreamHandler()
if _cfg.log_format == "json":
    _handler.setFormatter(_JsonFormatter())
else:
    _handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
logging.basicConfig(handlers=[_handler], level=logging.INFO, force=True)

_ROOT = Path(__file__).parent.parent  # project root


def init_db(db_path: Path) -> None:
    """Create the database file and its tables if needed."""
    conn = sqlite3.connect(str(db_path))
    try:
        init_schema(conn)
    finally:
        conn.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Make sure the database exists before serving requests."""
    _logger.info("startup config=%s", _cfg.to_dict())
    db_path = get_db_path()
    if not db_path.exists():
        _logger.info("creating database at %s", db_path)
    init_db(db_path)
    yield


def create_app(
    db_path: Path | None = None,
    context_path: str | None = None,
    templates_dir: Path | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        db_path: Override the database path (useful for testing).
        context_path: Override APP_CONTEXT_PATH, e.g. "bankit" or "/bankit/".
        templates_dir: Override the Jinja2 templates directory.

    Returns:
        Configured FastAPI application instance.
    """
    if db_path is not None:
        _db_mod.set_db_path(db_path)
    ctx = (normalize_context_path(context_path) if context_path is not None
           else _cfg.context_path)
    prefix = ctx.rstrip("/")

    app = FastAPI(
        title="BankIt API",
        summary="Personal account operations and categories.",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {
                "name": "account",
                "description": "Operations list and per-operation category updates.",
            },
            {
                "name": "meta",
                "description": "Health check.",
            },
        ],
    )

    # ── CORS middleware ───────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cfg.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "HEAD", "OPTIONS"],
        allow_headers=["*"],
    )

    # ── Request logging middleware ────────────────────────────────────────────

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log each request with its duration and tag it with a request ID."""
        request_id = str(uuid.uuid4())[:8]
        start = time.monotonic()
        path = request.url.path

        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000

        response.headers["X-Request-ID"] = request_id

        if _cfg.log_format == "json":
            _logger.info(
                "request",
                extra={
                    "method": request.method,
                    "path": path,
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 1),
                    "request_id": request_id,
                },
            )
        else:
            _logger.info(
                "method=%s path=%s status=%d duration_ms=%.1f rid=%s",
                request.method, path, response.status_code, duration_ms,
                request_id,
            )
        return response

    # ── Security headers ──────────────────────────────────────────────────────

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        """Add Content-Security-Policy, X-Content-Type-Options, and X-Frame-Options."""
        response = await call_next(request)
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self'; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data:; "
            "connect-src 'self';"
        )
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response

    # ── Error handling ────────────────────────────────────────────────────────

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Catch unhandled exceptions and return JSON instead of HTML traceback."""
        _logger.error("unhandled_error path=%s", request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="Internal server error", detail=str(exc), status_code=500,
            ).model_dump(),
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(
                error="Bad request", detail=str(exc), status_code=400,
            ).model_dump(),
        )

    # ── Health check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["meta"], summary="Health check")
    def health():
        """Return 200 OK if the API is running and can reach the database."""
        db = get_db_path()
        if not db.exists():
            return JSONResponse(
                status_code=503,
                content={"status": "no_database", "database": str(db)},
            )
        try:
            conn = sqlite3.connect(str(db))
            try:
                count = conn.execute("SELECT COUNT(*) FROM operations").fetchone()[0]
            finally:
                conn.close()
        except sqlite3.Error as e:
            return JSONResponse(
                status_code=503,
                content={"status": "degraded", "error": str(e)},
            )
        return {"status": "ok", "database": str(db), "operations": count}

    # ── Static files + Jinja2 templates ───────────────────────────────────────
    static_dir = _ROOT / "static"
    tmpl_dir = templates_dir or (_ROOT / "templates")

    if static_dir.exists():
        app.mount(f"{prefix}/static", StaticFiles(directory=str(static_dir)), name="static")

    app.state.templates = build_templates(tmpl_dir, context_path=ctx)

    # ── Register routers ──────────────────────────────────────────────────────
    app.include_router(account.router, prefix=prefix)
    app.include_router(use.router, prefix=prefix)
    app.include_router(frontend_routes.router, prefix=prefix)

    frontend_routes.register_error_handlers(app)

    return app


# Singleton instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.app:app",
        host=_cfg.api_host,
        port=_cfg.api_port,
        reload=True,
        log_level="info",
    )
