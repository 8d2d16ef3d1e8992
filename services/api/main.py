"""
JudBox - Archive Box Inventory API
FastAPI + async SQLAlchemy (SQLite by default)

Install dependencies:
pip install -e .

Run server:
uvicorn main:app --host 0.0.0.0 --port 8000
"""

from contextlib import asynccontextmanager
import contextvars
import logging
import os
import time
import uuid

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from adapters.sql import SqlInventoryStore
from core.deps import get_store, set_store
from core.errors import AuthenticationError, InventoryError
from routers import boxes, documents, export, processes, reports
from schemas import HealthCheck
from settings import get_settings

# Request context for tracing
request_id_var = contextvars.ContextVar("request_id", default=None)

settings = get_settings()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"


class RequestContextFormatter(logging.Formatter):
    """Stamps each record with the id of the request being served ("-" outside one)."""

    def format(self, record: logging.LogRecord) -> str:
        record.request_id = request_id_var.get() or "-"
        return super().format(record)


# Configure logging
_handler = logging.StreamHandler()
_handler.setFormatter(RequestContextFormatter(LOG_FORMAT))
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    handlers=[_handler],
)
logger = logging.getLogger(__name__)

ALLOWED_ORIGINS = settings.get_origins_list()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("JudBox API starting up...")
    logger.info(f"Database: {settings.db_url.split('://')[0]}")
    logger.info(f"Allowed origins: {ALLOWED_ORIGINS}")

    store = SqlInventoryStore.from_url(
        settings.db_url,
        echo=settings.db_echo,
        default_localizacao=settings.default_localizacao,
    )
    await store.create_schema()
    set_store(store)
    app.state.started_at = time.time()
    try:
        yield
    finally:
        logger.info("JudBox API shutting down...")
        set_store(None)
        await store.dispose()


app = FastAPI(
    title="JudBox Inventory API",
    description="Archive box inventory: CSV exports, report data and PDF reports",
    version="1.0.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def request_tracing_middleware(request: Request, call_next):
    """Add request_id and timing to all requests."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
    request_id_var.set(request_id)
    started = time.time()

    response = await call_next(request)

    latency_ms = round((time.time() - started) * 1000, 2)
    # Streaming bodies are still being produced at this point
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} "
        f"({latency_ms} ms)"
    )
    response.headers["X-Request-ID"] = request_id
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Request-ID"],
)


@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: [{exc.code}] {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: [{exc.code}] {exc.message}")

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code, "details": exc.details},
        headers=headers,
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ============================================================================
# ENDPOINTS
# ============================================================================

@app.get("/health", response_model=HealthCheck)
async def health_check():
    """Health check endpoint (no auth)."""
    try:
        store = get_store()
        ping = getattr(store, "ping", None)
        if ping is not None:
            await ping()
        return HealthCheck(database=settings.db_url.split("://")[0], version=app.version)
    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "error": str(e)},
        )


app.include_router(export.router)
app.include_router(reports.router)
app.include_router(boxes.router)
app.include_router(processes.router)
app.include_router(documents.router)


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run("main:app", host="0.0.0.0", port=port, reload=False)
