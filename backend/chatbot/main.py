import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.logging import configure_logging, get_logger, get_trace_id
from .core.middleware import TraceIDMiddleware
from .routes import chat, health, metrics
from .services.ai.orchestration import get_orchestrator
from .services.ai.registry import load_env_file


def setup_logging() -> None:
    """Load .env, then configure logging from LOG_LEVEL and LOG_JSON."""
    load_env_file()
    # Use JSON output in production (containerized), console output in development
    log_level = os.getenv("LOG_LEVEL", "INFO")
    json_output = os.getenv("LOG_JSON", "true").lower() == "true"
    configure_logging(log_level=log_level, json_output=json_output)


setup_logging()

logger = get_logger(__name__)

app = FastAPI(
    title="Chatbot Completion API",
    description="Multi-provider AI chat completions with automatic fallback",
    version="1.0.0"
)

# CORS for local dev; restrict in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Must be added after CORS middleware
app.add_middleware(TraceIDMiddleware)


@app.on_event("startup")
async def startup_event():
    """Build the backend registry and orchestrator on application startup."""
    logger.info("app_startup_started")

    orchestrator = get_orchestrator()
    enabled = orchestrator.registry.list_enabled()
    if enabled:
        logger.info(
            "app_startup_backends_ready",
            backends=[config.id.value for config in enabled],
        )
    else:
        logger.warning(
            "app_startup_no_backends",
            message="No completion backend has an API key. Every chat request will fail until one is configured.",
        )

    logger.info("app_startup_completed")


@app.on_event("shutdown")
async def shutdown_event():
    """Flush pending telemetry on shutdown."""
    logger.info("app_shutdown_started")
    drain = getattr(get_orchestrator().telemetry, "drain", None)
    if drain is not None:
        await drain()
    logger.info("app_shutdown_completed")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions, including 404s for unknown routes."""
    trace_id = get_trace_id()

    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
        method=request.method,
    )
    response = JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "status_code": exc.status_code,
            "trace_id": trace_id,
        }
    )
    if trace_id:
        response.headers["X-Trace-ID"] = trace_id
    return response


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    trace_id = get_trace_id()

    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )
    response = JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "status_code": 500,
            "trace_id": trace_id,
        }
    )
    if trace_id:
        response.headers["X-Trace-ID"] = trace_id
    return response


app.include_router(health.router, prefix="/health", tags=["Health"])
app.include_router(chat.router, prefix="/chat", tags=["Chat"])
app.include_router(metrics.router, prefix="/metrics", tags=["Metrics"])
