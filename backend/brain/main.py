from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .core.config import get_settings
from .core.logging import configure_logging, get_logger, get_trace_id
from .core.middleware import TraceIDMiddleware
from .routes import chat, health, metrics, webhooks
from .services.orchestration.orchestrator import get_orchestrator

settings = get_settings()
configure_logging(log_level=settings.log_level, json_output=settings.log_json)

logger = get_logger(__name__)

app = FastAPI(
    title="AI Brain Orchestrator API",
    description="Multi-source workspace chat assistant: intent routing and data-source agents",
    version=__version__,
)

# CORS for local dev; restrict in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Must be added after CORS so it wraps the application routes.
app.add_middleware(TraceIDMiddleware)


@app.on_event("startup")
async def startup_event():
    """Build the orchestrator eagerly so configuration problems surface at boot."""
    logger.info("app_startup_started")
    orchestrator = get_orchestrator()
    logger.info(
        "app_startup_completed",
        debug=settings.debug,
        default_agent=settings.default_agent,
        synthesis_enabled=orchestrator.completion is not None,
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Close cached agents."""
    logger.info("app_shutdown_started")
    await get_orchestrator().close()
    logger.info("app_shutdown_completed")


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
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
        },
    )
    if trace_id:
        response.headers["X-Trace-ID"] = trace_id
    return response


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
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
        },
    )
    if trace_id:
        response.headers["X-Trace-ID"] = trace_id
    return response


app.include_router(health.router, prefix="/health", tags=["Health"])
app.include_router(chat.router, prefix="/chat", tags=["Chat"])
app.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])
app.include_router(metrics.router, prefix="/metrics", tags=["Metrics"])
