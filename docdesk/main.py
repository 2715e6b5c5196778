from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from .api.routes import router as api_router
from .core.config import get_settings
from .core.errors import DocdeskError
from .core.logging import configure_logging, get_logger
from .dependencies import get_session_registry_singleton

settings = get_settings()
configure_logging(settings.observability.log_level, json_output=settings.environment != "local")
logger = get_logger(name=__name__)


async def docdesk_error_handler(request: Request, exc: DocdeskError) -> JSONResponse:
    logger.info(
        "request_rejected",
        path=request.url.path,
        error_type=type(exc).__name__,
        status_code=exc.status_code,
        detail=str(exc),
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    app.state.sessions = get_session_registry_singleton(settings)
    logger.info("app_started", environment=settings.environment)
    try:
        yield
    finally:
        logger.info("app_stopped", active_sessions=len(app.state.sessions))


app = FastAPI(title="Docdesk Backend", version="0.1.0", lifespan=app_lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.frontend_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_exception_handler(DocdeskError, docdesk_error_handler)  # type: ignore[arg-type]
app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/", tags=["health"])
async def root() -> dict[str, str]:
    return {"message": "Docdesk backend running"}


@app.get("/metrics", tags=["observability"])
async def metrics() -> Response:
    if not settings.observability.prometheus_enabled:
        return Response(status_code=404)
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
