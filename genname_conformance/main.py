"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from genname_conformance import __version__
from genname_conformance.api.routes import health_router, scenarios_router
from genname_conformance.core.config import get_settings
from genname_conformance.core.errors import ConformanceError
from genname_conformance.core.logging import configure_logging
from genname_conformance.core.telemetry import init_telemetry, instrument_fastapi


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: configure logging and telemetry."""
    settings = get_settings()
    configure_logging(settings.log_level)
    init_telemetry(project_id=settings.gcp_project_id)
    yield


app = FastAPI(
    title="Generate-name Conformance",
    description="Runs the Knative Serving generateName conformance scenarios",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(scenarios_router)

instrument_fastapi(app)


@app.exception_handler(ConformanceError)
async def conformance_error_handler(request: Request, exc: ConformanceError) -> JSONResponse:
    """Map custom exceptions to JSON response."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_code,
            "message": exc.message,
            "details": exc.details,
        },
    )


@app.get("/")
async def root() -> dict:
    return {"service": "genname-conformance", "docs": "/docs"}
