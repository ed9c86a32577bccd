"""
FastAPI application for speaking coach video analysis.

Provides HTTP API for cached, per-type feedback on presentation videos.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from speaking_coach import __version__
from speaking_coach.api import routes
from speaking_coach.config import get_settings, is_provider_enabled
from speaking_coach.database import close_db, init_db
from speaking_coach.logging_config import setup_logging
from speaking_coach.models.schemas import AnalysisValidationError
from speaking_coach.services.ai_clients import VideoAnalyzerClient
from speaking_coach.services.error_classifier import ErrorClassifier

# Configure logging before anything else
settings = get_settings()
setup_logging(settings)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Initializes the database and logs analyzer availability.
    """
    logger.info("Starting Speaking Coach API")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Model: {settings.gemini_model}")
    logger.info(f"Video root: {settings.video_root}")

    await init_db(settings)

    if is_provider_enabled(settings):
        async with VideoAnalyzerClient.from_settings(settings) as client:
            available = await client.health_check()
            logger.info(f"Analyzer: {settings.external_ai_api_url}, available: {available}")
    else:
        logger.info("Analyzer disabled, using direct model analysis")

    yield

    await close_db()
    logger.info("Shutting down Speaking Coach API")


app = FastAPI(
    title="Speaking Coach API",
    description="API for multi-type feedback on presentation videos",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(routes.router)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Report malformed request bodies as validation failures.

    Field details are logged, the caller gets the fixed validation response.
    """
    fields = ", ".join(".".join(str(part) for part in err["loc"]) for err in exc.errors())
    logger.warning(f"Rejected request to {request.url.path}: invalid {fields}")

    status_code, content = ErrorClassifier.to_response(
        AnalysisValidationError(f"Invalid request body: {fields}")
    )
    return JSONResponse(status_code=status_code, content=content)


@app.get("/health")
async def health_check() -> dict:
    """
    Health check endpoint.

    Returns:
        Basic health status
    """
    return {"status": "ok"}


@app.get("/health/services")
async def services_health() -> dict:
    """
    Check external services.

    Returns:
        Analyzer availability and model configuration status
    """
    settings = get_settings()
    provider_enabled = is_provider_enabled(settings)
    analyzer_available = False

    if provider_enabled:
        async with VideoAnalyzerClient.from_settings(settings) as client:
            analyzer_available = await client.health_check()

    return {
        "analyzer_enabled": provider_enabled,
        "analyzer": analyzer_available,
        "analyzer_url": settings.external_ai_api_url if provider_enabled else None,
        "model_configured": bool(settings.gemini_api_key.strip()),
        "model": settings.gemini_model,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "speaking_coach.main:app",
        host="0.0.0.0",
        port=8801,
        reload=True,
    )
