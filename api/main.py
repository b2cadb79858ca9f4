"""
FastAPI main application for the Room Plant Editor
"""
import logging
import os
import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

# Add api directory to path for imports (works both locally and when run from the repo root)
api_dir = os.path.dirname(os.path.abspath(__file__))
if api_dir not in sys.path:
    sys.path.insert(0, api_dir)

from core.config import settings  # noqa: E402
from core.logging import setup_logging  # noqa: E402
from middleware import RequestLoggingMiddleware  # noqa: E402
from routers import plants  # noqa: E402

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info(f"Starting {settings.app_name}...")

    openai_key = settings.openai_api_key
    if openai_key:
        key_preview = f"{openai_key[:7]}...{openai_key[-4:]}" if len(openai_key) > 11 else "***"
        logger.info(f"✅ OPENAI_API_KEY is set: {key_preview}")
    else:
        logger.error("❌ OPENAI_API_KEY is NOT set - plant edits will fail!")

    logger.info(
        f"Edit pipeline: model={settings.openai_image_model}, size={settings.edit_image_size}, "
        f"mask band={settings.mask_band_fraction:.0%}"
    )

    yield

    logger.info(f"Shutting down {settings.app_name}...")


app = FastAPI(
    title=settings.app_name,
    description="Adds indoor plants to room photos with a masked image edit",
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url="/redoc" if settings.environment == "development" else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestLoggingMiddleware)


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers"""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": settings.version,
        "openai_configured": bool(settings.openai_api_key),
    }


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "name": settings.app_name,
        "version": settings.version,
        "docs": "/docs" if settings.environment == "development" else None,
        "endpoints": {
            "generate_plant": "/api/generate-plant",
        },
    }


app.include_router(plants.router, prefix="/api", tags=["plants"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=settings.debug)
