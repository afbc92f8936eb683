"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import router
from .services import DetectionEngine
from .exceptions import ConfigurationMissing
from .config import get_settings
from . import __version__

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - handles startup and shutdown."""
    # Startup
    logger.info("Starting ChefLens Ingredient Detection API...")
    settings = get_settings()

    # Tests may install their own engine before startup
    if getattr(app.state, "engine", None) is None:
        try:
            app.state.engine = DetectionEngine.from_settings(settings)
        except ConfigurationMissing as e:
            app.state.engine = None
            logger.error(f"Detection engine not available: {e}")

    logger.info(f"API ready - Version {__version__}")

    yield

    # Shutdown
    logger.info("Shutting down ChefLens Ingredient Detection API...")
    engine = getattr(app.state, "engine", None)
    if engine is not None:
        engine.close()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="""
## Refrigerator Ingredient Detection API

Detects the ingredients in a photo of a refrigerator using an image-recognition service.

### Modes
- **label**: whole-image labels, filtered to distinct ingredients
- **objects**: localized objects above the confidence threshold
- **web**: web entities and best-guess labels (packaged products)
- **text**: ingredient names read from package text
- **combined**: objects, then text/web/label on each region, merged and ranked

### Quick Start
1. Use `/health` to check API status
2. Use `/detect` with an image and a `mode` form field
        """,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.engine = None

    # Configure CORS - restrict to allowed frontend origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Include routes
    app.include_router(router, prefix="/api/v1")

    # Root redirect to docs
    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": "ChefLens Ingredient Detection API",
            "version": __version__,
            "docs": "/docs"
        }

    return app


# Create app instance
app = create_app()
