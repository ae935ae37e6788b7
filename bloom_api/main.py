"""
Bloom status API

Small read-only HTTP surface served by uvicorn inside the bot's event loop:
/status, /uptime, /health and /instances.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import os
from typing import TYPE_CHECKING

# Logtail direct integration
from logtail import LogtailHandler

from bloom import __version__
from bloom_api.src.middlewares.logging_middleware import LoggingMiddleware
from bloom_api.src.api import router as base_router
from bloom_api.src.status.api import router as status_router

if TYPE_CHECKING:
    from bloom.bot import Bloom


def setup_api_logging() -> logging.Logger:
    """Console logging for the API, plus logtail when configured"""
    source_token = os.getenv('LOGTAIL_SOURCE_TOKEN')
    host = os.getenv('LOGTAIL_HOST')

    logger = logging.getLogger("bloom.api")
    logger.handlers = []  # Clear existing handlers
    logger.propagate = False

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter('%(asctime)s - API - %(levelname)s - %(message)s'))
    logger.addHandler(console_handler)

    if source_token and host:
        logger.setLevel(logging.DEBUG)
        logger.addHandler(LogtailHandler(source_token=source_token, host=host))
        logger.info("✅ Logtail handler added to API logger")
    else:
        logger.setLevel(logging.INFO)
    return logger


def create_app(bloom: 'Bloom') -> FastAPI:
    """
    Build the status app bound to a running Bloom runtime

    Args:
        bloom: Runtime whose rotation manager, supervisor and cache are reported
    """
    api_logger = setup_api_logging()

    app = FastAPI(
        title=f"{bloom.settings.notifications.bot_name} Status API",
        description="Read-only status of the multi-instance bot",
        version=__version__,
        docs_url="/docs",
        redoc_url=None,
    )
    app.state.bloom = bloom

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    app.include_router(base_router)
    app.include_router(status_router)

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": f"{bloom.settings.notifications.bot_name} Status API",
            "version": __version__,
            "status": "/status",
            "instances": "/instances",
            "health": "/health",
        }

    api_logger.info(f"🚀 {bloom.settings.notifications.bot_name} status API ready")
    return app
