"""
Budget Ads Platform API - Main Application.

FastAPI application with CORS enabled for frontend communication.

The project `.env` is loaded before anything reads the environment, so
LOG_LEVEL and PUBLIC_SITE_URL set there configure logging and the allowed
CORS origin the same way they configure Settings.
"""

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from api.errors import register_error_handlers
from api.routers import ads, checkout, pricing, webhooks
from config.settings import DEFAULT_LOG_LEVEL, DEFAULT_PUBLIC_SITE_URL, ENV_PATH


def create_app(site_url: Optional[str] = None, log_level: Optional[str] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        site_url: Public site origin allowed by CORS (default: PUBLIC_SITE_URL)
        log_level: Root log level (default: LOG_LEVEL)
    """
    site_url = (site_url or os.getenv("PUBLIC_SITE_URL") or DEFAULT_PUBLIC_SITE_URL).rstrip("/")
    log_level = (log_level or os.getenv("LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Budget Ads Platform API",
        description="REST API for posting, paying for and moderating local classified ads",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[site_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    @app.get("/health", tags=["Health"])
    def health_check():
        """
        Health check endpoint.

        Returns the API status and version.
        """
        return {
            "status": "healthy",
            "version": __version__,
            "service": "budget-ads-platform-api"
        }

    @app.get("/", tags=["Root"])
    def root():
        """
        Root endpoint with API information.
        """
        return {
            "message": "Budget Ads Platform API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health"
        }

    app.include_router(pricing.router, prefix="/api/v1", tags=["Pricing"])
    app.include_router(checkout.router, prefix="/api/v1", tags=["Checkout"])
    app.include_router(webhooks.router, prefix="/api/v1", tags=["Webhooks"])
    app.include_router(ads.router, prefix="/api/v1", tags=["Ads"])
    app.include_router(ads.admin_router, prefix="/api/v1", tags=["Moderation"])

    return app


load_dotenv(dotenv_path=ENV_PATH)
app = create_app()
