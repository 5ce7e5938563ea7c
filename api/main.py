"""
FastAPI application entrypoint for the CRO page analysis API.

This module sets up the FastAPI app, configures logging, and registers
route handlers.
"""

from __future__ import annotations

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import analyses, screenshots
from shared.config import get_config
from shared.logging import configure_logging_from_config

load_dotenv()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    config = get_config()

    # Configure structured logging
    configure_logging_from_config(config)

    app = FastAPI(
        title="CRO Page Analysis API",
        description="API for capturing landing pages and generating CRO insights",
        version="0.1.0",
    )

    # CORS middleware (permissive; tighten per deployment)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register route handlers
    app.include_router(analyses.router)
    app.include_router(screenshots.router)

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    return app


# Create the app instance
app = create_app()
