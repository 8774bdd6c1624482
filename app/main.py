"""FastAPI application for the Account Mapping service.

This module provides the main FastAPI application instance with CORS
middleware configuration and router registration for executive discovery
and account mapping.
"""

# Load environment variables before any other imports
from dotenv import load_dotenv

load_dotenv()

import logging
import os
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# API version and metadata
API_VERSION = "0.1.0"
API_TITLE = "Account Mapping API"
API_DESCRIPTION = """
Account Mapping API.

This API provides endpoints for:
- Discovering the executives of a target company from public sources
- Inferring a reporting hierarchy and sales-stakeholder roles
- Previewing the search and fetch plan for a company
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Logs which discovery providers are configured on startup and closes
    their network clients on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup is complete.
    """
    # Startup: Initialize resources
    from app.services import get_openrouter_service, get_web_search_service

    search_service = get_web_search_service()
    logger.info(f"Search service configured: {search_service.is_configured}")
    if search_service.tavily_api_key:
        logger.info("Tavily API is configured")
    if search_service.serp_api_key:
        logger.info("SerpAPI is configured")
    if not search_service.is_configured:
        logger.warning("No search APIs configured - discovery will return empty account maps")
    if get_openrouter_service().is_configured:
        logger.info("OpenRouter is configured for page extraction")
    logger.info("Application startup complete")

    yield

    # Shutdown: Clean up resources
    logger.info("Shutting down application...")
    from app.services import get_account_mapping_service

    await get_account_mapping_service().close()
    await get_openrouter_service().close()
    logger.info("Discovery services closed")


# Create FastAPI application instance
app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# Configure CORS middleware
# Allow requests from Vite dev server (localhost:5173) by default
# Can be overridden via CORS_ORIGINS environment variable (comma-separated list)
_default_origins = [
    "http://localhost:5173",  # Vite dev server
    "http://127.0.0.1:5173",  # Vite dev server (alternative)
    "http://localhost:3000",  # Alternative dev server
    "http://127.0.0.1:3000",  # Alternative dev server
]

_cors_origins_env = os.getenv("CORS_ORIGINS", "")
if _cors_origins_env:
    ALLOWED_ORIGINS = [
        origin.strip() for origin in _cors_origins_env.split(",") if origin.strip()
    ]
else:
    ALLOWED_ORIGINS = _default_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "Accept",
        "Origin",
        "X-Requested-With",
    ],
    expose_headers=["Content-Length", "Content-Type"],
)


@app.get("/", tags=["Root"])
async def root() -> dict[str, Any]:
    """Root endpoint returning API information.

    Returns:
        Dict containing API metadata including name, version,
        description, and available documentation URLs.
    """
    return {
        "name": API_TITLE,
        "version": API_VERSION,
        "description": "Executive discovery and account mapping",
        "docs": {
            "swagger": "/docs",
            "redoc": "/redoc",
            "openapi": "/openapi.json",
        },
        "status": "operational",
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for monitoring and load balancers.

    Returns:
        Dict with status indicating the API is healthy.
    """
    return {"status": "healthy"}


# Router registration
from app.routers import accounts

app.include_router(accounts.router, prefix="/api", tags=["account-map"])
