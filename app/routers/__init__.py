"""Routers package for API endpoints.

This package contains the FastAPI routers for the Account Mapping service.
"""

from app.routers import accounts

__all__ = ["accounts"]
