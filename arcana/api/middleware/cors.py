"""
CORS Configuration

Cross-origin settings for the single-page frontend.
"""

from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .logging import REQUEST_ID_HEADER


def allowed_origins(environment: str, configured: List[str]) -> List[str]:
    """
    Origins allowed to call the API.

    Development accepts any origin; other environments only the
    configured list (CORS_ALLOWED_ORIGINS), which may be empty.
    """
    if environment == "development":
        return ["*"]
    return list(configured)


def setup_cors(app: FastAPI, environment: str, origins: List[str]) -> None:
    """
    Configure CORS middleware for the FastAPI application.

    Args:
        app: FastAPI application instance.
        environment: Deployment environment name.
        origins: Configured allowed origins.
    """
    allow_origins = allowed_origins(environment, origins)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        # Wildcard origins cannot be combined with credentials
        allow_credentials="*" not in allow_origins,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
        max_age=600,
    )
