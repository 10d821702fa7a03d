from __future__ import annotations

import logging

from fastapi import FastAPI

from src.application.dtos.common_dto import HealthResponse, RootResponse
from src.infrastructure.api.middlewares import add_default_middlewares, add_exception_handlers
from src.infrastructure.api.routes.auth_routes import router as auth_router
from src.infrastructure.api.routes.image_routes import router as image_router
from src.infrastructure.config import Settings, get_settings


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)
    app = FastAPI(
        title="Couple Media Backend",
        version="0.1.0",
        description="""
        ## Couple Media Backend API

        FastAPI backend that stores a couple's shared photos: uploads are
        normalized to JPEG, thumbnailed, tagged with EXIF capture time and GPS
        position, and recorded only once every file is safely on disk.

        ### Features
        - **Authentication**: Bearer tokens validated with Supabase
        - **Ingestion**: JPG, PNG, GIF and HEIC uploads with rollback on failure
        - **Image Management**: List, fetch, download, edit and delete a couple's photos

        ### Authentication
        All endpoints (except root and health) require authentication via Bearer token
        in the Authorization header:
        ```
        Authorization: Bearer your-jwt-token
        ```

        ### Error Responses
        - **400 Bad Request**: Missing file, unsupported extension or malformed field
        - **401 Unauthorized**: Missing or invalid authentication token
        - **403 Forbidden**: User does not belong to the couple
        - **404 Not Found**: Requested resource does not exist or user doesn't have access
        - **413 Payload Too Large**: Upload exceeds the size limit
        - **422 Unprocessable Entity**: Validation error, or the image could not be ingested
        - **500 Internal Server Error**: Unexpected server error
        """,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )
    app.dependency_overrides[get_settings] = lambda: settings
    add_default_middlewares(app, settings)
    add_exception_handlers(app)

    @app.get(
        "/",
        response_model=RootResponse,
        summary="API Root",
        description="Get basic information about the API",
        response_description="API information including status and version",
    )
    def root():
        """Get API root information."""
        return {"status": "ok", "service": "couple-media-backend", "version": app.version}

    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="Check if the API service is running and healthy",
        response_description="Health status of the API service",
    )
    def health():
        """Check API health status."""
        return {"status": "healthy"}

    app.include_router(auth_router)
    app.include_router(image_router)
    return app


app = create_app()
