"""Main application module for the classroom attendance service."""
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from classroll.api import router as api_v1_router
from classroll.core.config import Settings
from classroll.core.container import ServiceContainer
from classroll.core.exceptions import ServiceNotInitializedError
from classroll.core.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    container: Optional[ServiceContainer] = None,
) -> FastAPI:
    """Build the FastAPI application around a service container.

    Args:
        settings: Application settings; loaded from the environment when None
        container: Pre-built container (tests inject fakes); built from settings when None
    """
    container = container or ServiceContainer(settings)
    settings = container.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[Any, None]:
        """Handle application startup and shutdown events."""
        logger.info(
            "Starting up attendance service",
            version=settings.VERSION,
            environment=settings.ENVIRONMENT,
        )

        await container.initialize()
        logger.info("Initialized application services", models_ready=container.models_ready)

        yield

        logger.info("Shutting down attendance service")
        await container.cleanup()
        logger.info("Cleaned up application resources")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        clear_request_context()
        bind_request_context(request_id=request_id, path=request.url.path)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    app.include_router(api_v1_router, prefix=settings.API_V1_STR)

    @app.exception_handler(ServiceNotInitializedError)
    async def service_not_initialized(request: Request, exc: ServiceNotInitializedError) -> JSONResponse:
        logger.error("Request served before startup completed", path=request.url.path)
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.get("/health")
    async def health_check() -> dict:
        """Basic health check endpoint.

        Returns:
            dict: Health status and face model readiness
        """
        return {
            "status": "healthy",
            "models_ready": container.models_ready,
            "identities": len(container.registry) if container.registry is not None else 0,
        }

    return app


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    settings = Settings()
    setup_logging(settings)
    uvicorn.run(create_app(settings), host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
