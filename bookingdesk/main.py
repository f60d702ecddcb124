"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bookingdesk.api.deps import DeskServices, build_services
from bookingdesk.api.v1.router import api_router
from bookingdesk.config import configure_logging, settings
from bookingdesk.core.exceptions import AppException
from bookingdesk.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware


def create_application(services: DeskServices | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        services: Pre-built service graph (tests inject one with a fake backend)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan events."""
        yield
        await app.state.services.backend.close()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Booking desk: approvals, checkout and QR check-in verification",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.services = services or build_services()

    # Exception handlers
    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        """Handle custom application exceptions."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "kind": exc.kind.value},
            headers=exc.headers,
        )

    # Middleware (order matters - first added = last executed)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    return app


configure_logging()
app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bookingdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
