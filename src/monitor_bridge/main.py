"""
Monitor Bridge - Main FastAPI Application

Exposes a request/response HTTP API over persistent, authenticated
Socket.IO connections to monitoring servers.

Key Features:
- POST /emit: emit an event and return the server's acknowledgement
- POST /monitors, POST /groups: read the server-pushed monitor list
- One pooled connection per destination, established on first use
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import router
from .core.config import Settings, settings
from .core.errors import BridgeError, ValidationError
from .services.bridge import MonitorBridge
from .transports.base import TransportFactory

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _missing_fields(exc: RequestValidationError) -> List[str]:
    fields: List[str] = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        name = ".".join(loc) or "body"
        if name not in fields:
            fields.append(name)
    return fields


def create_app(
    config: Optional[Settings] = None,
    transport_factory: Optional[TransportFactory] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Settings to use (defaults to the environment-loaded settings)
        transport_factory: Builds transports per destination (defaults to Socket.IO)
    """
    config = config or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        Application lifespan manager.

        Creates the bridge on startup and closes every connection on shutdown.
        """
        logger.info(f"Starting {config.SERVICE_NAME} on port {config.PORT}")
        app.state.bridge = MonitorBridge(config=config, transport_factory=transport_factory)

        yield

        logger.info(f"Shutting down {config.SERVICE_NAME}")
        await app.state.bridge.close()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="Monitor Bridge",
        description="HTTP to Socket.IO bridge with acknowledgements and monitor caching",
        version=config.SERVICE_VERSION,
        docs_url="/docs" if not config.IS_PROD else None,
        redoc_url="/redoc" if not config.IS_PROD else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    @app.get("/", tags=["Info"])
    async def root() -> Dict[str, str]:
        """Root endpoint with service info."""
        response = {
            "service": config.SERVICE_NAME,
            "version": config.SERVICE_VERSION,
            "status": "operational",
        }
        if not config.IS_PROD:
            response["docs"] = "/docs"
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Report missing or malformed request fields as 400."""
        fields = _missing_fields(exc)
        error = ValidationError(f"Missing or invalid fields: {', '.join(fields)}")
        logger.info(f"Rejected {request.url.path}: {error.message}")
        body = error.to_response()
        body["fields"] = fields
        return JSONResponse(status_code=error.status_code, content=body)

    @app.exception_handler(BridgeError)
    async def bridge_exception_handler(request: Request, exc: BridgeError) -> JSONResponse:
        """Turn bridge errors into their structured responses."""
        logger.warning(f"{request.url.path} failed: {exc.__class__.__name__}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled errors."""
        logger.error(f"Unhandled error: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc) if config.DEBUG else "An unexpected error occurred",
            },
        )

    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
