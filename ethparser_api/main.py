"""
Ethereum Transaction Parser API - Main Application.

This is the main entry point for the FastAPI application.
It configures the application, starts the parser loop and registers
all API routes.

Usage:
    uvicorn ethparser_api.main:app --host 0.0.0.0 --port 8000
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import time

from ethparser_api.core.config import get_settings
from ethparser_api.core.parser_runtime import ParserRuntime, build_parser_runtime
from ethparser_api.api.routes import addresses, blocks, health


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Builds the parser runtime if none was injected, starts the parser
    loop on startup and stops it on shutdown.
    """
    # Startup
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} v{settings.app_version}...")

    if app.state.parser_runtime is None:
        app.state.parser_runtime = build_parser_runtime(settings)
    runtime: ParserRuntime = app.state.parser_runtime
    runtime.start()

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")
    runtime.stop()


def create_app(parser_runtime: Optional[ParserRuntime] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        parser_runtime: Runtime to serve, built from settings at startup if omitted

    Returns:
        FastAPI: Configured application
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="""
## Ethereum Transaction Parser API

This API provides endpoints for:

- **Addresses**: Subscribe addresses and list the transactions involving them
- **Blocks**: Follow how far the chain has been processed

Only blocks processed after an address was subscribed are searched for it.
        """,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan
    )
    app.state.parser_runtime = parser_runtime

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        """Add the request processing time in the X-Process-Time header."""
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(round(process_time, 4))
        return response

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Global exception handler for unhandled exceptions.

        Logs the error and returns a standardized error response.
        """
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "INTERNAL_SERVER_ERROR",
                "message": "An unexpected error occurred",
                "detail": str(exc) if settings.debug else None
            }
        )

    # Register routers
    app.include_router(health.router)
    app.include_router(addresses.router, prefix=settings.api_prefix)
    app.include_router(blocks.router, prefix=settings.api_prefix)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "ethparser_api.main:app",
        host="0.0.0.0",
        port=8000
    )
