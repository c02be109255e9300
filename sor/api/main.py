"""FastAPI application for the order router."""

import logging
import os

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from sor import __version__
from sor.api.endpoints import router

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("SOR_HOST", "0.0.0.0")
PORT = int(os.environ.get("SOR_PORT", "8000"))
DEBUG = os.environ.get("SOR_DEBUG", "false").lower() in ("true", "1", "yes")

# Maximum request body size (10 MB); pool snapshots ride in the body
MAX_REQUEST_SIZE = 10 * 1024 * 1024

app = FastAPI(
    title="Smart Order Router (Python)",
    description="Routes token swaps across weighted, stable, linear and element pools",
    version=__version__,
)


@app.middleware("http")
async def limit_request_size(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Reject requests with body larger than MAX_REQUEST_SIZE."""
    content_length = request.headers.get("content-length")
    if content_length and int(content_length) > MAX_REQUEST_SIZE:
        return JSONResponse(status_code=413, content={"detail": "Request too large"})
    return await call_next(request)


app.include_router(router)


@app.get("/health")
async def health() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


def configure_logging(debug: bool = DEBUG) -> None:
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if debug else logging.INFO
        ),
    )


def run() -> None:
    """Run the router API server.

    Configuration via environment variables:
    - SOR_HOST: Host to bind to (default: 0.0.0.0)
    - SOR_PORT: Port to bind to (default: 8000)
    - SOR_DEBUG: Enable debug logging and reload mode (default: false)
    """
    configure_logging()
    uvicorn.run(
        "sor.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
