"""
Main FastAPI application entry point.
"""
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tribunal import __version__
from tribunal.api import api_router
from tribunal.core.config import settings
from tribunal.core.errors import ErrorKind, HTTP_STATUS_BY_KIND, ModerationError, RateLimitError
from tribunal.core.logging import REQUEST_ID_HEADER, bind_request, setup_logging
from tribunal.db.session import engine

# Setup logging
setup_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup and shutdown events.
    """
    logger.info(
        "Starting Tribunal API",
        version=__version__,
        debug=settings.api_debug,
    )

    yield

    logger.info("Shutting down Tribunal API")
    await engine.dispose()


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Moderation, sanction and appeal lifecycle engine",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ModerationError)
async def moderation_error_handler(request: Request, exc: ModerationError):
    """Map a business rejection to its HTTP status and error body."""
    logger.info(
        "Request rejected",
        path=request.url.path,
        method=request.method,
        kind=exc.kind.value,
        detail=exc.message,
    )
    headers = None
    if isinstance(exc, RateLimitError) and exc.retry_after:
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are validation errors like any other."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=HTTP_STATUS_BY_KIND[ErrorKind.VALIDATION],
        content={
            "error": ErrorKind.VALIDATION.value,
            "detail": f"{location}: {message}" if location else message,
        },
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unhandled exceptions."""
    from sqlalchemy.exc import TimeoutError as SQLTimeoutError

    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
    )

    # Connection pool exhaustion
    if isinstance(exc, SQLTimeoutError):
        return JSONResponse(
            status_code=503,
            content={"detail": "Service temporarily unavailable due to high load. Please try again in a moment."},
        )

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Include API routes
app.include_router(api_router, prefix=settings.api_prefix)


# Middleware for request logging
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Bind a request id to the logging context and log each request."""
    request_id = bind_request(request.headers.get(REQUEST_ID_HEADER), request.method, request.url.path)
    logger.debug("Request")
    response = await call_next(request)
    logger.debug("Response", status=response.status_code)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tribunal.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
    )
