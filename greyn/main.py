"""
Greyn Eco Platform

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from greyn.api.middleware.rate_limit import RateLimitMiddleware
from greyn.api.middleware.request_id import RequestIdMiddleware
from greyn.api.v1 import router as api_v1_router
from greyn.config import get_settings
from greyn.database import close_db, init_db
from greyn.kernel.errors import ConflictError, NotFoundError
from greyn.logging_config import configure_logging, get_logger
from greyn.schemas.common import HealthResponse

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    for warning in settings.validate_environment():
        logger.warning("Configuration: %s", warning)

    await init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutting down...")
    await close_db()


app = FastAPI(
    title=settings.project_name,
    description="""
    Greyn Eco Platform API

    Multi-portal platform for NGOs, corporates, the carbon marketplace,
    individual investors and administrators.

    ## Features

    - **Portal identity**: per-role signup and login with JWT sessions
    - **Role routing**: the same guard the web client runs
    - **Activities**: eco activity submissions with proof photos and credits
    - **Payments**: Stripe checkout for carbon credits
    - **Admin consoles**: users, rate limits, audit logs, transactions, activity review
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


_cors_origins = [
    settings.frontend_url,
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_cors_origins = list(dict.fromkeys(_cors_origins))

# Last added is outermost; CORS wraps everything so 429s carry CORS headers too
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _cors_headers(request: Request) -> Dict[str, str]:
    """CORS headers for error responses, which can bypass the CORS middleware."""
    origin = request.headers.get("origin") or ""
    return {
        "Access-Control-Allow-Origin": origin if origin in _cors_origins else _cors_origins[0],
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "*",
        "Access-Control-Allow-Headers": "*",
    }


def error_response(
    request: Request,
    status_code: int,
    message: str,
    detail: Any = None,
    errors: Optional[list] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Build the error envelope with CORS and request-id headers."""
    all_headers = _cors_headers(request)
    all_headers.update(headers or {})
    content: Dict[str, Any] = {
        "success": False,
        "message": message,
        "detail": detail if detail is not None else message,
    }
    if errors is not None:
        content["errors"] = errors
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        all_headers["X-Request-ID"] = request_id
        content["request_id"] = request_id
    return JSONResponse(status_code=status_code, content=content, headers=all_headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return error_response(request, exc.status_code, message, exc.detail, headers=exc.headers)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return error_response(request, status.HTTP_404_NOT_FOUND, str(exc) or "Resource not found")


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    return error_response(request, status.HTTP_409_CONFLICT, str(exc))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    message = errors[0]["message"] if len(errors) == 1 else "Validation error"
    return error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        message,
        "Validation error",
        errors=errors,
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    detail = str(exc) if settings.debug else "Internal server error"
    return error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", detail)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    return HealthResponse(
        status="ok",
        version=settings.version,
        environment=settings.environment,
    )


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs" if settings.debug else "disabled",
        "api": {
            "v1": settings.api_v1_prefix,
        },
    }


app.include_router(api_v1_router, prefix=settings.api_v1_prefix)

# Proof photos are addressed as {backend_url}/uploads/activities/<file>
Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
app.mount("/uploads/activities", StaticFiles(directory=settings.upload_dir), name="activity-uploads")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "greyn.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
