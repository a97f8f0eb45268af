"""
FastAPI main application for the Bookshelf Social API.
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime

import structlog
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.config import config
from api.deps import set_database
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes import authors, books, genres, reviews, users
from utilities.database import MongoDBManager
from utilities.errors import ServiceError
from utilities.logger import RequestLogger, setup_logging

logger = structlog.get_logger(__name__)
request_logger = RequestLogger()

# Global database manager
db_manager: MongoDBManager = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug
    )
    logger.info("Starting Bookshelf Social API")

    global db_manager
    try:
        db_manager = MongoDBManager(
            connection_url=config.mongodb_url,
            database_name=config.mongodb_database
        )
        database = await db_manager.connect()
        set_database(database)
        logger.info("Database connection established")

    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        raise

    yield

    logger.info("Shutting down Bookshelf Social API")
    set_database(None)
    if db_manager:
        await db_manager.disconnect()


app = FastAPI(
    title=config.api_title,
    description="""
    REST API for a book catalog with user profiles and reviews.

    ## Features

    * **Catalog**: Genres, authors and books; referenced genres and authors cannot be deleted
    * **Users**: Signup, login, profiles, suspension, follow/unfollow
    * **Reviews**: Paginated listing filtered by tag, author or favoriter; favorites

    ## Authentication

    Endpoints that act on behalf of a user need the token returned by signup or login:

    ```
    Authorization: Bearer your_token_here
    ```
    """,
    version=config.api_version,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=config.cors_allow_credentials,
    allow_methods=config.cors_allow_methods,
    allow_headers=config.cors_allow_headers,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    request_logger.log_request(
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - started) * 1000
    )
    return response


def error_response(status_code: int, message: str, detail=None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=ErrorDetail(message=message, detail=detail),
            status_code=status_code
        ).dict(),
        headers=headers
    )


# Exception handlers
@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    """Translate domain errors raised by the services."""
    return error_response(exc.status_code, exc.message, exc.detail)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report invalid request bodies in the common error shape."""
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Request validation failed",
        jsonable_encoder(exc.errors())
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        str(exc) if config.debug else None
    )


# Health check endpoint (no authentication required)
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    db_status = "unavailable"
    if db_manager:
        health_info = await db_manager.health_check()
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.utcnow(),
        version=config.api_version,
        database_status=db_status
    )


app.include_router(genres.router)
app.include_router(authors.router)
app.include_router(books.router)
app.include_router(users.router)
app.include_router(reviews.router)
