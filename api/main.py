"""
FastAPI main application for the Library Catalog API.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List

import structlog
from fastapi import Body, Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import auth
from api.auth import get_credential_store, get_current_user, get_token_issuer
from api.config import config as api_config
from api.database import CatalogService, get_catalog_service
from api.models import (
    AuthorResponse, BookResponse, CreatedResponse, ErrorResponse,
    HealthResponse, LoginRequest, StatusResponse, TokenResponse
)
from catalog.auth import CredentialStore, TokenIssuer
from catalog.database import MongoDBManager
from catalog.models import UserRecord
from catalog.results import ErrorKind, OperationResult
from catalog.validators import describe_errors
from utilities.config import config

# Setup logging
logger = structlog.get_logger(__name__)

ERROR_STATUS = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}

STATUS_ERROR_NAMES = {
    status.HTTP_400_BAD_REQUEST: ErrorKind.VALIDATION.value,
    status.HTTP_401_UNAUTHORIZED: ErrorKind.UNAUTHENTICATED.value,
    status.HTTP_404_NOT_FOUND: ErrorKind.NOT_FOUND.value,
    status.HTTP_500_INTERNAL_SERVER_ERROR: ErrorKind.STORE_FAILURE.value,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting Library Catalog API")

    db_manager = MongoDBManager(
        connection_url=config.mongodb_url,
        database_name=config.mongodb_database
    )
    try:
        app.state.database = await db_manager.connect()
        app.state.db_manager = db_manager
        logger.info("Database connection established")
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        raise

    yield

    logger.info("Shutting down Library Catalog API")
    await db_manager.disconnect()


# Create FastAPI application
app = FastAPI(
    title=api_config.api_title,
    description="""
    REST API for a small library catalog of authors and books.

    ## Authentication

    Obtain a token from `POST /auth/login` and send it on every other request:

    ```
    Authorization: Bearer your_token_here
    ```

    Tokens expire after a fixed lifetime (30 minutes by default).
    """,
    version=api_config.api_version,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=api_config.cors_origins,
    allow_credentials=api_config.cors_allow_credentials,
    allow_methods=api_config.cors_allow_methods,
    allow_headers=api_config.cors_allow_headers,
)


def unwrap(result: OperationResult) -> Any:
    """Return the value of a result or raise the matching HTTP error."""
    if result.ok:
        return result.value
    raise HTTPException(
        status_code=ERROR_STATUS[result.error.kind],
        detail=result.error.message
    )


# Exception handlers
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=STATUS_ERROR_NAMES.get(exc.status_code, "http_error"),
            message=str(exc.detail),
            status_code=exc.status_code
        ).model_dump(),
        headers=exc.headers
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Report malformed request bodies as a single validation error."""
    message, _ = describe_errors(exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(
            error=ErrorKind.VALIDATION.value,
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST
        ).model_dump()
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error=ErrorKind.STORE_FAILURE.value,
            message="Internal server error",
            detail=str(exc) if api_config.debug else None,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        ).model_dump()
    )


# Health check endpoint (no authentication required)
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint."""
    db_status = "unavailable"
    db_manager = getattr(request.app.state, "db_manager", None)
    if db_manager:
        health_info = await db_manager.health_check()
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=api_config.api_version,
        database_status=db_status
    )


# Authentication endpoint (no token required)
@app.post("/auth/login", response_model=TokenResponse, tags=["Auth"])
async def login(
    payload: LoginRequest,
    credential_store: CredentialStore = Depends(get_credential_store),
    token_issuer: TokenIssuer = Depends(get_token_issuer)
):
    """
    Exchange a username and password for a bearer token.

    Unknown users and wrong passwords get the same 400 response.
    """
    token = await auth.login(payload.username, payload.password, credential_store, token_issuer)
    return TokenResponse(token=token)


# Authors endpoints
@app.get("/authors", response_model=List[AuthorResponse], tags=["Authors"])
async def list_authors(
    current_user: UserRecord = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service)
):
    """List all authors."""
    return await service.list_authors()


@app.get("/authors/{author_id}", response_model=AuthorResponse, tags=["Authors"])
async def get_author(
    author_id: str,
    current_user: UserRecord = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service)
):
    """
    Get a single author by ID.

    - **author_id**: 24 character hexadecimal MongoDB ObjectId
    """
    return unwrap(await service.get_author(author_id))


@app.post("/authors", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED, tags=["Authors"])
async def create_author(
    data: Dict[str, Any] = Body(..., examples=[{
        "name": "Gabriel García Márquez",
        "birth_date": "1927-03-06",
        "books_written": ["Cien años de soledad"]
    }]),
    current_user: UserRecord = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service)
):
    """
    Create an author.

    - **name**: Full name, unique across authors
    - **birth_date**: Date of birth (YYYY-MM-DD)
    - **books_written**: Non-empty list of titles
    """
    return unwrap(await service.create_author(data))


@app.put("/authors/{author_id}", response_model=StatusResponse, tags=["Authors"])
async def update_author(
    author_id: str,
    data: Dict[str, Any] = Body(...),
    current_user: UserRecord = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service)
):
    """Update any subset of an author's fields."""
    return unwrap(await service.update_author(author_id, data))


@app.delete("/authors/{author_id}", response_model=StatusResponse, tags=["Authors"])
async def delete_author(
    author_id: str,
    current_user: UserRecord = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service)
):
    """Delete an author. Books that name the author are not modified."""
    return unwrap(await service.delete_author(author_id))


# Books endpoints
@app.get("/books", response_model=List[BookResponse], tags=["Books"])
async def list_books(
    current_user: UserRecord = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service)
):
    """List all books."""
    return await service.list_books()


@app.get("/books/{book_id}", response_model=BookResponse, tags=["Books"])
async def get_book(
    book_id: str,
    current_user: UserRecord = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service)
):
    """
    Get a single book by ID.

    - **book_id**: 24 character hexadecimal MongoDB ObjectId
    """
    return unwrap(await service.get_book(book_id))


@app.post("/books", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED, tags=["Books"])
async def create_book(
    data: Dict[str, Any] = Body(..., examples=[{
        "title": "Cien años de soledad",
        "authors": ["Gabriel García Márquez"],
        "publication_year": 1967,
        "description": "The multi-generational story of the Buendía family."
    }]),
    current_user: UserRecord = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service)
):
    """
    Create a book.

    - **title**: Title, unique across books
    - **authors**: Names of authors that already exist
    - **publication_year**: Integer year
    - **description**: Short description
    """
    return unwrap(await service.create_book(data))


@app.put("/books/{book_id}", response_model=StatusResponse, tags=["Books"])
async def update_book(
    book_id: str,
    data: Dict[str, Any] = Body(...),
    current_user: UserRecord = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service)
):
    """Update any subset of a book's fields."""
    return unwrap(await service.update_book(book_id, data))


@app.delete("/books/{book_id}", response_model=StatusResponse, tags=["Books"])
async def delete_book(
    book_id: str,
    current_user: UserRecord = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service)
):
    """Delete a book."""
    return unwrap(await service.delete_book(book_id))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=api_config.debug,
        log_level="info"
    )
