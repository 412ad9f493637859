"""
FastAPI main application for the In-N-Out-Books API.
"""

import math
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import structlog
from fastapi import Body, Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.auth import AuthError, answers_match, hash_password, verify_password
from api.config import config
from api.database import APIDatabaseService, DuplicateKeyError, create_database
from api.models import (
    Book, BookCreatedResponse, BookUpdate,
    RegisterRequest, RegisterResponse, RegisteredUser,
    SecurityQuestionsRequest, ResetPasswordRequest,
    MessageResponse, ErrorResponse, HealthResponse
)
from utilities.logger import setup_logging

# Setup logging
logger = structlog.get_logger(__name__)

# Global database service
db_service: Optional[APIDatabaseService] = None

BOOK_FIELDS = ["id", "title", "author"]
REGISTER_FIELDS = ["email", "password"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug
    )
    logger.info("Starting In-N-Out-Books API")

    global db_service
    # Seeding hashes passwords, so it runs off the event loop
    database = await run_in_threadpool(
        create_database,
        seed=config.seed_demo_data,
        bcrypt_rounds=config.bcrypt_rounds
    )
    db_service = APIDatabaseService(database)
    logger.info("Database service initialized", seeded=config.seed_demo_data)

    yield

    # Shutdown
    logger.info("Shutting down In-N-Out-Books API")
    db_service = None


# Create FastAPI application
app = FastAPI(
    title=config.api_title,
    description="""
    A REST API over an in-memory book catalog.

    ## Features

    * **Books**: List, fetch, add, update and delete books
    * **Users**: Register and log in with a bcrypt-hashed password
    * **Password reset**: Verify three security-question answers and set a new password
    """,
    version=config.api_version,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=config.cors_allow_credentials,
    allow_methods=config.cors_allow_methods,
    allow_headers=config.cors_allow_headers,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log the method and path of every request."""
    logger.info("Request received", method=request.method, path=request.url.path)
    return await call_next(request)


# Exception handlers
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    # Raised by the router itself: no route for this path or method
    if not isinstance(exc, HTTPException) and exc.status_code in (
        status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED
    ):
        return PlainTextResponse("Sorry, page not found", status_code=status.HTTP_404_NOT_FOUND)

    if isinstance(exc, AuthError):
        content = ErrorResponse(message=exc.detail, status_code=exc.status_code)
    else:
        content = ErrorResponse(error=exc.detail, status_code=exc.status_code)

    return JSONResponse(
        status_code=exc.status_code,
        content=content.model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Reject bodies that are not valid JSON or do not fit the endpoint's schema.

    The body uses the same key and wording as the route's own 400 responses.
    """
    path = request.url.path
    logger.warning(
        "Bad Request: Invalid request body",
        path=path,
        errors=[error.get("msg") for error in exc.errors()]
    )

    if path.startswith("/api/books"):
        content = ErrorResponse(error="Bad Request", status_code=status.HTTP_400_BAD_REQUEST)
    elif path == "/api/login":
        content = ErrorResponse(message="bad request", status_code=status.HTTP_400_BAD_REQUEST)
    else:
        content = ErrorResponse(message="Bad Request", status_code=status.HTTP_400_BAD_REQUEST)

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=content.model_dump(exclude_none=True)
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path, exc_info=exc)
    return PlainTextResponse(
        "Something went wrong on the server!",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


def get_db_service() -> APIDatabaseService:
    """Dependency returning the process-wide database service."""
    if db_service is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database service not available"
        )
    return db_service


def parse_book_id(raw_id: str) -> Optional[Union[int, float]]:
    """
    Parse a path id as a number.

    Integral values (``1``, ``1.0``, ``1e0``) come back as ``int``. Other finite
    numbers come back as ``float`` and match no book. Returns None when the
    id is not a finite number.
    """
    try:
        return int(raw_id)
    except ValueError:
        pass

    try:
        value = float(raw_id)
    except ValueError:
        return None

    if not math.isfinite(value):
        return None
    return int(value) if value.is_integer() else value


# Health check endpoint
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    if db_service is None:
        return HealthResponse(
            status="unhealthy",
            timestamp=datetime.now(timezone.utc),
            version=config.api_version,
            database_status="unavailable"
        )

    health_info = await db_service.health_check()
    db_status = health_info.get("status", "unknown")
    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=config.api_version,
        database_status=db_status,
        books_count=health_info.get("books_count"),
        users_count=health_info.get("users_count")
    )


# Books endpoints
@app.get("/api/books", response_model=List[Book], tags=["Books"])
async def get_books(service: APIDatabaseService = Depends(get_db_service)):
    """Get all books."""
    try:
        return await service.get_books()
    except Exception as e:
        logger.error("Failed to get books", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching books."
        )


@app.get("/api/books/{book_id}", response_model=Book, tags=["Books"])
async def get_book(book_id: str, service: APIDatabaseService = Depends(get_db_service)):
    """
    Get a single book by ID.

    - **book_id**: Numeric book identifier
    """
    parsed_id = parse_book_id(book_id)
    if parsed_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid book ID. Please provide a number"
        )

    try:
        book = await service.get_book_by_id(parsed_id)
    except Exception as e:
        logger.error("Error fetching book", book_id=parsed_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching the book."
        )

    if book is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found.")
    return book


@app.post(
    "/api/books",
    response_model=BookCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Books"]
)
async def add_book(
    payload: Dict[str, Any] = Body(...),
    service: APIDatabaseService = Depends(get_db_service)
):
    """
    Add a new book.

    The body must contain exactly `id`, `title` and `author`.
    """
    if sorted(payload) != sorted(BOOK_FIELDS):
        logger.warning("Rejected book with unexpected fields", fields=sorted(payload))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Bad Request: Missing required fields: id, title, author."
        )

    try:
        # No coercion: "17" and true are not ids
        book = Book.model_validate(payload, strict=True)
    except ValidationError as e:
        logger.warning("Rejected book with invalid values", errors=e.error_count())
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Bad Request: id must be a number and title, author must be strings."
        )

    try:
        created = await service.add_book(book)
    except DuplicateKeyError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Conflict: A book with this id already exists."
        )

    return BookCreatedResponse(id=created.id)


@app.put("/api/books/{book_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Books"])
async def update_book(
    book_id: str,
    payload: Dict[str, Any] = Body(...),
    service: APIDatabaseService = Depends(get_db_service)
):
    """
    Update a book's title and, optionally, its author.

    - **book_id**: Numeric book identifier
    """
    parsed_id = parse_book_id(book_id)
    if parsed_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Input must be a number")

    try:
        changes = BookUpdate(**payload)
    except ValidationError:
        changes = None

    if changes is None or not changes.title:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Bad Request: 'title' is required"
        )

    updated = await service.update_book(parsed_id, changes.model_dump(exclude_none=True))
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found")

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.delete("/api/books/{book_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Books"])
async def delete_book(book_id: str, service: APIDatabaseService = Depends(get_db_service)):
    """
    Delete a book.

    - **book_id**: Numeric book identifier
    """
    parsed_id = parse_book_id(book_id)
    if parsed_id is None or not await service.delete_book(parsed_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found")

    return Response(status_code=status.HTTP_204_NO_CONTENT)


# User endpoints
@app.post("/api/register", response_model=RegisterResponse, tags=["Users"])
async def register(
    payload: Dict[str, Any] = Body(...),
    service: APIDatabaseService = Depends(get_db_service)
):
    """Register a new user with an email and password."""
    if sorted(payload) != sorted(REGISTER_FIELDS):
        logger.warning("Bad Request: Missing keys or extra keys", fields=sorted(payload))
        raise AuthError(status_code=status.HTTP_400_BAD_REQUEST, detail="Bad Request")

    try:
        credentials = RegisterRequest(**payload)
        password_hash = await run_in_threadpool(hash_password, credentials.password)
    except (ValidationError, ValueError) as e:
        logger.warning("Bad Request: Invalid credentials", error=str(e))
        raise AuthError(status_code=status.HTTP_400_BAD_REQUEST, detail="Bad Request")

    if await service.get_user_by_email(credentials.email) is not None:
        logger.warning("Conflict: User already exists", email=credentials.email)
        raise AuthError(status_code=status.HTTP_409_CONFLICT, detail="Conflict")

    try:
        await service.create_user(credentials.email, password_hash)
    except DuplicateKeyError:
        raise AuthError(status_code=status.HTTP_409_CONFLICT, detail="Conflict")

    return RegisterResponse(
        user=RegisteredUser(email=credentials.email),
        message="Registration Successful"
    )


@app.post("/api/login", response_model=MessageResponse, tags=["Users"])
async def login(
    payload: Dict[str, Any] = Body(...),
    service: APIDatabaseService = Depends(get_db_service)
):
    """Log a user in by checking their password."""
    email = payload.get("email")
    password = payload.get("password")

    if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
        raise AuthError(status_code=status.HTTP_400_BAD_REQUEST, detail="bad request")

    user = await service.get_user_by_email(email)
    if user is None or not await run_in_threadpool(verify_password, password, user.password):
        logger.warning("Login failed", email=email)
        raise AuthError(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    logger.info("Login succeeded", email=email)
    return MessageResponse(message="Authentication Successful")


@app.post(
    "/api/users/{email}/verify-security-question",
    response_model=MessageResponse,
    tags=["Users"]
)
async def verify_security_question(
    email: str,
    payload: SecurityQuestionsRequest,
    service: APIDatabaseService = Depends(get_db_service)
):
    """Check a user's three security-question answers."""
    user = await service.get_user_by_email(email)
    provided = [question.answer for question in payload.security_questions]

    if user is None or not answers_match(provided, user.answers()):
        logger.warning("Unauthorized: Security questions do not match", email=email)
        raise AuthError(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    return MessageResponse(message="Security Questions Successfully Answered")


@app.post("/api/users/{email}/reset-password", response_model=MessageResponse, tags=["Users"])
async def reset_password(
    email: str,
    payload: ResetPasswordRequest,
    service: APIDatabaseService = Depends(get_db_service)
):
    """Set a new password after checking the user's security-question answers."""
    user = await service.get_user_by_email(email)
    provided = [question.answer for question in payload.security_questions]

    if user is None or not answers_match(provided, user.answers()):
        logger.warning("Unauthorized: Security questions do not match", email=email)
        raise AuthError(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    try:
        password_hash = await run_in_threadpool(hash_password, payload.new_password)
    except ValueError as e:
        logger.warning("Bad Request: Invalid new password", email=email, error=str(e))
        raise AuthError(status_code=status.HTTP_400_BAD_REQUEST, detail="Bad Request")

    if not await service.update_user_password(email, password_hash):
        raise AuthError(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    logger.info("Password reset", email=email)
    return MessageResponse(message="Password Reset Successful")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower()
    )
