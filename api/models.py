"""
API models and schemas for the FastAPI application.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class Book(BaseModel):
    """Book record as stored and returned by the API."""
    id: int = Field(..., description="Unique book identifier")
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")

    model_config = {
        "json_schema_extra": {
            "example": {
                "id": 1,
                "title": "The Fellowship of the Ring",
                "author": "J.R.R. Tolkien"
            }
        }
    }


class BookCreatedResponse(BaseModel):
    """Response returned after a book is added."""
    id: int = Field(..., description="Identifier of the new book")


class BookUpdate(BaseModel):
    """Fields accepted when updating a book. Unknown fields are ignored."""
    title: Optional[str] = Field(None, description="New book title (required)")
    author: Optional[str] = Field(None, description="New book author")


class SecurityQuestion(BaseModel):
    """A single security-question answer."""
    answer: str = Field(..., description="Answer to the security question")

    model_config = {"extra": "forbid"}


class SecurityQuestionsRequest(BaseModel):
    """Body for verifying a user's security questions."""
    security_questions: List[SecurityQuestion] = Field(
        ...,
        alias="securityQuestions",
        min_length=3,
        max_length=3,
        description="Answers to the user's three security questions, in order"
    )

    model_config = {"extra": "forbid"}


class ResetPasswordRequest(SecurityQuestionsRequest):
    """Body for resetting a user's password."""
    new_password: str = Field(..., alias="newPassword", description="Replacement password")


class RegisterRequest(BaseModel):
    """Credentials for a new user."""
    email: str = Field(..., description="User email address")
    password: str = Field(..., description="Plaintext password, hashed before storage")

    model_config = {"extra": "forbid"}


class User(BaseModel):
    """Stored user record."""
    email: str = Field(..., description="User email address (unique)")
    password: str = Field(..., description="bcrypt password hash")
    security_questions: List[SecurityQuestion] = Field(
        default_factory=list,
        alias="securityQuestions",
        description="Stored security-question answers"
    )

    model_config = {"populate_by_name": True}

    def answers(self) -> List[str]:
        """Stored answers in question order."""
        return [question.answer for question in self.security_questions]


class RegisteredUser(BaseModel):
    """Public view of a newly registered user."""
    email: str = Field(..., description="User email address")


class RegisterResponse(BaseModel):
    """Response returned after registration."""
    user: RegisteredUser
    message: str


class MessageResponse(BaseModel):
    """Plain message response."""
    message: str = Field(..., description="Outcome message")


class ErrorResponse(BaseModel):
    """
    Error response model.

    Book endpoints report through ``error``; user endpoints through ``message``.
    """
    error: Optional[str] = Field(None, description="Error message")
    message: Optional[str] = Field(None, description="Error message for user endpoints")
    detail: Optional[str] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database status")
    books_count: Optional[int] = Field(None, description="Number of stored books")
    users_count: Optional[int] = Field(None, description="Number of stored users")
