from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional


def _max_length(value, limit: int):
    """Reject strings longer than ``limit`` before format validation runs."""
    if isinstance(value, str) and len(value) > limit:
        raise ValueError(f"Value should have at most {limit} characters")
    return value


class ContactCreate(BaseModel):
    """Schema for creating new contact."""

    name: str = Field(min_length=1, max_length=255)
    phone: str = Field(min_length=1, max_length=20)
    email: Optional[EmailStr] = None

    @field_validator("email", mode="before")
    @classmethod
    def email_length(cls, value):
        return _max_length(value, 100)


class ContactUpdate(BaseModel):
    """Schema for updating contact.

    ``name`` and ``phone`` may be omitted, but an explicit ``null`` is
    rejected. ``email`` may be cleared with ``null``.
    """

    name: str = Field(None, min_length=1, max_length=255)
    phone: str = Field(None, min_length=1, max_length=20)
    email: Optional[EmailStr] = None

    @field_validator("email", mode="before")
    @classmethod
    def email_length(cls, value):
        return _max_length(value, 100)


class ContactOut(BaseModel):
    """Schema for returning contact with ID and derived photo URL."""

    id: int
    owner_id: int
    name: str
    phone: str
    email: Optional[str] = None
    photo: Optional[str] = None
    photo_url: Optional[str] = None

    class Config:
        from_attributes = True  # allow SQLAlchemy objects


class UserCreate(BaseModel):
    """Payload for registering a new user."""

    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=8)
    password_confirmation: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def email_length(cls, value):
        return _max_length(value, 255)


class LoginRequest(BaseModel):
    """Credentials submitted to ``/login``."""

    email: EmailStr
    password: str = Field(min_length=1)


class UserOut(BaseModel):
    """Response schema for user data."""

    id: int
    name: str
    email: EmailStr
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TokenData(BaseModel):
    """Payload stored inside JWT token."""

    sub: str | None = None
    exp: Optional[datetime] = None
    scope: Optional[str] = None
    jti: Optional[str] = None
