"""Database models for the Contacts API.

This module defines SQLAlchemy ORM models used by the application.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from .database import Base


class User(Base):
    """
    SQLAlchemy model representing an application user.

    A user owns zero or more contacts. Users are created by registration
    and are not modified afterwards.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    #: List of contacts owned by the user
    contacts = relationship(
        "Contact",
        back_populates="owner",
        cascade="all, delete",
    )


class Contact(Base):
    """
    SQLAlchemy model representing a contact entry.

    Each contact belongs to exactly one user. ``photo`` holds the storage
    path of the attached picture, never its public URL.
    """

    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    phone = Column(String(20), nullable=False)
    email = Column(String(100), nullable=True)
    photo = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    #: Identifier of the owning user
    owner_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    #: Reference to the owning User object
    owner = relationship("User", back_populates="contacts")
