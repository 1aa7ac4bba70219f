"""CRUD operations for users and contacts.

This module contains database interaction logic for user and contact
entities, isolated from FastAPI route handlers. Every contact query is
scoped by ``owner_id``.
"""

import re

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from . import models, schemas


def create_user(
    db: Session, user_in: schemas.UserCreate, hashed_password: str
) -> models.User:
    """
    Create and persist a new user.

    Args:
        db (Session): SQLAlchemy database session.
        user_in (UserCreate): Validated registration data.
        hashed_password (str): Securely hashed password.

    Returns:
        User: Newly created user instance.
    """
    user = models.User(
        name=user_in.name,
        email=user_in.email,
        hashed_password=hashed_password,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def get_user_by_email(db: Session, email: str) -> models.User | None:
    """
    Retrieve a user by email address.

    Args:
        db (Session): Database session.
        email (str): User email.

    Returns:
        User | None: User if found, otherwise ``None``.
    """
    return db.execute(
        select(models.User).where(models.User.email == email)
    ).scalar_one_or_none()


def search_filter(q: str):
    """
    Build the search condition for a free-text query.

    ``name`` and ``email`` match on a case-insensitive substring. When ``q``
    holds digits, ``phone`` also matches on the digits alone, so
    ``"555-1234"`` finds ``"5551234"``.
    """
    conditions = [
        models.Contact.name.icontains(q, autoescape=True),
        models.Contact.email.icontains(q, autoescape=True),
    ]
    digits = re.sub(r"\D", "", q)
    if digits:
        conditions.append(models.Contact.phone.contains(digits))
    return or_(*conditions)


def _owned_contacts(owner_id: int, q: str | None):
    stmt = select(models.Contact).where(models.Contact.owner_id == owner_id)
    if q:
        stmt = stmt.where(search_filter(q))
    return stmt


def count_contacts(db: Session, owner_id: int, q: str | None = None) -> int:
    """Count the owner's contacts matching ``q``."""
    stmt = select(func.count()).select_from(_owned_contacts(owner_id, q).subquery())
    return db.execute(stmt).scalar_one()


def list_contacts(
    db: Session,
    owner_id: int,
    q: str | None = None,
    offset: int = 0,
    limit: int = 100,
) -> list[models.Contact]:
    """
    Retrieve a slice of the owner's contacts ordered by name.

    Args:
        db (Session): Database session.
        owner_id (int): Contact owner.
        q (str | None): Optional search query.
        offset (int): Number of records to skip.
        limit (int): Maximum number of records to return.

    Returns:
        list[Contact]: Contacts ordered by name, then id.
    """
    stmt = (
        _owned_contacts(owner_id, q)
        .order_by(models.Contact.name.asc(), models.Contact.id.asc())
        .offset(offset)
        .limit(limit)
    )
    return list(db.scalars(stmt).all())


def get_contact(db: Session, contact_id: int, owner_id: int) -> models.Contact | None:
    """
    Retrieve a single contact owned by the given user.

    Args:
        db (Session): Database session.
        contact_id (int): Contact identifier.
        owner_id (int): Contact owner.

    Returns:
        Contact | None: Contact if found, otherwise ``None``.
    """
    return db.execute(
        select(models.Contact).where(
            models.Contact.id == contact_id,
            models.Contact.owner_id == owner_id,
        )
    ).scalar_one_or_none()


def create_contact(db: Session, owner_id: int, values: dict) -> models.Contact:
    """
    Create a new contact owned by the given user.

    Args:
        db (Session): Database session.
        owner_id (int): Owner of the contact.
        values (dict): Validated contact fields, including ``photo`` path.

    Returns:
        Contact: Newly created contact.
    """
    contact = models.Contact(**values, owner_id=owner_id)
    db.add(contact)
    db.commit()
    db.refresh(contact)
    return contact


def update_contact(db: Session, contact: models.Contact, changes: dict):
    """
    Update mutable fields of a contact in a single commit.

    Args:
        db (Session): Database session.
        contact (Contact): Contact instance.
        changes (dict): Fields to update. ``owner_id`` is never applied.

    Returns:
        Contact: Updated contact, refreshed from the database.
    """
    for key, value in changes.items():
        if key in ("id", "owner_id"):
            continue
        setattr(contact, key, value)

    db.add(contact)
    db.commit()
    db.refresh(contact)
    return contact


def delete_contact(db: Session, contact: models.Contact):
    """
    Delete a contact from the database.

    Args:
        db (Session): Database session.
        contact (Contact): Contact to delete.
    """
    db.delete(contact)
    db.commit()
    return None
