"""Contact service: owner scoping, search/pagination and the photo lifecycle.

The service sits between the route handlers and the repository/storage.
It raises :mod:`contactbook.errors` exceptions only; anything unexpected
is logged and wrapped into :class:`~contactbook.errors.UnexpectedError`
with a generic message.

Photo lifecycle:

* create stores the blob first and deletes it again if the record
  cannot be saved;
* update stores the new blob, commits, and only then deletes the old
  blob, so a contact never points at a missing photo;
* delete removes the blob, then the record. These two steps are not
  atomic: a crash in between leaves a record with a dead ``photo_url``.
"""

import logging
from typing import Any, Mapping

from fastapi import Depends
from sqlalchemy.orm import Session

from . import crud, models
from .core import get_settings
from .database import get_db
from .errors import NotFoundError, UnexpectedError
from .pagination import Page, clamp_per_page, coerce_page
from .storage import StorageProvider, get_storage
from .validation import ContactFields, PhotoUpload, validate_contact

logger = logging.getLogger(__name__)

#: Primary keys are signed 64-bit integers; anything outside cannot exist.
MIN_ID = -(2**63)
MAX_ID = 2**63 - 1


class ContactService:
    """Contact operations for a single request.

    Args:
        db (Session): Database session of the current request.
        storage (StorageProvider): Photo storage backend.
    """

    def __init__(self, db: Session, storage: StorageProvider, settings=None):
        self.db = db
        self.storage = storage
        self.settings = settings or get_settings()

    def photo_url(self, contact: models.Contact) -> str | None:
        """Public URL of the contact's photo, or ``None`` without one."""
        return self.storage.url_for(contact.photo) if contact.photo else None

    def list_contacts(
        self,
        owner: models.User,
        q: str | None = None,
        page: Any = None,
        per_page: Any = None,
    ) -> Page:
        """
        Return one page of the owner's contacts, optionally filtered by ``q``.

        Args:
            owner (User): Authenticated user.
            q (str | None): Free-text query over name, email and phone digits.
            page: Requested page number (coerced, at least 1).
            per_page: Requested page size (clamped to the configured bounds).

        Raises:
            UnexpectedError: If the contacts cannot be loaded.

        Returns:
            Page: Contacts of the page with pagination metadata.
        """
        page_number = coerce_page(page)
        size = clamp_per_page(
            per_page,
            default=self.settings.CONTACTS_PER_PAGE,
            maximum=self.settings.CONTACTS_MAX_PER_PAGE,
        )
        q = (q or "").strip() or None
        offset = (page_number - 1) * size
        try:
            total = crud.count_contacts(self.db, owner.id, q)
            items = []
            if offset < total:
                items = crud.list_contacts(
                    self.db, owner.id, q, offset=offset, limit=size
                )
        except Exception as exc:
            logger.exception("Listing contacts failed for user %s", owner.id)
            raise UnexpectedError("Failed to fetch contacts") from exc
        return Page(items=items, total=total, current_page=page_number, per_page=size)

    def get_contact(self, owner: models.User, contact_id: Any) -> models.Contact:
        """
        Return the owner's contact.

        Raises:
            NotFoundError: If it does not exist or belongs to another user.
            UnexpectedError: If the lookup itself fails.
        """
        try:
            identifier = int(contact_id)
        except (TypeError, ValueError):
            raise NotFoundError("Contact not found")
        if not MIN_ID <= identifier <= MAX_ID:
            raise NotFoundError("Contact not found")
        try:
            contact = crud.get_contact(self.db, identifier, owner.id)
        except Exception as exc:
            logger.exception("Loading contact %s failed", contact_id)
            raise UnexpectedError("Failed to fetch contact") from exc
        if contact is None:
            raise NotFoundError("Contact not found")
        return contact

    def _store_photo(self, photo: PhotoUpload) -> str:
        path = self.storage.put(photo.content, photo.extension)
        logger.info("Stored photo %s", path)
        return path

    def _discard_photo(self, path: str) -> None:
        """Best-effort removal of a blob no record points at anymore."""
        try:
            self.storage.delete(path)
        except Exception:
            logger.warning(
                "Could not delete photo %s; blob is orphaned", path, exc_info=True
            )

    def create_contact(
        self,
        owner: models.User,
        data: Mapping[str, Any],
        photo: PhotoUpload | None = None,
    ) -> models.Contact:
        """
        Validate input, store the photo if any, then create the contact.

        Raises:
            ValidationError: If any field is invalid.
            UnexpectedError: If storing the photo or the record fails.

        Returns:
            Contact: The created contact.
        """
        fields = validate_contact(data, photo, max_photo_kb=self.settings.PHOTO_MAX_KB)
        values = dict(fields.values)
        stored_path = None
        try:
            if fields.photo is not None:
                stored_path = self._store_photo(fields.photo)
                values["photo"] = stored_path
            contact = crud.create_contact(self.db, owner.id, values)
        except Exception as exc:
            logger.exception("Creating contact failed for user %s", owner.id)
            self.db.rollback()
            if stored_path:
                self._discard_photo(stored_path)
            raise UnexpectedError("Failed to create contact") from exc
        logger.info("User %s created contact %s", owner.id, contact.id)
        return contact

    def update_contact(
        self,
        owner: models.User,
        contact_id: Any,
        data: Mapping[str, Any],
        photo: PhotoUpload | None = None,
    ) -> models.Contact:
        """
        Apply a partial update to the owner's contact.

        Ownership is checked before validation. A new photo is stored
        before the record changes and the old one is removed only once the
        change is committed.

        Raises:
            NotFoundError: If the contact is missing or foreign.
            ValidationError: If a present field is invalid.
            UnexpectedError: If storing the photo or the record fails.

        Returns:
            Contact: The contact as persisted.
        """
        contact = self.get_contact(owner, contact_id)
        fields: ContactFields = validate_contact(
            data, photo, partial=True, max_photo_kb=self.settings.PHOTO_MAX_KB
        )
        changes = dict(fields.values)
        previous_photo = contact.photo
        stored_path = None
        try:
            if fields.photo is not None:
                stored_path = self._store_photo(fields.photo)
                changes["photo"] = stored_path
            contact = crud.update_contact(self.db, contact, changes)
        except Exception as exc:
            logger.exception("Updating contact %s failed", contact_id)
            self.db.rollback()
            if stored_path:
                self._discard_photo(stored_path)
            raise UnexpectedError("Failed to update contact") from exc

        if stored_path and previous_photo:
            self._discard_photo(previous_photo)
        logger.info("User %s updated contact %s", owner.id, contact.id)
        return contact

    def delete_contact(self, owner: models.User, contact_id: Any) -> None:
        """
        Delete the owner's contact and its photo.

        Raises:
            NotFoundError: If the contact is missing or foreign.
            UnexpectedError: If the photo or the record cannot be deleted.
        """
        contact = self.get_contact(owner, contact_id)
        try:
            if contact.photo:
                self.storage.delete(contact.photo)
            crud.delete_contact(self.db, contact)
        except Exception as exc:
            logger.exception("Deleting contact %s failed", contact_id)
            self.db.rollback()
            raise UnexpectedError("Failed to delete contact") from exc
        logger.info("User %s deleted contact %s", owner.id, contact_id)


def get_contact_service(
    db: Session = Depends(get_db),
    storage: StorageProvider = Depends(get_storage),
) -> ContactService:
    """FastAPI dependency building a :class:`ContactService` per request."""
    return ContactService(db, storage)
