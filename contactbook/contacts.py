"""Contact management routes for the Contacts API."""

from fastapi import APIRouter, Depends, Query, Request, status
from starlette.concurrency import run_in_threadpool

from . import schemas
from .auth import get_current_user
from .models import Contact, User
from .payload import read_payload, read_photo
from .responses import envelope
from .services import ContactService, get_contact_service

router = APIRouter(prefix="/contacts", tags=["contacts"])


def present_contact(contact: Contact, service: ContactService) -> dict:
    """Serialize a contact for clients, adding the derived ``photo_url``."""
    out = schemas.ContactOut.model_validate(contact)
    out.photo_url = service.photo_url(contact)
    return out.model_dump()


@router.get("")
def list_contacts(
    request: Request,
    q: str | None = Query(None),
    page: str | None = Query(None),
    per_page: str | None = Query(None),
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    """
    Retrieve one page of contacts belonging to the current user.

    Supports optional text search by name, email or phone digits.

    Args:
        request (Request): Incoming request, used to build page links.
        q (str | None): Optional search query.
        page (str | None): Requested page number.
        per_page (str | None): Requested page size, clamped to [1, 100].
        current_user (User): Authenticated user.
        service (ContactService): Contact service.

    Returns:
        JSONResponse: Envelope with ``data``, ``meta`` and ``links``.
    """
    result = service.list_contacts(current_user, q=q, page=page, per_page=per_page)
    return envelope(
        data=[present_contact(contact, service) for contact in result.items],
        meta=result.meta(),
        links=result.links(
            lambda number: str(request.url.include_query_params(page=number))
        ),
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_contact(
    request: Request,
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    """
    Create a new contact owned by the current user.

    Accepts ``name``, ``phone``, optional ``email`` and an optional
    ``photo`` upload (multipart).

    Returns:
        JSONResponse: Envelope with the created contact.
    """
    fields, files = await read_payload(request)
    photo = await read_photo(fields, files)
    contact = await run_in_threadpool(
        service.create_contact, current_user, fields, photo
    )
    return envelope(
        data=present_contact(contact, service),
        message="Contact created successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/{contact_id}")
def get_contact(
    contact_id: str,
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    """
    Retrieve a single contact by ID for the current user.

    Raises:
        NotFoundError: If contact is not found.
    """
    contact = service.get_contact(current_user, contact_id)
    return envelope(data=present_contact(contact, service))


@router.api_route("/{contact_id}", methods=["PUT", "PATCH"])
async def update_contact(
    contact_id: str,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    """
    Partially update an existing contact.

    Only fields provided in the request will be updated; a new ``photo``
    replaces the previous one.

    Raises:
        NotFoundError: If contact is not found.
        ValidationError: If a provided field is invalid.
    """
    fields, files = await read_payload(request)
    photo = await read_photo(fields, files)
    contact = await run_in_threadpool(
        service.update_contact, current_user, contact_id, fields, photo
    )
    return envelope(
        data=present_contact(contact, service),
        message="Contact updated successfully",
    )


@router.delete("/{contact_id}")
def remove_contact(
    contact_id: str,
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    """
    Delete a contact owned by the current user, together with its photo.

    Raises:
        NotFoundError: If contact is not found.
    """
    service.delete_contact(current_user, contact_id)
    return envelope(message="Contact deleted successfully")
