"""
Contact service for business logic.

Validation, phone duplicate checks, search, sorting and pagination all run in
memory over the full contact set; fine for a single-user address book.
"""

from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from contactbook.config import get_settings
from contactbook.contacts.repository import ContactRepository, ContactRepositoryProtocol
from contactbook.contacts.schemas import (
    ContactData,
    ContactPage,
    OperationResult,
    ValidationCode,
)
from contactbook.contacts.validation import issue, validate_contact
from contactbook.shared.exceptions import InvalidArgumentError
from contactbook.shared.logging import get_logger

logger = get_logger(__name__)


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching what SQLite returns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SortField(str, Enum):
    """Fields a contact listing can be sorted by."""

    FIRST_NAME = "firstname"
    LAST_NAME = "lastname"
    COMPANY = "company"
    EMAIL = "email"
    CREATED_AT = "createdat"

    @property
    def attribute(self) -> str:
        return {
            SortField.FIRST_NAME: "first_name",
            SortField.LAST_NAME: "last_name",
            SortField.COMPANY: "company",
            SortField.EMAIL: "email",
            SortField.CREATED_AT: "created_at",
        }[self]


def parse_sort_field(value: str | SortField | None) -> SortField:
    """Map a field name to a SortField.

    Matching ignores case, spaces and underscores, so ``"FirstName"``,
    ``"first_name"`` and ``"first name"`` are equivalent. Unknown names fall
    back to first name.
    """
    if isinstance(value, SortField):
        return value
    key = (value or "").strip().lower().replace("_", "").replace(" ", "")
    try:
        return SortField(key)
    except ValueError:
        return SortField.FIRST_NAME


def _sort_key(field: SortField) -> Callable[[ContactData], tuple[bool, Any]]:
    attribute = field.attribute

    def key(contact: ContactData) -> tuple[bool, Any]:
        value = getattr(contact, attribute)
        # Missing values sort lowest.
        if value is None:
            return (False, "")
        if isinstance(value, str):
            return (True, value.casefold())
        return (True, value)

    return key


def _contains(value: str | None, term: str) -> bool:
    return bool(value) and term in value.casefold()


class ContactService:
    """Service for contact management operations."""

    def __init__(
        self,
        session: AsyncSession,
        contact_repository: ContactRepositoryProtocol | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize contact service.

        Args:
            session: Async database session.
            contact_repository: Optional contact repository (for DI).
            clock: Optional time source for timestamps (for tests).
        """
        self._session = session
        self._contact_repo = contact_repository or ContactRepository(session)
        self._clock = clock or utcnow

    async def get_all(self) -> list[ContactData]:
        """Get every contact in storage order."""
        contacts = await self._contact_repo.list_all()
        return [ContactData.model_validate(c) for c in contacts]

    async def get_by_id(self, contact_id: int) -> ContactData | None:
        """Get a single contact by ID.

        Args:
            contact_id: Contact ID.

        Returns:
            Contact, or None if not found.

        Raises:
            InvalidArgumentError: If the ID is not positive.
        """
        if contact_id <= 0:
            raise InvalidArgumentError(
                "Invalid contact ID",
                details={"contact_id": contact_id},
            )

        contact = await self._contact_repo.get_by_id(contact_id)
        if contact is None:
            return None
        return ContactData.model_validate(contact)

    async def search(self, term: str | None) -> list[ContactData]:
        """Search contacts by name, company, email or phone.

        Names, company and email match case-insensitively; phone numbers
        match the raw stored text.

        Args:
            term: Search term; blank returns every contact.

        Returns:
            Matching contacts in storage order.
        """
        contacts = await self.get_all()
        if term is None or not term.strip():
            return contacts

        folded = term.casefold()
        return [
            c
            for c in contacts
            if _contains(c.first_name, folded)
            or _contains(c.last_name, folded)
            or _contains(c.company, folded)
            or _contains(c.email, folded)
            or (bool(c.primary_phone) and term in c.primary_phone)
            or (bool(c.secondary_phone) and term in c.secondary_phone)
        ]

    async def add(self, candidate: ContactData) -> OperationResult:
        """Validate and store a new contact.

        Args:
            candidate: Contact values; any ID is ignored.

        Returns:
            Result with the stored contact, or the full list of issues.
        """
        others = await self.get_all()
        issues = validate_contact(candidate, others)
        if issues:
            logger.warning(
                "Contact rejected",
                extra={"operation": "add", "errors": [i.message for i in issues]},
            )
            return OperationResult(success=False, issues=issues)

        now = self._clock()
        record = candidate.model_copy(update={"id": None, "created_at": now, "updated_at": now})
        stored = await self._contact_repo.insert(record)

        logger.info("Contact created", extra={"contact_id": stored.id})
        return OperationResult(success=True, contact=ContactData.model_validate(stored))

    async def update(self, candidate: ContactData) -> OperationResult:
        """Validate and overwrite an existing contact.

        The stored creation timestamp is kept; the update timestamp is
        refreshed.

        Args:
            candidate: Contact values including the ID.

        Returns:
            Result with the stored contact, or the issues found.
        """
        if candidate.id is None or candidate.id <= 0:
            return OperationResult(success=False, issues=[issue(ValidationCode.INVALID_ID)])

        existing = await self._contact_repo.get_by_id(candidate.id)
        if existing is None:
            return OperationResult(success=False, issues=[issue(ValidationCode.NOT_FOUND)])
        created_at = existing.created_at

        others = [c for c in await self.get_all() if c.id != candidate.id]
        issues = validate_contact(candidate, others)
        if issues:
            logger.warning(
                "Contact rejected",
                extra={
                    "operation": "update",
                    "contact_id": candidate.id,
                    "errors": [i.message for i in issues],
                },
            )
            return OperationResult(success=False, issues=issues)

        record = candidate.model_copy(
            update={"created_at": created_at, "updated_at": self._clock()}
        )
        stored = await self._contact_repo.replace(record)
        if stored is None:
            # Deleted between the lookup and the write.
            return OperationResult(success=False, issues=[issue(ValidationCode.NOT_FOUND)])

        logger.info("Contact updated", extra={"contact_id": stored.id})
        return OperationResult(success=True, contact=ContactData.model_validate(stored))

    async def delete(self, contact_id: int) -> bool:
        """Delete a contact.

        Returns:
            True if a contact was deleted, False for a non-positive or
            unknown ID.
        """
        if contact_id <= 0:
            return False

        if await self._contact_repo.get_by_id(contact_id) is None:
            return False

        await self._contact_repo.delete_by_id(contact_id)
        logger.info("Contact deleted", extra={"contact_id": contact_id})
        return True

    async def sorted_list(
        self,
        sort_by: str | SortField | None = SortField.FIRST_NAME,
        ascending: bool = True,
    ) -> list[ContactData]:
        """Get every contact sorted by one field.

        Args:
            sort_by: Field name (see ``parse_sort_field``).
            ascending: Sort direction.

        Returns:
            Sorted contacts; equal keys keep no particular order.
        """
        field = parse_sort_field(sort_by)
        contacts = await self.get_all()
        return sorted(contacts, key=_sort_key(field), reverse=not ascending)

    async def paginate(
        self,
        page_number: int = 1,
        page_size: int | None = None,
        sort_by: str | SortField | None = SortField.FIRST_NAME,
        ascending: bool = True,
    ) -> ContactPage:
        """Get one page of the sorted contact list.

        Args:
            page_number: Page number (1-indexed), clamped to at least 1.
            page_size: Number of items per page, clamped to at least 1;
                defaults to the configured page size.
            sort_by: Field name to sort by.
            ascending: Sort direction.

        Returns:
            The page, with total count and page count. A page past the end
            is empty.
        """
        page_number = max(page_number, 1)
        if page_size is None:
            page_size = get_settings().default_page_size
        page_size = max(page_size, 1)

        contacts = await self.sorted_list(sort_by, ascending)
        total = len(contacts)
        pages = (total + page_size - 1) // page_size

        offset = (page_number - 1) * page_size
        return ContactPage(
            items=contacts[offset : offset + page_size],
            total=total,
            page=page_number,
            page_size=page_size,
            pages=pages,
        )
