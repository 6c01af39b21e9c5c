"""
Contact repository for database operations.

The repository performs no validation. Every mutating call commits before
returning; a failed commit rolls the session back so it stays usable.
"""

from typing import Protocol, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from contactbook.contacts.models import Contact
from contactbook.contacts.schemas import ContactData

# Columns copied from ContactData onto the ORM row; id is never copied.
WRITABLE_FIELDS = (
    "first_name",
    "last_name",
    "company",
    "primary_phone",
    "secondary_phone",
    "email",
    "address",
    "notes",
    "photo_path",
    "created_at",
    "updated_at",
)


class ContactRepositoryProtocol(Protocol):
    """Protocol for contact repository operations."""

    async def list_all(self) -> Sequence[Contact]:
        """List every stored contact."""
        ...

    async def get_by_id(self, contact_id: int) -> Contact | None:
        """Get a contact by ID."""
        ...

    async def insert(self, data: ContactData) -> Contact:
        """Store a new contact."""
        ...

    async def replace(self, data: ContactData) -> Contact | None:
        """Overwrite a stored contact."""
        ...

    async def delete_by_id(self, contact_id: int) -> None:
        """Remove a contact if present."""
        ...


class ContactRepository:
    """Repository for contact database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async database session.
        """
        self._session = session

    async def _commit(self) -> None:
        """Commit, rolling the session back if the commit fails."""
        try:
            await self._session.commit()
        except SQLAlchemyError:
            await self._session.rollback()
            raise

    async def list_all(self) -> Sequence[Contact]:
        """List every stored contact in storage (id) order."""
        stmt = select(Contact).order_by(Contact.id)
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def get_by_id(self, contact_id: int) -> Contact | None:
        """Get a contact by ID.

        Args:
            contact_id: Contact ID.

        Returns:
            Contact if found, None otherwise.
        """
        stmt = select(Contact).where(Contact.id == contact_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def insert(self, data: ContactData) -> Contact:
        """Store a new contact. The store assigns the ID.

        Args:
            data: Contact values; ``data.id`` is ignored.

        Returns:
            Created contact with ID.
        """
        values = {name: getattr(data, name) for name in WRITABLE_FIELDS}
        contact = Contact(**{k: v for k, v in values.items() if v is not None})
        self._session.add(contact)
        await self._commit()
        await self._session.refresh(contact)
        return contact

    async def replace(self, data: ContactData) -> Contact | None:
        """Overwrite every field of the stored contact with ``data.id``.

        Args:
            data: Contact values including the ID.

        Returns:
            Updated contact, or None if no contact has that ID.
        """
        if data.id is None:
            return None

        contact = await self.get_by_id(data.id)
        if contact is None:
            return None

        for name in WRITABLE_FIELDS:
            value = getattr(data, name)
            if value is None and name in ("created_at", "updated_at"):
                continue
            setattr(contact, name, value)

        await self._commit()
        await self._session.refresh(contact)
        return contact

    async def delete_by_id(self, contact_id: int) -> None:
        """Remove a contact if present; no-op otherwise.

        Args:
            contact_id: Contact ID.
        """
        await self._session.execute(delete(Contact).where(Contact.id == contact_id))
        await self._commit()
