"""
Application wiring for the presentation layer.

Typical use::

    db = await startup()
    async with open_services(db) as services:
        result = await services.contacts.add(ContactData(first_name="Ann"))
    await db.close()
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from contactbook.config import Settings, get_settings
from contactbook.contacts.import_export import ImportExportService
from contactbook.contacts.service import ContactService
from contactbook.shared.database import DatabaseManager
from contactbook.shared.logging import get_logger, setup_logging

logger = get_logger(__name__)


@dataclass(frozen=True)
class Services:
    """Services bound to one database session."""

    contacts: ContactService
    import_export: ImportExportService


async def startup(settings: Settings | None = None) -> DatabaseManager:
    """Configure logging and open the contact store, creating it if absent."""
    settings = settings or get_settings()
    setup_logging(settings)

    db = DatabaseManager(settings.database_url, echo=settings.debug)
    await db.create_schema()

    logger.info("Application started", extra={"app_name": settings.app_name})
    return db


@asynccontextmanager
async def open_services(db: DatabaseManager) -> AsyncGenerator[Services, None]:
    """Yield contact and import/export services sharing one session."""
    async with db.session() as session:
        contacts = ContactService(session)
        yield Services(contacts=contacts, import_export=ImportExportService(contacts))
