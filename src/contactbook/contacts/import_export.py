"""
CSV file import and export for contacts.

Import feeds every decoded row through ``ContactService.add``, so imported
rows get the same validation and phone duplicate checks as interactive
creation. Rows are committed one by one; a failure part way through keeps
the rows already imported.
"""

import asyncio
import os
import tempfile
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from contactbook.config import get_settings
from contactbook.contacts.csv_codec import HEADER_LINE, CSVCodec, encode_contacts, physical_lines
from contactbook.contacts.schemas import (
    ContactData,
    CSVExportResult,
    CSVImportResult,
    CSVValidationResult,
    ValidationCode,
)
from contactbook.contacts.service import ContactService
from contactbook.shared.exceptions import CSVFileError
from contactbook.shared.logging import get_logger

logger = get_logger(__name__)

TEMPLATE_ROWS = (
    'John,Doe,Acme Corp,+1234567890,+0987654321,john.doe@example.com,"123 Main St, City, State",Sample contact,',
    'Jane,Smith,Tech Inc,+1111111111,,jane.smith@example.com,"456 Oak Ave, Town, State",Another example,',
)


def _write_atomic(path: Path, text: str, encoding: str) -> None:
    """Write ``text`` to ``path`` entirely or not at all."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class ImportExportService:
    """Service for CSV import and export of contacts."""

    def __init__(
        self,
        contact_service: ContactService,
        codec: CSVCodec | None = None,
        encoding: str | None = None,
    ) -> None:
        """Initialize import/export service.

        Args:
            contact_service: Service used to read and add contacts.
            codec: Optional CSV codec (for DI).
            encoding: File encoding; defaults to the configured one.
        """
        self._contacts = contact_service
        self._codec = codec or CSVCodec()
        self._encoding = encoding or get_settings().csv_encoding

    async def _read_text(self, path: Path) -> str:
        """Read a CSV file that must exist and hold at least one data line.

        Raises:
            CSVFileError: If the file is missing or has no data rows.
        """
        if not path.is_file():
            raise CSVFileError("File not found", reason="File does not exist")

        text = await asyncio.to_thread(path.read_text, encoding=self._encoding)

        if len(physical_lines(text)) < 2:
            raise CSVFileError("CSV file is empty or has no data rows", reason="No data to import")

        return text

    async def export_to_csv(
        self,
        file_path: str | os.PathLike[str],
        contacts: list[ContactData] | None = None,
    ) -> CSVExportResult:
        """Export contacts to a CSV file.

        Args:
            file_path: Destination file; replaced if it exists.
            contacts: Contacts to export; all stored contacts when None.

        Returns:
            Export result. The file is written completely or not at all.
        """
        path = Path(file_path)
        try:
            if contacts is None:
                contacts = await self._contacts.get_all()

            if not contacts:
                return CSVExportResult(success=False, message="No contacts to export")

            text = encode_contacts(contacts)
            await asyncio.to_thread(_write_atomic, path, text, self._encoding)
        except (OSError, SQLAlchemyError) as e:
            logger.warning("CSV export failed", extra={"path": str(path), "error": str(e)})
            return CSVExportResult(success=False, message=f"Export failed: {e}")

        logger.info("CSV export completed", extra={"path": str(path), "count": len(contacts)})
        return CSVExportResult(
            success=True,
            message=f"Successfully exported {len(contacts)} contacts to {path}",
        )

    async def import_from_csv(
        self,
        file_path: str | os.PathLike[str],
        skip_duplicates: bool | None = None,
    ) -> CSVImportResult:
        """Import contacts from a CSV file.

        Args:
            file_path: Source CSV file.
            skip_duplicates: Leave duplicate-phone errors out of the report;
                defaults to the configured behavior.

        Returns:
            Import result. ``success`` is False only for file-level failures;
            row failures are listed in ``errors``.
        """
        if skip_duplicates is None:
            skip_duplicates = get_settings().import_skip_duplicates

        path = Path(file_path)
        errors: list[str] = []
        imported_count = 0

        try:
            text = await self._read_text(path)

            for line_num, parsed, row_error in self._codec.parse(text):
                if row_error is not None:
                    errors.append(str(row_error))
                    continue

                contact = parsed.to_contact()
                try:
                    result = await self._contacts.add(contact)
                except SQLAlchemyError as e:
                    logger.exception("CSV row not stored", extra={"line_number": line_num})
                    errors.append(f"Line {line_num}: {e}")
                    continue

                if result.success:
                    imported_count += 1
                    continue

                issues = result.issues
                if skip_duplicates:
                    issues = [i for i in issues if i.code is not ValidationCode.DUPLICATE_PHONE]
                if not issues:
                    logger.debug("Duplicate row skipped", extra={"line_number": line_num})
                    continue

                errors.append(
                    f"Line {line_num} ({contact.display_name}): "
                    + ", ".join(i.message for i in issues)
                )
        except CSVFileError as e:
            logger.warning("CSV import rejected", extra={"path": str(path), "error": e.message})
            return CSVImportResult(
                success=False,
                message=e.message,
                imported_count=0,
                errors=[e.reason or e.message],
            )
        except (OSError, UnicodeDecodeError) as e:
            logger.exception("CSV import failed", extra={"path": str(path)})
            return CSVImportResult(
                success=False,
                message=f"Import failed: {e}",
                imported_count=imported_count,
                errors=errors,
            )

        message = f"Import completed. {imported_count} contacts imported successfully."
        if errors:
            message += f" {len(errors)} errors occurred."

        logger.info(
            "CSV import completed",
            extra={
                "path": str(path),
                "imported_count": imported_count,
                "error_count": len(errors),
            },
        )
        return CSVImportResult(
            success=True,
            message=message,
            imported_count=imported_count,
            errors=errors,
        )

    async def validate_csv_file(self, file_path: str | os.PathLike[str]) -> CSVValidationResult:
        """Check a CSV file before importing it.

        Args:
            file_path: CSV file to check.

        Returns:
            Validation result with the number of data rows when valid.
        """
        path = Path(file_path)
        try:
            text = await self._read_text(path)
        except CSVFileError as e:
            return CSVValidationResult(is_valid=False, message=e.message, row_count=0)
        except (OSError, UnicodeDecodeError) as e:
            return CSVValidationResult(is_valid=False, message=f"Validation failed: {e}", row_count=0)

        header = physical_lines(text)[0]
        missing = self._codec.missing_columns(header)
        if missing:
            return CSVValidationResult(
                is_valid=False,
                message=f"Missing required column: {missing[0]}",
                row_count=0,
            )

        row_count = self._codec.count_records(text)
        return CSVValidationResult(
            is_valid=True,
            message=f"Valid CSV file with {row_count} data rows",
            row_count=row_count,
        )

    async def create_csv_template(self, file_path: str | os.PathLike[str]) -> bool:
        """Write a sample CSV file with the header and two example rows.

        Returns:
            True if the file was written.
        """
        path = Path(file_path)
        text = "\n".join((HEADER_LINE, *TEMPLATE_ROWS)) + "\n"
        try:
            await asyncio.to_thread(_write_atomic, path, text, self._encoding)
        except OSError as e:
            logger.warning("CSV template not written", extra={"path": str(path), "error": str(e)})
            return False
        return True
