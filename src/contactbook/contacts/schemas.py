"""
Pydantic schemas for contact management.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ContactData(BaseModel):
    """Contact values exchanged with callers.

    ``id`` is None (or <= 0) for a contact that has not been stored yet.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    first_name: str = ""
    last_name: str | None = None
    company: str | None = None
    primary_phone: str | None = None
    secondary_phone: str | None = None
    email: str | None = None
    address: str | None = None
    notes: str | None = None
    photo_path: str | None = Field(
        default=None,
        description="Path to a photo on disk, stored as opaque text",
    )
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name or ''}".strip()


class ValidationCode(str, Enum):
    """Rule that produced a validation issue."""

    FIRST_NAME_REQUIRED = "first_name_required"
    FIRST_NAME_LENGTH = "first_name_length"
    INVALID_EMAIL = "invalid_email"
    INVALID_PRIMARY_PHONE = "invalid_primary_phone"
    INVALID_SECONDARY_PHONE = "invalid_secondary_phone"
    DUPLICATE_PHONE = "duplicate_phone"
    INVALID_ID = "invalid_id"
    NOT_FOUND = "not_found"


class ValidationIssue(BaseModel):
    """A single user-facing validation error."""

    model_config = ConfigDict(frozen=True)

    code: ValidationCode
    message: str

    def __str__(self) -> str:
        return self.message


class OperationResult(BaseModel):
    """Outcome of an add or update."""

    success: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    contact: ContactData | None = None

    @property
    def errors(self) -> list[str]:
        return [issue.message for issue in self.issues]

    @property
    def is_duplicate(self) -> bool:
        return any(issue.code is ValidationCode.DUPLICATE_PHONE for issue in self.issues)


class ContactPage(BaseModel):
    """One page of a sorted contact listing."""

    items: list[ContactData]
    total: int
    page: int
    page_size: int
    pages: int


class CSVRowError(BaseModel):
    """Schema for a CSV row that could not be decoded."""

    line_number: int = Field(..., description="Line number in the CSV file (1-indexed, header is 1)")
    error: str = Field(..., description="Error description")

    def __str__(self) -> str:
        return f"Line {self.line_number}: {self.error}"


class CSVRowData(BaseModel):
    """Schema for decoded CSV row data, in column order."""

    first_name: str = ""
    last_name: str | None = None
    company: str | None = None
    primary_phone: str | None = None
    secondary_phone: str | None = None
    email: str | None = None
    address: str | None = None
    notes: str | None = None
    photo_path: str | None = None

    def to_contact(self) -> ContactData:
        return ContactData(**self.model_dump())


class CSVImportResult(BaseModel):
    """Schema for CSV import outcome."""

    success: bool
    message: str
    imported_count: int = Field(default=0, ge=0)
    errors: list[str] = Field(default_factory=list)


class CSVExportResult(BaseModel):
    """Schema for CSV export outcome."""

    success: bool
    message: str


class CSVValidationResult(BaseModel):
    """Schema for CSV file pre-check outcome."""

    is_valid: bool
    message: str
    row_count: int = Field(default=0, ge=0)
