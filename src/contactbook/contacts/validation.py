"""
Field validation and phone duplicate detection for contacts.
"""

import re
from collections.abc import Iterable

from pydantic.networks import validate_email as _parse_email
from pydantic_core import PydanticCustomError

from contactbook.contacts.schemas import ContactData, ValidationCode, ValidationIssue

FIRST_NAME_MIN_LENGTH = 2
FIRST_NAME_MAX_LENGTH = 100

PHONE_MIN_LENGTH = 10
PHONE_MAX_LENGTH = 15

# Everything except digits and '+' is formatting.
PHONE_FORMATTING = re.compile(r"[^\d+]")

MESSAGES: dict[ValidationCode, str] = {
    ValidationCode.FIRST_NAME_REQUIRED: "First name is required",
    ValidationCode.FIRST_NAME_LENGTH: (
        f"First name must be between {FIRST_NAME_MIN_LENGTH} "
        f"and {FIRST_NAME_MAX_LENGTH} characters"
    ),
    ValidationCode.INVALID_EMAIL: "Invalid email format",
    ValidationCode.INVALID_PRIMARY_PHONE: "Invalid primary phone format",
    ValidationCode.INVALID_SECONDARY_PHONE: "Invalid secondary phone format",
    ValidationCode.DUPLICATE_PHONE: "Phone number already exists for contact: {name}",
    ValidationCode.INVALID_ID: "Invalid contact ID",
    ValidationCode.NOT_FOUND: "Contact not found",
}


def issue(code: ValidationCode, **params: str) -> ValidationIssue:
    """Build an issue carrying the fixed message for ``code``."""
    return ValidationIssue(code=code, message=MESSAGES[code].format(**params))


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def validate_email(email: str | None) -> tuple[bool, str | None]:
    """Validate email address format.

    The value must parse as exactly one address and nothing else, so
    display-name forms like ``"Ann <ann@example.com>"`` are rejected.

    Args:
        email: Email string or None.

    Returns:
        Tuple of (is_valid, normalized_email or None).
    """
    if _is_blank(email):
        return True, None  # Empty email is valid (optional field)

    try:
        _, address = _parse_email(email)
    except PydanticCustomError:
        return False, None

    # email-validator lower-cases the domain part
    if address.lower() != email.lower():
        return False, None

    return True, address


def normalize_phone(phone: str) -> str:
    """Strip formatting characters, keeping digits and '+'."""
    return PHONE_FORMATTING.sub("", phone)


def validate_phone_number(phone: str | None) -> tuple[bool, str | None]:
    """Validate phone number length after stripping formatting.

    Returns:
        Tuple of (is_valid, normalized phone or None).
    """
    if _is_blank(phone):
        return True, None

    cleaned = normalize_phone(phone)
    if PHONE_MIN_LENGTH <= len(cleaned) <= PHONE_MAX_LENGTH:
        return True, cleaned

    return False, None


def find_phone_conflict(
    candidate: ContactData,
    others: Iterable[ContactData],
) -> ContactData | None:
    """Return the first other contact sharing a phone number with ``candidate``.

    Primary and secondary numbers are compared crosswise, as stored (no
    normalization). Blank numbers never match.
    """
    phones = {
        p for p in (candidate.primary_phone, candidate.secondary_phone) if not _is_blank(p)
    }
    if not phones:
        return None

    for other in others:
        if other.id is not None and candidate.id is not None and other.id == candidate.id:
            continue
        if other.primary_phone in phones or other.secondary_phone in phones:
            return other

    return None


def validate_contact(
    candidate: ContactData,
    others: Iterable[ContactData] = (),
) -> list[ValidationIssue]:
    """Run every contact rule and collect the issues.

    Args:
        candidate: Contact to check.
        others: Stored contacts to check phone numbers against, excluding
            the one being updated.

    Returns:
        Distinct issues in rule order; empty when the contact is valid.
    """
    issues: list[ValidationIssue] = []

    first_name = (candidate.first_name or "").strip()
    if not first_name:
        issues.append(issue(ValidationCode.FIRST_NAME_REQUIRED))
    elif not FIRST_NAME_MIN_LENGTH <= len(first_name) <= FIRST_NAME_MAX_LENGTH:
        issues.append(issue(ValidationCode.FIRST_NAME_LENGTH))

    if not validate_email(candidate.email)[0]:
        issues.append(issue(ValidationCode.INVALID_EMAIL))

    if not validate_phone_number(candidate.primary_phone)[0]:
        issues.append(issue(ValidationCode.INVALID_PRIMARY_PHONE))

    if not validate_phone_number(candidate.secondary_phone)[0]:
        issues.append(issue(ValidationCode.INVALID_SECONDARY_PHONE))

    conflict = find_phone_conflict(candidate, others)
    if conflict is not None:
        issues.append(issue(ValidationCode.DUPLICATE_PHONE, name=conflict.display_name))

    return list(dict.fromkeys(issues))
