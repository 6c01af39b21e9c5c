from contactbook.contacts.models import Contact
from contactbook.contacts.schemas import ContactData, OperationResult, ValidationCode

__all__ = ["Contact", "ContactData", "OperationResult", "ValidationCode"]
