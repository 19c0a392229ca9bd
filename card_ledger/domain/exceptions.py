"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class NotAuthenticatedError(DomainException):
    """Missing, invalid or expired access token"""

    pass


class ForbiddenError(DomainException):
    """Principal lacks the access level required for the operation"""

    pass


class NotFoundError(DomainException):
    """Entity does not exist or is not visible to the effective owner"""

    pass


class CardNotFoundError(NotFoundError):
    pass


class InvoiceNotFoundError(NotFoundError):
    pass


class ExpenseNotFoundError(NotFoundError):
    pass


class BankAccountNotFoundError(NotFoundError):
    pass


class CategoryNotFoundError(NotFoundError):
    pass


class LinkedUserNotFoundError(NotFoundError):
    pass


class TransferNotFoundError(NotFoundError):
    pass


class InvalidInputError(DomainException):
    """Request data is missing or out of range"""

    pass


class InvalidInstallmentCountError(InvalidInputError):
    pass


class InvalidCategoryError(InvalidInputError):
    """Category cannot be used for the operation (e.g. not an expense category)"""

    pass


class ConflictError(DomainException):
    """Operation clashes with the current state of a row"""

    pass


class DuplicateInvoiceError(ConflictError):
    pass


class AlreadyPaidError(ConflictError):
    pass


class StoreFailureError(DomainException):
    """Persistence layer call failed"""

    pass


class DuplicateRowError(StoreFailureError):
    """Insert violated a uniqueness constraint"""

    pass


class AuthServiceError(DomainException):
    """Auth service returned an error or is unavailable"""

    pass
