"""
Domain Error Module

Categorized errors raised by the validation, account, funding and auth
services. The HTTP layer maps ``code`` onto a status; services never raise
framework exceptions themselves.
"""

from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .validation import ValidationIssue


class BankingError(Exception):
    """Base class for all categorized service errors"""
    code = "INTERNAL"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BankingError):
    """One or more client-fixable field problems, raised before any side effect"""
    code = "VALIDATION"

    def __init__(self, issues: List["ValidationIssue"], message: Optional[str] = None):
        self.issues = list(issues)
        super().__init__(message or (self.issues[0].message if self.issues else "Validation failed"))

    @property
    def messages(self) -> List[str]:
        return [issue.message for issue in self.issues]

    def messages_for(self, field: str) -> List[str]:
        return [issue.message for issue in self.issues if issue.field == field]


class NotFoundError(BankingError):
    """Referenced record is missing or not owned by the caller"""
    code = "NOT_FOUND"


class ConflictError(BankingError):
    """Duplicate unique key"""
    code = "CONFLICT"


class BadRequestError(BankingError):
    """Valid reference but the record is in the wrong state"""
    code = "BAD_REQUEST"


class UnauthorizedError(BankingError):
    """Failed credential or session check"""
    code = "UNAUTHORIZED"


class InternalError(BankingError):
    """Persistence invariant violated; a write may have partially occurred"""
    code = "INTERNAL"


class UniqueConstraintError(ValueError):
    """Raised by storage backends when an insert/update violates a unique field"""

    def __init__(self, table: str, field: str, value):
        super().__init__(f"Duplicate value for {table}.{field}")
        self.table = table
        self.field = field
        self.value = value
