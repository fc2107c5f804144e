"""
Error taxonomy for the balance ledger.

ValidationError is a caller mistake (4xx), NotFoundError a missing
expense/group/user (404) and IntegrityError a broken ledger invariant
(server fault). The ledger core never retries and never returns a
best-effort answer in place of an IntegrityError.
"""
from typing import Optional


class LedgerError(Exception):
    """Base class for ledger errors."""
    status_code = 500
    error = "LedgerError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """Malformed split specification or request, pointing at the offending field."""
    status_code = 400
    error = "ValidationError"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFoundError(LedgerError):
    """Referenced expense, group or user does not exist."""
    status_code = 404
    error = "NotFoundError"

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")
        self.resource = resource


class IntegrityError(LedgerError):
    """A ledger sum invariant was violated."""
    status_code = 500
    error = "IntegrityError"
