# cardledger/errors.py
"""
Error taxonomy shared by the store, the external clients and the services.

The API layer maps each class to an HTTP status through a single exception
handler registered on LedgerError (see cardledger.main).
"""


class LedgerError(Exception):
    status_code = 400
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """User-correctable input: missing receipt/email, bad amount, bad move."""

    status_code = 422
    kind = "validation"


class NotFoundError(LedgerError):
    status_code = 404
    kind = "not_found"


class ConflictError(LedgerError):
    """The row changed underneath the caller (stale expected status)."""

    status_code = 409
    kind = "conflict"


class DependencyError(LedgerError):
    """Datastore, file store or email provider failed; safe to retry."""

    status_code = 502
    kind = "dependency"


class PermissionDeniedError(LedgerError):
    status_code = 403
    kind = "permission"
