"""
Domain Errors
Error taxonomy shared by the ledger services and the HTTP layer
"""


class LedgerError(Exception):
    """Base class for every error the ledger reports to callers"""

    code = "ledger_error"
    http_status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """Malformed, missing or out-of-range input. Never retried."""

    code = "validation_error"
    http_status = 422


class NotFoundError(LedgerError):
    code = "not_found"
    http_status = 404


class ForbiddenError(LedgerError):
    """Verification, wallet ownership or admin check failed"""

    code = "forbidden"
    http_status = 403


class InvalidStateError(LedgerError):
    """Transition attempted on a request that is no longer pending"""

    code = "already_decided"
    http_status = 409


class InternalError(LedgerError):
    """Storage or transaction failure; the unit of work was rolled back"""

    code = "internal_error"
    http_status = 500


class ConcurrentUpdateError(InternalError):
    """Optimistic version check lost against a concurrent writer"""

    code = "concurrent_update"
