"""
Domain error taxonomy.

Every service raises one of these instead of a bare ValueError
so the API layer can pick the right HTTP status without
inspecting messages. Each class carries its status code.
"""


class LedgerError(Exception):
    """Base class for all domain failures."""
    status_code: int = 400


class ValidationError(LedgerError):
    """User-fixable input problem (unbalanced entry, missing mapping...)."""
    status_code = 400


class NotFoundError(LedgerError):
    """Referenced id does not resolve within the caller's tenant."""
    status_code = 404


class ConflictError(LedgerError):
    """The record is not in the state the operation requires."""
    status_code = 409


class AuthorizationError(LedgerError):
    status_code = 403


class NotAuthenticatedError(LedgerError):
    status_code = 401


class NoActiveTenantError(LedgerError):
    status_code = 400
