"""
Custom Exceptions

Centralized exception definitions. They are HTTPExceptions so FastAPI
turns them into responses; main.py renders every one as {"message": ...}.

Authorization errors that reach a caller always carry decision = DENY.
Nothing in this module represents an allow.
"""
from fastapi import HTTPException, status

from meatmath.core.roles import Decision


class AuthenticationError(HTTPException):
    """Raised when the request carries no valid identity."""

    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AccessDeniedError(HTTPException):
    """
    Raised when the principal may not perform the action.

    Used for both "not a member" and "insufficient role". The two cases
    share one message on purpose so a caller cannot learn whether a
    membership (or the organization) exists.
    """

    def __init__(self, detail: str = "Access denied"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail
        )


class MalformedIdentifierError(HTTPException):
    """Raised before any store call when a principal or organization id is malformed."""

    def __init__(self, field: str = "identifier"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Malformed {field}"
        )
        self.field = field
        self.decision = Decision.DENY


class StoreUnavailableError(HTTPException):
    """
    Raised when the tenant store cannot answer a membership lookup.

    The access decision for the failed call is DENY; the handler still
    reports a server error because the request could not be evaluated.
    """

    def __init__(self, detail: str = "Tenant store unavailable"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail
        )
        self.decision = Decision.DENY


class NotFoundError(HTTPException):
    """Base for 404s on tenant-owned records."""

    label = "Record"

    def __init__(self, record_id: str = ""):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{self.label} not found: {record_id}" if record_id else f"{self.label} not found"
        )


class OrganizationNotFoundError(NotFoundError):
    label = "Organization"


class MemberNotFoundError(NotFoundError):
    label = "Member"


class SpeciesNotFoundError(NotFoundError):
    label = "Species"


class CustomerNotFoundError(NotFoundError):
    label = "Customer"


class ProcessingRecordNotFoundError(NotFoundError):
    label = "Processing record"


class InventoryItemNotFoundError(NotFoundError):
    label = "Inventory item"


class InvoiceNotFoundError(NotFoundError):
    label = "Invoice"


class CutInstructionNotFoundError(NotFoundError):
    label = "Cut instruction"


class MembershipConflictError(HTTPException):
    """Raised when a membership change would break a membership invariant."""

    def __init__(self, detail: str = "Membership conflict"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail
        )


class RateLimitExceeded(HTTPException):
    """Raised when rate limit is exceeded."""

    def __init__(self, retry_after: int = 60, detail: str = "Too many requests, please try again later."):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=detail,
            headers={"Retry-After": str(retry_after)}
        )
