"""
API Dependencies

Reusable FastAPI dependencies for authentication and authorization.

Two access-control flavours are handed out:
- get_access_control: read path; may use the membership cache
- get_write_access_control: write and admin-write path; never reads the
  cache and locks the membership row in the request's own session, so the
  check holds until the handler commits
"""
from typing import Optional, Dict, Any
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from meatmath.config import get_settings
from meatmath.database import get_db
from meatmath.models.user import User
from meatmath.models.customer import Customer
from meatmath.core.roles import ActionClass
from meatmath.core.security import decode_access_token
from meatmath.core.access_control import (
    AccessControlService,
    validate_organization_id,
    validate_principal_id,
)
from meatmath.core.tenant_store import SqlTenantStore
from meatmath.core.membership_cache import get_membership_cache
from meatmath.core.memberships import MembershipManager
from meatmath.core.exceptions import (
    AuthenticationError,
    CustomerNotFoundError,
    MalformedIdentifierError,
)
from meatmath.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)

# auto_error=False so a missing header reaches our own 401 instead of
# FastAPI's 403
security = HTTPBearer(auto_error=False)

PROFILE_CLAIMS = ("email", "first_name", "last_name", "profile_image_url")


async def get_token_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Dict[str, Any]:
    """Verified claims of the bearer token, or 401."""
    if credentials is None or not credentials.credentials:
        log_security_event("authentication_failed", {"reason": "missing_token"}, logger)
        raise AuthenticationError()

    payload = decode_access_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        log_security_event("authentication_failed", {"reason": "invalid_token"}, logger)
        raise AuthenticationError()

    return payload


async def get_current_principal(claims: Dict[str, Any] = Depends(get_token_claims)) -> str:
    """
    The authenticated principal id.

    A subject that does not look like a principal id is rejected with 400
    before anything is looked up.
    """
    principal = claims.get("sub")
    try:
        return validate_principal_id(principal)
    except MalformedIdentifierError:
        log_security_event("malformed_identifier", {"field": "principal", "decision": "deny"}, logger)
        raise


async def get_current_user(
    principal: str = Depends(get_current_principal),
    claims: Dict[str, Any] = Depends(get_token_claims),
    db: Session = Depends(get_db)
) -> User:
    """
    Load the user row for the principal, creating or refreshing it from the
    token's profile claims.
    """
    user = db.get(User, principal)
    if user is None:
        user = User(id=principal)
        db.add(user)

    changed = user.created_at is None
    for claim in PROFILE_CLAIMS:
        value = claims.get(claim)
        if value is not None and getattr(user, claim) != value:
            setattr(user, claim, value)
            changed = True

    if changed:
        try:
            db.commit()
        except IntegrityError:
            # Another user already holds this email; keep the row without it
            db.rollback()
            logger.warning(f"Profile claims for {principal} conflict with an existing user")
            user = db.get(User, principal)
            if user is None:
                user = User(id=principal)
                db.add(user)
                db.commit()

    return user


def get_access_control(db: Session = Depends(get_db)) -> AccessControlService:
    """Access control for read operations."""
    return AccessControlService(
        SqlTenantStore(db),
        cache=get_membership_cache(get_settings())
    )


def get_write_access_control(db: Session = Depends(get_db)) -> AccessControlService:
    """Access control for write and admin-write operations (row-locking, uncached)."""
    return AccessControlService(SqlTenantStore(db, lock_rows=True))


def get_membership_manager(db: Session = Depends(get_db)) -> MembershipManager:
    return MembershipManager(db, cache=get_membership_cache(get_settings()))


def require_organization_access(action_class: ActionClass):
    """
    Dependency factory guarding routes with an {org_id} path parameter.

    Returns the canonical organization id once the principal is allowed
    to perform action_class in it.

    Usage:
        organization_id: str = Depends(require_organization_access(ActionClass.READ))
    """
    action_class = ActionClass(action_class)

    async def dependency(
        org_id: str,
        principal: str = Depends(get_current_principal),
        read_access: AccessControlService = Depends(get_access_control),
        write_access: AccessControlService = Depends(get_write_access_control)
    ) -> str:
        access = read_access if action_class is ActionClass.READ else write_access
        access.require(principal, org_id, action_class)
        return validate_organization_id(org_id)

    return dependency


def check_customer_reference(db: Session, customer_id: Optional[str], organization_id: str) -> None:
    """
    A record may only point at a customer of its own organization.

    Customers of other organizations are reported as not found.
    """
    if customer_id is None:
        return
    customer = db.query(Customer).filter(
        Customer.id == customer_id,
        Customer.organization_id == organization_id,
    ).first()
    if customer is None:
        raise CustomerNotFoundError(customer_id)
