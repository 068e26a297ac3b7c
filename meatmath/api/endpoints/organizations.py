"""
Organization Endpoints

Organizations and their memberships.

Action classes:
- view organization, own role, member list: read
- invite, change role, deactivate member: admin-write
- create organization: any authenticated user; the creator becomes owner
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from meatmath.database import get_db
from meatmath.models.user import User
from meatmath.models.organization import Organization
from meatmath.schemas.organization import (
    OrganizationCreate,
    OrganizationResponse,
    OrganizationMembershipResponse,
    RoleResponse,
    MemberInvite,
    MemberRoleUpdate,
    MemberResponse,
    MemberListResponse,
)
from meatmath.api.deps import (
    get_current_principal,
    get_current_user,
    get_access_control,
    get_write_access_control,
    get_membership_manager,
    require_organization_access,
)
from meatmath.core.roles import Role, ActionClass
from meatmath.core.access_control import AccessControlService, validate_principal_id
from meatmath.core.memberships import MembershipManager
from meatmath.core.exceptions import AccessDeniedError, OrganizationNotFoundError
from meatmath.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/organizations", tags=["organizations"])


@router.get("", response_model=list[OrganizationMembershipResponse])
async def list_organizations(
    principal: str = Depends(get_current_principal),
    manager: MembershipManager = Depends(get_membership_manager)
):
    """Organizations where the caller holds an active membership."""
    organizations = []
    for organization, role in manager.list_organizations_for(principal):
        if Role.parse(role) is None:
            logger.error(f"Unknown role {role!r} for {principal} in {organization.id}; skipped")
            continue
        organizations.append(OrganizationMembershipResponse(
            **OrganizationResponse.model_validate(organization).model_dump(),
            role=role
        ))
    return organizations


@router.post("", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
async def create_organization(
    organization_data: OrganizationCreate,
    current_user: User = Depends(get_current_user),
    manager: MembershipManager = Depends(get_membership_manager)
):
    """
    Create an organization.

    The organization and the creator's owner membership are written in the
    same transaction.
    """
    fields = organization_data.model_dump(exclude_none=True)
    organization = manager.create_organization(current_user.id, **fields)

    logger.info(f"Organization created: {organization.id} by {current_user.id}")

    return organization


@router.get("/{org_id}", response_model=OrganizationResponse)
async def get_organization(
    organization_id: str = Depends(require_organization_access(ActionClass.READ)),
    db: Session = Depends(get_db)
):
    organization = db.get(Organization, organization_id)
    if organization is None:
        raise OrganizationNotFoundError(organization_id)
    return organization


@router.get("/{org_id}/role", response_model=RoleResponse)
async def get_my_role(
    principal: str = Depends(get_current_principal),
    organization_id: str = Depends(require_organization_access(ActionClass.READ)),
    access: AccessControlService = Depends(get_access_control)
):
    """
    The caller's role in the organization, so clients can decide which
    actions to offer. No membership answers 403 like any other read.
    """
    role = access.resolve_role(principal, organization_id)
    if role is None:
        # Revoked between the two lookups
        raise AccessDeniedError()
    return RoleResponse(organization_id=organization_id, role=role)


@router.get("/{org_id}/members", response_model=MemberListResponse)
async def list_members(
    include_inactive: bool = Query(False),
    organization_id: str = Depends(require_organization_access(ActionClass.READ)),
    manager: MembershipManager = Depends(get_membership_manager)
):
    members = manager.list_members(organization_id, include_inactive=include_inactive)
    return MemberListResponse(members=members, total=len(members))


@router.post("/{org_id}/members", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def add_member(
    invite: MemberInvite,
    principal: str = Depends(get_current_principal),
    organization_id: str = Depends(require_organization_access(ActionClass.ADMIN_WRITE)),
    access: AccessControlService = Depends(get_write_access_control),
    manager: MembershipManager = Depends(get_membership_manager)
):
    """
    Add a user to the organization.

    Granting the owner role needs an owner.
    """
    user_id = validate_principal_id(invite.user_id)
    actor_role = access.resolve_role(principal, organization_id)
    member = manager.add_member(organization_id, user_id, invite.role, actor_role=actor_role)

    logger.info(f"Member {user_id} added to {organization_id} as {invite.role.value} by {principal}")

    return member


@router.patch("/{org_id}/members/{user_id}", response_model=MemberResponse)
async def change_member_role(
    user_id: str,
    update: MemberRoleUpdate,
    principal: str = Depends(get_current_principal),
    organization_id: str = Depends(require_organization_access(ActionClass.ADMIN_WRITE)),
    access: AccessControlService = Depends(get_write_access_control),
    manager: MembershipManager = Depends(get_membership_manager)
):
    """
    Change a member's role in one atomic update.

    Changing an owner, or granting owner, needs an owner. The last active
    owner cannot be demoted.
    """
    user_id = validate_principal_id(user_id)
    actor_role = access.resolve_role(principal, organization_id)
    member = manager.change_role(organization_id, user_id, update.role, actor_role=actor_role)

    logger.info(f"Member {user_id} in {organization_id} now {update.role.value} (by {principal})")

    return member


@router.delete("/{org_id}/members/{user_id}", response_model=MemberResponse)
async def deactivate_member(
    user_id: str,
    principal: str = Depends(get_current_principal),
    organization_id: str = Depends(require_organization_access(ActionClass.ADMIN_WRITE)),
    access: AccessControlService = Depends(get_write_access_control),
    manager: MembershipManager = Depends(get_membership_manager)
):
    """
    Deactivate a membership.

    The row is kept with is_active = False; from the next request on the
    user is treated as having no membership.
    """
    user_id = validate_principal_id(user_id)
    actor_role = access.resolve_role(principal, organization_id)
    member = manager.deactivate(organization_id, user_id, actor_role=actor_role)

    logger.info(f"Member {user_id} deactivated in {organization_id} by {principal}")

    return member
