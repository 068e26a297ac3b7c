"""
Customer Endpoints

CRUD for customers. A customer belongs to exactly one organization.

Authorization:
- list: read in the organization from the path
- create: write in the organization named in the body, checked before
  anything is written
- view/update/delete by id: read or write in the customer's own
  organization, whatever the client claims
"""
from fastapi import APIRouter, Depends, Query, status
from typing import Optional
from sqlalchemy.orm import Session

from meatmath.database import get_db
from meatmath.models.customer import Customer
from meatmath.schemas.customer import (
    CustomerCreate,
    CustomerUpdate,
    CustomerResponse,
    CustomerListResponse,
)
from meatmath.api.deps import (
    get_current_principal,
    get_access_control,
    get_write_access_control,
    require_organization_access,
)
from meatmath.core.roles import ActionClass
from meatmath.core.access_control import AccessControlService, validate_organization_id
from meatmath.core.exceptions import CustomerNotFoundError
from meatmath.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["customers"])


def _get_customer(db: Session, customer_id: str) -> Customer:
    customer = db.query(Customer).filter(
        Customer.id == customer_id,
        Customer.is_active == True
    ).first()
    if not customer:
        raise CustomerNotFoundError(customer_id)
    return customer


@router.get("/organizations/{org_id}/customers", response_model=CustomerListResponse)
async def list_customers(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=255),
    organization_id: str = Depends(require_organization_access(ActionClass.READ)),
    db: Session = Depends(get_db)
):
    """List active customers of one organization, newest first."""
    query = db.query(Customer).filter(
        Customer.organization_id == organization_id,
        Customer.is_active == True
    )

    if search:
        query = query.filter(Customer.name.ilike(f"%{search}%"))

    total = query.count()
    offset = (page - 1) * page_size
    customers = query.order_by(Customer.created_at.desc()).offset(offset).limit(page_size).all()

    return CustomerListResponse(
        customers=customers,
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("/customers", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    customer_data: CustomerCreate,
    principal: str = Depends(get_current_principal),
    access: AccessControlService = Depends(get_write_access_control),
    db: Session = Depends(get_db)
):
    access.require_creation(principal, customer_data.organization_id, ActionClass.WRITE)

    customer = Customer(**customer_data.model_dump())
    customer.organization_id = validate_organization_id(customer_data.organization_id)
    db.add(customer)
    db.commit()
    db.refresh(customer)

    logger.info(f"Customer created: {customer.id} in {customer.organization_id} by {principal}")

    return customer


@router.get("/customers/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: str,
    principal: str = Depends(get_current_principal),
    access: AccessControlService = Depends(get_access_control),
    db: Session = Depends(get_db)
):
    customer = _get_customer(db, customer_id)
    access.require_resource_owner(principal, customer, ActionClass.READ)
    return customer


@router.put("/customers/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: str,
    customer_data: CustomerUpdate,
    principal: str = Depends(get_current_principal),
    access: AccessControlService = Depends(get_write_access_control),
    db: Session = Depends(get_db)
):
    customer = _get_customer(db, customer_id)
    access.require_resource_owner(principal, customer, ActionClass.WRITE)

    update_data = customer_data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(customer, field, value)

    db.commit()
    db.refresh(customer)

    logger.info(f"Customer updated: {customer.id} by {principal}")

    return customer


@router.delete("/customers/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_customer(
    customer_id: str,
    principal: str = Depends(get_current_principal),
    access: AccessControlService = Depends(get_write_access_control),
    db: Session = Depends(get_db)
):
    """Soft delete; invoices and processing records keep their reference."""
    customer = _get_customer(db, customer_id)
    access.require_resource_owner(principal, customer, ActionClass.WRITE)

    customer.soft_delete()
    db.commit()

    logger.info(f"Customer deleted: {customer_id} by {principal}")

    return None
