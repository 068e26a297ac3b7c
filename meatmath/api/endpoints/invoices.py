"""
Invoice Endpoints

Invoices of one organization. Only paid invoices count as dashboard
revenue. An invoice may only reference a customer of its own
organization.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from meatmath.database import get_db
from meatmath.models.invoice import Invoice
from meatmath.schemas.invoice import (
    InvoiceCreate,
    InvoiceUpdate,
    InvoiceResponse,
    InvoiceListResponse,
    STATUS_PATTERN,
)
from meatmath.api.deps import (
    get_current_principal,
    get_access_control,
    get_write_access_control,
    require_organization_access,
    check_customer_reference,
)
from meatmath.core.roles import ActionClass
from meatmath.core.access_control import AccessControlService, validate_organization_id
from meatmath.core.exceptions import InvoiceNotFoundError
from meatmath.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["invoices"])


def _get_invoice(db: Session, invoice_id: str) -> Invoice:
    invoice = db.get(Invoice, invoice_id)
    if not invoice:
        raise InvoiceNotFoundError(invoice_id)
    return invoice


@router.get("/organizations/{org_id}/invoices", response_model=InvoiceListResponse)
async def list_invoices(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    status: Optional[str] = Query(None, pattern=STATUS_PATTERN),
    customer_id: Optional[str] = None,
    organization_id: str = Depends(require_organization_access(ActionClass.READ)),
    db: Session = Depends(get_db)
):
    query = db.query(Invoice).filter(Invoice.organization_id == organization_id)

    if status:
        query = query.filter(Invoice.status == status)

    if customer_id:
        query = query.filter(Invoice.customer_id == customer_id)

    total = query.count()
    offset = (page - 1) * page_size
    invoices = query.order_by(Invoice.created_at.desc()).offset(offset).limit(page_size).all()

    return InvoiceListResponse(
        invoices=invoices,
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("/invoices", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    invoice_data: InvoiceCreate,
    principal: str = Depends(get_current_principal),
    access: AccessControlService = Depends(get_write_access_control),
    db: Session = Depends(get_db)
):
    access.require_creation(principal, invoice_data.organization_id, ActionClass.WRITE)
    organization_id = validate_organization_id(invoice_data.organization_id)

    check_customer_reference(db, invoice_data.customer_id, organization_id)

    invoice = Invoice(**invoice_data.model_dump())
    invoice.organization_id = organization_id
    db.add(invoice)
    db.commit()
    db.refresh(invoice)

    logger.info(f"Invoice created: {invoice.invoice_number} ({invoice.id}) in {organization_id} by {principal}")

    return invoice


@router.get("/invoices/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: str,
    principal: str = Depends(get_current_principal),
    access: AccessControlService = Depends(get_access_control),
    db: Session = Depends(get_db)
):
    invoice = _get_invoice(db, invoice_id)
    access.require_resource_owner(principal, invoice, ActionClass.READ)
    return invoice


@router.put("/invoices/{invoice_id}", response_model=InvoiceResponse)
async def update_invoice(
    invoice_id: str,
    invoice_data: InvoiceUpdate,
    principal: str = Depends(get_current_principal),
    access: AccessControlService = Depends(get_write_access_control),
    db: Session = Depends(get_db)
):
    invoice = _get_invoice(db, invoice_id)
    access.require_resource_owner(principal, invoice, ActionClass.WRITE)

    update_data = invoice_data.model_dump(exclude_unset=True)
    if "customer_id" in update_data:
        check_customer_reference(db, update_data["customer_id"], invoice.organization_id)

    for field, value in update_data.items():
        setattr(invoice, field, value)

    db.commit()
    db.refresh(invoice)

    logger.info(f"Invoice updated: {invoice.id} by {principal}")

    return invoice


@router.delete("/invoices/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(
    invoice_id: str,
    principal: str = Depends(get_current_principal),
    access: AccessControlService = Depends(get_write_access_control),
    db: Session = Depends(get_db)
):
    invoice = _get_invoice(db, invoice_id)
    access.require_resource_owner(principal, invoice, ActionClass.WRITE)

    db.delete(invoice)
    db.commit()

    logger.info(f"Invoice deleted: {invoice_id} by {principal}")

    return None
