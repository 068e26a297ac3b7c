"""
Dashboard Endpoints

Headline metrics for one organization. Read access.
"""
from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from meatmath.database import get_db
from meatmath.models.customer import Customer
from meatmath.models.invoice import Invoice
from meatmath.models.processing_record import ProcessingRecord
from meatmath.schemas.dashboard import DashboardMetrics
from meatmath.api.deps import require_organization_access
from meatmath.core.roles import ActionClass

router = APIRouter(prefix="/organizations", tags=["dashboard"])


@router.get("/{org_id}/dashboard", response_model=DashboardMetrics)
async def get_dashboard_metrics(
    organization_id: str = Depends(require_organization_access(ActionClass.READ)),
    db: Session = Depends(get_db)
):
    """
    - total_animals: processing records in the organization
    - revenue: sum of paid invoice totals
    - average_yield: mean retail weight per processing record
    - active_customers: customers not soft-deleted
    """
    total_animals = db.query(func.count(ProcessingRecord.id)).filter(
        ProcessingRecord.organization_id == organization_id
    ).scalar()

    revenue = db.query(func.sum(Invoice.total)).filter(
        Invoice.organization_id == organization_id,
        Invoice.status == "paid"
    ).scalar()

    average_yield = db.query(func.avg(ProcessingRecord.total_retail_weight)).filter(
        ProcessingRecord.organization_id == organization_id
    ).scalar()

    active_customers = db.query(func.count(Customer.id)).filter(
        Customer.organization_id == organization_id,
        Customer.is_active == True
    ).scalar()

    return DashboardMetrics(
        total_animals=total_animals or 0,
        revenue=Decimal(str(revenue or 0)),
        average_yield=Decimal(str(average_yield or 0)),
        active_customers=active_customers or 0,
    )
