"""
Processing Record Endpoints

Authorization follows the owning organization of each record: the
organization in the path for lists, the organization in the body at
creation, and the record's own organization_id afterwards.

A record may reference a customer of its own organization only, and an
existing species.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from meatmath.database import get_db
from meatmath.models.processing_record import ProcessingRecord
from meatmath.models.species import Species
from meatmath.schemas.processing_record import (
    ProcessingRecordCreate,
    ProcessingRecordUpdate,
    ProcessingRecordResponse,
    ProcessingRecordListResponse,
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
from meatmath.core.exceptions import ProcessingRecordNotFoundError, SpeciesNotFoundError
from meatmath.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["processing-records"])


def _get_record(db: Session, record_id: str) -> ProcessingRecord:
    record = db.get(ProcessingRecord, record_id)
    if not record:
        raise ProcessingRecordNotFoundError(record_id)
    return record


def _check_species(db: Session, species_id: Optional[str]) -> None:
    if species_id is not None and db.get(Species, species_id) is None:
        raise SpeciesNotFoundError(species_id)


@router.get("/organizations/{org_id}/processing-records", response_model=ProcessingRecordListResponse)
async def list_processing_records(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    status: Optional[str] = Query(None, pattern=STATUS_PATTERN),
    customer_id: Optional[str] = None,
    organization_id: str = Depends(require_organization_access(ActionClass.READ)),
    db: Session = Depends(get_db)
):
    query = db.query(ProcessingRecord).filter(ProcessingRecord.organization_id == organization_id)

    if status:
        query = query.filter(ProcessingRecord.status == status)

    if customer_id:
        query = query.filter(ProcessingRecord.customer_id == customer_id)

    total = query.count()
    offset = (page - 1) * page_size
    records = query.order_by(
        ProcessingRecord.processing_date.desc(),
        ProcessingRecord.created_at.desc()
    ).offset(offset).limit(page_size).all()

    return ProcessingRecordListResponse(
        processing_records=records,
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("/processing-records", response_model=ProcessingRecordResponse, status_code=status.HTTP_201_CREATED)
async def create_processing_record(
    record_data: ProcessingRecordCreate,
    principal: str = Depends(get_current_principal),
    access: AccessControlService = Depends(get_write_access_control),
    db: Session = Depends(get_db)
):
    access.require_creation(principal, record_data.organization_id, ActionClass.WRITE)
    organization_id = validate_organization_id(record_data.organization_id)

    check_customer_reference(db, record_data.customer_id, organization_id)
    _check_species(db, record_data.species_id)

    record = ProcessingRecord(**record_data.model_dump())
    record.organization_id = organization_id
    db.add(record)
    db.commit()
    db.refresh(record)

    logger.info(f"Processing record created: {record.id} in {organization_id} by {principal}")

    return record


@router.get("/processing-records/{record_id}", response_model=ProcessingRecordResponse)
async def get_processing_record(
    record_id: str,
    principal: str = Depends(get_current_principal),
    access: AccessControlService = Depends(get_access_control),
    db: Session = Depends(get_db)
):
    record = _get_record(db, record_id)
    access.require_resource_owner(principal, record, ActionClass.READ)
    return record


@router.put("/processing-records/{record_id}", response_model=ProcessingRecordResponse)
async def update_processing_record(
    record_id: str,
    record_data: ProcessingRecordUpdate,
    principal: str = Depends(get_current_principal),
    access: AccessControlService = Depends(get_write_access_control),
    db: Session = Depends(get_db)
):
    record = _get_record(db, record_id)
    access.require_resource_owner(principal, record, ActionClass.WRITE)

    update_data = record_data.model_dump(exclude_unset=True)
    if "customer_id" in update_data:
        check_customer_reference(db, update_data["customer_id"], record.organization_id)
    if "species_id" in update_data:
        _check_species(db, update_data["species_id"])

    for field, value in update_data.items():
        setattr(record, field, value)

    db.commit()
    db.refresh(record)

    logger.info(f"Processing record updated: {record.id} by {principal}")

    return record


@router.delete("/processing-records/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_processing_record(
    record_id: str,
    principal: str = Depends(get_current_principal),
    access: AccessControlService = Depends(get_write_access_control),
    db: Session = Depends(get_db)
):
    record = _get_record(db, record_id)
    access.require_resource_owner(principal, record, ActionClass.WRITE)

    db.delete(record)
    db.commit()

    logger.info(f"Processing record deleted: {record_id} by {principal}")

    return None
