"""
Cut Instruction Endpoints

Cut instructions (and reusable templates) of one organization.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from meatmath.database import get_db
from meatmath.models.cut_instruction import CutInstruction
from meatmath.schemas.cut_instruction import (
    CutInstructionCreate,
    CutInstructionUpdate,
    CutInstructionResponse,
    CutInstructionListResponse,
)
from meatmath.api.deps import (
    get_current_principal,
    get_access_control,
    get_write_access_control,
    require_organization_access,
)
from meatmath.core.roles import ActionClass
from meatmath.core.access_control import AccessControlService, validate_organization_id
from meatmath.core.exceptions import CutInstructionNotFoundError
from meatmath.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["cut-instructions"])


def _get_instruction(db: Session, instruction_id: str) -> CutInstruction:
    instruction = db.get(CutInstruction, instruction_id)
    if not instruction:
        raise CutInstructionNotFoundError(instruction_id)
    return instruction


@router.get("/organizations/{org_id}/cut-instructions", response_model=CutInstructionListResponse)
async def list_cut_instructions(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    category: Optional[str] = Query(None, max_length=100),
    templates_only: bool = False,
    organization_id: str = Depends(require_organization_access(ActionClass.READ)),
    db: Session = Depends(get_db)
):
    query = db.query(CutInstruction).filter(CutInstruction.organization_id == organization_id)

    if category:
        query = query.filter(CutInstruction.category == category)

    if templates_only:
        query = query.filter(CutInstruction.is_template == True)

    total = query.count()
    offset = (page - 1) * page_size
    instructions = query.order_by(CutInstruction.name).offset(offset).limit(page_size).all()

    return CutInstructionListResponse(
        cut_instructions=instructions,
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("/cut-instructions", response_model=CutInstructionResponse, status_code=status.HTTP_201_CREATED)
async def create_cut_instruction(
    instruction_data: CutInstructionCreate,
    principal: str = Depends(get_current_principal),
    access: AccessControlService = Depends(get_write_access_control),
    db: Session = Depends(get_db)
):
    access.require_creation(principal, instruction_data.organization_id, ActionClass.WRITE)

    instruction = CutInstruction(**instruction_data.model_dump())
    instruction.organization_id = validate_organization_id(instruction_data.organization_id)
    db.add(instruction)
    db.commit()
    db.refresh(instruction)

    logger.info(f"Cut instruction created: {instruction.id} in {instruction.organization_id} by {principal}")

    return instruction


@router.get("/cut-instructions/{instruction_id}", response_model=CutInstructionResponse)
async def get_cut_instruction(
    instruction_id: str,
    principal: str = Depends(get_current_principal),
    access: AccessControlService = Depends(get_access_control),
    db: Session = Depends(get_db)
):
    instruction = _get_instruction(db, instruction_id)
    access.require_resource_owner(principal, instruction, ActionClass.READ)
    return instruction


@router.put("/cut-instructions/{instruction_id}", response_model=CutInstructionResponse)
async def update_cut_instruction(
    instruction_id: str,
    instruction_data: CutInstructionUpdate,
    principal: str = Depends(get_current_principal),
    access: AccessControlService = Depends(get_write_access_control),
    db: Session = Depends(get_db)
):
    instruction = _get_instruction(db, instruction_id)
    access.require_resource_owner(principal, instruction, ActionClass.WRITE)

    update_data = instruction_data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(instruction, field, value)

    db.commit()
    db.refresh(instruction)

    logger.info(f"Cut instruction updated: {instruction.id} by {principal}")

    return instruction


@router.delete("/cut-instructions/{instruction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_cut_instruction(
    instruction_id: str,
    principal: str = Depends(get_current_principal),
    access: AccessControlService = Depends(get_write_access_control),
    db: Session = Depends(get_db)
):
    instruction = _get_instruction(db, instruction_id)
    access.require_resource_owner(principal, instruction, ActionClass.WRITE)

    db.delete(instruction)
    db.commit()

    logger.info(f"Cut instruction deleted: {instruction_id} by {principal}")

    return None
