"""
Inventory Endpoints

Inventory items of one organization. Deleting an item deactivates it.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from meatmath.database import get_db
from meatmath.models.inventory_item import InventoryItem
from meatmath.schemas.inventory_item import (
    InventoryItemCreate,
    InventoryItemUpdate,
    InventoryItemResponse,
    InventoryItemListResponse,
)
from meatmath.api.deps import (
    get_current_principal,
    get_access_control,
    get_write_access_control,
    require_organization_access,
)
from meatmath.core.roles import ActionClass
from meatmath.core.access_control import AccessControlService, validate_organization_id
from meatmath.core.exceptions import InventoryItemNotFoundError
from meatmath.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["inventory"])


def _get_item(db: Session, item_id: str) -> InventoryItem:
    item = db.query(InventoryItem).filter(
        InventoryItem.id == item_id,
        InventoryItem.is_active == True
    ).first()
    if not item:
        raise InventoryItemNotFoundError(item_id)
    return item


@router.get("/organizations/{org_id}/inventory", response_model=InventoryItemListResponse)
async def list_inventory(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    category: Optional[str] = Query(None, max_length=100),
    low_stock_only: bool = False,
    organization_id: str = Depends(require_organization_access(ActionClass.READ)),
    db: Session = Depends(get_db)
):
    """
    List active inventory items.

    low_stock_only keeps tracked items at or below their alert level.
    """
    query = db.query(InventoryItem).filter(
        InventoryItem.organization_id == organization_id,
        InventoryItem.is_active == True
    )

    if category:
        query = query.filter(InventoryItem.category == category)

    if low_stock_only:
        query = query.filter(
            InventoryItem.track_inventory == True,
            InventoryItem.current_stock <= InventoryItem.low_stock_alert
        )

    total = query.count()
    offset = (page - 1) * page_size
    items = query.order_by(InventoryItem.name).offset(offset).limit(page_size).all()

    return InventoryItemListResponse(
        inventory_items=items,
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("/inventory", response_model=InventoryItemResponse, status_code=status.HTTP_201_CREATED)
async def create_inventory_item(
    item_data: InventoryItemCreate,
    principal: str = Depends(get_current_principal),
    access: AccessControlService = Depends(get_write_access_control),
    db: Session = Depends(get_db)
):
    access.require_creation(principal, item_data.organization_id, ActionClass.WRITE)

    item = InventoryItem(**item_data.model_dump())
    item.organization_id = validate_organization_id(item_data.organization_id)
    db.add(item)
    db.commit()
    db.refresh(item)

    logger.info(f"Inventory item created: {item.id} in {item.organization_id} by {principal}")

    return item


@router.get("/inventory/{item_id}", response_model=InventoryItemResponse)
async def get_inventory_item(
    item_id: str,
    principal: str = Depends(get_current_principal),
    access: AccessControlService = Depends(get_access_control),
    db: Session = Depends(get_db)
):
    item = _get_item(db, item_id)
    access.require_resource_owner(principal, item, ActionClass.READ)
    return item


@router.put("/inventory/{item_id}", response_model=InventoryItemResponse)
async def update_inventory_item(
    item_id: str,
    item_data: InventoryItemUpdate,
    principal: str = Depends(get_current_principal),
    access: AccessControlService = Depends(get_write_access_control),
    db: Session = Depends(get_db)
):
    item = _get_item(db, item_id)
    access.require_resource_owner(principal, item, ActionClass.WRITE)

    update_data = item_data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(item, field, value)

    db.commit()
    db.refresh(item)

    logger.info(f"Inventory item updated: {item.id} by {principal}")

    return item


@router.delete("/inventory/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_inventory_item(
    item_id: str,
    principal: str = Depends(get_current_principal),
    access: AccessControlService = Depends(get_write_access_control),
    db: Session = Depends(get_db)
):
    item = _get_item(db, item_id)
    access.require_resource_owner(principal, item, ActionClass.WRITE)

    item.soft_delete()
    db.commit()

    logger.info(f"Inventory item deactivated: {item_id} by {principal}")

    return None
