"""Router exposing stock adjustments, low stock alerts and the audit trail."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..security import ActorIdentity, require_roles
from ..services import InventoryAuditLog, StockLedger
from ..services.inventory_audit import MAX_PAGE_SIZE

require_stock_manager = require_roles("admin", "manager")

router = APIRouter(dependencies=[Depends(require_stock_manager)])


@router.get("/alerts/low-stock", response_model=List[schemas.StockRecordRead])
def list_low_stock(db: Session = Depends(get_db)) -> List[schemas.StockRecordRead]:
    return StockLedger.low_stock(db)


@router.get("/{product_id}", response_model=schemas.StockRecordRead)
def get_stock_record(
    product_id: UUID,
    db: Session = Depends(get_db),
    location: Optional[str] = Query(None, description="Stock location; the default one when omitted"),
) -> schemas.StockRecordRead:
    return StockLedger.read_record(db, str(product_id), location)


@router.put("/{product_id}/stock", response_model=schemas.StockRecordRead)
def adjust_stock(
    product_id: UUID,
    adjustment: schemas.StockAdjustRequest,
    db: Session = Depends(get_db),
    actor: ActorIdentity = Depends(require_stock_manager),
) -> schemas.StockRecordRead:
    return StockLedger.adjust_stock(db, str(product_id), adjustment, actor_id=actor.id)


@router.put("/{product_id}/levels", response_model=schemas.StockRecordRead)
def update_stock_levels(
    product_id: UUID,
    levels: schemas.StockLevelsUpdate,
    db: Session = Depends(get_db),
    actor: ActorIdentity = Depends(require_stock_manager),
) -> schemas.StockRecordRead:
    return StockLedger.update_levels(db, str(product_id), levels, actor_id=actor.id)


@router.get("/{product_id}/logs", response_model=schemas.InventoryAuditListResponse)
def list_inventory_logs(
    product_id: UUID,
    db: Session = Depends(get_db),
    page: int = Query(1, ge=1, description="Page number, starting at 1"),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE, description="Entries per page"),
    location: Optional[str] = Query(None, description="Only entries for this location"),
) -> schemas.InventoryAuditListResponse:
    entries, total = InventoryAuditLog.list_entries(
        db, str(product_id), page=page, limit=limit, location=location
    )
    return schemas.InventoryAuditListResponse.build(entries, total=total, page=page, limit=limit)
