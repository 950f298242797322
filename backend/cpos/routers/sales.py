"""Router exposing sale capture, lookup and status transitions."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..responses import engine_error_response
from ..security import ActorIdentity, get_current_actor
from ..services import ProductNotFound, SaleTransactionService

router = APIRouter()


@router.post("", response_model=schemas.SaleRead, status_code=status.HTTP_201_CREATED)
def create_sale(
    sale_in: schemas.SaleCreate,
    db: Session = Depends(get_db),
    actor: ActorIdentity = Depends(get_current_actor),
) -> schemas.SaleRead:
    try:
        return SaleTransactionService.create_sale(db, sale_in, actor_id=actor.id)
    except ProductNotFound as exc:
        # A missing product makes the order itself malformed.
        return engine_error_response(exc, status.HTTP_400_BAD_REQUEST)


@router.get("/stats/overview", response_model=schemas.SalesOverview)
def sales_overview(
    db: Session = Depends(get_db),
    start_date: Optional[datetime] = Query(None, description="Count sales created on or after this date"),
    end_date: Optional[datetime] = Query(None, description="Count sales created on or before this date"),
    _: ActorIdentity = Depends(get_current_actor),
) -> schemas.SalesOverview:
    return SaleTransactionService.sales_overview(db, start_date=start_date, end_date=end_date)


@router.get("/{sale_id}", response_model=schemas.SaleRead)
def get_sale(
    sale_id: UUID,
    db: Session = Depends(get_db),
    _: ActorIdentity = Depends(get_current_actor),
) -> schemas.SaleRead:
    return SaleTransactionService.get_sale(db, str(sale_id))


@router.put("/{sale_id}/status", response_model=schemas.SaleRead)
def update_sale_status(
    sale_id: UUID,
    status_in: schemas.SaleStatusUpdate,
    db: Session = Depends(get_db),
    actor: ActorIdentity = Depends(get_current_actor),
) -> schemas.SaleRead:
    return SaleTransactionService.transition_status(db, str(sale_id), status_in, actor_id=actor.id)
