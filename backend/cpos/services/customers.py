"""Customer purchase aggregates maintained by the sale orchestrator."""

from __future__ import annotations

import logging
from decimal import Decimal, ROUND_FLOOR
from typing import Optional

from sqlalchemy import case
from sqlalchemy.orm import Session

from .. import models
from ..config import loyalty_point_value
from .errors import CustomerNotFound

LOGGER = logging.getLogger(__name__)


class CustomerAggregate:
    """Atomic increments and decrements of ``total_purchases`` and ``loyalty_points``.

    Updates are issued as single ``UPDATE ... SET col = col + :delta`` statements
    so two sales for the same customer never lose each other's contribution.
    """

    @staticmethod
    def loyalty_points_for(amount: Decimal) -> int:
        if amount <= 0:
            return 0
        points = (Decimal(amount) / loyalty_point_value()).to_integral_value(rounding=ROUND_FLOOR)
        return int(points)

    @staticmethod
    def ensure_exists(db: Session, customer_id: Optional[str]) -> None:
        if customer_id is None:
            return
        exists = (
            db.query(models.Customer.id)
            .filter(models.Customer.id == str(customer_id))
            .first()
        )
        if exists is None:
            raise CustomerNotFound(f"Customer {customer_id} not found")

    @classmethod
    def apply_purchase(cls, db: Session, customer_id: str, amount: Decimal) -> int:
        """Credit ``amount`` and the points it earns; return the points awarded."""

        points = cls.loyalty_points_for(amount)
        updated = (
            db.query(models.Customer)
            .filter(models.Customer.id == str(customer_id))
            .update(
                {
                    models.Customer.total_purchases: models.Customer.total_purchases + amount,
                    models.Customer.loyalty_points: models.Customer.loyalty_points + points,
                },
                synchronize_session=False,
            )
        )
        if not updated:
            raise CustomerNotFound(f"Customer {customer_id} not found")
        LOGGER.debug("Customer %s credited %s (+%s points)", customer_id, amount, points)
        return points

    @staticmethod
    def reverse_purchase(db: Session, customer_id: str, amount: Decimal, points: int) -> None:
        """Undo :meth:`apply_purchase`; neither aggregate drops below zero.

        ``points`` is what the purchase awarded, not a fresh calculation.
        """

        remaining_total = models.Customer.total_purchases - amount
        remaining_points = models.Customer.loyalty_points - points
        updated = (
            db.query(models.Customer)
            .filter(models.Customer.id == str(customer_id))
            .update(
                {
                    models.Customer.total_purchases: case(
                        (remaining_total < 0, 0), else_=remaining_total
                    ),
                    models.Customer.loyalty_points: case(
                        (remaining_points < 0, 0), else_=remaining_points
                    ),
                },
                synchronize_session=False,
            )
        )
        if not updated:
            raise CustomerNotFound(f"Customer {customer_id} not found")
        LOGGER.debug("Customer %s debited %s (-%s points)", customer_id, amount, points)
