"""Sale status transitions and the stock effect each one carries.

Stock and customer aggregates reflect a sale exactly while it is
``completed``: entering that status applies the effects, leaving it for
``cancelled`` or ``refunded`` reverses them, and nothing else touches them.
"""

from __future__ import annotations

import enum

from ..models import SaleStatusName
from .errors import InvalidTransition


class StockEffect(str, enum.Enum):
    APPLY = "apply"
    REVERSE = "reverse"
    NONE = "none"


TRANSITIONS: dict[tuple[SaleStatusName, SaleStatusName], StockEffect] = {
    (SaleStatusName.PENDING, SaleStatusName.PENDING): StockEffect.NONE,
    (SaleStatusName.PENDING, SaleStatusName.COMPLETED): StockEffect.APPLY,
    (SaleStatusName.PENDING, SaleStatusName.CANCELLED): StockEffect.NONE,
    (SaleStatusName.PENDING, SaleStatusName.REFUNDED): StockEffect.NONE,
    (SaleStatusName.COMPLETED, SaleStatusName.PENDING): StockEffect.NONE,
    (SaleStatusName.COMPLETED, SaleStatusName.COMPLETED): StockEffect.NONE,
    (SaleStatusName.COMPLETED, SaleStatusName.CANCELLED): StockEffect.REVERSE,
    (SaleStatusName.COMPLETED, SaleStatusName.REFUNDED): StockEffect.REVERSE,
    (SaleStatusName.CANCELLED, SaleStatusName.PENDING): StockEffect.NONE,
    (SaleStatusName.CANCELLED, SaleStatusName.COMPLETED): StockEffect.APPLY,
    (SaleStatusName.CANCELLED, SaleStatusName.CANCELLED): StockEffect.NONE,
    (SaleStatusName.CANCELLED, SaleStatusName.REFUNDED): StockEffect.NONE,
    (SaleStatusName.REFUNDED, SaleStatusName.PENDING): StockEffect.NONE,
    (SaleStatusName.REFUNDED, SaleStatusName.COMPLETED): StockEffect.APPLY,
    (SaleStatusName.REFUNDED, SaleStatusName.CANCELLED): StockEffect.NONE,
    (SaleStatusName.REFUNDED, SaleStatusName.REFUNDED): StockEffect.NONE,
}


def parse_status(name: str) -> SaleStatusName:
    try:
        return SaleStatusName(str(name).strip().lower())
    except ValueError as exc:
        raise InvalidTransition(f"Unknown sale status '{name}'") from exc


def effect_for(old: SaleStatusName, new: SaleStatusName) -> StockEffect:
    return TRANSITIONS[(old, new)]


def counts_against_stock(status: SaleStatusName) -> bool:
    """Whether a sale in ``status`` holds stock and customer credit."""

    return status is SaleStatusName.COMPLETED
