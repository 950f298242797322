"""Runtime settings for the sale and inventory engine read from the environment."""

from __future__ import annotations

import logging
import os
from decimal import Decimal, InvalidOperation

LOGGER = logging.getLogger(__name__)

DEFAULT_STOCK_LOCATION_ENV = "POS_DEFAULT_STOCK_LOCATION"
LOYALTY_POINT_VALUE_ENV = "POS_LOYALTY_POINT_VALUE"

DEFAULT_STOCK_LOCATION = "default"
DEFAULT_LOYALTY_POINT_VALUE = Decimal("10")


def _read_str_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def _read_positive_decimal_env(name: str, default: Decimal) -> Decimal:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = Decimal(raw.strip())
    except InvalidOperation:
        LOGGER.warning("Invalid value for %s=%s; using %s", name, raw, default)
        return default
    if value <= 0:
        LOGGER.warning("Invalid value for %s=%s; using %s", name, raw, default)
        return default
    return value


def default_stock_location() -> str:
    """Location used for stock records when the caller does not name one."""

    return _read_str_env(DEFAULT_STOCK_LOCATION_ENV, DEFAULT_STOCK_LOCATION)


def loyalty_point_value() -> Decimal:
    """Amount of currency a customer must spend to earn one loyalty point."""

    return _read_positive_decimal_env(LOYALTY_POINT_VALUE_ENV, DEFAULT_LOYALTY_POINT_VALUE)
