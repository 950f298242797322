"""Read-only access to the catalog values a sale captures at order time."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from sqlalchemy.orm import Session

from .. import models
from .errors import ProductNotFound


@dataclass(frozen=True)
class ProductSnapshot:
    """Price, tax rate and cost of a product as seen when the sale is priced."""

    id: str
    name: str
    price: Decimal
    tax_rate: Decimal
    cost: Decimal
    is_active: bool


class CatalogReader:
    """Loads product snapshots; never writes."""

    @staticmethod
    def _to_snapshot(product: models.Product) -> ProductSnapshot:
        return ProductSnapshot(
            id=str(product.id),
            name=product.name,
            price=Decimal(product.price),
            tax_rate=Decimal(product.tax_rate or 0),
            cost=Decimal(product.cost or 0),
            is_active=bool(product.is_active),
        )

    @classmethod
    def snapshot(cls, db: Session, product_id: str) -> ProductSnapshot:
        product = db.query(models.Product).filter(models.Product.id == str(product_id)).first()
        if product is None or not product.is_active:
            raise ProductNotFound(f"Product {product_id} not found")
        return cls._to_snapshot(product)

    @classmethod
    def snapshots(cls, db: Session, product_ids: Iterable[str]) -> dict[str, ProductSnapshot]:
        """Return snapshots keyed by product id; fails on the first missing product."""

        wanted = list(dict.fromkeys(str(product_id) for product_id in product_ids))
        products = db.query(models.Product).filter(models.Product.id.in_(wanted)).all()
        found = {str(product.id): product for product in products}
        for product_id in wanted:
            product = found.get(product_id)
            if product is None or not product.is_active:
                raise ProductNotFound(f"Product {product_id} not found")
        return {product_id: cls._to_snapshot(found[product_id]) for product_id in wanted}

    @staticmethod
    def ensure_exists(db: Session, product_id: str) -> None:
        """Raise unless the product row exists, active or not."""

        exists = (
            db.query(models.Product.id).filter(models.Product.id == str(product_id)).first()
        )
        if exists is None:
            raise ProductNotFound(f"Product {product_id} not found")
