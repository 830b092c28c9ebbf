"""
Catalog lookup for order validation.

Resolves a product identifier to its active flag, current unit price and
stock record. Lookups never modify the database.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple
from pydantic import BaseModel
from sqlalchemy.orm import Session
from . import crud, errors


class StockSnapshot(BaseModel):
    stock_quantity: int
    minimum_stock: int
    last_updated: datetime


class CatalogEntry(BaseModel):
    """What the catalog knows about a product at the moment of the lookup."""
    product_id: int
    name: str
    is_active: bool
    unit_price: Decimal
    stock: Optional[StockSnapshot] = None


def lookup_product(db: Session, product_id: int) -> Optional[CatalogEntry]:
    """
    Look up a product in the catalog.

    Args:
        db: Database session
        product_id: Product to look up

    Returns:
        CatalogEntry, or None if the product does not exist
    """
    product = crud.get_product(db, product_id)
    if product is None:
        return None

    stock = None
    if product.inventory is not None:
        stock = StockSnapshot(
            stock_quantity=product.inventory.stock_quantity,
            minimum_stock=product.inventory.minimum_stock,
            last_updated=product.inventory.last_updated,
        )
    return CatalogEntry(
        product_id=product.id,
        name=product.name,
        is_active=product.is_active,
        unit_price=Decimal(product.price),
        stock=stock,
    )


def resolve_orderable(db: Session, product_id: int) -> Tuple[Optional[CatalogEntry], Optional[errors.OrderError]]:
    """
    Look up a product and check that it can be ordered.

    A product is orderable when it exists, is active and has a stock record.

    Returns:
        Tuple of (entry, error); exactly one of them is None
    """
    entry = lookup_product(db, product_id)
    if entry is None:
        return None, errors.product_unavailable(product_id, f"Product {product_id} does not exist")
    if not entry.is_active:
        return None, errors.product_unavailable(product_id, f"Product {product_id} is no longer available")
    if entry.stock is None:
        return None, errors.product_unavailable(product_id, f"Product {product_id} has no stock information")
    return entry, None
