"""
Stock ledger.

Owns the authoritative on-hand quantity per product. Reservations and
releases are single conditional UPDATE statements, so concurrent calls
against the same product serialize in the database and the quantity is
never negative.
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from . import crud, models
from .config import DEFAULT_MINIMUM_STOCK

logger = logging.getLogger(__name__)


def reserve(db: Session, product_id: int, quantity: int) -> bool:
    """
    Take quantity units from a product's stock if enough are on hand.

    A False result is the normal insufficient-stock outcome, not an error.

    Args:
        db: Database session
        product_id: Product to reserve
        quantity: Units to reserve (must be positive)

    Returns:
        True if the units were reserved
    """
    if quantity <= 0:
        return False
    reserved = crud.try_decrement_stock(db, product_id, quantity)
    if reserved:
        logger.info(f"Reserved {quantity} units of product {product_id}")
    else:
        logger.info(f"Insufficient stock to reserve {quantity} units of product {product_id}")
    return reserved


def release(db: Session, product_id: int, quantity: int, commit: bool = True) -> bool:
    """
    Return quantity units to a product's stock.

    Args:
        db: Database session
        product_id: Product to release
        quantity: Units to add back (must be positive)
        commit: Commit immediately; pass False to join the caller's transaction

    Returns:
        True if the stock record was incremented
    """
    if quantity <= 0:
        return False
    released = crud.increment_stock(db, product_id, quantity, commit=commit)
    if released:
        logger.info(f"Released {quantity} units of product {product_id}")
    else:
        logger.warning(f"No stock record to release {quantity} units of product {product_id}")
    return released


def create_stock_record(
    db: Session,
    product_id: int,
    stock_quantity: int = 0,
    minimum_stock: int = DEFAULT_MINIMUM_STOCK,
) -> Optional[models.Inventory]:
    """
    Create the stock record for a product.

    Returns:
        The new record, or None if quantities are negative, the product does
        not exist, or it already has a record
    """
    if stock_quantity < 0 or minimum_stock < 0:
        return None
    if crud.get_product(db, product_id) is None:
        return None
    if crud.get_stock(db, product_id) is not None:
        return None
    return crud.create_stock(db, product_id, stock_quantity, minimum_stock)


def set_stock(db: Session, product_id: int, new_quantity: int) -> bool:
    """Overwrite the on-hand quantity (stock count correction)."""
    if new_quantity < 0:
        return False
    updated = crud.set_stock_values(db, product_id, {"stock_quantity": new_quantity})
    if updated:
        logger.info(f"Stock of product {product_id} set to {new_quantity}")
    return updated


def set_minimum_stock(db: Session, product_id: int, new_minimum: int) -> bool:
    if new_minimum < 0:
        return False
    return crud.set_stock_values(db, product_id, {"minimum_stock": new_minimum})


def bulk_set_stock(db: Session, updates: Dict[int, int]) -> int:
    """
    Overwrite on-hand quantities for several products.

    Negative quantities and products without a stock record are skipped.

    Returns:
        Number of records updated
    """
    updated_count = 0
    for product_id, new_quantity in updates.items():
        if set_stock(db, product_id, new_quantity):
            updated_count += 1
    return updated_count


def get_stock_quantity(db: Session, product_id: int) -> int:
    stock = crud.get_stock(db, product_id)
    return stock.stock_quantity if stock is not None else 0


def can_fulfill(db: Session, product_id: int, quantity: int) -> bool:
    """Advisory check; only reserve() guarantees the units."""
    if quantity <= 0:
        return False
    stock = crud.get_stock(db, product_id)
    return stock is not None and stock.stock_quantity >= quantity


def is_low_stock(db: Session, product_id: int) -> bool:
    stock = crud.get_stock(db, product_id)
    return stock is not None and stock.stock_quantity < stock.minimum_stock


def is_out_of_stock(db: Session, product_id: int) -> bool:
    stock = crud.get_stock(db, product_id)
    return stock is not None and stock.stock_quantity == 0


def get_low_stock(db: Session) -> List[models.Inventory]:
    return crud.get_low_stock(db)


def get_out_of_stock(db: Session) -> List[models.Inventory]:
    return crud.get_out_of_stock(db)


def get_stock_by_category(db: Session, category_id: int) -> List[models.Inventory]:
    """Stock records of the active products in a category, ordered by product name."""
    return crud.get_stock_by_category(db, category_id)


def get_low_stock_count(db: Session) -> int:
    return crud.count_low_stock(db)


def get_out_of_stock_count(db: Session) -> int:
    return crud.count_out_of_stock(db)


def total_stock_value(db: Session) -> Decimal:
    return crud.get_total_stock_value(db)
