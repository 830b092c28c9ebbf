"""
Order placement and order queries.

place_order() is the transaction coordinator: it validates the whole request,
reserves stock item by item, and persists the order in one write. Any
failure after the first reservation releases what was reserved, in reverse
order, before the failure is returned.
"""
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from . import builder, catalog, crud, errors, inventory, models, schemas, validators
from .catalog import CatalogEntry
from .config import RECENT_ORDERS_DEFAULT

logger = logging.getLogger(__name__)

ADDRESS_EDITABLE_STATUSES = [models.OrderStatus.PENDING.value, models.OrderStatus.PROCESSING.value]


def _release_reservations(db: Session, reserved: List[Tuple[int, int]]) -> None:
    """
    Compensate reservations made by an aborted placement, newest first.

    A failed release is logged and the remaining ones are still attempted.
    """
    if reserved:
        logger.info(f"Rolling back {len(reserved)} stock reservations")
    for product_id, quantity in reversed(reserved):
        try:
            if not inventory.release(db, product_id, quantity):
                logger.error(f"Rollback failed for product {product_id}: no stock record")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Rollback failed for product {product_id}: {e}")


def place_order(
    db: Session,
    customer_id: int,
    items: List[schemas.OrderItem],
    shipping_address: Optional[str] = None,
    payment_method: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> Tuple[Optional[models.Order], Optional[errors.OrderError]]:
    """
    Place an order: validate, reserve stock, and persist the order atomically.

    Args:
        db: Database session
        customer_id: Customer placing the order
        items: Requested (product, quantity) pairs, without duplicate products
        shipping_address: Delivery address
        payment_method: Payment method
        actor_id: User performing the placement, for the timeline (defaults to the customer)

    Returns:
        Tuple of (order, error); exactly one of them is None
    """
    is_valid, error_message = validators.validate_order_items(items)
    if not is_valid:
        logger.warning(f"Rejected order for customer {customer_id}: {error_message}")
        return None, errors.invalid_request(error_message)

    customer = crud.get_user(db, customer_id)
    if customer is None or not customer.is_active:
        logger.warning(f"Rejected order for unknown or inactive customer {customer_id}")
        return None, errors.invalid_request(f"Customer {customer_id} does not exist or is inactive")

    # Every product is checked before any stock is touched
    entries: Dict[int, CatalogEntry] = {}
    for item in items:
        entry, error = catalog.resolve_orderable(db, item.product_id)
        if error is not None:
            logger.warning(f"Rejected order for customer {customer_id}: {error.message}")
            return None, error
        entries[item.product_id] = entry

    # Reserve in input order
    reserved: List[Tuple[int, int]] = []
    try:
        for item in items:
            if not inventory.reserve(db, item.product_id, item.quantity):
                logger.warning(f"Insufficient stock for product {item.product_id} in order for customer {customer_id}")
                _release_reservations(db, reserved)
                return None, errors.insufficient_stock(item.product_id)
            reserved.append((item.product_id, item.quantity))
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Stock reservation failed for customer {customer_id}: {e}")
        _release_reservations(db, reserved)
        return None, errors.persistence_failure(f"Stock reservation failed: {e}")

    order = builder.build_order(customer_id, items, entries, shipping_address, payment_method)
    try:
        order_id = crud.insert_order(db, order, user_id=actor_id if actor_id is not None else customer_id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to persist order for customer {customer_id}: {e}")
        _release_reservations(db, reserved)
        return None, errors.persistence_failure(f"Failed to create order: {e}")

    logger.info(f"Placed order {order_id} for customer {customer_id}: {len(items)} lines, total {order.total_amount}")
    return crud.get_order(db, order_id), None


def update_shipping_address(db: Session, order_id: int, new_address: str, actor_id: Optional[int] = None) -> bool:
    """
    Change the shipping address of an order that has not shipped yet.

    Returns:
        True if the address was changed
    """
    is_valid, _ = validators.validate_shipping_address(new_address)
    if not is_valid:
        return False

    order = crud.get_order(db, order_id)
    if order is None:
        return False
    if order.status not in ADDRESS_EDITABLE_STATUSES:
        return False

    old_address = order.shipping_address
    try:
        # Conditional on status so an order shipped meanwhile is left alone
        if not crud.set_shipping_address(db, order_id, ADDRESS_EDITABLE_STATUSES, new_address):
            db.rollback()
            logger.warning(f"Order {order_id} shipped before its address could be changed")
            return False
        crud.add_order_event(
            db,
            order_id=order_id,
            event_type="address_changed",
            description="Shipping address updated",
            old_value=old_address,
            new_value=new_address,
            user_id=actor_id,
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update shipping address of order {order_id}: {e}")
        return False
    return True


# Read queries

def get_order(db: Session, order_id: int) -> Optional[models.Order]:
    return crud.get_order(db, order_id)


def list_orders(db: Session, skip: int = 0, limit: int = 100) -> List[models.Order]:
    return crud.get_orders(db, skip=skip, limit=limit)


def get_orders_by_customer(db: Session, customer_id: int) -> List[models.Order]:
    return crud.get_orders(db, customer_id=customer_id)


def get_orders_by_status(db: Session, status: str) -> List[models.Order]:
    return crud.get_orders(db, status=status)


def get_pending_orders(db: Session) -> List[models.Order]:
    return get_orders_by_status(db, models.OrderStatus.PENDING.value)


def get_orders_by_date_range(db: Session, start_date: datetime, end_date: datetime) -> List[models.Order]:
    """Orders placed between start_date and end_date, both inclusive."""
    return crud.get_orders(db, start_date=start_date, end_date=end_date)


def get_today_orders(db: Session) -> List[models.Order]:
    today = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    tomorrow = today + timedelta(days=1)
    return crud.get_orders(db, start_date=today, placed_before=tomorrow)


def get_recent_orders(db: Session, count: int = RECENT_ORDERS_DEFAULT) -> List[models.Order]:
    return crud.get_orders(db, limit=count)


# Simple sums

def get_customer_order_count(db: Session, customer_id: int) -> int:
    return db.query(func.count(models.Order.id)).filter(models.Order.customer_id == customer_id).scalar()


def get_customer_total_spent(db: Session, customer_id: int) -> Decimal:
    """Total of the customer's orders, excluding cancelled ones."""
    total = (
        db.query(func.sum(models.Order.total_amount))
        .filter(
            models.Order.customer_id == customer_id,
            models.Order.status != models.OrderStatus.CANCELLED.value,
        )
        .scalar()
    )
    return _as_amount(total)


def get_order_count_by_status(db: Session) -> Dict[str, int]:
    rows = (
        db.query(models.Order.status, func.count(models.Order.id))
        .group_by(models.Order.status)
        .all()
    )
    return {status: count for status, count in rows}


def get_total_revenue(db: Session, start_date: Optional[datetime] = None, end_date: Optional[datetime] = None) -> Decimal:
    """Sum of order totals in the optional date range, excluding cancelled orders."""
    query = db.query(func.sum(models.Order.total_amount)).filter(
        models.Order.status != models.OrderStatus.CANCELLED.value
    )
    if start_date is not None:
        query = query.filter(models.Order.order_date >= start_date)
    if end_date is not None:
        query = query.filter(models.Order.order_date <= end_date)
    return _as_amount(query.scalar())


def _as_amount(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(builder.CENT)
