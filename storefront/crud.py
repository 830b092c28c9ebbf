"""
Database operations for the Storefront service.

This module is the persistence layer used by the workflow modules. Queries
state the related data they need with explicit loader options instead of
relying on lazy navigation.
"""
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from sqlalchemy import func, update
from sqlalchemy.orm import Session, selectinload
import logging
from . import models, schemas

# Set up logging
logger = logging.getLogger(__name__)


# Users

def get_user(db: Session, user_id: int) -> Optional[models.User]:
    """
    Retrieve a single user by ID.

    Args:
        db: Database session
        user_id: ID of the user to retrieve

    Returns:
        User object or None if not found
    """
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_username(db: Session, username: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.username == username).first()


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    """
    Retrieve a user by email address.

    Args:
        db: Database session
        email: Email address to search for

    Returns:
        User object or None if not found
    """
    return db.query(models.User).filter(models.User.email == email).first()


def create_user(db: Session, user: schemas.UserCreate) -> models.User:
    """
    Create a new user in the database.

    Args:
        db: Database session
        user: User data to create

    Returns:
        Created User object
    """
    db_user = models.User(**user.model_dump())
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


# Products

def get_product(db: Session, product_id: int) -> Optional[models.Product]:
    """
    Retrieve a product together with its stock record.

    Args:
        db: Database session
        product_id: ID of the product to retrieve

    Returns:
        Product object (with inventory loaded) or None if not found
    """
    return (
        db.query(models.Product)
        .options(selectinload(models.Product.inventory))
        .filter(models.Product.id == product_id)
        .first()
    )


def get_products(db: Session, skip: int = 0, limit: int = 100, include_inactive: bool = False) -> List[models.Product]:
    """
    Retrieve catalog products with pagination.

    Args:
        db: Database session
        skip: Number of records to skip (offset)
        limit: Maximum number of records to return
        include_inactive: Whether deactivated products are listed

    Returns:
        List of Product objects ordered by name
    """
    query = db.query(models.Product)
    if not include_inactive:
        query = query.filter(models.Product.is_active.is_(True))
    return query.order_by(models.Product.name).offset(skip).limit(limit).all()


def create_product(db: Session, product: schemas.ProductCreate, store_owner_id: Optional[int] = None) -> models.Product:
    db_product = models.Product(
        name=product.name,
        description=product.description,
        price=product.price,
        category_id=product.category_id,
        store_owner_id=store_owner_id,
        is_active=True,
    )
    db.add(db_product)
    db.commit()
    db.refresh(db_product)
    return db_product


def update_product(db: Session, product_id: int, product: schemas.ProductUpdate) -> Optional[models.Product]:
    """
    Update an existing product. Only provided fields are changed.

    Args:
        db: Database session
        product_id: ID of the product to update
        product: Updated product data

    Returns:
        Updated Product object or None if not found
    """
    db_product = get_product(db, product_id)
    if db_product is None:
        return None

    update_data = product.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        setattr(db_product, key, value)

    db.commit()
    db.refresh(db_product)
    return db_product


def deactivate_product(db: Session, product_id: int) -> bool:
    """
    Soft-delete a product by clearing its active flag.

    Returns:
        True if the product was deactivated, False if not found
    """
    db_product = get_product(db, product_id)
    if db_product is None:
        return False
    db_product.is_active = False
    db.commit()
    return True


# Stock records

def get_stock(db: Session, product_id: int) -> Optional[models.Inventory]:
    return db.query(models.Inventory).filter(models.Inventory.product_id == product_id).first()


def create_stock(db: Session, product_id: int, stock_quantity: int, minimum_stock: int) -> models.Inventory:
    db_stock = models.Inventory(
        product_id=product_id,
        stock_quantity=stock_quantity,
        minimum_stock=minimum_stock,
        last_updated=datetime.utcnow(),
    )
    db.add(db_stock)
    db.commit()
    db.refresh(db_stock)
    return db_stock


def try_decrement_stock(db: Session, product_id: int, quantity: int) -> bool:
    """
    Atomically take quantity units from a product's stock if enough are on hand.

    The check and the decrement are one conditional UPDATE, committed
    immediately, so concurrent callers serialize in the database.

    Args:
        db: Database session
        product_id: Product whose stock is decremented
        quantity: Units to take

    Returns:
        True if the stock was decremented, False if stock was insufficient or missing
    """
    result = db.execute(
        update(models.Inventory)
        .where(
            models.Inventory.product_id == product_id,
            models.Inventory.stock_quantity >= quantity,
        )
        .values(
            stock_quantity=models.Inventory.stock_quantity - quantity,
            last_updated=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount == 1


def increment_stock(db: Session, product_id: int, quantity: int, commit: bool = True) -> bool:
    """
    Atomically add quantity units to a product's stock.

    Args:
        db: Database session
        product_id: Product whose stock is incremented
        quantity: Units to add
        commit: Commit immediately; pass False to join the caller's transaction

    Returns:
        True if a stock record was updated, False if the product has none
    """
    result = db.execute(
        update(models.Inventory)
        .where(models.Inventory.product_id == product_id)
        .values(
            stock_quantity=models.Inventory.stock_quantity + quantity,
            last_updated=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if commit:
        db.commit()
    return result.rowcount == 1


def set_stock_values(db: Session, product_id: int, values: Dict[str, int]) -> bool:
    """Overwrite stock columns for a product; returns False if it has no record."""
    if not values:
        return get_stock(db, product_id) is not None
    result = db.execute(
        update(models.Inventory)
        .where(models.Inventory.product_id == product_id)
        .values(last_updated=datetime.utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount == 1


def get_active_stock(db: Session) -> List[models.Inventory]:
    return (
        db.query(models.Inventory)
        .join(models.Product)
        .options(selectinload(models.Inventory.product))
        .filter(models.Product.is_active.is_(True))
        .order_by(models.Product.name)
        .all()
    )


def get_low_stock(db: Session) -> List[models.Inventory]:
    """Active products whose stock is below their minimum, most depleted first."""
    return (
        db.query(models.Inventory)
        .join(models.Product)
        .options(selectinload(models.Inventory.product))
        .filter(
            models.Inventory.stock_quantity < models.Inventory.minimum_stock,
            models.Product.is_active.is_(True),
        )
        .order_by((models.Inventory.minimum_stock - models.Inventory.stock_quantity).desc())
        .all()
    )


def get_stock_by_category(db: Session, category_id: int) -> List[models.Inventory]:
    return (
        db.query(models.Inventory)
        .join(models.Product)
        .options(selectinload(models.Inventory.product))
        .filter(models.Product.category_id == category_id, models.Product.is_active.is_(True))
        .order_by(models.Product.name)
        .all()
    )


def count_low_stock(db: Session) -> int:
    return (
        db.query(func.count(models.Inventory.id))
        .join(models.Product)
        .filter(
            models.Inventory.stock_quantity < models.Inventory.minimum_stock,
            models.Product.is_active.is_(True),
        )
        .scalar()
    )


def count_out_of_stock(db: Session) -> int:
    return (
        db.query(func.count(models.Inventory.id))
        .join(models.Product)
        .filter(models.Inventory.stock_quantity == 0, models.Product.is_active.is_(True))
        .scalar()
    )


def get_out_of_stock(db: Session) -> List[models.Inventory]:
    return (
        db.query(models.Inventory)
        .join(models.Product)
        .options(selectinload(models.Inventory.product))
        .filter(models.Inventory.stock_quantity == 0, models.Product.is_active.is_(True))
        .order_by(models.Product.name)
        .all()
    )


def get_total_stock_value(db: Session) -> Decimal:
    value = (
        db.query(func.sum(models.Inventory.stock_quantity * models.Product.price))
        .join(models.Product)
        .filter(models.Product.is_active.is_(True))
        .scalar()
    )
    return Decimal(str(value)).quantize(Decimal("0.01")) if value is not None else Decimal("0.00")


# Orders

def _order_query(db: Session):
    return db.query(models.Order).options(selectinload(models.Order.lines))


def get_order(db: Session, order_id: int) -> Optional[models.Order]:
    """
    Retrieve a single order with its lines.

    Args:
        db: Database session
        order_id: ID of the order to retrieve

    Returns:
        Order object or None if not found
    """
    return _order_query(db).filter(models.Order.id == order_id).first()


def get_orders(
    db: Session,
    customer_id: Optional[int] = None,
    status: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    placed_before: Optional[datetime] = None,
    skip: int = 0,
    limit: Optional[int] = None,
) -> List[models.Order]:
    """
    Retrieve orders, newest first, optionally filtered.

    Args:
        db: Database session
        customer_id: Only orders of this customer
        status: Only orders in this status
        start_date: Only orders placed at or after this time
        end_date: Only orders placed at or before this time
        placed_before: Only orders placed strictly before this time
        skip: Number of records to skip (offset)
        limit: Maximum number of records to return (None for all)

    Returns:
        List of Order objects with lines loaded
    """
    query = _order_query(db)
    if customer_id is not None:
        query = query.filter(models.Order.customer_id == customer_id)
    if status is not None:
        query = query.filter(models.Order.status == status)
    if start_date is not None:
        query = query.filter(models.Order.order_date >= start_date)
    if end_date is not None:
        query = query.filter(models.Order.order_date <= end_date)
    if placed_before is not None:
        query = query.filter(models.Order.order_date < placed_before)
    query = query.order_by(models.Order.order_date.desc(), models.Order.id.desc()).offset(skip)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def insert_order(db: Session, order: models.Order, user_id: Optional[int] = None) -> int:
    """
    Persist an order header, its lines and its creation event in one commit.

    Args:
        db: Database session
        order: Transient order with lines attached
        user_id: User who placed the order (for the timeline)

    Returns:
        The database-assigned order ID

    Raises:
        sqlalchemy.exc.SQLAlchemyError: If the write fails; nothing is committed
    """
    db.add(order)
    db.flush()
    add_order_event(
        db,
        order_id=order.id,
        event_type="created",
        description=f"Order created with status '{order.status}'",
        new_value=order.status,
        user_id=user_id,
    )
    db.commit()
    return order.id


def set_shipping_address(db: Session, order_id: int, allowed_statuses: List[str], new_address: str) -> bool:
    """
    Change an order's shipping address without committing, only while the
    order is in one of allowed_statuses.

    Returns:
        True if the order was updated
    """
    result = db.execute(
        update(models.Order)
        .where(models.Order.id == order_id, models.Order.status.in_(allowed_statuses))
        .values(shipping_address=new_address)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def set_order_status(db: Session, order_id: int, expected_status: str, new_status: str) -> bool:
    """
    Compare-and-set an order's status without committing.

    Returns:
        True if the order was still in expected_status and was updated
    """
    result = db.execute(
        update(models.Order)
        .where(models.Order.id == order_id, models.Order.status == expected_status)
        .values(status=new_status)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def add_order_event(
    db: Session,
    order_id: int,
    event_type: str,
    description: str,
    old_value: Optional[str] = None,
    new_value: Optional[str] = None,
    user_id: Optional[int] = None,
) -> models.OrderEvent:
    """
    Add an order event to the timeline. The caller commits.

    Args:
        db: Database session
        order_id: Order identifier
        event_type: Type of event (e.g., "created", "status_changed")
        description: Human-readable description
        old_value: Previous value (optional)
        new_value: New value (optional)
        user_id: User who triggered the event (optional)
    """
    event = models.OrderEvent(
        order_id=order_id,
        event_type=event_type,
        description=description,
        old_value=old_value,
        new_value=new_value,
        user_id=user_id,
    )
    db.add(event)
    return event


def get_order_events(db: Session, order_id: int) -> List[models.OrderEvent]:
    return (
        db.query(models.OrderEvent)
        .filter(models.OrderEvent.order_id == order_id)
        .order_by(models.OrderEvent.created_at.asc(), models.OrderEvent.id.asc())
        .all()
    )
