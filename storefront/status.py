"""
Order status machine.

Pending -> Processing -> Shipped -> Delivered, with cancellation allowed
from Pending and Processing. Entering Cancelled releases every line's stock
in the same transaction as the status write.
"""
import logging
from typing import Optional, Tuple
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from . import crud, errors, inventory, models, validators

logger = logging.getLogger(__name__)


def can_transition(old_status: str, new_status: str) -> bool:
    is_valid, _ = validators.validate_order_status_transition(old_status, new_status)
    return is_valid


def change_order_status(
    db: Session,
    order_id: int,
    new_status: str,
    actor_id: Optional[int] = None,
) -> Tuple[Optional[models.Order], Optional[errors.OrderError]]:
    """
    Move an order to a new status.

    The status is written with a compare-and-set against the status that was
    validated, so a concurrent change makes this call fail instead of
    applying the transition twice.

    Args:
        db: Database session
        order_id: Order to update
        new_status: Requested status name
        actor_id: User performing the change (optional)

    Returns:
        Tuple of (order, error); exactly one of them is None
    """
    if new_status not in validators.VALID_TRANSITIONS:
        return None, errors.invalid_request(f"Unknown status: {new_status}")

    order = crud.get_order(db, order_id)
    if order is None:
        return None, errors.order_not_found(order_id)

    old_status = order.status
    is_valid, error_message = validators.validate_order_status_transition(old_status, new_status)
    if not is_valid:
        logger.warning(f"Order {order_id}: {error_message}")
        return None, errors.illegal_transition(error_message)

    try:
        if not crud.set_order_status(db, order_id, old_status, new_status):
            db.rollback()
            return None, errors.illegal_transition(f"Order {order_id} is no longer {old_status}")

        if new_status == models.OrderStatus.CANCELLED.value:
            # Ascending product order keeps row locks consistent across cancellations
            for line in sorted(order.lines, key=lambda line: line.product_id):
                inventory.release(db, line.product_id, line.quantity, commit=False)

        crud.add_order_event(
            db,
            order_id=order_id,
            event_type="status_changed",
            description=f"Status changed from '{old_status}' to '{new_status}'",
            old_value=old_status,
            new_value=new_status,
            user_id=actor_id,
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to change status of order {order_id}: {e}")
        return None, errors.persistence_failure(f"Failed to update order status: {e}")

    logger.info(f"Order {order_id} status changed from {old_status} to {new_status}")
    db.refresh(order)
    return order, None


def update_order_status(db: Session, order_id: int, new_status: str, actor_id: Optional[int] = None) -> bool:
    """
    Move an order to a new status.

    Returns:
        True if the transition was applied
    """
    order, _ = change_order_status(db, order_id, new_status, actor_id=actor_id)
    return order is not None


def cancel_order(db: Session, order_id: int, actor_id: Optional[int] = None) -> bool:
    """
    Cancel a Pending or Processing order and restore its stock.

    Returns:
        True if the order was cancelled
    """
    return update_order_status(db, order_id, models.OrderStatus.CANCELLED.value, actor_id=actor_id)
