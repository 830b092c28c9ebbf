"""
Business-rule validation for the Storefront service.

Provides validation beyond schema validation: order item checks and the
order status transition table.
"""
from typing import List, Optional, Tuple
from . import schemas
from .config import MAX_ORDER_ITEMS, MAX_ITEM_QUANTITY
from .models import OrderStatus

# Forward flow plus cancellation from the two pre-shipment states.
# Shipped, Delivered and Cancelled accept nothing else.
VALID_TRANSITIONS = {
    OrderStatus.PENDING.value: [OrderStatus.PROCESSING.value, OrderStatus.CANCELLED.value],
    OrderStatus.PROCESSING.value: [OrderStatus.SHIPPED.value, OrderStatus.CANCELLED.value],
    OrderStatus.SHIPPED.value: [OrderStatus.DELIVERED.value],
    OrderStatus.DELIVERED.value: [],
    OrderStatus.CANCELLED.value: [],
}


def validate_order_items(items: List[schemas.OrderItem]) -> Tuple[bool, str]:
    """
    Validate requested order items for business rules.

    Args:
        items: List of requested items

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not items:
        return False, "Order must contain at least one item"

    if len(items) > MAX_ORDER_ITEMS:
        return False, f"Order cannot contain more than {MAX_ORDER_ITEMS} items"

    # Callers merge quantities per product before placing
    product_ids = [item.product_id for item in items]
    if len(product_ids) != len(set(product_ids)):
        return False, "Order contains duplicate products"

    for item in items:
        if item.quantity <= 0:
            return False, f"Item {item.product_id}: quantity must be positive"

        if item.quantity > MAX_ITEM_QUANTITY:
            return False, f"Item {item.product_id}: quantity exceeds maximum ({MAX_ITEM_QUANTITY})"

    return True, ""


def validate_order_status_transition(old_status: str, new_status: str) -> Tuple[bool, str]:
    """
    Validate that a status transition is allowed.

    Args:
        old_status: Current order status
        new_status: Requested order status

    Returns:
        Tuple of (is_valid, error_message)
    """
    if old_status not in VALID_TRANSITIONS:
        return False, f"Unknown status: {old_status}"

    if new_status not in VALID_TRANSITIONS:
        return False, f"Unknown status: {new_status}"

    if new_status not in VALID_TRANSITIONS[old_status]:
        return False, f"Invalid status transition: {old_status} -> {new_status}"

    return True, ""


def validate_shipping_address(address: Optional[str]) -> Tuple[bool, str]:
    if address is None or not address.strip():
        return False, "Shipping address cannot be empty"
    if len(address) > 500:
        return False, "Shipping address cannot exceed 500 characters"
    return True, ""
