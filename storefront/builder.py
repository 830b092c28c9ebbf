"""
Order builder.

Turns validated items and their catalog entries into an order header with
lines priced at the catalog price read during validation.
"""
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from . import models, schemas
from .catalog import CatalogEntry

CENT = Decimal("0.01")


def order_total(lines: Iterable[models.OrderLine]) -> Decimal:
    """Exact decimal sum of line subtotals, in cents."""
    return sum((line.subtotal for line in lines), Decimal("0")).quantize(CENT)


def verify_order_total(order: models.Order) -> bool:
    """Check that the persisted total still equals the sum of the lines."""
    return Decimal(order.total_amount).quantize(CENT) == order_total(order.lines)


def build_order(
    customer_id: int,
    items: List[schemas.OrderItem],
    entries: Dict[int, CatalogEntry],
    shipping_address: Optional[str],
    payment_method: Optional[str],
) -> models.Order:
    """
    Build a pending order and its lines.

    Args:
        customer_id: Customer placing the order
        items: Requested items, in input order
        entries: Catalog entries keyed by product ID, one per item
        shipping_address: Delivery address
        payment_method: Payment method

    Returns:
        A transient Order with lines attached and its total computed
    """
    lines = [
        models.OrderLine(
            product_id=item.product_id,
            quantity=item.quantity,
            unit_price=entries[item.product_id].unit_price.quantize(CENT),
        )
        for item in items
    ]
    return models.Order(
        customer_id=customer_id,
        status=models.OrderStatus.PENDING.value,
        shipping_address=shipping_address,
        payment_method=payment_method,
        total_amount=order_total(lines),
        lines=lines,
    )
