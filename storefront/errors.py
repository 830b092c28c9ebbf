"""
Failure values returned by the order workflow.

Workflow operations never raise for business failures; they return an
OrderError next to an empty result and leave the caller to translate it.
"""
import enum
from typing import Optional
from pydantic import BaseModel


class ErrorCode(str, enum.Enum):
    INVALID_REQUEST = "InvalidRequest"
    PRODUCT_UNAVAILABLE = "ProductUnavailable"
    INSUFFICIENT_STOCK = "InsufficientStock"
    PERSISTENCE_FAILURE = "PersistenceFailure"
    ILLEGAL_TRANSITION = "IllegalTransition"
    ORDER_NOT_FOUND = "OrderNotFound"


class OrderError(BaseModel):
    """A failed workflow step, optionally naming the offending product."""
    code: ErrorCode
    message: str
    product_id: Optional[int] = None


def invalid_request(message: str) -> OrderError:
    return OrderError(code=ErrorCode.INVALID_REQUEST, message=message)


def product_unavailable(product_id: int, message: Optional[str] = None) -> OrderError:
    return OrderError(
        code=ErrorCode.PRODUCT_UNAVAILABLE,
        message=message or f"Product {product_id} is not available",
        product_id=product_id,
    )


def insufficient_stock(product_id: int) -> OrderError:
    return OrderError(
        code=ErrorCode.INSUFFICIENT_STOCK,
        message=f"Insufficient stock for product {product_id}",
        product_id=product_id,
    )


def persistence_failure(message: str) -> OrderError:
    return OrderError(code=ErrorCode.PERSISTENCE_FAILURE, message=message)


def illegal_transition(message: str) -> OrderError:
    return OrderError(code=ErrorCode.ILLEGAL_TRANSITION, message=message)


def order_not_found(order_id: int) -> OrderError:
    return OrderError(code=ErrorCode.ORDER_NOT_FOUND, message=f"Order {order_id} not found")
