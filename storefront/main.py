"""
Storefront Service API

This module implements the FastAPI application exposing order placement,
order fulfillment, the product catalog and the stock ledger to the store's
user interface, with PostgreSQL database persistence.

Endpoints:
    GET /healthz: Health check endpoint for orchestration systems
    POST /orders: Place an order
    GET /orders: List orders (filters: customer, status, date range, recent)
    GET /orders/analytics: Order counts and revenue
    GET /orders/{order_id}: Get a single order
    POST /orders/{order_id}/cancel: Cancel an order and restore its stock
    PUT /orders/{order_id}/status: Move an order to a new status
    PUT /orders/{order_id}/shipping-address: Change the delivery address
    GET /orders/{order_id}/timeline: Order history
    GET /customers/{customer_id}/orders, /customers/{customer_id}/summary
    /products, /inventory, /catalog, /users: Catalog, stock and user management

Attributes:
    app (FastAPI): The FastAPI application instance configured with the title "storefront-service"
"""
import logging
from datetime import datetime
from typing import List, Optional
from fastapi import FastAPI, Depends, HTTPException, status
from sqlalchemy.orm import Session

from . import auth, catalog, crud, errors, inventory, models, orders, schemas
from . import status as order_status
from .config import LOG_LEVEL, RECENT_ORDERS_DEFAULT, DEFAULT_MINIMUM_STOCK
from .database import engine, get_db

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

# Create database tables
models.Base.metadata.create_all(bind=engine)

app = FastAPI(title="storefront-service")

ERROR_STATUS_CODES = {
    errors.ErrorCode.INVALID_REQUEST: status.HTTP_400_BAD_REQUEST,
    errors.ErrorCode.PRODUCT_UNAVAILABLE: status.HTTP_400_BAD_REQUEST,
    errors.ErrorCode.INSUFFICIENT_STOCK: status.HTTP_409_CONFLICT,
    errors.ErrorCode.ILLEGAL_TRANSITION: status.HTTP_409_CONFLICT,
    errors.ErrorCode.ORDER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    errors.ErrorCode.PERSISTENCE_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def raise_for_error(error: errors.OrderError):
    """Translate a workflow failure into an HTTP error response."""
    raise HTTPException(
        status_code=ERROR_STATUS_CODES[error.code],
        detail=error.model_dump(mode="json"),
    )


def get_authorized_order(db: Session, order_id: int, current_user: auth.CurrentUser) -> models.Order:
    """
    Load an order the current user may access (owner or staff).

    Raises:
        HTTPException: 403 if not authorized
        HTTPException: 404 if order not found
    """
    db_order = orders.get_order(db, order_id)
    if db_order is None:
        raise HTTPException(status_code=404, detail="Order not found")

    if not current_user.is_staff and db_order.customer_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to access this order"
        )
    return db_order


@app.get("/healthz", response_model=dict)
def health():
    """
    Health check endpoint for the storefront service.

    Returns:
        dict: A dictionary containing the health status of the service.
            - status (str): Always returns "healthy" when the service is operational.
    """
    return {"status": "healthy"}


# Orders

@app.post("/orders", response_model=schemas.Order, status_code=status.HTTP_201_CREATED)
def place_order(
    order: schemas.OrderCreate,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.get_current_user)
):
    """
    Place a new order, reserving stock for every item.

    Customers can only place orders for themselves; staff may place orders
    on behalf of a customer.

    Raises:
        HTTPException: 400 if the request is invalid or a product is unavailable
        HTTPException: 403 if not authorized
        HTTPException: 409 if stock is insufficient
        HTTPException: 500 if the order could not be stored
    """
    if not current_user.is_staff and order.customer_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Can only place orders for yourself"
        )

    db_order, error = orders.place_order(
        db,
        customer_id=order.customer_id,
        items=order.items,
        shipping_address=order.shipping_address,
        payment_method=order.payment_method,
        actor_id=current_user.id,
    )
    if error is not None:
        raise_for_error(error)
    return db_order


@app.get("/orders", response_model=List[schemas.Order])
def list_orders(
    customer_id: Optional[int] = None,
    order_status: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.get_current_user)
):
    """
    List orders, newest first (customers see their own, staff see all).

    Args:
        customer_id: Only orders of this customer
        order_status: Only orders in this status
        start_date: Only orders placed at or after this time
        end_date: Only orders placed at or before this time
        skip: Number of records to skip (default: 0)
        limit: Maximum number of records to return (default: 100)
    """
    if not current_user.is_staff:
        customer_id = current_user.id
    return crud.get_orders(
        db,
        customer_id=customer_id,
        status=order_status,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )


@app.get("/orders/analytics", response_model=schemas.OrderAnalytics)
def get_analytics(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    recent: int = RECENT_ORDERS_DEFAULT,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.require_staff)
):
    """
    Get order analytics (staff only).

    Returns:
        Order counts by status, revenue excluding cancelled orders, and the most recent orders
    """
    status_breakdown = orders.get_order_count_by_status(db)
    return {
        "total_orders": sum(status_breakdown.values()),
        "total_revenue": orders.get_total_revenue(db, start_date, end_date),
        "status_breakdown": status_breakdown,
        "recent_orders": orders.get_recent_orders(db, max(1, min(recent, 100))),
    }


@app.get("/orders/{order_id}", response_model=schemas.Order)
def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.get_current_user)
):
    """
    Get a single order by ID (owner or staff).

    Raises:
        HTTPException: 403 if not authorized
        HTTPException: 404 if order not found
    """
    return get_authorized_order(db, order_id, current_user)


@app.post("/orders/{order_id}/cancel", response_model=schemas.Order)
def cancel_order(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.get_current_user)
):
    """
    Cancel a Pending or Processing order and restore its stock (owner or staff).

    Raises:
        HTTPException: 403 if not authorized
        HTTPException: 404 if order not found
        HTTPException: 409 if the order can no longer be cancelled
    """
    get_authorized_order(db, order_id, current_user)
    db_order, error = order_status.change_order_status(
        db, order_id, models.OrderStatus.CANCELLED.value, actor_id=current_user.id
    )
    if error is not None:
        raise_for_error(error)
    return db_order


@app.put("/orders/{order_id}/status", response_model=schemas.Order)
def update_order_status(
    order_id: int,
    payload: schemas.OrderStatusUpdate,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.require_staff)
):
    """
    Move an order to a new status (staff only).

    Raises:
        HTTPException: 400 if the status is unknown
        HTTPException: 404 if order not found
        HTTPException: 409 if the transition is not allowed
    """
    db_order, error = order_status.change_order_status(db, order_id, payload.status, actor_id=current_user.id)
    if error is not None:
        raise_for_error(error)
    return db_order


@app.put("/orders/{order_id}/shipping-address", response_model=schemas.Order)
def update_shipping_address(
    order_id: int,
    payload: schemas.ShippingAddressUpdate,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.get_current_user)
):
    """
    Change the shipping address of an order that has not shipped (owner or staff).

    Raises:
        HTTPException: 400 if the address is empty or the order has shipped
        HTTPException: 403 if not authorized
        HTTPException: 404 if order not found
    """
    get_authorized_order(db, order_id, current_user)
    if not orders.update_shipping_address(db, order_id, payload.shipping_address, actor_id=current_user.id):
        raise HTTPException(status_code=400, detail="Shipping address cannot be changed")
    return orders.get_order(db, order_id)


@app.get("/orders/{order_id}/timeline", response_model=List[schemas.OrderEvent])
def get_order_timeline(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.get_current_user)
):
    """
    Get the timeline of events for an order (owner or staff).

    Returns:
        List of order events in chronological order
    """
    get_authorized_order(db, order_id, current_user)
    return crud.get_order_events(db, order_id)


# Customers

def check_customer_access(customer_id: int, current_user: auth.CurrentUser):
    if not current_user.is_staff and customer_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to access this customer"
        )


@app.get("/customers/{customer_id}/orders", response_model=List[schemas.Order])
def get_customer_orders(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.get_current_user)
):
    check_customer_access(customer_id, current_user)
    return orders.get_orders_by_customer(db, customer_id)


@app.get("/customers/{customer_id}/summary", response_model=schemas.CustomerSummary)
def get_customer_summary(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.get_current_user)
):
    """Order count and total spent (cancelled orders excluded) for a customer."""
    check_customer_access(customer_id, current_user)
    return {
        "customer_id": customer_id,
        "order_count": orders.get_customer_order_count(db, customer_id),
        "total_spent": orders.get_customer_total_spent(db, customer_id),
    }


# Products

@app.get("/products", response_model=List[schemas.Product])
def list_products(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.get_current_user)
):
    """List active catalog products, ordered by name."""
    return crud.get_products(db, skip=skip, limit=limit)


@app.post("/products", response_model=schemas.Product, status_code=status.HTTP_201_CREATED)
def create_product(
    product: schemas.ProductCreate,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.require_store_owner)
):
    """
    Add a product to the catalog (store owner only).

    A stock record is created alongside when a stock quantity is given.
    """
    db_product = crud.create_product(db, product, store_owner_id=current_user.id)
    if product.stock_quantity is not None:
        minimum = product.minimum_stock if product.minimum_stock is not None else DEFAULT_MINIMUM_STOCK
        inventory.create_stock_record(db, db_product.id, product.stock_quantity, minimum)
    return db_product


@app.get("/products/{product_id}", response_model=schemas.Product)
def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.get_current_user)
):
    db_product = crud.get_product(db, product_id)
    if db_product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return db_product


@app.put("/products/{product_id}", response_model=schemas.Product)
def update_product(
    product_id: int,
    product: schemas.ProductUpdate,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.require_store_owner)
):
    """
    Update a product (store owner only). Price changes do not affect placed orders.

    Raises:
        HTTPException: 404 if product not found
    """
    db_product = crud.update_product(db, product_id, product)
    if db_product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return db_product


@app.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.require_store_owner)
):
    """
    Deactivate a product (store owner only). Products are never physically deleted.

    Raises:
        HTTPException: 404 if product not found
    """
    if not crud.deactivate_product(db, product_id):
        raise HTTPException(status_code=404, detail="Product not found")


# Inventory

@app.get("/inventory", response_model=List[schemas.StockRecord])
def list_stock(
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.require_staff)
):
    """Stock records of all active products (staff only)."""
    return crud.get_active_stock(db)


@app.get("/inventory/low-stock", response_model=List[schemas.StockRecord])
def list_low_stock(
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.require_staff)
):
    return inventory.get_low_stock(db)


@app.get("/inventory/out-of-stock", response_model=List[schemas.StockRecord])
def list_out_of_stock(
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.require_staff)
):
    return inventory.get_out_of_stock(db)


@app.get("/inventory/category/{category_id}", response_model=List[schemas.StockRecord])
def list_stock_by_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.require_staff)
):
    return inventory.get_stock_by_category(db, category_id)


@app.get("/inventory/summary", response_model=schemas.StockSummary)
def get_stock_summary(
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.require_staff)
):
    """Number of low-stock and out-of-stock active products (staff only)."""
    return {
        "low_stock_count": inventory.get_low_stock_count(db),
        "out_of_stock_count": inventory.get_out_of_stock_count(db),
    }


@app.get("/inventory/value")
def get_stock_value(
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.require_store_owner)
):
    """Total value of stock on hand for active products (store owner only)."""
    return {"total_value": str(inventory.total_stock_value(db))}


@app.get("/inventory/{product_id}", response_model=schemas.StockRecord)
def get_stock_record(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.get_current_user)
):
    db_stock = crud.get_stock(db, product_id)
    if db_stock is None:
        raise HTTPException(status_code=404, detail="Stock record not found")
    return db_stock


@app.post("/inventory", response_model=schemas.StockRecord, status_code=status.HTTP_201_CREATED)
def create_stock_record(
    record: schemas.StockRecordCreate,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.require_store_owner)
):
    """
    Create the stock record of a product (store owner only).

    Raises:
        HTTPException: 400 if the product does not exist or already has a record
    """
    minimum = record.minimum_stock if record.minimum_stock is not None else DEFAULT_MINIMUM_STOCK
    db_stock = inventory.create_stock_record(db, record.product_id, record.stock_quantity, minimum)
    if db_stock is None:
        raise HTTPException(status_code=400, detail="Stock record cannot be created for this product")
    return db_stock


@app.put("/inventory/{product_id}", response_model=schemas.StockRecord)
def update_stock_record(
    product_id: int,
    record: schemas.StockRecordUpdate,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.require_store_owner)
):
    """
    Overwrite stock quantity and/or minimum stock (store owner only).

    Raises:
        HTTPException: 404 if the product has no stock record
    """
    if crud.get_stock(db, product_id) is None:
        raise HTTPException(status_code=404, detail="Stock record not found")
    if record.stock_quantity is not None:
        inventory.set_stock(db, product_id, record.stock_quantity)
    if record.minimum_stock is not None:
        inventory.set_minimum_stock(db, product_id, record.minimum_stock)
    db.expire_all()
    return crud.get_stock(db, product_id)


@app.post("/inventory/{product_id}/restock", response_model=schemas.StockRecord)
def restock(
    product_id: int,
    adjustment: schemas.StockAdjustment,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.require_store_owner)
):
    """
    Add units to a product's stock (store owner only).

    Raises:
        HTTPException: 404 if the product has no stock record
    """
    if not inventory.release(db, product_id, adjustment.quantity):
        raise HTTPException(status_code=404, detail="Stock record not found")
    return crud.get_stock(db, product_id)


@app.get("/catalog/{product_id}", response_model=catalog.CatalogEntry)
def lookup_catalog_entry(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.get_current_user)
):
    """Current price, active flag and stock of a product, as used for ordering."""
    entry = catalog.lookup_product(db, product_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return entry


# Users

@app.post("/users", response_model=schemas.User, status_code=status.HTTP_201_CREATED)
def create_user(
    user: schemas.UserCreate,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.require_store_owner)
):
    """
    Register a user (store owner only).

    Raises:
        HTTPException: 400 if the username or email exists or the role is unknown
    """
    if user.role not in [role.value for role in models.UserRole]:
        raise HTTPException(status_code=400, detail=f"Unknown role: {user.role}")
    if crud.get_user_by_username(db, user.username):
        raise HTTPException(status_code=400, detail="Username already exists")
    if crud.get_user_by_email(db, email=user.email):
        raise HTTPException(status_code=400, detail="Email already registered")
    return crud.create_user(db, user)


@app.get("/users/{user_id}", response_model=schemas.User)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: auth.CurrentUser = Depends(auth.get_current_user)
):
    check_customer_access(user_id, current_user)
    db_user = crud.get_user(db, user_id)
    if db_user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return db_user
