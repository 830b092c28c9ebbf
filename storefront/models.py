"""
SQLAlchemy ORM models for the Storefront service.

Defines the database schema for users, the product catalog, stock records,
orders with their lines, and the order timeline.
"""
import enum
from datetime import datetime
from decimal import Decimal
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from .database import Base


class UserRole(str, enum.Enum):
    CUSTOMER = "Customer"
    STORE_OWNER = "StoreOwner"
    CUSTOMER_SERVICE = "CustomerService"


class OrderStatus(str, enum.Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class User(Base):
    """
    User model representing a customer or a member of the store staff.

    Attributes:
        id (int): Primary key, auto-incremented user ID
        username (str): Unique login name
        email (str): User's email address (unique)
        role (str): One of Customer, StoreOwner, CustomerService
        first_name (str): Optional first name
        last_name (str): Optional last name
        address (str): Optional default shipping address
        is_active (bool): Whether the account is active; inactive users cannot order
        created_at (datetime): Timestamp when the user was created
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.CUSTOMER.value)
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    address = Column(String(500), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    orders = relationship("Order", back_populates="customer")


class Product(Base):
    """
    Product model representing a sellable catalog entry.

    Products are never physically deleted; deactivation hides them from
    listings and ordering while historical order lines keep referencing them.

    Attributes:
        id (int): Primary key
        name (str): Product name
        description (str): Optional description
        price (Decimal): Current unit price
        category_id (int): Category identifier
        store_owner_id (int): Owning store (user) identifier
        is_active (bool): Soft-delete flag
        created_at (datetime): Timestamp when the product was created
    """
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(18, 2), nullable=False)
    category_id = Column(Integer, nullable=True, index=True)
    store_owner_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    inventory = relationship("Inventory", back_populates="product", uselist=False)


class Inventory(Base):
    """
    Stock record for a product (one-to-one through the unique product_id).

    Only the stock ledger mutates these rows.

    Attributes:
        id (int): Primary key
        product_id (int): Product this record belongs to (unique)
        stock_quantity (int): Quantity on hand, never negative
        minimum_stock (int): Threshold below which the product is low on stock
        last_updated (datetime): Time of the last stock change
    """
    __tablename__ = "inventory"
    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_inventory_stock_non_negative"),
        CheckConstraint("minimum_stock >= 0", name="ck_inventory_minimum_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), unique=True, nullable=False)
    stock_quantity = Column(Integer, nullable=False, default=0)
    minimum_stock = Column(Integer, nullable=False, default=5)
    last_updated = Column(DateTime, nullable=False, default=datetime.utcnow)

    product = relationship("Product", back_populates="inventory")


class Order(Base):
    """
    Order header placed by a customer.

    Attributes:
        id (int): Primary key, assigned by the database
        customer_id (int): Customer who placed the order
        order_date (datetime): When the order was placed
        total_amount (Decimal): Sum of line subtotals, fixed at placement
        status (str): Pending, Processing, Shipped, Delivered or Cancelled
        shipping_address (str): Delivery address
        payment_method (str): Payment method chosen at checkout
        lines (list): Order lines in placement order
    """
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_orders_total_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    order_date = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    total_amount = Column(Numeric(18, 2), nullable=False, default=Decimal("0.00"))
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value, index=True)
    shipping_address = Column(String(500), nullable=True)
    payment_method = Column(String(50), nullable=True)

    customer = relationship("User", back_populates="orders")
    lines = relationship(
        "OrderLine",
        back_populates="order",
        order_by="OrderLine.id",
        cascade="all",
    )
    events = relationship("OrderEvent", back_populates="order", order_by="OrderEvent.id")


class OrderLine(Base):
    """
    One priced, quantified product entry of an order.

    The unit price is a snapshot taken at placement; later catalog price
    changes do not affect it. Lines are immutable once the order is placed.
    """
    __tablename__ = "order_details"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_details_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_order_details_price_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(18, 2), nullable=False)

    order = relationship("Order", back_populates="lines")

    @property
    def subtotal(self) -> Decimal:
        return self.quantity * self.unit_price


class OrderEvent(Base):
    """
    OrderEvent model representing historical events in an order's lifecycle.

    Attributes:
        id (int): Primary key, auto-incrementing event ID
        order_id (int): Foreign key to the order
        event_type (str): Type of event (e.g., "created", "status_changed", "address_changed")
        description (str): Human-readable description of the event
        old_value (str): Previous value (for changes, optional)
        new_value (str): New value (for changes, optional)
        user_id (int): ID of the user who triggered the event (optional)
        created_at (datetime): Timestamp when the event occurred
    """
    __tablename__ = "order_events"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    event_type = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    old_value = Column(String, nullable=True)
    new_value = Column(String, nullable=True)
    user_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    order = relationship("Order", back_populates="events")
