"""
Pydantic schemas for request/response validation in the Storefront service.

These schemas define the structure of data for API requests and responses,
and the order item input accepted by the placement workflow.
"""
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from pydantic import BaseModel, EmailStr, Field, field_validator


class OrderItem(BaseModel):
    """A requested (product, quantity) pair."""
    product_id: int = Field(..., description="Catalog product identifier")
    quantity: int = Field(..., description="Quantity ordered")


class OrderCreate(BaseModel):
    """Schema for placing a new order."""
    customer_id: int
    items: List[OrderItem] = Field(default_factory=list, description="Requested items, in order")
    shipping_address: Optional[str] = None
    payment_method: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    """Schema for changing an order's status."""
    status: str


class ShippingAddressUpdate(BaseModel):
    """Schema for changing an order's shipping address."""
    shipping_address: str


class OrderLine(BaseModel):
    """Schema for an order line, including the derived subtotal."""
    id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    subtotal: Decimal

    class Config:
        from_attributes = True


class Order(BaseModel):
    """
    Schema for order responses, includes all database fields.

    Attributes:
        id (int): Order's unique identifier
        customer_id (int): ID of the customer who placed the order
        order_date (datetime): When the order was placed
        total_amount (Decimal): Total amount fixed at placement
        status (str): Order status
        shipping_address (str): Delivery address
        payment_method (str): Payment method
        lines (List[OrderLine]): Order lines
    """
    id: int
    customer_id: int
    order_date: datetime
    total_amount: Decimal
    status: str
    shipping_address: Optional[str] = None
    payment_method: Optional[str] = None
    lines: List[OrderLine] = Field(default_factory=list)

    class Config:
        from_attributes = True


class OrderEvent(BaseModel):
    """
    Schema for order timeline events.

    Attributes:
        id (int): Event ID
        order_id (int): Order identifier
        event_type (str): Type of event (created, status_changed, address_changed)
        description (str): Human-readable event description
        old_value (str): Previous value (optional)
        new_value (str): New value (optional)
        user_id (int): User who triggered the event (optional)
        created_at (datetime): When the event occurred
    """
    id: int
    order_id: int
    event_type: str
    description: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    user_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class OrderAnalytics(BaseModel):
    total_orders: int
    total_revenue: Decimal
    status_breakdown: Dict[str, int]
    recent_orders: List[Order]


class CustomerSummary(BaseModel):
    customer_id: int
    order_count: int
    total_spent: Decimal


class ProductCreate(BaseModel):
    """Schema for adding a product to the catalog, optionally with its stock record."""
    name: str
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, decimal_places=2)
    category_id: Optional[int] = None
    stock_quantity: Optional[int] = Field(None, ge=0)
    minimum_stock: Optional[int] = Field(None, ge=0)


class ProductUpdate(BaseModel):
    """
    Schema for updating a product. All fields are optional.

    name and price may be omitted but not set to null.
    """
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    category_id: Optional[int] = None

    @field_validator("name", "price")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("cannot be null")
        return value


class Product(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    category_id: Optional[int] = None
    store_owner_id: Optional[int] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class StockRecordCreate(BaseModel):
    product_id: int
    stock_quantity: int = Field(0, ge=0)
    minimum_stock: Optional[int] = Field(None, ge=0)


class StockRecordUpdate(BaseModel):
    """Schema for overwriting stock levels. All fields are optional."""
    stock_quantity: Optional[int] = Field(None, ge=0)
    minimum_stock: Optional[int] = Field(None, ge=0)


class StockAdjustment(BaseModel):
    quantity: int = Field(..., gt=0)


class StockRecord(BaseModel):
    """
    Schema for stock record responses.

    Attributes:
        product_id (int): Product the record belongs to
        stock_quantity (int): Quantity on hand
        minimum_stock (int): Low-stock threshold
        last_updated (datetime): Time of the last change
    """
    id: int
    product_id: int
    stock_quantity: int
    minimum_stock: int
    last_updated: datetime

    class Config:
        from_attributes = True


class StockSummary(BaseModel):
    low_stock_count: int
    out_of_stock_count: int


class UserCreate(BaseModel):
    username: str
    email: EmailStr
    role: str = "Customer"
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    address: Optional[str] = None


class User(BaseModel):
    id: int
    username: str
    email: str
    role: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    address: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
