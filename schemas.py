"""
Database Schemas for the admin back-office

Each Pydantic model represents a collection in MongoDB.
Collection name is the lowercase of the class name.

The *Update models carry partial overwrites: only the fields a caller sends
are written.
"""
from datetime import datetime, timezone
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

ProductStatus = Literal["active", "inactive"]


class Payload(BaseModel):
    model_config = ConfigDict(extra="forbid")


class User(Payload):
    name: str = Field(..., min_length=1, description="Full name")
    email: EmailStr = Field(..., description="Email address, unique across users")
    phone: str = Field(..., min_length=1, description="Contact phone number")


class UserUpdate(Payload):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=1)


class Category(Payload):
    name: str = Field(..., min_length=1, description="Unique category name")
    description: str = Field(..., min_length=1)


class CategoryUpdate(Payload):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)


class Product(Payload):
    productName: str = Field(..., min_length=1, description="Unique product name")
    categoryId: str = Field(..., min_length=1, description="Category id (not checked)")
    price: float = Field(..., ge=0, allow_inf_nan=False)
    status: ProductStatus


class ProductUpdate(Payload):
    productName: Optional[str] = Field(None, min_length=1)
    categoryId: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    status: Optional[ProductStatus] = None


class OrderItem(BaseModel):
    productId: str
    quantity: int = Field(..., ge=1)
    unitPrice: float = Field(..., allow_inf_nan=False)


class Order(BaseModel):
    userId: str
    items: List[OrderItem] = Field(..., min_length=1)
    totalAmount: float = Field(..., gt=0, allow_inf_nan=False)
    orderDate: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class OrderCreate(Payload):
    # Untyped so orders.validate_order can report the first bad field itself.
    userId: Any = None
    productId: Any = None
    quantity: Any = None
    totalAmount: Any = None
