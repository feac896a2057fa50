"""
Database Schemas for the storefront

Each Pydantic model corresponds to one collection (lowercase of the class name,
snake_case for CartItem -> "cart_item"). The *Body / *Update models are request
payloads validated by FastAPI before they reach the storage layer.
"""
from typing import ClassVar, List, Optional, Literal, Tuple

from pydantic import BaseModel, Field, EmailStr

OrderStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled"]
PaymentMethod = Literal["credit_card", "bank_transfer", "cash_on_delivery"]


class PartialUpdate(BaseModel):
    """Base for PATCH-like bodies: only fields the client actually sent are applied."""

    nullable_fields: ClassVar[Tuple[str, ...]] = ()

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        return {k: v for k, v in data.items() if v is not None or k in self.nullable_fields}


class User(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password_hash: str = Field(..., description="scrypt hash and salt")
    is_admin: bool = False


class Category(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    image: Optional[str] = None


class CategoryUpdate(PartialUpdate):
    nullable_fields: ClassVar[Tuple[str, ...]] = ("description", "image")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    image: Optional[str] = None


class Product(BaseModel):
    name: str = Field(..., min_length=1)
    description: str
    price: float = Field(..., ge=0)
    sale_price: Optional[float] = Field(None, ge=0, description="Overrides price while set")
    image: str
    images: List[str] = []
    category_id: str
    stock: int = Field(0, ge=0)
    featured: bool = False
    new: bool = False
    bestseller: bool = False


class ProductUpdate(PartialUpdate):
    nullable_fields: ClassVar[Tuple[str, ...]] = ("sale_price",)

    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    sale_price: Optional[float] = Field(None, ge=0)
    image: Optional[str] = None
    images: Optional[List[str]] = None
    category_id: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)
    featured: Optional[bool] = None
    new: Optional[bool] = None
    bestseller: Optional[bool] = None


class ReviewCreateBody(BaseModel):
    product_id: str
    rating: int = Field(..., ge=1, le=5)
    title: str = Field(..., min_length=1)
    comment: str = Field(..., min_length=1)


class Review(ReviewCreateBody):
    user_id: str


class CartItemCreate(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)
    variant: Optional[str] = None


class CartItemUpdate(PartialUpdate):
    nullable_fields: ClassVar[Tuple[str, ...]] = ("variant",)

    quantity: Optional[int] = Field(None, ge=1)
    variant: Optional[str] = None


class CartItem(CartItemCreate):
    user_id: str


class Address(BaseModel):
    full_name: str = Field(..., min_length=1)
    address_line1: str = Field(..., min_length=1)
    address_line2: Optional[str] = None
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    postal_code: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)


class OrderItem(BaseModel):
    product_id: str
    name: str
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0, description="Unit price at purchase time")
    variant: Optional[str] = None


class Order(BaseModel):
    user_id: str
    items: List[OrderItem]
    total: float
    shipping_address: dict
    payment_method: PaymentMethod
    status: OrderStatus = "pending"


class OrderCreateBody(BaseModel):
    shipping_address: Address
    payment_method: PaymentMethod = "credit_card"


class OrderStatusBody(BaseModel):
    status: OrderStatus
