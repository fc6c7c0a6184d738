from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict


class CamelModel(BaseModel):
    # wire format is camelCase (orderId, grandTotal, productId)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class Category(str, Enum):
    car = "car"
    bike = "bike"


class Message(BaseModel):
    message: str


# -------------------- users --------------------

class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)
    address: str


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    token: str
    role: int


class UserDetails(BaseModel):
    name: str
    address: str


class Claims(BaseModel):
    """Identity carried inside a signed token."""
    id: int
    email: str
    username: str
    role: int = 0


# -------------------- products --------------------

class ProductIn(BaseModel):
    url: Optional[str] = None
    name: Optional[str] = None
    category: Optional[Category] = None
    seller: Optional[str] = None
    price: Optional[float] = None
    description: Optional[str] = None


class ProductRead(ProductIn):
    id: int

    model_config = ConfigDict(from_attributes=True)


class ProductResult(Message):
    product: ProductRead


# -------------------- orders --------------------

class OrderItemIn(CamelModel):
    product_id: Optional[str] = None
    quantity: Optional[int] = None


class OrderItemRead(OrderItemIn):
    pass


class OrderCreate(CamelModel):
    order_id: str = Field(..., min_length=1)
    name: Optional[str] = None
    address: Optional[str] = None
    contact: Optional[str] = None
    items: List[OrderItemIn] = []
    grand_total: Optional[float] = None


class OrderRead(CamelModel):
    id: int
    order_id: str
    name: Optional[str] = None
    address: Optional[str] = None
    contact: Optional[str] = None
    items: List[OrderItemRead] = []
    grand_total: Optional[float] = None
    order_date: datetime
    user_id: int


class OrderResult(Message):
    order: OrderRead
