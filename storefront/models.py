from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from .db import Base


def utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    # plain data: recorded, embedded in tokens, returned at login; nothing branches on it
    role = Column(Integer, nullable=False, default=0)
    address = Column(String, nullable=False)
    date = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    url = Column(String, nullable=True)
    name = Column(String, nullable=True)
    category = Column(String, nullable=True)
    seller = Column(String, nullable=True)
    description = Column(String, nullable=True)
    price = Column(Float, nullable=True)


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=True)
    address = Column(String, nullable=True)
    contact = Column(String, nullable=True)
    grand_total = Column(Float, nullable=True)
    order_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    # owner reference only, no foreign key: orders outlive their owner's account
    user_id = Column(Integer, nullable=False, index=True)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy="selectin",
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_pk = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String, nullable=True)
    quantity = Column(Integer, nullable=True)

    order = relationship("Order", back_populates="items")
