import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models, schemas
from .auth import hash_password

logger = logging.getLogger(__name__)


class DuplicateError(ValueError):
    """A unique index (user email, order id) rejected the write."""


class DuplicateEmailError(DuplicateError):
    pass


class DuplicateOrderError(DuplicateError):
    pass


# -------------------- users --------------------

def get_user(db: Session, user_id: int) -> Optional[models.User]:
    return db.get(models.User, user_id)


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == email).first()


def create_user(db: Session, user: schemas.UserCreate) -> models.User:
    if get_user_by_email(db, user.email):
        raise DuplicateEmailError("user already exists")

    db_user = models.User(
        username=user.username,
        email=user.email,
        password_hash=hash_password(user.password),
        address=user.address,
        role=0,
    )
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError as e:
        # lost a race with a concurrent registration for the same email
        db.rollback()
        raise DuplicateEmailError("user already exists") from e
    db.refresh(db_user)
    return db_user


def delete_user(db: Session, user_id: int) -> bool:
    user = db.get(models.User, user_id)
    if not user:
        return False
    db.delete(user)
    db.commit()
    return True


# -------------------- products --------------------

def create_product(db: Session, product: schemas.ProductIn) -> models.Product:
    db_product = models.Product(**product.model_dump(mode="json"))
    db.add(db_product)
    db.commit()
    db.refresh(db_product)
    return db_product


def list_products(db: Session) -> List[models.Product]:
    return db.query(models.Product).order_by(models.Product.id).all()


def get_product(db: Session, product_id: int) -> Optional[models.Product]:
    return db.get(models.Product, product_id)


def update_product(db: Session, product_id: int, changes: schemas.ProductIn) -> Optional[models.Product]:
    product = db.get(models.Product, product_id)
    if not product:
        return None
    # only fields present in the request body are touched
    for field, value in changes.model_dump(mode="json", exclude_unset=True).items():
        setattr(product, field, value)
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def delete_product(db: Session, product_id: int) -> Optional[schemas.ProductRead]:
    product = db.get(models.Product, product_id)
    if not product:
        return None
    # snapshot before the row goes away; the instance is unusable after commit
    deleted = schemas.ProductRead.model_validate(product)
    db.delete(product)
    db.commit()
    return deleted


# -------------------- orders --------------------

def create_order(db: Session, order: schemas.OrderCreate, user_id: int) -> models.Order:
    # Line items and grand total are stored as the client sent them: no product
    # lookup, no price recomputation.
    items = [models.OrderItem(product_id=i.product_id, quantity=i.quantity) for i in order.items]
    db_order = models.Order(
        order_id=order.order_id,
        name=order.name,
        address=order.address,
        contact=order.contact,
        grand_total=order.grand_total,
        user_id=user_id,
        items=items,
    )
    db.add(db_order)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateOrderError(f"order {order.order_id!r} already exists") from e
    db.refresh(db_order)
    return db_order


def list_orders(db: Session) -> List[models.Order]:
    return db.query(models.Order).order_by(models.Order.id).all()


def list_orders_for_user(db: Session, user_id: int) -> List[models.Order]:
    return db.query(models.Order).filter(models.Order.user_id == user_id).order_by(models.Order.id).all()


def get_order(db: Session, order_id: str) -> Optional[models.Order]:
    return db.query(models.Order).filter(models.Order.order_id == order_id).first()


def delete_order(db: Session, order_id: str) -> Optional[schemas.OrderRead]:
    order = get_order(db, order_id)
    if not order:
        return None
    deleted = schemas.OrderRead.model_validate(order)
    db.delete(order)
    db.commit()
    logger.info("order %s cancelled", order_id)
    return deleted
