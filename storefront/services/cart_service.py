# storefront/services/cart_service.py
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from storefront.exceptions import NotFoundError
from storefront.models.cart import CartItem
from storefront.models.product import Product


def list_items(db: Session, principal_id: int) -> List[CartItem]:
    # Product is joined so callers see the current name, price and image
    return (
        db.query(CartItem)
        .options(joinedload(CartItem.product))
        .filter(CartItem.principal_id == principal_id)
        .order_by(CartItem.id)
        .all()
    )


def upsert(db: Session, principal_id: int, product_id: int, quantity: int) -> Optional[CartItem]:
    """
    Set the quantity of a product in the cart, replacing any previous quantity.

    A quantity of zero or less removes the line and returns None.
    """
    if quantity <= 0:
        remove(db, principal_id, product_id)
        return None

    if db.query(Product.id).filter(Product.id == product_id).first() is None:
        raise NotFoundError("Product not found")

    item = _find(db, principal_id, product_id)
    if item:
        item.quantity = quantity
    else:
        item = CartItem(principal_id=principal_id, product_id=product_id, quantity=quantity)
        db.add(item)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent request inserted the same line first
        db.rollback()
        item = _find(db, principal_id, product_id)
        item.quantity = quantity
        db.commit()
    db.refresh(item)
    return item


def remove(db: Session, principal_id: int, product_id: int) -> bool:
    deleted = (
        db.query(CartItem)
        .filter(CartItem.principal_id == principal_id, CartItem.product_id == product_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted > 0


def clear(db: Session, principal_id: int) -> int:
    deleted = db.query(CartItem).filter(CartItem.principal_id == principal_id).delete(synchronize_session=False)
    db.commit()
    return deleted


def _find(db: Session, principal_id: int, product_id: int) -> Optional[CartItem]:
    return (
        db.query(CartItem)
        .filter(CartItem.principal_id == principal_id, CartItem.product_id == product_id)
        .first()
    )
