# storefront/routes/cart.py
from typing import List

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from storefront.database import RowId, get_db
from storefront.models.cart import CartItem
from storefront.models.users import Principal
from storefront.schemas.cart import CartOut, CartItemOut, CartUpsert
from storefront.services import cart_service
from storefront.utils.audit import client_ip, write_log
from storefront.utils.tokenJWT import get_current_user

router = APIRouter(prefix="/cart", tags=["Cart"])


def _cart_to_out(items: List[CartItem]) -> CartOut:
    items_out = []
    total = 0

    for it in items:
        # Display uses the live catalog price; checkout snapshots it
        price = it.product.price_cents
        line_total = price * it.quantity
        total += line_total
        items_out.append(CartItemOut(
            product_id=it.product_id,
            name=it.product.name,
            quantity=it.quantity,
            price_cents=price,
            line_total_cents=line_total,
            image_url=it.product.image_url,
        ))

    return CartOut(items=items_out, total_cents=total)


@router.get("", response_model=CartOut)
def get_cart(
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    return _cart_to_out(cart_service.list_items(db, current_user.id))


# Set a product's quantity; zero or less removes the line
@router.post("", response_model=CartOut, status_code=status.HTTP_200_OK)
def upsert_cart_item(
    payload: CartUpsert,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    cart_service.upsert(db, current_user.id, payload.product_id, payload.quantity)
    out = _cart_to_out(cart_service.list_items(db, current_user.id))

    write_log(
        db,
        user_id=current_user.id,
        action="CART_UPSERT",
        resource="cart",
        ip=client_ip(request),
        meta={"product_id": payload.product_id, "quantity": payload.quantity, "total": out.total_cents},
    )
    return out


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_cart_item(
    product_id: RowId,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    removed = cart_service.remove(db, current_user.id, product_id)
    write_log(db, user_id=current_user.id, action="CART_DELETE", resource="cart",
              ip=client_ip(request), meta={"product_id": product_id, "removed": removed})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def clear_cart(
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    cleared = cart_service.clear(db, current_user.id)
    write_log(db, user_id=current_user.id, action="CART_CLEAR", resource="cart",
              ip=client_ip(request), meta={"items": cleared})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
