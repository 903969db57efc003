# storefront/routes/orders.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session, joinedload

from storefront.config import Settings, get_settings
from storefront.database import RowId, get_db
from storefront.exceptions import NotFoundError, StorefrontError
from storefront.models.order import Order
from storefront.models.users import OPERATOR_ROLES, Principal
from storefront.schemas.order import (
    CheckoutPayload, OrderItemOut, OrderResponse, OrdersPage, OrderStatusPatch, TrackingResponse,
)
from storefront.services import checkout_service, lifecycle_service
from storefront.services.lifecycle_service import parse_status
from storefront.utils.audit import client_ip, write_log
from storefront.utils.tokenJWT import get_current_user, role_required

router = APIRouter(prefix="/orders", tags=["Orders"])
logger = logging.getLogger(__name__)

operator_required = role_required(*OPERATOR_ROLES)


# Map Order model to OrderResponse schema
def _order_to_out(order: Order) -> OrderResponse:
    items: List[OrderItemOut] = [
        OrderItemOut(
            product_id=it.product_id,
            name=it.name_snapshot,
            price_cents=it.price_cents_snapshot,
            quantity=it.quantity,
            line_total_cents=it.line_total_cents,
        )
        for it in order.items
    ]
    return OrderResponse(
        id=order.id,
        principal_id=order.principal_id,
        status=order.status,
        total_cents=order.total_cents,
        shipping_address=order.shipping_address,
        payment_reference=order.payment_reference,
        created_at=order.created_at,
        items=items,
    )


# Load an order the caller may see; non-owners get 404 so order ids do not leak
def _visible_order(db: Session, order_id: int, current_user: Principal) -> Order:
    order = db.query(Order).options(joinedload(Order.items)).filter(Order.id == order_id).first()
    if not order or (order.principal_id != current_user.id and not current_user.is_operator):
        raise NotFoundError("Order not found")
    return order


def _page(query, page: int, page_size: int) -> dict:
    total = query.count()
    rows = query.offset((page - 1) * page_size).limit(page_size).all()
    return {"items": [_order_to_out(o) for o in rows], "total": total, "page": page, "page_size": page_size}


# Convert the caller's cart into a paid order
@router.post("/checkout", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def checkout(
    payload: CheckoutPayload,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: Principal = Depends(get_current_user),
):
    try:
        order = checkout_service.checkout(
            db, current_user.id, payload.shipping_address, payload.payment_reference,
            attempts=settings.CHECKOUT_RETRY_ATTEMPTS,
        )
    except StorefrontError as exc:
        write_log(db, user_id=current_user.id, action="ORDER_CHECKOUT", resource="orders", status="FAIL",
                  ip=client_ip(request), meta={"reason": exc.message})
        raise

    write_log(db, user_id=current_user.id, action="ORDER_CHECKOUT", resource="orders", ip=client_ip(request),
              meta={"order_id": order.id, "total": order.total_cents, "items": len(order.items)})
    return _order_to_out(order)


# List the caller's own orders, newest first
@router.get("/me", response_model=OrdersPage)
def list_my_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    q = db.query(Order).options(joinedload(Order.items)).filter(
        Order.principal_id == current_user.id
    ).order_by(Order.created_at.desc(), Order.id.desc())
    return _page(q, page, page_size)


# List all orders (operators only)
@router.get("", response_model=OrdersPage)
def list_all_orders(
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: Principal = Depends(operator_required),
):
    q = db.query(Order).options(joinedload(Order.items))
    if status_filter:
        q = q.filter(Order.status == parse_status(status_filter))
    q = q.order_by(Order.created_at.desc(), Order.id.desc())
    return _page(q, page, page_size)


# Get details of a specific order
@router.get("/{order_id}", response_model=OrderResponse)
def get_order_detail(
    order_id: RowId,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    return _order_to_out(_visible_order(db, order_id, current_user))


# Delivery legs for display; independent of the order status
@router.get("/{order_id}/tracking", response_model=TrackingResponse)
def get_order_tracking(
    order_id: RowId,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    order = _visible_order(db, order_id, current_user)
    return {"order_id": order.id, "order_status": order.status, "points": order.tracking_points}


# Move an order to a new status (operators only)
@router.patch("/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: RowId,
    payload: OrderStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(operator_required),
):
    old_status = db.query(Order.status).filter(Order.id == order_id).scalar()
    order = lifecycle_service.set_status(db, order_id, payload.status)

    write_log(db, user_id=current_user.id, action="ORDER_STATUS_CHANGE", resource="orders", ip=client_ip(request),
              meta={"order_id": order.id, "old": old_status.value if old_status else None, "new": order.status.value})

    order = db.query(Order).options(joinedload(Order.items)).filter(Order.id == order.id).first()
    return _order_to_out(order)
