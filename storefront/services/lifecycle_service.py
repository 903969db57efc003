# storefront/services/lifecycle_service.py
"""
Order status state machine and simulated delivery tracking.

    pending -> paid -> shipped -> delivered
    (any non-terminal state) -> cancelled

Moves go forward only (skipping ahead is allowed). ``cancelled`` is
reachable from any non-terminal state. ``delivered`` and ``cancelled``
are terminal. Every status write goes through validate_transition.
"""
import asyncio
import logging
from typing import List, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from storefront.exceptions import IllegalTransitionError, NotFoundError, ValidationError
from storefront.models.order import Order, OrderStatus, TrackingPoint, TrackingStatus

logger = logging.getLogger(__name__)

FORWARD_ORDER = [OrderStatus.PENDING, OrderStatus.PAID, OrderStatus.SHIPPED, OrderStatus.DELIVERED]
TERMINAL_STATUSES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

TRACKING_LEGS = ["Order confirmed", "Warehouse", "In transit", "Local hub", "Delivered"]


def parse_status(value: Union[str, OrderStatus]) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise ValidationError(f"Invalid status '{value}'. Must be one of: {allowed}")


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    if current in TERMINAL_STATUSES or current == new:
        return False
    if new == OrderStatus.CANCELLED:
        return True
    return FORWARD_ORDER.index(new) > FORWARD_ORDER.index(current)


def validate_transition(current: Union[str, OrderStatus], new: Union[str, OrderStatus]) -> OrderStatus:
    current, new = parse_status(current), parse_status(new)
    if not can_transition(current, new):
        raise IllegalTransitionError(current.value, new.value)
    return new


def set_status(db: Session, order_id: int, new_status: Union[str, OrderStatus]) -> Order:
    """Validate and persist a status change; returns the updated order."""
    new_status = parse_status(new_status)
    order = db.query(Order).filter(Order.id == order_id).with_for_update().first()
    if order is None:
        raise NotFoundError("Order not found")

    old_status = order.status
    try:
        validate_transition(old_status, new_status)
    except IllegalTransitionError:
        db.rollback()
        raise
    order.status = new_status
    db.commit()
    db.refresh(order)
    logger.info("Order %s status %s -> %s", order.id, old_status.value, new_status.value)
    return order


def seed_tracking(db: Session, order: Order) -> List[TrackingPoint]:
    """Attach the fixed delivery legs to a new order; caller commits."""
    points = [
        TrackingPoint(
            order_id=order.id,
            position=idx,
            name=name,
            status=TrackingStatus.IN_PROGRESS if idx == 0 else TrackingStatus.PENDING,
        )
        for idx, name in enumerate(TRACKING_LEGS)
    ]
    db.add_all(points)
    return points


def advance_tracking(order: Order) -> bool:
    """
    Complete the current leg and start the next pending one.

    Returns False when every leg is already completed. Does not touch
    ``order.status``; caller commits.
    """
    points = sorted(order.tracking_points, key=lambda p: p.position)
    current = next((p for p in points if p.status == TrackingStatus.IN_PROGRESS), None)
    upcoming = next((p for p in points if p.status == TrackingStatus.PENDING), None)

    if current is None and upcoming is None:
        return False
    if current is not None:
        current.status = TrackingStatus.COMPLETED
    if upcoming is not None:
        upcoming.status = TrackingStatus.IN_PROGRESS
    return True


def advance_all_tracking(db: Session) -> int:
    """One tick of the simulated tracker over every order with unfinished legs."""
    orders = (
        db.query(Order)
        .join(TrackingPoint, TrackingPoint.order_id == Order.id)
        .filter(TrackingPoint.status != TrackingStatus.COMPLETED)
        .filter(Order.status != OrderStatus.CANCELLED)
        .distinct()
        .all()
    )
    advanced = sum(1 for order in orders if advance_tracking(order))
    db.commit()
    return advanced


async def run_tracking_advancer(database, interval_seconds: float):
    """Advance tracking legs every ``interval_seconds`` until cancelled."""
    def _tick():
        with database.session() as db:
            return advance_all_tracking(db)

    while True:
        await asyncio.sleep(interval_seconds)
        try:
            advanced = await run_in_threadpool(_tick)
        except SQLAlchemyError:
            logger.exception("Tracking advancement tick failed")
            continue
        if advanced:
            logger.debug("Advanced tracking for %s orders", advanced)
