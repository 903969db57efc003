# storefront/services/checkout_service.py
"""
Cart-to-order checkout.

The whole conversion runs as one transaction on the request's session:
stock check, order and line snapshots, stock decrement and cart clear
either all commit together or none of them do. Stock rows are locked
for update where the database supports it, and each decrement is a
conditional UPDATE, so two buyers racing for the last unit cannot both
succeed.
"""
import logging

from sqlalchemy import update
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.database import run_with_retry
from storefront.exceptions import EmptyCartError, InsufficientStockError, PersistenceError, StorefrontError
from storefront.models.cart import CartItem
from storefront.models.order import Order, OrderItem, OrderStatus
from storefront.models.product import Product
from storefront.services.lifecycle_service import seed_tracking

logger = logging.getLogger(__name__)


def checkout(db: Session, principal_id: int, shipping_address: str, payment_reference: str,
             attempts: int = 3) -> Order:
    """
    Turn the principal's cart into a paid order.

    ``payment_reference`` is taken as already confirmed by the payment
    provider; no authorization happens here. Lock timeouts and deadlocks
    are retried from scratch up to ``attempts`` times.
    """
    try:
        return run_with_retry(
            db,
            lambda: _checkout_once(db, principal_id, shipping_address, payment_reference),
            attempts=attempts,
        )
    except OperationalError:
        logger.exception("Checkout for principal %s gave up after %s attempts", principal_id, attempts)
        raise PersistenceError()


def _checkout_once(db: Session, principal_id: int, shipping_address: str, payment_reference: str) -> Order:
    try:
        # 1. Cart joined with live price and stock, product rows locked in id order
        lines = (
            db.query(CartItem, Product)
            .join(Product, Product.id == CartItem.product_id)
            .filter(CartItem.principal_id == principal_id)
            .order_by(Product.id)
            .with_for_update(of=Product)
            .all()
        )
        if not lines:
            raise EmptyCartError()

        # 2. Every line must be coverable before anything is written
        for item, product in lines:
            if item.quantity > product.stock_count:
                raise InsufficientStockError(product.id, product.name)

        # 3. Total from the prices read above
        total_cents = sum(product.price_cents * item.quantity for item, product in lines)

        # 4. Order row; checkout is treated as payment-confirmed
        order = Order(
            principal_id=principal_id,
            status=OrderStatus.PAID,
            total_cents=total_cents,
            shipping_address=shipping_address,
            payment_reference=payment_reference,
        )
        db.add(order)
        db.flush()

        # 5. Line snapshots and guarded stock decrement
        for item, product in lines:
            db.add(OrderItem(
                order_id=order.id,
                product_id=product.id,
                name_snapshot=product.name,
                price_cents_snapshot=product.price_cents,
                quantity=item.quantity,
            ))
            result = db.execute(
                update(Product)
                .where(Product.id == product.id, Product.stock_count >= item.quantity)
                .values(stock_count=Product.stock_count - item.quantity)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                # Another checkout took the stock between our read and this write
                raise InsufficientStockError(product.id, product.name)

        seed_tracking(db, order)

        # 6. The whole cart is consumed
        db.query(CartItem).filter(CartItem.principal_id == principal_id).delete(synchronize_session=False)

        # 7. Commit
        db.commit()
    except (StorefrontError, OperationalError):
        db.rollback()
        raise
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Checkout failed for principal %s", principal_id)
        raise PersistenceError()

    db.refresh(order)
    logger.info("Order %s created for principal %s, total %s", order.id, principal_id, order.total_cents)
    return order
