# storefront/models/order.py
import enum
from sqlalchemy import BigInteger, Column, Integer, String, ForeignKey, DateTime, Enum, CheckConstraint, func
from sqlalchemy.orm import relationship
from storefront.database import Base


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class TrackingStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


# An order is immutable after checkout except for its status
class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    principal_id = Column(Integer, ForeignKey("principals.id"), index=True, nullable=False)
    status = Column(
        Enum(OrderStatus, native_enum=False, length=20, values_callable=_enum_values, validate_strings=True),
        nullable=False,
        default=OrderStatus.PAID,
    )
    # Snapshot taken at checkout, never recomputed from current prices
    total_cents = Column(BigInteger, CheckConstraint("total_cents >= 0"), nullable=False)
    shipping_address = Column(String, nullable=False)
    payment_reference = Column(String, nullable=False, default="")
    created_at = Column(DateTime, server_default=func.now(), index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    tracking_points = relationship(
        "TrackingPoint", back_populates="order", cascade="all, delete-orphan",
        order_by="TrackingPoint.position",
    )


# Line item with name and price copied from the catalog at checkout time
class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), index=True, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    name_snapshot = Column(String, nullable=False)
    price_cents_snapshot = Column(Integer, nullable=False)
    quantity = Column(Integer, CheckConstraint("quantity >= 1"), nullable=False)

    order = relationship("Order", back_populates="items")

    @property
    def line_total_cents(self) -> int:
        return self.price_cents_snapshot * self.quantity


# Display-only delivery leg; advancing it never touches Order.status
class TrackingPoint(Base):
    __tablename__ = "tracking_points"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), index=True, nullable=False)
    position = Column(Integer, nullable=False)
    name = Column(String, nullable=False)
    status = Column(
        Enum(TrackingStatus, native_enum=False, length=20, values_callable=_enum_values, validate_strings=True),
        nullable=False,
        default=TrackingStatus.PENDING,
    )
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    order = relationship("Order", back_populates="tracking_points")
