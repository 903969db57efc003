from pydantic import BaseModel, Field, field_validator
from typing import List
from datetime import datetime

from storefront.models.order import OrderStatus, TrackingStatus


# Output schema for an order line snapshot
class OrderItemOut(BaseModel):
    product_id: int
    name: str
    price_cents: int
    quantity: int
    line_total_cents: int


# Checkout input; payment_reference is an already-confirmed payment identifier
class CheckoutPayload(BaseModel):
    shipping_address: str = Field(min_length=1, max_length=500)
    payment_reference: str = Field(default="", max_length=200)

    @field_validator("shipping_address")
    @classmethod
    def _strip_address(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Shipping address must not be blank")
        return v


# Output schema representing the full order details
class OrderResponse(BaseModel):
    id: int
    principal_id: int
    status: OrderStatus
    total_cents: int
    shipping_address: str
    payment_reference: str
    created_at: datetime
    items: List[OrderItemOut]


# Schema for updating order status
class OrderStatusPatch(BaseModel):
    status: str


class TrackingPointOut(BaseModel):
    position: int
    name: str
    status: TrackingStatus
    updated_at: datetime

    class Config:
        from_attributes = True


class TrackingResponse(BaseModel):
    order_id: int
    order_status: OrderStatus
    points: List[TrackingPointOut]


# Schema for paginated order lists
class OrdersPage(BaseModel):
    items: List[OrderResponse]
    total: int
    page: int
    page_size: int
