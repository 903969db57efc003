from pydantic import BaseModel, Field
from typing import List, Optional

from storefront.database import DB_INT_MAX

MAX_LINE_QUANTITY = 10_000

# Request schema for setting a product quantity in the cart (<= 0 removes the line)
class CartUpsert(BaseModel):
    product_id: int = Field(ge=1, le=DB_INT_MAX)
    quantity: int = Field(ge=-MAX_LINE_QUANTITY, le=MAX_LINE_QUANTITY)

# Response schema for a single cart line, priced from the live catalog
class CartItemOut(BaseModel):
    product_id: int
    name: str
    quantity: int
    price_cents: int
    line_total_cents: int
    image_url: Optional[str] = None

# Response schema for the entire cart summary
class CartOut(BaseModel):
    items: List[CartItemOut]
    total_cents: int
