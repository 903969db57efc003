# storefront/schemas/product.py
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List

from storefront.database import DB_INT_MAX


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Schema for creating a new product
class ProductCreate(ORMBase):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    price_cents: int = Field(ge=0, le=DB_INT_MAX)
    stock_count: int = Field(ge=0, le=DB_INT_MAX)
    image_url: Optional[str] = None


# Schema for partial product updates
class ProductEditRequest(ORMBase):
    """Schema for PATCH requests - all fields optional, but name, price and stock may not be cleared."""
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    price_cents: Optional[int] = Field(None, ge=0, le=DB_INT_MAX)
    stock_count: Optional[int] = Field(None, ge=0, le=DB_INT_MAX)
    image_url: Optional[str] = None

    # Omitting a field leaves it alone; an explicit null would hit a NOT NULL column
    @field_validator("name", "price_cents", "stock_count")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("Field may not be null")
        return v


class ProductOut(ProductCreate):
    id: int


# Paginated response for product listings
class ProductListPage(ORMBase):
    items: List[ProductOut]
    total: int
    page: int
    page_size: int
