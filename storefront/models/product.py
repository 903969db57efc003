# storefront/models/product.py
from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint, func
from storefront.database import Base

# Catalog entry. Price and stock are edited by operators;
# checkout is the only code path that decrements stock_count.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(String)
    category = Column(String)

    # Minor currency units
    price_cents = Column(Integer, CheckConstraint("price_cents >= 0"), nullable=False)
    stock_count = Column(Integer, CheckConstraint("stock_count >= 0"), nullable=False, default=0)

    image_url = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
