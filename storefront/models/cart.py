# storefront/models/cart.py
from sqlalchemy import Column, Integer, ForeignKey, DateTime, UniqueConstraint, CheckConstraint, func
from sqlalchemy.orm import relationship
from storefront.database import Base

# One product line in a principal's cart
class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, index=True)
    principal_id = Column(Integer, ForeignKey("principals.id"), index=True, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False)
    quantity = Column(Integer, CheckConstraint("quantity >= 1"), nullable=False, default=1)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    product = relationship("Product")

    __table_args__ = (
        # Upsert replaces the quantity of an existing line instead of adding a second one
        UniqueConstraint("principal_id", "product_id", name="uq_cartitem_principal_product"),
    )
