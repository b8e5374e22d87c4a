"""
Product and price history models
"""
from sqlalchemy import Column, Integer, String, Date, DateTime, Numeric, ForeignKey, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from wasteless.database import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name_he = Column(String, nullable=False)
    name_en = Column(String, nullable=False, index=True)

    # Category code is the join key for pricing rules; Hebrew label is denormalized
    category = Column(String, nullable=False, index=True)
    category_he = Column(String, nullable=False)

    # Pricing (current_price and discount_percent are derived by the pricing engine)
    base_price = Column(Numeric(10, 2), nullable=False)
    current_price = Column(Numeric(10, 2), nullable=False)
    discount_percent = Column(Integer, nullable=False, default=0)

    quantity = Column(Integer, nullable=False, default=0)
    unit = Column(String, nullable=False)
    expiry_date = Column(Date, nullable=False, index=True)

    batch_number = Column(String, nullable=True)
    catalog_number = Column(String, nullable=True)
    image_url = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    history = relationship(
        "PriceHistory",
        back_populates="product",
        cascade="all, delete-orphan",
    )


class PriceHistory(Base):
    """Immutable audit row for one price/discount transition"""
    __tablename__ = "price_history"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    old_price = Column(Numeric(10, 2), nullable=False)
    new_price = Column(Numeric(10, 2), nullable=False)
    old_discount = Column(Integer, nullable=False)
    new_discount = Column(Integer, nullable=False)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    product = relationship("Product", back_populates="history")
