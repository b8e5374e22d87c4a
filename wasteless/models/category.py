"""
Category and pricing rule models
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from wasteless.database import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name_en = Column(String, unique=True, nullable=False, index=True)  # e.g. "vegetables"
    name_he = Column(String, nullable=False)                           # e.g. "ירקות"
    icon = Column(String, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class PricingRule(Base):
    """One step of a category's discount staircase"""
    __tablename__ = "pricing_rules"

    id = Column(Integer, primary_key=True, index=True)
    category = Column(String, nullable=False, index=True)  # Category.name_en
    days_to_expiry = Column(Integer, nullable=False)       # threshold
    discount_percent = Column(Integer, nullable=False)     # 0-100
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("category", "days_to_expiry", name="uq_pricing_rule_category_days"),
    )
