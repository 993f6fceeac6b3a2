"""Discount model."""
from sqlalchemy import Column, BigInteger, String, Text, Boolean, Numeric, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from marketplace.database import Base, BigIntPK


class DiscountScope:
    """Catalog level a discount applies to."""
    VARIANT = 'variant'
    PRODUCT = 'product'
    COMPANY = 'company'


class DiscountStatus:
    """Display status of a discount at a point in time."""
    ACTIVE = 'active'
    SCHEDULED = 'scheduled'
    EXPIRED = 'expired'
    DISABLED = 'disabled'


class Discount(Base):
    """
    Percentage discount valid inside [start_date, end_date].

    Exactly one of variant_id / product_id / company_id is set. The store does
    not enforce it; discount_service validates it on every write.
    """

    __tablename__ = 'discount'
    __table_args__ = (
        Index('ix_discount_variant_active', 'variant_id', 'is_active'),
        Index('ix_discount_product_active', 'product_id', 'is_active'),
        Index('ix_discount_company_active', 'company_id', 'is_active'),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    percentage = Column(Numeric(5, 2), nullable=False)
    start_date = Column(DateTime, nullable=False)  # naive UTC
    end_date = Column(DateTime, nullable=False)  # naive UTC
    is_active = Column(Boolean, nullable=False, default=True)

    variant_id = Column(BigInteger, ForeignKey('product_variant.id', ondelete='CASCADE'), nullable=True)
    product_id = Column(BigInteger, ForeignKey('product.id', ondelete='CASCADE'), nullable=True)
    company_id = Column(BigInteger, ForeignKey('company.id', ondelete='CASCADE'), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    variant = relationship('ProductVariant')
    product = relationship('Product')
    company = relationship('Company')

    @property
    def scope(self):
        if self.variant_id is not None:
            return DiscountScope.VARIANT
        if self.product_id is not None:
            return DiscountScope.PRODUCT
        if self.company_id is not None:
            return DiscountScope.COMPANY
        return None

    def is_active_at(self, now):
        return bool(self.is_active) and self.start_date <= now <= self.end_date

    def status_at(self, now):
        if not self.is_active:
            return DiscountStatus.DISABLED
        if now < self.start_date:
            return DiscountStatus.SCHEDULED
        if now > self.end_date:
            return DiscountStatus.EXPIRED
        return DiscountStatus.ACTIVE

    def __repr__(self):
        return f"<Discount(id={self.id}, scope={self.scope}, percentage={self.percentage})>"
