"""Partner Order models - orders a partner places with one company."""
from sqlalchemy import Column, BigInteger, Integer, String, Text, Numeric, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from marketplace.database import Base, BigIntPK
from marketplace.models.checkout import OrderStatus, order_status_type


class PartnerOrder(Base):
    """Partner Order. A partner checkout creates one per company in the partner cart."""

    __tablename__ = 'partner_order'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    partner_id = Column(BigInteger, ForeignKey('partner.id'), nullable=False, index=True)
    company_id = Column(BigInteger, ForeignKey('company.id'), nullable=False, index=True)

    city = Column(String(120), nullable=False)
    province = Column(String(120), nullable=True)
    address = Column(Text, nullable=False)
    shipping_address = Column(String(120), nullable=False)
    payment_method = Column(String(20), nullable=False)

    total = Column(Numeric(12, 2), nullable=False)
    status = Column(order_status_type('partner_order_status'), nullable=False, default=OrderStatus.PENDING)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    partner = relationship('Partner')
    company = relationship('Company')
    items = relationship('PartnerOrderItem', back_populates='order', cascade='all, delete-orphan',
                         order_by='PartnerOrderItem.id')

    def __repr__(self):
        return f"<PartnerOrder(id={self.id}, partner_id={self.partner_id}, company_id={self.company_id}, total={self.total})>"


class PartnerOrderItem(Base):
    """Partner Order line with its company-price snapshot."""

    __tablename__ = 'partner_order_item'
    __table_args__ = (
        CheckConstraint('quantity >= 1', name='ck_partner_order_item_quantity'),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    order_id = Column(BigInteger, ForeignKey('partner_order.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(BigInteger, ForeignKey('product.id'), nullable=False)
    variant_id = Column(BigInteger, ForeignKey('product_variant.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    original_price = Column(Numeric(12, 2), nullable=False)
    discount_percentage = Column(Numeric(5, 2), nullable=True)

    # Relationships
    order = relationship('PartnerOrder', back_populates='items')
    product = relationship('Product')
    variant = relationship('ProductVariant')

    def __repr__(self):
        return f"<PartnerOrderItem(id={self.id}, order_id={self.order_id}, quantity={self.quantity})>"
