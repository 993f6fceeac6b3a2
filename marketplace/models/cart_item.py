"""Cart line models - customer product cart, customer animal cart, partner cart."""
from sqlalchemy import Column, BigInteger, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from marketplace.database import Base, BigIntPK


class CartItem(Base):
    """Customer product cart line. One row per (user, product, variant)."""

    __tablename__ = 'cart_item'
    __table_args__ = (
        UniqueConstraint('user_id', 'product_id', 'variant_id', name='uq_cart_item_user_product_variant'),
        CheckConstraint('quantity >= 1', name='ck_cart_item_quantity'),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey('app_user.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(BigInteger, ForeignKey('product.id', ondelete='CASCADE'), nullable=False)
    variant_id = Column(BigInteger, ForeignKey('product_variant.id', ondelete='CASCADE'), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    product = relationship('Product')
    variant = relationship('ProductVariant')

    def __repr__(self):
        return f"<CartItem(id={self.id}, user_id={self.user_id}, variant_id={self.variant_id}, quantity={self.quantity})>"


class AnimalCartItem(Base):
    """Customer animal cart line. One row per (user, animal)."""

    __tablename__ = 'animal_cart_item'
    __table_args__ = (
        UniqueConstraint('user_id', 'animal_id', name='uq_animal_cart_item_user_animal'),
        CheckConstraint('quantity >= 1', name='ck_animal_cart_item_quantity'),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey('app_user.id', ondelete='CASCADE'), nullable=False, index=True)
    animal_id = Column(BigInteger, ForeignKey('animal.id', ondelete='CASCADE'), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    animal = relationship('Animal')

    def __repr__(self):
        return f"<AnimalCartItem(id={self.id}, user_id={self.user_id}, animal_id={self.animal_id}, quantity={self.quantity})>"


class PartnerCartItem(Base):
    """Partner product cart line. One row per (partner, product, variant)."""

    __tablename__ = 'partner_cart_item'
    __table_args__ = (
        UniqueConstraint('partner_id', 'product_id', 'variant_id', name='uq_partner_cart_item_partner_product_variant'),
        CheckConstraint('quantity >= 1', name='ck_partner_cart_item_quantity'),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    partner_id = Column(BigInteger, ForeignKey('partner.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(BigInteger, ForeignKey('product.id', ondelete='CASCADE'), nullable=False)
    variant_id = Column(BigInteger, ForeignKey('product_variant.id', ondelete='CASCADE'), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    product = relationship('Product')
    variant = relationship('ProductVariant')

    def __repr__(self):
        return f"<PartnerCartItem(id={self.id}, partner_id={self.partner_id}, variant_id={self.variant_id}, quantity={self.quantity})>"
