"""Checkout Item model."""
from sqlalchemy import Column, BigInteger, Integer, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from marketplace.database import Base, BigIntPK


class CheckoutItem(Base):
    """
    Checkout Item (order line).

    References either a product+variant or an animal, never both. price is a
    snapshot taken at order time and is not linked to live variant pricing.
    """

    __tablename__ = 'checkout_item'
    __table_args__ = (
        CheckConstraint(
            '(product_id IS NOT NULL AND variant_id IS NOT NULL AND animal_id IS NULL)'
            ' OR (animal_id IS NOT NULL AND product_id IS NULL AND variant_id IS NULL)',
            name='ck_checkout_item_single_target'
        ),
        CheckConstraint('quantity >= 1', name='ck_checkout_item_quantity'),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    checkout_id = Column(BigInteger, ForeignKey('checkout.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(BigInteger, ForeignKey('product.id'), nullable=True)
    variant_id = Column(BigInteger, ForeignKey('product_variant.id'), nullable=True)
    animal_id = Column(BigInteger, ForeignKey('animal.id'), nullable=True)

    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    original_price = Column(Numeric(12, 2), nullable=True)
    discount_percentage = Column(Numeric(5, 2), nullable=True)
    purchased_price = Column(Numeric(12, 2), nullable=True)  # cost basis, set by vendor/admin

    # Relationships
    checkout = relationship('Checkout', back_populates='items')
    product = relationship('Product')
    variant = relationship('ProductVariant')
    animal = relationship('Animal')

    @property
    def line_total(self):
        return self.price * self.quantity

    def __repr__(self):
        return f"<CheckoutItem(id={self.id}, checkout_id={self.checkout_id}, quantity={self.quantity}, price={self.price})>"
