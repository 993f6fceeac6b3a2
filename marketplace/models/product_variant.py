"""Product Variant model."""
from sqlalchemy import Column, BigInteger, String, Integer, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from marketplace.database import Base, BigIntPK


class ProductVariant(Base):
    """
    Product Variant - a packing of a product with its own prices and inventory.

    customer_price is what customers pay, company_price what partners pay,
    dealer_price is informational for dealers.
    """

    __tablename__ = 'product_variant'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    product_id = Column(BigInteger, ForeignKey('product.id', ondelete='CASCADE'), nullable=False, index=True)
    packing_volume = Column(String(100), nullable=True)
    customer_price = Column(Numeric(10, 2), nullable=False)
    company_price = Column(Numeric(10, 2), nullable=True)
    dealer_price = Column(Numeric(10, 2), nullable=True)
    inventory = Column(Integer, nullable=False, default=0, server_default='0')

    # Relationships
    product = relationship('Product', back_populates='variants')

    def __repr__(self):
        return f"<ProductVariant(id={self.id}, product_id={self.product_id}, customer_price={self.customer_price})>"
