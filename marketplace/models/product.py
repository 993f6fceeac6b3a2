"""Product model."""
from sqlalchemy import Column, BigInteger, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from marketplace.database import Base, BigIntPK


class Product(Base):
    """Product model. Listed by a company or a partner; priced per variant."""

    __tablename__ = 'product'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    company_id = Column(BigInteger, ForeignKey('company.id'), nullable=True, index=True)
    partner_id = Column(BigInteger, ForeignKey('partner.id'), nullable=True, index=True)
    active = Column(Boolean, nullable=False, default=True)
    out_of_stock = Column(Boolean, nullable=False, default=False, server_default='false')
    image_url = Column(String(500), nullable=True)
    image_alt = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    company = relationship('Company', back_populates='products')
    partner = relationship('Partner', back_populates='products')
    variants = relationship('ProductVariant', back_populates='product', cascade='all, delete-orphan',
                            order_by='ProductVariant.id')

    @property
    def is_orderable(self):
        """A product can be carted and ordered only while active and in stock."""
        return bool(self.active) and not self.out_of_stock

    @property
    def image(self):
        if not self.image_url:
            return None
        return {'url': self.image_url, 'alt': self.image_alt or self.name}

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}')>"
