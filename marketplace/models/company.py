"""Company model."""
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from marketplace.database import Base, BigIntPK


class Company(Base):
    """Company (vendor) that lists products on the marketplace."""

    __tablename__ = 'company'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    company_name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    country = Column(String(50), nullable=False, default='Pakistan', server_default='Pakistan')
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    products = relationship('Product', back_populates='company')
    payment_settings = relationship('CompanyPaymentSettings', uselist=False, back_populates='company',
                                    cascade='all, delete-orphan')

    def __repr__(self):
        return f"<Company(id={self.id}, name='{self.company_name}')>"
