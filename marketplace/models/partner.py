"""Partner model - veterinarians, sales agents, farmers."""
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from marketplace.database import Base, BigIntPK


class Partner(Base):
    """Partner who buys from companies at company prices."""

    __tablename__ = 'partner'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    partner_name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    partner_type = Column(String(50), nullable=True)  # veterinarian, sales, farmer, ...
    country = Column(String(50), nullable=False, default='Pakistan', server_default='Pakistan')
    referral_code = Column(String(20), nullable=True, unique=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    products = relationship('Product', back_populates='partner')

    def __repr__(self):
        return f"<Partner(id={self.id}, name='{self.partner_name}', type='{self.partner_type}')>"
