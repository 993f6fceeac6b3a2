"""Company payment settings model."""
from sqlalchemy import Column, BigInteger, String, Text, Boolean, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from marketplace.database import Base, BigIntPK


class CompanyPaymentSettings(Base):
    """
    Payment methods a company accepts and its minimum order amount.

    One row per company (UNIQUE company_id). A company without a row only
    accepts cash on delivery.
    """

    __tablename__ = 'company_payment_settings'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    company_id = Column(BigInteger, ForeignKey('company.id', ondelete='CASCADE'), nullable=False, unique=True)

    bank_name = Column(String(120), nullable=True)
    account_title = Column(String(120), nullable=True)
    account_number = Column(String(60), nullable=True)
    jazzcash_number = Column(String(30), nullable=True)
    easypaisa_number = Column(String(30), nullable=True)

    enable_cod = Column(Boolean, nullable=False, default=True)
    enable_bank = Column(Boolean, nullable=False, default=False)
    enable_jazzcash = Column(Boolean, nullable=False, default=False)
    enable_easypaisa = Column(Boolean, nullable=False, default=False)

    minimum_order_amount = Column(Numeric(10, 2), nullable=False, default=0, server_default='0')
    policy_text = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    company = relationship('Company', back_populates='payment_settings')

    def enabled_methods(self):
        """Return the payment method codes this company has switched on."""
        flags = (
            ('cod', self.enable_cod),
            ('bank', self.enable_bank),
            ('jazzcash', self.enable_jazzcash),
            ('easypaisa', self.enable_easypaisa),
        )
        return [code for code, enabled in flags if enabled]

    def __repr__(self):
        return f"<CompanyPaymentSettings(company_id={self.company_id}, methods={self.enabled_methods()})>"
