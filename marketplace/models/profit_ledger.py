"""Profit ledger model - derived profit per order line."""
from sqlalchemy import Column, BigInteger, Numeric, DateTime, ForeignKey
from sqlalchemy.sql import func
from marketplace.database import Base, BigIntPK


class ProfitLedgerEntry(Base):
    """One row per checkout item (UNIQUE checkout_item_id); rewritten on every correction."""

    __tablename__ = 'profit_ledger_entry'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    checkout_item_id = Column(BigInteger, ForeignKey('checkout_item.id', ondelete='CASCADE'),
                              nullable=False, unique=True)
    total_price = Column(Numeric(12, 2), nullable=False)
    total_cost = Column(Numeric(12, 2), nullable=True)
    profit = Column(Numeric(12, 2), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<ProfitLedgerEntry(checkout_item_id={self.checkout_item_id}, profit={self.profit})>"
