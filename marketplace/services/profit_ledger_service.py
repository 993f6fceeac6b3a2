"""Profit Ledger Service - derived profit per order line."""
import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from marketplace.database import upsert_values
from marketplace.models import ProfitLedgerEntry
from marketplace.services.discount_service import round_money
from marketplace.utils.clock import utcnow

logger = logging.getLogger(__name__)


def record_item_profit(session: Session, checkout_item_id: int, total_price, total_cost=None) -> Optional[Decimal]:
    """
    Write the ledger row of one order line (insert or overwrite).

    Idempotent: recording the same line twice leaves one row holding the
    latest figures. Does not commit; runs in the caller's transaction.
    Profit is only known once the line has a cost.
    """
    total_price = round_money(total_price)
    total_cost = round_money(total_cost) if total_cost is not None else None
    profit = total_price - total_cost if total_cost is not None else None

    upsert_values(session, ProfitLedgerEntry, {
        'checkout_item_id': checkout_item_id,
        'total_price': total_price,
        'total_cost': total_cost,
        'profit': profit,
        'updated_at': utcnow(),
    }, ['checkout_item_id'])

    logger.debug(f"Ledger item #{checkout_item_id}: price={total_price} cost={total_cost} profit={profit}")
    return profit


def get_entry(session: Session, checkout_item_id: int):
    return session.query(ProfitLedgerEntry).filter(
        ProfitLedgerEntry.checkout_item_id == checkout_item_id
    ).first()
