"""Payment Settings Service - payment methods and minimum order amount per company."""
import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Any, Iterable, List

from sqlalchemy.orm import Session

from marketplace.models import Company, CompanyPaymentSettings
from marketplace.exceptions import BusinessLogicError, NotFoundError
from marketplace.utils.validators import parse_flag

logger = logging.getLogger(__name__)

PAYMENT_METHODS = ('cod', 'bank', 'jazzcash', 'easypaisa')

# Method -> fields that must be filled before the method can be switched on
REQUIRED_FIELDS = {
    'bank': ('bank_name', 'account_title', 'account_number'),
    'jazzcash': ('jazzcash_number',),
    'easypaisa': ('easypaisa_number',),
}

TEXT_FIELDS = ('bank_name', 'account_title', 'account_number', 'jazzcash_number', 'easypaisa_number', 'policy_text')


def get_settings(session: Session, company_id: int):
    return session.query(CompanyPaymentSettings).filter(
        CompanyPaymentSettings.company_id == company_id
    ).first()


def enabled_methods_for(session: Session, company_id: int) -> List[str]:
    """Payment methods a company accepts. Without settings only cash on delivery."""
    settings = get_settings(session, company_id)
    if not settings:
        return ['cod']
    return settings.enabled_methods()


def ensure_payment_method_allowed(session: Session, company_ids: Iterable[int], method: str) -> str:
    """
    Check that every company in an order accepts the payment method.

    Returns the normalized method code; raises BusinessLogicError otherwise.
    """
    method = (method or '').strip().lower()
    if method not in PAYMENT_METHODS:
        raise BusinessLogicError(f'Invalid payment method: {method or "(empty)"}')

    for company_id in sorted({cid for cid in company_ids if cid is not None}):
        if method not in enabled_methods_for(session, company_id):
            company = session.query(Company).filter(Company.id == company_id).first()
            name = company.company_name if company else f'#{company_id}'
            raise BusinessLogicError(f'Payment method "{method}" is not enabled for {name}')

    return method


def minimum_order_amount_for(session: Session, company_id: int) -> Decimal:
    settings = get_settings(session, company_id)
    if not settings or settings.minimum_order_amount is None:
        return Decimal('0')
    return Decimal(str(settings.minimum_order_amount))


def save_settings(session: Session, company_id: int, data: Dict[str, Any]) -> CompanyPaymentSettings:
    """Create or update the payment settings of a company."""
    company = session.query(Company).filter(Company.id == company_id).first()
    if not company:
        raise NotFoundError('Company not found')

    settings = get_settings(session, company_id)
    if not settings:
        settings = CompanyPaymentSettings(company_id=company_id)
        session.add(settings)

    try:
        for field in TEXT_FIELDS:
            if field in data:
                value = data.get(field)
                setattr(settings, field, value.strip() if isinstance(value, str) and value.strip() else None)

        for method in PAYMENT_METHODS:
            flag = f'enable_{method}'
            if flag in data:
                setattr(settings, flag, parse_flag(data[flag], flag))
            elif getattr(settings, flag) is None:
                setattr(settings, flag, method == 'cod')

        for method, fields in REQUIRED_FIELDS.items():
            if getattr(settings, f'enable_{method}') and not all(getattr(settings, f) for f in fields):
                raise BusinessLogicError(f'Fill in {", ".join(fields)} before enabling {method}')

        if not settings.enabled_methods():
            raise BusinessLogicError('At least one payment method must be enabled')

        if 'minimum_order_amount' in data:
            try:
                amount = Decimal(str(data.get('minimum_order_amount') or 0))
            except (InvalidOperation, ValueError):
                raise BusinessLogicError('Minimum order amount must be a number')
            if amount < 0:
                raise BusinessLogicError('Minimum order amount cannot be negative')
            settings.minimum_order_amount = amount
        elif settings.minimum_order_amount is None:
            settings.minimum_order_amount = Decimal('0')

        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Saved payment settings for company {company_id}: {settings.enabled_methods()}")
    return settings


def serialize_settings(settings) -> Dict[str, Any]:
    if not settings:
        return {
            'enable_cod': True, 'enable_bank': False, 'enable_jazzcash': False, 'enable_easypaisa': False,
            'enabled_methods': ['cod'], 'minimum_order_amount': '0.00',
        }
    data = {field: getattr(settings, field) for field in TEXT_FIELDS}
    data.update({f'enable_{method}': getattr(settings, f'enable_{method}') for method in PAYMENT_METHODS})
    data['enabled_methods'] = settings.enabled_methods()
    data['minimum_order_amount'] = str(settings.minimum_order_amount)
    return data
