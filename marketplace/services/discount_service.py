"""
Discount Service - live discount resolution and discount administration.

Resolution precedence for a cart line (most specific first):
    1. active discount scoped to the variant
    2. active discount scoped to the product (no variant scope)
    3. active discount scoped to the owning company (no product/variant scope)
Within a level the highest percentage wins. Nothing is cached: every cart read
and every checkout resolves again against the current discount rows.
"""
import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional, Dict, Any, List

from sqlalchemy import or_
from sqlalchemy.orm import Session

from marketplace.models import Discount, DiscountStatus, Product, ProductVariant, Company
from marketplace.exceptions import BusinessLogicError, NotFoundError, ForbiddenError
from marketplace.utils.clock import utcnow, parse_datetime
from marketplace.utils.validators import parse_id, parse_id_list, parse_flag

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
HUNDRED = Decimal('100')


def round_money(value) -> Decimal:
    """Round to 2 decimals, half-up on the cent boundary."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_discounted_price(price, percentage) -> Decimal:
    """price * (1 - percentage/100), rounded half-up to the cent."""
    price = Decimal(str(price))
    percentage = Decimal(str(percentage))
    return round_money(price * (1 - percentage / HUNDRED))


def calculate_savings(price, percentage) -> Decimal:
    price = Decimal(str(price))
    return round_money(price - calculate_discounted_price(price, percentage))


def _active_filter(query, now: datetime):
    return query.filter(
        Discount.is_active.is_(True),
        Discount.start_date <= now,
        Discount.end_date >= now
    )


def _best_percentage(query) -> Optional[Decimal]:
    discount = query.order_by(Discount.percentage.desc(), Discount.id.asc()).first()
    return discount.percentage if discount else None


def resolve_discount(
    session: Session,
    product_id: int,
    variant_id: Optional[int],
    company_id: Optional[int] = None,
    now: Optional[datetime] = None
) -> Optional[Dict[str, Decimal]]:
    """
    Return {'percentage': Decimal} for the applicable discount, or None.

    Read-only: calling it twice with unchanged inputs yields the same result.
    """
    now = now or utcnow()

    if variant_id is not None:
        percentage = _best_percentage(
            _active_filter(session.query(Discount), now).filter(Discount.variant_id == variant_id)
        )
        if percentage is not None:
            return {'percentage': percentage}

    percentage = _best_percentage(
        _active_filter(session.query(Discount), now).filter(
            Discount.product_id == product_id,
            Discount.variant_id.is_(None)
        )
    )
    if percentage is not None:
        return {'percentage': percentage}

    if company_id is not None:
        percentage = _best_percentage(
            _active_filter(session.query(Discount), now).filter(
                Discount.company_id == company_id,
                Discount.product_id.is_(None),
                Discount.variant_id.is_(None)
            )
        )
        if percentage is not None:
            return {'percentage': percentage}

    return None


def apply_discount(price, discount: Optional[Dict[str, Decimal]]) -> Dict[str, Any]:
    """Merge a resolved discount into a unit price."""
    original_price = round_money(price)
    if not discount:
        return {
            'price': original_price,
            'original_price': original_price,
            'percentage': None,
            'savings': Decimal('0.00')
        }

    percentage = discount['percentage']
    return {
        'price': calculate_discounted_price(original_price, percentage),
        'original_price': original_price,
        'percentage': percentage,
        'savings': calculate_savings(original_price, percentage)
    }


def price_variant(session: Session, variant: ProductVariant, base_price, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Resolve the live discount for a variant and apply it to ``base_price``."""
    product = variant.product
    discount = resolve_discount(session, product.id, variant.id, product.company_id, now=now)
    return apply_discount(base_price, discount)


# =====================================================
# ADMINISTRATION
# =====================================================

def _parse_percentage(value) -> Decimal:
    try:
        percentage = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise BusinessLogicError('Percentage must be a number')
    if percentage <= 0:
        raise BusinessLogicError('Percentage must be greater than 0')
    if percentage > HUNDRED:
        raise BusinessLogicError('Percentage cannot exceed 100')
    return percentage.quantize(CENT, rounding=ROUND_HALF_UP)


def _parse_window(data: Dict[str, Any]):
    try:
        start_date = parse_datetime(data.get('start_date'))
        end_date = parse_datetime(data.get('end_date'))
    except ValueError as e:
        raise BusinessLogicError(f'Invalid date: {e}')
    if end_date <= start_date:
        raise BusinessLogicError('End date must be after start date')
    return start_date, end_date


def validate_discount_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate name, percentage and validity window of a discount payload."""
    name = (data.get('name') or '').strip()
    if not name:
        raise BusinessLogicError('Name is required')

    start_date, end_date = _parse_window(data)
    return {
        'name': name,
        'description': (data.get('description') or '').strip() or None,
        'percentage': _parse_percentage(data.get('percentage')),
        'start_date': start_date,
        'end_date': end_date,
        'is_active': parse_flag(data.get('is_active', True), 'is_active'),
    }


def _scope_targets(session: Session, data: Dict[str, Any], restrict_company_id: Optional[int]) -> List[Dict[str, Optional[int]]]:
    """
    Turn a scope request into the list of (variant, product, company) scope
    tags to create, one row each, exactly one tag set per row.
    """
    variant_id = parse_id(data['variant_id'], 'variant_id') if data.get('variant_id') not in (None, '') else None
    if data.get('product_ids'):
        product_ids = parse_id_list(data['product_ids'], 'product_ids')
    elif data.get('product_id') not in (None, ''):
        product_ids = [parse_id(data['product_id'], 'product_id')]
    else:
        product_ids = []
    company_id = parse_id(data['company_id'], 'company_id') if data.get('company_id') not in (None, '') else None
    apply_to_all = parse_flag(data.get('apply_to_all_company_products', False), 'apply_to_all_company_products')

    if restrict_company_id is not None:
        if company_id and company_id != restrict_company_id:
            raise ForbiddenError('You can only create discounts for your own company')
        # Company callers target their own company unless they name products
        company_id = None if (variant_id or product_ids) else restrict_company_id

    if apply_to_all and not company_id:
        raise BusinessLogicError('apply_to_all_company_products requires a company')
    if sum([bool(variant_id), bool(product_ids), bool(company_id)]) != 1:
        raise BusinessLogicError('A discount must target exactly one of: variant, products, company')

    if variant_id:
        variant = session.query(ProductVariant).filter(ProductVariant.id == variant_id).first()
        if not variant:
            raise NotFoundError('Variant not found')
        if restrict_company_id is not None and variant.product.company_id != restrict_company_id:
            raise ForbiddenError('You can only discount your own products')
        return [{'variant_id': variant.id, 'product_id': None, 'company_id': None}]

    if product_ids:
        products = session.query(Product).filter(Product.id.in_(product_ids)).all()
        if len(products) != len(set(product_ids)):
            raise NotFoundError('One or more products not found')
        if restrict_company_id is not None and any(p.company_id != restrict_company_id for p in products):
            raise ForbiddenError('You can only discount your own products')
        return [{'variant_id': None, 'product_id': p.id, 'company_id': None} for p in products]

    company = session.query(Company).filter(Company.id == company_id).first()
    if not company:
        raise NotFoundError('Company not found')

    if apply_to_all:
        products = session.query(Product).filter(Product.company_id == company.id).all()
        if not products:
            raise BusinessLogicError('Company has no products to discount')
        return [{'variant_id': None, 'product_id': p.id, 'company_id': None} for p in products]

    return [{'variant_id': None, 'product_id': None, 'company_id': company.id}]


def create_discounts(session: Session, data: Dict[str, Any], restrict_company_id: Optional[int] = None) -> List[Discount]:
    """
    Create one discount row per scope target.

    Supports a single variant, a single product, several products, a whole
    company, or every product of a company (apply_to_all_company_products).
    When restrict_company_id is given (company callers) every target must
    belong to that company.
    """
    fields = validate_discount_payload(data)
    try:
        targets = _scope_targets(session, data, restrict_company_id)
        discounts = []
        for target in targets:
            discount = Discount(**fields, **target)
            session.add(discount)
            discounts.append(discount)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Created {len(discounts)} discount(s) '{fields['name']}' at {fields['percentage']}%")
    return discounts


def update_discount(session: Session, discount_id: int, data: Dict[str, Any]) -> Discount:
    """Update name, percentage, window or activation. The scope of an existing discount is fixed."""
    discount = session.query(Discount).filter(Discount.id == discount_id).first()
    if not discount:
        raise NotFoundError('Discount not found')

    if any(key in data for key in ('variant_id', 'product_id', 'product_ids', 'company_id')):
        raise BusinessLogicError('The scope of a discount cannot be changed; create a new one instead')

    try:
        if 'name' in data:
            name = (data.get('name') or '').strip()
            if not name:
                raise BusinessLogicError('Name is required')
            discount.name = name
        if 'description' in data:
            discount.description = (data.get('description') or '').strip() or None
        if 'percentage' in data:
            discount.percentage = _parse_percentage(data['percentage'])
        if 'start_date' in data or 'end_date' in data:
            window = {
                'start_date': data.get('start_date', discount.start_date),
                'end_date': data.get('end_date', discount.end_date),
            }
            discount.start_date, discount.end_date = _parse_window(window)
        if 'is_active' in data:
            discount.is_active = parse_flag(data['is_active'], 'is_active')
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Updated discount #{discount.id}")
    return discount


def delete_discount(session: Session, discount_id: int) -> None:
    discount = session.query(Discount).filter(Discount.id == discount_id).first()
    if not discount:
        raise NotFoundError('Discount not found')
    session.delete(discount)
    session.commit()
    logger.info(f"Deleted discount #{discount_id}")


def list_discounts(
    session: Session,
    status: Optional[str] = None,
    company_id: Optional[int] = None,
    product_id: Optional[int] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Paginated discount listing filtered by status, company, product or name."""
    now = now or utcnow()
    query = session.query(Discount)

    if status and status != 'all':
        if status == DiscountStatus.ACTIVE:
            query = _active_filter(query, now)
        elif status == DiscountStatus.SCHEDULED:
            query = query.filter(Discount.is_active.is_(True), Discount.start_date > now)
        elif status == DiscountStatus.EXPIRED:
            query = query.filter(Discount.end_date < now)
        elif status == DiscountStatus.DISABLED:
            query = query.filter(Discount.is_active.is_(False))
        else:
            raise BusinessLogicError(f'Unknown discount status filter: {status}')

    if company_id:
        company_products = session.query(Product.id).filter(Product.company_id == company_id)
        company_variants = session.query(ProductVariant.id).join(Product).filter(Product.company_id == company_id)
        query = query.filter(or_(
            Discount.company_id == company_id,
            Discount.product_id.in_(company_products),
            Discount.variant_id.in_(company_variants)
        ))

    if product_id:
        product_variants = session.query(ProductVariant.id).filter(ProductVariant.product_id == product_id)
        query = query.filter(or_(
            Discount.product_id == product_id,
            Discount.variant_id.in_(product_variants)
        ))

    if search:
        query = query.filter(Discount.name.ilike(f'%{search[:100]}%'))

    page = max(int(page), 1)
    limit = min(max(int(limit), 1), 100)
    total = query.count()
    discounts = (query.order_by(Discount.created_at.desc(), Discount.id.desc())
                 .offset((page - 1) * limit)
                 .limit(limit)
                 .all())

    return {
        'data': [serialize_discount(d, now) for d in discounts],
        'total': total,
        'page': page,
        'limit': limit,
        'total_pages': (total + limit - 1) // limit
    }


def serialize_discount(discount: Discount, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    return {
        'id': discount.id,
        'name': discount.name,
        'description': discount.description,
        'percentage': str(discount.percentage),
        'start_date': discount.start_date.isoformat(),
        'end_date': discount.end_date.isoformat(),
        'is_active': discount.is_active,
        'scope': discount.scope,
        'variant_id': discount.variant_id,
        'product_id': discount.product_id,
        'company_id': discount.company_id,
        'status': discount.status_at(now),
    }
