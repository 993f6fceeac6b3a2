"""Catalog Service - variant pricing and bulk catalog maintenance."""
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional, Dict, Any, List

from sqlalchemy.orm import Session

from marketplace.database import run_in_transaction
from marketplace.models import Product, ProductVariant
from marketplace.exceptions import BusinessLogicError, NotFoundError, ForbiddenError
from marketplace.services.discount_service import round_money

logger = logging.getLogger(__name__)

PRICE_FIELDS = ('customer_price', 'company_price', 'dealer_price')
UPDATE_TYPES = ('exact', 'percentage', 'addition', 'subtraction')


def _parse_price(value, field: str, nullable: bool) -> Optional[Decimal]:
    if value is None or value == '':
        if nullable:
            return None
        raise BusinessLogicError(f'{field} is required')
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise BusinessLogicError(f'{field} must be a number')
    if not price.is_finite() or price < 0:
        raise BusinessLogicError(f'{field} cannot be negative')
    return round_money(price)


def update_variant_pricing(session: Session, company_id: int, variant_id: int, data: Dict[str, Any]) -> ProductVariant:
    """
    Update prices, inventory or packing of a variant.

    Ownership is checked before anything is written: the variant's product
    must belong to the calling company.
    """
    variant = session.query(ProductVariant).filter(ProductVariant.id == variant_id).first()
    if not variant:
        raise NotFoundError('Variant not found')
    if variant.product.company_id != company_id:
        raise ForbiddenError('You can only update variants of your own products')

    try:
        for field in PRICE_FIELDS:
            if field in data:
                setattr(variant, field, _parse_price(data[field], field, nullable=field != 'customer_price'))

        if 'inventory' in data:
            inventory = data['inventory']
            if isinstance(inventory, bool) or not isinstance(inventory, int) or inventory < 0:
                raise BusinessLogicError('inventory must be a non-negative integer')
            variant.inventory = inventory

        if 'packing_volume' in data:
            variant.packing_volume = (data.get('packing_volume') or '').strip() or None

        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Company {company_id} updated variant #{variant_id}")
    return variant


def set_all_in_stock(session: Session, inventory: int = 100) -> Dict[str, int]:
    """Mark every product active and in stock and set every variant's inventory. One transaction."""
    if isinstance(inventory, bool) or not isinstance(inventory, int) or inventory < 0:
        raise BusinessLogicError('inventory must be a non-negative integer')

    def work(session):
        products = session.query(Product).update(
            {Product.out_of_stock: False, Product.active: True}, synchronize_session=False
        )
        variants = session.query(ProductVariant).update(
            {ProductVariant.inventory: inventory}, synchronize_session=False
        )
        return {'products_updated': products, 'variants_updated': variants}

    counts = run_in_transaction(session, work, attempts=1)
    logger.info(f"Set all in stock: {counts['products_updated']} products, "
                f"{counts['variants_updated']} variants (inventory={inventory})")
    return counts


def calculate_new_price(current: Decimal, update_type: str, value: Decimal) -> Decimal:
    """Apply one bulk update rule to a price. Results never go below 0."""
    if update_type == 'exact':
        new_price = value
    elif update_type == 'percentage':
        new_price = current + current * value / Decimal('100')
    elif update_type == 'addition':
        new_price = current + value
    elif update_type == 'subtraction':
        new_price = current - value
    else:
        raise BusinessLogicError(f'Invalid update type: {update_type}')
    return round_money(max(new_price, Decimal('0')))


def bulk_update_prices(
    session: Session,
    price_type: str,
    update_type: str,
    value,
    company_ids: Optional[List[int]] = None,
    partner_ids: Optional[List[int]] = None,
    product_ids: Optional[List[int]] = None,
    update_all: bool = False
) -> Dict[str, Any]:
    """
    Update one price field across many variants in one transaction.

    Selection is every variant (update_all) or the variants of products
    matching all of the given company / partner / product filters. Variants
    with no value in the price field are left empty.
    """
    if price_type not in PRICE_FIELDS:
        raise BusinessLogicError(f'Invalid price type: {price_type}')
    if update_type not in UPDATE_TYPES:
        raise BusinessLogicError(f'Invalid update type: {update_type}')
    if isinstance(value, bool):
        raise BusinessLogicError('value must be a number')
    try:
        value = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise BusinessLogicError('value must be a number')
    if not value.is_finite():
        raise BusinessLogicError('value must be a number')
    if update_type == 'exact' and value < 0:
        raise BusinessLogicError('Price cannot be negative')

    if not update_all and not (company_ids or partner_ids or product_ids):
        raise BusinessLogicError('Must select at least one company, partner, or product')

    def work(session):
        query = session.query(ProductVariant).join(Product, ProductVariant.product_id == Product.id)
        if not update_all:
            if company_ids:
                query = query.filter(Product.company_id.in_(company_ids))
            if partner_ids:
                query = query.filter(Product.partner_id.in_(partner_ids))
            if product_ids:
                query = query.filter(Product.id.in_(product_ids))

        variants = query.order_by(ProductVariant.id).with_for_update().all()
        if not variants:
            raise NotFoundError('No products found matching the criteria')

        companies, partners = set(), set()
        for variant in variants:
            current = getattr(variant, price_type)
            if current is not None:
                setattr(variant, price_type, calculate_new_price(Decimal(current), update_type, value))
            product = variant.product
            if product.company:
                companies.add(product.company.company_name)
            if product.partner:
                partners.add(product.partner.partner_name)

        return {
            'total_variants_updated': len(variants),
            'companies_affected': sorted(companies),
            'partners_affected': sorted(partners),
            'price_type': price_type,
            'update_type': update_type,
            'value': str(value),
        }

    summary = run_in_transaction(session, work, attempts=1)
    logger.info(f"Bulk price update: {summary['total_variants_updated']} variants, "
                f"{price_type} {update_type} {value}")
    return summary
