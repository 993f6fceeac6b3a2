"""
Cart Service - persistent carts for customers (products, animals) and partners.

All three carts share one implementation parameterized by a CartKind: the cart
model, the owner column and owner model, the catalog key columns of a line and
how a line is priced. Adding an item is a single atomic upsert that creates the
line with quantity 1 or increments it by exactly 1, so concurrent adds of the
same item never produce duplicate rows or lose an increment.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional, Dict, Any, List

from sqlalchemy.orm import Session

from marketplace.database import upsert_increment
from marketplace.models import (
    AppUser, Partner, Product, ProductVariant, Animal, Company,
    CartItem, AnimalCartItem, PartnerCartItem
)
from marketplace.exceptions import BusinessLogicError, NotFoundError, NotOrderableError
from marketplace.services.discount_service import resolve_discount, apply_discount, round_money
from marketplace.utils.clock import utcnow
from marketplace.utils.validators import parse_id

logger = logging.getLogger(__name__)


def customer_unit_price(variant: ProductVariant) -> Decimal:
    return variant.customer_price


def partner_unit_price(variant: ProductVariant) -> Decimal:
    """Partners buy at company price; variants without one fall back to customer price."""
    if variant.company_price is not None:
        return variant.company_price
    return variant.customer_price


class CartKind:
    """Describes one cart: where its lines live, who owns them and how they are priced."""

    def __init__(self, name, model, owner_model, owner_column, item_columns, unit_price=None,
                 company_products_only=False):
        self.name = name
        self.model = model
        self.owner_model = owner_model
        self.owner_column = owner_column
        self.item_columns = item_columns
        self.unit_price = unit_price
        self.company_products_only = company_products_only

    @property
    def is_product_cart(self):
        return 'variant_id' in self.item_columns

    @property
    def key_columns(self):
        return [self.owner_column] + list(self.item_columns)

    def owner_filter(self, owner_id):
        return getattr(self.model, self.owner_column) == owner_id

    def __repr__(self):
        return f"<CartKind({self.name})>"


CUSTOMER_CART = CartKind('cart', CartItem, AppUser, 'user_id', ('product_id', 'variant_id'), customer_unit_price)
ANIMAL_CART = CartKind('animal_cart', AnimalCartItem, AppUser, 'user_id', ('animal_id',))
PARTNER_CART = CartKind('partner_cart', PartnerCartItem, Partner, 'partner_id', ('product_id', 'variant_id'),
                        partner_unit_price, company_products_only=True)


def parse_quantity(value) -> int:
    """Accept an integer (or an integer string) >= 1; anything else is rejected."""
    if isinstance(value, bool):
        raise BusinessLogicError('Quantity must be an integer of at least 1')
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value < 1:
        raise BusinessLogicError('Quantity must be an integer of at least 1')
    return value


def load_orderable_variant(session: Session, product_id: int, variant_id: int):
    """
    Load a product and one of its variants, checking the variant belongs to
    the product and the product can currently be ordered.
    """
    product = session.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError('Product not found')

    variant = session.query(ProductVariant).filter(
        ProductVariant.id == variant_id,
        ProductVariant.product_id == product_id
    ).first()
    if not variant:
        raise NotFoundError('Variant not found')

    if not product.is_orderable:
        raise NotOrderableError(product.name)

    return product, variant


def load_orderable_animal(session: Session, animal_id: int) -> Animal:
    animal = session.query(Animal).filter(Animal.id == animal_id).first()
    if not animal:
        raise NotFoundError('Animal not found')
    if not animal.is_orderable:
        raise NotOrderableError(animal.title)
    return animal


def add_item(session: Session, kind: CartKind, owner_id: int, item_key: Dict[str, Any]) -> None:
    """
    Add one unit of an item to the owner's cart.

    Any quantity in the request is ignored: a new line starts at 1 and an
    existing line is incremented by exactly 1.
    """
    owner = session.query(kind.owner_model).filter(kind.owner_model.id == owner_id).first()
    if not owner:
        raise NotFoundError('User not found')

    key = {column: parse_id(item_key.get(column), column) for column in kind.item_columns}

    if kind.is_product_cart:
        product, _ = load_orderable_variant(session, key['product_id'], key['variant_id'])
        # Partner orders are split per company, so a line must have a seller company
        if kind.company_products_only and product.company_id is None:
            raise BusinessLogicError(f'Product "{product.name}" is not sold by a company')
    else:
        load_orderable_animal(session, key['animal_id'])

    try:
        upsert_increment(session, kind.model, {kind.owner_column: owner_id, **key}, kind.key_columns)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"{kind.name}: owner {owner_id} added {key}")


def update_item(session: Session, kind: CartKind, owner_id: int, cart_item_id, quantity):
    """Set the quantity of one of the owner's cart lines."""
    quantity = parse_quantity(quantity)
    cart_item_id = parse_id(cart_item_id, 'id')

    line = session.query(kind.model).filter(
        kind.model.id == cart_item_id,
        kind.owner_filter(owner_id)
    ).first()
    if not line:
        raise NotFoundError('Cart item not found')

    line.quantity = quantity
    session.commit()

    logger.info(f"{kind.name}: owner {owner_id} set line #{cart_item_id} to quantity {quantity}")
    return line


def remove_item(session: Session, kind: CartKind, owner_id: int, cart_item_id) -> bool:
    """
    Remove one of the owner's cart lines.

    Idempotent: an absent line, or one owned by someone else, is left alone
    and reported as not removed.
    """
    cart_item_id = parse_id(cart_item_id, 'id')

    deleted = session.query(kind.model).filter(
        kind.model.id == cart_item_id,
        kind.owner_filter(owner_id)
    ).delete(synchronize_session=False)
    session.commit()

    if deleted:
        logger.info(f"{kind.name}: owner {owner_id} removed line #{cart_item_id}")
    return deleted > 0


def count_items(session: Session, kind: CartKind, owner_id: int) -> int:
    """Number of lines in the owner's cart (cart badge)."""
    return session.query(kind.model).filter(kind.owner_filter(owner_id)).count()


def clear_items(session: Session, kind: CartKind, owner_id: int) -> int:
    """Delete every line of the owner's cart. Does not commit; runs in the caller's transaction."""
    return session.query(kind.model).filter(kind.owner_filter(owner_id)).delete(synchronize_session=False)


def _product_line(session: Session, kind: CartKind, line, now: datetime) -> Dict[str, Any]:
    product = line.product
    variant = line.variant
    discount = resolve_discount(session, product.id, variant.id, product.company_id, now=now)
    priced = apply_discount(kind.unit_price(variant), discount)

    company = product.company
    return {
        'id': line.id,
        'quantity': line.quantity,
        'product': {
            'id': product.id,
            'name': product.name,
            'image': product.image,
            'is_orderable': product.is_orderable,
            'company': {'id': company.id, 'company_name': company.company_name} if company else None,
        },
        'variant': {
            'id': variant.id,
            'packing_volume': variant.packing_volume,
        },
        'company_id': product.company_id,
        'unit_price': priced['price'],
        'original_price': priced['original_price'],
        'discount_percentage': priced['percentage'],
        'savings': priced['savings'],
        'line_total': round_money(priced['price'] * line.quantity),
        'created_at': line.created_at.isoformat() if line.created_at else None,
    }


def _animal_line(line) -> Dict[str, Any]:
    animal = line.animal
    price = round_money(animal.total_price)
    return {
        'id': line.id,
        'quantity': line.quantity,
        'animal': {
            'id': animal.id,
            'title': animal.title,
            'specie': animal.specie,
            'breed': animal.breed,
            'image_url': animal.image_url,
            'is_orderable': animal.is_orderable,
        },
        'unit_price': price,
        'original_price': price,
        'discount_percentage': None,
        'savings': Decimal('0.00'),
        'line_total': round_money(price * line.quantity),
        'created_at': line.created_at.isoformat() if line.created_at else None,
    }


def list_items(
    session: Session,
    kind: CartKind,
    owner_id: int,
    now: Optional[datetime] = None,
    country: Optional[str] = None
) -> List[Dict[str, Any]]:
    """
    Cart lines joined with live catalog data and the live discount, newest first.

    Prices are never stored on a cart line; every read re-prices against the
    current variant and discount rows.
    """
    now = now or utcnow()
    query = session.query(kind.model).filter(kind.owner_filter(owner_id))

    if country and country != 'all' and kind.is_product_cart:
        query = query.join(Product, kind.model.product_id == Product.id).join(
            Company, Product.company_id == Company.id
        ).filter(Company.country == country)

    lines = query.order_by(kind.model.created_at.desc(), kind.model.id.desc()).all()

    if kind.is_product_cart:
        return [_product_line(session, kind, line, now) for line in lines]
    return [_animal_line(line) for line in lines]


def cart_totals(lines: List[Dict[str, Any]]) -> Dict[str, Decimal]:
    subtotal = sum((line['line_total'] for line in lines), Decimal('0.00'))
    savings = sum((line['savings'] * line['quantity'] for line in lines), Decimal('0.00'))
    return {
        'subtotal': round_money(subtotal),
        'savings': round_money(savings),
        'item_count': sum(line['quantity'] for line in lines),
    }
