"""
Checkout Service - converts carts into orders.

A customer checkout reads both customer carts, snapshots the live discounted
price of every line into the order items, persists the order and empties the
carts in one transaction. Either all of that happens or none of it does: a
failure at any step rolls back and leaves the carts untouched. Transient store
failures re-run the whole transaction a bounded number of times.
"""
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Dict, Any, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.database import run_in_transaction
from marketplace.models import (
    AppUser, Partner, Company, ProductVariant, Animal,
    CartItem, AnimalCartItem, PartnerCartItem,
    Checkout, CheckoutItem, PartnerOrder, PartnerOrderItem, OrderStatus
)
from marketplace.exceptions import BusinessLogicError, NotFoundError, ConflictError
from marketplace.services import cart_service
from marketplace.services.cart_service import ANIMAL_CART, CUSTOMER_CART, PARTNER_CART, parse_quantity
from marketplace.services.discount_service import resolve_discount, apply_discount, round_money
from marketplace.services.payment_settings_service import (
    PAYMENT_METHODS, ensure_payment_method_allowed, minimum_order_amount_for
)
from marketplace.services.profit_ledger_service import record_item_profit
from marketplace.utils.clock import utcnow

logger = logging.getLogger(__name__)

SHIPPING_FIELDS = ('city', 'province', 'address', 'shipping_address')
REQUIRED_SHIPPING_FIELDS = ('city', 'address', 'shipping_address')


def validate_shipping_info(shipping_info: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """Strip the shipping fields and check city, address and contact number are present."""
    shipping_info = shipping_info or {}
    cleaned = {}
    for field in SHIPPING_FIELDS:
        value = shipping_info.get(field)
        cleaned[field] = str(value).strip() if value is not None and str(value).strip() else None

    missing = [field for field in REQUIRED_SHIPPING_FIELDS if not cleaned[field]]
    if missing:
        raise BusinessLogicError(f'Missing shipping information: {", ".join(missing)}')
    return cleaned


def parse_amount(value, field: str, default=None) -> Decimal:
    """Parse a non-negative money amount."""
    if value is None or value == '':
        if default is None:
            raise BusinessLogicError(f'{field} is required')
        value = default
    if isinstance(value, bool):
        raise BusinessLogicError(f'{field} must be a number')
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise BusinessLogicError(f'{field} must be a number')
    if not amount.is_finite() or amount < 0:
        raise BusinessLogicError(f'{field} cannot be negative')
    return round_money(amount)


def _find_by_idempotency_key(session: Session, user_id: int, idempotency_key: str):
    order = session.query(Checkout).filter(Checkout.idempotency_key == idempotency_key).first()
    if order and order.user_id != user_id:
        raise ConflictError('Idempotency key already used by another order')
    return order


def _snapshot_product_line(session: Session, line, now: datetime) -> CheckoutItem:
    product, variant = cart_service.load_orderable_variant(session, line.product_id, line.variant_id)
    discount = resolve_discount(session, product.id, variant.id, product.company_id, now=now)
    priced = apply_discount(variant.customer_price, discount)
    return CheckoutItem(
        product_id=product.id,
        variant_id=variant.id,
        quantity=line.quantity,
        price=priced['price'],
        original_price=priced['original_price'],
        discount_percentage=priced['percentage'],
    )


def _snapshot_animal_line(session: Session, line) -> CheckoutItem:
    animal = cart_service.load_orderable_animal(session, line.animal_id)
    return CheckoutItem(
        animal_id=animal.id,
        quantity=line.quantity,
        price=round_money(animal.total_price),
        original_price=round_money(animal.total_price),
    )


def create_order(
    session: Session,
    user_id: int,
    shipping_info: Dict[str, Any],
    payment_method: str,
    shipment_charges=None,
    idempotency_key: Optional[str] = None,
    expected_total=None,
    now: Optional[datetime] = None,
    attempts: int = 3,
    backoff: float = 0.05,
    tolerance=Decimal('0.01')
) -> Checkout:
    """
    Place an order from the customer's product and animal carts.

    Steps, all in one transaction:
        1. Read both carts (locked for update); empty carts are rejected
        2. Check the payment method is enabled by every company in the cart
        3. Snapshot each line: discounted unit price for products,
           total_price for animals
        4. total = sum(price * quantity) + shipment_charges, optionally
           checked against the total the client displayed
        5. Persist the order (status pending) with its items
        6. Empty both carts

    A retried request carrying the same idempotency key returns the order
    created by the first one.
    """
    shipping = validate_shipping_info(shipping_info)
    shipment_charges = parse_amount(shipment_charges, 'Shipment charges', default='0')
    if expected_total is not None:
        expected_total = parse_amount(expected_total, 'Total')
    if idempotency_key is not None:
        idempotency_key = str(idempotency_key).strip()[:64] or None
    now = now or utcnow()

    user = session.query(AppUser).filter(AppUser.id == user_id).first()
    if not user:
        raise NotFoundError('User not found')

    def work(session):
        if idempotency_key:
            existing = _find_by_idempotency_key(session, user_id, idempotency_key)
            if existing:
                return existing

        product_lines = (session.query(CartItem)
                         .filter(CartItem.user_id == user_id)
                         .order_by(CartItem.id)
                         .with_for_update()
                         .all())
        animal_lines = (session.query(AnimalCartItem)
                        .filter(AnimalCartItem.user_id == user_id)
                        .order_by(AnimalCartItem.id)
                        .with_for_update()
                        .all())

        if not product_lines and not animal_lines:
            raise BusinessLogicError('Cart is empty')

        company_ids = {line.product.company_id for line in product_lines if line.product}
        method = ensure_payment_method_allowed(session, company_ids, payment_method)

        items = [_snapshot_product_line(session, line, now) for line in product_lines]
        items += [_snapshot_animal_line(session, line) for line in animal_lines]

        subtotal = sum((item.price * item.quantity for item in items), Decimal('0.00'))
        total = round_money(subtotal + shipment_charges)

        if expected_total is not None and abs(total - expected_total) > tolerance:
            logger.warning(f"Checkout total mismatch for user {user_id}: expected {expected_total}, computed {total}")
            raise BusinessLogicError(
                'Order total has changed, please review your cart',
                payload={'expected_total': str(expected_total), 'total': str(total)}
            )

        order = Checkout(
            user_id=user_id,
            payment_method=method,
            shipment_charges=shipment_charges,
            total=total,
            status=OrderStatus.PENDING,
            idempotency_key=idempotency_key,
            is_manual=False,
            **shipping
        )
        order.items = items
        session.add(order)
        session.flush()

        cart_service.clear_items(session, CUSTOMER_CART, user_id)
        cart_service.clear_items(session, ANIMAL_CART, user_id)
        return order

    try:
        order = run_in_transaction(session, work, attempts=attempts, backoff=backoff)
    except IntegrityError:
        # A concurrent request with the same key committed first
        if idempotency_key:
            existing = _find_by_idempotency_key(session, user_id, idempotency_key)
            if existing:
                return existing
        raise

    logger.info(f"Order #{order.id} created for user {user_id}: total={order.total} ({len(order.items)} items)")
    return order


def _manual_item(session: Session, data: Dict[str, Any]) -> CheckoutItem:
    product_id = data.get('product_id')
    variant_id = data.get('variant_id')
    animal_id = data.get('animal_id')

    if animal_id and (product_id or variant_id):
        raise BusinessLogicError('An item references either a product variant or an animal, not both')
    if not animal_id and not (product_id and variant_id):
        raise BusinessLogicError('An item needs product_id and variant_id, or animal_id')

    quantity = parse_quantity(data.get('quantity'))
    price = parse_amount(data.get('price'), 'Price')
    purchased_price = data.get('purchased_price')
    purchased_price = parse_amount(purchased_price, 'Purchased price') if purchased_price not in (None, '') else None

    if animal_id:
        animal = session.query(Animal).filter(Animal.id == int(animal_id)).first()
        if not animal:
            raise NotFoundError('Animal not found')
        return CheckoutItem(animal_id=animal.id, quantity=quantity, price=price,
                            original_price=price, purchased_price=purchased_price)

    variant = session.query(ProductVariant).filter(
        ProductVariant.id == int(variant_id),
        ProductVariant.product_id == int(product_id)
    ).first()
    if not variant:
        raise NotFoundError('Variant not found')
    return CheckoutItem(product_id=variant.product_id, variant_id=variant.id, quantity=quantity,
                        price=price, original_price=round_money(variant.customer_price),
                        purchased_price=purchased_price)


def create_manual_order(
    session: Session,
    user_id: int,
    shipping_info: Dict[str, Any],
    payment_method: str,
    items: List[Dict[str, Any]],
    shipment_charges=0,
    status: str = OrderStatus.PENDING.value
) -> Checkout:
    """Create an order on behalf of a customer with admin-supplied prices. Carts are not involved."""
    shipping = validate_shipping_info(shipping_info)
    shipment_charges = parse_amount(shipment_charges, 'Shipment charges', default='0')

    method = (payment_method or '').strip().lower()
    if method not in PAYMENT_METHODS:
        raise BusinessLogicError(f'Invalid payment method: {method or "(empty)"}')
    try:
        status = OrderStatus(status)
    except ValueError:
        raise BusinessLogicError(f'Invalid status: {status}')

    if not items:
        raise BusinessLogicError('Order must have at least one item')

    user = session.query(AppUser).filter(AppUser.id == user_id).first()
    if not user:
        raise NotFoundError('User not found')

    def work(session):
        order_items = [_manual_item(session, data) for data in items]
        subtotal = sum((item.price * item.quantity for item in order_items), Decimal('0.00'))

        order = Checkout(
            user_id=user_id,
            payment_method=method,
            shipment_charges=shipment_charges,
            total=round_money(subtotal + shipment_charges),
            status=status,
            is_manual=True,
            **shipping
        )
        order.items = order_items
        session.add(order)
        session.flush()

        for item in order_items:
            if item.purchased_price is not None:
                record_item_profit(session, item.id, item.price * item.quantity,
                                   item.purchased_price * item.quantity)
        return order

    order = run_in_transaction(session, work, attempts=1)
    logger.info(f"Manual order #{order.id} created for user {user_id}: total={order.total}")
    return order


def create_partner_orders(
    session: Session,
    partner_id: int,
    orders_data: List[Dict[str, Any]],
    now: Optional[datetime] = None,
    attempts: int = 3,
    backoff: float = 0.05
) -> List[PartnerOrder]:
    """
    Place one order per company from the partner cart.

    Lines are grouped by the company selling the product and priced at the
    company price after discount. Every company in the cart needs order
    details (payment method and shipping address). Each company's payment
    method and minimum order amount are enforced. The partner cart is emptied
    in the same transaction.
    """
    now = now or utcnow()

    partner = session.query(Partner).filter(Partner.id == partner_id).first()
    if not partner:
        raise NotFoundError('Partner not found')

    if not orders_data:
        raise BusinessLogicError('Orders data is required')

    details_by_company = {}
    for details in orders_data:
        try:
            company_id = int(details.get('company_id'))
        except (TypeError, ValueError):
            raise BusinessLogicError('Each order needs a company_id')
        details_by_company[company_id] = {
            'payment_method': details.get('payment_method'),
            'shipping': validate_shipping_info(details),
        }

    def work(session):
        lines = (session.query(PartnerCartItem)
                 .filter(PartnerCartItem.partner_id == partner_id)
                 .order_by(PartnerCartItem.id)
                 .with_for_update()
                 .all())
        if not lines:
            raise BusinessLogicError('Cart is empty')

        by_company = {}
        for line in lines:
            product, variant = cart_service.load_orderable_variant(session, line.product_id, line.variant_id)
            if product.company_id is None:
                raise BusinessLogicError(f'Product "{product.name}" is not sold by a company')
            by_company.setdefault(product.company_id, []).append((line, product, variant))

        missing = sorted(set(by_company) - set(details_by_company))
        if missing:
            raise BusinessLogicError(f'Missing order details for companies: {", ".join(map(str, missing))}')
        extra = sorted(set(details_by_company) - set(by_company))
        if extra:
            raise BusinessLogicError(f'No cart items for companies: {", ".join(map(str, extra))}')

        orders = []
        for company_id in sorted(by_company):
            details = details_by_company[company_id]
            method = ensure_payment_method_allowed(session, [company_id], details['payment_method'])

            items = []
            for line, product, variant in by_company[company_id]:
                discount = resolve_discount(session, product.id, variant.id, company_id, now=now)
                priced = apply_discount(cart_service.partner_unit_price(variant), discount)
                items.append(PartnerOrderItem(
                    product_id=product.id,
                    variant_id=variant.id,
                    quantity=line.quantity,
                    price=priced['price'],
                    original_price=priced['original_price'],
                    discount_percentage=priced['percentage'],
                ))

            total = round_money(sum((item.price * item.quantity for item in items), Decimal('0.00')))
            minimum = minimum_order_amount_for(session, company_id)
            if minimum and total < minimum:
                company = session.query(Company).filter(Company.id == company_id).first()
                raise BusinessLogicError(
                    f'Minimum order amount for {company.company_name} is {minimum}',
                    payload={'company_id': company_id, 'minimum_order_amount': str(minimum), 'total': str(total)}
                )

            order = PartnerOrder(
                partner_id=partner_id,
                company_id=company_id,
                payment_method=method,
                total=total,
                status=OrderStatus.PENDING,
                **details['shipping']
            )
            order.items = items
            session.add(order)
            orders.append(order)

        session.flush()
        cart_service.clear_items(session, PARTNER_CART, partner_id)
        return orders

    orders = run_in_transaction(session, work, attempts=attempts, backoff=backoff)
    logger.info(f"Partner {partner_id} placed orders {[o.id for o in orders]}")
    return orders
