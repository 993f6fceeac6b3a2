"""
Order Service - admin order correction, status lifecycle and order reads.

Corrections overwrite the quantity, price and cost of existing order lines and
immediately recompute the stored total from the corrected values. The profit
ledger is updated once per corrected line after the line is flushed.
"""
import logging
from decimal import Decimal
from typing import Optional, Dict, Any, List

from sqlalchemy.orm import Session, selectinload

from marketplace.database import run_in_transaction
from marketplace.models import Checkout, CheckoutItem, PartnerOrder, Product, OrderStatus
from marketplace.exceptions import BusinessLogicError, NotFoundError, ConflictError, ForbiddenError
from marketplace.services.cart_service import parse_quantity
from marketplace.services.checkout_service import parse_amount
from marketplace.services.discount_service import round_money
from marketplace.services.payment_settings_service import PAYMENT_METHODS
from marketplace.services.profit_ledger_service import record_item_profit

logger = logging.getLogger(__name__)

# current status -> statuses it may move to
ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: set(),
    OrderStatus.REFUNDED: set(),
}

DELETABLE_STATUSES = {OrderStatus.PENDING, OrderStatus.CANCELLED}


def _item_cost(item: CheckoutItem) -> Optional[Decimal]:
    if item.purchased_price is None:
        return None
    return item.purchased_price * item.quantity


def update_order(
    session: Session,
    order_id: int,
    items: List[Dict[str, Any]],
    shipment_charges,
    payment_method: Optional[str] = None
) -> Checkout:
    """
    Correct the lines of an order.

    Each entry of ``items`` is {id, quantity, price, purchased_price?} and must
    reference a line of this order. The new total is the sum of price *
    quantity over every line of the order, using the corrected values, plus
    the new shipment charges.
    """
    shipment_charges = parse_amount(shipment_charges, 'Shipment charges', default='0')
    if payment_method is not None:
        payment_method = payment_method.strip().lower()
        if payment_method not in PAYMENT_METHODS:
            raise BusinessLogicError(f'Invalid payment method: {payment_method}')

    corrections = []
    for data in items or []:
        try:
            item_id = int(data.get('id'))
        except (TypeError, ValueError):
            raise BusinessLogicError('Each item needs an id')
        purchased_price = data.get('purchased_price')
        corrections.append({
            'id': item_id,
            'quantity': parse_quantity(data.get('quantity')),
            'price': parse_amount(data.get('price'), 'Price'),
            'purchased_price': parse_amount(purchased_price, 'Purchased price')
            if purchased_price not in (None, '') else None,
            'has_purchased_price': 'purchased_price' in data,
        })

    def work(session):
        order = session.query(Checkout).filter(Checkout.id == order_id).with_for_update().first()
        if not order:
            raise NotFoundError('Order not found')

        lines = {item.id: item for item in order.items}
        for correction in corrections:
            item = lines.get(correction['id'])
            if not item:
                raise NotFoundError(f"Item {correction['id']} does not belong to order {order_id}")

            item.quantity = correction['quantity']
            item.price = correction['price']
            if correction['has_purchased_price']:
                item.purchased_price = correction['purchased_price']
            session.flush()

            record_item_profit(session, item.id, item.price * item.quantity, _item_cost(item))

        subtotal = sum((item.price * item.quantity for item in order.items), Decimal('0.00'))
        order.shipment_charges = shipment_charges
        order.total = round_money(subtotal + shipment_charges)
        if payment_method:
            order.payment_method = payment_method
        return order

    order = run_in_transaction(session, work, attempts=1)
    logger.info(f"Order #{order_id} corrected: {len(corrections)} item(s), total={order.total}")
    return order


def update_purchased_price(session: Session, item_id: int, purchased_price, company_id: Optional[int] = None) -> CheckoutItem:
    """
    Set the unit cost of an order line and refresh its ledger row.

    Company callers may only touch lines of their own products.
    """
    purchased_price = parse_amount(purchased_price, 'Purchased price')

    def work(session):
        item = session.query(CheckoutItem).filter(CheckoutItem.id == item_id).first()
        if not item:
            raise NotFoundError('Order item not found')

        if company_id is not None:
            product = session.query(Product).filter(Product.id == item.product_id).first()
            if not product or product.company_id != company_id:
                raise ForbiddenError('You can only update items of your own products')

        item.purchased_price = purchased_price
        session.flush()
        record_item_profit(session, item.id, item.price * item.quantity, _item_cost(item))
        return item

    item = run_in_transaction(session, work, attempts=1)
    logger.info(f"Order item #{item_id} purchased price set to {purchased_price}")
    return item


def transition_status(session: Session, model, order_id: int, new_status) -> Any:
    """
    Move a Checkout or PartnerOrder to a new status.

    Allowed: pending -> delivered, pending -> cancelled, delivered -> refunded.
    Re-applying the current status is rejected like any other illegal move.
    """
    try:
        new_status = OrderStatus(new_status)
    except ValueError:
        raise BusinessLogicError(f'Invalid status: {new_status}')

    order = session.query(model).filter(model.id == order_id).with_for_update().first()
    if not order:
        raise NotFoundError('Order not found')

    current = OrderStatus(order.status)
    if new_status not in ALLOWED_TRANSITIONS[current]:
        session.rollback()
        raise ConflictError(f'Cannot change order status from {current.value} to {new_status.value}')

    order.status = new_status
    session.commit()

    logger.info(f"{model.__name__} #{order_id}: {current.value} -> {new_status.value}")
    return order


def delete_order(session: Session, order_id: int) -> None:
    """Delete an order with its items. Only pending or cancelled orders can be deleted."""
    order = session.query(Checkout).filter(Checkout.id == order_id).first()
    if not order:
        raise NotFoundError('Order not found')

    if OrderStatus(order.status) not in DELETABLE_STATUSES:
        raise ConflictError(f'Cannot delete a {OrderStatus(order.status).value} order')

    try:
        session.delete(order)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Order #{order_id} deleted")


def get_order(session: Session, order_id: int, user_id: Optional[int] = None) -> Checkout:
    """Load one order. With user_id, orders of other customers are reported as missing."""
    query = session.query(Checkout).options(selectinload(Checkout.items)).filter(Checkout.id == order_id)
    if user_id is not None:
        query = query.filter(Checkout.user_id == user_id)
    order = query.first()
    if not order:
        raise NotFoundError('Order not found')
    return order


def list_orders(
    session: Session,
    user_id: Optional[int] = None,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 20
) -> Dict[str, Any]:
    """Paginated orders, newest first, optionally for one customer or one status."""
    query = session.query(Checkout).options(selectinload(Checkout.items))
    if user_id is not None:
        query = query.filter(Checkout.user_id == user_id)
    if status and status != 'all':
        try:
            query = query.filter(Checkout.status == OrderStatus(status))
        except ValueError:
            raise BusinessLogicError(f'Invalid status: {status}')

    page = max(int(page), 1)
    limit = min(max(int(limit), 1), 100)
    total = query.count()
    orders = (query.order_by(Checkout.created_at.desc(), Checkout.id.desc())
              .offset((page - 1) * limit)
              .limit(limit)
              .all())

    return {
        'orders': [serialize_order(order) for order in orders],
        'total': total,
        'page': page,
        'limit': limit,
        'total_pages': (total + limit - 1) // limit
    }


def serialize_item(item: CheckoutItem) -> Dict[str, Any]:
    data = {
        'id': item.id,
        'quantity': item.quantity,
        'price': str(item.price),
        'original_price': str(item.original_price) if item.original_price is not None else None,
        'discount_percentage': str(item.discount_percentage) if item.discount_percentage is not None else None,
        'purchased_price': str(item.purchased_price) if item.purchased_price is not None else None,
        'line_total': str(round_money(item.line_total)),
    }
    if item.animal_id is not None:
        data['animal'] = {'id': item.animal_id, 'title': item.animal.title if item.animal else None}
    else:
        data['product'] = {'id': item.product_id, 'name': item.product.name if item.product else None}
        data['variant'] = {
            'id': item.variant_id,
            'packing_volume': item.variant.packing_volume if item.variant else None
        }
    return data


def serialize_order(order: Checkout) -> Dict[str, Any]:
    return {
        'id': order.id,
        'user_id': order.user_id,
        'city': order.city,
        'province': order.province,
        'address': order.address,
        'shipping_address': order.shipping_address,
        'payment_method': order.payment_method,
        'shipment_charges': str(order.shipment_charges),
        'total': str(order.total),
        'status': OrderStatus(order.status).value,
        'is_manual': order.is_manual,
        'created_at': order.created_at.isoformat() if order.created_at else None,
        'items': [serialize_item(item) for item in order.items],
    }


def serialize_partner_order(order: PartnerOrder) -> Dict[str, Any]:
    return {
        'id': order.id,
        'partner_id': order.partner_id,
        'company_id': order.company_id,
        'payment_method': order.payment_method,
        'total': str(order.total),
        'status': OrderStatus(order.status).value,
        'items': [
            {
                'id': item.id,
                'product_id': item.product_id,
                'variant_id': item.variant_id,
                'quantity': item.quantity,
                'price': str(item.price),
                'original_price': str(item.original_price),
                'discount_percentage': str(item.discount_percentage) if item.discount_percentage is not None else None,
            }
            for item in order.items
        ],
    }
