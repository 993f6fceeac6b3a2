"""
Admin blueprint - order management, discounts and bulk catalog maintenance.

All routes require a signed-in admin (session key admin_user_id).
"""
from flask import Blueprint, request, jsonify, current_app, g, send_file
from marketplace.database import get_session
from marketplace.exceptions import BusinessLogicError
from marketplace.middleware import ActorKind, require_actor
from marketplace.models import Checkout, PartnerOrder
from marketplace.services import checkout_service, order_service, discount_service, catalog_service
from marketplace.services.invoice_service import generate_order_invoice_pdf
from marketplace.blueprints.orders import business_info
from marketplace.blueprints.metrics import orders_created_total

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


def _json_body():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise BusinessLogicError('A JSON object body is required')
    return payload


# ============================================================================
# Orders
# ============================================================================

@admin_bp.route('/orders', methods=['GET'])
@require_actor(ActorKind.ADMIN)
def list_orders():
    result = order_service.list_orders(
        get_session(),
        user_id=request.args.get('user_id', type=int),
        status=request.args.get('status'),
        page=request.args.get('page', 1, type=int),
        limit=request.args.get('limit', 20, type=int)
    )
    return jsonify(result), 200


@admin_bp.route('/orders/<int:order_id>', methods=['GET'])
@require_actor(ActorKind.ADMIN)
def get_order(order_id: int):
    order = order_service.get_order(get_session(), order_id)
    return jsonify(order_service.serialize_order(order)), 200


@admin_bp.route('/orders/manual', methods=['POST'])
@require_actor(ActorKind.ADMIN)
def create_manual_order():
    """Create an order for a customer with admin-supplied items and prices."""
    payload = _json_body()
    try:
        user_id = int(payload.get('user_id'))
    except (TypeError, ValueError):
        raise BusinessLogicError('user_id is required')

    order = checkout_service.create_manual_order(
        get_session(),
        user_id,
        shipping_info=payload,
        payment_method=payload.get('payment_method'),
        items=payload.get('items') or [],
        shipment_charges=payload.get('shipment_charges', 0),
        status=payload.get('status', 'pending')
    )
    orders_created_total.labels(kind='manual').inc()
    current_app.logger.info(f"[admin] admin {g.actor.id} created manual order #{order.id}")
    return jsonify({'success': True, 'order': order_service.serialize_order(order)}), 201


@admin_bp.route('/orders/<int:order_id>', methods=['PATCH', 'PUT'])
@require_actor(ActorKind.ADMIN)
def update_order(order_id: int):
    """Correct item quantities, prices and costs; the total is recomputed."""
    payload = _json_body()
    order = order_service.update_order(
        get_session(),
        order_id,
        items=payload.get('items') or [],
        shipment_charges=payload.get('shipment_charges'),
        payment_method=payload.get('payment_method')
    )
    return jsonify({'success': True, 'order': order_service.serialize_order(order)}), 200


@admin_bp.route('/orders/<int:order_id>/status', methods=['PATCH', 'POST'])
@require_actor(ActorKind.ADMIN)
def update_order_status(order_id: int):
    payload = _json_body()
    order = order_service.transition_status(get_session(), Checkout, order_id, payload.get('status'))
    return jsonify({'success': True, 'order_id': order.id, 'status': order.status.value}), 200


@admin_bp.route('/orders/<int:order_id>', methods=['DELETE'])
@require_actor(ActorKind.ADMIN)
def delete_order(order_id: int):
    order_service.delete_order(get_session(), order_id)
    return jsonify({'success': True, 'message': 'Order deleted'}), 200


@admin_bp.route('/orders/<int:order_id>/invoice', methods=['GET'])
@require_actor(ActorKind.ADMIN)
def order_invoice(order_id: int):
    pdf_buffer = generate_order_invoice_pdf(get_session(), order_id, business_info=business_info())
    return send_file(
        pdf_buffer,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=f'invoice_{order_id}.pdf'
    )


@admin_bp.route('/partner-orders/<int:order_id>/status', methods=['PATCH', 'POST'])
@require_actor(ActorKind.ADMIN)
def update_partner_order_status(order_id: int):
    payload = _json_body()
    order = order_service.transition_status(get_session(), PartnerOrder, order_id, payload.get('status'))
    return jsonify({'success': True, 'order_id': order.id, 'status': order.status.value}), 200


@admin_bp.route('/order-items/<int:item_id>/purchased-price', methods=['PATCH'])
@require_actor(ActorKind.ADMIN)
def update_purchased_price(item_id: int):
    payload = _json_body()
    item = order_service.update_purchased_price(get_session(), item_id, payload.get('purchased_price'))
    return jsonify({'success': True, 'item': order_service.serialize_item(item)}), 200


# ============================================================================
# Discounts
# ============================================================================

@admin_bp.route('/discounts', methods=['GET'])
@require_actor(ActorKind.ADMIN)
def list_discounts():
    result = discount_service.list_discounts(
        get_session(),
        status=request.args.get('status'),
        company_id=request.args.get('company_id', type=int),
        product_id=request.args.get('product_id', type=int),
        search=request.args.get('search'),
        page=request.args.get('page', 1, type=int),
        limit=request.args.get('limit', 20, type=int)
    )
    return jsonify(result), 200


@admin_bp.route('/discounts', methods=['POST'])
@require_actor(ActorKind.ADMIN)
def create_discount():
    discounts = discount_service.create_discounts(get_session(), _json_body())
    return jsonify({
        'success': True,
        'discounts': [discount_service.serialize_discount(d) for d in discounts]
    }), 201


@admin_bp.route('/discounts/<int:discount_id>', methods=['PATCH', 'PUT'])
@require_actor(ActorKind.ADMIN)
def update_discount(discount_id: int):
    discount = discount_service.update_discount(get_session(), discount_id, _json_body())
    return jsonify({'success': True, 'discount': discount_service.serialize_discount(discount)}), 200


@admin_bp.route('/discounts/<int:discount_id>', methods=['DELETE'])
@require_actor(ActorKind.ADMIN)
def delete_discount(discount_id: int):
    discount_service.delete_discount(get_session(), discount_id)
    return jsonify({'success': True, 'message': 'Discount deleted'}), 200


# ============================================================================
# Catalog maintenance
# ============================================================================

@admin_bp.route('/catalog/set-all-in-stock', methods=['POST'])
@require_actor(ActorKind.ADMIN)
def set_all_in_stock():
    payload = request.get_json(silent=True) or {}
    inventory = payload.get('inventory', current_app.config['DEFAULT_RESTOCK_INVENTORY'])
    counts = catalog_service.set_all_in_stock(get_session(), inventory)
    return jsonify({'success': True, **counts}), 200


@admin_bp.route('/catalog/bulk-price-update', methods=['POST'])
@require_actor(ActorKind.ADMIN)
def bulk_price_update():
    payload = _json_body()
    summary = catalog_service.bulk_update_prices(
        get_session(),
        price_type=payload.get('price_type'),
        update_type=payload.get('update_type'),
        value=payload.get('value'),
        company_ids=payload.get('company_ids'),
        partner_ids=payload.get('partner_ids'),
        product_ids=payload.get('product_ids'),
        update_all=bool(payload.get('update_all'))
    )
    return jsonify({'message': 'Bulk price update completed successfully', 'summary': summary}), 200
