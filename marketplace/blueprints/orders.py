"""Customer checkout and order history blueprint."""
from decimal import Decimal
from flask import Blueprint, request, jsonify, current_app, g, send_file
from marketplace.database import get_session
from marketplace.exceptions import BusinessLogicError
from marketplace.middleware import ActorKind, require_actor
from marketplace.services import checkout_service, order_service
from marketplace.services.invoice_service import generate_order_invoice_pdf
from marketplace.blueprints.metrics import orders_created_total, checkout_rejections_total

orders_bp = Blueprint('orders', __name__, url_prefix='/api')


def business_info():
    """Business header printed on invoices, from config."""
    return {
        'name': current_app.config.get('BUSINESS_NAME', 'Marketplace'),
        'address': current_app.config.get('BUSINESS_ADDRESS', ''),
        'phone': current_app.config.get('BUSINESS_PHONE', ''),
        'email': current_app.config.get('BUSINESS_EMAIL', ''),
    }


@orders_bp.route('/checkout', methods=['POST'])
@require_actor(ActorKind.CUSTOMER)
def checkout():
    """
    Place an order from the customer's carts.

    Body: city, province, address, shipping_address, payment_method,
    shipment_charges?, idempotency_key?, total? (the total the client showed).
    The key may also come in the Idempotency-Key header.
    """
    payload = request.get_json(silent=True) or {}
    config = current_app.config

    try:
        order = checkout_service.create_order(
            get_session(),
            g.actor.id,
            shipping_info=payload,
            payment_method=payload.get('payment_method'),
            shipment_charges=payload.get('shipment_charges', config['DEFAULT_SHIPMENT_CHARGES']),
            idempotency_key=payload.get('idempotency_key') or request.headers.get('Idempotency-Key'),
            expected_total=payload.get('total'),
            attempts=config['CHECKOUT_MAX_ATTEMPTS'],
            backoff=config['CHECKOUT_RETRY_BACKOFF'],
            tolerance=Decimal(config['TOTAL_MISMATCH_TOLERANCE'])
        )
    except BusinessLogicError as e:
        checkout_rejections_total.labels(kind='customer', status=e.status_code).inc()
        raise

    orders_created_total.labels(kind='customer').inc()
    current_app.logger.info(f"[checkout] user {g.actor.id} placed order #{order.id}")

    return jsonify({
        'success': True,
        'order_id': order.id,
        'total': str(order.total),
        'shipping_charges': str(order.shipment_charges),
    }), 200


@orders_bp.route('/orders', methods=['GET'])
@require_actor(ActorKind.CUSTOMER)
def my_orders():
    result = order_service.list_orders(
        get_session(),
        user_id=g.actor.id,
        status=request.args.get('status'),
        page=request.args.get('page', 1, type=int),
        limit=request.args.get('limit', 20, type=int)
    )
    return jsonify(result), 200


@orders_bp.route('/orders/<int:order_id>', methods=['GET'])
@require_actor(ActorKind.CUSTOMER)
def my_order(order_id: int):
    order = order_service.get_order(get_session(), order_id, user_id=g.actor.id)
    return jsonify(order_service.serialize_order(order)), 200


@orders_bp.route('/orders/<int:order_id>/invoice', methods=['GET'])
@require_actor(ActorKind.CUSTOMER)
def my_order_invoice(order_id: int):
    pdf_buffer = generate_order_invoice_pdf(get_session(), order_id, user_id=g.actor.id,
                                            business_info=business_info())
    return send_file(
        pdf_buffer,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=f'invoice_{order_id}.pdf'
    )
