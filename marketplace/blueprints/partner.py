"""Partner blueprint - partner checkout and referral codes."""
from flask import Blueprint, request, jsonify, current_app, g
from marketplace.database import get_session
from marketplace.exceptions import BusinessLogicError
from marketplace.middleware import ActorKind, require_actor
from marketplace.services import checkout_service, referral_service
from marketplace.blueprints.metrics import orders_created_total, checkout_rejections_total

partner_bp = Blueprint('partner', __name__, url_prefix='/api/partner')


@partner_bp.route('/checkout', methods=['POST'])
@require_actor(ActorKind.PARTNER)
def checkout():
    """
    Place one order per company from the partner cart.

    Body: {"orders": [{company_id, payment_method, city, province, address,
    shipping_address}, ...]}
    """
    payload = request.get_json(silent=True) or {}
    orders_data = payload.get('orders')
    if not isinstance(orders_data, list):
        raise BusinessLogicError('Orders data is required')

    config = current_app.config
    try:
        orders = checkout_service.create_partner_orders(
            get_session(),
            g.actor.id,
            orders_data,
            attempts=config['CHECKOUT_MAX_ATTEMPTS'],
            backoff=config['CHECKOUT_RETRY_BACKOFF']
        )
    except BusinessLogicError as e:
        checkout_rejections_total.labels(kind='partner', status=e.status_code).inc()
        raise

    orders_created_total.labels(kind='partner').inc(len(orders))
    return jsonify({'success': True, 'order_ids': [order.id for order in orders]}), 200


@partner_bp.route('/referral-code', methods=['POST'])
@require_actor(ActorKind.PARTNER)
def referral_code():
    config = current_app.config
    code = referral_service.generate_referral_code(
        get_session(),
        g.actor.id,
        length=config['REFERRAL_CODE_LENGTH'],
        max_attempts=config['REFERRAL_CODE_MAX_ATTEMPTS']
    )
    return jsonify({'success': True, 'referral_code': code,
                    'message': 'Referral code generated successfully'}), 200
