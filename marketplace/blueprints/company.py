"""Company blueprint - payment settings, variant pricing, discounts, purchase costs."""
from flask import Blueprint, request, jsonify, current_app, g
from marketplace.database import get_session
from marketplace.middleware import ActorKind, require_actor
from marketplace.services import (
    payment_settings_service, catalog_service, discount_service, order_service
)

company_bp = Blueprint('company', __name__, url_prefix='/api/company')


@company_bp.route('/payment-settings', methods=['GET'])
@require_actor(ActorKind.COMPANY)
def get_payment_settings():
    settings = payment_settings_service.get_settings(get_session(), g.actor.id)
    return jsonify({'settings': payment_settings_service.serialize_settings(settings)}), 200


@company_bp.route('/payment-settings', methods=['PUT', 'POST'])
@require_actor(ActorKind.COMPANY)
def save_payment_settings():
    payload = request.get_json(silent=True) or {}
    settings = payment_settings_service.save_settings(get_session(), g.actor.id, payload)
    return jsonify({
        'success': True,
        'settings': payment_settings_service.serialize_settings(settings)
    }), 200


@company_bp.route('/variants/<int:variant_id>', methods=['PATCH'])
@require_actor(ActorKind.COMPANY)
def update_variant(variant_id: int):
    payload = request.get_json(silent=True) or {}
    variant = catalog_service.update_variant_pricing(get_session(), g.actor.id, variant_id, payload)
    return jsonify({
        'success': True,
        'variant': {
            'id': variant.id,
            'packing_volume': variant.packing_volume,
            'customer_price': str(variant.customer_price),
            'company_price': str(variant.company_price) if variant.company_price is not None else None,
            'dealer_price': str(variant.dealer_price) if variant.dealer_price is not None else None,
            'inventory': variant.inventory,
        }
    }), 200


@company_bp.route('/discounts', methods=['GET'])
@require_actor(ActorKind.COMPANY)
def list_discounts():
    result = discount_service.list_discounts(
        get_session(),
        status=request.args.get('status'),
        company_id=g.actor.id,
        product_id=request.args.get('product_id', type=int),
        search=request.args.get('search'),
        page=request.args.get('page', 1, type=int),
        limit=request.args.get('limit', 20, type=int)
    )
    return jsonify(result), 200


@company_bp.route('/discounts', methods=['POST'])
@require_actor(ActorKind.COMPANY)
def create_discount():
    payload = request.get_json(silent=True) or {}
    company_id = g.actor.id
    discounts = discount_service.create_discounts(get_session(), payload, restrict_company_id=company_id)
    current_app.logger.info(f"[company] company {company_id} created {len(discounts)} discount(s)")
    return jsonify({
        'success': True,
        'discounts': [discount_service.serialize_discount(d) for d in discounts]
    }), 201


@company_bp.route('/order-items/<int:item_id>/purchased-price', methods=['PATCH'])
@require_actor(ActorKind.COMPANY)
def update_purchased_price(item_id: int):
    payload = request.get_json(silent=True) or {}
    item = order_service.update_purchased_price(
        get_session(), item_id, payload.get('purchased_price'), company_id=g.actor.id
    )
    return jsonify({'success': True, 'item': order_service.serialize_item(item)}), 200
