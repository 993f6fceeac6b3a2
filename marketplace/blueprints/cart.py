"""
Cart blueprints - customer product cart, customer animal cart, partner cart.

The three carts expose the same five endpoints (add, update, remove, list,
count); make_cart_blueprint builds them for one CartKind and actor kind.
"""
from flask import Blueprint, request, jsonify, current_app, g
from marketplace.database import get_session
from marketplace.middleware import ActorKind, require_actor, current_actor_id
from marketplace.services import cart_service
from marketplace.services.cart_service import CUSTOMER_CART, ANIMAL_CART, PARTNER_CART
from marketplace.blueprints.metrics import cart_items_added_total


def _payload():
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def make_cart_blueprint(name: str, url_prefix: str, kind, actor_kind: ActorKind) -> Blueprint:
    """Build the add/update/remove/list/count endpoints of one cart."""
    bp = Blueprint(name, __name__, url_prefix=url_prefix)

    @bp.route('/add', methods=['POST'])
    @require_actor(actor_kind)
    def add():
        """Add one unit of an item. Any quantity in the payload is ignored."""
        payload = _payload()
        item_key = {column: payload.get(column) for column in kind.item_columns}

        cart_service.add_item(get_session(), kind, g.actor.id, item_key)
        cart_items_added_total.labels(cart=kind.name).inc()

        return jsonify({'status': 'success', 'message': 'Item added to cart'}), 200

    @bp.route('/update', methods=['POST'])
    @require_actor(actor_kind)
    def update():
        payload = _payload()
        line = cart_service.update_item(get_session(), kind, g.actor.id, payload.get('id'), payload.get('quantity'))
        return jsonify({'status': 'success', 'message': 'Cart updated', 'quantity': line.quantity}), 200

    @bp.route('/remove', methods=['POST', 'DELETE'])
    @require_actor(actor_kind)
    def remove():
        payload = _payload()
        cart_item_id = payload.get('id') or request.args.get('id')
        removed = cart_service.remove_item(get_session(), kind, g.actor.id, cart_item_id)
        if not removed:
            current_app.logger.info(f"[{name}] remove of absent line {cart_item_id} by {g.actor.id}")
        return jsonify({'status': 'success', 'message': 'Item removed from cart', 'removed': removed}), 200

    @bp.route('', methods=['GET'])
    @require_actor(actor_kind)
    def list_cart():
        lines = cart_service.list_items(get_session(), kind, g.actor.id, country=request.args.get('country'))
        totals = cart_service.cart_totals(lines)
        return jsonify({'cart': lines, **totals}), 200

    @bp.route('/count', methods=['GET'])
    def count():
        """Cart badge. Signed-out visitors have an empty cart."""
        owner_id = current_actor_id(actor_kind)
        if owner_id is None:
            return jsonify({'count': 0}), 200
        return jsonify({'count': cart_service.count_items(get_session(), kind, owner_id)}), 200

    return bp


cart_bp = make_cart_blueprint('cart', '/api/cart', CUSTOMER_CART, ActorKind.CUSTOMER)
animal_cart_bp = make_cart_blueprint('animal_cart', '/api/animal-cart', ANIMAL_CART, ActorKind.CUSTOMER)
partner_cart_bp = make_cart_blueprint('partner_cart', '/api/partner/cart', PARTNER_CART, ActorKind.PARTNER)
