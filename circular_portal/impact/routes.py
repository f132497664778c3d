# circular_portal/impact/routes.py
from flask import jsonify, current_app
from flask_jwt_extended import jwt_required

from . import impact_bp
from ..utils import current_user_id, owns_record


@impact_bp.route('', methods=['GET'])
@jwt_required()
def get_my_impact():
    """Summed environmental impact across the user's orders."""
    storage = current_app.storage
    user_id = current_user_id()
    try:
        totals = storage.get_total_impact(user_id)
        return jsonify(
            impact=totals,
            orders_count=len(storage.list_orders_for_user(user_id)),
            entries=storage.list_impacts_for_user(user_id),
            success=True,
        ), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching impact for user {user_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@impact_bp.route('/order/<int:order_id>', methods=['GET'])
@jwt_required()
def get_order_impact(order_id):
    storage = current_app.storage
    try:
        order = storage.get_order(order_id)
        if not order:
            return jsonify(message="Order not found", success=False), 404
        if not owns_record(order):
            return jsonify(message="You do not have access to this order.", success=False), 403
        impact = storage.get_impact_for_order(order_id)
        if not impact:
            return jsonify(message="No impact recorded for this order", success=False), 404
        return jsonify(impact=impact, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching impact for order {order_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500
