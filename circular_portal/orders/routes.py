# circular_portal/orders/routes.py
# Orders as seen by the customer who placed them (admins may read any order).

from flask import jsonify, current_app, g
from flask_jwt_extended import jwt_required
from pydantic import ValidationError

from . import orders_bp
from ..schemas import OrderCreateSchema, OrderItemSchema
from ..services import order_service
from ..utils import current_user_id, owns_record, parse_payload, validation_error_response


def _load_order(order_id):
    """Returns (order, error_response)."""
    order = current_app.storage.get_order(order_id)
    if not order:
        return None, (jsonify(message="Order not found", success=False), 404)
    if not owns_record(order):
        return None, (jsonify(message="You do not have access to this order.", success=False), 403)
    return order, None

@orders_bp.route('', methods=['GET'])
@jwt_required()
def list_my_orders():
    storage = current_app.storage
    try:
        orders = [order_service.order_with_items(storage, order) for order in storage.list_orders_for_user(current_user_id())]
        return jsonify(orders=orders, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching orders for user {current_user_id()}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@orders_bp.route('', methods=['POST'])
@jwt_required()
def create_order():
    try:
        payload = parse_payload(OrderCreateSchema)
    except ValidationError as e:
        return validation_error_response(e)

    storage = current_app.storage
    try:
        data = payload.model_dump(mode='json', exclude_none=True, exclude={'items'})
        if not getattr(g, 'is_admin', False) or not data.get('user_id'):
            data['user_id'] = current_user_id()
        elif not storage.get_user(data['user_id']):
            return jsonify(message="User not found", success=False), 404
        if data.get('order_number') and storage.get_order_by_number(data['order_number']):
            return jsonify(message="Order number already exists.", success=False), 409
        items = [item.model_dump(mode='json', exclude_none=True) for item in payload.items]
        order = order_service.create_order_with_items(storage, data, items)
        current_app.audit_log_service.log_action('order_create', user_id=current_user_id(), target_type='order', target_id=order['id'])
        return jsonify(message="Order created.", order=order_service.order_with_items(storage, order), success=True), 201
    except Exception as e:
        current_app.logger.error(f"Error creating order: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@orders_bp.route('/<int:order_id>', methods=['GET'])
@jwt_required()
def get_order(order_id):
    try:
        order, error = _load_order(order_id)
        if error:
            return error
        return jsonify(order=order_service.order_with_items(current_app.storage, order), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching order {order_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@orders_bp.route('/<int:order_id>/items', methods=['GET'])
@jwt_required()
def get_order_items(order_id):
    try:
        order, error = _load_order(order_id)
        if error:
            return error
        return jsonify(items=current_app.storage.get_order_items(order_id), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching items for order {order_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@orders_bp.route('/<int:order_id>/items', methods=['POST'])
@jwt_required()
def add_order_item(order_id):
    try:
        payload = parse_payload(OrderItemSchema)
    except ValidationError as e:
        return validation_error_response(e)

    try:
        order, error = _load_order(order_id)
        if error:
            return error
        item = order_service.add_order_item(current_app.storage, order_id, payload.model_dump(mode='json', exclude_none=True))
        return jsonify(message="Item added.", item=item, success=True), 201
    except Exception as e:
        current_app.logger.error(f"Error adding item to order {order_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@orders_bp.route('/<int:order_id>/updates', methods=['GET'])
@jwt_required()
def get_order_updates(order_id):
    try:
        order, error = _load_order(order_id)
        if error:
            return error
        return jsonify(updates=current_app.storage.get_order_updates(order_id), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching updates for order {order_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@orders_bp.route('/<int:order_id>/timeline', methods=['GET'])
@jwt_required()
def get_order_timeline(order_id):
    try:
        order, error = _load_order(order_id)
        if error:
            return error
        return jsonify(timeline=current_app.storage.get_delivery_timeline(order_id), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching delivery timeline for order {order_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@orders_bp.route('/<int:order_id>/environmental-impact', methods=['GET'])
@jwt_required()
def get_order_environmental_impact(order_id):
    try:
        order, error = _load_order(order_id)
        if error:
            return error
        return jsonify(impact=current_app.storage.get_impact_for_order(order_id), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching impact for order {order_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500
