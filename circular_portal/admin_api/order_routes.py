# circular_portal/admin_api/order_routes.py
# Admin Order Management

from flask import request, jsonify, current_app
from pydantic import ValidationError

from . import admin_api_bp
from ..schemas import OrderCreateSchema, OrderUpdateSchema, OrderItemSchema
from ..services import order_service
from ..utils import admin_required, current_user_id, parse_payload, validation_error_response

NON_NULLABLE_ORDER_FIELDS = ('status', 'total_amount', 'saved_amount')


@admin_api_bp.route('/orders', methods=['GET'])
@admin_required
def get_orders_admin():
    storage = current_app.storage
    try:
        filters = {
            'search': request.args.get('search'),
            'status': request.args.get('status'),
            'user_id': request.args.get('user_id', type=int),
        }
        orders = [order_service.order_with_items(storage, order) for order in storage.list_orders(filters)]
        return jsonify(orders=orders, total=len(orders), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching orders for admin: {e}", exc_info=True)
        return jsonify(message="Failed to fetch orders.", success=False), 500

@admin_api_bp.route('/orders/<int:order_id>', methods=['GET'])
@admin_required
def get_order_admin_detail(order_id):
    storage = current_app.storage
    try:
        order = storage.get_order(order_id)
        if not order:
            return jsonify(message="Order not found", success=False), 404
        return jsonify(
            order=order_service.order_with_items(storage, order),
            updates=storage.get_order_updates(order_id),
            timeline=storage.get_delivery_timeline(order_id),
            impact=storage.get_impact_for_order(order_id),
            success=True,
        ), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching order {order_id} for admin: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/orders', methods=['POST'])
@admin_required
def create_order_admin():
    try:
        payload = parse_payload(OrderCreateSchema)
    except ValidationError as e:
        return validation_error_response(e)

    storage = current_app.storage
    try:
        data = payload.model_dump(mode='json', exclude_none=True, exclude={'items'})
        if not data.get('user_id') or not storage.get_user(data['user_id']):
            return jsonify(message="A valid user_id is required.", success=False), 400
        if data.get('order_number') and storage.get_order_by_number(data['order_number']):
            return jsonify(message="Order number already exists.", success=False), 409
        items = [item.model_dump(mode='json', exclude_none=True) for item in payload.items]
        order = order_service.create_order_with_items(storage, data, items)
        current_app.audit_log_service.log_action('admin_create_order', user_id=current_user_id(), target_type='order',
                                                 target_id=order['id'], details=order['order_number'])
        return jsonify(message="Order created.", order=order_service.order_with_items(storage, order), success=True), 201
    except Exception as e:
        current_app.logger.error(f"Error creating order (admin): {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/orders/<int:order_id>', methods=['PUT', 'PATCH'])
@admin_required
def update_order_admin(order_id):
    try:
        payload = parse_payload(OrderUpdateSchema)
    except ValidationError as e:
        return validation_error_response(e)

    storage = current_app.storage
    try:
        order = storage.get_order(order_id)
        if not order:
            return jsonify(message="Order not found", success=False), 404
        changes = payload.model_dump(mode='json', exclude_unset=True, exclude={'items', 'status_message'})
        changes = {k: v for k, v in changes.items() if v is not None or k not in NON_NULLABLE_ORDER_FIELDS}
        items = [item.model_dump(mode='json', exclude_none=True) for item in payload.items] if payload.items is not None else None
        updated = order_service.apply_order_changes(
            storage, current_app.scoring_service, order, changes, items=items, status_message=payload.status_message
        )
        current_app.audit_log_service.log_action('admin_update_order', user_id=current_user_id(), target_type='order',
                                                 target_id=order_id, details=f"Updated fields: {', '.join(sorted(changes)) or 'none'}")
        return jsonify(message="Order updated.", order=order_service.order_with_items(storage, updated), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error updating order {order_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/orders/<int:order_id>/items', methods=['PUT'])
@admin_required
def replace_order_items_admin(order_id):
    raw_items = request.get_json(silent=True)
    if isinstance(raw_items, dict):
        raw_items = raw_items.get('items')
    if not isinstance(raw_items, list):
        return jsonify(message="A list of items is required.", success=False), 400
    try:
        items = [OrderItemSchema.model_validate(item).model_dump(mode='json', exclude_none=True) for item in raw_items]
    except ValidationError as e:
        return validation_error_response(e)

    storage = current_app.storage
    try:
        order = storage.get_order(order_id)
        if not order:
            return jsonify(message="Order not found", success=False), 404
        order_service.apply_order_changes(storage, current_app.scoring_service, order, {}, items=items)
        current_app.audit_log_service.log_action('admin_replace_order_items', user_id=current_user_id(), target_type='order',
                                                 target_id=order_id, details=f"{len(items)} items")
        return jsonify(items=storage.get_order_items(order_id), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error replacing items of order {order_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/orders/<int:order_id>', methods=['DELETE'])
@admin_required
def delete_order_admin(order_id):
    try:
        if not current_app.storage.delete_order(order_id):
            return jsonify(message="Order not found", success=False), 404
        current_app.audit_log_service.log_action('admin_delete_order', user_id=current_user_id(), target_type='order', target_id=order_id)
        return jsonify(message="Order deleted.", success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error deleting order {order_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500
