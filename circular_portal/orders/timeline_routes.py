# circular_portal/orders/timeline_routes.py
# Post-purchase checklist shown on the delivery-timeline page.

from flask import jsonify, current_app
from flask_jwt_extended import jwt_required
from pydantic import ValidationError

from . import delivery_timeline_bp
from ..schemas import DeliveryTimelineSchema, DeliveryTimelineCreateSchema
from ..utils import current_user_id, owns_record, parse_payload, validation_error_response


@delivery_timeline_bp.route('', methods=['POST'])
@jwt_required()
def create_delivery_timeline():
    try:
        payload = parse_payload(DeliveryTimelineCreateSchema)
    except ValidationError as e:
        return validation_error_response(e)

    storage = current_app.storage
    try:
        order = storage.get_order(payload.order_id)
        if not order:
            return jsonify(message="Order not found", success=False), 404
        if not owns_record(order):
            return jsonify(message="You do not have access to this order.", success=False), 403
        if storage.get_delivery_timeline(payload.order_id):
            return jsonify(message="A delivery timeline already exists for this order.", success=False), 409
        timeline = storage.create_delivery_timeline(payload.model_dump(mode='json', exclude_none=True))
        return jsonify(timeline=timeline, success=True), 201
    except Exception as e:
        current_app.logger.error(f"Error creating delivery timeline for order {payload.order_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@delivery_timeline_bp.route('/<int:order_id>', methods=['GET'])
@jwt_required()
def get_delivery_timeline(order_id):
    storage = current_app.storage
    try:
        order = storage.get_order(order_id)
        if not order:
            return jsonify(message="Order not found", success=False), 404
        if not owns_record(order):
            return jsonify(message="You do not have access to this order.", success=False), 403
        timeline = storage.get_delivery_timeline(order_id)
        if not timeline:
            return jsonify(message="Delivery timeline not found", success=False), 404
        return jsonify(timeline=timeline, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching delivery timeline for order {order_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@delivery_timeline_bp.route('/<int:order_id>', methods=['PATCH'])
@jwt_required()
def update_delivery_timeline(order_id):
    try:
        payload = parse_payload(DeliveryTimelineSchema)
    except ValidationError as e:
        return validation_error_response(e)

    storage = current_app.storage
    try:
        order = storage.get_order(order_id)
        if not order:
            return jsonify(message="Order not found", success=False), 404
        if not owns_record(order):
            return jsonify(message="You do not have access to this order.", success=False), 403
        updates = payload.model_dump(mode='json', exclude_unset=True)
        timeline = storage.update_delivery_timeline(order_id, updates)
        if timeline is None:
            timeline = storage.create_delivery_timeline(dict(updates, order_id=order_id))
        current_app.logger.info(f"Delivery timeline for order {order_id} updated by user {current_user_id()}")
        return jsonify(timeline=timeline, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error updating delivery timeline for order {order_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500
