# circular_portal/rma/rma_routes.py
from flask import jsonify, current_app, g
from flask_jwt_extended import jwt_required
from pydantic import ValidationError

from . import rma_bp
from ..schemas import RmaCreateSchema
from ..utils import current_user_id, owns_record, parse_payload, validation_error_response


def rma_with_items(storage, rma):
    return dict(rma, items=storage.get_rma_items(rma['id']))

@rma_bp.route('', methods=['GET'])
@jwt_required()
def list_my_rmas():
    storage = current_app.storage
    try:
        rmas = [rma_with_items(storage, rma) for rma in storage.list_rmas_for_user(current_user_id())]
        return jsonify(rmas=rmas, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching RMAs for user {current_user_id()}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@rma_bp.route('', methods=['POST'])
@jwt_required()
def create_rma():
    try:
        payload = parse_payload(RmaCreateSchema)
    except ValidationError as e:
        return validation_error_response(e)

    storage = current_app.storage
    try:
        data = payload.model_dump(mode='json', exclude_none=True, exclude={'items'})
        if not getattr(g, 'is_admin', False) or not data.get('user_id'):
            data['user_id'] = current_user_id()
        if data.get('order_id'):
            order = storage.get_order(data['order_id'])
            if not order or (order['user_id'] != data['user_id'] and not getattr(g, 'is_admin', False)):
                return jsonify(message="Order not found", success=False), 404

        rma = storage.create_rma(data)
        storage.add_rma_items(rma['id'], [item.model_dump(mode='json', exclude_none=True) for item in payload.items])
        current_app.audit_log_service.log_action('rma_create', user_id=current_user_id(), target_type='rma', target_id=rma['id'])
        return jsonify(message="RMA created.", rma=rma_with_items(storage, rma), success=True), 201
    except Exception as e:
        current_app.logger.error(f"Error creating RMA: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@rma_bp.route('/<int:rma_id>', methods=['GET'])
@jwt_required()
def get_rma(rma_id):
    storage = current_app.storage
    try:
        rma = storage.get_rma(rma_id)
        if not rma:
            return jsonify(message="RMA not found", success=False), 404
        if not owns_record(rma):
            return jsonify(message="You do not have access to this RMA.", success=False), 403
        return jsonify(rma=rma_with_items(storage, rma), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching RMA {rma_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500
