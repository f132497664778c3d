# circular_portal/admin_api/rma_routes.py
# Admin RMA and warranty-claim management

from flask import request, jsonify, current_app
from pydantic import ValidationError

from . import admin_api_bp
from ..rma.rma_routes import rma_with_items
from ..schemas import RmaCreateSchema, RmaUpdateSchema, RmaItemSchema, RmaItemUpdateSchema, RmaRequestStatusSchema
from ..utils import admin_required, current_user_id, parse_payload, validation_error_response


@admin_api_bp.route('/rmas', methods=['GET'])
@admin_required
def get_rmas_admin():
    storage = current_app.storage
    try:
        filters = {
            'search': request.args.get('search'),
            'status': request.args.get('status'),
            'user_id': request.args.get('user_id', type=int),
            'order_id': request.args.get('order_id', type=int),
        }
        rmas = [rma_with_items(storage, rma) for rma in storage.list_rmas(filters)]
        return jsonify(rmas=rmas, total=len(rmas), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching RMAs for admin: {e}", exc_info=True)
        return jsonify(message="Failed to fetch RMAs.", success=False), 500

@admin_api_bp.route('/rmas/<int:rma_id>', methods=['GET'])
@admin_required
def get_rma_admin_detail(rma_id):
    storage = current_app.storage
    try:
        rma = storage.get_rma(rma_id)
        if not rma:
            return jsonify(message="RMA not found", success=False), 404
        return jsonify(rma=rma_with_items(storage, rma), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching RMA {rma_id} for admin: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/rmas', methods=['POST'])
@admin_required
def create_rma_admin():
    try:
        payload = parse_payload(RmaCreateSchema)
    except ValidationError as e:
        return validation_error_response(e)

    storage = current_app.storage
    try:
        data = payload.model_dump(mode='json', exclude_none=True, exclude={'items'})
        if not data.get('user_id') or not storage.get_user(data['user_id']):
            return jsonify(message="A valid user_id is required.", success=False), 400
        if data.get('order_id') and not storage.get_order(data['order_id']):
            return jsonify(message="Order not found", success=False), 404
        rma = storage.create_rma(data)
        storage.add_rma_items(rma['id'], [item.model_dump(mode='json', exclude_none=True) for item in payload.items])
        current_app.audit_log_service.log_action('admin_create_rma', user_id=current_user_id(), target_type='rma',
                                                 target_id=rma['id'], details=rma['rma_number'])
        return jsonify(message="RMA created.", rma=rma_with_items(storage, rma), success=True), 201
    except Exception as e:
        current_app.logger.error(f"Error creating RMA (admin): {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/rmas/<int:rma_id>', methods=['PUT', 'PATCH'])
@admin_required
def update_rma_admin(rma_id):
    try:
        payload = parse_payload(RmaUpdateSchema)
    except ValidationError as e:
        return validation_error_response(e)

    storage = current_app.storage
    try:
        rma = storage.get_rma(rma_id)
        if not rma:
            return jsonify(message="RMA not found", success=False), 404
        changes = payload.model_dump(mode='json', exclude_unset=True, exclude={'items'})
        changes = {k: v for k, v in changes.items() if v is not None or k not in ('status', 'reason')}
        if changes:
            rma = storage.update_rma(rma_id, changes)
        if payload.items is not None:
            storage.replace_rma_items(rma_id, [item.model_dump(mode='json', exclude_none=True) for item in payload.items])
        current_app.audit_log_service.log_action('admin_update_rma', user_id=current_user_id(), target_type='rma',
                                                 target_id=rma_id, details=f"Updated fields: {', '.join(sorted(changes)) or 'items'}")
        return jsonify(message="RMA updated.", rma=rma_with_items(storage, rma), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error updating RMA {rma_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/rmas/<int:rma_id>', methods=['DELETE'])
@admin_required
def delete_rma_admin(rma_id):
    try:
        if not current_app.storage.delete_rma(rma_id):
            return jsonify(message="RMA not found", success=False), 404
        current_app.audit_log_service.log_action('admin_delete_rma', user_id=current_user_id(), target_type='rma', target_id=rma_id)
        return jsonify(message="RMA deleted.", success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error deleting RMA {rma_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/rmas/<int:rma_id>/items', methods=['POST'])
@admin_required
def add_rma_items_admin(rma_id):
    raw_items = request.get_json(silent=True)
    if isinstance(raw_items, dict):
        raw_items = raw_items.get('items', [raw_items])
    if not isinstance(raw_items, list) or not raw_items:
        return jsonify(message="At least one item is required.", success=False), 400
    try:
        items = [RmaItemSchema.model_validate(item).model_dump(mode='json', exclude_none=True) for item in raw_items]
    except ValidationError as e:
        return validation_error_response(e)

    storage = current_app.storage
    try:
        if not storage.get_rma(rma_id):
            return jsonify(message="RMA not found", success=False), 404
        created = storage.add_rma_items(rma_id, items)
        return jsonify(items=created, success=True), 201
    except Exception as e:
        current_app.logger.error(f"Error adding items to RMA {rma_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/rma-items/<int:item_id>', methods=['PUT', 'PATCH'])
@admin_required
def update_rma_item_admin(item_id):
    try:
        payload = parse_payload(RmaItemUpdateSchema)
    except ValidationError as e:
        return validation_error_response(e)

    try:
        updates = {k: v for k, v in payload.model_dump(mode='json', exclude_unset=True).items() if v is not None}
        if not updates:
            return jsonify(message="No data provided for update.", success=False), 400
        item = current_app.storage.update_rma_item(item_id, updates)
        if not item:
            return jsonify(message="RMA item not found", success=False), 404
        return jsonify(item=item, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error updating RMA item {item_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/rma-items/<int:item_id>', methods=['DELETE'])
@admin_required
def delete_rma_item_admin(item_id):
    try:
        if not current_app.storage.delete_rma_item(item_id):
            return jsonify(message="RMA item not found", success=False), 404
        return jsonify(message="RMA item deleted.", success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error deleting RMA item {item_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

# --- Warranty claims (RMA request logs) ---

@admin_api_bp.route('/rma-requests', methods=['GET'])
@admin_required
def get_rma_requests_admin():
    try:
        filters = {'search': request.args.get('search'), 'status': request.args.get('status')}
        request_logs = current_app.storage.list_rma_request_logs(filters)
        return jsonify(requests=request_logs, total=len(request_logs), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching RMA requests for admin: {e}", exc_info=True)
        return jsonify(message="Failed to fetch RMA requests.", success=False), 500

@admin_api_bp.route('/rma-requests/<int:log_id>', methods=['GET'])
@admin_required
def get_rma_request_admin_detail(log_id):
    try:
        request_log = current_app.storage.get_rma_request_log(log_id)
        if not request_log:
            return jsonify(message="RMA request not found", success=False), 404
        return jsonify(request=request_log, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching RMA request {log_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/rma-requests/<int:log_id>', methods=['PUT', 'PATCH'])
@admin_required
def update_rma_request_status_admin(log_id):
    try:
        payload = parse_payload(RmaRequestStatusSchema)
    except ValidationError as e:
        return validation_error_response(e)

    try:
        request_log = current_app.storage.update_rma_request_log(log_id, {'status': payload.status.value})
        if not request_log:
            return jsonify(message="RMA request not found", success=False), 404
        current_app.audit_log_service.log_action('admin_update_rma_request', user_id=current_user_id(), target_type='rma_request_log',
                                                 target_id=log_id, details=f"Status set to {payload.status.value}")
        return jsonify(message="RMA request updated.", request=request_log, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error updating RMA request {log_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500
