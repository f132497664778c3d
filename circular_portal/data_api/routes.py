# circular_portal/data_api/routes.py
from flask import jsonify, current_app, g
from pydantic import ValidationError

from . import data_api_bp
from ..schemas import DataUserSchema, DataOrderSchema, DataRmaSchema, DataWarrantyBulkSchema
from ..services import order_service
from ..utils import api_key_required, parse_payload, validation_error_response


def _log_push(action, target_type, target_id, details):
    current_app.audit_log_service.log_action(action, target_type=target_type, target_id=target_id,
                                             details=f"API key {g.api_key['key_prefix']}: {details}")

@data_api_bp.route('/users', methods=['POST'])
@api_key_required
def push_user():
    try:
        payload = parse_payload(DataUserSchema)
    except ValidationError as e:
        return validation_error_response(e)

    storage = current_app.storage
    try:
        data = payload.model_dump(mode='json', exclude_unset=True, exclude_none=True)
        existing = storage.get_user_by_email(payload.email)
        if existing:
            if data.get('username'):
                other = storage.get_user_by_username(data['username'])
                if other and other['id'] != existing['id']:
                    return jsonify(message="Username is already in use.", success=False), 409
            user = storage.update_user(existing['id'], data)
            _log_push('data_push_user_update', 'user', user['id'], user['email'])
            return jsonify(user=user, created=False, success=True), 200

        if not data.get('name'):
            return jsonify(message="A name is required to create a user.", success=False), 400
        if data.get('username') and storage.get_user_by_username(data['username']):
            return jsonify(message="Username is already in use.", success=False), 409
        user = storage.create_user(dict({'company': ''}, **data, is_active=True))
        _log_push('data_push_user_create', 'user', user['id'], user['email'])
        return jsonify(user=user, created=True, success=True), 201
    except Exception as e:
        current_app.logger.error(f"Error in data push for user {payload.email}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@data_api_bp.route('/orders', methods=['POST'])
@api_key_required
def push_order():
    try:
        payload = parse_payload(DataOrderSchema)
    except ValidationError as e:
        return validation_error_response(e)

    storage = current_app.storage
    try:
        data = payload.model_dump(mode='json', exclude_unset=True, exclude_none=True, exclude={'order_number', 'email', 'items'})
        items = [item.model_dump(mode='json', exclude_none=True) for item in payload.items] if payload.items is not None else None
        try:
            order, created = order_service.upsert_pushed_order(
                storage, current_app.scoring_service, payload.order_number, payload.email, data, items
            )
        except LookupError:
            return jsonify(message=f"No user with email {payload.email}", success=False), 404
        _log_push('data_push_order', 'order', order['id'], f"{order['order_number']} ({'created' if created else 'updated'})")
        return jsonify(order=order_service.order_with_items(storage, order), created=created, success=True), 201 if created else 200
    except Exception as e:
        current_app.logger.error(f"Error in data push for order {payload.order_number}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@data_api_bp.route('/rmas', methods=['POST'])
@api_key_required
def push_rma():
    try:
        payload = parse_payload(DataRmaSchema)
    except ValidationError as e:
        return validation_error_response(e)

    storage = current_app.storage
    try:
        data = payload.model_dump(mode='json', exclude_unset=True, exclude_none=True, exclude={'rma_number', 'email', 'order_number', 'items'})
        if payload.order_number:
            order = storage.get_order_by_number(payload.order_number)
            if not order:
                return jsonify(message=f"No order with number {payload.order_number}", success=False), 404
            data['order_id'] = order['id']
        items = [item.model_dump(mode='json', exclude_none=True) for item in payload.items] if payload.items is not None else None
        try:
            rma, created = storage.upsert_rma(payload.rma_number, payload.email, data, items)
        except LookupError:
            return jsonify(message=f"No user with email {payload.email}", success=False), 404
        except ValueError as e:
            return jsonify(message=str(e), success=False), 400
        _log_push('data_push_rma', 'rma', rma['id'], f"{rma['rma_number']} ({'created' if created else 'updated'})")
        rma = dict(rma, items=storage.get_rma_items(rma['id']))
        return jsonify(rma=rma, created=created, success=True), 201 if created else 200
    except Exception as e:
        current_app.logger.error(f"Error in data push for RMA {payload.rma_number}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@data_api_bp.route('/warranties', methods=['POST'])
@api_key_required
def push_warranties():
    """Bulk upsert by serial number; `truncate` clears the table first."""
    try:
        payload = parse_payload(DataWarrantyBulkSchema)
    except ValidationError as e:
        return validation_error_response(e)

    try:
        records = [record.model_dump(mode='json', exclude_none=True) for record in payload.records]
        warranties = current_app.storage.bulk_replace_warranties(records, truncate=payload.truncate)
        _log_push('data_push_warranties', 'warranty', None, f"{len(warranties)} records, truncate={payload.truncate}")
        return jsonify(count=len(warranties), truncated=payload.truncate, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error in bulk warranty upload: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500
