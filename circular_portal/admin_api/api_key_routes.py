# circular_portal/admin_api/api_key_routes.py
# API keys for the data-push endpoints. The raw key is returned once, on creation.

from flask import jsonify, current_app
from pydantic import ValidationError

from . import admin_api_bp
from ..schemas import ApiKeyCreateSchema
from ..utils import admin_required, current_user_id, parse_bool_arg, parse_payload, validation_error_response


@admin_api_bp.route('/api-keys', methods=['GET'])
@admin_required
def get_api_keys_admin():
    try:
        keys = current_app.storage.list_api_keys(active_only=bool(parse_bool_arg('active_only')))
        return jsonify(api_keys=keys, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching API keys: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/api-keys', methods=['POST'])
@admin_required
def create_api_key_admin():
    try:
        payload = parse_payload(ApiKeyCreateSchema)
    except ValidationError as e:
        return validation_error_response(e)

    try:
        raw_key, record = current_app.storage.create_api_key(payload.name, created_by=current_user_id(), expires_at=payload.expires_at)
        current_app.audit_log_service.log_action('admin_create_api_key', user_id=current_user_id(), target_type='api_key',
                                                 target_id=record['id'], details=f"Key '{payload.name}' ({record['key_prefix']})")
        return jsonify(
            message="API key created. Copy it now; it will not be shown again.",
            api_key=record,
            key=raw_key,
            success=True,
        ), 201
    except Exception as e:
        current_app.logger.error(f"Error creating API key: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/api-keys/<int:key_id>/revoke', methods=['POST'])
@admin_required
def revoke_api_key_admin(key_id):
    try:
        if not current_app.storage.revoke_api_key(key_id):
            return jsonify(message="API key not found", success=False), 404
        current_app.audit_log_service.log_action('admin_revoke_api_key', user_id=current_user_id(), target_type='api_key', target_id=key_id)
        return jsonify(message="API key revoked.", success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error revoking API key {key_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/api-keys/<int:key_id>', methods=['DELETE'])
@admin_required
def delete_api_key_admin(key_id):
    try:
        if not current_app.storage.delete_api_key(key_id):
            return jsonify(message="API key not found", success=False), 404
        current_app.audit_log_service.log_action('admin_delete_api_key', user_id=current_user_id(), target_type='api_key', target_id=key_id)
        return jsonify(message="API key deleted.", success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error deleting API key {key_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500
