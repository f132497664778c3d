# circular_portal/users/routes.py
# A customer's own profile.

from flask import jsonify, current_app, g
from flask_jwt_extended import jwt_required
from pydantic import ValidationError

from . import users_bp
from ..schemas import ProfileUpdateSchema, ChangePasswordSchema
from ..utils import current_user_id, parse_payload, validation_error_response


def _is_self_or_admin(user_id):
    return user_id == current_user_id() or getattr(g, 'is_admin', False)

@users_bp.route('/<int:user_id>', methods=['GET'])
@jwt_required()
def get_user_profile(user_id):
    if not _is_self_or_admin(user_id):
        return jsonify(message="You can only view your own profile.", success=False), 403
    try:
        user = current_app.storage.get_user(user_id)
        if not user:
            return jsonify(message="User not found", success=False), 404
        return jsonify(user=user, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching user {user_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@users_bp.route('/<int:user_id>', methods=['PATCH'])
@jwt_required()
def update_user_profile(user_id):
    if not _is_self_or_admin(user_id):
        return jsonify(message="You can only update your own profile.", success=False), 403
    try:
        payload = parse_payload(ProfileUpdateSchema)
    except ValidationError as e:
        return validation_error_response(e)

    try:
        updates = payload.model_dump(mode='json', exclude_unset=True)
        if not updates:
            return jsonify(message="No fields to update.", success=False), 400
        user = current_app.storage.update_user(user_id, updates)
        if not user:
            return jsonify(message="User not found", success=False), 404
        current_app.audit_log_service.log_action('profile_update', user_id=current_user_id(), target_type='user',
                                                 target_id=user_id, details=f"Fields: {', '.join(sorted(updates))}")
        return jsonify(message="Profile updated.", user=user, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error updating user {user_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@users_bp.route('/<int:user_id>/change-password', methods=['POST'])
@jwt_required()
def change_password(user_id):
    if user_id != current_user_id():
        return jsonify(message="You can only change your own password.", success=False), 403
    try:
        payload = parse_payload(ChangePasswordSchema)
    except ValidationError as e:
        return validation_error_response(e)

    audit_logger = current_app.audit_log_service
    try:
        ok, error = current_app.storage.change_password(user_id, payload.current_password, payload.new_password)
        if not ok:
            audit_logger.log_action('password_change_fail', user_id=user_id, target_type='user', target_id=user_id,
                                    details=error, status='failure')
            status_code = 404 if error == "User not found" else 400
            return jsonify(message=error, success=False), status_code
        audit_logger.log_action('password_change', user_id=user_id, target_type='user', target_id=user_id)
        return jsonify(message="Password updated.", success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error changing password for user {user_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500
