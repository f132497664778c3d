# circular_portal/admin_api/user_routes.py
# Admin User Management (CRUD)

from flask import request, jsonify, current_app
from pydantic import ValidationError

from . import admin_api_bp
from ..schemas import UserCreateSchema, UserUpdateSchema
from ..utils import admin_required, current_user_id, parse_bool_arg, parse_payload, validation_error_response


@admin_api_bp.route('/users', methods=['GET'])
@admin_required
def get_users_admin():
    try:
        filters = {
            'search': request.args.get('search'),
            'is_active': parse_bool_arg('is_active'),
            'is_admin': parse_bool_arg('is_admin'),
            'pending_approval': parse_bool_arg('pending_approval'),
        }
        users = current_app.storage.list_users(filters)
        return jsonify(users=users, total=len(users), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching users for admin: {e}", exc_info=True)
        return jsonify(message="Failed to fetch users.", success=False), 500

@admin_api_bp.route('/users/<int:user_id>', methods=['GET'])
@admin_required
def get_user_admin_detail(user_id):
    storage = current_app.storage
    try:
        user = storage.get_user(user_id)
        if not user:
            return jsonify(message="User not found", success=False), 404
        return jsonify(
            user=user,
            orders=storage.list_orders_for_user(user_id),
            rmas=storage.list_rmas_for_user(user_id),
            esg_score=storage.get_current_esg_score(user_id),
            success=True,
        ), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching user {user_id} for admin: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/users', methods=['POST'])
@admin_required
def create_user_admin():
    try:
        payload = parse_payload(UserCreateSchema)
    except ValidationError as e:
        return validation_error_response(e)

    storage = current_app.storage
    try:
        if storage.get_user_by_username(payload.username) or storage.get_user_by_email(payload.email):
            return jsonify(message="A user with this username or email already exists.", success=False), 409
        user = storage.create_user(payload.model_dump(mode='json', exclude_none=True))
        current_app.audit_log_service.log_action('admin_create_user', user_id=current_user_id(), target_type='user',
                                                 target_id=user['id'], details=f"Created {user['email']}")
        return jsonify(message="User created.", user=user, success=True), 201
    except Exception as e:
        current_app.logger.error(f"Error creating user: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/users/<int:user_id>', methods=['PUT', 'PATCH'])
@admin_required
def update_user_admin(user_id):
    try:
        payload = parse_payload(UserUpdateSchema)
    except ValidationError as e:
        return validation_error_response(e)

    storage = current_app.storage
    try:
        if not storage.get_user(user_id):
            return jsonify(message="User not found", success=False), 404
        updates = payload.model_dump(mode='json', exclude_unset=True)
        if not updates:
            return jsonify(message="No data provided for update.", success=False), 400
        if updates.get('email'):
            other = storage.get_user_by_email(updates['email'])
            if other and other['id'] != user_id:
                return jsonify(message="Email is already in use.", success=False), 409
        if updates.get('username'):
            other = storage.get_user_by_username(updates['username'])
            if other and other['id'] != user_id:
                return jsonify(message="Username is already in use.", success=False), 409

        user = storage.update_user(user_id, updates)
        changed = ', '.join(sorted(field for field in updates if field != 'password'))
        current_app.audit_log_service.log_action('admin_update_user', user_id=current_user_id(), target_type='user',
                                                 target_id=user_id, details=f"Updated fields: {changed or 'password'}")
        return jsonify(message="User updated.", user=user, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error updating user {user_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/users/<int:user_id>/approve', methods=['POST'])
@admin_required
def approve_user_admin(user_id):
    """Activates a pending account created by a warranty claim."""
    try:
        user = current_app.storage.update_user(user_id, {'is_active': True, 'pending_approval': False})
        if not user:
            return jsonify(message="User not found", success=False), 404
        current_app.audit_log_service.log_action('admin_approve_user', user_id=current_user_id(), target_type='user', target_id=user_id)
        return jsonify(message="User approved.", user=user, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error approving user {user_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/users/<int:user_id>', methods=['DELETE'])
@admin_required
def delete_user_admin(user_id):
    """Deactivates the account; its orders and RMAs are kept."""
    if user_id == current_user_id():
        return jsonify(message="You cannot deactivate your own account.", success=False), 400
    try:
        if not current_app.storage.delete_user(user_id):
            return jsonify(message="User not found", success=False), 404
        current_app.audit_log_service.log_action('admin_deactivate_user', user_id=current_user_id(), target_type='user', target_id=user_id)
        return jsonify(message="User deactivated.", success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error deactivating user {user_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500
