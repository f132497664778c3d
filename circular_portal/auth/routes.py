# circular_portal/auth/routes.py
# Session handling. The JWT access token travels in an HTTP-only cookie;
# accounts are created by admins or the data-push API, never by self sign-up.

from flask import request, jsonify, current_app
from flask_jwt_extended import create_access_token, jwt_required, set_access_cookies, unset_jwt_cookies
from pydantic import ValidationError

from . import auth_bp
from ..schemas import LoginSchema
from ..utils import current_user_id, parse_payload, validation_error_response


def _session_claims(user):
    return {'is_admin': bool(user['is_admin']), 'role': 'admin' if user['is_admin'] else 'customer', 'email': user['email']}

@auth_bp.route('/register', methods=['POST'])
def register():
    return jsonify(message="Registration is disabled. Please contact an administrator for an account.", success=False), 403

@auth_bp.route('/login', methods=['POST'])
def login():
    audit_logger = current_app.audit_log_service
    try:
        payload = parse_payload(LoginSchema)
    except ValidationError as e:
        return validation_error_response(e)

    try:
        user = current_app.storage.authenticate_user(payload.username, payload.password)
        if not user:
            current_app.logger.warning(f"Failed login attempt for: {payload.username}")
            audit_logger.log_action('login_fail_credentials', email_for_unauthenticated=payload.username,
                                    details="Invalid username or password.", status='failure')
            return jsonify(message="Invalid username or password.", success=False), 401

        if user['pending_approval'] or not user['is_active']:
            reason = "pending approval" if user['pending_approval'] else "inactive"
            audit_logger.log_action('login_fail_account_disabled', user_id=user['id'], target_type='user', target_id=user['id'],
                                    details=f"Account is {reason}.", status='failure')
            return jsonify(message=f"Your account is {reason}. Please contact support.", success=False), 403

        access_token = create_access_token(identity=str(user['id']), additional_claims=_session_claims(user))
        try:
            current_app.storage.update_streak(user['id'])
        except Exception as e:
            current_app.logger.error(f"Could not update activity streak for user {user['id']}: {e}", exc_info=True)

        audit_logger.log_action('login_success', user_id=user['id'], target_type='user', target_id=user['id'])
        response = jsonify(message="Login successful.", user=user, success=True)
        set_access_cookies(response, access_token)
        return response, 200
    except Exception as e:
        current_app.logger.error(f"Error during login for {payload.username}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@auth_bp.route('/logout', methods=['POST'])
def logout():
    response = jsonify(message="Logout successful.", success=True)
    unset_jwt_cookies(response)
    return response, 200

@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def get_me():
    try:
        user = current_app.storage.get_user(current_user_id())
        if not user or not user['is_active']:
            return jsonify(message="User not found or inactive.", success=False), 401
        return jsonify(user=user, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching current user: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500
