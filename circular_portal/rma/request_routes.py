# circular_portal/rma/request_routes.py
# Customer warranty claims. Submitting one always answers 201 once the
# request log is stored; how the back office was told is recorded on the log.

from flask import jsonify, current_app
from flask_jwt_extended import jwt_required
from pydantic import ValidationError

from . import rma_requests_bp
from ..schemas import WarrantyClaimSchema
from ..utils import current_user_id, parse_payload, validation_error_response


@rma_requests_bp.route('', methods=['GET'])
@jwt_required()
def list_my_rma_requests():
    try:
        request_logs = current_app.storage.list_rma_request_logs_for_user(current_user_id())
        return jsonify(requests=request_logs, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching RMA requests for user {current_user_id()}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@rma_requests_bp.route('', methods=['POST'])
@jwt_required()
def submit_rma_request():
    try:
        claim = parse_payload(WarrantyClaimSchema)
    except ValidationError as e:
        return validation_error_response(e)

    audit_logger = current_app.audit_log_service
    try:
        current_user = current_app.storage.get_user(current_user_id())
        if not current_user:
            return jsonify(message="User not found", success=False), 404

        request_log, pending_created = current_app.rma_notification_service.submit_request(current_user, claim)
        audit_logger.log_action('rma_request_submit', user_id=current_user['id'], target_type='rma_request_log',
                                target_id=request_log['id'],
                                details=f"{request_log['request_number']} via {request_log.get('notification_channel') or 'pending'}")
        return jsonify(
            message="Warranty claim submitted.",
            request=request_log,
            pending_user_created=pending_created,
            success=True,
        ), 201
    except Exception as e:
        current_app.logger.error(f"Error submitting RMA request: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500
