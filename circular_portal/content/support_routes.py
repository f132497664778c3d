# circular_portal/content/support_routes.py
from flask import jsonify, current_app
from flask_jwt_extended import jwt_required
from pydantic import ValidationError

from . import content_bp
from ..schemas import SupportTicketCreateSchema, CaseStudyCreateSchema
from ..utils import current_user_id, owns_record, parse_payload, validation_error_response


@content_bp.route('/support-tickets', methods=['GET'])
@jwt_required()
def list_my_support_tickets():
    try:
        tickets = current_app.storage.list_support_tickets_for_user(current_user_id())
        return jsonify(tickets=tickets, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching support tickets for user {current_user_id()}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@content_bp.route('/support-tickets', methods=['POST'])
@jwt_required()
def create_support_ticket():
    try:
        payload = parse_payload(SupportTicketCreateSchema)
    except ValidationError as e:
        return validation_error_response(e)

    storage = current_app.storage
    user_id = current_user_id()
    try:
        data = payload.model_dump(mode='json', exclude_none=True)
        if data.get('order_id'):
            order = storage.get_order(data['order_id'])
            if not order or not owns_record(order):
                return jsonify(message="Order not found", success=False), 404
        ticket = storage.create_support_ticket(dict(data, user_id=user_id))
        current_app.logger.info(f"Support ticket {ticket['ticket_number']} opened by user {user_id}")
        return jsonify(message="Support ticket created.", ticket=ticket, success=True), 201
    except Exception as e:
        current_app.logger.error(f"Error creating support ticket: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@content_bp.route('/support-tickets/<int:ticket_id>', methods=['GET'])
@jwt_required()
def get_support_ticket(ticket_id):
    try:
        ticket = current_app.storage.get_support_ticket(ticket_id)
        if not ticket:
            return jsonify(message="Support ticket not found", success=False), 404
        if not owns_record(ticket):
            return jsonify(message="You do not have access to this ticket.", success=False), 403
        return jsonify(ticket=ticket, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching support ticket {ticket_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@content_bp.route('/case-studies', methods=['GET'])
@jwt_required()
def list_my_case_studies():
    try:
        return jsonify(case_studies=current_app.storage.list_case_studies_for_user(current_user_id()), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching case studies for user {current_user_id()}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@content_bp.route('/case-studies', methods=['POST'])
@jwt_required()
def create_case_study():
    """Customers volunteer for a case study; an admin approves it later."""
    try:
        payload = parse_payload(CaseStudyCreateSchema)
    except ValidationError as e:
        return validation_error_response(e)

    try:
        case_study = current_app.storage.create_case_study(
            dict(payload.model_dump(mode='json', exclude_none=True), user_id=current_user_id())
        )
        return jsonify(message="Thank you! Your case study request was received.", case_study=case_study, success=True), 201
    except Exception as e:
        current_app.logger.error(f"Error creating case study: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500
