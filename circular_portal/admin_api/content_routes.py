# circular_portal/admin_api/content_routes.py
# Admin management of support tickets, case studies and water projects

from flask import request, jsonify, current_app
from pydantic import ValidationError

from . import admin_api_bp
from ..schemas import SupportTicketUpdateSchema, CaseStudyUpdateSchema, WaterProjectSchema, WaterProjectUpdateSchema
from ..utils import admin_required, current_user_id, parse_bool_arg, parse_payload, validation_error_response


def _changes(payload):
    return {k: v for k, v in payload.model_dump(mode='json', exclude_unset=True).items() if v is not None}

# --- Support tickets ---

@admin_api_bp.route('/support-tickets', methods=['GET'])
@admin_required
def get_support_tickets_admin():
    try:
        filters = {'status': request.args.get('status'), 'user_id': request.args.get('user_id', type=int)}
        tickets = current_app.storage.list_support_tickets(filters)
        return jsonify(tickets=tickets, total=len(tickets), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching support tickets for admin: {e}", exc_info=True)
        return jsonify(message="Failed to fetch support tickets.", success=False), 500

@admin_api_bp.route('/support-tickets/<int:ticket_id>', methods=['PUT', 'PATCH'])
@admin_required
def update_support_ticket_admin(ticket_id):
    try:
        payload = parse_payload(SupportTicketUpdateSchema)
    except ValidationError as e:
        return validation_error_response(e)

    try:
        ticket = current_app.storage.update_support_ticket(ticket_id, _changes(payload))
        if not ticket:
            return jsonify(message="Support ticket not found", success=False), 404
        current_app.audit_log_service.log_action('admin_update_support_ticket', user_id=current_user_id(),
                                                 target_type='support_ticket', target_id=ticket_id)
        return jsonify(message="Support ticket updated.", ticket=ticket, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error updating support ticket {ticket_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/support-tickets/<int:ticket_id>', methods=['DELETE'])
@admin_required
def delete_support_ticket_admin(ticket_id):
    try:
        if not current_app.storage.delete_support_ticket(ticket_id):
            return jsonify(message="Support ticket not found", success=False), 404
        current_app.audit_log_service.log_action('admin_delete_support_ticket', user_id=current_user_id(),
                                                 target_type='support_ticket', target_id=ticket_id)
        return jsonify(message="Support ticket deleted.", success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error deleting support ticket {ticket_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

# --- Case studies ---

@admin_api_bp.route('/case-studies', methods=['GET'])
@admin_required
def get_case_studies_admin():
    try:
        filters = {'approved': parse_bool_arg('approved'), 'featured': parse_bool_arg('featured')}
        case_studies = current_app.storage.list_case_studies(filters)
        return jsonify(case_studies=case_studies, total=len(case_studies), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching case studies for admin: {e}", exc_info=True)
        return jsonify(message="Failed to fetch case studies.", success=False), 500

@admin_api_bp.route('/case-studies/<int:case_study_id>', methods=['PUT', 'PATCH'])
@admin_required
def update_case_study_admin(case_study_id):
    try:
        payload = parse_payload(CaseStudyUpdateSchema)
    except ValidationError as e:
        return validation_error_response(e)

    try:
        case_study = current_app.storage.update_case_study(case_study_id, _changes(payload))
        if not case_study:
            return jsonify(message="Case study not found", success=False), 404
        current_app.audit_log_service.log_action('admin_update_case_study', user_id=current_user_id(),
                                                 target_type='case_study', target_id=case_study_id)
        return jsonify(message="Case study updated.", case_study=case_study, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error updating case study {case_study_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/case-studies/<int:case_study_id>', methods=['DELETE'])
@admin_required
def delete_case_study_admin(case_study_id):
    try:
        if not current_app.storage.delete_case_study(case_study_id):
            return jsonify(message="Case study not found", success=False), 404
        current_app.audit_log_service.log_action('admin_delete_case_study', user_id=current_user_id(),
                                                 target_type='case_study', target_id=case_study_id)
        return jsonify(message="Case study deleted.", success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error deleting case study {case_study_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

# --- Water projects ---

@admin_api_bp.route('/water-projects', methods=['GET'])
@admin_required
def get_water_projects_admin():
    try:
        return jsonify(projects=current_app.storage.list_water_projects(), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching water projects for admin: {e}", exc_info=True)
        return jsonify(message="Failed to fetch water projects.", success=False), 500

@admin_api_bp.route('/water-projects', methods=['POST'])
@admin_required
def create_water_project_admin():
    try:
        payload = parse_payload(WaterProjectSchema)
    except ValidationError as e:
        return validation_error_response(e)

    try:
        project = current_app.storage.create_water_project(payload.model_dump(mode='json'))
        current_app.audit_log_service.log_action('admin_create_water_project', user_id=current_user_id(),
                                                 target_type='water_project', target_id=project['id'])
        return jsonify(message="Water project created.", project=project, success=True), 201
    except Exception as e:
        current_app.logger.error(f"Error creating water project: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/water-projects/<int:project_id>', methods=['PUT', 'PATCH'])
@admin_required
def update_water_project_admin(project_id):
    try:
        payload = parse_payload(WaterProjectUpdateSchema)
    except ValidationError as e:
        return validation_error_response(e)

    try:
        project = current_app.storage.update_water_project(project_id, _changes(payload))
        if not project:
            return jsonify(message="Water project not found", success=False), 404
        current_app.audit_log_service.log_action('admin_update_water_project', user_id=current_user_id(),
                                                 target_type='water_project', target_id=project_id)
        return jsonify(message="Water project updated.", project=project, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error updating water project {project_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/water-projects/<int:project_id>', methods=['DELETE'])
@admin_required
def delete_water_project_admin(project_id):
    try:
        if not current_app.storage.delete_water_project(project_id):
            return jsonify(message="Water project not found", success=False), 404
        current_app.audit_log_service.log_action('admin_delete_water_project', user_id=current_user_id(),
                                                 target_type='water_project', target_id=project_id)
        return jsonify(message="Water project deleted.", success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error deleting water project {project_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500
