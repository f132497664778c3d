# circular_portal/admin_api/dashboard_routes.py
from flask import request, jsonify, current_app

from . import admin_api_bp
from ..utils import admin_required


@admin_api_bp.route('/stats', methods=['GET'])
@admin_required
def get_dashboard_stats():
    try:
        stats = current_app.storage.get_dashboard_stats()
        return jsonify(stats=stats, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching dashboard stats: {e}", exc_info=True)
        return jsonify(message="Failed to fetch dashboard statistics.", success=False), 500

@admin_api_bp.route('/audit-logs', methods=['GET'])
@admin_required
def get_audit_logs():
    limit = min(max(request.args.get('limit', 100, type=int), 1), 1000)
    try:
        return jsonify(audit_logs=current_app.storage.list_audit_logs(limit), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching audit logs: {e}", exc_info=True)
        return jsonify(message="Failed to fetch audit logs.", success=False), 500
