# circular_portal/content/public_routes.py
# Routes that need no session.

from flask import jsonify, current_app

from . import content_bp

THEME_DEFAULTS = {
    'company_name': 'Circular Computing',
    'logo_url': None,
    'primary_color': '#08ABAB',
    'secondary_color': '#0F172A',
    'accent_color': '#FFD700',
}


@content_bp.route('/water-projects', methods=['GET'])
def list_water_projects():
    try:
        return jsonify(projects=current_app.storage.list_water_projects(), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching water projects: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@content_bp.route('/water-projects/<int:project_id>', methods=['GET'])
def get_water_project(project_id):
    try:
        project = current_app.storage.get_water_project(project_id)
        if not project:
            return jsonify(message="Water project not found", success=False), 404
        return jsonify(project=project, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching water project {project_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@content_bp.route('/theme', methods=['GET'])
def get_theme():
    try:
        theme = {**THEME_DEFAULTS, **(current_app.storage.get_setting('theme') or {})}
        return jsonify(theme=theme, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching theme settings: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500
