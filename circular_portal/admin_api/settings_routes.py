# circular_portal/admin_api/settings_routes.py
# Admin-editable settings, each stored as one JSON value in system_settings.

from flask import jsonify, current_app
from pydantic import ValidationError

from . import admin_api_bp
from ..content.public_routes import THEME_DEFAULTS
from ..schemas import AdminSettingsSchema, ThemeSettingsSchema, SustainabilityMetricsSchema, EsgParametersSchema
from ..services import impact_service
from ..utils import admin_required, current_user_id, parse_payload, validation_error_response

ADMIN_SETTINGS_DEFAULTS = {
    'visible_tabs': None,
    'rma_notification_emails': [],
    'new_user_alert_emails': [],
    'rma_webhook_url': None,
}


def _log_setting_change(key):
    current_app.audit_log_service.log_action('admin_update_setting', user_id=current_user_id(),
                                             target_type='system_setting', details=f"Setting '{key}' updated")

@admin_api_bp.route('/settings', methods=['GET'])
@admin_required
def get_admin_settings():
    try:
        settings = {**ADMIN_SETTINGS_DEFAULTS, **(current_app.storage.get_setting('admin_settings') or {})}
        return jsonify(settings=settings, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching admin settings: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/settings', methods=['PUT'])
@admin_required
def update_admin_settings():
    try:
        payload = parse_payload(AdminSettingsSchema)
    except ValidationError as e:
        return validation_error_response(e)

    try:
        current_app.storage.set_setting('admin_settings', payload.model_dump(mode='json'))
        _log_setting_change('admin_settings')
        return jsonify(message="Settings saved.", settings=payload.model_dump(mode='json'), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error saving admin settings: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/theme', methods=['GET'])
@admin_required
def get_theme_settings():
    try:
        theme = {**THEME_DEFAULTS, **(current_app.storage.get_setting('theme') or {})}
        return jsonify(theme=theme, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching theme settings: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/theme', methods=['PUT'])
@admin_required
def update_theme_settings():
    try:
        payload = parse_payload(ThemeSettingsSchema)
    except ValidationError as e:
        return validation_error_response(e)

    storage = current_app.storage
    try:
        theme = {**THEME_DEFAULTS, **(storage.get_setting('theme') or {}), **payload.model_dump(mode='json', exclude_unset=True)}
        storage.set_setting('theme', theme)
        _log_setting_change('theme')
        return jsonify(message="Theme saved.", theme=theme, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error saving theme settings: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/sustainability-metrics', methods=['GET'])
@admin_required
def get_sustainability_metrics():
    try:
        return jsonify(metrics=impact_service.get_sustainability_metrics(current_app.storage), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching sustainability metrics: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/sustainability-metrics', methods=['PUT'])
@admin_required
def update_sustainability_metrics():
    """Saves the per-laptop metrics and recalculates the impact of every order."""
    try:
        payload = parse_payload(SustainabilityMetricsSchema)
    except ValidationError as e:
        return validation_error_response(e)

    storage = current_app.storage
    try:
        storage.set_setting('sustainability_metrics', payload.model_dump(mode='json'))
        recalculated = impact_service.recalculate_all_impacts(storage)
        current_app.logger.info(f"Sustainability metrics updated; impact recalculated for {recalculated} orders")
        _log_setting_change('sustainability_metrics')
        return jsonify(message="Sustainability metrics saved.", metrics=payload.model_dump(mode='json'),
                       orders_recalculated=recalculated, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error saving sustainability metrics: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/esg-parameters', methods=['GET'])
@admin_required
def get_esg_parameters():
    scoring = current_app.scoring_service
    try:
        leaderboard = current_app.storage.get_setting('leaderboard_config') or {}
        return jsonify(
            weights=scoring.get_weights(),
            normalization=scoring.get_normalization(),
            anonymize_leaderboard=leaderboard.get('anonymize_names', True),
            success=True,
        ), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching ESG parameters: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/esg-parameters', methods=['PUT'])
@admin_required
def update_esg_parameters():
    try:
        payload = parse_payload(EsgParametersSchema)
    except ValidationError as e:
        return validation_error_response(e)

    storage = current_app.storage
    try:
        if payload.weights is not None:
            storage.set_setting('scoring_weights', payload.weights.model_dump(mode='json'))
        if payload.normalization is not None:
            storage.set_setting('scoring_normalization', payload.normalization.model_dump(mode='json'))
        if payload.anonymize_leaderboard is not None:
            leaderboard = dict(storage.get_setting('leaderboard_config') or {}, anonymize_names=payload.anonymize_leaderboard)
            storage.set_setting('leaderboard_config', leaderboard)
        _log_setting_change('esg_parameters')
        scoring = current_app.scoring_service
        return jsonify(message="ESG parameters saved.", weights=scoring.get_weights(),
                       normalization=scoring.get_normalization(), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error saving ESG parameters: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500
