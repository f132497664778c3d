# circular_portal/admin_api/gamification_routes.py
# Admin management of tiers, achievements and milestones

from flask import jsonify, current_app
from pydantic import ValidationError

from . import admin_api_bp
from ..schemas import TierSchema, AchievementSchema, AchievementUpdateSchema, MilestoneSchema, MilestoneUpdateSchema
from ..utils import admin_required, current_user_id, parse_payload, validation_error_response


def _changes(payload):
    return {k: v for k, v in payload.model_dump(mode='json', exclude_unset=True).items() if v is not None}

def _log(action, target_type, target_id):
    current_app.audit_log_service.log_action(action, user_id=current_user_id(), target_type=target_type, target_id=target_id)

# --- Tiers ---

@admin_api_bp.route('/gamification/tiers', methods=['GET'])
@admin_required
def get_tiers_admin():
    try:
        return jsonify(tiers=current_app.storage.list_tiers(active_only=False), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching tiers for admin: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/gamification/tiers', methods=['POST'])
@admin_required
def create_tier_admin():
    try:
        payload = parse_payload(TierSchema)
    except ValidationError as e:
        return validation_error_response(e)
    if payload.max_score is not None and payload.max_score < payload.min_score:
        return jsonify(message="max_score must not be lower than min_score.", success=False), 400

    try:
        tier = current_app.storage.create_tier(payload.model_dump(mode='json', exclude_none=True))
        _log('admin_create_tier', 'gamification_tier', tier['id'])
        return jsonify(tier=tier, success=True), 201
    except Exception as e:
        current_app.logger.error(f"Error creating tier: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/gamification/tiers/<int:tier_id>', methods=['PUT'])
@admin_required
def update_tier_admin(tier_id):
    try:
        payload = parse_payload(TierSchema)
    except ValidationError as e:
        return validation_error_response(e)
    if payload.max_score is not None and payload.max_score < payload.min_score:
        return jsonify(message="max_score must not be lower than min_score.", success=False), 400

    try:
        tier = current_app.storage.update_tier(tier_id, payload.model_dump(mode='json'))
        if not tier:
            return jsonify(message="Tier not found", success=False), 404
        _log('admin_update_tier', 'gamification_tier', tier_id)
        return jsonify(tier=tier, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error updating tier {tier_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

# --- Achievements ---

@admin_api_bp.route('/gamification/achievements', methods=['GET'])
@admin_required
def get_achievements_admin():
    try:
        return jsonify(achievements=current_app.storage.list_achievements(), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching achievements for admin: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/gamification/achievements', methods=['POST'])
@admin_required
def create_achievement_admin():
    try:
        payload = parse_payload(AchievementSchema)
    except ValidationError as e:
        return validation_error_response(e)

    try:
        achievement = current_app.storage.create_achievement(payload.model_dump(mode='json'))
        _log('admin_create_achievement', 'achievement', achievement['id'])
        return jsonify(achievement=achievement, success=True), 201
    except Exception as e:
        current_app.logger.error(f"Error creating achievement: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/gamification/achievements/<int:achievement_id>', methods=['PUT', 'PATCH'])
@admin_required
def update_achievement_admin(achievement_id):
    try:
        payload = parse_payload(AchievementUpdateSchema)
    except ValidationError as e:
        return validation_error_response(e)

    try:
        achievement = current_app.storage.update_achievement(achievement_id, _changes(payload))
        if not achievement:
            return jsonify(message="Achievement not found", success=False), 404
        _log('admin_update_achievement', 'achievement', achievement_id)
        return jsonify(achievement=achievement, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error updating achievement {achievement_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/gamification/achievements/<int:achievement_id>', methods=['DELETE'])
@admin_required
def delete_achievement_admin(achievement_id):
    try:
        if not current_app.storage.delete_achievement(achievement_id):
            return jsonify(message="Achievement not found", success=False), 404
        _log('admin_delete_achievement', 'achievement', achievement_id)
        return jsonify(message="Achievement deleted.", success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error deleting achievement {achievement_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

# --- Milestones ---

@admin_api_bp.route('/gamification/milestones', methods=['GET'])
@admin_required
def get_milestones_admin():
    try:
        return jsonify(milestones=current_app.storage.list_milestones(), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching milestones for admin: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/gamification/milestones', methods=['POST'])
@admin_required
def create_milestone_admin():
    try:
        payload = parse_payload(MilestoneSchema)
    except ValidationError as e:
        return validation_error_response(e)

    try:
        milestone = current_app.storage.create_milestone(payload.model_dump(mode='json'))
        _log('admin_create_milestone', 'milestone', milestone['id'])
        return jsonify(milestone=milestone, success=True), 201
    except Exception as e:
        current_app.logger.error(f"Error creating milestone: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/gamification/milestones/<int:milestone_id>', methods=['PUT', 'PATCH'])
@admin_required
def update_milestone_admin(milestone_id):
    try:
        payload = parse_payload(MilestoneUpdateSchema)
    except ValidationError as e:
        return validation_error_response(e)

    try:
        milestone = current_app.storage.update_milestone(milestone_id, _changes(payload))
        if not milestone:
            return jsonify(message="Milestone not found", success=False), 404
        _log('admin_update_milestone', 'milestone', milestone_id)
        return jsonify(milestone=milestone, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error updating milestone {milestone_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@admin_api_bp.route('/gamification/milestones/<int:milestone_id>', methods=['DELETE'])
@admin_required
def delete_milestone_admin(milestone_id):
    try:
        if not current_app.storage.delete_milestone(milestone_id):
            return jsonify(message="Milestone not found", success=False), 404
        _log('admin_delete_milestone', 'milestone', milestone_id)
        return jsonify(message="Milestone deleted.", success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error deleting milestone {milestone_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500
