# circular_portal/gamification/routes.py
# ESG score, tiers, achievements, milestones and leaderboard for the logged-in customer.

from flask import request, jsonify, current_app
from flask_jwt_extended import jwt_required

from . import gamification_bp
from ..storage.base import XP_PER_LEVEL
from ..utils import current_user_id


@gamification_bp.route('/score', methods=['GET'])
@jwt_required()
def get_score():
    user_id = current_user_id()
    try:
        score = current_app.scoring_service.calculate_user_esg_score(user_id)
        rank, total_users = current_app.scoring_service.get_user_rank(user_id)
        return jsonify(score=score, rank=rank, total_users=total_users, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error calculating ESG score for user {user_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@gamification_bp.route('/calculate-score', methods=['POST'])
@jwt_required()
def calculate_score():
    user_id = current_user_id()
    try:
        result = current_app.scoring_service.update_user_esg_score(user_id)
        return jsonify(score=result, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error updating ESG score for user {user_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@gamification_bp.route('/leaderboard', methods=['GET'])
@jwt_required()
def get_leaderboard():
    limit = min(max(request.args.get('limit', 10, type=int), 1), 100)
    try:
        return jsonify(leaderboard=current_app.scoring_service.get_leaderboard(limit), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error building leaderboard: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@gamification_bp.route('/benchmark', methods=['GET'])
@jwt_required()
def get_benchmark():
    user_id = current_user_id()
    try:
        return jsonify(benchmark=current_app.scoring_service.get_benchmark_comparison(user_id), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error building benchmark for user {user_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@gamification_bp.route('/tiers', methods=['GET'])
@jwt_required()
def get_tiers():
    try:
        return jsonify(tiers=current_app.storage.list_tiers(), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching tiers: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@gamification_bp.route('/achievements', methods=['GET'])
@jwt_required()
def get_achievements():
    try:
        return jsonify(achievements=current_app.storage.list_achievements(active_only=True), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching achievements: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@gamification_bp.route('/user-achievements', methods=['GET'])
@jwt_required()
def get_user_achievements():
    storage = current_app.storage
    user_id = current_user_id()
    try:
        progress_by_achievement = {p['achievement_id']: p for p in storage.list_achievement_progress(user_id)}
        achievements = []
        for achievement in storage.list_achievements(active_only=True):
            progress = progress_by_achievement.get(achievement['id'])
            achievements.append(dict(
                achievement,
                current_value=progress['current_value'] if progress else 0,
                progress_percent=progress['progress_percent'] if progress else 0,
                is_unlocked=bool(progress and progress['is_unlocked']),
                unlocked_at=progress['unlocked_at'] if progress else None,
            ))
        return jsonify(achievements=achievements, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching achievements for user {user_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@gamification_bp.route('/milestones', methods=['GET'])
@jwt_required()
def get_milestones():
    storage = current_app.storage
    user_id = current_user_id()
    try:
        reached = {event['milestone_id']: event for event in storage.list_milestone_events(user_id)}
        milestones = [
            dict(m, is_reached=m['id'] in reached, reached_at=reached[m['id']]['reached_at'] if m['id'] in reached else None)
            for m in storage.list_milestones(active_only=True)
        ]
        return jsonify(milestones=milestones, success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching milestones for user {user_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500

@gamification_bp.route('/user-progress', methods=['GET'])
@jwt_required()
def get_user_progress():
    user_id = current_user_id()
    try:
        progress = current_app.storage.get_user_progress(user_id) or {
            'user_id': user_id, 'level': 1, 'experience_points': 0, 'total_points': 0,
            'current_streak': 0, 'longest_streak': 0, 'last_activity_date': None,
        }
        next_level_at = progress['level'] * XP_PER_LEVEL
        return jsonify(progress=dict(progress, next_level_at=next_level_at), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error fetching progress for user {user_id}: {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500
