# circular_portal/services/scoring_service.py
import math
from datetime import datetime, timezone

DEFAULT_WEIGHTS = {'carbon': 40, 'water': 25, 'resources': 20, 'social': 15}
DEFAULT_NORMALIZATION = {
    'base_unit': 1000,
    'social_base_unit': 1,
    'carbon_multiplier': 1,
    'water_multiplier': 0.5,
    'resources_multiplier': 0.8,
    'social_multiplier': 2,
}
PILLARS = ('carbon', 'water', 'resources', 'social')
DEFAULT_TIER_NAME = 'Explorer'
SHIPPING_BONUS_POINTS = 1000
ACHIEVEMENT_METRICS = ('carbon_saved', 'water_provided', 'minerals_saved', 'families_helped', 'orders_count')


def round_half_up(value):
    return int(math.floor(value + 0.5))

def pillar_score(value, multiplier, base_unit):
    """One pillar: the raw impact in base units, scaled by the pillar multiplier."""
    if base_unit <= 0:
        raise ValueError("base_unit must be positive")
    return round_half_up((value or 0) / base_unit * multiplier)

def compute_esg_score(totals, weights=None, normalization=None):
    """
    Pure ESG computation over summed impact totals.

    Returns (total, breakdown) where breakdown holds the four pillar scores
    and total is the rounded weighted sum, weights being percentages.
    """
    weights = weights or DEFAULT_WEIGHTS
    norm = normalization or DEFAULT_NORMALIZATION
    base_unit = norm['base_unit']
    breakdown = {
        'carbon': pillar_score(totals.get('carbon_saved', 0), norm['carbon_multiplier'], base_unit),
        'water': pillar_score(totals.get('water_provided', 0), norm['water_multiplier'], base_unit),
        'resources': pillar_score(totals.get('minerals_saved', 0), norm['resources_multiplier'], base_unit),
        'social': pillar_score(totals.get('families_helped', 0), norm['social_multiplier'], norm.get('social_base_unit', 1)),
    }
    total = round_half_up(sum(breakdown[pillar] * weights[pillar] / 100 for pillar in PILLARS))
    return total, breakdown


class ScoringService:
    """
    ESG scores, tiers, achievements, milestones and leaderboard.
    Scores are recomputed on demand from the stored environmental-impact rows.
    """

    def __init__(self, storage, app=None):
        self.storage = storage
        self.logger = app.logger if app is not None else storage.logger

    def get_weights(self):
        return {**DEFAULT_WEIGHTS, **(self.storage.get_setting('scoring_weights') or {})}

    def get_normalization(self):
        return {**DEFAULT_NORMALIZATION, **(self.storage.get_setting('scoring_normalization') or {})}

    def _shipping_bonuses(self, score_record):
        if not score_record:
            return []
        return list((score_record.get('details') or {}).get('shipping_bonuses', []))

    def calculate_user_esg_score(self, user_id):
        totals = self.storage.get_total_impact(user_id)
        weights = self.get_weights()
        impact_score, breakdown = compute_esg_score(totals, weights, self.get_normalization())

        previous = self.storage.get_current_esg_score(user_id)
        bonus_points = SHIPPING_BONUS_POINTS * len(self._shipping_bonuses(previous))
        total_score = impact_score + bonus_points
        tier = self.storage.get_tier_by_score(total_score)
        previous_score = previous['total_score'] if previous else None

        return {
            'user_id': user_id,
            'total_score': total_score,
            'impact_score': impact_score,
            'bonus_points': bonus_points,
            'breakdown': breakdown,
            'weights': weights,
            'impact_totals': totals,
            'tier_id': tier['id'] if tier else None,
            'tier_name': tier['name'] if tier else DEFAULT_TIER_NAME,
            'tier_color': tier['color'] if tier else None,
            'previous_score': previous_score,
            'score_change': total_score - previous_score if previous_score is not None else 0,
        }

    def update_user_esg_score(self, user_id):
        """Recalculates and stores the user's current score, then awards achievements and milestones."""
        result = self.calculate_user_esg_score(user_id)
        existing = self.storage.get_current_esg_score(user_id)
        record = {
            'total_score': result['total_score'],
            'carbon_score': result['breakdown']['carbon'],
            'water_score': result['breakdown']['water'],
            'resources_score': result['breakdown']['resources'],
            'social_score': result['breakdown']['social'],
            'tier_id': result['tier_id'],
            'details': {
                'impact_totals': result['impact_totals'],
                'weights': result['weights'],
                'shipping_bonuses': self._shipping_bonuses(existing),
            },
            'calculated_at': datetime.now(timezone.utc),
        }
        if existing:
            self.storage.update_esg_score(existing['id'], record)
        else:
            self.storage.create_esg_score(dict(record, user_id=user_id, period='current'))

        result['new_achievements'] = self.check_achievements(user_id)
        result['new_milestones'] = self.check_milestones(user_id, result['total_score'])
        return result

    def check_achievements(self, user_id):
        totals = self.storage.get_total_impact(user_id)
        metrics = dict(totals, orders_count=len(self.storage.list_orders_for_user(user_id)))
        unlocked = []
        for achievement in self.storage.list_achievements(active_only=True):
            progress = self.storage.get_achievement_progress(user_id, achievement['id'])
            if progress and progress['is_unlocked']:
                continue
            value = int(metrics.get(achievement['metric'], 0) or 0)
            threshold = achievement['threshold_value']
            percent = min(round_half_up(value / threshold * 100), 100) if threshold > 0 else 100
            data = {'current_value': value, 'progress_percent': percent}
            if progress:
                self.storage.update_achievement_progress(progress['id'], data)
            else:
                self.storage.create_achievement_progress(dict(data, user_id=user_id, achievement_id=achievement['id']))
            if value >= threshold:
                self.storage.unlock_achievement(user_id, achievement['id'])
                self.storage.add_experience_points(user_id, achievement['reward_points'])
                self.logger.info(f"User {user_id} unlocked achievement '{achievement['name']}'")
                unlocked.append(achievement)
        return unlocked

    def check_milestones(self, user_id, score):
        reached = []
        for milestone in self.storage.list_milestones(active_only=True):
            if score < milestone['required_score'] or self.storage.has_reached_milestone(user_id, milestone['id']):
                continue
            self.storage.create_milestone_event(user_id, milestone['id'], {'score': score})
            self.storage.add_experience_points(user_id, milestone['reward_points'])
            reached.append(milestone)
        return reached

    def get_leaderboard(self, limit=10):
        config = self.storage.get_setting('leaderboard_config') or {}
        anonymize = config.get('anonymize_names', True)
        tiers = {tier['id']: tier for tier in self.storage.list_tiers(active_only=False)}
        entries = []
        for rank, score in enumerate(self.storage.list_top_esg_scores(limit), start=1):
            tier = tiers.get(score['tier_id'])
            display_name = f"User {score['user_id']}"
            if not anonymize:
                user = self.storage.get_user(score['user_id'])
                if user:
                    display_name = user['company'] or user['name']
            entries.append({
                'rank': rank,
                'user_id': score['user_id'],
                'display_name': display_name,
                'total_score': score['total_score'],
                'tier_name': tier['name'] if tier else DEFAULT_TIER_NAME,
                'tier_color': tier['color'] if tier else None,
            })
        return entries

    def get_user_rank(self, user_id):
        scores = self.storage.list_esg_scores()
        for rank, score in enumerate(scores, start=1):
            if score['user_id'] == user_id:
                return rank, len(scores)
        return None, len(scores)

    def get_benchmark_comparison(self, user_id):
        scores = self.storage.list_esg_scores()
        total_users = len(scores)
        if not total_users:
            return {'user_score': 0, 'average_score': 0, 'percentile': 0, 'rank': None, 'total_users': 0}
        average = round_half_up(sum(score['total_score'] for score in scores) / total_users)
        rank, _ = self.get_user_rank(user_id)
        user_score = next((score['total_score'] for score in scores if score['user_id'] == user_id), 0)
        percentile = round_half_up((total_users - rank + 1) / total_users * 100) if rank else 0
        return {
            'user_score': user_score,
            'average_score': average,
            'percentile': percentile,
            'rank': rank,
            'total_users': total_users,
        }

    def award_shipping_bonus(self, user_id, order_id):
        """Adds SHIPPING_BONUS_POINTS once per shipped order. Returns False if already awarded."""
        current = self.storage.get_current_esg_score(user_id)
        if not current:
            self.update_user_esg_score(user_id)
            current = self.storage.get_current_esg_score(user_id)
        bonuses = self._shipping_bonuses(current)
        if order_id in bonuses:
            return False
        bonuses.append(order_id)
        details = dict(current.get('details') or {}, shipping_bonuses=bonuses)
        new_total = current['total_score'] + SHIPPING_BONUS_POINTS
        tier = self.storage.get_tier_by_score(new_total)
        self.storage.update_esg_score(current['id'], {
            'total_score': new_total,
            'tier_id': tier['id'] if tier else None,
            'details': details,
            'calculated_at': datetime.now(timezone.utc),
        })
        self.check_milestones(user_id, new_total)
        self.logger.info(f"Shipping bonus of {SHIPPING_BONUS_POINTS} awarded to user {user_id} for order {order_id}")
        return True
