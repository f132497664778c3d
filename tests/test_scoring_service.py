# tests/test_scoring_service.py
import pytest

from circular_portal.services import order_service
from circular_portal.services.scoring_service import (
    DEFAULT_NORMALIZATION, DEFAULT_WEIGHTS, SHIPPING_BONUS_POINTS, compute_esg_score, pillar_score, round_half_up,
)

ONE_LAPTOP_TOTALS = {
    'carbon_saved': 316000, 'water_provided': 190000, 'minerals_saved': 1200000,
    'trees_equivalent': 3, 'families_helped': 1,
}


def test_round_half_up():
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(2.49) == 2

def test_pillar_score_rejects_non_positive_base_unit():
    with pytest.raises(ValueError):
        pillar_score(100, 1, 0)

def test_compute_esg_score_weighted_sum():
    total, breakdown = compute_esg_score(ONE_LAPTOP_TOTALS, DEFAULT_WEIGHTS, DEFAULT_NORMALIZATION)
    assert breakdown == {'carbon': 316, 'water': 95, 'resources': 960, 'social': 2}
    # 316*0.40 + 95*0.25 + 960*0.20 + 2*0.15 = 342.45
    assert total == 342

def test_compute_esg_score_of_nothing_is_zero():
    total, breakdown = compute_esg_score({})
    assert total == 0
    assert set(breakdown.values()) == {0}

@pytest.mark.parametrize('metric', ['carbon_saved', 'water_provided', 'minerals_saved', 'families_helped'])
def test_more_impact_never_lowers_the_score(metric):
    base_total, _ = compute_esg_score(ONE_LAPTOP_TOTALS)
    bigger = dict(ONE_LAPTOP_TOTALS, **{metric: ONE_LAPTOP_TOTALS[metric] * 10})
    bigger_total, _ = compute_esg_score(bigger)
    assert bigger_total >= base_total

def test_custom_weights_change_the_total():
    total, _ = compute_esg_score(ONE_LAPTOP_TOTALS, {'carbon': 100, 'water': 0, 'resources': 0, 'social': 0})
    assert total == 316


def _order_for(app, user, quantity=1, status='placed'):
    return order_service.create_order_with_items(
        app.storage,
        {'user_id': user['id'], 'status': status},
        [{'product_name': 'ThinkPad T480', 'quantity': quantity, 'unit_price': 30000}],
    )

def test_tier_lookup_by_score(app):
    storage = app.storage
    assert storage.get_tier_by_score(0)['name'] == 'Explorer'
    assert storage.get_tier_by_score(999)['name'] == 'Explorer'
    assert storage.get_tier_by_score(1000)['name'] == 'Innovator'
    assert storage.get_tier_by_score(250000)['name'] == 'Vanguard'

def test_update_user_esg_score_stores_score_and_awards_once(app, customer):
    _order_for(app, customer)
    scoring = app.scoring_service

    result = scoring.update_user_esg_score(customer['id'])
    assert result['total_score'] == 342
    assert result['tier_name'] == 'Explorer'
    unlocked = {a['name'] for a in result['new_achievements']}
    assert {'First Steps', 'Carbon Saver', 'Carbon Hero', 'Resource Guardian', 'Carbon Champion'} == unlocked
    assert {m['name'] for m in result['new_milestones']} == {'Journey Begins', 'First Impact Recorded'}

    stored = app.storage.get_current_esg_score(customer['id'])
    assert stored['total_score'] == 342
    assert stored['carbon_score'] == 316

    progress = app.storage.get_user_progress(customer['id'])
    expected_xp = 100 + 150 + 500 + 400 + 1000 + 0 + 100
    assert progress['experience_points'] == expected_xp

    again = scoring.update_user_esg_score(customer['id'])
    assert again['new_achievements'] == []
    assert again['new_milestones'] == []
    assert again['score_change'] == 0
    assert app.storage.get_user_progress(customer['id'])['experience_points'] == expected_xp

def test_shipping_bonus_is_awarded_once_per_order(app, customer):
    order = _order_for(app, customer)
    scoring = app.scoring_service
    scoring.update_user_esg_score(customer['id'])

    assert scoring.award_shipping_bonus(customer['id'], order['id']) is True
    assert scoring.award_shipping_bonus(customer['id'], order['id']) is False

    score = app.storage.get_current_esg_score(customer['id'])
    assert score['total_score'] == 342 + SHIPPING_BONUS_POINTS
    assert app.storage.get_tier(score['tier_id'])['name'] == 'Innovator'

    # Recomputing from impact rows keeps the bonus already earned
    result = scoring.update_user_esg_score(customer['id'])
    assert result['total_score'] == 342 + SHIPPING_BONUS_POINTS
    assert result['bonus_points'] == SHIPPING_BONUS_POINTS

def test_leaderboard_and_rank(app, customer, other_customer):
    _order_for(app, customer, quantity=3)
    _order_for(app, other_customer, quantity=1)
    scoring = app.scoring_service
    scoring.update_user_esg_score(customer['id'])
    scoring.update_user_esg_score(other_customer['id'])

    board = scoring.get_leaderboard()
    assert [entry['user_id'] for entry in board] == [customer['id'], other_customer['id']]
    assert board[0]['display_name'] == f"User {customer['id']}"
    assert scoring.get_user_rank(other_customer['id']) == (2, 2)

    app.storage.set_setting('leaderboard_config', {'anonymize_names': False})
    assert scoring.get_leaderboard()[0]['display_name'] == 'Acme Ltd'

    benchmark = scoring.get_benchmark_comparison(customer['id'])
    assert benchmark['rank'] == 1
    assert benchmark['percentile'] == 100
