# tests/test_admin_api.py
from circular_portal.services.scoring_service import SHIPPING_BONUS_POINTS


def test_admin_user_crud(app, admin_client):
    response = admin_client.post('/api/admin/users', json={
        'username': 'globex-it', 'password': 'strong-pass-1', 'name': 'Globex IT',
        'company': 'Globex', 'email': 'it@globex.example.com',
    })
    assert response.status_code == 201
    user = response.get_json()['user']

    duplicate = admin_client.post('/api/admin/users', json={
        'username': 'globex-it', 'password': 'strong-pass-1', 'name': 'Again', 'email': 'other@globex.example.com',
    })
    assert duplicate.status_code == 409

    updated = admin_client.patch(f"/api/admin/users/{user['id']}", json={'company': 'Globex Corp'})
    assert updated.status_code == 200
    assert updated.get_json()['user']['company'] == 'Globex Corp'

    conflict = admin_client.patch(f"/api/admin/users/{user['id']}", json={'email': 'test_admin@example.com'})
    assert conflict.status_code == 409

    detail = admin_client.get(f"/api/admin/users/{user['id']}").get_json()
    assert detail['orders'] == []
    assert detail['esg_score'] is None

    found = admin_client.get('/api/admin/users?search=globex').get_json()
    assert [u['id'] for u in found['users']] == [user['id']]

    assert admin_client.delete(f"/api/admin/users/{user['id']}").status_code == 200
    assert app.storage.get_user(user['id'])['is_active'] is False

def test_admin_cannot_deactivate_self(app, admin_client):
    admin = app.storage.get_user_by_email('test_admin@example.com')
    assert admin_client.delete(f"/api/admin/users/{admin['id']}").status_code == 400

def test_approve_pending_user(app, admin_client):
    pending, _ = app.storage.get_or_create_pending_user('new@partner.example.com', 'New Partner')
    listed = admin_client.get('/api/admin/users?pending_approval=true').get_json()['users']
    assert [u['id'] for u in listed] == [pending['id']]

    response = admin_client.post(f"/api/admin/users/{pending['id']}/approve")
    assert response.status_code == 200
    approved = response.get_json()['user']
    assert approved['is_active'] is True
    assert approved['pending_approval'] is False

def test_admin_order_requires_existing_user(admin_client):
    response = admin_client.post('/api/admin/orders', json={'user_id': 424242})
    assert response.status_code == 400

def test_shipping_an_order_records_update_and_bonus(app, admin_client, customer):
    created = admin_client.post('/api/admin/orders', json={
        'user_id': customer['id'],
        'order_number': 'ORD-TEST-1',
        'items': [{'product_name': 'HP EliteBook 840 G5', 'quantity': 1, 'unit_price': 38000}],
    })
    assert created.status_code == 201
    order = created.get_json()['order']

    again = admin_client.post('/api/admin/orders', json={'user_id': customer['id'], 'order_number': 'ORD-TEST-1'})
    assert again.status_code == 409

    response = admin_client.patch(f"/api/admin/orders/{order['id']}", json={'status': 'shipped', 'tracking_number': '1Z42'})
    assert response.status_code == 200
    assert response.get_json()['order']['status'] == 'shipped'

    detail = admin_client.get(f"/api/admin/orders/{order['id']}").get_json()
    assert detail['updates'][0]['status'] == 'shipped'
    assert detail['impact']['carbon_saved'] == 316000

    score = app.storage.get_current_esg_score(customer['id'])
    assert score['total_score'] == 342 + SHIPPING_BONUS_POINTS

    # Re-sending the same status neither adds an update nor a second bonus
    admin_client.patch(f"/api/admin/orders/{order['id']}", json={'status': 'shipped'})
    assert len(app.storage.get_order_updates(order['id'])) == 2
    assert app.storage.get_current_esg_score(customer['id'])['total_score'] == 342 + SHIPPING_BONUS_POINTS

def test_replace_order_items_recalculates_impact(app, admin_client, customer):
    order = app.storage.create_order({'user_id': customer['id']})
    response = admin_client.put(f"/api/admin/orders/{order['id']}/items", json=[
        {'product_name': 'Lenovo ThinkPad X1 Carbon', 'quantity': 4, 'unit_price': 52000},
    ])
    assert response.status_code == 200
    assert app.storage.get_impact_for_order(order['id'])['families_helped'] == 4

    assert admin_client.put(f"/api/admin/orders/{order['id']}/items", json={'items': 'nope'}).status_code == 400

def test_delete_order(app, admin_client, customer):
    order = app.storage.create_order({'user_id': customer['id']})
    assert admin_client.delete(f"/api/admin/orders/{order['id']}").status_code == 200
    assert admin_client.delete(f"/api/admin/orders/{order['id']}").status_code == 404

def test_admin_rma_items(app, admin_client, customer):
    created = admin_client.post('/api/admin/rmas', json={
        'user_id': customer['id'], 'reason': 'DOA', 'items': [
            {'product_make_model': 'Dell Latitude 5490', 'fault_description': 'No power'},
        ],
    })
    assert created.status_code == 201
    rma = created.get_json()['rma']

    added = admin_client.post(f"/api/admin/rmas/{rma['id']}/items",
                              json={'product_make_model': 'Dell Latitude 5490', 'fault_description': 'Dead pixels'})
    assert added.status_code == 201
    item_id = added.get_json()['items'][0]['id']

    updated = admin_client.patch(f"/api/admin/rma-items/{item_id}", json={'resolution': 'Panel replaced'})
    assert updated.status_code == 200
    assert updated.get_json()['item']['resolution'] == 'Panel replaced'

    status = admin_client.patch(f"/api/admin/rmas/{rma['id']}", json={'status': 'approved'})
    assert status.get_json()['rma']['status'] == 'approved'

    assert admin_client.delete(f"/api/admin/rma-items/{item_id}").status_code == 200
    assert len(app.storage.get_rma_items(rma['id'])) == 1

def test_esg_weights_must_sum_to_100(app, admin_client):
    bad = admin_client.put('/api/admin/esg-parameters', json={
        'weights': {'carbon': 50, 'water': 25, 'resources': 20, 'social': 15},
    })
    assert bad.status_code == 400

    good = admin_client.put('/api/admin/esg-parameters', json={
        'weights': {'carbon': 25, 'water': 25, 'resources': 25, 'social': 25},
        'anonymize_leaderboard': False,
    })
    assert good.status_code == 200
    assert good.get_json()['weights']['carbon'] == 25
    assert app.storage.get_setting('leaderboard_config')['anonymize_names'] is False

def test_sustainability_metrics_update_recalculates_orders(app, admin_client, customer):
    order = app.storage.create_order({'user_id': customer['id']})
    app.storage.create_order_item(order['id'], {'product_name': 'Laptop', 'quantity': 2, 'unit_price': 1})

    response = admin_client.put('/api/admin/sustainability-metrics', json={
        'carbon_reduction_per_laptop': 100000,
        'resource_preservation_per_laptop': 1000,
        'water_saved_per_laptop': 500,
        'families_helped_per_laptop': 2,
        'trees_equivalent_per_laptop': 1,
    })
    assert response.status_code == 200
    assert response.get_json()['orders_recalculated'] == 1
    impact = app.storage.get_impact_for_order(order['id'])
    assert impact['carbon_saved'] == 200000
    assert impact['families_helped'] == 4

def test_theme_settings(admin_client, client):
    assert admin_client.put('/api/admin/theme', json={'primary_color': 'teal'}).status_code == 400
    assert admin_client.put('/api/admin/theme', json={'primary_color': '#112233'}).status_code == 200
    assert client.get('/api/theme').get_json()['theme']['primary_color'] == '#112233'

def test_api_key_management(admin_client):
    created = admin_client.post('/api/admin/api-keys', json={'name': 'warehouse'})
    assert created.status_code == 201
    data = created.get_json()
    assert data['key'].startswith('cc_')
    key_id = data['api_key']['id']

    listed = admin_client.get('/api/admin/api-keys').get_json()['api_keys']
    assert all('key_hash' not in key for key in listed)

    assert admin_client.post(f'/api/admin/api-keys/{key_id}/revoke').status_code == 200
    assert admin_client.delete(f'/api/admin/api-keys/{key_id}').status_code == 200
    assert admin_client.delete(f'/api/admin/api-keys/{key_id}').status_code == 404

def test_gamification_admin(admin_client):
    bad_tier = admin_client.post('/api/admin/gamification/tiers', json={'name': 'Odd', 'min_score': 500, 'max_score': 100})
    assert bad_tier.status_code == 400

    achievement = admin_client.post('/api/admin/gamification/achievements', json={
        'name': 'Bulk Buyer', 'description': 'Order 20 times', 'metric': 'orders_count', 'threshold_value': 20,
    })
    assert achievement.status_code == 201
    achievement_id = achievement.get_json()['achievement']['id']
    assert admin_client.delete(f'/api/admin/gamification/achievements/{achievement_id}').status_code == 200

    bad_metric = admin_client.post('/api/admin/gamification/achievements', json={
        'name': 'Odd', 'description': 'x', 'metric': 'logins', 'threshold_value': 1,
    })
    assert bad_metric.status_code == 400

def test_dashboard_stats_and_audit_log(admin_client, customer):
    stats = admin_client.get('/api/admin/stats').get_json()['stats']
    assert stats['total_users'] == 2
    assert stats['total_orders'] == 0

    logs = admin_client.get('/api/admin/audit-logs?limit=5').get_json()['audit_logs']
    assert logs[0]['action'] == 'login_success'
