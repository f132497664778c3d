# tests/test_orders_api.py
import pytest


def _create_order(client, quantity=2, **extra):
    payload = {
        'total_amount': 90000,
        'items': [{'product_name': 'Lenovo ThinkPad T480', 'quantity': quantity, 'unit_price': 45000}],
    }
    payload.update(extra)
    response = client.post('/api/orders', json=payload)
    assert response.status_code == 201
    return response.get_json()['order']

def test_create_order_for_self(app, customer_client, customer):
    order = _create_order(customer_client, user_id=9999)
    assert order['user_id'] == customer['id']  # non-admins always order for themselves
    assert order['status'] == 'placed'
    assert order['order_number'].startswith('ORD-')
    assert order['items'][0]['total_price'] == 90000

    listed = customer_client.get('/api/orders').get_json()['orders']
    assert [o['id'] for o in listed] == [order['id']]

    updates = customer_client.get(f"/api/orders/{order['id']}/updates").get_json()['updates']
    assert [u['message'] for u in updates] == ['Order placed']

def test_order_impact_is_units_times_metrics(app, customer_client):
    order = _create_order(customer_client, quantity=2)
    impact = customer_client.get(f"/api/orders/{order['id']}/environmental-impact").get_json()['impact']
    assert impact['carbon_saved'] == 2 * 316000
    assert impact['water_provided'] == 2 * 190000
    assert impact['minerals_saved'] == 2 * 1200000
    assert impact['trees_equivalent'] == 2 * 3
    assert impact['families_helped'] == 2

    customer_client.post(f"/api/orders/{order['id']}/items",
                         json={'product_name': 'Dell Latitude 7490', 'quantity': 1, 'unit_price': 40000})
    impact = customer_client.get(f"/api/orders/{order['id']}/environmental-impact").get_json()['impact']
    assert impact['families_helped'] == 3

    summary = customer_client.get('/api/impact').get_json()
    assert summary['impact']['carbon_saved'] == 3 * 316000
    assert summary['orders_count'] == 1

def test_order_validation(customer_client):
    response = customer_client.post('/api/orders', json={'items': [{'product_name': 'Laptop', 'quantity': 0}]})
    assert response.status_code == 400
    response = customer_client.post('/api/orders', json={'status': 'teleported'})
    assert response.status_code == 400

def test_duplicate_order_number_is_a_conflict(customer_client):
    _create_order(customer_client, order_number='PO-4411')
    response = customer_client.post('/api/orders', json={
        'order_number': 'PO-4411',
        'items': [{'product_name': 'Lenovo ThinkPad T480', 'quantity': 1}],
    })
    assert response.status_code == 409

def test_orders_of_other_customers_are_forbidden(app, customer_client, other_customer):
    order = app.storage.create_order({'user_id': other_customer['id']})
    assert customer_client.get(f"/api/orders/{order['id']}").status_code == 403
    assert customer_client.get(f"/api/orders/{order['id']}/items").status_code == 403
    assert customer_client.get(f"/api/delivery-timeline/{order['id']}").status_code == 403
    assert customer_client.get('/api/orders/424242').status_code == 404

def test_admin_can_read_any_order(app, admin_client, customer):
    order = app.storage.create_order({'user_id': customer['id']})
    assert admin_client.get(f"/api/orders/{order['id']}").status_code == 200

def test_delivery_timeline_create_and_patch(customer_client):
    order = _create_order(customer_client)
    assert customer_client.get(f"/api/orders/{order['id']}/timeline").get_json()['timeline'] is None
    assert customer_client.get(f"/api/delivery-timeline/{order['id']}").status_code == 404

    created = customer_client.post('/api/delivery-timeline', json={'order_id': order['id'], 'order_placed': True})
    assert created.status_code == 201
    assert created.get_json()['timeline']['order_placed'] is True
    duplicate = customer_client.post('/api/delivery-timeline', json={'order_id': order['id']})
    assert duplicate.status_code == 409

    patched = customer_client.patch(f"/api/delivery-timeline/{order['id']}", json={'quality_checks': True})
    timeline = patched.get_json()['timeline']
    assert timeline['order_placed'] is True
    assert timeline['quality_checks'] is True
    assert timeline['order_delivered'] is False

def test_patch_creates_missing_timeline(customer_client):
    order = _create_order(customer_client)
    patched = customer_client.patch(f"/api/delivery-timeline/{order['id']}", json={'order_in_progress': True})
    assert patched.status_code == 200
    assert patched.get_json()['timeline']['order_in_progress'] is True

def test_customer_rma_lifecycle(app, customer_client, other_customer):
    order = _create_order(customer_client)
    response = customer_client.post('/api/rma', json={
        'order_id': order['id'],
        'reason': 'Battery does not hold charge',
        'items': [{'product_make_model': 'Lenovo ThinkPad T480', 'fault_description': 'Battery at 20% health'}],
    })
    assert response.status_code == 201
    rma = response.get_json()['rma']
    assert rma['rma_number'].startswith('RMA-')
    assert len(rma['items']) == 1

    listed = customer_client.get('/api/rma').get_json()['rmas']
    assert [r['id'] for r in listed] == [rma['id']]

    foreign = app.storage.create_rma({'user_id': other_customer['id'], 'reason': 'Cracked lid'})
    assert customer_client.get(f"/api/rma/{foreign['id']}").status_code == 403

def test_support_tickets_and_case_studies(customer_client):
    ticket = customer_client.post('/api/support-tickets', json={'subject': 'Invoice copy', 'description': 'Please resend'})
    assert ticket.status_code == 201
    assert ticket.get_json()['ticket']['status'] == 'open'
    assert len(customer_client.get('/api/support-tickets').get_json()['tickets']) == 1

    case_study = customer_client.post('/api/case-studies', json={
        'company_name': 'Acme Ltd', 'contact_name': 'Jane Doe', 'contact_email': 'jane@acme.example.com',
        'industry_type': 'Manufacturing', 'employee_count': 250,
    })
    assert case_study.status_code == 201
    assert case_study.get_json()['case_study']['approved'] is False

def test_public_content(client):
    projects = client.get('/api/water-projects').get_json()['projects']
    assert len(projects) == 2
    assert client.get(f"/api/water-projects/{projects[0]['id']}").status_code == 200
    assert client.get('/api/water-projects/9999').status_code == 404
    assert 'primary_color' in client.get('/api/theme').get_json()['theme']

@pytest.mark.parametrize('path', ['/api/gamification/tiers', '/api/gamification/achievements'])
def test_gamification_reference_data(customer_client, path):
    response = customer_client.get(path)
    assert response.status_code == 200

def test_gamification_score_and_progress(customer_client):
    _create_order(customer_client, quantity=1)
    calculated = customer_client.post('/api/gamification/calculate-score').get_json()['score']
    assert calculated['total_score'] == 342

    score = customer_client.get('/api/gamification/score').get_json()
    assert score['rank'] == 1
    assert score['total_users'] == 1

    achievements = customer_client.get('/api/gamification/user-achievements').get_json()['achievements']
    unlocked = {a['name'] for a in achievements if a['is_unlocked']}
    assert 'First Steps' in unlocked

    milestones = customer_client.get('/api/gamification/milestones').get_json()['milestones']
    assert {m['name'] for m in milestones if m['is_reached']} == {'Journey Begins', 'First Impact Recorded'}

    progress = customer_client.get('/api/gamification/user-progress').get_json()['progress']
    assert progress['experience_points'] > 0

    leaderboard = customer_client.get('/api/gamification/leaderboard').get_json()['leaderboard']
    assert leaderboard[0]['total_score'] == 342
