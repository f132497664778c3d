# tests/test_data_api.py
import pytest

from circular_portal.services.scoring_service import SHIPPING_BONUS_POINTS


@pytest.fixture
def headers(api_key):
    return {'X-API-Key': api_key}


def test_push_requires_a_valid_key(client, api_key):
    assert client.post('/api/data/users', json={}).status_code == 401
    assert client.post('/api/data/users', json={}, headers={'X-API-Key': 'cc_not-a-real-key'}).status_code == 401

    # bearer form is accepted too; validation then rejects the empty body
    response = client.post('/api/data/users', json={}, headers={'Authorization': f'Bearer {api_key}'})
    assert response.status_code == 400

def test_revoked_key_is_rejected(app, client, api_key):
    key = app.storage.list_api_keys()[0]
    app.storage.revoke_api_key(key['id'])
    assert client.post('/api/data/users', json={}, headers={'X-API-Key': api_key}).status_code == 401

def test_push_user_creates_then_updates(app, client, headers):
    body = {'email': 'Buyer@Initech.example.com', 'name': 'Pat Buyer', 'company': 'Initech'}
    created = client.post('/api/data/users', json=body, headers=headers)
    assert created.status_code == 201
    user = created.get_json()['user']
    assert user['email'] == 'buyer@initech.example.com'
    assert user['is_active'] is True

    updated = client.post('/api/data/users', json=dict(body, company='Initech Europe'), headers=headers)
    assert updated.status_code == 200
    assert updated.get_json()['created'] is False
    assert updated.get_json()['user']['id'] == user['id']
    assert app.storage.get_user(user['id'])['company'] == 'Initech Europe'

    assert app.storage.list_audit_logs()[0]['action'] == 'data_push_user_update'

def test_push_user_username_conflict(client, headers, customer):
    response = client.post('/api/data/users', headers=headers, json={
        'email': 'someone@initech.example.com', 'name': 'Someone', 'username': 'jane',
    })
    assert response.status_code == 409

def test_push_order_for_unknown_email(client, headers):
    response = client.post('/api/data/orders', headers=headers, json={
        'order_number': 'ERP-1', 'email': 'nobody@example.com',
    })
    assert response.status_code == 404

def test_push_order_create_then_ship(app, client, headers, customer):
    body = {
        'order_number': 'ERP-1001',
        'email': customer['email'],
        'total_amount': 120000,
        'items': [{'product_name': 'Dell Latitude 7400', 'quantity': 2, 'unit_price': 60000}],
    }
    created = client.post('/api/data/orders', json=body, headers=headers)
    assert created.status_code == 201
    order = created.get_json()['order']
    assert order['user_id'] == customer['id']
    assert order['items'][0]['quantity'] == 2
    assert app.storage.get_impact_for_order(order['id'])['families_helped'] == 2

    shipped = client.post('/api/data/orders', headers=headers, json={
        'order_number': 'ERP-1001', 'email': customer['email'], 'status': 'shipped', 'tracking_number': 'DHL-77',
    })
    assert shipped.status_code == 200
    assert shipped.get_json()['order']['status'] == 'shipped'
    # items were not resent, so they are kept
    assert len(app.storage.get_order_items(order['id'])) == 1

    statuses = [u['status'] for u in app.storage.get_order_updates(order['id'])]
    assert statuses == ['shipped', 'placed']
    score = app.storage.get_current_esg_score(customer['id'])
    assert score['details']['shipping_bonuses'] == [order['id']]
    assert score['total_score'] >= SHIPPING_BONUS_POINTS

def test_push_rma_links_order(app, client, headers, customer):
    order = app.storage.create_order({'user_id': customer['id'], 'order_number': 'ERP-2002'})
    body = {
        'rma_number': 'RMA-ERP-1',
        'email': customer['email'],
        'order_number': 'ERP-2002',
        'reason': 'Hinge cracked',
        'items': [{'product_make_model': 'HP ProBook 450', 'fault_description': 'Left hinge cracked'}],
    }
    created = client.post('/api/data/rmas', json=body, headers=headers)
    assert created.status_code == 201
    rma = created.get_json()['rma']
    assert rma['order_id'] == order['id']
    assert len(rma['items']) == 1

    updated = client.post('/api/data/rmas', json=dict(body, status='received', items=[]), headers=headers)
    assert updated.status_code == 200
    assert updated.get_json()['rma']['status'] == 'received'
    assert updated.get_json()['rma']['items'] == []

    missing_order = client.post('/api/data/rmas', json=dict(body, order_number='ERP-404'), headers=headers)
    assert missing_order.status_code == 404

def test_push_warranties(app, client, headers):
    first = client.post('/api/data/warranties', headers=headers, json={'records': [
        {'serial_number': 'CC-1', 'manufacturer_serial_number': 'MFR-1', 'customer_name': 'Acme Ltd'},
        {'serial_number': 'CC-2', 'warranty_end_date': '2028-01-31T00:00:00Z'},
    ]})
    assert first.status_code == 200
    assert first.get_json()['count'] == 2

    replaced = client.post('/api/data/warranties', headers=headers, json={
        'records': [{'serial_number': 'CC-3'}], 'truncate': True,
    })
    assert replaced.get_json()['truncated'] is True
    assert client.get('/api/warranty/lookup?query=CC-1').get_json()['found'] is False
    assert client.get('/api/warranty/lookup?query=CC-3').get_json()['found'] is True

    assert client.post('/api/data/warranties', headers=headers, json={'records': []}).status_code == 400

def test_partial_order_push_keeps_stored_fields(app, client, headers, customer):
    base = {'order_number': 'ERP-9', 'email': customer['email']}
    created = client.post('/api/data/orders', headers=headers, json=dict(
        base, total_amount=120000, saved_amount=30000,
        items=[{'product_name': 'Dell Latitude 7400', 'quantity': 1, 'unit_price': 120000}],
    ))
    order_id = created.get_json()['order']['id']
    client.post('/api/data/orders', headers=headers, json=dict(base, status='shipped'))

    response = client.post('/api/data/orders', headers=headers, json=dict(base, tracking_number='UPS-1Z99'))
    assert response.status_code == 200
    order = app.storage.get_order(order_id)
    assert order['status'] == 'shipped'
    assert order['total_amount'] == 120000
    assert order['saved_amount'] == 30000
    assert order['tracking_number'] == 'UPS-1Z99'
    assert [u['status'] for u in app.storage.get_order_updates(order_id)] == ['shipped', 'placed']

def test_order_push_to_another_owner_moves_impact(app, client, headers, customer, other_customer):
    body = {
        'order_number': 'ERP-7',
        'email': customer['email'],
        'items': [{'product_name': 'HP EliteBook 840', 'quantity': 3}],
    }
    order_id = client.post('/api/data/orders', headers=headers, json=body).get_json()['order']['id']

    moved = client.post('/api/data/orders', headers=headers, json=dict(body, email=other_customer['email'], items=None))
    assert moved.status_code == 200
    assert moved.get_json()['order']['user_id'] == other_customer['id']
    assert app.storage.get_impact_for_order(order_id)['user_id'] == other_customer['id']
    assert app.storage.get_total_impact(other_customer['id'])['families_helped'] == 3
    assert app.storage.get_total_impact(customer['id'])['families_helped'] == 0

def test_partial_rma_push_keeps_status(app, client, headers, customer):
    base = {'rma_number': 'RMA-ERP-5', 'email': customer['email']}
    assert client.post('/api/data/rmas', headers=headers, json=base).status_code == 400

    client.post('/api/data/rmas', headers=headers, json=dict(base, reason='Screen flicker', status='received'))
    response = client.post('/api/data/rmas', headers=headers, json=dict(base, notes='Bench test booked'))
    assert response.status_code == 200
    rma = response.get_json()['rma']
    assert rma['status'] == 'received'
    assert rma['reason'] == 'Screen flicker'
    assert rma['notes'] == 'Bench test booked'

def test_partial_user_push_keeps_company(app, client, headers, customer):
    response = client.post('/api/data/users', headers=headers, json={
        'email': customer['email'], 'phone_number': '+44 20 7946 0011',
    })
    assert response.status_code == 200
    user = app.storage.get_user(customer['id'])
    assert user['company'] == 'Acme Ltd'
    assert user['name'] == 'Jane Doe'
    assert user['phone_number'] == '+44 20 7946 0011'

    missing_name = client.post('/api/data/users', headers=headers, json={'email': 'new@initech.example.com'})
    assert missing_name.status_code == 400
