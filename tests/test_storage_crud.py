# tests/test_storage_crud.py
# Runs against both storage backends through the `storage` fixture.
from datetime import datetime, timedelta, timezone

import pytest


def _user(storage, email='ann@example.com', **extra):
    data = {'username': email, 'password': 'password-123', 'name': 'Ann', 'company': 'Initech', 'email': email}
    data.update(extra)
    return storage.create_user(data)


def test_user_round_trip_returns_same_scalars(storage):
    user = _user(storage, email='Ann@Example.com', phone_number='+44 1234', is_admin=False)

    fetched = storage.get_user(user['id'])
    assert fetched == user
    assert fetched['email'] == 'ann@example.com'
    assert fetched['phone_number'] == '+44 1234'
    assert fetched['is_active'] is True
    assert fetched['pending_approval'] is False
    assert 'password_hash' not in fetched


def test_user_update_and_soft_delete(storage):
    user = _user(storage)
    updated = storage.update_user(user['id'], {'name': 'Ann B', 'notification_preferences': {'email': False}})
    assert updated['name'] == 'Ann B'
    assert updated['notification_preferences'] == {'email': False}

    assert storage.delete_user(user['id']) is True
    assert storage.get_user(user['id'])['is_active'] is False
    assert storage.delete_user(9999) is False


def test_authenticate_and_change_password(storage):
    user = _user(storage)
    assert storage.authenticate_user('ann@example.com', 'password-123')['id'] == user['id']
    assert storage.authenticate_user('ann@example.com', 'wrong') is None

    assert storage.change_password(user['id'], 'wrong', 'new-password-1') == (False, "Current password is incorrect")
    assert storage.change_password(user['id'], 'password-123', 'new-password-1') == (True, None)
    assert storage.authenticate_user('ann@example.com', 'new-password-1') is not None
    assert storage.change_password(9999, 'x', 'new-password-1') == (False, "User not found")


def test_get_or_create_pending_user(storage):
    pending, created = storage.get_or_create_pending_user('New.Person@Example.com', 'New Person', company='Umbrella')
    assert created is True
    assert pending['email'] == 'new.person@example.com'
    assert pending['is_active'] is False
    assert pending['pending_approval'] is True

    again, created_again = storage.get_or_create_pending_user('new.person@example.com', 'Someone Else')
    assert created_again is False
    assert again['id'] == pending['id']


def test_order_round_trip_with_items(storage):
    user = _user(storage)
    order = storage.create_order({
        'user_id': user['id'],
        'status': 'processing',
        'total_amount': 125000,
        'tracking_number': '1Z999',
        'estimated_delivery': datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
    })
    assert order['order_number'].startswith('ORD-')
    assert order['status'] == 'processing'
    assert order['estimated_delivery'] == '2026-03-01T12:00:00+00:00'

    item = storage.create_order_item(order['id'], {'product_name': 'ThinkPad T480', 'quantity': 3, 'unit_price': 25000})
    assert item['total_price'] == 75000

    fetched = storage.get_order(order['id'])
    assert fetched == order
    assert [i['product_name'] for i in storage.get_order_items(order['id'])] == ['ThinkPad T480']

    replaced = storage.replace_order_items(order['id'], [{'product_name': 'EliteBook 840', 'quantity': 1, 'unit_price': 30000}])
    assert len(replaced) == 1
    assert storage.get_order_items(order['id'])[0]['product_name'] == 'EliteBook 840'


def test_delete_order_removes_children_and_detaches_rmas(storage):
    user = _user(storage)
    order = storage.create_order({'user_id': user['id']})
    storage.create_order_item(order['id'], {'product_name': 'Laptop', 'quantity': 1, 'unit_price': 1})
    storage.create_order_update(order['id'], 'placed', 'Order placed')
    storage.create_delivery_timeline({'order_id': order['id'], 'order_placed': True})
    rma = storage.create_rma({'user_id': user['id'], 'order_id': order['id'], 'reason': 'Broken hinge'})

    assert storage.delete_order(order['id']) is True
    assert storage.get_order(order['id']) is None
    assert storage.get_order_items(order['id']) == []
    assert storage.get_delivery_timeline(order['id']) is None
    assert storage.get_rma(rma['id'])['order_id'] is None
    assert storage.delete_order(order['id']) is False


def test_rma_round_trip_with_items(storage):
    user = _user(storage)
    rma = storage.create_rma({'user_id': user['id'], 'reason': 'Screen flicker', 'status': 'requested'})
    assert rma['rma_number'].startswith('RMA-')

    items = storage.add_rma_items(rma['id'], [
        {'product_make_model': 'Dell Latitude 7490', 'fault_description': 'Flicker', 'manufacturer_serial_number': 'SN1'},
        {'product_make_model': 'Dell Latitude 7490', 'fault_description': 'Dead pixel'},
    ])
    assert len(items) == 2
    assert storage.get_rma(rma['id']) == rma

    updated = storage.update_rma(rma['id'], {'status': 'approved'})
    assert updated['status'] == 'approved'
    assert storage.delete_rma(rma['id']) is True
    assert storage.get_rma_items(rma['id']) == []


def test_add_rma_items_removes_partial_batch_on_failure(storage):
    user = _user(storage)
    rma = storage.create_rma({'user_id': user['id'], 'reason': 'Battery'})
    items = [
        {'product_make_model': 'HP 840', 'fault_description': 'Battery swelling'},
        {'product_make_model': None, 'fault_description': None},  # violates NOT NULL
    ]
    with pytest.raises(Exception):
        storage.add_rma_items(rma['id'], items)
    assert storage.get_rma_items(rma['id']) == []


def test_upsert_order_by_number(storage):
    user = _user(storage)
    order, created = storage.upsert_order('EXT-1', 'ANN@example.com', {'status': 'placed'},
                                          items=[{'product_name': 'Laptop', 'quantity': 2, 'unit_price': 100}])
    assert created is True
    assert order['user_id'] == user['id']

    again, created_again = storage.upsert_order('EXT-1', 'ann@example.com', {'status': 'shipped'})
    assert created_again is False
    assert again['id'] == order['id']
    assert again['status'] == 'shipped'
    assert len(storage.get_order_items(order['id'])) == 1

    with pytest.raises(LookupError):
        storage.upsert_order('EXT-2', 'nobody@example.com', {})


def test_settings_store_json_values(storage):
    assert storage.get_setting('admin_settings') is None
    assert storage.get_setting('admin_settings', {}) == {}
    storage.set_setting('admin_settings', {'rma_notification_emails': ['ops@example.com'], 'rma_webhook_url': None})
    storage.set_setting('admin_settings', {'rma_notification_emails': ['rma@example.com']})
    assert storage.get_setting('admin_settings') == {'rma_notification_emails': ['rma@example.com']}


def test_api_key_validation(storage):
    raw_key, record = storage.create_api_key('erp')
    assert raw_key.startswith('cc_')
    assert record['key_prefix'] == raw_key[:11]
    assert 'key_hash' not in record

    validated = storage.validate_api_key(raw_key)
    assert validated['id'] == record['id']
    assert validated['last_used_at'] is not None
    assert storage.validate_api_key(raw_key[:-1] + ('0' if raw_key[-1] != '0' else '1')) is None

    storage.revoke_api_key(record['id'])
    assert storage.validate_api_key(raw_key) is None


def test_expired_api_key_is_rejected(storage):
    raw_key, _ = storage.create_api_key('old', expires_at=datetime.now(timezone.utc) - timedelta(days=1))
    assert storage.validate_api_key(raw_key) is None


def test_warranty_bulk_upload_and_search(storage):
    storage.bulk_replace_warranties([
        {'serial_number': 'CC-001', 'manufacturer_serial_number': 'MFR-9', 'customer_name': 'Acme'},
        {'serial_number': 'CC-002'},
    ])
    assert [w['serial_number'] for w in storage.search_warranty('MFR-9')] == ['CC-001']
    assert storage.search_warranty('  ') == []

    storage.bulk_replace_warranties([{'serial_number': 'CC-003'}], truncate=True)
    assert storage.search_warranty('CC-001') == []
    assert len(storage.search_warranty('CC-003')) == 1


def test_total_impact_sums_rows(storage):
    user = _user(storage)
    storage.create_impact({'user_id': user['id'], 'carbon_saved': 1000, 'water_provided': 50, 'families_helped': 1})
    storage.create_impact({'user_id': user['id'], 'carbon_saved': 500, 'minerals_saved': 20})
    totals = storage.get_total_impact(user['id'])
    assert totals == {'carbon_saved': 1500, 'water_provided': 50, 'minerals_saved': 20,
                      'trees_equivalent': 0, 'families_helped': 1}
    assert storage.get_total_impact(9999)['carbon_saved'] == 0


def test_streak_counts_consecutive_days(storage):
    user = _user(storage)
    day = datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)
    assert storage.update_streak(user['id'], now=day)['current_streak'] == 1
    assert storage.update_streak(user['id'], now=day + timedelta(hours=3))['current_streak'] == 1
    assert storage.update_streak(user['id'], now=day + timedelta(days=1))['current_streak'] == 2
    progress = storage.update_streak(user['id'], now=day + timedelta(days=4))
    assert progress['current_streak'] == 1
    assert progress['longest_streak'] == 2


def test_experience_points_raise_level(storage):
    user = _user(storage)
    progress = storage.add_experience_points(user['id'], 2500)
    assert progress['experience_points'] == 2500
    assert progress['level'] == 3
