# tests/test_auth.py
from conftest import ADMIN_EMAIL, CUSTOMER_PASSWORD, login


def test_self_registration_is_disabled(client):
    response = client.post('/api/auth/register', json={'username': 'new', 'password': 'password-123'})
    assert response.status_code == 403
    assert response.get_json()['success'] is False

def test_login_sets_cookie_and_returns_user(app, client, customer):
    response = login(client, 'jane', CUSTOMER_PASSWORD)
    assert response.status_code == 200
    data = response.get_json()
    assert data['success'] is True
    assert data['user']['email'] == 'jane@acme.example.com'
    assert 'password_hash' not in data['user']
    assert any('access_token_cookie' in header for header in response.headers.getlist('Set-Cookie'))

    me = client.get('/api/auth/me')
    assert me.status_code == 200
    assert me.get_json()['user']['id'] == customer['id']

def test_login_updates_activity_streak(app, client, customer):
    login(client, 'jane', CUSTOMER_PASSWORD)
    progress = app.storage.get_user_progress(customer['id'])
    assert progress['current_streak'] == 1
    assert progress['last_activity_date'] is not None

def test_login_with_email_works_for_admin(client):
    response = login(client, ADMIN_EMAIL, 'test_password123')
    assert response.status_code == 200
    assert response.get_json()['user']['is_admin'] is True

def test_login_rejects_bad_password(app, client, customer):
    response = login(client, 'jane', 'not-the-password')
    assert response.status_code == 401
    logs = app.storage.list_audit_logs()
    assert logs[0]['action'] == 'login_fail_credentials'

def test_login_rejects_missing_fields(client):
    assert client.post('/api/auth/login', json={'username': 'jane'}).status_code == 400

def test_pending_and_inactive_accounts_cannot_log_in(app, client):
    app.storage.get_or_create_pending_user('pending@example.com', 'Pending Person')
    app.storage.create_user({'username': 'gone', 'password': CUSTOMER_PASSWORD, 'name': 'Gone',
                             'company': '', 'email': 'gone@example.com', 'is_active': False})

    pending = client.post('/api/auth/login', json={'username': 'pending@example.com', 'password': 'whatever'})
    # pending users get a random password, so credentials fail first
    assert pending.status_code == 401

    app.storage.update_user(app.storage.get_user_by_email('pending@example.com')['id'], {'password': CUSTOMER_PASSWORD})
    pending = login(client, 'pending@example.com', CUSTOMER_PASSWORD)
    assert pending.status_code == 403
    assert 'pending approval' in pending.get_json()['message']

    inactive = login(client, 'gone', CUSTOMER_PASSWORD)
    assert inactive.status_code == 403
    assert 'inactive' in inactive.get_json()['message']

def test_logout_clears_session(customer_client):
    assert customer_client.post('/api/auth/logout').status_code == 200
    assert customer_client.get('/api/auth/me').status_code == 401

def test_protected_routes_require_login(client):
    assert client.get('/api/auth/me').status_code == 401
    assert client.get('/api/orders').status_code == 401
    assert client.get('/api/admin/users').status_code == 401

def test_customer_cannot_use_admin_api(customer_client):
    response = customer_client.get('/api/admin/users')
    assert response.status_code == 403
    assert response.get_json()['success'] is False

def test_profile_update_and_ownership(customer_client, customer, other_customer):
    response = customer_client.patch(f"/api/users/{customer['id']}", json={'phone_number': '+44 1632 960000'})
    assert response.status_code == 200
    assert response.get_json()['user']['phone_number'] == '+44 1632 960000'

    assert customer_client.patch(f"/api/users/{customer['id']}", json={}).status_code == 400
    assert customer_client.get(f"/api/users/{other_customer['id']}").status_code == 403

def test_change_password(client, customer_client, customer):
    url = f"/api/users/{customer['id']}/change-password"
    wrong = customer_client.post(url, json={'current_password': 'nope', 'new_password': 'brand-new-pass'})
    assert wrong.status_code == 400

    ok = customer_client.post(url, json={'current_password': CUSTOMER_PASSWORD, 'new_password': 'brand-new-pass'})
    assert ok.status_code == 200
    assert login(client, 'jane', 'brand-new-pass').status_code == 200

def test_api_root(client):
    response = client.get('/api')
    assert response.status_code == 200
    assert 'version' in response.get_json()
