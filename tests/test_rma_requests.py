# tests/test_rma_requests.py
import pytest
import requests

from circular_portal.services import email_service, rma_notification_service

WEBHOOK_URL = 'https://hooks.example.com/rma'


def _claim(**overrides):
    claim = {
        'full_name': 'Jane Doe',
        'company_name': 'Acme Ltd',
        'email': 'jane@acme.example.com',
        'phone': '+44 20 7946 0000',
        'address': '1 High Street, London',
        'country_of_purchase': 'United Kingdom',
        'number_of_products': 1,
        'product_make_model': 'Lenovo ThinkPad T480',
        'manufacturer_serial_number': 'PF-1A2B3C',
        'fault_description': 'Keyboard unresponsive',
        'consent': True,
    }
    claim.update(overrides)
    return claim


class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code


@pytest.fixture
def sent_emails(monkeypatch):
    sent = []

    def fake_send_email(to_email, subject, body_text, body_html=None):
        sent.append({'to': to_email, 'subject': subject, 'body': body_text})
        return True

    monkeypatch.setattr(email_service, 'send_email', fake_send_email)
    return sent


def _set_webhook(app, url):
    settings = dict(app.storage.get_setting('admin_settings') or {}, rma_webhook_url=url)
    app.storage.set_setting('admin_settings', settings)


def test_claim_without_webhook_is_emailed(app, customer_client, sent_emails):
    response = customer_client.post('/api/rma-requests', json=_claim())
    assert response.status_code == 201
    data = response.get_json()
    request_log = data['request']
    assert request_log['status'] == 'submitted'
    assert request_log['notification_channel'] == 'email'
    assert request_log['request_number'].startswith('WRC-')
    assert data['pending_user_created'] is False

    assert [mail['to'] for mail in sent_emails] == ['ops@example.com']
    assert request_log['request_number'] in sent_emails[0]['subject']
    assert 'PF-1A2B3C' in sent_emails[0]['body']

def test_webhook_success_approves_the_request(app, customer_client, sent_emails, monkeypatch):
    calls = []
    monkeypatch.setattr(rma_notification_service.requests, 'post',
                        lambda url, json=None, timeout=None: calls.append((url, json)) or FakeResponse(204))
    _set_webhook(app, WEBHOOK_URL)

    response = customer_client.post('/api/rma-requests', json=_claim())
    assert response.status_code == 201
    request_log = response.get_json()['request']
    assert request_log['status'] == 'approved'
    assert request_log['notification_channel'] == 'webhook'
    assert sent_emails == []

    url, body = calls[0]
    assert url == WEBHOOK_URL
    assert body['request_number'] == request_log['request_number']
    assert body['claim']['manufacturer_serial_number'] == 'PF-1A2B3C'

def test_webhook_error_falls_back_to_email(app, customer_client, sent_emails, monkeypatch):
    monkeypatch.setattr(rma_notification_service.requests, 'post',
                        lambda url, json=None, timeout=None: FakeResponse(500))
    _set_webhook(app, WEBHOOK_URL)

    response = customer_client.post('/api/rma-requests', json=_claim())
    assert response.status_code == 201
    request_log = response.get_json()['request']
    assert request_log['status'] == 'submitted'
    assert request_log['notification_channel'] == 'email'
    assert 'HTTP 500' in request_log['notification_detail']
    assert len(sent_emails) == 1

def test_webhook_connection_error_falls_back_to_email(app, customer_client, sent_emails, monkeypatch):
    def unreachable(url, json=None, timeout=None):
        raise requests.ConnectionError('connection refused')

    monkeypatch.setattr(rma_notification_service.requests, 'post', unreachable)
    _set_webhook(app, WEBHOOK_URL)

    response = customer_client.post('/api/rma-requests', json=_claim())
    assert response.status_code == 201
    assert response.get_json()['request']['notification_channel'] == 'email'
    assert len(sent_emails) == 1

def test_claim_for_another_email_creates_pending_user(app, customer, customer_client, sent_emails):
    response = customer_client.post('/api/rma-requests', json=_claim(
        email='it-manager@partner.example.com', full_name='Pat Lee', track_under_current_account=False,
    ))
    assert response.status_code == 201
    data = response.get_json()
    assert data['pending_user_created'] is True

    pending = app.storage.get_user_by_email('it-manager@partner.example.com')
    assert pending['pending_approval'] is True
    assert pending['is_active'] is False
    assert data['request']['user_id'] == pending['id']
    assert data['request']['submitted_by_user_id'] == customer['id']
    # new-user alert plus the claim notification
    assert len(sent_emails) == 2

    listed = customer_client.get('/api/rma-requests').get_json()['requests']
    assert [r['id'] for r in listed] == [data['request']['id']]

def test_claim_for_an_active_customers_email_stays_with_submitter(app, customer, other_customer, customer_client, sent_emails):
    response = customer_client.post('/api/rma-requests', json=_claim(
        email=other_customer['email'], full_name='Bob Smith', track_under_current_account=False,
    ))
    assert response.status_code == 201
    data = response.get_json()
    assert data['pending_user_created'] is False
    assert data['request']['user_id'] == customer['id']
    # only the claim notification, no new-user alert
    assert len(sent_emails) == 1

def test_claim_reuses_an_existing_pending_account(app, customer, customer_client, sent_emails):
    pending, _ = app.storage.get_or_create_pending_user('it-manager@partner.example.com', 'Pat Lee')
    response = customer_client.post('/api/rma-requests', json=_claim(
        email='it-manager@partner.example.com', full_name='Pat Lee', track_under_current_account=False,
    ))
    data = response.get_json()
    assert data['pending_user_created'] is False
    assert data['request']['user_id'] == pending['id']

def test_claim_for_another_email_tracked_under_current_account(app, customer, customer_client, sent_emails):
    response = customer_client.post('/api/rma-requests', json=_claim(email='someone@partner.example.com'))
    assert response.status_code == 201
    data = response.get_json()
    assert data['pending_user_created'] is False
    assert data['request']['user_id'] == customer['id']
    assert app.storage.get_user_by_email('someone@partner.example.com') is None

def test_claim_without_consent_is_rejected(customer_client, sent_emails):
    response = customer_client.post('/api/rma-requests', json=_claim(consent=False))
    assert response.status_code == 400
    assert response.get_json()['success'] is False
    assert sent_emails == []

def test_claim_requires_login(client):
    response = client.post('/api/rma-requests', json=_claim())
    assert response.status_code == 401

def test_admin_settings_reject_plain_http_webhook(admin_client):
    response = admin_client.put('/api/admin/settings', json={'rma_webhook_url': 'http://hooks.example.com/rma'})
    assert response.status_code == 400

    response = admin_client.put('/api/admin/settings', json={
        'rma_webhook_url': WEBHOOK_URL, 'rma_notification_emails': ['rma@example.com'],
    })
    assert response.status_code == 200
    assert response.get_json()['settings']['rma_webhook_url'] == WEBHOOK_URL

def test_admin_can_decline_a_request(app, admin_client, customer_client, sent_emails):
    request_id = customer_client.post('/api/rma-requests', json=_claim()).get_json()['request']['id']

    response = admin_client.patch(f'/api/admin/rma-requests/{request_id}', json={'status': 'declined'})
    assert response.status_code == 200
    assert app.storage.get_rma_request_log(request_id)['status'] == 'declined'

def test_public_warranty_lookup(app, client):
    app.storage.bulk_replace_warranties([
        {'serial_number': 'CC-100', 'manufacturer_serial_number': 'PF-1A2B3C', 'customer_name': 'Acme Ltd'},
    ])
    response = client.get('/api/warranty/lookup?query=PF-1A2B3C')
    assert response.status_code == 200
    data = response.get_json()
    assert data['found'] is True
    assert data['warranties'][0]['serial_number'] == 'CC-100'

    assert client.get('/api/warranty/lookup?query=UNKNOWN').get_json()['found'] is False
    assert client.get('/api/warranty/lookup?query=').status_code == 400
