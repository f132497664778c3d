# tests/conftest.py
import pytest

from circular_portal import create_app
from circular_portal.database import init_storage_schema, populate_initial_data
from circular_portal.models.base import db

ADMIN_EMAIL = 'test_admin@example.com'
ADMIN_PASSWORD = 'test_password123'
CUSTOMER_PASSWORD = 'customer-pass-123'


def _build_app(backend, tmp_path):
    overrides = {'STORAGE_BACKEND': backend}
    if backend == 'sql':
        overrides['SQL_DATABASE_PATH'] = str(tmp_path / 'portal.sqlite3')
    return create_app('testing', config_overrides=overrides)

@pytest.fixture
def app(tmp_path):
    app = _build_app('orm', tmp_path)
    with app.app_context():
        init_storage_schema()
        populate_initial_data(app.storage)
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture(params=['orm', 'sql'])
def backend_app(request, tmp_path):
    """Same tests against the ORM and the raw-SQL storage backends."""
    app = _build_app(request.param, tmp_path)
    with app.app_context():
        init_storage_schema()
        yield app
        if request.param == 'orm':
            db.session.remove()
            db.drop_all()

@pytest.fixture
def storage(backend_app):
    return backend_app.storage

@pytest.fixture
def client(app):
    return app.test_client()

@pytest.fixture
def customer(app):
    return app.storage.create_user({
        'username': 'jane',
        'password': CUSTOMER_PASSWORD,
        'name': 'Jane Doe',
        'company': 'Acme Ltd',
        'email': 'jane@acme.example.com',
        'is_active': True,
    })

@pytest.fixture
def other_customer(app):
    return app.storage.create_user({
        'username': 'bob',
        'password': CUSTOMER_PASSWORD,
        'name': 'Bob Smith',
        'company': 'Globex',
        'email': 'bob@globex.example.com',
        'is_active': True,
    })

def login(client, username, password):
    return client.post('/api/auth/login', json={'username': username, 'password': password})

@pytest.fixture
def customer_client(app, customer):
    client = app.test_client()
    response = login(client, 'jane', CUSTOMER_PASSWORD)
    assert response.status_code == 200
    return client

@pytest.fixture
def admin_client(app):
    client = app.test_client()
    response = login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
    assert response.status_code == 200
    return client

@pytest.fixture
def api_key(app):
    raw_key, _ = app.storage.create_api_key('erp-sync')
    return raw_key
