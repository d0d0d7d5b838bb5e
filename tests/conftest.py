import pytest

from app import create_app
from config import TestConfig
from database import db
from tenant_middleware import generate_access_token

BUSINESS_ID = 'business-1'
OTHER_BUSINESS_ID = 'business-2'


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def session(app):
    return db.session


def make_headers(role='admin', user_id='user-1', business_id=BUSINESS_ID):
    token = generate_access_token(user_id, role, business_id)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_headers(app):
    return make_headers('admin')


@pytest.fixture
def sales_headers(app):
    return make_headers('sales', user_id='user-sales')


@pytest.fixture
def viewer_headers(app):
    return make_headers('viewer', user_id='user-viewer')


@pytest.fixture
def other_business_headers(app):
    return make_headers('admin', user_id='user-other', business_id=OTHER_BUSINESS_ID)


LEAD_PAYLOAD = {
    'name': 'Jane Doe',
    'email': 'jane@x.com',
    'phone': '555-0001',
    'address': '1 Main St',
    'city': 'X',
    'state': 'NC',
    'zip_code': '28401',
}


@pytest.fixture
def create_lead(client, admin_headers):
    """POST a lead and return its id"""
    def _create(**overrides):
        payload = dict(LEAD_PAYLOAD, **overrides)
        response = client.post('/api/leads', json=payload, headers=admin_headers)
        assert response.status_code == 201, response.get_json()
        return response.get_json()['data']['lead_id']
    return _create


@pytest.fixture
def create_customer(client, admin_headers):
    def _create(**overrides):
        payload = dict({'name': 'Acme Hauling', 'email': 'ops@acme.com', 'city': 'Wilmington', 'state': 'NC'},
                       **overrides)
        response = client.post('/api/customers', json=payload, headers=admin_headers)
        assert response.status_code == 201, response.get_json()
        return response.get_json()['data']['id']
    return _create
