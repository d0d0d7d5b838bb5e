import pytest


def _data(response):
    return response.get_json()['data']


ESTIMATE = {
    'customer_name': 'Jane Doe',
    'customer_email': 'jane@x.com',
    'labor_hours': 2,
    'labor_rate': 40,
    'items': [
        {'name': 'Couch', 'quantity': 2, 'base_price': 50},
        {'name': 'Mattress', 'quantity': 1, 'base_price': 30, 'price_per_unit': 45},
    ],
    'additional_fees': [{'fee_type': 'disposal', 'amount': 25}],
}


@pytest.fixture
def estimate(client, admin_headers):
    response = client.post('/api/estimates', json=ESTIMATE, headers=admin_headers)
    assert response.status_code == 201, response.get_json()
    return _data(response)


def test_create_estimate_totals(estimate):
    # items 2*50 + 1*45, labour 2*40, fee 25
    assert estimate['subtotal'] == 225.0
    assert estimate['total'] == 250.0
    assert estimate['status'] == 'draft'
    assert sorted(i['total'] for i in estimate['items']) == [45.0, 100.0]
    assert [f['fee_type'] for f in estimate['additional_fees']] == ['disposal']


def test_create_estimate_for_unknown_customer(client, admin_headers):
    response = client.post('/api/estimates', json=dict(ESTIMATE, customer_id='missing'), headers=admin_headers)
    assert response.status_code == 404
    assert response.get_json()['error'] == 'CUSTOMER_NOT_FOUND'


def test_item_changes_recalculate(client, admin_headers, estimate):
    url = f"/api/estimates/{estimate['id']}/items"

    added = _data(client.post(url, json={'name': 'Fridge', 'base_price': 75}, headers=admin_headers))
    assert added['estimate']['total'] == 325.0

    item_id = added['item']['id']
    updated = _data(client.put(f'{url}/{item_id}', json={'quantity': 2}, headers=admin_headers))
    assert updated['item']['total'] == 150.0
    assert updated['estimate']['total'] == 400.0

    remaining = _data(client.delete(f'{url}/{item_id}', headers=admin_headers))
    assert remaining['total'] == 250.0


def test_labour_update_recalculates(client, admin_headers, estimate):
    updated = _data(client.put(f"/api/estimates/{estimate['id']}", json={'labor_hours': 3}, headers=admin_headers))
    assert updated['subtotal'] == 265.0
    assert updated['total'] == 290.0


def test_send_only_from_draft(client, admin_headers, estimate):
    url = f"/api/estimates/{estimate['id']}/send"

    sent = client.post(url, headers=admin_headers)
    assert sent.status_code == 200
    assert _data(sent)['status'] == 'sent'
    assert _data(sent)['sent_date'] is not None

    again = client.post(url, headers=admin_headers)
    assert again.status_code == 400
    assert again.get_json()['error'] == 'INVALID_ESTIMATE_STATUS'


def test_status_transitions(client, admin_headers, estimate):
    url = f"/api/estimates/{estimate['id']}/status"

    rejected = _data(client.put(url, json={'status': 'rejected', 'rejection_reason': 'Too pricey'},
                                headers=admin_headers))
    assert rejected['status'] == 'rejected'
    assert rejected['rejection_reason'] == 'Too pricey'
    assert rejected['rejected_date'] is not None

    bogus = client.put(url, json={'status': 'draft'}, headers=admin_headers)
    assert bogus.status_code == 422


def test_list_estimates_summary(client, admin_headers, estimate):
    client.post(f"/api/estimates/{estimate['id']}/send", headers=admin_headers)
    client.post('/api/estimates', json=dict(ESTIMATE, items=[], additional_fees=[]), headers=admin_headers)

    data = _data(client.get('/api/estimates', headers=admin_headers))
    assert data['pagination']['total'] == 2
    assert data['summary']['draft'] == 1
    assert data['summary']['sent'] == 1
    assert data['summary']['total_value'] == 330.0

    filtered = _data(client.get('/api/estimates?min_total=100', headers=admin_headers))
    assert [e['id'] for e in filtered['estimates']] == [estimate['id']]


def test_delete_estimate_requires_manager(client, admin_headers, sales_headers, estimate):
    url = f"/api/estimates/{estimate['id']}"
    assert client.delete(url, headers=sales_headers).status_code == 403
    assert client.delete(url, headers=admin_headers).status_code == 200
    assert client.get(url, headers=admin_headers).status_code == 404


def test_sales_cannot_delete_item(client, admin_headers, sales_headers, estimate):
    item_id = estimate['items'][0]['id']
    url = f"/api/estimates/{estimate['id']}/items/{item_id}"

    assert client.delete(url, headers=sales_headers).status_code == 403
    remaining = _data(client.get(f"/api/estimates/{estimate['id']}", headers=admin_headers))
    assert len(remaining['items']) == 2


def test_update_rejects_null_customer_name(client, admin_headers, estimate):
    response = client.put(f"/api/estimates/{estimate['id']}", json={'customer_name': None}, headers=admin_headers)
    assert response.status_code == 422


def test_item_update_rejects_null_quantity(client, admin_headers, estimate):
    item_id = estimate['items'][0]['id']
    response = client.put(f"/api/estimates/{estimate['id']}/items/{item_id}", json={'quantity': None},
                          headers=admin_headers)
    assert response.status_code == 422
    assert response.get_json()['details'][0]['field'] == 'quantity'
