import pytest


def _data(response):
    return response.get_json()['data']


@pytest.fixture
def job(client, admin_headers, create_customer):
    customer_id = create_customer()
    response = client.post('/api/jobs', json={
        'customer_id': customer_id,
        'title': 'Garage cleanout',
        'scheduled_date': '2030-06-01T09:00:00',
        'total_cost': 450,
    }, headers=admin_headers)
    assert response.status_code == 201, response.get_json()
    return _data(response)


def test_create_job_records_history(job):
    assert job['status'] == 'scheduled'
    assert job['customer_name'] == 'Acme Hauling'
    assert [(h['old_status'], h['new_status'], h['notes']) for h in job['status_history']] == [
        (None, 'scheduled', 'Job created'),
    ]


def test_create_job_for_unknown_customer(client, admin_headers):
    response = client.post('/api/jobs', json={'customer_id': 'missing', 'title': 'x'}, headers=admin_headers)
    assert response.status_code == 404
    assert response.get_json()['error'] == 'CUSTOMER_NOT_FOUND'


def test_create_job_for_unknown_employee(client, admin_headers, create_customer):
    response = client.post('/api/jobs', json={
        'customer_id': create_customer(),
        'title': 'x',
        'assigned_employee_id': 'ghost',
    }, headers=admin_headers)
    assert response.status_code == 404
    assert response.get_json()['error'] == 'EMPLOYEE_NOT_FOUND'


def test_status_change_is_recorded(client, admin_headers, job):
    url = f"/api/jobs/{job['id']}"

    started = _data(client.put(url, json={'status': 'in_progress'}, headers=admin_headers))
    assert started['completion_date'] is None

    done = _data(client.put(url, json={'status': 'completed'}, headers=admin_headers))
    assert done['completion_date'] is not None
    assert [h['new_status'] for h in done['status_history']] == ['scheduled', 'in_progress', 'completed']
    assert done['status_history'][-1]['old_status'] == 'in_progress'
    assert done['status_history'][-1]['changed_by'] == 'user-1'


def test_update_without_status_change_adds_no_history(client, admin_headers, job):
    updated = _data(client.put(f"/api/jobs/{job['id']}", json={'title': 'Attic cleanout'}, headers=admin_headers))
    assert updated['title'] == 'Attic cleanout'
    assert len(updated['status_history']) == 1


def test_job_stats(client, admin_headers, job, create_customer):
    client.put(f"/api/jobs/{job['id']}", json={'status': 'completed'}, headers=admin_headers)
    client.post('/api/jobs', json={'customer_id': job['customer_id'], 'title': 'Shed', 'total_cost': 100},
                headers=admin_headers)

    stats = _data(client.get('/api/jobs/stats', headers=admin_headers))
    assert stats['total'] == 2
    assert stats['completed'] == 1
    assert stats['scheduled'] == 1
    assert stats['total_revenue'] == 450.0
    assert stats['average_job_value'] == 450.0


def test_list_jobs_filters_by_status(client, admin_headers, job):
    data = _data(client.get('/api/jobs?status=completed', headers=admin_headers))
    assert data['jobs'] == []
    data = _data(client.get('/api/jobs?status=scheduled', headers=admin_headers))
    assert [j['id'] for j in data['jobs']] == [job['id']]


def test_delete_job(client, admin_headers, sales_headers, job):
    url = f"/api/jobs/{job['id']}"
    assert client.delete(url, headers=sales_headers).status_code == 403
    assert client.delete(url, headers=admin_headers).status_code == 200
    assert client.get(url, headers=admin_headers).status_code == 404


def test_update_rejects_null_status(client, admin_headers, job):
    url = f"/api/jobs/{job['id']}"
    response = client.put(url, json={'status': None}, headers=admin_headers)

    assert response.status_code == 422
    assert response.get_json()['error'] == 'VALIDATION_ERROR'
    assert [d['field'] for d in response.get_json()['details']] == ['status']
    assert _data(client.get(url, headers=admin_headers))['status'] == 'scheduled'


def test_update_rejects_null_title(client, admin_headers, job):
    response = client.put(f"/api/jobs/{job['id']}", json={'title': None}, headers=admin_headers)
    assert response.status_code == 422


def test_update_clears_nullable_description(client, admin_headers, job):
    url = f"/api/jobs/{job['id']}"
    client.put(url, json={'description': 'Two loads'}, headers=admin_headers)
    cleared = _data(client.put(url, json={'description': None}, headers=admin_headers))
    assert cleared['description'] is None
