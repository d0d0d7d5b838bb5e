import pytest


def _data(response):
    return response.get_json()['data']


EMPLOYEE = {
    'first_name': 'Maria',
    'last_name': 'Lopez',
    'email': 'maria@crew.com',
    'department': 'Operations',
    'position': 'Crew Lead',
    'hire_date': '2024-03-01',
    'hourly_rate': 24.5,
}


@pytest.fixture
def create_employee(client, admin_headers):
    def _create(**overrides):
        response = client.post('/api/employees', json=dict(EMPLOYEE, **overrides), headers=admin_headers)
        assert response.status_code == 201, response.get_json()
        return _data(response)
    return _create


def test_create_employee_assigns_number(create_employee):
    employee = create_employee()
    assert employee['employee_number'].startswith('EMP-')
    assert employee['full_name'] == 'Maria Lopez'
    assert employee['status'] == 'active'


def test_duplicate_employee_email(client, admin_headers, create_employee):
    create_employee()
    response = client.post('/api/employees', json=EMPLOYEE, headers=admin_headers)
    assert response.status_code == 409
    assert response.get_json()['error'] == 'DUPLICATE_EMPLOYEE'


def test_sales_cannot_create_employee(client, sales_headers):
    assert client.post('/api/employees', json=EMPLOYEE, headers=sales_headers).status_code == 403


def test_list_employees_summary_and_hire_range(client, admin_headers, create_employee):
    create_employee()
    create_employee(first_name='Tom', last_name='Baker', email='tom@crew.com', department=None,
                    hire_date='2025-01-15')

    data = _data(client.get('/api/employees', headers=admin_headers))
    assert [e['last_name'] for e in data['employees']] == ['Baker', 'Lopez']
    assert data['summary']['departments'] == {'Operations': 1, 'unassigned': 1}

    ranged = _data(client.get('/api/employees?hire_date_from=2025-01-01&hire_date_to=2025-01-15',
                              headers=admin_headers))
    assert [e['first_name'] for e in ranged['employees']] == ['Tom']


def test_terminate_employee(client, admin_headers, create_employee):
    employee = create_employee()
    url = f"/api/employees/{employee['id']}"

    terminated = client.delete(url, headers=admin_headers)
    assert terminated.status_code == 200
    assert _data(terminated)['status'] == 'terminated'
    assert _data(terminated)['termination_date'] is not None

    assert _data(client.get('/api/employees', headers=admin_headers))['employees'] == []
    listed = _data(client.get('/api/employees?status=terminated', headers=admin_headers))
    assert [e['id'] for e in listed['employees']] == [employee['id']]

    again = client.delete(url, headers=admin_headers)
    assert again.status_code == 409
    assert again.get_json()['error'] == 'EMPLOYEE_ALREADY_TERMINATED'


def test_reactivating_employee_sets_active(client, admin_headers, create_employee):
    employee = create_employee()
    url = f"/api/employees/{employee['id']}"
    client.delete(url, headers=admin_headers)

    updated = _data(client.put(url, json={'status': 'active'}, headers=admin_headers))
    assert updated['status'] == 'active'
    assert updated['is_active'] is True


def test_update_rejects_null_email(client, admin_headers, create_employee):
    employee = create_employee()
    response = client.put(f"/api/employees/{employee['id']}", json={'email': None, 'phone': None},
                          headers=admin_headers)
    assert response.status_code == 422
    assert [d['field'] for d in response.get_json()['details']] == ['email']
