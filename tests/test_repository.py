from datetime import datetime, timedelta

import pytest

from database import db
from errors import Conflict, NotFound, ValidationFailed
from models import Customer, CustomerAddress, Lead
from repositories import (
    CustomerRepository, CustomerAddressRepository, EmployeeRepository, LeadRepository,
    assign_primary, promote_oldest,
)

from tests.conftest import BUSINESS_ID, OTHER_BUSINESS_ID


@pytest.fixture
def leads(app):
    return LeadRepository(db.session, business_id=BUSINESS_ID)


def test_insert_stamps_scope(leads):
    lead = leads.insert(name='Scoped')
    assert lead.business_id == BUSINESS_ID
    assert len(lead.id) == 36


def test_find_by_id_respects_tenant_scope(leads):
    lead = leads.insert(name='Mine')
    db.session.commit()
    other = LeadRepository(db.session, business_id=OTHER_BUSINESS_ID)
    assert other.find_by_id(lead.id) is None
    with pytest.raises(NotFound) as exc:
        other.get_or_404(lead.id)
    assert exc.value.code == 'LEAD_NOT_FOUND'


def test_dynamic_update_ignores_unknown_fields(leads):
    lead = leads.insert(name='Before')
    leads.dynamic_update(lead, {'name': 'After', 'business_id': 'hijack', 'id': 'x'})
    assert lead.name == 'After'
    assert lead.business_id == BUSINESS_ID


def test_dynamic_update_with_no_allowed_fields_writes_nothing(leads):
    lead = leads.insert(name='Untouched')
    db.session.commit()
    stamp = lead.updated_at

    with pytest.raises(ValidationFailed) as exc:
        leads.dynamic_update(lead, {'created_by': 'someone', 'converted_to_customer_id': 'c1'})

    assert exc.value.code == 'NO_VALID_FIELDS_TO_UPDATE'
    assert exc.value.status_code == 400
    db.session.rollback()
    assert lead.updated_at == stamp
    assert lead.converted_to_customer_id is None


def test_dynamic_update_bumps_updated_at(leads):
    lead = leads.insert(name='Stamp', updated_at=datetime.utcnow() - timedelta(days=1))
    before = lead.updated_at
    leads.dynamic_update(lead, {'priority': 'high'})
    assert lead.updated_at > before


def test_soft_delete_hides_row_but_keeps_it(leads):
    lead = leads.insert(name='Gone')
    leads.delete(lead)
    db.session.commit()
    assert leads.find_by_id(lead.id) is None
    assert db.session.get(Lead, lead.id).status == 'deleted'


def test_employee_delete_terminates_once(app):
    repo = EmployeeRepository(db.session, business_id=BUSINESS_ID)
    employee = repo.insert(first_name='Sam', last_name='Lift', email='sam@crew.com',
                           employee_number=repo.next_employee_number())
    repo.delete(employee)
    assert employee.status == 'terminated'
    assert employee.is_active is False
    assert employee.termination_date is not None
    with pytest.raises(Conflict) as exc:
        repo.delete(employee)
    assert exc.value.code == 'EMPLOYEE_ALREADY_TERMINATED'


def test_employee_number_format(app):
    number = EmployeeRepository(db.session, business_id=BUSINESS_ID).next_employee_number()
    assert number.startswith('EMP-')
    assert len(number) == 10 and number[4:].isdigit()


# ----------------------------------
# Primary flag
# ----------------------------------

@pytest.fixture
def customer(app):
    customer = CustomerRepository(db.session, business_id=BUSINESS_ID).insert(name='Primary Test')
    db.session.commit()
    return customer


def _address(customer, street, minutes_ago):
    repo = CustomerAddressRepository(db.session, customer_id=customer.id)
    return repo.insert(street=street, created_at=datetime.utcnow() - timedelta(minutes=minutes_ago))


def _primaries(customer):
    return [a.street for a in db.session.query(CustomerAddress).filter_by(customer_id=customer.id, is_primary=True)]


def test_assign_primary_leaves_exactly_one(customer):
    first = _address(customer, '1 First St', 30)
    second = _address(customer, '2 Second St', 20)
    assign_primary(db.session, first, 'customer_id', 'is_primary')
    assign_primary(db.session, second, 'customer_id', 'is_primary')
    db.session.commit()
    assert _primaries(customer) == ['2 Second St']


def test_promote_oldest_after_primary_removed(customer):
    oldest = _address(customer, 'Oldest', 30)
    _address(customer, 'Middle', 20)
    newest = _address(customer, 'Newest', 10)
    assign_primary(db.session, newest, 'customer_id', 'is_primary')
    db.session.delete(newest)
    db.session.flush()

    promoted = promote_oldest(db.session, CustomerAddress, 'customer_id', 'is_primary', customer.id)
    db.session.commit()
    assert promoted.id == oldest.id
    assert _primaries(customer) == ['Oldest']


def test_promote_oldest_with_no_siblings(customer):
    assert promote_oldest(db.session, CustomerAddress, 'customer_id', 'is_primary', customer.id) is None


def test_storage_rejects_two_primaries(customer):
    from sqlalchemy.exc import IntegrityError

    db.session.add(CustomerAddress(customer_id=customer.id, street='A', is_primary=True))
    db.session.add(CustomerAddress(customer_id=customer.id, street='B', is_primary=True))
    with pytest.raises(IntegrityError):
        db.session.flush()
    db.session.rollback()
    assert db.session.query(Customer).count() == 1
