# repositories/customers.py

from models import Customer, CustomerAddress
from utils.query_builder import Listing
from .base import Repository


class CustomerRepository(Repository):
    model = Customer
    not_found_code = 'CUSTOMER_NOT_FOUND'
    soft_delete = {'status': 'deleted'}
    hidden = {'status': 'deleted'}
    mutable_fields = frozenset({
        'name', 'email', 'phone', 'mobile', 'address', 'city', 'state', 'zip_code',
        'country', 'customer_type', 'status', 'source', 'notes',
    })
    listing = Listing(
        Customer,
        sort_fields={
            'name': Customer.name,
            'created_at': Customer.created_at,
            'city': Customer.city,
            'state': Customer.state,
            'customer_type': Customer.customer_type,
        },
        filters={
            'status': Customer.status,
            'customer_type': Customer.customer_type,
            'city': Customer.city,
            'state': Customer.state,
        },
        date_ranges={
            'date_from': (Customer.created_at, 'start'),
            'date_to': (Customer.created_at, 'end'),
        },
        search_columns=(Customer.name, Customer.email, Customer.phone, Customer.city),
    )


class CustomerAddressRepository(Repository):
    model = CustomerAddress
    not_found_code = 'ADDRESS_NOT_FOUND'
    mutable_fields = frozenset({
        'address_type', 'street', 'city', 'state', 'zip_code', 'country', 'access_notes',
    })

    def ordered(self):
        return self.query().order_by(
            CustomerAddress.is_primary.desc(), CustomerAddress.created_at.asc()
        ).all()
