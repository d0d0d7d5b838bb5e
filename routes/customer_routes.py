# routes/customer_routes.py
from datetime import datetime

from flask import Blueprint, request, g, current_app

from database import db, transaction
from errors import ValidationFailed
from models import Customer, CustomerAddress
from repositories import CustomerRepository, CustomerAddressRepository, assign_primary, promote_oldest
from schemas import validate_payload, update_fields
from schemas.customers import CustomerCreate, CustomerUpdate, AddressCreate, AddressUpdate
from tenant_middleware import require_tenant, require_role, WRITE_ROLES, MANAGE_ROLES
from utils.query_builder import grouped_counts, status_summary
from utils.responses import api_response

customer_bp = Blueprint('customers', __name__)


def _customers():
    return CustomerRepository(db.session, business_id=g.business_id)


def _addresses(customer):
    return CustomerAddressRepository(db.session, customer_id=customer.id)


# ----------------------------------
# Customer Routes
# ----------------------------------

@customer_bp.route('/customers', methods=['GET'])
@require_tenant
def get_customers():
    """List customers - filtered by tenant"""
    repo = _customers()
    items, pagination, list_query = repo.list(request.args)
    summary = status_summary(db.session, Customer, Customer.status, ('active', 'inactive'), list_query.predicates)
    summary['by_type'] = grouped_counts(db.session, Customer, Customer.customer_type, list_query.predicates)
    return api_response('Customers retrieved successfully', {
        'customers': [c.to_dict() for c in items],
        'pagination': pagination,
        'summary': summary,
    })


@customer_bp.route('/customers/search', methods=['GET'])
@require_tenant
def search_customers():
    term = (request.args.get('q') or '').strip()
    if not term:
        raise ValidationFailed('SEARCH_QUERY_REQUIRED', 'Search query is required')

    repo = _customers()
    predicates = repo.listing.predicates({'search': term}, *repo.base_predicates())
    limit = current_app.config.get('SEARCH_RESULT_LIMIT', 50)
    customers = (
        db.session.query(Customer)
        .filter(*predicates)
        .order_by(Customer.name.asc())
        .limit(limit)
        .all()
    )
    return api_response('Search completed successfully', {
        'query': term,
        'results': [c.to_dict() for c in customers],
        'total_results': len(customers),
    })


@customer_bp.route('/customers/<customer_id>', methods=['GET'])
@require_tenant
def get_customer(customer_id):
    customer = _customers().get_or_404(customer_id)
    return api_response('Customer retrieved successfully', customer.to_dict(include_addresses=True))


@customer_bp.route('/customers', methods=['POST'])
@require_tenant
@require_role(*WRITE_ROLES)
def create_customer():
    """Create new customer"""
    payload = validate_payload(CustomerCreate, request.get_json(silent=True))
    with transaction(db.session):
        customer = _customers().insert(**payload.model_dump(), status='active', created_by=g.user_id)
    current_app.logger.info(f"Customer created: {customer.id} ({customer.name})")
    return api_response('Customer created successfully', customer.to_dict(), 201)


@customer_bp.route('/customers/<customer_id>', methods=['PUT'])
@require_tenant
@require_role(*WRITE_ROLES)
def update_customer(customer_id):
    fields = update_fields(CustomerUpdate, request.get_json(silent=True))
    repo = _customers()
    with transaction(db.session):
        customer = repo.dynamic_update(repo.get_or_404(customer_id), fields)
    return api_response('Customer updated successfully', customer.to_dict())


@customer_bp.route('/customers/<customer_id>', methods=['DELETE'])
@require_tenant
@require_role(*MANAGE_ROLES)
def delete_customer(customer_id):
    """Soft delete: status flips to 'deleted'"""
    repo = _customers()
    with transaction(db.session):
        repo.delete(repo.get_or_404(customer_id))
    current_app.logger.info(f"Customer deleted: {customer_id}")
    return api_response('Customer deleted successfully', {'customer_id': customer_id})


# ----------------------------------
# Address Routes
# ----------------------------------

@customer_bp.route('/customers/<customer_id>/addresses', methods=['GET'])
@require_tenant
def get_addresses(customer_id):
    customer = _customers().get_or_404(customer_id)
    addresses = _addresses(customer).ordered()
    return api_response('Addresses retrieved successfully', [a.to_dict() for a in addresses])


@customer_bp.route('/customers/<customer_id>/addresses', methods=['POST'])
@require_tenant
@require_role(*WRITE_ROLES)
def add_address(customer_id):
    payload = validate_payload(AddressCreate, request.get_json(silent=True))
    with transaction(db.session):
        customer = _customers().get_or_404(customer_id)
        data = payload.model_dump()
        wants_primary = data.pop('is_primary')
        address = _addresses(customer).insert(**data, is_primary=False)
        if wants_primary:
            assign_primary(db.session, address, 'customer_id', 'is_primary')
    return api_response('Address added successfully', address.to_dict(), 201)


@customer_bp.route('/customers/<customer_id>/addresses/<address_id>', methods=['PUT'])
@require_tenant
@require_role(*WRITE_ROLES)
def update_address(customer_id, address_id):
    fields = update_fields(AddressUpdate, request.get_json(silent=True))
    with transaction(db.session):
        customer = _customers().get_or_404(customer_id)
        repo = _addresses(customer)
        address = repo.get_or_404(address_id)
        primary = fields.pop('is_primary', None)
        if fields or primary is None:
            repo.dynamic_update(address, fields)
        if primary:
            assign_primary(db.session, address, 'customer_id', 'is_primary')
        elif primary is False and address.is_primary:
            address.is_primary = False
            address.updated_at = datetime.utcnow()
            db.session.flush()
    return api_response('Address updated successfully', address.to_dict())


@customer_bp.route('/customers/<customer_id>/addresses/<address_id>', methods=['DELETE'])
@require_tenant
@require_role(*MANAGE_ROLES)
def delete_address(customer_id, address_id):
    """Removing the primary address promotes the oldest remaining one"""
    with transaction(db.session):
        customer = _customers().get_or_404(customer_id)
        repo = _addresses(customer)
        address = repo.get_or_404(address_id)
        was_primary = address.is_primary
        repo.delete(address)
        if was_primary:
            promote_oldest(db.session, CustomerAddress, 'customer_id', 'is_primary', customer.id)
    return api_response('Address deleted successfully', {'address_id': address_id})
