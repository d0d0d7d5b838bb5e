# routes/employee_routes.py
from flask import Blueprint, request, g, current_app

from database import db, transaction
from errors import Conflict
from models import Employee, EMPLOYEE_STATUSES
from repositories import EmployeeRepository
from schemas import validate_payload, update_fields
from schemas.employees import EmployeeCreate, EmployeeUpdate
from tenant_middleware import require_tenant, require_role, MANAGE_ROLES
from utils.query_builder import grouped_counts, status_summary
from utils.responses import api_response

employee_bp = Blueprint('employees', __name__)


def _employees():
    return EmployeeRepository(db.session, business_id=g.business_id)


@employee_bp.route('/employees', methods=['GET'])
@require_tenant
def get_employees():
    """List employees; terminated staff only with status=terminated"""
    repo = _employees()
    items, pagination, list_query = repo.list(request.args, *repo.visibility(request.args))
    summary = status_summary(db.session, Employee, Employee.status, EMPLOYEE_STATUSES, list_query.predicates)
    summary['departments'] = grouped_counts(db.session, Employee, Employee.department, list_query.predicates)
    return api_response('Employees retrieved successfully', {
        'employees': [e.to_dict() for e in items],
        'pagination': pagination,
        'summary': summary,
    })


@employee_bp.route('/employees/<employee_id>', methods=['GET'])
@require_tenant
def get_employee(employee_id):
    employee = _employees().get_or_404(employee_id)
    return api_response('Employee retrieved successfully', employee.to_dict())


@employee_bp.route('/employees', methods=['POST'])
@require_tenant
@require_role(*MANAGE_ROLES)
def create_employee():
    payload = validate_payload(EmployeeCreate, request.get_json(silent=True))
    repo = _employees()
    with transaction(db.session):
        if repo.find_by_email(payload.email):
            raise Conflict('DUPLICATE_EMPLOYEE', 'An employee with this email already exists')
        employee = repo.insert(
            **payload.model_dump(),
            employee_number=repo.next_employee_number(),
            is_active=payload.status != 'terminated',
        )
    current_app.logger.info(f"Employee created: {employee.employee_number} ({employee.get_full_name()})")
    return api_response('Employee created successfully', employee.to_dict(), 201)


@employee_bp.route('/employees/<employee_id>', methods=['PUT'])
@require_tenant
@require_role(*MANAGE_ROLES)
def update_employee(employee_id):
    fields = update_fields(EmployeeUpdate, request.get_json(silent=True))
    repo = _employees()
    with transaction(db.session):
        employee = repo.get_or_404(employee_id)
        if fields.get('email'):
            existing = repo.find_by_email(fields['email'])
            if existing is not None and existing.id != employee.id:
                raise Conflict('DUPLICATE_EMPLOYEE', 'An employee with this email already exists')
        repo.dynamic_update(employee, fields)
    return api_response('Employee updated successfully', employee.to_dict())


@employee_bp.route('/employees/<employee_id>', methods=['DELETE'])
@require_tenant
@require_role(*MANAGE_ROLES)
def delete_employee(employee_id):
    """Soft delete: the employee is marked terminated"""
    repo = _employees()
    with transaction(db.session):
        employee = repo.delete(repo.get_or_404(employee_id))
    current_app.logger.info(f"Employee terminated: {employee_id}")
    return api_response('Employee terminated successfully', employee.to_dict())
