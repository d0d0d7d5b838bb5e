# routes/job_routes.py
from datetime import datetime

from flask import Blueprint, request, g, current_app
from sqlalchemy import func

from database import db, transaction
from errors import NotFound
from models import Job, JOB_STATUSES
from repositories import CustomerRepository, EmployeeRepository, EstimateRepository, JobRepository
from schemas import validate_payload, update_fields
from schemas.jobs import JobCreate, JobUpdate
from tenant_middleware import require_tenant, require_role, MANAGE_ROLES
from utils.query_builder import status_summary
from utils.responses import api_response

job_bp = Blueprint("jobs", __name__)


def _jobs():
    return JobRepository(db.session, business_id=g.business_id)


def _check_references(fields):
    """Customer, estimate and employee must belong to the caller's business"""
    scope = {'business_id': g.business_id}
    if 'customer_id' in fields and CustomerRepository(db.session, **scope).find_by_id(fields['customer_id']) is None:
        raise NotFound('CUSTOMER_NOT_FOUND', 'Customer not found')
    if fields.get('estimate_id') and EstimateRepository(db.session, **scope).find_by_id(fields['estimate_id']) is None:
        raise NotFound('ESTIMATE_NOT_FOUND', 'Estimate not found')
    employee_id = fields.get('assigned_employee_id')
    if employee_id and EmployeeRepository(db.session, **scope).find_by_id(employee_id) is None:
        raise NotFound('EMPLOYEE_NOT_FOUND', 'Employee not found')


@job_bp.route('/jobs', methods=['GET'])
@require_tenant
def get_jobs():
    items, pagination, _ = _jobs().list(request.args)
    return api_response('Jobs retrieved successfully', {
        'jobs': [job.to_dict() for job in items],
        'pagination': pagination,
    })


@job_bp.route('/jobs/stats', methods=['GET'])
@require_tenant
def get_job_stats():
    repo = _jobs()
    predicates = repo.base_predicates()
    stats = status_summary(db.session, Job, Job.status, JOB_STATUSES, predicates)

    revenue, average = (
        db.session.query(func.coalesce(func.sum(Job.total_cost), 0), func.avg(Job.total_cost))
        .filter(*predicates, Job.status == 'completed')
        .one()
    )
    stats['total_revenue'] = float(revenue or 0)
    stats['average_job_value'] = round(float(average), 2) if average is not None else 0.0
    return api_response('Job statistics retrieved successfully', stats)


@job_bp.route('/jobs/<int:job_id>', methods=['GET'])
@require_tenant
def get_job_by_id(job_id):
    job = _jobs().get_or_404(job_id)
    return api_response('Job retrieved successfully', job.to_dict(include_history=True))


# ----------------------------
# Create Job
# ----------------------------
@job_bp.route("/jobs", methods=["POST"])
@require_tenant
def create_job():
    payload = validate_payload(JobCreate, request.get_json(silent=True))
    data = payload.model_dump()
    repo = _jobs()
    with transaction(db.session):
        _check_references(data)
        job = repo.insert(**data)
        repo.record_status(job, job.status, changed_by=g.user_id, notes='Job created')
    current_app.logger.info(f"Job created: {job.id} for customer {job.customer_id}")
    return api_response('Job created successfully', job.to_dict(include_history=True), 201)


# ----------------------------
# Update Job
# ----------------------------
@job_bp.route('/jobs/<int:job_id>', methods=['PUT'])
@require_tenant
def update_job(job_id):
    fields = update_fields(JobUpdate, request.get_json(silent=True))
    repo = _jobs()
    with transaction(db.session):
        job = repo.get_or_404(job_id)
        _check_references(fields)
        old_status = job.status
        if fields.get('status') == 'completed' and not fields.get('completion_date') and not job.completion_date:
            fields['completion_date'] = datetime.utcnow()
        repo.dynamic_update(job, fields)
        if job.status != old_status:
            repo.record_status(job, job.status, old_status=old_status, changed_by=g.user_id)
    return api_response('Job updated successfully', job.to_dict(include_history=True))


@job_bp.route('/jobs/<int:job_id>', methods=['DELETE'])
@require_tenant
@require_role(*MANAGE_ROLES)
def delete_job(job_id):
    repo = _jobs()
    with transaction(db.session):
        repo.delete(repo.get_or_404(job_id))
    current_app.logger.info(f"Job deleted: {job_id}")
    return api_response('Job deleted successfully', {'job_id': job_id})
