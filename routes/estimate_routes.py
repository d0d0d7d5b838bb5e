# routes/estimate_routes.py
from datetime import datetime

from flask import Blueprint, request, g, current_app

from database import db, transaction
from errors import NotFound, ValidationFailed
from models import Estimate, EstimateItem, EstimateFee, ESTIMATE_STATUSES
from repositories import CustomerRepository, EstimateRepository, EstimateItemRepository
from schemas import validate_payload, update_fields
from schemas.estimates import EstimateCreate, EstimateUpdate, EstimateStatusUpdate, ItemCreate, ItemUpdate
from tenant_middleware import require_tenant, require_role, WRITE_ROLES, MANAGE_ROLES
from utils.query_builder import status_summary
from utils.responses import api_response

estimate_bp = Blueprint('estimates', __name__)


def _estimates():
    return EstimateRepository(db.session, business_id=g.business_id)


def _check_customer(customer_id):
    if customer_id and CustomerRepository(db.session, business_id=g.business_id).find_by_id(customer_id) is None:
        raise NotFound('CUSTOMER_NOT_FOUND', 'Customer not found')


def _build_item(data):
    item = EstimateItem(**data)
    item.calculate_total()
    return item


# ----------------------------------
# Estimates
# ----------------------------------

@estimate_bp.route('/estimates', methods=['GET'])
@require_tenant
def get_estimates():
    repo = _estimates()
    items, pagination, list_query = repo.list(request.args)
    summary = status_summary(
        db.session, Estimate, Estimate.status, ESTIMATE_STATUSES, list_query.predicates,
        total_column=Estimate.total,
    )
    return api_response('Estimates retrieved successfully', {
        'estimates': [e.to_dict() for e in items],
        'pagination': pagination,
        'summary': summary,
    })


@estimate_bp.route('/estimates/<estimate_id>', methods=['GET'])
@require_tenant
def get_estimate(estimate_id):
    estimate = _estimates().get_or_404(estimate_id)
    return api_response('Estimate retrieved successfully', estimate.to_dict(include_items=True))


@estimate_bp.route('/estimates', methods=['POST'])
@require_tenant
@require_role(*WRITE_ROLES)
def create_estimate():
    """Estimate, line items and additional fees in one transaction"""
    payload = validate_payload(EstimateCreate, request.get_json(silent=True))
    with transaction(db.session):
        _check_customer(payload.customer_id)
        estimate = _estimates().insert(
            **payload.model_dump(exclude={'items', 'additional_fees'}),
            status='draft',
            created_by=g.user_id,
        )
        for item in payload.items:
            estimate.items.append(_build_item(item.model_dump()))
        for fee in payload.additional_fees:
            estimate.fees.append(EstimateFee(**fee.model_dump()))
        estimate.recalculate_totals()
        db.session.flush()
    current_app.logger.info(f"Estimate created: {estimate.id} total={estimate.total}")
    return api_response('Estimate created successfully', estimate.to_dict(include_items=True), 201)


@estimate_bp.route('/estimates/<estimate_id>', methods=['PUT'])
@require_tenant
@require_role(*WRITE_ROLES)
def update_estimate(estimate_id):
    fields = update_fields(EstimateUpdate, request.get_json(silent=True))
    repo = _estimates()
    with transaction(db.session):
        estimate = repo.get_or_404(estimate_id)
        if 'customer_id' in fields:
            _check_customer(fields['customer_id'])
        repo.dynamic_update(estimate, fields)
    return api_response('Estimate updated successfully', estimate.to_dict(include_items=True))


@estimate_bp.route('/estimates/<estimate_id>', methods=['DELETE'])
@require_tenant
@require_role(*MANAGE_ROLES)
def delete_estimate(estimate_id):
    repo = _estimates()
    with transaction(db.session):
        repo.delete(repo.get_or_404(estimate_id))
    return api_response('Estimate deleted successfully', {'estimate_id': estimate_id})


@estimate_bp.route('/estimates/<estimate_id>/send', methods=['POST'])
@require_tenant
@require_role(*WRITE_ROLES)
def send_estimate(estimate_id):
    """Only drafts can be sent"""
    repo = _estimates()
    with transaction(db.session):
        estimate = repo.get_or_404(estimate_id)
        if estimate.status != 'draft':
            raise ValidationFailed('INVALID_ESTIMATE_STATUS', 'Only draft estimates can be sent')
        estimate.status = 'sent'
        estimate.sent_date = datetime.utcnow()
        estimate.updated_at = estimate.sent_date
        db.session.flush()
    current_app.logger.info(f"Estimate sent: {estimate_id} to {estimate.customer_email or 'no email'}")
    return api_response('Estimate sent successfully', estimate.to_dict())


@estimate_bp.route('/estimates/<estimate_id>/status', methods=['PUT'])
@require_tenant
@require_role(*WRITE_ROLES)
def update_estimate_status(estimate_id):
    payload = validate_payload(EstimateStatusUpdate, request.get_json(silent=True))
    repo = _estimates()
    with transaction(db.session):
        estimate = repo.get_or_404(estimate_id)
        now = datetime.utcnow()
        estimate.status = payload.status
        if payload.status == 'accepted':
            estimate.accepted_date = now
        elif payload.status == 'rejected':
            estimate.rejected_date = now
            estimate.rejection_reason = payload.rejection_reason
        estimate.updated_at = now
        db.session.flush()
    return api_response('Estimate status updated successfully', estimate.to_dict())


# ----------------------------------
# Line items
# ----------------------------------

@estimate_bp.route('/estimates/<estimate_id>/items', methods=['POST'])
@require_tenant
@require_role(*WRITE_ROLES)
def add_item(estimate_id):
    payload = validate_payload(ItemCreate, request.get_json(silent=True))
    with transaction(db.session):
        estimate = _estimates().get_or_404(estimate_id)
        item = _build_item(payload.model_dump())
        estimate.items.append(item)
        estimate.recalculate_totals()
        db.session.flush()
    return api_response('Item added successfully', {
        'item': item.to_dict(),
        'estimate': estimate.to_dict(),
    }, 201)


@estimate_bp.route('/estimates/<estimate_id>/items/<item_id>', methods=['PUT'])
@require_tenant
@require_role(*WRITE_ROLES)
def update_item(estimate_id, item_id):
    fields = update_fields(ItemUpdate, request.get_json(silent=True))
    with transaction(db.session):
        estimate = _estimates().get_or_404(estimate_id)
        repo = EstimateItemRepository(db.session, estimate_id=estimate.id)
        item = repo.dynamic_update(repo.get_or_404(item_id), fields)
        estimate.recalculate_totals()
        db.session.flush()
    return api_response('Item updated successfully', {
        'item': item.to_dict(),
        'estimate': estimate.to_dict(),
    })


@estimate_bp.route('/estimates/<estimate_id>/items/<item_id>', methods=['DELETE'])
@require_tenant
@require_role(*MANAGE_ROLES)
def delete_item(estimate_id, item_id):
    with transaction(db.session):
        estimate = _estimates().get_or_404(estimate_id)
        item = EstimateItemRepository(db.session, estimate_id=estimate.id).get_or_404(item_id)
        estimate.items.remove(item)
        estimate.recalculate_totals()
        db.session.flush()
    return api_response('Item deleted successfully', estimate.to_dict())
