# routes/lead_routes.py
from flask import Blueprint, current_app, request, g

from database import db
from schemas import validate_payload, update_fields
from schemas.leads import (
    LeadCreate, LeadUpdate, LeadConvert, QualificationUpdate,
    ContactCreate, ContactUpdate,
    ActivityCreate, ActivityUpdate, ActivityComplete,
    NoteCreate, NoteUpdate,
    FollowUpCreate, FollowUpUpdate, FollowUpComplete,
    TagCreate, TagUpdate, TagAssign,
)
from services.lead_lifecycle import LeadLifecycleManager
from tenant_middleware import require_tenant, require_role, WRITE_ROLES, MANAGE_ROLES
from utils.responses import api_response

lead_bp = Blueprint('leads', __name__)


def _manager():
    return LeadLifecycleManager(db.session, g.business_id, g.user_id)


def _json():
    return request.get_json(silent=True)


def _page(items, pagination, key):
    return {key: [item.to_dict() for item in items], 'pagination': pagination}


# ============================================================
# LEADS
# ============================================================

@lead_bp.route('/leads', methods=['GET'])
@require_tenant
def get_leads():
    """List leads with filters, pagination and a status summary"""
    return api_response('Leads retrieved successfully', _manager().list_leads(request.args))


@lead_bp.route('/leads/search', methods=['GET'])
@require_tenant
def search_leads():
    limit = current_app.config.get('SEARCH_RESULT_LIMIT', 50)
    return api_response('Search completed successfully', _manager().search(request.args, limit=limit))


@lead_bp.route('/leads/reports/summary', methods=['GET'])
@require_tenant
@require_role(*MANAGE_ROLES)
def lead_report_summary():
    return api_response('Lead report generated successfully', _manager().report_summary(request.args))


@lead_bp.route('/leads/reports/performance', methods=['GET'])
@require_tenant
@require_role(*MANAGE_ROLES)
def lead_report_performance():
    report = _manager().report_performance(request.args)
    return api_response('Lead performance report generated successfully', report)


@lead_bp.route('/leads/reports/insights', methods=['GET'])
@require_tenant
@require_role(*MANAGE_ROLES)
def lead_report_insights():
    return api_response('Lead insights generated successfully', _manager().report_insights(request.args))


@lead_bp.route('/leads/<lead_id>', methods=['GET'])
@require_tenant
def get_lead(lead_id):
    """Lead with contacts, activities, notes, tags, qualification and follow-ups"""
    return api_response('Lead retrieved successfully', _manager().get_lead_detail(lead_id))


@lead_bp.route('/leads', methods=['POST'])
@require_tenant
@require_role(*WRITE_ROLES)
def create_lead():
    payload = validate_payload(LeadCreate, _json())
    manager = _manager()
    lead = manager.create_lead(payload)
    return api_response('Lead created successfully', {
        'lead_id': lead.id,
        'lead': manager.get_lead_detail(lead.id),
    }, 201)


@lead_bp.route('/leads/<lead_id>', methods=['PUT'])
@require_tenant
@require_role(*WRITE_ROLES)
def update_lead(lead_id):
    fields = update_fields(LeadUpdate, _json())
    lead = _manager().update_lead(lead_id, fields)
    return api_response('Lead updated successfully', lead.to_dict())


@lead_bp.route('/leads/<lead_id>', methods=['DELETE'])
@require_tenant
@require_role(*MANAGE_ROLES)
def delete_lead(lead_id):
    _manager().delete_lead(lead_id)
    return api_response('Lead deleted successfully', {'lead_id': lead_id})


@lead_bp.route('/leads/<lead_id>/convert', methods=['POST'])
@require_tenant
@require_role(*WRITE_ROLES)
def convert_lead(lead_id):
    payload = validate_payload(LeadConvert, _json())
    result = _manager().convert(lead_id, payload)
    return api_response('Lead converted to customer successfully', result)


# ============================================================
# QUALIFICATION
# ============================================================

@lead_bp.route('/leads/<lead_id>/qualification', methods=['GET'])
@require_tenant
def get_qualification(lead_id):
    qualification = _manager().get_qualification(lead_id)
    return api_response('Lead qualification retrieved successfully', qualification.to_dict())


@lead_bp.route('/leads/<lead_id>/qualification', methods=['PUT'])
@require_tenant
@require_role(*WRITE_ROLES)
def update_qualification(lead_id):
    payload = validate_payload(QualificationUpdate, _json())
    qualification = _manager().qualify(lead_id, payload)
    return api_response('Lead qualification updated successfully', qualification.to_dict())


# ============================================================
# CONTACTS
# ============================================================

@lead_bp.route('/leads/<lead_id>/contacts', methods=['GET'])
@require_tenant
def get_contacts(lead_id):
    manager = _manager()
    contacts = manager.contacts(manager.get_lead(lead_id)).ordered()
    return api_response('Lead contacts retrieved successfully', [c.to_dict() for c in contacts])


@lead_bp.route('/leads/<lead_id>/contacts', methods=['POST'])
@require_tenant
@require_role(*WRITE_ROLES)
def add_contact(lead_id):
    payload = validate_payload(ContactCreate, _json())
    contact = _manager().add_contact(lead_id, payload)
    return api_response('Lead contact added successfully', contact.to_dict(), 201)


@lead_bp.route('/leads/<lead_id>/contacts/<contact_id>', methods=['GET'])
@require_tenant
def get_contact(lead_id, contact_id):
    contact = _manager().get_contact(lead_id, contact_id)
    return api_response('Lead contact retrieved successfully', contact.to_dict())


@lead_bp.route('/leads/<lead_id>/contacts/<contact_id>', methods=['PUT'])
@require_tenant
@require_role(*WRITE_ROLES)
def update_contact(lead_id, contact_id):
    fields = update_fields(ContactUpdate, _json())
    contact = _manager().update_contact(lead_id, contact_id, fields)
    return api_response('Lead contact updated successfully', contact.to_dict())


@lead_bp.route('/leads/<lead_id>/contacts/<contact_id>', methods=['DELETE'])
@require_tenant
@require_role(*MANAGE_ROLES)
def delete_contact(lead_id, contact_id):
    _manager().delete_contact(lead_id, contact_id)
    return api_response('Lead contact deleted successfully', {'contact_id': contact_id})


# ============================================================
# ACTIVITIES
# ============================================================

@lead_bp.route('/leads/<lead_id>/activities', methods=['GET'])
@require_tenant
def get_activities(lead_id):
    manager = _manager()
    items, pagination, _ = manager.activities(manager.get_lead(lead_id)).list(request.args)
    return api_response('Lead activities retrieved successfully', _page(items, pagination, 'activities'))


@lead_bp.route('/leads/<lead_id>/activities', methods=['POST'])
@require_tenant
@require_role(*WRITE_ROLES)
def add_activity(lead_id):
    payload = validate_payload(ActivityCreate, _json())
    activity = _manager().log_activity(lead_id, payload)
    return api_response('Lead activity added successfully', activity.to_dict(), 201)


@lead_bp.route('/leads/<lead_id>/activities/<activity_id>', methods=['GET'])
@require_tenant
def get_activity(lead_id, activity_id):
    activity = _manager().get_activity(lead_id, activity_id)
    return api_response('Lead activity retrieved successfully', activity.to_dict())


@lead_bp.route('/leads/<lead_id>/activities/<activity_id>', methods=['PUT'])
@require_tenant
@require_role(*WRITE_ROLES)
def update_activity(lead_id, activity_id):
    fields = update_fields(ActivityUpdate, _json())
    activity = _manager().update_activity(lead_id, activity_id, fields)
    return api_response('Lead activity updated successfully', activity.to_dict())


@lead_bp.route('/leads/<lead_id>/activities/<activity_id>/complete', methods=['PUT'])
@require_tenant
@require_role(*WRITE_ROLES)
def complete_activity(lead_id, activity_id):
    payload = validate_payload(ActivityComplete, _json())
    activity = _manager().complete_activity(lead_id, activity_id, payload)
    return api_response('Lead activity completed successfully', activity.to_dict())


@lead_bp.route('/leads/<lead_id>/activities/<activity_id>', methods=['DELETE'])
@require_tenant
@require_role(*MANAGE_ROLES)
def delete_activity(lead_id, activity_id):
    _manager().delete_activity(lead_id, activity_id)
    return api_response('Lead activity deleted successfully', {'activity_id': activity_id})


# ============================================================
# NOTES
# ============================================================

@lead_bp.route('/leads/<lead_id>/notes', methods=['GET'])
@require_tenant
def get_notes(lead_id):
    manager = _manager()
    items, pagination, _ = manager.notes(manager.get_lead(lead_id)).list(request.args)
    return api_response('Lead notes retrieved successfully', _page(items, pagination, 'notes'))


@lead_bp.route('/leads/<lead_id>/notes', methods=['POST'])
@require_tenant
@require_role(*WRITE_ROLES)
def add_note(lead_id):
    payload = validate_payload(NoteCreate, _json())
    note = _manager().add_note(lead_id, payload)
    return api_response('Lead note added successfully', note.to_dict(), 201)


@lead_bp.route('/leads/<lead_id>/notes/<note_id>', methods=['GET'])
@require_tenant
def get_note(lead_id, note_id):
    note = _manager().get_note(lead_id, note_id)
    return api_response('Lead note retrieved successfully', note.to_dict())


@lead_bp.route('/leads/<lead_id>/notes/<note_id>', methods=['PUT'])
@require_tenant
@require_role(*WRITE_ROLES)
def update_note(lead_id, note_id):
    fields = update_fields(NoteUpdate, _json())
    note = _manager().update_note(lead_id, note_id, fields)
    return api_response('Lead note updated successfully', note.to_dict())


@lead_bp.route('/leads/<lead_id>/notes/<note_id>/complete', methods=['PUT'])
@require_tenant
@require_role(*WRITE_ROLES)
def complete_note(lead_id, note_id):
    note = _manager().complete_note(lead_id, note_id)
    return api_response('Lead note completed successfully', note.to_dict())


@lead_bp.route('/leads/<lead_id>/notes/<note_id>', methods=['DELETE'])
@require_tenant
@require_role(*MANAGE_ROLES)
def delete_note(lead_id, note_id):
    _manager().delete_note(lead_id, note_id)
    return api_response('Lead note deleted successfully', {'note_id': note_id})


# ============================================================
# FOLLOW-UPS
# ============================================================

@lead_bp.route('/leads/<lead_id>/follow-ups', methods=['GET'])
@require_tenant
def get_follow_ups(lead_id):
    manager = _manager()
    items, pagination, _ = manager.follow_ups(manager.get_lead(lead_id)).list(request.args)
    return api_response('Lead follow-ups retrieved successfully', _page(items, pagination, 'follow_ups'))


@lead_bp.route('/leads/<lead_id>/follow-ups', methods=['POST'])
@require_tenant
@require_role(*WRITE_ROLES)
def schedule_follow_up(lead_id):
    payload = validate_payload(FollowUpCreate, _json())
    follow_up = _manager().schedule_follow_up(lead_id, payload)
    return api_response('Follow-up scheduled successfully', follow_up.to_dict(), 201)


@lead_bp.route('/leads/<lead_id>/follow-ups/<follow_up_id>', methods=['GET'])
@require_tenant
def get_follow_up(lead_id, follow_up_id):
    follow_up = _manager().get_follow_up(lead_id, follow_up_id)
    return api_response('Follow-up retrieved successfully', follow_up.to_dict())


@lead_bp.route('/leads/<lead_id>/follow-ups/<follow_up_id>', methods=['PUT'])
@require_tenant
@require_role(*WRITE_ROLES)
def update_follow_up(lead_id, follow_up_id):
    fields = update_fields(FollowUpUpdate, _json())
    follow_up = _manager().update_follow_up(lead_id, follow_up_id, fields)
    return api_response('Follow-up updated successfully', follow_up.to_dict())


@lead_bp.route('/leads/<lead_id>/follow-ups/<follow_up_id>/complete', methods=['PUT'])
@require_tenant
@require_role(*WRITE_ROLES)
def complete_follow_up(lead_id, follow_up_id):
    payload = validate_payload(FollowUpComplete, _json())
    follow_up = _manager().complete_follow_up(lead_id, follow_up_id, payload)
    return api_response('Follow-up completed successfully', follow_up.to_dict())


@lead_bp.route('/leads/<lead_id>/follow-ups/<follow_up_id>', methods=['DELETE'])
@require_tenant
@require_role(*MANAGE_ROLES)
def delete_follow_up(lead_id, follow_up_id):
    _manager().delete_follow_up(lead_id, follow_up_id)
    return api_response('Follow-up deleted successfully', {'follow_up_id': follow_up_id})


# ============================================================
# TAGS
# ============================================================

@lead_bp.route('/leads/tags', methods=['GET'])
@require_tenant
def get_tags():
    include_inactive = request.args.get('include_inactive', '').lower() in ('1', 'true', 'yes')
    tags = _manager().list_tags(include_inactive=include_inactive)
    return api_response('Tags retrieved successfully', [t.to_dict() for t in tags])


@lead_bp.route('/leads/tags', methods=['POST'])
@require_tenant
@require_role(*MANAGE_ROLES)
def create_tag():
    payload = validate_payload(TagCreate, _json())
    tag = _manager().create_tag(payload)
    return api_response('Tag created successfully', tag.to_dict(), 201)


@lead_bp.route('/leads/tags/<tag_id>', methods=['PUT'])
@require_tenant
@require_role(*MANAGE_ROLES)
def update_tag(tag_id):
    fields = update_fields(TagUpdate, _json())
    tag = _manager().update_tag(tag_id, fields)
    return api_response('Tag updated successfully', tag.to_dict())


@lead_bp.route('/leads/tags/<tag_id>', methods=['DELETE'])
@require_tenant
@require_role(*MANAGE_ROLES)
def delete_tag(tag_id):
    _manager().delete_tag(tag_id)
    return api_response('Tag deleted successfully', {'tag_id': tag_id})


@lead_bp.route('/leads/<lead_id>/tags', methods=['GET'])
@require_tenant
def get_lead_tags(lead_id):
    assignments = _manager().lead_tags(lead_id)
    return api_response('Lead tags retrieved successfully', [a.to_dict() for a in assignments])


@lead_bp.route('/leads/<lead_id>/tags', methods=['POST'])
@require_tenant
@require_role(*WRITE_ROLES)
def assign_tag(lead_id):
    payload = validate_payload(TagAssign, _json())
    assignment = _manager().assign_tag(lead_id, payload.tag_id)
    return api_response('Tag assigned successfully', assignment.to_dict(), 201)


@lead_bp.route('/leads/<lead_id>/tags/<tag_id>', methods=['DELETE'])
@require_tenant
@require_role(*MANAGE_ROLES)
def remove_tag(lead_id, tag_id):
    _manager().remove_tag(lead_id, tag_id)
    return api_response('Tag removed successfully', {'lead_id': lead_id, 'tag_id': tag_id})
