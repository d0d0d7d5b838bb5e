# repositories/leads.py

from models import (
    Lead, LeadContact, LeadActivity, LeadNote, LeadFollowUp, LeadTag, LeadTagAssignment,
)
from utils.query_builder import Listing
from .base import Repository


class LeadRepository(Repository):
    model = Lead
    not_found_code = 'LEAD_NOT_FOUND'
    soft_delete = {'status': 'deleted'}
    hidden = {'status': 'deleted'}
    mutable_fields = frozenset({
        'name', 'company', 'email', 'phone', 'mobile', 'address', 'city', 'state',
        'zip_code', 'country', 'status', 'source', 'priority', 'service_type',
        'estimated_value', 'lead_score', 'assigned_to', 'notes', 'next_follow_up_date',
    })
    listing = Listing(
        Lead,
        sort_fields={
            'name': Lead.name,
            'company': Lead.company,
            'email': Lead.email,
            'city': Lead.city,
            'state': Lead.state,
            'created_at': Lead.created_at,
            'last_contact_date': Lead.last_contact_date,
            'estimated_value': Lead.estimated_value,
            'lead_score': Lead.lead_score,
        },
        filters={
            'status': Lead.status,
            'source': Lead.source,
            'priority': Lead.priority,
            'assigned_to': Lead.assigned_to,
        },
        date_ranges={
            'date_from': (Lead.created_at, 'start'),
            'date_to': (Lead.created_at, 'end'),
        },
        search_columns=(Lead.name, Lead.company, Lead.email, Lead.phone, Lead.city),
    )


class LeadContactRepository(Repository):
    model = LeadContact
    not_found_code = 'CONTACT_NOT_FOUND'
    mutable_fields = frozenset({
        'contact_type', 'first_name', 'last_name', 'title', 'email', 'phone', 'mobile',
        'relationship', 'can_make_decisions', 'preferred_contact_method', 'notes',
    })

    def ordered(self):
        """Primary first, then oldest"""
        return self.query().order_by(
            LeadContact.is_primary_contact.desc(), LeadContact.created_at.asc()
        ).all()


class LeadActivityRepository(Repository):
    model = LeadActivity
    not_found_code = 'ACTIVITY_NOT_FOUND'
    mutable_fields = frozenset({
        'activity_type', 'subject', 'description', 'activity_date', 'duration_minutes',
        'outcome', 'next_action', 'next_action_date', 'scheduled_follow_up', 'employee_id',
        'is_completed', 'completed_at', 'notes',
    })
    listing = Listing(
        LeadActivity,
        sort_fields={'activity_date': LeadActivity.activity_date, 'created_at': LeadActivity.created_at},
        default_sort='activity_date',
        filters={'activity_type': LeadActivity.activity_type},
        date_ranges={
            'date_from': (LeadActivity.activity_date, 'start'),
            'date_to': (LeadActivity.activity_date, 'end'),
        },
    )


class LeadNoteRepository(Repository):
    model = LeadNote
    not_found_code = 'NOTE_NOT_FOUND'
    mutable_fields = frozenset({
        'note_type', 'title', 'content', 'is_internal', 'is_important', 'priority',
        'due_date', 'is_completed', 'completed_at', 'completed_by',
    })
    listing = Listing(
        LeadNote,
        sort_fields={'created_at': LeadNote.created_at, 'due_date': LeadNote.due_date},
        filters={'note_type': LeadNote.note_type, 'created_by': LeadNote.created_by},
        date_ranges={
            'date_from': (LeadNote.created_at, 'start'),
            'date_to': (LeadNote.created_at, 'end'),
        },
    )


class LeadFollowUpRepository(Repository):
    model = LeadFollowUp
    not_found_code = 'FOLLOWUP_NOT_FOUND'
    mutable_fields = frozenset({
        'follow_up_type', 'subject', 'description', 'scheduled_date', 'priority',
        'assigned_to', 'status', 'outcome', 'completion_notes', 'completed_at',
        'next_follow_up_date', 'notes',
    })
    listing = Listing(
        LeadFollowUp,
        sort_fields={'scheduled_date': LeadFollowUp.scheduled_date, 'created_at': LeadFollowUp.created_at},
        default_sort='scheduled_date',
        default_order='asc',
        filters={'status': LeadFollowUp.status, 'follow_up_type': LeadFollowUp.follow_up_type},
    )


class LeadTagRepository(Repository):
    model = LeadTag
    not_found_code = 'TAG_NOT_FOUND'
    mutable_fields = frozenset({'name', 'color', 'description', 'is_active'})

    def find_by_name(self, name, exclude_id=None):
        query = self.query().filter(LeadTag.name == name)
        if exclude_id:
            query = query.filter(LeadTag.id != exclude_id)
        return query.first()

    def in_use(self, tag):
        return self.session.query(LeadTagAssignment).filter_by(tag_id=tag.id).count() > 0


class LeadTagAssignmentRepository(Repository):
    model = LeadTagAssignment
    not_found_code = 'TAG_ASSIGNMENT_NOT_FOUND'

    def find_for_tag(self, tag_id):
        return self.query().filter(LeadTagAssignment.tag_id == tag_id).first()
