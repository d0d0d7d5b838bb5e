# services/lead_lifecycle.py - Lead state machine and its cross-entity side effects
#
# new -> contacted -> qualified -> quoted -> scheduled -> converted
#                                                     \-> lost
# any non-terminal state -> deleted (soft, hidden from every read)

import time
from collections import Counter
from datetime import datetime

from flask import current_app
from sqlalchemy import case, func, or_
from sqlalchemy.exc import IntegrityError

from database import transaction
from errors import Conflict, NotFound, ValidationFailed, classify_integrity_error
from models import (
    CONTACT_ACTIVITY_TYPES, Employee, Lead, LeadActivity, LeadContact, LeadConversion, LeadNote,
    LeadQualification, LeadFollowUp, LeadTagAssignment,
)
from repositories import (
    CustomerRepository, LeadRepository, LeadContactRepository, LeadActivityRepository,
    LeadNoteRepository, LeadFollowUpRepository, LeadTagRepository, LeadTagAssignmentRepository,
    assign_primary, promote_oldest,
)
from utils.query_builder import Listing, grouped_counts, like_pattern, status_summary

SUMMARY_STATUSES = ('new', 'contacted', 'qualified', 'quoted', 'scheduled', 'converted', 'lost')
SEARCHABLE_FIELDS = ('name', 'company', 'email', 'phone', 'city')
DEFAULT_SEARCH_LIMIT = 50

SEARCH_FILTERS = Listing(
    Lead,
    sort_fields={'name': Lead.name},
    default_sort='name',
    default_order='asc',
    filters={
        'status': Lead.status,
        'source': Lead.source,
        'priority': Lead.priority,
        'assigned_to': Lead.assigned_to,
        'service_type': Lead.service_type,
    },
    numeric_ranges={
        'min_estimated_value': (Lead.estimated_value, 'min'),
        'max_estimated_value': (Lead.estimated_value, 'max'),
    },
)

REPORT_FILTERS = Listing(
    Lead,
    sort_fields={'created_at': Lead.created_at},
    filters={'assigned_to': Lead.assigned_to},
    date_ranges={
        'date_from': (Lead.created_at, 'start'),
        'date_to': (Lead.created_at, 'end'),
    },
)

PERFORMANCE_FILTERS = Listing(
    Lead,
    sort_fields={'created_at': Lead.created_at},
    filters={'employee_id': Lead.assigned_to, 'source': Lead.source},
    date_ranges={
        'date_from': (Lead.created_at, 'start'),
        'date_to': (Lead.created_at, 'end'),
    },
)

# cumulative: a lead counts for every stage it has passed
FUNNEL_STAGES = (
    ('contacted_leads', ('contacted', 'qualified', 'quoted', 'scheduled', 'converted')),
    ('qualified_leads', ('qualified', 'quoted', 'scheduled', 'converted')),
    ('proposal_sent', ('quoted', 'scheduled', 'converted')),
    ('converted_leads', ('converted',)),
)

HIGH_QUALITY_SCORE = 80
LOW_QUALITY_SCORE = 50
TARGET_AVERAGE_SCORE = 60
HIGH_VALUE_THRESHOLD = 5000
MIN_SOURCE_SAMPLE = 3
TREND_MONTHS = 6


def relevance(lead, term):
    """0.5 base, +0.3 for a name hit, +0.2 for a company hit, capped at 1.0"""
    term = term.lower()
    score = 0.5
    if lead.name and term in lead.name.lower():
        score += 0.3
    if lead.company and term in lead.company.lower():
        score += 0.2
    return round(min(score, 1.0), 2)


def percentage(part, whole):
    return round(part / whole * 100, 1) if whole else 0.0


def match_reason(lead, term, fields):
    term = term.lower()
    for field in fields:
        value = getattr(lead, field)
        if value and term in value.lower():
            return f"Matched {field}"
    return 'Matched search criteria'


class LeadLifecycleManager:
    """All lead operations for one business, run over an injected session"""

    def __init__(self, session, business_id, actor_id=None):
        self.session = session
        self.business_id = business_id
        self.actor_id = actor_id
        self.leads = LeadRepository(session, business_id=business_id)
        self.tags = LeadTagRepository(session, business_id=business_id)
        self.customers = CustomerRepository(session, business_id=business_id)

    # ----------------------------------
    # Child repositories
    # ----------------------------------

    def contacts(self, lead):
        return LeadContactRepository(self.session, lead_id=lead.id)

    def activities(self, lead):
        return LeadActivityRepository(self.session, lead_id=lead.id)

    def notes(self, lead):
        return LeadNoteRepository(self.session, lead_id=lead.id)

    def follow_ups(self, lead):
        return LeadFollowUpRepository(self.session, lead_id=lead.id)

    def tag_assignments(self, lead):
        return LeadTagAssignmentRepository(self.session, lead_id=lead.id)

    # ----------------------------------
    # Reads
    # ----------------------------------

    def get_lead(self, lead_id):
        """Lead by id; absent or soft-deleted -> LEAD_NOT_FOUND"""
        return self.leads.get_or_404(lead_id)

    def list_leads(self, args):
        items, pagination, list_query = self.leads.list(args)
        summary = status_summary(
            self.session, Lead, Lead.status, SUMMARY_STATUSES, list_query.predicates,
            total_column=Lead.estimated_value, total_label='total_potential_value',
        )
        return {
            'leads': [lead.to_list_item() for lead in items],
            'pagination': pagination,
            'summary': summary,
        }

    def get_lead_detail(self, lead_id):
        lead = self.get_lead(lead_id)
        data = lead.to_dict()
        data['contacts'] = [c.to_dict() for c in self.contacts(lead).ordered()]
        data['activities'] = [
            a.to_dict() for a in self.activities(lead).query()
            .order_by(LeadActivity.activity_date.desc(), LeadActivity.created_at.desc()).all()
        ]
        data['notes'] = [
            n.to_dict() for n in self.notes(lead).query().order_by(LeadNote.created_at.desc()).all()
        ]
        data['tags'] = [t.to_dict() for t in self.tag_assignments(lead).query().all()]
        data['follow_ups'] = [
            f.to_dict() for f in self.follow_ups(lead).query().order_by(LeadFollowUp.scheduled_date.asc()).all()
        ]
        if lead.qualification:
            data['qualification'] = lead.qualification.to_dict()
        else:
            data['qualification'] = {'is_qualified': False, 'qualification_score': 0}
        conversion = self.session.query(LeadConversion).filter_by(lead_id=lead.id).first()
        data['conversion'] = conversion.to_dict() if conversion else None
        return data

    # ----------------------------------
    # Create / update / delete
    # ----------------------------------

    def _check_duplicate(self, email, phone, exclude_id=None):
        conditions = []
        if email:
            conditions.append(Lead.email == email)
        if phone:
            conditions.append(Lead.phone == phone)
        if not conditions:
            return
        query = self.session.query(Lead.id).filter(Lead.business_id == self.business_id, or_(*conditions))
        if exclude_id:
            query = query.filter(Lead.id != exclude_id)
        if query.first():
            raise Conflict('DUPLICATE_LEAD', 'A lead with this email or phone already exists')

    def create_lead(self, payload):
        """
        Lead + nested contacts + tag assignments + initial activity + empty
        qualification, committed together or not at all.
        """
        try:
            with transaction(self.session):
                self._check_duplicate(payload.email, payload.phone)

                values = payload.model_dump(exclude={'contacts', 'tags'})
                lead = self.leads.insert(**values, status='new', created_by=self.actor_id)

                contacts = self.contacts(lead)
                primary_taken = False
                for contact in payload.contacts:
                    data = contact.model_dump()
                    wants_primary = data.pop('is_primary_contact')
                    contacts.insert(**data, is_primary_contact=wants_primary and not primary_taken)
                    primary_taken = primary_taken or wants_primary

                for tag_id in dict.fromkeys(payload.tags):
                    self._attach_tag(lead, tag_id)

                self.activities(lead).insert(
                    activity_type='initial_contact',
                    subject='Lead created',
                    description='Lead created',
                    activity_date=datetime.utcnow(),
                    outcome='neutral',
                    created_by=self.actor_id,
                )
                self.session.add(LeadQualification(lead_id=lead.id, is_qualified=False, qualification_score=0))
                self.session.flush()
        except IntegrityError as exc:
            if classify_integrity_error(exc) == 'duplicate':
                raise Conflict('DUPLICATE_LEAD', 'A lead with this email or phone already exists') from exc
            raise

        current_app.logger.info(f"Lead created: {lead.id} ({lead.name})")
        return lead

    def update_lead(self, lead_id, fields):
        try:
            with transaction(self.session):
                lead = self.get_lead(lead_id)
                if lead.status == 'converted' and 'status' in fields:
                    raise Conflict('LEAD_ALREADY_CONVERTED', 'Converted leads cannot change status')
                if 'email' in fields or 'phone' in fields:
                    self._check_duplicate(fields.get('email'), fields.get('phone'), exclude_id=lead.id)
                self.leads.dynamic_update(lead, fields)
        except IntegrityError as exc:
            if classify_integrity_error(exc) == 'duplicate':
                raise Conflict('DUPLICATE_LEAD', 'A lead with this email or phone already exists') from exc
            raise
        return lead

    def delete_lead(self, lead_id):
        """Soft delete: the row stays, every read path stops seeing it"""
        with transaction(self.session):
            lead = self.get_lead(lead_id)
            self.leads.delete(lead)
        current_app.logger.info(f"Lead deleted: {lead_id}")
        return lead

    # ----------------------------------
    # Qualification
    # ----------------------------------

    def get_qualification(self, lead_id):
        lead = self.get_lead(lead_id)
        if lead.qualification is None:
            raise NotFound('QUALIFICATION_NOT_FOUND', 'Lead qualification not found')
        return lead.qualification

    def qualify(self, lead_id, payload):
        """
        Upsert the single qualification; qualifying pushes the lead to 'qualified'.

        PUT semantics: the payload replaces the whole assessment, so any field
        the caller leaves out goes back to its schema default.
        """
        with transaction(self.session):
            lead = self.get_lead(lead_id)
            now = datetime.utcnow()
            qualification = lead.qualification
            if qualification is None:
                qualification = LeadQualification(lead_id=lead.id)
                self.session.add(qualification)

            for key, value in payload.model_dump().items():
                setattr(qualification, key, value)
            qualification.assessed_at = now

            if payload.is_qualified:
                qualification.qualified_date = qualification.qualified_date or now
                qualification.qualified_by = self.actor_id
                # converted is terminal
                if lead.status != 'converted':
                    lead.status = 'qualified'
                    lead.updated_at = now
            else:
                qualification.qualified_date = None
                qualification.qualified_by = None
            self.session.flush()
        return qualification

    # ----------------------------------
    # Contacts
    # ----------------------------------

    def get_contact(self, lead_id, contact_id):
        return self.contacts(self.get_lead(lead_id)).get_or_404(contact_id)

    def add_contact(self, lead_id, payload):
        with transaction(self.session):
            lead = self.get_lead(lead_id)
            data = payload.model_dump()
            wants_primary = data.pop('is_primary_contact')
            contact = self.contacts(lead).insert(**data, is_primary_contact=False)
            if wants_primary:
                assign_primary(self.session, contact, 'lead_id', 'is_primary_contact')
        return contact

    def update_contact(self, lead_id, contact_id, fields):
        with transaction(self.session):
            lead = self.get_lead(lead_id)
            repo = self.contacts(lead)
            contact = repo.get_or_404(contact_id)
            primary = fields.pop('is_primary_contact', None)
            if fields or primary is None:
                repo.dynamic_update(contact, fields)
            if primary:
                assign_primary(self.session, contact, 'lead_id', 'is_primary_contact')
            elif primary is False and contact.is_primary_contact:
                contact.is_primary_contact = False
                contact.updated_at = datetime.utcnow()
                self.session.flush()
        return contact

    def delete_contact(self, lead_id, contact_id):
        """Removing the primary promotes the oldest remaining contact"""
        with transaction(self.session):
            lead = self.get_lead(lead_id)
            repo = self.contacts(lead)
            contact = repo.get_or_404(contact_id)
            was_primary = contact.is_primary_contact
            repo.delete(contact)
            if was_primary:
                promote_oldest(self.session, LeadContact, 'lead_id', 'is_primary_contact', lead.id)

    # ----------------------------------
    # Activities
    # ----------------------------------

    def get_activity(self, lead_id, activity_id):
        return self.activities(self.get_lead(lead_id)).get_or_404(activity_id)

    def log_activity(self, lead_id, payload):
        with transaction(self.session):
            lead = self.get_lead(lead_id)
            data = payload.model_dump()
            now = datetime.utcnow()
            data['activity_date'] = data['activity_date'] or now
            activity = self.activities(lead).insert(**data, created_by=self.actor_id)
            if activity.activity_type in CONTACT_ACTIVITY_TYPES:
                lead.last_contact_date = now
                lead.updated_at = now
                self.session.flush()
        return activity

    def update_activity(self, lead_id, activity_id, fields):
        with transaction(self.session):
            lead = self.get_lead(lead_id)
            repo = self.activities(lead)
            activity = repo.dynamic_update(repo.get_or_404(activity_id), fields)
        return activity

    def complete_activity(self, lead_id, activity_id, payload):
        with transaction(self.session):
            lead = self.get_lead(lead_id)
            repo = self.activities(lead)
            activity = repo.get_or_404(activity_id)
            fields = {'is_completed': True, 'completed_at': datetime.utcnow()}
            fields.update(payload.model_dump(exclude_none=True))
            repo.dynamic_update(activity, fields)
        return activity

    def delete_activity(self, lead_id, activity_id):
        with transaction(self.session):
            lead = self.get_lead(lead_id)
            repo = self.activities(lead)
            repo.delete(repo.get_or_404(activity_id))

    # ----------------------------------
    # Notes
    # ----------------------------------

    def get_note(self, lead_id, note_id):
        return self.notes(self.get_lead(lead_id)).get_or_404(note_id)

    def add_note(self, lead_id, payload):
        with transaction(self.session):
            lead = self.get_lead(lead_id)
            note = self.notes(lead).insert(**payload.model_dump(), created_by=self.actor_id)
        return note

    def update_note(self, lead_id, note_id, fields):
        with transaction(self.session):
            lead = self.get_lead(lead_id)
            repo = self.notes(lead)
            note = repo.dynamic_update(repo.get_or_404(note_id), fields)
        return note

    def complete_note(self, lead_id, note_id):
        with transaction(self.session):
            lead = self.get_lead(lead_id)
            repo = self.notes(lead)
            note = repo.dynamic_update(repo.get_or_404(note_id), {
                'is_completed': True,
                'completed_at': datetime.utcnow(),
                'completed_by': self.actor_id,
            })
        return note

    def delete_note(self, lead_id, note_id):
        with transaction(self.session):
            lead = self.get_lead(lead_id)
            repo = self.notes(lead)
            repo.delete(repo.get_or_404(note_id))

    # ----------------------------------
    # Follow-ups
    # ----------------------------------

    def get_follow_up(self, lead_id, follow_up_id):
        return self.follow_ups(self.get_lead(lead_id)).get_or_404(follow_up_id)

    def schedule_follow_up(self, lead_id, payload):
        """The lead's next_follow_up_date tracks the earliest scheduled follow-up"""
        with transaction(self.session):
            lead = self.get_lead(lead_id)
            follow_up = self.follow_ups(lead).insert(
                **payload.model_dump(), status='pending', created_by=self.actor_id,
            )
            if lead.next_follow_up_date is None or lead.next_follow_up_date > follow_up.scheduled_date:
                lead.next_follow_up_date = follow_up.scheduled_date
                lead.updated_at = datetime.utcnow()
                self.session.flush()
        return follow_up

    def update_follow_up(self, lead_id, follow_up_id, fields):
        with transaction(self.session):
            lead = self.get_lead(lead_id)
            repo = self.follow_ups(lead)
            follow_up = repo.dynamic_update(repo.get_or_404(follow_up_id), fields)
        return follow_up

    def complete_follow_up(self, lead_id, follow_up_id, payload):
        with transaction(self.session):
            lead = self.get_lead(lead_id)
            repo = self.follow_ups(lead)
            follow_up = repo.get_or_404(follow_up_id)
            fields = payload.model_dump()
            fields['completed_at'] = datetime.utcnow()
            repo.dynamic_update(follow_up, fields)
            if payload.next_follow_up_date:
                lead.next_follow_up_date = payload.next_follow_up_date
                lead.updated_at = datetime.utcnow()
                self.session.flush()
        return follow_up

    def delete_follow_up(self, lead_id, follow_up_id):
        with transaction(self.session):
            lead = self.get_lead(lead_id)
            repo = self.follow_ups(lead)
            repo.delete(repo.get_or_404(follow_up_id))

    # ----------------------------------
    # Tags
    # ----------------------------------

    def list_tags(self, include_inactive=False):
        query = self.tags.query()
        if not include_inactive:
            query = query.filter_by(is_active=True)
        return query.order_by(func.lower(self.tags.model.name)).all()

    def create_tag(self, payload):
        with transaction(self.session):
            if self.tags.find_by_name(payload.name):
                raise Conflict('DUPLICATE_TAG_NAME', 'A tag with this name already exists')
            tag = self.tags.insert(**payload.model_dump())
        return tag

    def update_tag(self, tag_id, fields):
        with transaction(self.session):
            tag = self.tags.get_or_404(tag_id)
            if fields.get('name') and self.tags.find_by_name(fields['name'], exclude_id=tag.id):
                raise Conflict('DUPLICATE_TAG_NAME', 'A tag with this name already exists')
            self.tags.dynamic_update(tag, fields)
        return tag

    def delete_tag(self, tag_id):
        with transaction(self.session):
            tag = self.tags.get_or_404(tag_id)
            if self.tags.in_use(tag):
                raise Conflict('TAG_IN_USE', 'Tag is assigned to one or more leads')
            self.tags.delete(tag)

    def lead_tags(self, lead_id):
        lead = self.get_lead(lead_id)
        return self.tag_assignments(lead).query().order_by(LeadTagAssignment.assigned_at.asc()).all()

    def _attach_tag(self, lead, tag_id):
        tag = self.tags.find_by_id(tag_id)
        if tag is None or not tag.is_active:
            raise NotFound('TAG_NOT_FOUND', 'Tag not found or inactive')
        assignments = self.tag_assignments(lead)
        if assignments.find_for_tag(tag.id):
            raise Conflict('TAG_ALREADY_ASSIGNED', 'Tag is already assigned to this lead')
        return assignments.insert(tag_id=tag.id, assigned_by=self.actor_id)

    def assign_tag(self, lead_id, tag_id):
        with transaction(self.session):
            lead = self.get_lead(lead_id)
            assignment = self._attach_tag(lead, tag_id)
        return assignment

    def remove_tag(self, lead_id, tag_id):
        with transaction(self.session):
            lead = self.get_lead(lead_id)
            assignments = self.tag_assignments(lead)
            assignment = assignments.find_for_tag(tag_id)
            if assignment is None:
                raise NotFound('TAG_ASSIGNMENT_NOT_FOUND', 'Tag is not assigned to this lead')
            assignments.delete(assignment)

    # ----------------------------------
    # Conversion
    # ----------------------------------

    def convert(self, lead_id, payload):
        """
        Lead -> Customer. Status flip, customer row, conversion record and the
        back-reference are written in one transaction.
        """
        with transaction(self.session):
            lead = self.get_lead(lead_id)
            if lead.status == 'converted':
                raise Conflict('LEAD_ALREADY_CONVERTED', 'Lead has already been converted')

            now = datetime.utcnow()
            job = payload.first_job_details
            if job is not None and job.estimated_value is not None:
                conversion_value = job.estimated_value
            else:
                conversion_value = lead.estimated_value or 0

            lead.status = 'converted'
            lead.converted_at = now
            lead.updated_at = now

            customer_name = payload.customer_name or lead.name
            notes = f"Converted from lead: {lead.name}"
            if payload.notes:
                notes = f"{notes}\n{payload.notes}"
            customer = self.customers.insert(
                name=customer_name,
                email=lead.email,
                phone=lead.phone,
                mobile=lead.mobile,
                address=lead.address,
                city=lead.city,
                state=lead.state,
                zip_code=lead.zip_code,
                country=lead.country,
                customer_type=payload.customer_type,
                status='active',
                source='lead_conversion',
                notes=notes,
                created_by=self.actor_id,
            )

            self.session.add(LeadConversion(
                lead_id=lead.id,
                customer_id=customer.id,
                conversion_value=conversion_value,
                conversion_reason=payload.conversion_reason,
                conversion_channel=payload.conversion_channel,
                converted_by=self.actor_id,
                converted_at=now,
            ))
            lead.converted_to_customer_id = customer.id
            self.session.flush()

        current_app.logger.info(f"Lead {lead.id} converted to customer {customer.id}")
        return {
            'lead_id': lead.id,
            'customer_id': customer.id,
            'customer_name': customer.name,
            'conversion_value': float(conversion_value),
        }

    # ----------------------------------
    # Search & reporting
    # ----------------------------------

    def search(self, args, limit=DEFAULT_SEARCH_LIMIT):
        term = (args.get('q') or '').strip()
        if not term:
            raise ValidationFailed('SEARCH_QUERY_REQUIRED', 'Search query is required')

        started = time.perf_counter()
        requested = [f.strip() for f in (args.get('search_fields') or '').split(',') if f.strip()]
        fields = [f for f in requested if f in SEARCHABLE_FIELDS] or list(SEARCHABLE_FIELDS)

        pattern = like_pattern(term)
        predicates = SEARCH_FILTERS.predicates(args, *self.leads.base_predicates())
        predicates.append(or_(*[getattr(Lead, f).ilike(pattern, escape='\\') for f in fields]))

        leads = (
            self.session.query(Lead)
            .filter(*predicates)
            .order_by(Lead.name.asc())
            .limit(limit)
            .all()
        )

        results = []
        for lead in leads:
            item = lead.to_list_item()
            item['relevance_score'] = relevance(lead, term)
            item['match_reason'] = match_reason(lead, term, fields)
            results.append(item)
        # stable: equal scores keep name order
        results.sort(key=lambda r: r['relevance_score'], reverse=True)

        return {
            'query': term,
            'search_fields': fields,
            'results': results,
            'total_results': len(results),
            'search_time_ms': round((time.perf_counter() - started) * 1000, 2),
        }

    def report_summary(self, args):
        predicates = REPORT_FILTERS.predicates(args, *self.leads.base_predicates())
        by_status = grouped_counts(self.session, Lead, Lead.status, predicates)
        by_source = grouped_counts(self.session, Lead, Lead.source, predicates)
        total = sum(by_status.values())
        converted = by_status.get('converted', 0)

        conversion_value = (
            self.session.query(func.coalesce(func.sum(LeadConversion.conversion_value), 0))
            .join(Lead, Lead.id == LeadConversion.lead_id)
            .filter(*predicates)
            .scalar()
        )
        return {
            'total_leads': total,
            'by_status': by_status,
            'by_source': by_source,
            'converted': converted,
            'conversion_rate': round(converted / total * 100, 2) if total else 0.0,
            'total_conversion_value': float(conversion_value or 0),
        }

    def _average_response_hours(self, predicates):
        """Mean hours from lead creation to its first outbound contact activity"""
        rows = (
            self.session.query(Lead.created_at, func.min(LeadActivity.activity_date))
            .join(LeadActivity, LeadActivity.lead_id == Lead.id)
            .filter(
                *predicates,
                LeadActivity.activity_type.in_(CONTACT_ACTIVITY_TYPES),
                LeadActivity.activity_date > Lead.created_at,
            )
            .group_by(Lead.id, Lead.created_at)
            .all()
        )
        if not rows:
            return None
        hours = [(first - created).total_seconds() / 3600 for created, first in rows]
        return round(sum(hours) / len(hours), 1)

    def report_performance(self, args):
        """Per-employee and per-source conversion, plus the cumulative funnel"""
        predicates = PERFORMANCE_FILTERS.predicates(args, *self.leads.base_predicates())
        converted = func.coalesce(func.sum(case((Lead.status == 'converted', 1), else_=0)), 0)
        qualified = func.coalesce(func.sum(case((Lead.status == 'qualified', 1), else_=0)), 0)

        team_rows = (
            self.session.query(
                Lead.assigned_to,
                func.count(Lead.id),
                qualified,
                converted,
                func.coalesce(func.sum(Lead.estimated_value), 0),
                func.avg(Lead.estimated_value),
            )
            .filter(*predicates)
            .group_by(Lead.assigned_to)
            .all()
        )
        employee_ids = [row[0] for row in team_rows if row[0]]
        names = {}
        if employee_ids:
            employees = (
                self.session.query(Employee)
                .filter(Employee.business_id == self.business_id, Employee.id.in_(employee_ids))
                .all()
            )
            names = {e.id: e.get_full_name() for e in employees}

        team = []
        for employee_id, assigned, qualified_count, converted_count, total_value, average_value in team_rows:
            team.append({
                'employee_id': employee_id,
                'employee_name': names.get(employee_id, 'Unassigned' if employee_id is None else None),
                'leads_assigned': assigned,
                'leads_qualified': int(qualified_count),
                'leads_converted': int(converted_count),
                'conversion_rate': percentage(int(converted_count), assigned),
                'total_value': float(total_value or 0),
                'average_value': round(float(average_value or 0), 2),
            })
        team.sort(key=lambda row: (row['leads_converted'], row['leads_assigned']), reverse=True)

        source_rows = (
            self.session.query(Lead.source, func.count(Lead.id), converted, func.avg(Lead.estimated_value))
            .filter(*predicates)
            .group_by(Lead.source)
            .all()
        )
        sources = [
            {
                'source': source,
                'total_leads': total,
                'converted_leads': int(converted_count),
                'conversion_rate': percentage(int(converted_count), total),
                'average_value': round(float(average_value or 0), 2),
            }
            for source, total, converted_count, average_value in source_rows
        ]
        sources.sort(key=lambda row: row['conversion_rate'], reverse=True)

        stage_columns = [
            func.coalesce(func.sum(case((Lead.status.in_(statuses), 1), else_=0)), 0)
            for _, statuses in FUNNEL_STAGES
        ]
        funnel_row = (
            self.session.query(func.count(Lead.id), *stage_columns)
            .filter(*predicates)
            .one()
        )
        funnel = {'new_leads': funnel_row[0]}
        for (stage, _), count in zip(FUNNEL_STAGES, funnel_row[1:]):
            funnel[stage] = int(count or 0)

        return {
            'report_period': {
                'from': args.get('date_from') or 'all_time',
                'to': args.get('date_to') or 'now',
            },
            'team_performance': team,
            'source_performance': sources,
            'conversion_funnel': funnel,
            'average_response_hours': self._average_response_hours(predicates),
        }

    def report_insights(self, args):
        """Monthly conversion trend, lead quality and source effectiveness, with plain-language findings"""
        predicates = REPORT_FILTERS.predicates(args, *self.leads.base_predicates())

        monthly_totals = Counter()
        monthly_converted = Counter()
        for created_at, status in self.session.query(Lead.created_at, Lead.status).filter(*predicates):
            month = created_at.strftime('%Y-%m')
            monthly_totals[month] += 1
            if status == 'converted':
                monthly_converted[month] += 1
        trends = [
            {
                'month': month,
                'total_leads': monthly_totals[month],
                'converted_leads': monthly_converted[month],
                'conversion_rate': percentage(monthly_converted[month], monthly_totals[month]),
            }
            for month in sorted(monthly_totals, reverse=True)[:TREND_MONTHS]
        ]

        quality = (
            self.session.query(
                func.count(Lead.id),
                func.avg(Lead.lead_score),
                func.coalesce(func.sum(case((Lead.lead_score >= HIGH_QUALITY_SCORE, 1), else_=0)), 0),
                func.coalesce(func.sum(case((Lead.lead_score < LOW_QUALITY_SCORE, 1), else_=0)), 0),
                func.coalesce(func.sum(case((Lead.estimated_value >= HIGH_VALUE_THRESHOLD, 1), else_=0)), 0),
            )
            .filter(*predicates)
            .one()
        )
        total, average_score, high_quality, low_quality, high_value = quality
        quality_metrics = {
            'total_leads': total,
            'average_lead_score': round(float(average_score or 0), 1),
            'high_quality_leads': int(high_quality),
            'low_quality_leads': int(low_quality),
            'high_value_leads': int(high_value),
        }

        converted = func.coalesce(func.sum(case((Lead.status == 'converted', 1), else_=0)), 0)
        source_rows = (
            self.session.query(Lead.source, func.count(Lead.id), converted, func.avg(Lead.estimated_value))
            .filter(*predicates)
            .group_by(Lead.source)
            .having(func.count(Lead.id) >= MIN_SOURCE_SAMPLE)
            .all()
        )
        effectiveness = [
            {
                'source': source,
                'total_leads': count,
                'conversion_rate': percentage(int(converted_count), count),
                'average_value': round(float(average_value or 0), 2),
            }
            for source, count, converted_count, average_value in source_rows
        ]
        effectiveness.sort(key=lambda row: row['conversion_rate'], reverse=True)

        insights = []
        recommendations = []
        if len(trends) >= 2:
            current, previous = trends[0]['conversion_rate'], trends[1]['conversion_rate']
            if current > previous:
                insights.append('Conversion rate is improving month over month')
            elif current < previous:
                insights.append('Conversion rate has declined recently')
                recommendations.append('Review lead qualification process and follow-up procedures')

        if total:
            if quality_metrics['average_lead_score'] < TARGET_AVERAGE_SCORE:
                insights.append('Average lead quality score is below optimal levels')
                recommendations.append('Improve lead qualification criteria and scoring system')
            if percentage(quality_metrics['high_quality_leads'], total) < 30:
                recommendations.append('Focus on attracting higher quality leads through better targeting')
            if quality_metrics['high_value_leads'] < 10:
                recommendations.append('Focus on attracting higher value leads through premium service positioning')

        if len(effectiveness) >= 2:
            best, worst = effectiveness[0], effectiveness[-1]
            if best['conversion_rate'] - worst['conversion_rate'] > 20:
                insights.append(
                    f"Significant performance gap between lead sources: {best['source']} "
                    f"({best['conversion_rate']}%) vs {worst['source']} ({worst['conversion_rate']}%)"
                )
                recommendations.append(
                    f"Optimize {worst['source']} lead generation or reallocate budget to {best['source']}"
                )

        return {
            'insights': insights,
            'recommendations': recommendations,
            'conversion_trends': trends,
            'quality_metrics': quality_metrics,
            'source_effectiveness': effectiveness,
        }
