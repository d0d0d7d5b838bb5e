from datetime import datetime

from database import db
from .core import new_id, iso, money


# ============================================================
# ENUMS
# ============================================================

LEAD_STATUSES = ('new', 'contacted', 'qualified', 'quoted', 'scheduled', 'converted', 'lost', 'deleted')
LEAD_STATUS_ENUM = db.Enum(*LEAD_STATUSES, name='lead_status_enum')

LEAD_SOURCES = (
    'website', 'google', 'yelp', 'referral', 'facebook', 'instagram', 'phone_book',
    'direct_mail', 'trade_show', 'cold_call', 'social_media', 'other',
)
LEAD_PRIORITIES = ('low', 'medium', 'high', 'urgent')

CONTACT_TYPES = ('primary', 'secondary', 'billing', 'technical', 'decision_maker', 'other')
CONTACT_METHODS = ('phone', 'email', 'sms', 'mobile')

ACTIVITY_TYPES = (
    'phone_call', 'email', 'sms', 'meeting', 'site_visit',
    'quote_sent', 'follow_up', 'initial_contact', 'other',
)
# Activity types that count as talking to the lead
CONTACT_ACTIVITY_TYPES = ('phone_call', 'email', 'sms', 'meeting', 'site_visit')
ACTIVITY_OUTCOMES = ('positive', 'negative', 'neutral', 'scheduled', 'rescheduled', 'cancelled')

NOTE_TYPES = ('general', 'communication', 'qualification', 'objection', 'follow_up', 'internal')

FOLLOW_UP_TYPES = ('call', 'email', 'meeting', 'site_visit', 'quote_follow_up', 'other')
FOLLOW_UP_STATUSES = ('pending', 'completed', 'cancelled', 'rescheduled')


# ============================================================
# LEAD
# ============================================================

class Lead(db.Model):
    """Sales prospect tracked through the qualification funnel"""
    __tablename__ = 'leads'
    __table_args__ = (
        db.UniqueConstraint('business_id', 'email', name='uq_leads_business_email'),
        db.UniqueConstraint('business_id', 'phone', name='uq_leads_business_phone'),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    business_id = db.Column(db.String(36), nullable=False, index=True)

    name = db.Column(db.String(200), nullable=False)
    company = db.Column(db.String(200))
    email = db.Column(db.String(200))
    phone = db.Column(db.String(50))
    mobile = db.Column(db.String(50))
    address = db.Column(db.String(255))
    city = db.Column(db.String(100))
    state = db.Column(db.String(2))
    zip_code = db.Column(db.String(10))
    country = db.Column(db.String(50), default='USA')

    status = db.Column(LEAD_STATUS_ENUM, default='new', nullable=False, index=True)
    source = db.Column(db.String(30), default='other')
    priority = db.Column(db.String(10), default='medium')
    service_type = db.Column(db.String(100))
    estimated_value = db.Column(db.Numeric(12, 2))
    lead_score = db.Column(db.Integer, default=0)
    assigned_to = db.Column(db.String(36), db.ForeignKey('employees.id'))
    notes = db.Column(db.Text)

    last_contact_date = db.Column(db.DateTime)
    next_follow_up_date = db.Column(db.DateTime)
    converted_at = db.Column(db.DateTime)
    converted_to_customer_id = db.Column(db.String(36), db.ForeignKey('customers.id'))

    created_by = db.Column(db.String(36))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    contacts = db.relationship('LeadContact', back_populates='lead', lazy=True, cascade='all, delete-orphan')
    qualification = db.relationship(
        'LeadQualification', back_populates='lead', uselist=False, cascade='all, delete-orphan',
    )

    def __repr__(self):
        return f'<Lead {self.name} ({self.status})>'

    @property
    def location(self):
        parts = [p for p in (self.city, self.state) if p]
        return ', '.join(parts) if parts else None

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'business_id': self.business_id,
            'name': self.name,
            'company': self.company,
            'email': self.email,
            'phone': self.phone,
            'mobile': self.mobile,
            'address': self.address,
            'city': self.city,
            'state': self.state,
            'zip_code': self.zip_code,
            'country': self.country,
            'status': self.status,
            'source': self.source,
            'priority': self.priority,
            'service_type': self.service_type,
            'estimated_value': money(self.estimated_value),
            'lead_score': self.lead_score,
            'assigned_to': self.assigned_to,
            'notes': self.notes,
            'last_contact_date': iso(self.last_contact_date),
            'next_follow_up_date': iso(self.next_follow_up_date),
            'converted_at': iso(self.converted_at),
            'converted_to_customer_id': self.converted_to_customer_id,
            'created_by': self.created_by,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }

    def to_list_item(self) -> dict:
        """Compact shape for list views"""
        return {
            'id': self.id,
            'name': self.name,
            'company': self.company,
            'email': self.email,
            'phone': self.phone,
            'location': self.location,
            'status': self.status,
            'source': self.source,
            'priority': self.priority,
            'estimated_value': money(self.estimated_value),
            'lead_score': self.lead_score,
            'assigned_to': self.assigned_to,
            'created': iso(self.created_at),
            'last_contact': iso(self.last_contact_date),
            'next_follow_up': iso(self.next_follow_up_date),
        }


class LeadContact(db.Model):
    """People attached to a lead. At most one primary per lead."""
    __tablename__ = 'lead_contacts'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    lead_id = db.Column(db.String(36), db.ForeignKey('leads.id'), nullable=False, index=True)

    contact_type = db.Column(db.String(20), default='primary')
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100))
    title = db.Column(db.String(100))
    email = db.Column(db.String(200))
    phone = db.Column(db.String(50))
    mobile = db.Column(db.String(50))
    relationship = db.Column(db.String(100))
    is_primary_contact = db.Column(db.Boolean, default=False, nullable=False)
    can_make_decisions = db.Column(db.Boolean, default=False)
    preferred_contact_method = db.Column(db.String(20), default='phone')
    notes = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    lead = db.relationship('Lead', back_populates='contacts')

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'contact_type': self.contact_type,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'title': self.title,
            'email': self.email,
            'phone': self.phone,
            'mobile': self.mobile,
            'relationship': self.relationship,
            'is_primary_contact': self.is_primary_contact,
            'can_make_decisions': self.can_make_decisions,
            'preferred_contact_method': self.preferred_contact_method,
            'notes': self.notes,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }


db.Index(
    'uq_lead_contacts_primary',
    LeadContact.lead_id,
    unique=True,
    sqlite_where=LeadContact.is_primary_contact.is_(True),
    postgresql_where=LeadContact.is_primary_contact.is_(True),
)


class LeadActivity(db.Model):
    __tablename__ = 'lead_activities'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    lead_id = db.Column(db.String(36), db.ForeignKey('leads.id'), nullable=False, index=True)
    employee_id = db.Column(db.String(36))

    activity_type = db.Column(db.String(30), nullable=False)
    subject = db.Column(db.String(200))
    description = db.Column(db.Text)
    activity_date = db.Column(db.DateTime, default=datetime.utcnow)
    duration_minutes = db.Column(db.Integer)
    outcome = db.Column(db.String(20))
    next_action = db.Column(db.String(255))
    next_action_date = db.Column(db.DateTime)
    scheduled_follow_up = db.Column(db.Boolean, default=False)
    is_completed = db.Column(db.Boolean, default=False)
    completed_at = db.Column(db.DateTime)
    notes = db.Column(db.Text)

    created_by = db.Column(db.String(36))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'employee_id': self.employee_id,
            'activity_type': self.activity_type,
            'subject': self.subject,
            'description': self.description,
            'activity_date': iso(self.activity_date),
            'duration_minutes': self.duration_minutes,
            'outcome': self.outcome,
            'next_action': self.next_action,
            'next_action_date': iso(self.next_action_date),
            'scheduled_follow_up': self.scheduled_follow_up,
            'is_completed': self.is_completed,
            'completed_at': iso(self.completed_at),
            'notes': self.notes,
            'created_by': self.created_by,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }


class LeadNote(db.Model):
    __tablename__ = 'lead_notes'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    lead_id = db.Column(db.String(36), db.ForeignKey('leads.id'), nullable=False, index=True)

    note_type = db.Column(db.String(20), default='general')
    title = db.Column(db.String(200))
    content = db.Column(db.Text, nullable=False)
    is_internal = db.Column(db.Boolean, default=False)
    is_important = db.Column(db.Boolean, default=False)
    priority = db.Column(db.String(10), default='medium')
    due_date = db.Column(db.DateTime)
    is_completed = db.Column(db.Boolean, default=False)
    completed_at = db.Column(db.DateTime)
    completed_by = db.Column(db.String(36))

    created_by = db.Column(db.String(36))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'note_type': self.note_type,
            'title': self.title,
            'content': self.content,
            'is_internal': self.is_internal,
            'is_important': self.is_important,
            'priority': self.priority,
            'due_date': iso(self.due_date),
            'is_completed': self.is_completed,
            'completed_at': iso(self.completed_at),
            'completed_by': self.completed_by,
            'created_by': self.created_by,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }


class LeadQualification(db.Model):
    """Single scored assessment per lead"""
    __tablename__ = 'lead_qualifications'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    lead_id = db.Column(db.String(36), db.ForeignKey('leads.id'), nullable=False, unique=True)

    is_qualified = db.Column(db.Boolean, default=False, nullable=False)
    qualification_score = db.Column(db.Integer, default=0)
    qualification_notes = db.Column(db.Text)
    qualification_criteria = db.Column(db.JSON, default=dict)
    budget_confirmed = db.Column(db.Boolean, default=False)
    decision_maker_identified = db.Column(db.Boolean, default=False)
    timeline = db.Column(db.String(100))
    qualified_date = db.Column(db.DateTime)
    qualified_by = db.Column(db.String(36))
    assessed_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    lead = db.relationship('Lead', back_populates='qualification')

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'is_qualified': self.is_qualified,
            'qualification_score': self.qualification_score,
            'qualification_notes': self.qualification_notes,
            'qualification_criteria': self.qualification_criteria or {},
            'budget_confirmed': self.budget_confirmed,
            'decision_maker_identified': self.decision_maker_identified,
            'timeline': self.timeline,
            'qualified_date': iso(self.qualified_date),
            'qualified_by': self.qualified_by,
            'assessed_at': iso(self.assessed_at),
            'updated_at': iso(self.updated_at),
        }


class LeadFollowUp(db.Model):
    __tablename__ = 'lead_follow_ups'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    lead_id = db.Column(db.String(36), db.ForeignKey('leads.id'), nullable=False, index=True)

    follow_up_type = db.Column(db.String(20), nullable=False)
    subject = db.Column(db.String(200))
    description = db.Column(db.Text)
    scheduled_date = db.Column(db.DateTime, nullable=False)
    priority = db.Column(db.String(10), default='medium')
    assigned_to = db.Column(db.String(36))
    status = db.Column(db.String(20), default='pending', nullable=False)
    completed_at = db.Column(db.DateTime)
    outcome = db.Column(db.String(255))
    completion_notes = db.Column(db.Text)
    next_follow_up_date = db.Column(db.DateTime)
    notes = db.Column(db.Text)

    created_by = db.Column(db.String(36))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'follow_up_type': self.follow_up_type,
            'subject': self.subject,
            'description': self.description,
            'scheduled_date': iso(self.scheduled_date),
            'priority': self.priority,
            'assigned_to': self.assigned_to,
            'status': self.status,
            'completed_at': iso(self.completed_at),
            'outcome': self.outcome,
            'completion_notes': self.completion_notes,
            'next_follow_up_date': iso(self.next_follow_up_date),
            'notes': self.notes,
            'created_by': self.created_by,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }


# ============================================================
# TAGS
# ============================================================

class LeadTag(db.Model):
    __tablename__ = 'lead_tags'
    __table_args__ = (
        db.UniqueConstraint('business_id', 'name', name='uq_lead_tags_business_name'),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    business_id = db.Column(db.String(36), nullable=False, index=True)
    name = db.Column(db.String(50), nullable=False)
    color = db.Column(db.String(7), default='#3B82F6')
    description = db.Column(db.String(255))
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'color': self.color,
            'description': self.description,
            'is_active': self.is_active,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }


class LeadTagAssignment(db.Model):
    __tablename__ = 'lead_tag_assignments'
    __table_args__ = (
        db.UniqueConstraint('lead_id', 'tag_id', name='uq_lead_tag_assignment'),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    lead_id = db.Column(db.String(36), db.ForeignKey('leads.id'), nullable=False, index=True)
    tag_id = db.Column(db.String(36), db.ForeignKey('lead_tags.id'), nullable=False, index=True)
    assigned_by = db.Column(db.String(36))
    assigned_at = db.Column(db.DateTime, default=datetime.utcnow)

    tag = db.relationship('LeadTag', lazy='joined')

    def to_dict(self) -> dict:
        data = self.tag.to_dict() if self.tag else {'id': self.tag_id}
        data['assigned_by'] = self.assigned_by
        data['assigned_at'] = iso(self.assigned_at)
        return data


# ============================================================
# CONVERSION
# ============================================================

class LeadConversion(db.Model):
    """Written together with the customer when a lead converts"""
    __tablename__ = 'lead_conversions'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    lead_id = db.Column(db.String(36), db.ForeignKey('leads.id'), nullable=False, unique=True)
    customer_id = db.Column(db.String(36), db.ForeignKey('customers.id'), nullable=False)
    conversion_value = db.Column(db.Numeric(12, 2), default=0)
    conversion_reason = db.Column(db.String(255))
    conversion_channel = db.Column(db.String(50))
    converted_by = db.Column(db.String(36))
    converted_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'customer_id': self.customer_id,
            'conversion_value': money(self.conversion_value),
            'conversion_reason': self.conversion_reason,
            'conversion_channel': self.conversion_channel,
            'converted_by': self.converted_by,
            'converted_at': iso(self.converted_at),
        }
