from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, EmailStr, Field

from models import (
    LEAD_SOURCES, LEAD_PRIORITIES, CONTACT_TYPES, CONTACT_METHODS, ACTIVITY_TYPES,
    ACTIVITY_OUTCOMES, NOTE_TYPES, FOLLOW_UP_TYPES, FOLLOW_UP_STATUSES, CUSTOMER_TYPES,
)
from schemas import reject_null

# converted/deleted are only reachable through convert and delete
EDITABLE_LEAD_STATUSES = ('new', 'contacted', 'qualified', 'quoted', 'scheduled', 'lost')


# ----------------------------------
# Contacts
# ----------------------------------

class ContactCreate(BaseModel):
    contact_type: Literal[CONTACT_TYPES] = 'primary'
    first_name: str = Field(min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    title: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    mobile: Optional[str] = Field(default=None, max_length=50)
    relationship: Optional[str] = None
    is_primary_contact: bool = False
    can_make_decisions: bool = False
    preferred_contact_method: Literal[CONTACT_METHODS] = 'phone'
    notes: Optional[str] = None


class ContactUpdate(BaseModel):
    contact_type: Optional[Literal[CONTACT_TYPES]] = None
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = None
    title: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    mobile: Optional[str] = None
    relationship: Optional[str] = None
    is_primary_contact: Optional[bool] = None
    can_make_decisions: Optional[bool] = None
    preferred_contact_method: Optional[Literal[CONTACT_METHODS]] = None
    notes: Optional[str] = None

    not_null = reject_null(
        'contact_type', 'first_name', 'is_primary_contact', 'can_make_decisions',
        'preferred_contact_method',
    )


# ----------------------------------
# Leads
# ----------------------------------

class LeadCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    company: Optional[str] = Field(default=None, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    mobile: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = Field(default=None, min_length=2, max_length=2)
    zip_code: Optional[str] = Field(default=None, max_length=10)
    country: str = 'USA'
    source: Literal[LEAD_SOURCES] = 'other'
    priority: Literal[LEAD_PRIORITIES] = 'medium'
    service_type: Optional[str] = None
    estimated_value: Optional[float] = Field(default=None, ge=0)
    lead_score: int = Field(default=0, ge=0, le=100)
    assigned_to: Optional[str] = None
    notes: Optional[str] = None
    contacts: List[ContactCreate] = []
    tags: List[str] = []


class LeadUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    company: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    mobile: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = Field(default=None, min_length=2, max_length=2)
    zip_code: Optional[str] = None
    country: Optional[str] = None
    status: Optional[Literal[EDITABLE_LEAD_STATUSES]] = None
    source: Optional[Literal[LEAD_SOURCES]] = None
    priority: Optional[Literal[LEAD_PRIORITIES]] = None
    service_type: Optional[str] = None
    estimated_value: Optional[float] = Field(default=None, ge=0)
    lead_score: Optional[int] = Field(default=None, ge=0, le=100)
    assigned_to: Optional[str] = None
    notes: Optional[str] = None
    next_follow_up_date: Optional[datetime] = None

    not_null = reject_null('name', 'country', 'status', 'source', 'priority', 'lead_score')


# ----------------------------------
# Qualification
# ----------------------------------

class QualificationUpdate(BaseModel):
    is_qualified: bool = False
    qualification_score: int = Field(default=0, ge=0, le=100)
    qualification_notes: Optional[str] = None
    qualification_criteria: Dict[str, Any] = {}
    budget_confirmed: bool = False
    decision_maker_identified: bool = False
    timeline: Optional[str] = None


# ----------------------------------
# Activities
# ----------------------------------

class ActivityCreate(BaseModel):
    activity_type: Literal[ACTIVITY_TYPES] = Field(validation_alias=AliasChoices('activity_type', 'type'))
    subject: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    activity_date: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    outcome: Optional[Literal[ACTIVITY_OUTCOMES]] = None
    next_action: Optional[str] = None
    next_action_date: Optional[datetime] = None
    scheduled_follow_up: bool = False
    employee_id: Optional[str] = None
    notes: Optional[str] = None


class ActivityUpdate(BaseModel):
    activity_type: Optional[Literal[ACTIVITY_TYPES]] = Field(
        default=None, validation_alias=AliasChoices('activity_type', 'type'),
    )
    subject: Optional[str] = None
    description: Optional[str] = None
    activity_date: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    outcome: Optional[Literal[ACTIVITY_OUTCOMES]] = None
    next_action: Optional[str] = None
    next_action_date: Optional[datetime] = None
    scheduled_follow_up: Optional[bool] = None
    employee_id: Optional[str] = None
    notes: Optional[str] = None

    not_null = reject_null('activity_type', 'activity_date', 'scheduled_follow_up')


class ActivityComplete(BaseModel):
    outcome: Optional[Literal[ACTIVITY_OUTCOMES]] = None
    notes: Optional[str] = None


# ----------------------------------
# Notes
# ----------------------------------

class NoteCreate(BaseModel):
    note_type: Literal[NOTE_TYPES] = 'general'
    title: Optional[str] = Field(default=None, max_length=200)
    content: str = Field(min_length=1)
    is_internal: bool = False
    is_important: bool = False
    priority: Literal[LEAD_PRIORITIES] = 'medium'
    due_date: Optional[datetime] = None


class NoteUpdate(BaseModel):
    note_type: Optional[Literal[NOTE_TYPES]] = None
    title: Optional[str] = None
    content: Optional[str] = Field(default=None, min_length=1)
    is_internal: Optional[bool] = None
    is_important: Optional[bool] = None
    priority: Optional[Literal[LEAD_PRIORITIES]] = None
    due_date: Optional[datetime] = None

    not_null = reject_null('note_type', 'content', 'is_internal', 'is_important', 'priority')


# ----------------------------------
# Follow-ups
# ----------------------------------

class FollowUpCreate(BaseModel):
    follow_up_type: Literal[FOLLOW_UP_TYPES]
    subject: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    scheduled_date: datetime
    priority: Literal[LEAD_PRIORITIES] = 'medium'
    assigned_to: Optional[str] = None
    notes: Optional[str] = None


class FollowUpUpdate(BaseModel):
    follow_up_type: Optional[Literal[FOLLOW_UP_TYPES]] = None
    subject: Optional[str] = None
    description: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    priority: Optional[Literal[LEAD_PRIORITIES]] = None
    assigned_to: Optional[str] = None
    status: Optional[Literal[FOLLOW_UP_STATUSES]] = None
    notes: Optional[str] = None

    not_null = reject_null('follow_up_type', 'scheduled_date', 'priority', 'status')


class FollowUpComplete(BaseModel):
    status: Literal['completed', 'cancelled'] = 'completed'
    outcome: Optional[str] = None
    completion_notes: Optional[str] = None
    next_follow_up_date: Optional[datetime] = None


# ----------------------------------
# Tags
# ----------------------------------

class TagCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    color: str = Field(default='#3B82F6', pattern=r'^#[0-9A-Fa-f]{6}$')
    description: Optional[str] = Field(default=None, max_length=255)
    is_active: bool = True


class TagUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    color: Optional[str] = Field(default=None, pattern=r'^#[0-9A-Fa-f]{6}$')
    description: Optional[str] = None
    is_active: Optional[bool] = None

    not_null = reject_null('name', 'color', 'is_active')


class TagAssign(BaseModel):
    tag_id: str = Field(min_length=1)


# ----------------------------------
# Conversion
# ----------------------------------

class FirstJobDetails(BaseModel):
    service_type: Optional[str] = None
    estimated_value: Optional[float] = Field(default=None, ge=0)
    preferred_date: Optional[datetime] = None
    notes: Optional[str] = None


class LeadConvert(BaseModel):
    customer_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    customer_type: Literal[CUSTOMER_TYPES] = 'residential'
    first_job_details: Optional[FirstJobDetails] = None
    conversion_reason: str = 'Lead qualification successful'
    conversion_channel: str = 'website'
    notes: Optional[str] = None
