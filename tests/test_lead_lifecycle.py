from datetime import datetime, timedelta

import pytest

from database import db
from errors import Conflict, NotFound, ValidationFailed
from models import Customer, Employee, Lead, LeadActivity, LeadContact, LeadConversion, LeadQualification
from schemas.leads import (
    ActivityCreate, ContactCreate, FollowUpComplete, FollowUpCreate, LeadConvert, LeadCreate,
    NoteCreate, QualificationUpdate, TagCreate,
)
from services.lead_lifecycle import LeadLifecycleManager, relevance

from tests.conftest import BUSINESS_ID, LEAD_PAYLOAD, OTHER_BUSINESS_ID


@pytest.fixture
def manager(app):
    return LeadLifecycleManager(db.session, BUSINESS_ID, 'user-1')


def _lead(manager, **overrides):
    return manager.create_lead(LeadCreate(**dict(LEAD_PAYLOAD, **overrides)))


# ----------------------------------
# Creation
# ----------------------------------

def test_create_writes_lead_activity_and_empty_qualification(manager):
    lead = _lead(manager)

    assert lead.status == 'new'
    assert lead.created_by == 'user-1'
    activities = db.session.query(LeadActivity).filter_by(lead_id=lead.id).all()
    assert [a.activity_type for a in activities] == ['initial_contact']
    qualification = db.session.query(LeadQualification).filter_by(lead_id=lead.id).one()
    assert qualification.is_qualified is False
    assert qualification.qualification_score == 0


def test_create_keeps_only_first_primary_contact(manager):
    lead = _lead(manager, contacts=[
        {'first_name': 'Ann', 'is_primary_contact': True},
        {'first_name': 'Bob', 'is_primary_contact': True},
        {'first_name': 'Cy'},
    ])
    primaries = db.session.query(LeadContact).filter_by(lead_id=lead.id, is_primary_contact=True).all()
    assert [c.first_name for c in primaries] == ['Ann']


def test_create_with_unknown_tag_writes_nothing(manager):
    with pytest.raises(NotFound) as exc:
        _lead(manager, tags=['missing-tag'], contacts=[{'first_name': 'Ann'}])

    assert exc.value.code == 'TAG_NOT_FOUND'
    assert db.session.query(Lead).count() == 0
    assert db.session.query(LeadContact).count() == 0
    assert db.session.query(LeadActivity).count() == 0


def test_create_attaches_tags(manager):
    tag = manager.create_tag(TagCreate(name='Hot'))
    lead = _lead(manager, tags=[tag.id, tag.id])
    assert [a.tag_id for a in manager.lead_tags(lead.id)] == [tag.id]


def test_duplicate_email_is_rejected(manager):
    _lead(manager)
    with pytest.raises(Conflict) as exc:
        _lead(manager, phone='555-9999')
    assert exc.value.code == 'DUPLICATE_LEAD'


def test_same_email_allowed_in_another_business(manager):
    _lead(manager)
    other = LeadLifecycleManager(db.session, OTHER_BUSINESS_ID, 'user-2')
    lead = _lead(other)
    assert lead.business_id == OTHER_BUSINESS_ID


def test_leads_are_invisible_across_businesses(manager):
    lead = _lead(manager)
    other = LeadLifecycleManager(db.session, OTHER_BUSINESS_ID, 'user-2')
    with pytest.raises(NotFound):
        other.get_lead(lead.id)


# ----------------------------------
# Updates and deletes
# ----------------------------------

def test_converted_lead_status_is_frozen(manager):
    lead = _lead(manager)
    manager.convert(lead.id, LeadConvert())
    with pytest.raises(Conflict) as exc:
        manager.update_lead(lead.id, {'status': 'new'})
    assert exc.value.code == 'LEAD_ALREADY_CONVERTED'

    manager.update_lead(lead.id, {'notes': 'still editable'})
    assert manager.get_lead(lead.id).notes == 'still editable'


def test_deleted_lead_is_not_found(manager):
    lead = _lead(manager)
    manager.delete_lead(lead.id)
    with pytest.raises(NotFound) as exc:
        manager.get_lead(lead.id)
    assert exc.value.code == 'LEAD_NOT_FOUND'
    assert manager.list_leads({})['pagination']['total'] == 0


# ----------------------------------
# Qualification
# ----------------------------------

def test_qualify_moves_lead_to_qualified(manager):
    lead = _lead(manager)
    qualification = manager.qualify(lead.id, QualificationUpdate(
        is_qualified=True, qualification_score=85, budget_confirmed=True,
    ))
    assert qualification.qualified_date is not None
    assert qualification.qualified_by == 'user-1'
    assert manager.get_lead(lead.id).status == 'qualified'


def test_unqualify_clears_qualified_date_and_keeps_status(manager):
    lead = _lead(manager)
    manager.update_lead(lead.id, {'status': 'contacted'})
    qualification = manager.qualify(lead.id, QualificationUpdate(is_qualified=False, qualification_score=20))
    assert qualification.qualified_date is None
    assert manager.get_lead(lead.id).status == 'contacted'


def test_qualification_is_unique_per_lead(manager):
    lead = _lead(manager)
    manager.qualify(lead.id, QualificationUpdate(is_qualified=True))
    manager.qualify(lead.id, QualificationUpdate(is_qualified=True, qualification_score=90))
    assert db.session.query(LeadQualification).filter_by(lead_id=lead.id).count() == 1


def test_qualify_replaces_the_whole_assessment(manager):
    lead = _lead(manager)
    manager.qualify(lead.id, QualificationUpdate(
        is_qualified=True, budget_confirmed=True, timeline='this week',
        qualification_criteria={'volume': 'half truck'},
    ))
    qualification = manager.qualify(lead.id, QualificationUpdate(is_qualified=True, qualification_score=70))

    assert qualification.qualification_score == 70
    assert qualification.qualification_criteria == {}
    assert qualification.budget_confirmed is False
    assert qualification.timeline is None


# ----------------------------------
# Contacts
# ----------------------------------

def test_new_primary_contact_demotes_previous(manager):
    lead = _lead(manager, contacts=[{'first_name': 'Ann', 'is_primary_contact': True}])
    bob = manager.add_contact(lead.id, ContactCreate(first_name='Bob', is_primary_contact=True))

    primaries = db.session.query(LeadContact).filter_by(lead_id=lead.id, is_primary_contact=True).all()
    assert [c.id for c in primaries] == [bob.id]


def test_deleting_primary_contact_promotes_oldest(manager):
    lead = _lead(manager, contacts=[{'first_name': 'Ann'}])
    ann = db.session.query(LeadContact).filter_by(lead_id=lead.id).one()
    ann.created_at = datetime.utcnow() - timedelta(hours=1)
    db.session.commit()
    bob = manager.add_contact(lead.id, ContactCreate(first_name='Bob', is_primary_contact=True))

    manager.delete_contact(lead.id, bob.id)
    db.session.refresh(ann)
    assert ann.is_primary_contact is True


def test_child_reads_are_scoped_to_the_lead(manager):
    lead = _lead(manager)
    other = _lead(manager, email='other@x.com', phone='555-0002')
    note = manager.add_note(lead.id, NoteCreate(content='Heavy safe in basement'))

    assert manager.get_note(lead.id, note.id).content == 'Heavy safe in basement'
    with pytest.raises(NotFound) as exc:
        manager.get_note(other.id, note.id)
    assert exc.value.code == 'NOTE_NOT_FOUND'


# ----------------------------------
# Activities and follow-ups
# ----------------------------------

def test_contact_activity_stamps_last_contact_date(manager):
    lead = _lead(manager)
    assert lead.last_contact_date is None
    manager.log_activity(lead.id, ActivityCreate(activity_type='phone_call', subject='Intro call'))
    assert manager.get_lead(lead.id).last_contact_date is not None


def test_non_contact_activity_leaves_last_contact_date(manager):
    lead = _lead(manager)
    manager.log_activity(lead.id, ActivityCreate(activity_type='quote_sent'))
    assert manager.get_lead(lead.id).last_contact_date is None


def test_follow_up_tracks_earliest_date(manager):
    lead = _lead(manager)
    later = datetime(2030, 5, 1, 9, 0)
    sooner = datetime(2030, 4, 1, 9, 0)
    manager.schedule_follow_up(lead.id, FollowUpCreate(follow_up_type='call', scheduled_date=later))
    manager.schedule_follow_up(lead.id, FollowUpCreate(follow_up_type='email', scheduled_date=sooner))
    assert manager.get_lead(lead.id).next_follow_up_date == sooner


def test_completing_follow_up_sets_next_date(manager):
    lead = _lead(manager)
    follow_up = manager.schedule_follow_up(
        lead.id, FollowUpCreate(follow_up_type='call', scheduled_date=datetime(2030, 1, 1)),
    )
    next_date = datetime(2030, 2, 1, 10, 0)
    done = manager.complete_follow_up(lead.id, follow_up.id, FollowUpComplete(
        outcome='Left voicemail', next_follow_up_date=next_date,
    ))
    assert done.status == 'completed'
    assert done.completed_at is not None
    assert manager.get_lead(lead.id).next_follow_up_date == next_date


# ----------------------------------
# Tags
# ----------------------------------

def test_tag_in_use_cannot_be_deleted(manager):
    tag = manager.create_tag(TagCreate(name='Commercial'))
    lead = _lead(manager)
    manager.assign_tag(lead.id, tag.id)

    with pytest.raises(Conflict) as exc:
        manager.delete_tag(tag.id)
    assert exc.value.code == 'TAG_IN_USE'

    manager.remove_tag(lead.id, tag.id)
    manager.delete_tag(tag.id)
    assert manager.list_tags() == []


def test_assigning_tag_twice_conflicts(manager):
    tag = manager.create_tag(TagCreate(name='Repeat'))
    lead = _lead(manager)
    manager.assign_tag(lead.id, tag.id)
    with pytest.raises(Conflict) as exc:
        manager.assign_tag(lead.id, tag.id)
    assert exc.value.code == 'TAG_ALREADY_ASSIGNED'


# ----------------------------------
# Conversion
# ----------------------------------

def test_convert_creates_customer_and_conversion(manager):
    lead = _lead(manager, estimated_value=350)
    result = manager.convert(lead.id, LeadConvert(first_job_details={'estimated_value': 500}))

    customer = db.session.get(Customer, result['customer_id'])
    assert customer.name == 'Jane Doe'
    assert customer.email == 'jane@x.com'
    assert customer.business_id == BUSINESS_ID
    assert customer.status == 'active'
    assert result['conversion_value'] == 500.0

    refreshed = manager.get_lead(lead.id)
    assert refreshed.status == 'converted'
    assert refreshed.converted_to_customer_id == customer.id
    assert refreshed.converted_at is not None


def test_convert_twice_conflicts_without_side_effects(manager):
    lead = _lead(manager)
    manager.convert(lead.id, LeadConvert(customer_name='Jane Doe LLC'))
    with pytest.raises(Conflict) as exc:
        manager.convert(lead.id, LeadConvert())
    assert exc.value.code == 'LEAD_ALREADY_CONVERTED'
    assert db.session.query(Customer).count() == 1
    assert db.session.query(LeadConversion).count() == 1


def test_convert_value_falls_back_to_lead_estimate(manager):
    lead = _lead(manager, estimated_value=275.5)
    assert manager.convert(lead.id, LeadConvert())['conversion_value'] == 275.5


# ----------------------------------
# Search and reports
# ----------------------------------

def test_search_requires_query(manager):
    with pytest.raises(ValidationFailed) as exc:
        manager.search({'q': '   '})
    assert exc.value.code == 'SEARCH_QUERY_REQUIRED'


def test_search_ranks_name_and_company_hits_first(manager):
    _lead(manager, name='Hauler Bob', email='bob@x.com', phone='1', company='Bob Hauling')
    _lead(manager, name='Alice', email='alice@x.com', phone='2', city='Haulsville')
    _lead(manager, name='Carl Hauler', email='carl@x.com', phone='3')

    result = manager.search({'q': 'haul'})

    assert [r['name'] for r in result['results']] == ['Hauler Bob', 'Carl Hauler', 'Alice']
    assert [r['relevance_score'] for r in result['results']] == [1.0, 0.8, 0.5]
    assert result['results'][2]['match_reason'] == 'Matched city'


def test_search_restricted_to_requested_fields(manager):
    _lead(manager, name='Dana', email='dana@x.com', phone='1', city='Springfield')
    result = manager.search({'q': 'spring', 'search_fields': 'name,email'})
    assert result['search_fields'] == ['name', 'email']
    assert result['total_results'] == 0


def test_relevance_is_capped():
    lead = Lead(name='Junk', company='Junk Co')
    assert relevance(lead, 'junk') == 1.0
    assert relevance(Lead(name='Other'), 'junk') == 0.5


def test_report_summary_counts_conversions(manager):
    first = _lead(manager, source='google')
    _lead(manager, email='second@x.com', phone='2', source='referral')
    manager.convert(first.id, LeadConvert(first_job_details={'estimated_value': 400}))

    report = manager.report_summary({})
    assert report['total_leads'] == 2
    assert report['converted'] == 1
    assert report['conversion_rate'] == 50.0
    assert report['total_conversion_value'] == 400.0
    assert report['by_source'] == {'google': 1, 'referral': 1}


def _employee(number, first_name):
    employee = Employee(
        business_id=BUSINESS_ID, employee_number=number, first_name=first_name,
        last_name='Crew', email=f'{first_name.lower()}@crew.com',
    )
    db.session.add(employee)
    db.session.commit()
    return employee


def test_report_performance_groups_by_employee(manager):
    ana = _employee('EMP-001', 'Ana')
    ben = _employee('EMP-002', 'Ben')
    first = _lead(manager, assigned_to=ana.id, estimated_value=500, source='google')
    _lead(manager, email='two@x.com', phone='2', assigned_to=ana.id, estimated_value=300, source='google')
    _lead(manager, email='three@x.com', phone='3', assigned_to=ben.id, source='referral')
    manager.convert(first.id, LeadConvert())

    report = manager.report_performance({})

    team = report['team_performance']
    assert [row['employee_name'] for row in team] == ['Ana Crew', 'Ben Crew']
    assert team[0]['leads_assigned'] == 2
    assert team[0]['leads_converted'] == 1
    assert team[0]['conversion_rate'] == 50.0
    assert team[0]['average_value'] == 400.0
    assert team[1]['conversion_rate'] == 0.0
    assert report['source_performance'][0] == {
        'source': 'google', 'total_leads': 2, 'converted_leads': 1,
        'conversion_rate': 50.0, 'average_value': 400.0,
    }
    assert report['conversion_funnel'] == {
        'new_leads': 3, 'contacted_leads': 1, 'qualified_leads': 1,
        'proposal_sent': 1, 'converted_leads': 1,
    }

    only_ben = manager.report_performance({'employee_id': ben.id})
    assert [row['employee_id'] for row in only_ben['team_performance']] == [ben.id]


def test_report_performance_response_time(manager):
    lead = _lead(manager)
    assert manager.report_performance({})['average_response_hours'] is None

    manager.log_activity(lead.id, ActivityCreate(
        activity_type='phone_call', activity_date=lead.created_at + timedelta(hours=2),
    ))
    assert manager.report_performance({})['average_response_hours'] == 2.0


def test_report_insights_flags_source_gap(manager):
    for index in range(3):
        lead = _lead(manager, email=f'g{index}@x.com', phone=f'g{index}', source='google', lead_score=90)
        manager.convert(lead.id, LeadConvert())
    for index in range(3):
        _lead(manager, email=f'f{index}@x.com', phone=f'f{index}', source='flyer', lead_score=90)
    _lead(manager, email='solo@x.com', phone='solo', source='yelp', lead_score=90)

    report = manager.report_insights({})

    assert [s['source'] for s in report['source_effectiveness']] == ['google', 'flyer']
    assert report['quality_metrics']['high_quality_leads'] == 7
    assert any(i.startswith('Significant performance gap between lead sources: google') for i in report['insights'])
    assert 'Optimize flyer lead generation or reallocate budget to google' in report['recommendations']
    assert 'Average lead quality score is below optimal levels' not in report['insights']


def test_report_insights_empty(manager):
    report = manager.report_insights({})
    assert report['conversion_trends'] == []
    assert report['insights'] == []
    assert report['recommendations'] == []
    assert report['quality_metrics']['total_leads'] == 0
