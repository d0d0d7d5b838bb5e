from datetime import datetime

import pytest
from werkzeug.datastructures import MultiDict

from database import db
from errors import ValidationFailed
from models import Lead
from repositories import LeadRepository
from utils.query_builder import like_pattern, status_summary

from tests.conftest import BUSINESS_ID


def _add_leads(*rows):
    for row in rows:
        db.session.add(Lead(business_id=BUSINESS_ID, **row))
    db.session.commit()


def _build(**args):
    repo = LeadRepository(db.session, business_id=BUSINESS_ID)
    return repo.listing.build(MultiDict(args), *repo.base_predicates())


def test_limit_is_clamped_to_maximum(app):
    assert _build(limit='500').limit == 100


def test_page_zero_and_negative_coerced_to_one(app):
    assert _build(page='0').page == 1
    assert _build(page='-4').page == 1
    assert _build(page='abc').page == 1


def test_defaults_and_offset(app):
    query = _build()
    assert (query.page, query.limit, query.offset) == (1, 20, 0)
    assert _build(page='3', limit='10').offset == 20


def test_unknown_sort_field_falls_back_to_default(app):
    _add_leads(
        {'name': 'Older', 'created_at': datetime(2024, 1, 1)},
        {'name': 'Newer', 'created_at': datetime(2024, 6, 1)},
    )
    repo = LeadRepository(db.session, business_id=BUSINESS_ID)
    items, _, _ = repo.list(MultiDict({'sort_by': 'name; DROP TABLE leads'}))
    assert [lead.name for lead in items] == ['Newer', 'Older']


def test_sort_by_allowed_field_ascending(app):
    _add_leads({'name': 'Bravo'}, {'name': 'Alpha'}, {'name': 'Charlie'})
    repo = LeadRepository(db.session, business_id=BUSINESS_ID)
    items, _, _ = repo.list(MultiDict({'sort_by': 'name', 'sort_order': 'asc'}))
    assert [lead.name for lead in items] == ['Alpha', 'Bravo', 'Charlie']


def test_search_matches_any_text_column_and_excludes_deleted(app):
    _add_leads(
        {'name': 'Garage Cleanout', 'company': None, 'city': 'Raleigh'},
        {'name': 'Someone', 'company': 'Raleigh Movers'},
        {'name': 'Hidden', 'city': 'Raleigh', 'status': 'deleted'},
        {'name': 'Elsewhere', 'city': 'Durham'},
    )
    repo = LeadRepository(db.session, business_id=BUSINESS_ID)
    items, pagination, _ = repo.list(MultiDict({'search': 'raleigh'}))
    assert sorted(lead.name for lead in items) == ['Garage Cleanout', 'Someone']
    assert pagination['total'] == 2


def test_search_treats_wildcards_literally(app):
    _add_leads({'name': '100% Junk'}, {'name': 'Plain'})
    repo = LeadRepository(db.session, business_id=BUSINESS_ID)
    items, _, _ = repo.list(MultiDict({'search': '%'}))
    assert [lead.name for lead in items] == ['100% Junk']
    assert like_pattern('a_b') == '%a\\_b%'


def test_date_range_is_inclusive_of_whole_days(app):
    _add_leads(
        {'name': 'Before', 'created_at': datetime(2024, 3, 9, 23, 59)},
        {'name': 'Start', 'created_at': datetime(2024, 3, 10, 0, 0)},
        {'name': 'End', 'created_at': datetime(2024, 3, 12, 18, 30)},
        {'name': 'After', 'created_at': datetime(2024, 3, 13, 0, 1)},
    )
    repo = LeadRepository(db.session, business_id=BUSINESS_ID)
    items, _, _ = repo.list(MultiDict({'date_from': '2024-03-10', 'date_to': '2024-03-12', 'sort_by': 'name'}))
    assert sorted(lead.name for lead in items) == ['End', 'Start']


def test_malformed_date_is_a_validation_error(app):
    with pytest.raises(ValidationFailed) as exc:
        _build(date_from='next tuesday')
    assert exc.value.status_code == 422
    assert exc.value.details[0]['field'] == 'date_from'


def test_pagination_reports_pages(app):
    _add_leads(*[{'name': f'Lead {i}'} for i in range(5)])
    repo = LeadRepository(db.session, business_id=BUSINESS_ID)
    items, pagination, _ = repo.list(MultiDict({'limit': '2', 'page': '3'}))
    assert len(items) == 1
    assert pagination == {'page': 3, 'limit': 2, 'total': 5, 'pages': 3}


def test_summary_uses_same_predicates_as_list(app):
    _add_leads(
        {'name': 'A', 'status': 'new', 'source': 'yelp', 'estimated_value': 100},
        {'name': 'B', 'status': 'lost', 'source': 'yelp', 'estimated_value': 50},
        {'name': 'C', 'status': 'new', 'source': 'google', 'estimated_value': 900},
    )
    repo = LeadRepository(db.session, business_id=BUSINESS_ID)
    _, _, list_query = repo.list(MultiDict({'source': 'yelp'}))
    summary = status_summary(
        db.session, Lead, Lead.status, ('new', 'lost'), list_query.predicates,
        total_column=Lead.estimated_value,
    )
    assert summary == {'total': 2, 'new': 1, 'lost': 1, 'total_value': 150.0}
