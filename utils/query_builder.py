# utils/query_builder.py - Filter / sort / paginate for list endpoints
#
# Every caller-supplied value ends up as a bound parameter inside a SQLAlchemy
# expression. Only columns named in a listing's allow-lists reach ORDER BY.

import math
from datetime import datetime, date, time, timedelta
from decimal import Decimal

from flask import current_app, has_app_context
from sqlalchemy import Date, case, func, or_

from errors import ValidationFailed

DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100


def parse_date(value):
    """Parse YYYY-MM-DD (or a full ISO timestamp) into a date. Raises ValueError."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    value = (value or '').strip()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return datetime.fromisoformat(value).date()


def like_pattern(term):
    """Wrap a search term in wildcards, escaping LIKE metacharacters"""
    escaped = term.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f"%{escaped}%"


def _to_int(value, fallback):
    try:
        return int(value)
    except (TypeError, ValueError):
        return fallback


def page_limits():
    if has_app_context():
        return (
            current_app.config.get('DEFAULT_PAGE_LIMIT', DEFAULT_PAGE_LIMIT),
            current_app.config.get('MAX_PAGE_LIMIT', MAX_PAGE_LIMIT),
        )
    return DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT


class ListQuery:
    """Result of Listing.build: predicates, ordering and page window"""

    def __init__(self, predicates, order_by, page, limit):
        self.predicates = predicates
        self.order_by = order_by
        self.page = page
        self.limit = limit

    @property
    def offset(self):
        return (self.page - 1) * self.limit

    def apply(self, query):
        return query.filter(*self.predicates)

    def paginate(self, query):
        """Run the filtered query for one page. Returns (items, pagination)."""
        query = self.apply(query)
        total = query.order_by(None).count()
        items = query.order_by(*self.order_by).limit(self.limit).offset(self.offset).all()
        pagination = {
            'page': self.page,
            'limit': self.limit,
            'total': total,
            'pages': math.ceil(total / self.limit) if total else 0,
        }
        return items, pagination


class Listing:
    """
    Declarative description of a list endpoint.

    filters         query arg -> column, equality match
    date_ranges     query arg -> (column, 'start' | 'end'), whole-day bounds
    numeric_ranges  query arg -> (column, 'min' | 'max')
    search_columns  columns OR'd together for the free-text `search` arg
    sort_fields     sort_by value -> column (the ORDER BY allow-list)
    """

    def __init__(self, model, sort_fields, default_sort='created_at', default_order='desc',
                 filters=None, date_ranges=None, numeric_ranges=None, search_columns=(),
                 search_arg='search'):
        if default_sort not in sort_fields:
            raise ValueError(f"default sort '{default_sort}' is not sortable")
        self.model = model
        self.sort_fields = sort_fields
        self.default_sort = default_sort
        self.default_order = default_order
        self.filters = filters or {}
        self.date_ranges = date_ranges or {}
        self.numeric_ranges = numeric_ranges or {}
        self.search_columns = search_columns
        self.search_arg = search_arg

    def predicates(self, args, *base):
        predicates = list(base)

        for arg, column in self.filters.items():
            value = args.get(arg)
            if value not in (None, ''):
                predicates.append(column == value)

        for arg, (column, bound) in self.date_ranges.items():
            value = args.get(arg)
            if value in (None, ''):
                continue
            try:
                day = parse_date(value)
            except ValueError:
                raise ValidationFailed(details=[{'field': arg, 'message': 'must be a date (YYYY-MM-DD)'}])
            if isinstance(column.type, Date):
                predicates.append(column >= day if bound == 'start' else column <= day)
                continue
            start = datetime.combine(day, time.min)
            if bound == 'start':
                predicates.append(column >= start)
            else:
                predicates.append(column < start + timedelta(days=1))

        for arg, (column, bound) in self.numeric_ranges.items():
            value = args.get(arg)
            if value in (None, ''):
                continue
            try:
                number = Decimal(str(value))
            except ArithmeticError:
                raise ValidationFailed(details=[{'field': arg, 'message': 'must be a number'}])
            predicates.append(column >= number if bound == 'min' else column <= number)

        term = (args.get(self.search_arg) or '').strip()
        if term and self.search_columns:
            pattern = like_pattern(term)
            predicates.append(or_(*[c.ilike(pattern, escape='\\') for c in self.search_columns]))

        return predicates

    def ordering(self, args):
        column = self.sort_fields.get(args.get('sort_by'), self.sort_fields[self.default_sort])
        order = (args.get('sort_order') or '').lower()
        if order not in ('asc', 'desc'):
            order = self.default_order
        return [column.asc() if order == 'asc' else column.desc()]

    def build(self, args, *base):
        """Translate request args into a ListQuery. `base` predicates always apply."""
        default_limit, max_limit = page_limits()
        page = max(_to_int(args.get('page'), 1), 1)
        limit = _to_int(args.get('limit'), default_limit)
        limit = min(max(limit, 1), max_limit)
        return ListQuery(self.predicates(args, *base), self.ordering(args), page, limit)


# ----------------------------------
# Summary aggregates
# ----------------------------------

def _number(value):
    if isinstance(value, Decimal):
        return float(value)
    return value or 0


def status_summary(session, model, column, values, predicates, total_column=None, total_label='total_value'):
    """
    Second aggregate query over the same predicates as the list:
    a `total` row count, one count per value and an optional summed column.
    """
    columns = [func.count().label('total')]
    for value in values:
        columns.append(func.coalesce(func.sum(case((column == value, 1), else_=0)), 0))
    if total_column is not None:
        columns.append(func.coalesce(func.sum(total_column), 0))

    row = session.query(*columns).select_from(model).filter(*predicates).one()

    summary = {'total': row[0]}
    for index, value in enumerate(values, start=1):
        summary[value] = int(row[index] or 0)
    if total_column is not None:
        summary[total_label] = _number(row[len(values) + 1])
    return summary


def grouped_counts(session, model, column, predicates):
    """Count rows per distinct value of `column` (NULL reported as 'unassigned')"""
    rows = (
        session.query(column, func.count())
        .select_from(model)
        .filter(*predicates)
        .group_by(column)
        .all()
    )
    return {(value if value is not None else 'unassigned'): count for value, count in rows}
