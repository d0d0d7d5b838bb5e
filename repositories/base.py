# repositories/base.py - Per-entity data access over an injected session

from datetime import datetime

from sqlalchemy import update

from errors import NotFound, ValidationFailed


class Repository:
    """
    find_by_id / insert / dynamic_update / delete for one model.

    Subclasses declare:
        model           SQLAlchemy model class
        mutable_fields  allow-list of columns dynamic_update may touch
        not_found_code  error code raised by get_or_404
        soft_delete     optional {column: value} applied instead of a DELETE
        hidden          optional {column: value} rows excluded from every read
        listing         utils.query_builder.Listing for list endpoints

    `scope` keyword arguments (business_id, lead_id, ...) filter every read and
    are stamped on every insert.
    """
    model = None
    mutable_fields = frozenset()
    not_found_code = 'RECORD_NOT_FOUND'
    soft_delete = None
    hidden = None
    listing = None

    def __init__(self, session, **scope):
        self.session = session
        self.scope = scope

    def base_predicates(self):
        predicates = [getattr(self.model, column) == value for column, value in self.scope.items()]
        for column, value in (self.hidden or {}).items():
            predicates.append(getattr(self.model, column) != value)
        return predicates

    def query(self):
        return self.session.query(self.model).filter(*self.base_predicates())

    def list(self, args, *extra):
        """One page of rows matching the request args. Returns (items, pagination, list_query)."""
        list_query = self.listing.build(args, *self.base_predicates(), *extra)
        items, pagination = list_query.paginate(self.session.query(self.model))
        return items, pagination, list_query

    def find_by_id(self, record_id):
        if record_id is None:
            return None
        return self.query().filter(self.model.id == record_id).first()

    def get_or_404(self, record_id):
        record = self.find_by_id(record_id)
        if record is None:
            raise NotFound(self.not_found_code, f"{self.model.__name__} not found")
        return record

    def insert(self, **values):
        values.update(self.scope)
        record = self.model(**values)
        self.session.add(record)
        self.session.flush()
        return record

    def allowed_fields(self, fields):
        return {k: v for k, v in (fields or {}).items() if k in self.mutable_fields}

    def dynamic_update(self, record, fields):
        """Apply the allow-listed subset of `fields`. Nothing applicable -> 400, no write."""
        allowed = self.allowed_fields(fields)
        if not allowed:
            raise ValidationFailed('NO_VALID_FIELDS_TO_UPDATE', 'No valid fields to update')
        for key, value in allowed.items():
            setattr(record, key, value)
        if hasattr(record, 'updated_at'):
            record.updated_at = datetime.utcnow()
        self.session.flush()
        return record

    def delete(self, record):
        if self.soft_delete:
            for column, value in self.soft_delete.items():
                setattr(record, column, value)
            if hasattr(record, 'updated_at'):
                record.updated_at = datetime.utcnow()
        else:
            self.session.delete(record)
        self.session.flush()
        return record


# ----------------------------------
# Primary flag handling
# ----------------------------------

def assign_primary(session, record, parent_column, flag_column):
    """
    Make `record` the only flagged row among its siblings.

    Both statements run in the caller's transaction; a partial unique index on
    (parent WHERE flag) rejects any concurrent writer that would leave two.
    """
    model = type(record)
    parent_id = getattr(record, parent_column)

    # persist the record unflagged first so the sibling update can exclude it
    setattr(record, flag_column, False)
    session.flush()

    session.execute(
        update(model)
        .where(getattr(model, parent_column) == parent_id)
        .where(model.id != record.id)
        .where(getattr(model, flag_column).is_(True))
        .values({flag_column: False})
        .execution_options(synchronize_session='fetch')
    )
    setattr(record, flag_column, True)
    session.flush()
    return record


def promote_oldest(session, model, parent_column, flag_column, parent_id):
    """Flag the oldest remaining sibling when no primary is left. Returns it or None."""
    siblings = session.query(model).filter(getattr(model, parent_column) == parent_id)
    if siblings.filter(getattr(model, flag_column).is_(True)).count():
        return None
    oldest = siblings.order_by(model.created_at.asc(), model.id.asc()).first()
    if oldest is not None:
        setattr(oldest, flag_column, True)
        session.flush()
    return oldest
