import uuid
from datetime import datetime
from decimal import Decimal

from database import db


# ============================================================
# ENUMS
# ============================================================

CUSTOMER_TYPES = ('residential', 'commercial')
CUSTOMER_STATUSES = ('active', 'inactive', 'deleted')
CUSTOMER_STATUS_ENUM = db.Enum(*CUSTOMER_STATUSES, name='customer_status_enum')

ADDRESS_TYPES = ('service', 'billing', 'mailing', 'other')

EMPLOYEE_STATUSES = ('active', 'inactive', 'terminated', 'on-leave', 'suspended', 'probation')
EMPLOYEE_STATUS_ENUM = db.Enum(*EMPLOYEE_STATUSES, name='employee_status_enum')
EMPLOYEE_TYPES = ('full-time', 'part-time', 'contractor', 'seasonal', 'temporary')

ESTIMATE_STATUSES = ('draft', 'sent', 'accepted', 'rejected', 'expired', 'converted')
ESTIMATE_STATUS_ENUM = db.Enum(*ESTIMATE_STATUSES, name='estimate_status_enum')

JOB_STATUSES = ('scheduled', 'in_progress', 'completed', 'cancelled')
JOB_STATUS_ENUM = db.Enum(*JOB_STATUSES, name='job_status_enum')


def new_id():
    return str(uuid.uuid4())


def iso(value):
    return value.isoformat() if value else None


def money(value):
    if value is None:
        return None
    return float(value) if isinstance(value, Decimal) else value


# ============================================================
# CUSTOMERS
# ============================================================

class Customer(db.Model):
    """Customer accounts, scoped by business"""
    __tablename__ = 'customers'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    business_id = db.Column(db.String(36), nullable=False, index=True)

    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(200), index=True)
    phone = db.Column(db.String(50))
    mobile = db.Column(db.String(50))
    address = db.Column(db.String(255))
    city = db.Column(db.String(100))
    state = db.Column(db.String(2))
    zip_code = db.Column(db.String(10))
    country = db.Column(db.String(50), default='USA')

    customer_type = db.Column(db.String(20), default='residential')
    status = db.Column(CUSTOMER_STATUS_ENUM, default='active', nullable=False)
    source = db.Column(db.String(50))
    notes = db.Column(db.Text)

    created_by = db.Column(db.String(36))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    addresses = db.relationship(
        'CustomerAddress', back_populates='customer', lazy=True,
        cascade='all, delete-orphan', order_by='CustomerAddress.created_at',
    )

    def __repr__(self):
        return f'<Customer {self.name}>'

    def to_dict(self, include_addresses=False) -> dict:
        data = {
            'id': self.id,
            'business_id': self.business_id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'mobile': self.mobile,
            'address': self.address,
            'city': self.city,
            'state': self.state,
            'zip_code': self.zip_code,
            'country': self.country,
            'customer_type': self.customer_type,
            'status': self.status,
            'source': self.source,
            'notes': self.notes,
            'created_by': self.created_by,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }
        if include_addresses:
            data['addresses'] = [a.to_dict() for a in self.addresses]
        return data


class CustomerAddress(db.Model):
    """Service/billing addresses. At most one primary per customer."""
    __tablename__ = 'customer_addresses'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    customer_id = db.Column(db.String(36), db.ForeignKey('customers.id'), nullable=False, index=True)

    address_type = db.Column(db.String(20), default='service')
    street = db.Column(db.String(255), nullable=False)
    city = db.Column(db.String(100))
    state = db.Column(db.String(2))
    zip_code = db.Column(db.String(10))
    country = db.Column(db.String(50), default='USA')
    access_notes = db.Column(db.Text)
    is_primary = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer = db.relationship('Customer', back_populates='addresses')

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'customer_id': self.customer_id,
            'address_type': self.address_type,
            'street': self.street,
            'city': self.city,
            'state': self.state,
            'zip_code': self.zip_code,
            'country': self.country,
            'access_notes': self.access_notes,
            'is_primary': self.is_primary,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }


db.Index(
    'uq_customer_addresses_primary',
    CustomerAddress.customer_id,
    unique=True,
    sqlite_where=CustomerAddress.is_primary.is_(True),
    postgresql_where=CustomerAddress.is_primary.is_(True),
)


# ============================================================
# EMPLOYEES
# ============================================================

class Employee(db.Model):
    """Crew members and office staff"""
    __tablename__ = 'employees'
    __table_args__ = (
        db.UniqueConstraint('business_id', 'email', name='uq_employees_business_email'),
        db.UniqueConstraint('business_id', 'employee_number', name='uq_employees_business_number'),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    business_id = db.Column(db.String(36), nullable=False, index=True)
    employee_number = db.Column(db.String(20), nullable=False)

    first_name = db.Column(db.String(50), nullable=False)
    last_name = db.Column(db.String(50), nullable=False)
    email = db.Column(db.String(200), nullable=False)
    phone = db.Column(db.String(50))
    address = db.Column(db.String(255))
    city = db.Column(db.String(100))
    state = db.Column(db.String(2))
    zip_code = db.Column(db.String(10))

    department = db.Column(db.String(100))
    position = db.Column(db.String(100))
    employee_type = db.Column(db.String(20), default='full-time')
    status = db.Column(EMPLOYEE_STATUS_ENUM, default='active', nullable=False)
    hire_date = db.Column(db.Date)
    termination_date = db.Column(db.Date)
    hourly_rate = db.Column(db.Numeric(10, 2))
    salary = db.Column(db.Numeric(12, 2))
    supervisor_id = db.Column(db.String(36), db.ForeignKey('employees.id'))
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def get_full_name(self):
        return f"{self.first_name} {self.last_name}"

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'business_id': self.business_id,
            'employee_number': self.employee_number,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'full_name': self.get_full_name(),
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
            'city': self.city,
            'state': self.state,
            'zip_code': self.zip_code,
            'department': self.department,
            'position': self.position,
            'employee_type': self.employee_type,
            'status': self.status,
            'hire_date': iso(self.hire_date),
            'termination_date': iso(self.termination_date),
            'hourly_rate': money(self.hourly_rate),
            'salary': money(self.salary),
            'supervisor_id': self.supervisor_id,
            'is_active': self.is_active,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }


# ============================================================
# ESTIMATES
# ============================================================

class Estimate(db.Model):
    """Quote sent to a (prospective) customer"""
    __tablename__ = 'estimates'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    business_id = db.Column(db.String(36), nullable=False, index=True)
    customer_id = db.Column(db.String(36), db.ForeignKey('customers.id'), index=True)

    customer_name = db.Column(db.String(200), nullable=False)
    customer_email = db.Column(db.String(200))
    customer_phone = db.Column(db.String(50))
    address = db.Column(db.String(255))
    city = db.Column(db.String(100))
    state = db.Column(db.String(2))
    zip_code = db.Column(db.String(10))

    labor_hours = db.Column(db.Numeric(6, 2), default=0)
    labor_rate = db.Column(db.Numeric(10, 2), default=0)
    subtotal = db.Column(db.Numeric(12, 2), default=0)
    total = db.Column(db.Numeric(12, 2), default=0)

    status = db.Column(ESTIMATE_STATUS_ENUM, default='draft', nullable=False)
    sent_date = db.Column(db.DateTime)
    expiry_date = db.Column(db.Date)
    accepted_date = db.Column(db.DateTime)
    rejected_date = db.Column(db.DateTime)
    rejection_reason = db.Column(db.Text)

    notes = db.Column(db.Text)
    terms_conditions = db.Column(db.Text)
    payment_terms = db.Column(db.String(100))

    created_by = db.Column(db.String(36))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = db.relationship(
        'EstimateItem', back_populates='estimate', lazy=True,
        cascade='all, delete-orphan', order_by='EstimateItem.created_at',
    )
    fees = db.relationship(
        'EstimateFee', back_populates='estimate', lazy=True,
        cascade='all, delete-orphan', order_by='EstimateFee.created_at',
    )

    def recalculate_totals(self):
        """subtotal = items + labour, total = subtotal + additional fees"""
        items_total = sum((Decimal(str(i.total or 0)) for i in self.items), Decimal('0'))
        labor = Decimal(str(self.labor_hours or 0)) * Decimal(str(self.labor_rate or 0))
        fees_total = sum((Decimal(str(f.amount or 0)) for f in self.fees), Decimal('0'))
        self.subtotal = items_total + labor
        self.total = self.subtotal + fees_total

    def to_dict(self, include_items=False) -> dict:
        data = {
            'id': self.id,
            'business_id': self.business_id,
            'customer_id': self.customer_id,
            'customer_name': self.customer_name,
            'customer_email': self.customer_email,
            'customer_phone': self.customer_phone,
            'address': self.address,
            'city': self.city,
            'state': self.state,
            'zip_code': self.zip_code,
            'labor_hours': money(self.labor_hours),
            'labor_rate': money(self.labor_rate),
            'subtotal': money(self.subtotal),
            'total': money(self.total),
            'status': self.status,
            'sent_date': iso(self.sent_date),
            'expiry_date': iso(self.expiry_date),
            'accepted_date': iso(self.accepted_date),
            'rejected_date': iso(self.rejected_date),
            'rejection_reason': self.rejection_reason,
            'notes': self.notes,
            'terms_conditions': self.terms_conditions,
            'payment_terms': self.payment_terms,
            'created_by': self.created_by,
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }
        if include_items:
            data['items'] = [i.to_dict() for i in self.items]
            data['additional_fees'] = [f.to_dict() for f in self.fees]
        return data


class EstimateItem(db.Model):
    __tablename__ = 'estimate_items'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    estimate_id = db.Column(db.String(36), db.ForeignKey('estimates.id'), nullable=False, index=True)

    name = db.Column(db.String(200), nullable=False)
    category = db.Column(db.String(100))
    description = db.Column(db.Text)
    quantity = db.Column(db.Numeric(10, 2), default=1)
    base_price = db.Column(db.Numeric(10, 2), default=0)
    price_per_unit = db.Column(db.Numeric(10, 2))
    difficulty = db.Column(db.String(20))
    total = db.Column(db.Numeric(12, 2), default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    estimate = db.relationship('Estimate', back_populates='items')

    def calculate_total(self):
        unit = self.price_per_unit if self.price_per_unit is not None else self.base_price
        self.total = Decimal(str(unit or 0)) * Decimal(str(self.quantity or 0))

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'estimate_id': self.estimate_id,
            'name': self.name,
            'category': self.category,
            'description': self.description,
            'quantity': money(self.quantity),
            'base_price': money(self.base_price),
            'price_per_unit': money(self.price_per_unit),
            'difficulty': self.difficulty,
            'total': money(self.total),
            'created_at': iso(self.created_at),
        }


class EstimateFee(db.Model):
    __tablename__ = 'estimate_fees'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    estimate_id = db.Column(db.String(36), db.ForeignKey('estimates.id'), nullable=False, index=True)
    fee_type = db.Column(db.String(50), nullable=False)
    description = db.Column(db.String(255))
    amount = db.Column(db.Numeric(10, 2), default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    estimate = db.relationship('Estimate', back_populates='fees')

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'fee_type': self.fee_type,
            'description': self.description,
            'amount': money(self.amount),
        }


# ============================================================
# JOBS (legacy integer ids)
# ============================================================

class Job(db.Model):
    """Scheduled removal job"""
    __tablename__ = 'jobs'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    business_id = db.Column(db.String(36), nullable=False, index=True)
    customer_id = db.Column(db.String(36), db.ForeignKey('customers.id'), nullable=False, index=True)
    estimate_id = db.Column(db.String(36), db.ForeignKey('estimates.id'))
    assigned_employee_id = db.Column(db.String(36), db.ForeignKey('employees.id'))

    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    scheduled_date = db.Column(db.DateTime)
    completion_date = db.Column(db.DateTime)
    status = db.Column(JOB_STATUS_ENUM, default='scheduled', nullable=False)
    total_cost = db.Column(db.Numeric(12, 2), default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer = db.relationship('Customer', lazy=True)
    assigned_employee = db.relationship('Employee', lazy=True)
    status_history = db.relationship(
        'JobStatusHistory', back_populates='job', lazy=True,
        cascade='all, delete-orphan', order_by='JobStatusHistory.id',
    )

    def to_dict(self, include_history=False) -> dict:
        data = {
            'id': self.id,
            'business_id': self.business_id,
            'customer_id': self.customer_id,
            'customer_name': self.customer.name if self.customer else None,
            'estimate_id': self.estimate_id,
            'assigned_employee_id': self.assigned_employee_id,
            'employee_name': self.assigned_employee.get_full_name() if self.assigned_employee else None,
            'title': self.title,
            'description': self.description,
            'scheduled_date': iso(self.scheduled_date),
            'completion_date': iso(self.completion_date),
            'status': self.status,
            'total_cost': money(self.total_cost),
            'created_at': iso(self.created_at),
            'updated_at': iso(self.updated_at),
        }
        if include_history:
            data['status_history'] = [h.to_dict() for h in self.status_history]
        return data


class JobStatusHistory(db.Model):
    __tablename__ = 'job_status_history'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    job_id = db.Column(db.Integer, db.ForeignKey('jobs.id'), nullable=False, index=True)
    old_status = db.Column(db.String(20))
    new_status = db.Column(db.String(20), nullable=False)
    changed_by = db.Column(db.String(36))
    notes = db.Column(db.Text)
    changed_at = db.Column(db.DateTime, default=datetime.utcnow)

    job = db.relationship('Job', back_populates='status_history')

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'job_id': self.job_id,
            'old_status': self.old_status,
            'new_status': self.new_status,
            'changed_by': self.changed_by,
            'notes': self.notes,
            'changed_at': iso(self.changed_at),
        }
