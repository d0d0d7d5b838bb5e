# repositories/employees.py

import random
from datetime import date, datetime

from errors import Conflict
from models import Employee
from utils.query_builder import Listing
from .base import Repository


class EmployeeRepository(Repository):
    model = Employee
    not_found_code = 'EMPLOYEE_NOT_FOUND'
    mutable_fields = frozenset({
        'first_name', 'last_name', 'email', 'phone', 'address', 'city', 'state', 'zip_code',
        'department', 'position', 'employee_type', 'status', 'hire_date', 'termination_date',
        'hourly_rate', 'salary', 'supervisor_id',
    })
    listing = Listing(
        Employee,
        sort_fields={
            'first_name': Employee.first_name,
            'last_name': Employee.last_name,
            'hire_date': Employee.hire_date,
            'department': Employee.department,
            'position': Employee.position,
            'status': Employee.status,
        },
        default_sort='last_name',
        default_order='asc',
        filters={
            'status': Employee.status,
            'department': Employee.department,
            'position': Employee.position,
        },
        date_ranges={
            'hire_date_from': (Employee.hire_date, 'start'),
            'hire_date_to': (Employee.hire_date, 'end'),
        },
        search_columns=(Employee.first_name, Employee.last_name, Employee.email, Employee.phone),
    )

    def visibility(self, args):
        """Terminated staff only show up when asked for explicitly"""
        if args.get('status') == 'terminated':
            return []
        return [Employee.is_active.is_(True)]

    def next_employee_number(self):
        """EMP- followed by six digits, unique within the business"""
        while True:
            number = f"EMP-{random.randint(0, 999999):06d}"
            if not self.query().filter(Employee.employee_number == number).first():
                return number

    def find_by_email(self, email):
        return self.query().filter(Employee.email == email).first()

    def dynamic_update(self, record, fields):
        record = super().dynamic_update(record, fields)
        # is_active follows status
        record.is_active = record.status != 'terminated'
        self.session.flush()
        return record

    def delete(self, record):
        if record.status == 'terminated':
            raise Conflict('EMPLOYEE_ALREADY_TERMINATED', 'Employee is already terminated')
        record.status = 'terminated'
        record.is_active = False
        record.termination_date = date.today()
        record.updated_at = datetime.utcnow()
        self.session.flush()
        return record
