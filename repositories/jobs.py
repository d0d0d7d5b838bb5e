# repositories/jobs.py

from models import Job, JobStatusHistory
from utils.query_builder import Listing
from .base import Repository


class JobRepository(Repository):
    model = Job
    not_found_code = 'JOB_NOT_FOUND'
    mutable_fields = frozenset({
        'customer_id', 'estimate_id', 'assigned_employee_id', 'title', 'description',
        'scheduled_date', 'completion_date', 'status', 'total_cost',
    })
    listing = Listing(
        Job,
        sort_fields={
            'scheduled_date': Job.scheduled_date,
            'completion_date': Job.completion_date,
            'created_at': Job.created_at,
            'total_cost': Job.total_cost,
            'status': Job.status,
        },
        default_sort='scheduled_date',
        filters={
            'status': Job.status,
            'customer_id': Job.customer_id,
            'employee_id': Job.assigned_employee_id,
        },
        date_ranges={
            'date_from': (Job.scheduled_date, 'start'),
            'date_to': (Job.scheduled_date, 'end'),
        },
    )

    def record_status(self, job, new_status, old_status=None, changed_by=None, notes=None):
        history = JobStatusHistory(
            job_id=job.id,
            old_status=old_status,
            new_status=new_status,
            changed_by=changed_by,
            notes=notes,
        )
        self.session.add(history)
        self.session.flush()
        return history
