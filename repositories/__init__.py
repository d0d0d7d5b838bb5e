from .base import Repository, assign_primary, promote_oldest
from .customers import CustomerRepository, CustomerAddressRepository
from .employees import EmployeeRepository
from .estimates import EstimateRepository, EstimateItemRepository
from .jobs import JobRepository
from .leads import (
    LeadRepository,
    LeadContactRepository,
    LeadActivityRepository,
    LeadNoteRepository,
    LeadFollowUpRepository,
    LeadTagRepository,
    LeadTagAssignmentRepository,
)

__all__ = [
    'Repository', 'assign_primary', 'promote_oldest',
    'CustomerRepository', 'CustomerAddressRepository',
    'EmployeeRepository',
    'EstimateRepository', 'EstimateItemRepository',
    'JobRepository',
    'LeadRepository', 'LeadContactRepository', 'LeadActivityRepository',
    'LeadNoteRepository', 'LeadFollowUpRepository',
    'LeadTagRepository', 'LeadTagAssignmentRepository',
]
