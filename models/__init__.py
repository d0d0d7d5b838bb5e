# ============================================================
# CORE MODELS
# ============================================================

from .core import (
    # Enums
    CUSTOMER_TYPES,
    CUSTOMER_STATUSES,
    ADDRESS_TYPES,
    EMPLOYEE_STATUSES,
    EMPLOYEE_TYPES,
    ESTIMATE_STATUSES,
    JOB_STATUSES,

    # Customers
    Customer,
    CustomerAddress,

    # Staff
    Employee,

    # Estimates & Jobs
    Estimate,
    EstimateItem,
    EstimateFee,
    Job,
    JobStatusHistory,
)

# Lead funnel
from .leads import (
    LEAD_STATUSES,
    LEAD_SOURCES,
    LEAD_PRIORITIES,
    CONTACT_TYPES,
    CONTACT_METHODS,
    ACTIVITY_TYPES,
    CONTACT_ACTIVITY_TYPES,
    ACTIVITY_OUTCOMES,
    NOTE_TYPES,
    FOLLOW_UP_TYPES,
    FOLLOW_UP_STATUSES,

    Lead,
    LeadContact,
    LeadActivity,
    LeadNote,
    LeadQualification,
    LeadFollowUp,
    LeadTag,
    LeadTagAssignment,
    LeadConversion,
)


__all__ = [
    # Enums
    'CUSTOMER_TYPES', 'CUSTOMER_STATUSES', 'ADDRESS_TYPES',
    'EMPLOYEE_STATUSES', 'EMPLOYEE_TYPES', 'ESTIMATE_STATUSES', 'JOB_STATUSES',
    'LEAD_STATUSES', 'LEAD_SOURCES', 'LEAD_PRIORITIES',
    'CONTACT_TYPES', 'CONTACT_METHODS',
    'ACTIVITY_TYPES', 'CONTACT_ACTIVITY_TYPES', 'ACTIVITY_OUTCOMES',
    'NOTE_TYPES', 'FOLLOW_UP_TYPES', 'FOLLOW_UP_STATUSES',

    # Core Models
    'Customer', 'CustomerAddress', 'Employee',
    'Estimate', 'EstimateItem', 'EstimateFee',
    'Job', 'JobStatusHistory',

    # Leads
    'Lead', 'LeadContact', 'LeadActivity', 'LeadNote', 'LeadQualification',
    'LeadFollowUp', 'LeadTag', 'LeadTagAssignment', 'LeadConversion',
]
