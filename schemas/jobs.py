from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from models import JOB_STATUSES
from schemas import reject_null


class JobCreate(BaseModel):
    customer_id: str = Field(min_length=1)
    estimate_id: Optional[str] = None
    assigned_employee_id: Optional[str] = None
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    status: Literal[JOB_STATUSES] = 'scheduled'
    total_cost: float = Field(default=0, ge=0)


class JobUpdate(BaseModel):
    customer_id: Optional[str] = None
    estimate_id: Optional[str] = None
    assigned_employee_id: Optional[str] = None
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    completion_date: Optional[datetime] = None
    status: Optional[Literal[JOB_STATUSES]] = None
    total_cost: Optional[float] = Field(default=None, ge=0)

    not_null = reject_null('customer_id', 'title', 'status', 'total_cost')
