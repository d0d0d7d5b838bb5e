from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field

from models import EMPLOYEE_STATUSES, EMPLOYEE_TYPES
from schemas import reject_null


class EmployeeCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = Field(default=None, min_length=2, max_length=2)
    zip_code: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    employee_type: Literal[EMPLOYEE_TYPES] = 'full-time'
    status: Literal[EMPLOYEE_STATUSES] = 'active'
    hire_date: Optional[date] = None
    hourly_rate: Optional[float] = Field(default=None, ge=0)
    salary: Optional[float] = Field(default=None, ge=0)
    supervisor_id: Optional[str] = None


class EmployeeUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = Field(default=None, min_length=2, max_length=2)
    zip_code: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    employee_type: Optional[Literal[EMPLOYEE_TYPES]] = None
    status: Optional[Literal[EMPLOYEE_STATUSES]] = None
    hire_date: Optional[date] = None
    termination_date: Optional[date] = None
    hourly_rate: Optional[float] = Field(default=None, ge=0)
    salary: Optional[float] = Field(default=None, ge=0)
    supervisor_id: Optional[str] = None

    not_null = reject_null('first_name', 'last_name', 'email', 'employee_type', 'status')
