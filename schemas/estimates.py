from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

from schemas import reject_null


class ItemCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    category: Optional[str] = None
    description: Optional[str] = None
    quantity: float = Field(default=1, gt=0)
    base_price: float = Field(default=0, ge=0)
    price_per_unit: Optional[float] = Field(default=None, ge=0)
    difficulty: Optional[Literal['easy', 'medium', 'hard']] = None


class ItemUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[str] = None
    description: Optional[str] = None
    quantity: Optional[float] = Field(default=None, gt=0)
    base_price: Optional[float] = Field(default=None, ge=0)
    price_per_unit: Optional[float] = Field(default=None, ge=0)
    difficulty: Optional[Literal['easy', 'medium', 'hard']] = None

    not_null = reject_null('name', 'quantity', 'base_price')


class FeeCreate(BaseModel):
    fee_type: str = Field(min_length=1, max_length=50)
    description: Optional[str] = None
    amount: float = Field(default=0, ge=0)


class EstimateCreate(BaseModel):
    customer_id: Optional[str] = None
    customer_name: str = Field(min_length=1, max_length=200)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = Field(default=None, min_length=2, max_length=2)
    zip_code: Optional[str] = None
    labor_hours: float = Field(default=0, ge=0)
    labor_rate: float = Field(default=0, ge=0)
    expiry_date: Optional[date] = None
    notes: Optional[str] = None
    terms_conditions: Optional[str] = None
    payment_terms: Optional[str] = None
    items: List[ItemCreate] = []
    additional_fees: List[FeeCreate] = []


class EstimateUpdate(BaseModel):
    customer_id: Optional[str] = None
    customer_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = Field(default=None, min_length=2, max_length=2)
    zip_code: Optional[str] = None
    labor_hours: Optional[float] = Field(default=None, ge=0)
    labor_rate: Optional[float] = Field(default=None, ge=0)
    expiry_date: Optional[date] = None
    notes: Optional[str] = None
    terms_conditions: Optional[str] = None
    payment_terms: Optional[str] = None

    not_null = reject_null('customer_name', 'labor_hours', 'labor_rate')


class EstimateStatusUpdate(BaseModel):
    status: Literal['accepted', 'rejected', 'expired', 'converted']
    rejection_reason: Optional[str] = None
