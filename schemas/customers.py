from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field

from models import CUSTOMER_TYPES, ADDRESS_TYPES
from schemas import reject_null


class CustomerCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    mobile: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = Field(default=None, min_length=2, max_length=2)
    zip_code: Optional[str] = Field(default=None, max_length=10)
    country: str = 'USA'
    customer_type: Literal[CUSTOMER_TYPES] = 'residential'
    source: Optional[str] = None
    notes: Optional[str] = None


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    mobile: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = Field(default=None, min_length=2, max_length=2)
    zip_code: Optional[str] = None
    country: Optional[str] = None
    customer_type: Optional[Literal[CUSTOMER_TYPES]] = None
    status: Optional[Literal['active', 'inactive']] = None
    source: Optional[str] = None
    notes: Optional[str] = None

    not_null = reject_null('name', 'country', 'customer_type', 'status')


class AddressCreate(BaseModel):
    address_type: Literal[ADDRESS_TYPES] = 'service'
    street: str = Field(min_length=1, max_length=255)
    city: Optional[str] = None
    state: Optional[str] = Field(default=None, min_length=2, max_length=2)
    zip_code: Optional[str] = Field(default=None, max_length=10)
    country: str = 'USA'
    access_notes: Optional[str] = None
    is_primary: bool = False


class AddressUpdate(BaseModel):
    address_type: Optional[Literal[ADDRESS_TYPES]] = None
    street: Optional[str] = Field(default=None, min_length=1, max_length=255)
    city: Optional[str] = None
    state: Optional[str] = Field(default=None, min_length=2, max_length=2)
    zip_code: Optional[str] = None
    country: Optional[str] = None
    access_notes: Optional[str] = None
    is_primary: Optional[bool] = None

    not_null = reject_null('address_type', 'street', 'country', 'is_primary')
