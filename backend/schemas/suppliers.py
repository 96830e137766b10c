from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal
from models.suppliers import SupplierCategory


class SupplierBase(BaseModel):
    name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    category: SupplierCategory
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be empty")
        return value


class SupplierCreate(SupplierBase):
    opening_balance: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)


class SupplierUpdate(BaseModel):
    # No balance field: it only moves through transactions
    name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    category: Optional[SupplierCategory] = None
    notes: Optional[str] = None
    opening_balance: Optional[Decimal] = Field(default=None, max_digits=14, decimal_places=2)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("name must not be empty")
        return value


class Supplier(SupplierBase):
    # Stored records are not re-validated against the email format
    email: Optional[str] = None
    id: int
    opening_balance: Decimal
    balance: Decimal
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None

    class Config:
        from_attributes = True


class BalanceDrift(BaseModel):
    supplier_id: int
    name: str
    cached_balance: Decimal
    expected_balance: Decimal
    drift: Decimal
