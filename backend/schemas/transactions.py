from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime
from decimal import Decimal
from models.transactions import TransactionType


class TransactionBase(BaseModel):
    supplier_id: int
    type: TransactionType
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    description: Optional[str] = None
    date: date


class TransactionCreate(TransactionBase):
    pass


class Transaction(TransactionBase):
    id: int
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None

    class Config:
        from_attributes = True
