from pydantic import BaseModel, ConfigDict
from datetime import datetime
from decimal import Decimal
from typing import Optional


class TransactionCreate(BaseModel):
    employee_id: int
    amount: Decimal
    type: str
    description: Optional[str] = None


class TransactionResponse(BaseModel):
    id: int
    employee_id: int
    amount: Decimal
    pay_type: str
    date: datetime
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
