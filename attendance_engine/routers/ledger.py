"""
Ledger Router

Handles HTTP endpoints for the transaction ledger.
All business logic is delegated to the ledger service layer.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query

from attendance_engine.dependencies import get_ledger_service
from attendance_engine.schemas.ledger import TransactionCreate, TransactionResponse
from attendance_engine.services.ledger_service import LedgerService

router = APIRouter(prefix="/transactions", tags=["ledger"])


@router.post("", response_model=TransactionResponse)
def add_transaction(request: TransactionCreate, service: LedgerService = Depends(get_ledger_service)):
    return service.add_transaction(request.employee_id, request.amount, request.type, request.description)


@router.get("/monthly")
def monthly_ledger(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=1970),
    employee_id: Optional[int] = None,
    office_id: Optional[int] = None,
    service: LedgerService = Depends(get_ledger_service)
):
    """Transactions of a civil month grouped by employee and pay type."""
    return service.get_transactions_for_month(month, year, employee_id=employee_id, office_id=office_id)


@router.get("/{employee_id}")
def employee_transactions(
    employee_id: int,
    year: int = Query(..., ge=1970),
    service: LedgerService = Depends(get_ledger_service)
):
    return service.get_employee_transactions(employee_id, year)
