from fastapi import APIRouter, Depends

from attendance_engine.core.exceptions import ValidationError
from attendance_engine.dependencies import get_reconciliation_service
from attendance_engine.services.reconciliation_service import ReconciliationService

router = APIRouter(prefix="/reconciliation", tags=["reconciliation"])


@router.post("/run")
def run_reconciliation(
    office_id: str = "all",
    service: ReconciliationService = Depends(get_reconciliation_service)
):
    """Mark employees without attendance today as HOLIDAY, LEAVE or ABSENT."""
    if office_id == "all":
        return service.run(None)
    if not office_id.isdigit():
        raise ValidationError("office_id must be an office id or 'all'", error_code="INVALID_OFFICE_SCOPE")
    return service.run(int(office_id))
