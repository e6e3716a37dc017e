from fastapi import APIRouter
from attendance_engine.routers import attendance, holiday, leave, ledger, reconciliation

# Centralized API router hub
# Routers are aggregated here, and main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(attendance.router, tags=["Attendance"])
api_router.include_router(leave.router, tags=["Leave"])
api_router.include_router(ledger.router, tags=["Ledger"])
api_router.include_router(reconciliation.router, tags=["Reconciliation"])
api_router.include_router(holiday.router, tags=["Holidays"])
