import os
import logging
from pydantic import BaseModel, Field
from dotenv import load_dotenv

load_dotenv()


class Config(BaseModel):
    app_name: str = "Attendance & Payroll Engine"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"
    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./attendance.db")

    # Business calendar: all rules run on this fixed offset (IST by default)
    business_utc_offset_minutes: int = int(os.getenv("BUSINESS_UTC_OFFSET_MINUTES", "330"))

    # Attendance rules
    late_grace_minutes: int = Field(default=int(os.getenv("LATE_GRACE_MINUTES", "30")), ge=0)

    # Ledger
    currency_places: int = Field(default=int(os.getenv("CURRENCY_PLACES", "2")), ge=0)

    # Reporting
    leave_summary_limit: int = int(os.getenv("LEAVE_SUMMARY_LIMIT", "10"))
    dashboard_pending_limit: int = int(os.getenv("DASHBOARD_PENDING_LIMIT", "5"))


settings = Config()

_logger = logging.getLogger(__name__)
if settings.environment == "production" and settings.database_url.startswith("sqlite"):
    _logger.warning("Running production against SQLite; row locks are not enforced.")
