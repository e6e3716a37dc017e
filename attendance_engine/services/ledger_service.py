"""
Payroll Ledger Service

Append-only transaction log (SALARY, OVERTIME, DEDUCTION, ADVANCE) and the
monthly aggregation used for payroll reporting.

Architecture:
- Router -> Service (this module) -> Models
- Other services append through `record_*` helpers, which never commit,
  so the ledger row lands in the caller's database transaction.
- Transactions are never updated or deleted.
"""

import calendar
import logging
from collections import OrderedDict
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import and_

from attendance_engine.core import civil_day
from attendance_engine.core.exceptions import DuplicateSalary, ValidationError
from attendance_engine.core.money import to_money
from attendance_engine.database import atomic
from attendance_engine.models.employee import Employee
from attendance_engine.models.transaction import PayType, Transaction
from attendance_engine.services.base import BaseService, scoped_to_employee

logger = logging.getLogger(__name__)


def parse_pay_type(value: Union[str, PayType]) -> PayType:
    raw = value.value if isinstance(value, PayType) else str(value).upper()
    try:
        return PayType(raw)
    except ValueError:
        raise ValidationError(
            f"Invalid transaction type: {value}",
            error_code="INVALID_PAY_TYPE",
            details={"allowed": [p.value for p in PayType]}
        )


def parse_amount(value: Any) -> Decimal:
    try:
        amount = to_money(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid amount: {value}", error_code="INVALID_AMOUNT")
    if amount <= 0:
        raise ValidationError("Amount must be positive", error_code="INVALID_AMOUNT", details={"amount": str(value)})
    return amount


def signed_amount(pay_type: str, amount: Decimal) -> Decimal:
    return Decimal(amount) * PayType(pay_type).sign


def _transaction_to_dict(t: Transaction) -> Dict[str, Any]:
    """Convert Transaction model to dict representation."""
    return {
        "id": t.id,
        "employee_id": t.employee_id,
        "amount": to_money(t.amount),
        "pay_type": t.pay_type,
        "date": civil_day.as_utc(t.date).isoformat(),
        "description": t.description,
    }


class LedgerService(BaseService):

    # --- append helpers (no commit) ---

    def record(
        self,
        employee_id: int,
        amount: Decimal,
        pay_type: PayType,
        when: datetime,
        description: Optional[str] = None
    ) -> Transaction:
        transaction = Transaction(
            employee_id=employee_id,
            amount=to_money(amount),
            pay_type=pay_type.value,
            date=civil_day.to_storage(when),
            description=description,
        )
        self.db.add(transaction)
        return transaction

    def record_overtime(self, employee: Employee, minutes: int, pay: Decimal, when: datetime) -> Transaction:
        hours = Decimal(minutes) / 60
        day = civil_day.civil_day_of(when)
        return self.record(
            employee.id,
            pay,
            PayType.OVERTIME,
            when,
            f"Overtime payment for {hours:.2f} hr(s) on {day.isoformat()}",
        )

    def record_deduction(self, employee: Employee, amount: Decimal, day: date, reason: str) -> Transaction:
        """Deduction dated at the start of the civil day it charges for."""
        return self.record(
            employee.id,
            amount,
            PayType.DEDUCTION,
            civil_day.local_midnight(day),
            f"{reason} deduction for {day.isoformat()}",
        )

    # --- operations ---

    @scoped_to_employee
    def add_transaction(
        self,
        employee_id: int,
        amount: Any,
        pay_type: Union[str, PayType],
        description: Optional[str] = None
    ) -> Transaction:
        """
        Settle a transaction for an employee.

        A SALARY transaction is accepted at most once per employee per civil month.
        """
        pay_type = parse_pay_type(pay_type)
        amount = parse_amount(amount)
        now = self.now()

        with atomic(self.db):
            employee = self.get_employee(employee_id, lock=True)
            if pay_type == PayType.SALARY:
                local = civil_day.to_local(now)
                window = civil_day.month_bounds(local.year, local.month)
                existing = self.db.query(Transaction.id).filter(
                    Transaction.employee_id == employee.id,
                    Transaction.pay_type == PayType.SALARY.value,
                    Transaction.date >= civil_day.to_storage(window.start),
                    Transaction.date < civil_day.to_storage(window.end),
                ).first()
                if existing:
                    self.log_warning(f"Duplicate salary rejected for employee {employee.id}")
                    raise DuplicateSalary(employee.id, local.month, local.year)

            transaction = self.record(employee.id, amount, pay_type, now, description or None)

        self.db.refresh(transaction)
        logger.info(f"Transaction {transaction.id} [{pay_type.value}] settled for employee {employee_id}")
        return transaction

    def get_transactions_for_month(
        self,
        month: int,
        year: int,
        employee_id: Optional[int] = None,
        office_id: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Monthly ledger grouped by employee, then by pay type.

        Read-only. A month without transactions yields an empty `payments` list.
        """
        window = civil_day.month_bounds(year, month, self.now())
        upper = (
            Transaction.date <= civil_day.to_storage(window.end)
            if window.clamped
            else Transaction.date < civil_day.to_storage(window.end)
        )
        query = self.db.query(Transaction, Employee).join(
            Employee, Employee.id == Transaction.employee_id
        ).filter(
            and_(Transaction.date >= civil_day.to_storage(window.start), upper)
        )
        if employee_id is not None:
            query = query.filter(Transaction.employee_id == employee_id)
        if office_id is not None:
            query = query.filter(Employee.office_id == office_id)

        payments: "OrderedDict[int, Dict[str, Any]]" = OrderedDict()
        for t, employee in query.order_by(Transaction.date.asc(), Transaction.id.asc()).all():
            entry = payments.get(employee.id)
            if entry is None:
                entry = payments[employee.id] = {
                    "employee_id": employee.id,
                    "name": employee.name,
                    "phone": employee.phone,
                    "by_type": {},
                    "totals": {},
                    "net": to_money(0),
                }
            entry["by_type"].setdefault(t.pay_type, []).append(_transaction_to_dict(t))
            entry["totals"][t.pay_type] = to_money(entry["totals"].get(t.pay_type, 0) + Decimal(t.amount))
            entry["net"] = to_money(entry["net"] + signed_amount(t.pay_type, t.amount))

        return {
            "month": calendar.month_name[month],
            "year": year,
            "from": window.start.isoformat(),
            "to": window.end.isoformat(),
            "payments": list(payments.values()),
        }

    def get_employee_transactions(self, employee_id: int, year: int) -> Dict[str, Any]:
        """
        An employee's ledger for a year: the current civil month on its own,
        earlier months of the requested year grouped by month name.
        """
        employee = self.get_employee(employee_id)
        now_local = civil_day.to_local(self.now())

        current = self.get_transactions_for_month(now_local.month, now_local.year, employee_id=employee.id)
        current_rows: List[Dict[str, Any]] = []
        for payment in current["payments"]:
            for rows in payment["by_type"].values():
                current_rows.extend(rows)
        current_rows.sort(key=lambda r: (r["date"], r["id"]))

        year_start = civil_day.local_midnight(date(year, 1, 1))
        year_end = civil_day.local_midnight(date(year + 1, 1, 1))
        rows = self.db.query(Transaction).filter(
            Transaction.employee_id == employee.id,
            Transaction.date >= civil_day.to_storage(year_start),
            Transaction.date < civil_day.to_storage(year_end),
        ).order_by(Transaction.date.asc(), Transaction.id.asc()).all()

        previous: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        for t in rows:
            local = civil_day.to_local(t.date)
            if (local.year, local.month) == (now_local.year, now_local.month):
                continue
            month_name = calendar.month_name[local.month]
            block = previous.setdefault(month_name, {
                "month": month_name,
                "base_salary": to_money(employee.base_salary),
                "transactions": [],
            })
            block["transactions"].append(_transaction_to_dict(t))

        return {
            "year": year,
            "base_salary": to_money(employee.base_salary),
            "current": {
                "month": calendar.month_name[now_local.month],
                "base_salary": to_money(employee.base_salary),
                "transactions": current_rows,
            },
            "previous": list(previous.values()),
        }
