import pytest
from datetime import date
from decimal import Decimal

from attendance_engine.core.exceptions import DuplicateSalary, EmployeeNotFound, ValidationError
from attendance_engine.models import PayType, Transaction
from attendance_engine.services.ledger_service import LedgerService, signed_amount


def _service(db_session, clock):
    return LedgerService(db_session, clock)


def test_add_transaction_stores_positive_amount(db_session, clock, employee):
    transaction = _service(db_session, clock).add_transaction(employee.id, "2500.5", "advance", "Festival advance")

    assert transaction.id is not None
    assert transaction.amount == Decimal("2500.50")
    assert transaction.pay_type == PayType.ADVANCE.value
    assert transaction.description == "Festival advance"


def test_second_salary_in_same_civil_month_is_rejected(db_session, clock, employee):
    service = _service(db_session, clock)
    service.add_transaction(employee.id, "31000", PayType.SALARY)

    clock.set_local(2026, 10, 31, 23, 59)
    with pytest.raises(DuplicateSalary):
        service.add_transaction(employee.id, "31000", PayType.SALARY)
    assert db_session.query(Transaction).count() == 1


def test_salary_in_next_civil_month_is_accepted(db_session, clock, employee):
    service = _service(db_session, clock)
    clock.set_local(2026, 10, 31, 23, 59)
    service.add_transaction(employee.id, "31000", "SALARY")

    # 00:01 local on Nov 1 is still Oct 31 in UTC
    clock.set_local(2026, 11, 1, 0, 1)
    service.add_transaction(employee.id, "30000", "SALARY")

    assert db_session.query(Transaction).count() == 2


def test_other_types_are_not_limited_per_month(db_session, clock, employee):
    service = _service(db_session, clock)
    service.add_transaction(employee.id, "100", "ADVANCE")
    service.add_transaction(employee.id, "100", "ADVANCE")
    assert db_session.query(Transaction).count() == 2


@pytest.mark.parametrize("amount", ["0", "-5", "abc", None])
def test_invalid_amount_is_rejected(db_session, clock, employee, amount):
    with pytest.raises(ValidationError) as exc:
        _service(db_session, clock).add_transaction(employee.id, amount, "ADVANCE")
    assert exc.value.error_code == "INVALID_AMOUNT"


def test_unknown_pay_type_is_rejected(db_session, clock, employee):
    with pytest.raises(ValidationError) as exc:
        _service(db_session, clock).add_transaction(employee.id, "100", "BONUS")
    assert exc.value.error_code == "INVALID_PAY_TYPE"


def test_unknown_employee(db_session, clock, office):
    with pytest.raises(EmployeeNotFound):
        _service(db_session, clock).add_transaction(404, "100", "ADVANCE")


def test_signed_amounts():
    assert signed_amount("SALARY", Decimal("10")) == Decimal("10")
    assert signed_amount("OVERTIME", Decimal("10")) == Decimal("10")
    assert signed_amount("DEDUCTION", Decimal("10")) == Decimal("-10")
    assert signed_amount("ADVANCE", Decimal("10")) == Decimal("-10")


def test_monthly_ledger_groups_by_employee_and_type(db_session, clock, make_employee):
    first = make_employee(name="First")
    second = make_employee(name="Second")
    service = _service(db_session, clock)
    service.add_transaction(first.id, "31000", "SALARY")
    service.add_transaction(first.id, "500", "ADVANCE")
    service.record_deduction(first, Decimal("1000.00"), date(2026, 10, 5), "Absence")
    service.record_deduction(first, Decimal("1000.00"), date(2026, 10, 6), "Absence")
    service.add_transaction(second.id, "200", "OVERTIME")
    db_session.commit()

    report = service.get_transactions_for_month(10, 2026)

    assert report["month"] == "October"
    assert report["year"] == 2026
    by_employee = {p["employee_id"]: p for p in report["payments"]}
    assert set(by_employee) == {first.id, second.id}

    mine = by_employee[first.id]
    assert mine["name"] == "First"
    assert len(mine["by_type"]["DEDUCTION"]) == 2
    assert mine["totals"] == {
        "SALARY": Decimal("31000.00"),
        "ADVANCE": Decimal("500.00"),
        "DEDUCTION": Decimal("2000.00"),
    }
    assert mine["net"] == Decimal("28500.00")
    assert by_employee[second.id]["net"] == Decimal("200.00")


def test_monthly_ledger_filters(db_session, clock, make_employee, office):
    from attendance_engine.models import Office

    other_office = Office(name="Branch", checkin=office.checkin, checkout=office.checkout, break_time=30)
    db_session.add(other_office)
    db_session.commit()
    here = make_employee(name="Here")
    there = make_employee(name="There", office_id=other_office.id)
    service = _service(db_session, clock)
    service.add_transaction(here.id, "100", "ADVANCE")
    service.add_transaction(there.id, "100", "ADVANCE")

    by_employee = service.get_transactions_for_month(10, 2026, employee_id=there.id)
    by_office = service.get_transactions_for_month(10, 2026, office_id=office.id)

    assert [p["employee_id"] for p in by_employee["payments"]] == [there.id]
    assert [p["employee_id"] for p in by_office["payments"]] == [here.id]


def test_month_without_transactions_is_empty(db_session, clock, employee):
    report = _service(db_session, clock).get_transactions_for_month(3, 2026)
    assert report["month"] == "March"
    assert report["payments"] == []


def test_current_month_excludes_future_dated_rows(db_session, clock, employee):
    service = _service(db_session, clock)
    service.record_deduction(employee, Decimal("1000.00"), date(2026, 10, 18), "Absence")
    service.record_deduction(employee, Decimal("1000.00"), date(2026, 10, 25), "Unpaid leave")
    db_session.commit()

    report = service.get_transactions_for_month(10, 2026)

    rows = report["payments"][0]["by_type"]["DEDUCTION"]
    assert len(rows) == 1
    assert rows[0]["description"] == "Absence deduction for 2026-10-18"


def test_past_month_is_not_clamped(db_session, clock, employee):
    service = _service(db_session, clock)
    service.record_deduction(employee, Decimal("1000.00"), date(2026, 9, 30), "Absence")
    db_session.commit()

    report = service.get_transactions_for_month(9, 2026)

    assert report["payments"][0]["totals"] == {"DEDUCTION": Decimal("1000.00")}


def test_invalid_month(db_session, clock):
    with pytest.raises(ValidationError):
        _service(db_session, clock).get_transactions_for_month(13, 2026)


def test_employee_yearly_view(db_session, clock, employee):
    service = _service(db_session, clock)
    service.record_deduction(employee, Decimal("1000.00"), date(2026, 8, 3), "Absence")
    service.record_deduction(employee, Decimal("1000.00"), date(2026, 9, 7), "Absence")
    service.record_deduction(employee, Decimal("1000.00"), date(2025, 12, 1), "Absence")
    db_session.commit()
    service.add_transaction(employee.id, "31000", "SALARY")

    view = service.get_employee_transactions(employee.id, 2026)

    assert view["base_salary"] == Decimal("31000.00")
    assert view["current"]["month"] == "October"
    assert [t["pay_type"] for t in view["current"]["transactions"]] == ["SALARY"]
    assert [block["month"] for block in view["previous"]] == ["August", "September"]
    assert all(len(block["transactions"]) == 1 for block in view["previous"])
