from datetime import datetime

import pytest

from conftest import make_record
from services.aggregator import PeriodWindow, aggregate
from services.exceptions import NotFoundError

MARCH = PeriodWindow(month=3, year=2024)


def test_scenario_breakdown_and_totals(snapshot) -> None:
    assert [item.to_dict() for item in snapshot.expense_breakdown] == [
        {"category": "food", "amount": 100, "percentage": "11.11"},
        {"category": "rent", "amount": 800, "percentage": "88.89"},
    ]
    assert snapshot.total_income == 2000
    assert snapshot.total_expenses == 900
    assert snapshot.net_savings == 1100
    assert snapshot.categories_seen == ("food", "rent")


def test_percentages_sum_to_one_hundred() -> None:
    records = [
        make_record(33.33, "expense", "a"),
        make_record(33.33, "expense", "b"),
        make_record(33.34, "expense", "c"),
        make_record(10, "income", "salary"),
    ]

    snapshot = aggregate(records, MARCH)

    total = sum(float(item.percentage) for item in snapshot.expense_breakdown)
    assert total == pytest.approx(100, abs=0.01 * len(snapshot.expense_breakdown))
    assert [item.percentage for item in snapshot.income_breakdown] == ["100.00"]


def test_non_positive_and_unknown_kinds_are_skipped() -> None:
    records = [
        make_record(50, "expense", "food"),
        make_record(0, "expense", "food"),
        make_record(-20, "expense", "travel"),
        make_record(70, "transfer", "savings"),
    ]

    snapshot = aggregate(records, MARCH)

    assert snapshot.total_expenses == 50
    assert snapshot.categories_seen == ("food",)
    assert snapshot.total_income == 0
    assert snapshot.income_breakdown == ()


def test_category_falls_back_to_name_then_other() -> None:
    records = [
        make_record(10, "expense", category="Groceries"),
        make_record(20, "expense", category=None, name="Netflix"),
        make_record(30, "expense", category=None, name=""),
    ]

    snapshot = aggregate(records, MARCH)

    assert snapshot.categories_seen == ("groceries", "netflix", "other")


def test_output_does_not_depend_on_input_order(scenario_records) -> None:
    forward = aggregate(scenario_records, MARCH)
    backward = aggregate(list(reversed(scenario_records)), MARCH)

    assert forward == backward


def test_income_only_month_has_no_expense_breakdown() -> None:
    snapshot = aggregate([make_record(500, "income", "salary")], MARCH)

    assert snapshot.expense_breakdown == ()
    assert snapshot.savings_rate == 100


def test_empty_records_raise_not_found() -> None:
    with pytest.raises(NotFoundError) as exc_info:
        aggregate([], MARCH)

    assert "3/2024" in str(exc_info.value)
    assert exc_info.value.suggestion


def test_top_expenses_and_most_frequent() -> None:
    records = [
        make_record(5, "expense", "coffee", name="Coffee"),
        make_record(5, "expense", "coffee", name="Coffee"),
        make_record(5, "expense", "coffee", name="Coffee"),
        make_record(900, "expense", "rent", name="Rent"),
        make_record(60, "expense", "food", name="Lunch"),
        make_record(40, "expense", "food", name="Lunch"),
    ]

    snapshot = aggregate(records, MARCH)

    assert [item.category for item in snapshot.top_expenses(2)] == ["rent", "food"]
    assert snapshot.most_frequent(2) == [("Coffee", 3), ("Lunch", 2)]
    assert snapshot.has_expense_category(" FOOD ")
    assert not snapshot.has_expense_category("salary")


def test_period_window_covers_whole_month() -> None:
    february = PeriodWindow(month=2, year=2024)

    assert february.start == datetime(2024, 2, 1)
    assert february.end.date() == datetime(2024, 2, 29).date()
    assert february.label == "2/2024"
