"""
Transaction aggregation for a single owner and calendar month.

Turns raw transaction records into a FinancialSnapshot: income and expense
buckets grouped by normalised category with per-bucket percentages.
"""
import calendar
import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Tuple

from services.exceptions import NotFoundError

logger = logging.getLogger(__name__)

INCOME = "income"
EXPENSE = "expense"
DEFAULT_CATEGORY = "other"


@dataclass(frozen=True)
class PeriodWindow:
    """A calendar month."""
    month: int
    year: int

    @property
    def start(self) -> datetime:
        return datetime(self.year, self.month, 1)

    @property
    def end(self) -> datetime:
        last_day = calendar.monthrange(self.year, self.month)[1]
        return datetime(self.year, self.month, last_day, 23, 59, 59, 999999)

    @property
    def label(self) -> str:
        return f"{self.month}/{self.year}"


@dataclass(frozen=True)
class CategorySummary:
    category: str
    amount: float
    percentage: str

    def to_dict(self) -> Dict[str, object]:
        return {"category": self.category, "amount": self.amount, "percentage": self.percentage}


@dataclass(frozen=True)
class FinancialSnapshot:
    """Aggregated view of one owner's month. Built per request, never persisted."""
    period: PeriodWindow
    total_income: float
    total_expenses: float
    income_breakdown: Tuple[CategorySummary, ...] = ()
    expense_breakdown: Tuple[CategorySummary, ...] = ()
    categories_seen: Tuple[str, ...] = ()
    expense_frequency: Tuple[Tuple[str, int], ...] = field(default=())

    @property
    def net_savings(self) -> float:
        return self.total_income - self.total_expenses

    @property
    def savings_rate(self) -> float:
        """Net savings as a percentage of income (0 when there is no income)."""
        if self.total_income <= 0:
            return 0.0
        return self.net_savings / self.total_income * 100

    def has_expense_category(self, category: str) -> bool:
        return (category or "").strip().lower() in self.categories_seen

    def top_expenses(self, limit: int = 3) -> List[CategorySummary]:
        """Largest expense categories first."""
        ranked = sorted(self.expense_breakdown, key=lambda item: (-item.amount, item.category))
        return ranked[:limit]

    def most_frequent(self, limit: int = 2) -> List[Tuple[str, int]]:
        return list(self.expense_frequency[:limit])


def _category_key(record) -> str:
    """Lower-cased category, else the descriptive name, else 'other'."""
    raw = getattr(record, "category", None) or getattr(record, "name", None) or DEFAULT_CATEGORY
    key = str(raw).strip().lower()
    return key or DEFAULT_CATEGORY


def _amount(record) -> float:
    try:
        return float(getattr(record, "amount", 0) or 0)
    except (TypeError, ValueError):
        return 0.0


def _percentage(amount: float, total: float) -> str:
    if total <= 0:
        return "0.00"
    return f"{amount / total * 100:.2f}"


def _breakdown(totals: Dict[str, float], bucket_total: float) -> Tuple[CategorySummary, ...]:
    return tuple(
        CategorySummary(category=category, amount=amount, percentage=_percentage(amount, bucket_total))
        for category, amount in sorted(totals.items())
    )


def aggregate(records: Iterable, period: PeriodWindow) -> FinancialSnapshot:
    """
    Aggregate an owner's transactions for a period.

    Args:
        records: TransactionRecord-like objects (category, name, amount, kind)
        period: The month the records belong to

    Returns:
        FinancialSnapshot

    Raises:
        NotFoundError: If there are no records at all
    """
    records = list(records)
    if not records:
        raise NotFoundError(f"No transactions found for {period.label}")

    totals: Dict[str, Dict[str, float]] = {INCOME: defaultdict(float), EXPENSE: defaultdict(float)}
    frequency: Counter = Counter()

    for record in records:
        kind = str(getattr(record, "kind", "") or "").lower()
        amount = _amount(record)
        if kind not in totals or amount <= 0:
            continue

        category = _category_key(record)
        totals[kind][category] += amount
        if kind == EXPENSE:
            frequency[str(getattr(record, "name", None) or category)] += 1

    total_income = sum(totals[INCOME].values())
    total_expenses = sum(totals[EXPENSE].values())

    logger.info(
        f"Aggregated {len(records)} transactions for {period.label}: "
        f"{len(totals[INCOME])} income and {len(totals[EXPENSE])} expense categories"
    )

    return FinancialSnapshot(
        period=period,
        total_income=total_income,
        total_expenses=total_expenses,
        income_breakdown=_breakdown(totals[INCOME], total_income),
        expense_breakdown=_breakdown(totals[EXPENSE], total_expenses),
        categories_seen=tuple(sorted(totals[EXPENSE])),
        expense_frequency=tuple(sorted(frequency.items(), key=lambda item: (-item[1], item[0]))),
    )
