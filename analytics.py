"""
Budget analytics for a single user and calendar month.

BudgetAnalytics joins a user's transactions for one month against the
budgets defined for that month and produces a BudgetReport: income and
expense totals, spending per category, and for every budget how much of
it has been used. All money arithmetic is done in Decimal and converted
to float only when the report is serialized.
"""

import calendar
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from exceptions import DataUnavailable, InvalidArgument
from models import EXPENSE, INCOME, MONTHLY
from utils import parse_month, parse_year

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
HUNDRED = Decimal('100')
CENT = Decimal('0.01')


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a stored amount to Decimal without binary float drift.

    Floats go through ``str`` so 0.1 becomes Decimal('0.1') rather than
    its exact binary expansion.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value: Decimal) -> Decimal:
    """Round half-up to two decimal places."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(value: Any) -> int:
    """Convert an amount to integer cents."""
    return int(round2(to_decimal(value)) * 100)


def month_date_range(year: int, month: int) -> Tuple[datetime, datetime]:
    """
    Return the inclusive datetime range covering a calendar month.

    Args:
        year: Four-digit year
        month: Month number (1-12)

    Returns:
        Tuple of (first day at 00:00:00, last day at 23:59:59)
    """
    last_day = calendar.monthrange(year, month)[1]
    return (
        datetime(year, month, 1, 0, 0, 0),
        datetime(year, month, last_day, 23, 59, 59),
    )


def _parse_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


@dataclass(frozen=True)
class Period:
    month: int
    year: int


def resolve_period(month: Any, year: Any, now: datetime) -> Period:
    """
    Resolve the target month/year, defaulting to the current one.

    Values that are missing or not parseable as integers fall back to
    ``now``. Parsed values outside the calendar are rejected.

    Raises:
        InvalidArgument: If month is not 1-12 or year is not 1-9999
    """
    target_month = _parse_int(month)
    target_year = _parse_int(year)
    if target_month is None:
        target_month = now.month
    if target_year is None:
        target_year = now.year

    return Period(month=parse_month(target_month), year=parse_year(target_year))


@dataclass(frozen=True)
class Summary:
    total_income: Decimal
    total_expenses: Decimal
    savings: Decimal


@dataclass
class BudgetLine:
    """A budget enriched with its actual spending for the period."""
    id: Any
    category: str
    limit: Decimal
    month: int
    year: int
    period: str
    actual_spending: Decimal
    remaining: Decimal
    percentage_used: Decimal
    is_over_budget: bool
    user_id: Any = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'category': self.category,
            'limit': float(self.limit),
            'month': self.month,
            'year': self.year,
            'period': self.period,
            'actualSpending': float(self.actual_spending),
            'remaining': float(self.remaining),
            'percentageUsed': float(self.percentage_used),
            'isOverBudget': self.is_over_budget,
        }
        if self.user_id is not None:
            data['userId'] = self.user_id
        return data


@dataclass
class BudgetReport:
    period: Period
    summary: Summary
    spending_by_category: Dict[str, Decimal] = field(default_factory=dict)
    budgets: List[BudgetLine] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON shape returned by ``GET /api/budget``."""
        return {
            'period': {'month': self.period.month, 'year': self.period.year},
            'summary': {
                'totalIncome': float(self.summary.total_income),
                'totalExpenses': float(self.summary.total_expenses),
                'savings': float(self.summary.savings),
            },
            'spendingByCategory': {
                category: float(amount)
                for category, amount in self.spending_by_category.items()
            },
            'budgets': [line.to_dict() for line in self.budgets],
        }


def summarize_transactions(transactions: Iterable[Any]) -> Tuple[Summary, Dict[str, Decimal]]:
    """
    Total income and expenses and group expense amounts by category.

    Categories are compared exactly as stored, with no case folding or
    trimming.
    """
    total_income = ZERO
    total_expenses = ZERO
    spending: Dict[str, Decimal] = {}

    for tx in transactions:
        amount = to_decimal(tx.amount)
        if tx.type == INCOME:
            total_income += amount
        elif tx.type == EXPENSE:
            total_expenses += amount
            spending[tx.category] = spending.get(tx.category, ZERO) + amount

    summary = Summary(
        total_income=total_income,
        total_expenses=total_expenses,
        savings=total_income - total_expenses,
    )
    return summary, spending


def evaluate_budget(budget: Any, spending_by_category: Dict[str, Decimal]) -> BudgetLine:
    """
    Compare one budget against the period's spending.

    A zero limit can only come from malformed data; it reports 0% used
    and is over budget as soon as anything was spent.
    """
    limit = to_decimal(budget.limit)
    actual = spending_by_category.get(budget.category, ZERO)

    if limit == ZERO:
        percentage_used = ZERO
        is_over_budget = actual > ZERO
    else:
        percentage_used = round2(actual / limit * HUNDRED)
        is_over_budget = actual > limit

    return BudgetLine(
        id=budget.id,
        category=budget.category,
        limit=limit,
        month=budget.month,
        year=budget.year,
        period=budget.period,
        actual_spending=actual,
        remaining=limit - actual,
        percentage_used=percentage_used,
        is_over_budget=is_over_budget,
        user_id=getattr(budget, 'user_id', None),
    )


class BudgetAnalytics:
    """
    Computes budget reports from an injected store.

    The store must provide ``list_transactions(user_id, start, end)`` and
    ``list_budgets(user_id, year, month, period)``. The clock supplies
    "now" when the caller does not name a month or year.
    """

    def __init__(self, store, clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.clock = clock or datetime.now

    def compute_budget_report(self, user_id: Any, month: Any = None, year: Any = None) -> BudgetReport:
        """
        Build the budget report for one user and month.

        Args:
            user_id: Identifier of the authenticated user
            month: Target month (1-12); defaults to the current month
            year: Target year; defaults to the current year

        Returns:
            BudgetReport for the resolved period

        Raises:
            InvalidArgument: If user_id is missing or invalid, or the month
                or year is out of range
            DataUnavailable: If the store cannot be read
        """
        if isinstance(user_id, bool) or not isinstance(user_id, int) or user_id <= 0:
            raise InvalidArgument("A valid user id is required", details={'user_id': user_id})

        period = resolve_period(month, year, self.clock())
        start, end = month_date_range(period.year, period.month)

        try:
            budgets = list(self.store.list_budgets(user_id, period.year, period.month, MONTHLY))
            transactions = list(self.store.list_transactions(user_id, start, end))
        except OSError as exc:
            logger.error("Budget store unreachable for user %s: %s", user_id, exc)
            raise DataUnavailable(
                "Budget data is currently unavailable",
                details={'user_id': user_id},
                original_error=exc,
            ) from exc

        summary, spending = summarize_transactions(transactions)
        lines = [evaluate_budget(budget, spending) for budget in budgets]

        logger.info(
            "Computed budget report for user %s, %02d/%d: %d transactions, %d budgets",
            user_id, period.month, period.year, len(transactions), len(lines),
        )
        return BudgetReport(
            period=period,
            summary=summary,
            spending_by_category=spending,
            budgets=lines,
        )


def category_breakdown(transactions: Iterable[Any]) -> Dict[str, Any]:
    """
    Summarize expense spending per category, largest first.

    Amounts are summed as integer cents so totals stay exact.

    Returns:
        Dict with ``labels`` (categories), ``values`` and ``total``
    """
    rows = [
        {'category': tx.category, 'cents': to_minor_units(tx.amount)}
        for tx in transactions
        if tx.type == EXPENSE
    ]
    if not rows:
        return {'labels': [], 'values': [], 'total': 0}

    df = pd.DataFrame(rows)
    summary = df.groupby('category')['cents'].sum().sort_values(ascending=False, kind='stable')
    labels = summary.index.tolist()
    values = [int(cents) / 100 for cents in summary.tolist()]
    total = int(df['cents'].sum()) / 100
    return {'labels': labels, 'values': values, 'total': total}
