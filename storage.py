"""
Storage port used by the budget analytics service.

SQLAlchemyStore answers the two read queries a budget report needs. It is
built once in ``create_app`` and handed to BudgetAnalytics, so tests can
swap in an in-memory fake with the same two methods.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from exceptions import DataUnavailable, IntegrityViolation
from models import Budget, MONTHLY, Transaction

logger = logging.getLogger(__name__)

DB_UNAVAILABLE_MESSAGE = "Database connection failed. Please check server logs."


class SQLAlchemyStore:
    """Read access to transactions and budgets through a SQLAlchemy session."""

    def __init__(self, session):
        self.session = session

    def list_transactions(self, user_id: int, start: datetime, end: datetime) -> List[Transaction]:
        """Return the user's transactions dated within [start, end]."""
        stmt = select(Transaction).where(
            Transaction.user_id == user_id,
            Transaction.date >= start,
            Transaction.date <= end,
        )
        try:
            return list(self.session.scalars(stmt).all())
        except SQLAlchemyError as exc:
            logger.error("Transaction query failed for user %s: %s", user_id, exc)
            raise DataUnavailable(
                DB_UNAVAILABLE_MESSAGE,
                details={'query': 'list_transactions'},
                original_error=exc,
            ) from exc

    def list_budgets(self, user_id: int, year: int, month: int, period: str = MONTHLY) -> List[Budget]:
        """Return the user's budgets for one period, in id order."""
        stmt = (
            select(Budget)
            .where(
                Budget.user_id == user_id,
                Budget.year == year,
                Budget.month == month,
                Budget.period == period,
            )
            .order_by(Budget.id)
        )
        try:
            return list(self.session.scalars(stmt).all())
        except SQLAlchemyError as exc:
            logger.error("Budget query failed for user %s: %s", user_id, exc)
            raise DataUnavailable(
                DB_UNAVAILABLE_MESSAGE,
                details={'query': 'list_budgets'},
                original_error=exc,
            ) from exc


def commit_changes(session, conflict_message: Optional[str] = None) -> None:
    """
    Commit the session, translating database failures into API errors.

    Raises:
        IntegrityViolation: If a uniqueness constraint rejects the write
        DataUnavailable: If the commit fails for any other database reason
    """
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise IntegrityViolation(
            conflict_message or "Record conflicts with an existing one",
            original_error=exc,
        ) from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Commit failed: %s", exc)
        raise DataUnavailable(DB_UNAVAILABLE_MESSAGE, original_error=exc) from exc
