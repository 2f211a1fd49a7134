"""
Request parsing helpers shared by the API blueprints.

Each helper turns a raw JSON or query-string value into a typed value and
raises InvalidArgument with a client-facing message when it cannot.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from flask import request

from exceptions import InvalidArgument

# largest value a Numeric(12, 2) column holds
MAX_AMOUNT = Decimal('9999999999.99')
CENT = Decimal('0.01')
MIN_YEAR, MAX_YEAR = 1, 9999


def get_json_body() -> Dict[str, Any]:
    """Return the request's JSON object, or an empty dict."""
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_money(value: Any, message: str) -> Decimal:
    """Parse a finite amount that fits a Numeric(12, 2) column exactly."""
    if isinstance(value, bool):
        raise InvalidArgument(message)
    try:
        amount = Decimal(str(value).strip())
        if not amount.is_finite() or abs(amount) > MAX_AMOUNT:
            raise InvalidArgument(message, details={'value': value})
        # more than two decimal places would be rounded away on save
        if amount != amount.quantize(CENT):
            raise InvalidArgument(message, details={'value': value})
    except (InvalidOperation, ValueError):
        raise InvalidArgument(message, details={'value': value})
    return amount


def parse_amount(value: Any, message: str = "Amount must be a positive number") -> Decimal:
    """Parse a strictly positive monetary amount with at most two decimals."""
    amount = _parse_money(value, message)
    if amount <= 0:
        raise InvalidArgument(message, details={'value': value})
    return amount


def parse_amount_bound(value: Any, name: str) -> Decimal:
    """Parse a non-negative amount used as a filter bound."""
    message = f"{name} must be a non-negative number"
    amount = _parse_money(value, message)
    if amount < 0:
        raise InvalidArgument(message, details={name: value})
    return amount


def parse_optional_amount(value: Any) -> Optional[Decimal]:
    """Parse an optional amount; blank or zero means no amount."""
    if is_blank(value):
        return None
    if _parse_money(value, "Amount must be a positive number") == 0:
        return None
    return parse_amount(value)


def parse_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise InvalidArgument(f"{name} must be an integer")
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidArgument(f"{name} must be an integer", details={name: value})


def parse_month(value: Any) -> int:
    month = parse_int(value, 'month')
    if not 1 <= month <= 12:
        raise InvalidArgument("Month must be between 1 and 12", details={'month': month})
    return month


def parse_year(value: Any) -> int:
    year = parse_int(value, 'year')
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidArgument(f"Year must be between {MIN_YEAR} and {MAX_YEAR}", details={'year': year})
    return year


def parse_datetime(value: Any, name: str = 'date') -> datetime:
    """
    Parse an ISO-8601 date or datetime string.

    Timezone-aware values are converted to naive local time, which is how
    dates are stored.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip())
        except ValueError:
            raise InvalidArgument(f"Invalid {name}", details={name: value})
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('true', '1', 'yes')
