import re
from datetime import date, datetime
from typing import Optional

from core.utils.exceptions import ValidationError

DATE_FORMAT = "%Y-%m-%d"

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_BROKER_CODE_PATTERN = re.compile(r"^[A-Za-z0-9]+$")
_SYMBOL_PATTERN = re.compile(r"^[A-Z]{4}$")


def parse_date(value: Optional[str], field: str = "date") -> date:
    """Parse a YYYY-MM-DD string, rejecting impossible calendar dates such as 2024-02-30."""
    message = f"Invalid {field}. Expected format: YYYY-MM-DD (e.g., 2024-01-15)"
    if not value or not _DATE_PATTERN.match(value):
        raise ValidationError(message, field=field)
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        raise ValidationError(message, field=field)


def validate_date_range(from_date: Optional[str], to_date: Optional[str]) -> None:
    start = parse_date(from_date, "from date")
    end = parse_date(to_date, "to date")
    if start > end:
        raise ValidationError("'from' date must be before or equal to 'to' date", field="from")


def validate_not_empty(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field} cannot be empty", field=field)
    return value.strip()


def validate_broker_code(code: Optional[str]) -> str:
    code = (code or "").strip()
    if len(code) < 2 or not _BROKER_CODE_PATTERN.match(code):
        raise ValidationError(
            "Invalid broker code format. Must be alphanumeric and at least 2 characters",
            field="broker",
        )
    return code


def validate_symbol(symbol: Optional[str]) -> str:
    if not symbol or not _SYMBOL_PATTERN.match(symbol):
        raise ValidationError(
            "Invalid symbol format. Must be 4 uppercase letters (e.g., BBCA, DEWA)",
            field="symbol",
        )
    return symbol
