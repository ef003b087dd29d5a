"""Built-in type formatters.

Formatters are plain functions ``fn(value, definition) -> value`` keyed by
mode (``cast``: storage to runtime, ``array``: runtime to plain data) and
by field type. Date and datetime parsing is delegated to Pydantic, which
accepts ISO strings, ``YYYY-MM-DD HH:MM:SS`` strings and Unix timestamps.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import TypeAdapter, ValidationError

from row_model.core.enums import FormatMode, NullPolicy

Formatter = Callable[[Any, Any], Any]

DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

_date_adapter: TypeAdapter[date] = TypeAdapter(date)
_datetime_adapter: TypeAdapter[datetime] = TypeAdapter(datetime)


def _to_int(value: Any, definition: Any = None) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return value


def _to_float(value: Any, definition: Any = None) -> Any:
    try:
        return float(value)
    except (TypeError, ValueError):
        return value


def _to_decimal(value: Any, definition: Any = None) -> Any:
    precision = 2
    if definition is not None and definition.precision is not None:
        precision = definition.precision
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
        return number.quantize(Decimal(1).scaleb(-precision))
    except (InvalidOperation, ValueError):
        return value


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _to_datetime(value: Any, definition: Any = None) -> Any:
    """Cast to a naive datetime, converting aware values to UTC first."""
    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _naive_utc(datetime.fromtimestamp(value, tz=timezone.utc))
    try:
        return _naive_utc(_datetime_adapter.validate_python(value))
    except ValidationError:
        return value


def _to_date(value: Any, definition: Any = None) -> Any:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return _date_adapter.validate_python(value)
        except ValidationError:
            pass
    result = _to_datetime(value)
    return result.date() if isinstance(result, datetime) else value


def _to_bool(value: Any, definition: Any = None) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in ("", "0", "false", "off", "no")
    return bool(value)


def _to_str(value: Any, definition: Any = None) -> str:
    return value if isinstance(value, str) else str(value)


def _format_date(value: Any, definition: Any = None) -> Any:
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    return value


def _format_datetime(value: Any, definition: Any = None) -> Any:
    if isinstance(value, datetime):
        return value.strftime(DATETIME_FORMAT)
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT) + " 00:00:00"
    return value


def _format_decimal(value: Any, definition: Any = None) -> Any:
    return str(_to_decimal(value, definition))


def _unchanged(value: Any, definition: Any = None) -> Any:
    return value


def _null(value: Any, definition: Any = None) -> None:
    return None


def default_formatters() -> dict[str, dict[str, Formatter]]:
    """Return a fresh copy of the built-in formatter table."""
    return {
        FormatMode.CAST.value: {
            "id": _to_int,
            "serial": _to_int,
            "integer": _to_int,
            "float": _to_float,
            "decimal": _to_decimal,
            "date": _to_date,
            "datetime": _to_datetime,
            "boolean": _to_bool,
            "null": _null,
            "string": _to_str,
        },
        FormatMode.ARRAY.value: {
            "id": _to_int,
            "serial": _to_int,
            "integer": _to_int,
            "float": _to_float,
            "decimal": _format_decimal,
            "date": _format_date,
            "datetime": _format_datetime,
            "boolean": _unchanged,
            "null": _null,
            "string": _to_str,
        },
    }


# Zero value a COERCE policy substitutes for None before formatting.
ZERO_VALUES: dict[str, Any] = {
    "id": 0,
    "serial": 0,
    "integer": 0,
    "float": 0.0,
    "decimal": Decimal(0),
    "string": "",
    "boolean": False,
}

DEFAULT_NULL_POLICIES: dict[str, NullPolicy] = {
    "id": NullPolicy.KEEP,
    "serial": NullPolicy.KEEP,
    "integer": NullPolicy.COERCE,
    "float": NullPolicy.COERCE,
    "decimal": NullPolicy.COERCE,
    "string": NullPolicy.COERCE,
    "boolean": NullPolicy.COERCE,
    "date": NullPolicy.KEEP,
    "datetime": NullPolicy.KEEP,
}
