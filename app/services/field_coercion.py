# File: app/services/field_coercion.py
"""
Field coercion for spreadsheet cells.

Spreadsheet rows arrive loosely typed: the same column can hold a string,
a number, a pandas Timestamp or a blank, depending on how the file was
produced. The functions in this module turn such raw cell values into
typed domain values. They are total: none of them raises.

Date parsing has two named failure policies:

- ``DateParsePolicy.NULL_ON_FAILURE`` (import): an unparseable date becomes
  ``None`` so that garbage is never written to storage.
- ``DateParsePolicy.PRESERVE_ON_FAILURE`` (export): an unparseable value is
  returned unchanged so the analyst never loses the original data.
"""

import math
import numbers
import re
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Optional, Union

import pandas as pd

# Excel serial day 1 is 1900-01-01; the 1900 leap-year bug moves the epoch back one day
EXCEL_EPOCH = datetime(1899, 12, 30)
EXCEL_MAX_SERIAL = 2958465  # 9999-12-31

TRUE_STRINGS = frozenset({"true", "1", "sì", "si"})

UUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)
TIME_PATTERN = re.compile(r"^(\d{1,2})[:.](\d{2})(?:[:.](\d{2}))?$")
DECIMAL_COMMA_PATTERN = re.compile(r"^[+-]?\d+,\d+$")

DATE_FORMATS = (
    "%d/%m/%Y",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y %H:%M:%S",
    "%d-%m-%Y",
    "%d-%m-%Y %H:%M",
    "%d.%m.%Y",
    "%d/%m/%y",
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M",
)


class DateParsePolicy(str, Enum):
    NULL_ON_FAILURE = "null_on_failure"
    PRESERVE_ON_FAILURE = "preserve_on_failure"


def is_blank(value: Any) -> bool:
    """True for None, NaN/NaT and empty or whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if pd.api.types.is_scalar(value):
        try:
            return bool(pd.isna(value))
        except (TypeError, ValueError):
            return False
    return False


def to_string(value: Any) -> Optional[str]:
    """
    Trimmed string form of a cell; blanks yield None.

    Integral floats render without a decimal part, since spreadsheet
    programs store numeric-looking codes (CAP, codes, phone numbers) as floats.
    """
    if is_blank(value):
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    text = str(value).strip()
    return text or None


def _as_float(value: Any) -> Optional[float]:
    # ints beyond the float range raise OverflowError
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        return None


def to_number(value: Any) -> Optional[Union[int, float]]:
    """
    Numeric value of a cell; non-numeric, blank and non-finite input yield None.

    Integral values are returned as ``int`` so that 10, 10.0 and "10" coerce
    to the same value. A single decimal comma ("10,5") is accepted.
    """
    if isinstance(value, bool) or is_blank(value):
        return None
    if isinstance(value, numbers.Number):
        number = _as_float(value)
        if number is None:
            return None
    else:
        text = str(value).strip().replace(" ", "")
        if DECIMAL_COMMA_PATTERN.match(text):
            text = text.replace(",", ".")
        try:
            number = float(text)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    if number.is_integer():
        return int(number)
    return number


def to_boolean(value: Any) -> bool:
    """
    Import-direction boolean.

    Only ``True``, the number 1 and the strings "true", "1", "sì", "si"
    (case-insensitive) are true. Everything else, blanks included, is false.
    """
    if isinstance(value, bool):
        return value
    if is_blank(value):
        return False
    if isinstance(value, numbers.Number):
        return value == 1
    return str(value).strip().lower() in TRUE_STRINGS


def is_valid_uuid(value: Any) -> bool:
    return isinstance(value, str) and bool(UUID_PATTERN.match(value.strip()))


def to_uuid(value: Any) -> Optional[str]:
    """
    Blank identifiers become None; anything else is passed through trimmed.

    Shape is deliberately not checked here: foreign key validity is decided
    by the foreign key validator against storage.
    """
    return to_string(value)


def _from_excel_serial(serial: float) -> Optional[datetime]:
    if serial <= 0 or serial > EXCEL_MAX_SERIAL:
        return None
    return EXCEL_EPOCH + timedelta(days=serial)


def _parse_datetime(value: Any) -> Optional[datetime]:
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time())
    elif isinstance(value, numbers.Number):
        serial = _as_float(value)
        parsed = _from_excel_serial(serial) if serial is not None else None
    else:
        parsed = _parse_datetime_text(str(value).strip())
    if parsed is not None and parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _parse_datetime_text(text: str) -> Optional[datetime]:
    iso_text = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        return datetime.fromisoformat(iso_text)
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    number = to_number(text)
    if number is not None:
        return _from_excel_serial(float(number))
    return None


def to_date_only(
    value: Any, policy: DateParsePolicy = DateParsePolicy.NULL_ON_FAILURE
) -> Any:
    """
    Parse a date cell to "YYYY-MM-DD".

    Accepts date/datetime objects, ISO strings, Italian day-first strings
    and Excel serial day numbers.
    """
    parsed = _parse_datetime(value)
    if parsed is not None:
        return parsed.date().isoformat()
    if policy == DateParsePolicy.PRESERVE_ON_FAILURE:
        return value
    return None


def to_date_time(
    value: Any, policy: DateParsePolicy = DateParsePolicy.NULL_ON_FAILURE
) -> Any:
    """Parse a timestamp cell to "YYYY-MM-DDTHH:MM:SS" (naive UTC)."""
    parsed = _parse_datetime(value)
    if parsed is not None:
        return parsed.replace(microsecond=0).isoformat()
    if policy == DateParsePolicy.PRESERVE_ON_FAILURE:
        return value
    return None


def to_time(value: Any) -> Optional[str]:
    """Parse a time-of-day cell to "HH:MM"; Excel day fractions are accepted."""
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        value = value.time()
    if isinstance(value, time):
        return f"{value.hour:02d}:{value.minute:02d}"
    if isinstance(value, numbers.Number):
        fraction = _as_float(value)
        if fraction is None or not 0 <= fraction < 1:
            return None
        minutes = int(round(fraction * 24 * 60))
        hours, minutes = divmod(minutes, 60)
        if hours >= 24:
            return None
        return f"{hours:02d}:{minutes:02d}"
    match = TIME_PATTERN.match(str(value).strip())
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return f"{hours:02d}:{minutes:02d}"


def get_field_value(
    row: Mapping[str, Any], aliases: Iterable[str], converter: Callable[[Any], Any]
) -> Any:
    """
    Look a field up under each alias in order and convert the first non-blank value.

    Returns None when no alias holds a value.
    """
    for key in aliases:
        if key in row and not is_blank(row[key]):
            return converter(row[key])
    return None


def has_field_value(row: Mapping[str, Any], aliases: Iterable[str]) -> bool:
    return any(key in row and not is_blank(row[key]) for key in aliases)


# --- Export direction ---

def format_boolean_for_export(value: Any, true_label: str = "Sì", false_label: str = "No") -> Any:
    if isinstance(value, bool):
        return true_label if value else false_label
    return value


def _format_for_export(value: Any, fmt: str, policy: DateParsePolicy) -> Any:
    if is_blank(value):
        return None
    parsed = _parse_datetime(value)
    if parsed is None:
        return value if policy == DateParsePolicy.PRESERVE_ON_FAILURE else None
    return parsed.strftime(fmt)


def format_date_for_export(
    value: Any,
    fmt: str = "%d/%m/%Y",
    policy: DateParsePolicy = DateParsePolicy.PRESERVE_ON_FAILURE,
) -> Any:
    """Render a stored date for display, keeping the original value if it does not parse."""
    return _format_for_export(value, fmt, policy)


def format_date_time_for_export(
    value: Any,
    fmt: str = "%d/%m/%Y %H:%M",
    policy: DateParsePolicy = DateParsePolicy.PRESERVE_ON_FAILURE,
) -> Any:
    """Render a stored timestamp for display, keeping the original value if it does not parse."""
    return _format_for_export(value, fmt, policy)
