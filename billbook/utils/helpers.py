# billbook/utils/helpers.py
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
import logging
from typing import Union, Optional

from ..constants import MONEY_PLACES

NumberLike = Union[Decimal, float, int, str]

_log = logging.getLogger(__name__)

_MONEY_QUANTUM = Decimal(1).scaleb(-MONEY_PLACES)


def today_str() -> str:
    """Return today's date as ISO string (YYYY-MM-DD)."""
    return date.today().isoformat()


def to_decimal(v: NumberLike | None) -> Decimal:
    """
    Convert a value read from SQLite (int/float/str/None) to Decimal.

    Floats go through str() so 900.1 stays 900.1 rather than its binary
    expansion. None becomes 0.
    """
    if v is None:
        return Decimal("0")
    if isinstance(v, Decimal):
        return v
    if isinstance(v, float):
        return Decimal(str(v))
    return Decimal(v)


def money(v: NumberLike | None) -> Decimal:
    """Round to the money quantum (2 places, half-up)."""
    return to_decimal(v).quantize(_MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def like_pattern(term: str) -> str:
    """Substring LIKE pattern with % _ and \\ escaped; pair it with ESCAPE '\\'."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def parse_date(value: Union[str, date, datetime, None]) -> str:
    """
    Normalize a document date to ISO 'YYYY-MM-DD'.

    Accepts date/datetime objects, ISO strings and the US form
    'MM/DD/YYYY'. Raises ValueError otherwise.
    """
    if value is None:
        raise ValueError("Date is required")
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    s = str(value).strip()
    if not s:
        raise ValueError("Date is required")
    for fmt in ("%Y-%m-%d", "%m/%d/%Y"):
        try:
            return datetime.strptime(s, fmt).date().isoformat()
        except ValueError:
            continue
    raise ValueError(f"Could not parse {value!r} as a date (use YYYY-MM-DD).")


def fmt_money(
    v: NumberLike,
    places: int = MONEY_PLACES,
    *,
    strict: bool = False,
    sentinel: Optional[str] = None,
) -> str:
    """
    Format a number as money with thousands separators and a fixed number of decimals.

    Behavior on parse failure:
      - By default returns str(v).
      - If `sentinel` is provided (e.g., "N/A"), returns that sentinel instead.
      - If `strict=True`, raises ValueError.
    """
    try:
        x = to_decimal(v)
    except (InvalidOperation, ValueError, TypeError) as e:
        _log.debug("fmt_money: failed to parse %r as a number: %s", v, e)
        if strict:
            raise ValueError(f"Could not parse {v!r} as a number.") from e
        return str(sentinel) if sentinel is not None else str(v)
    return f"{x:,.{places}f}"


def fmt_quantity(v: NumberLike) -> str:
    """Quantities print without trailing zeros: 90 -> '90', 12.50 -> '12.5'."""
    d = to_decimal(v)
    if d == d.to_integral_value():
        return f"{d.to_integral_value():,}"
    return f"{d.normalize():,f}"
