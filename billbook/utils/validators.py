# billbook/utils/validators.py
import re
from decimal import Decimal, InvalidOperation

_PHONE_RE = re.compile(r"^\+?[1-9]\d{1,14}$")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def non_empty(text) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text is not None and str(text).strip())


# ---- Numeric parsing & validators ----

def try_parse_decimal(x):
    """
    Best-effort parse to Decimal.

    Returns:
        (ok: bool, value: Decimal|None)
    """
    if x is None or isinstance(x, bool):
        return False, None
    try:
        val = Decimal(str(x).strip()) if not isinstance(x, Decimal) else x
    except (InvalidOperation, ValueError):
        return False, None
    if not val.is_finite():
        return False, None
    return True, val


def parse_decimal(x) -> Decimal:
    """
    Strict parse to Decimal; raises ValueError with a clear message on failure.
    """
    ok, val = try_parse_decimal(x)
    if not ok:
        raise ValueError(f"Could not parse '{x}' as a number.")
    return val  # type: ignore[return-value]


def is_non_negative_number(x) -> bool:
    ok, val = try_parse_decimal(x)
    return bool(ok and val is not None and val >= 0)


def is_strictly_positive_number(x) -> bool:
    ok, val = try_parse_decimal(x)
    return bool(ok and val is not None and val > 0)


# ---- Contact details ----

def sanitize_phone(phone) -> str:
    """Keep digits and a leading '+'; drop spaces, dashes, brackets."""
    s = str(phone or "").strip()
    digits = re.sub(r"\D", "", s)
    return f"+{digits}" if s.startswith("+") and digits else digits


def is_valid_phone(phone) -> bool:
    """E.164-ish check used by the party form (spaces are ignored)."""
    return bool(_PHONE_RE.match(str(phone or "").replace(" ", "")))


def is_valid_email(email) -> bool:
    return bool(_EMAIL_RE.match(str(email or "").strip()))
