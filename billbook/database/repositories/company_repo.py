from __future__ import annotations

from dataclasses import asdict, dataclass
import sqlite3

from ...errors import ValidationError
from ...utils.validators import is_valid_email, is_valid_phone, non_empty


@dataclass
class CompanyProfile:
    business_name: str
    phone_number1: str | None = None
    phone_number2: str | None = None
    email: str | None = None
    business_address: str | None = None
    pincode: str | None = None
    business_description: str | None = None

    def as_dict(self) -> dict:
        return asdict(self)


_FIELDS = (
    "business_name",
    "phone_number1",
    "phone_number2",
    "email",
    "business_address",
    "pincode",
    "business_description",
)


class CompanyRepo:
    """Single-row company profile (company_id = 1), seeded on first connect."""

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    @staticmethod
    def validate(profile: CompanyProfile) -> list[str]:
        errors: list[str] = []
        if not non_empty(profile.business_name):
            errors.append("Business name is required")
        for label, phone in (("Phone number 1", profile.phone_number1),
                             ("Phone number 2", profile.phone_number2)):
            if non_empty(phone) and not is_valid_phone(phone):
                errors.append(f"{label} has an invalid format")
        if non_empty(profile.email) and not is_valid_email(profile.email):
            errors.append("Invalid email format")
        if non_empty(profile.pincode) and not str(profile.pincode).strip().isdigit():
            errors.append("Pincode must contain digits only")
        return errors

    def get(self) -> CompanyProfile:
        r = self.conn.execute(
            f"SELECT {', '.join(_FIELDS)} FROM company_info WHERE company_id = 1"
        ).fetchone()
        if r is None:
            return CompanyProfile(business_name="")
        return CompanyProfile(**{k: r[k] for k in _FIELDS})

    def save(self, profile: CompanyProfile) -> None:
        errors = self.validate(profile)
        if errors:
            raise ValidationError("; ".join(errors), errors)
        values = [
            (str(v).strip() or None) if v is not None else None
            for v in (getattr(profile, k) for k in _FIELDS)
        ]
        self.conn.execute(
            f"""
            INSERT INTO company_info (company_id, {', '.join(_FIELDS)})
            VALUES (1, {', '.join('?' for _ in _FIELDS)})
            ON CONFLICT(company_id) DO UPDATE SET
                {', '.join(f'{k}=excluded.{k}' for k in _FIELDS)},
                updated_at = CURRENT_TIMESTAMP
            """,
            values,
        )
