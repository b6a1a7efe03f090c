from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
import logging
import re
import sqlite3

from .. import transaction
from ...errors import ConflictError, NotFoundError, ProtectedRecordError, ValidationError
from ...utils.helpers import like_pattern, money
from ...utils.validators import is_valid_email, is_valid_phone, non_empty, sanitize_phone

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PartyKey:
    """
    Natural key of a party: (name, phone).

    Use PartyKey.of() to build one from form input; it trims the name,
    collapses inner whitespace and strips phone punctuation so that
    "Acme  Traders" / "98765-43210" and "Acme Traders" / "9876543210"
    resolve to the same party.
    """
    name: str
    phone: str

    @classmethod
    def of(cls, name: str | None, phone: str | None) -> "PartyKey":
        errors = []
        if not non_empty(name):
            errors.append("Party name is required")
        if not non_empty(phone):
            errors.append("Phone number is required")
        phone_n = sanitize_phone(phone) if non_empty(phone) else ""
        if non_empty(phone) and not phone_n:
            errors.append("Phone number must contain digits")
        if errors:
            raise ValidationError("; ".join(errors), errors)
        return cls(name=re.sub(r"\s+", " ", str(name).strip()), phone=phone_n)


@dataclass
class Party:
    party_id: int | None
    name: str
    phone_number: str
    balance: Decimal
    address: str | None = None
    email: str | None = None

    @property
    def key(self) -> PartyKey:
        return PartyKey(self.name, self.phone_number)

    @property
    def balance_status(self) -> str:
        if self.balance > 0:
            return "positive"
        if self.balance < 0:
            return "negative"
        return "neutral"


_COLUMNS = "party_id, name, phone_number, balance, address, email"


class PartiesRepo:
    """
    Parties (customers and suppliers share one table).

    The balance column is only moved through add_to_balance(), which the
    party ledger calls inside a unit of work. Forms can edit contact details
    but never the balance.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---- Internal helpers -------------------------------------------------

    @staticmethod
    def _to_party(r: sqlite3.Row) -> Party:
        return Party(
            party_id=int(r["party_id"]),
            name=r["name"],
            phone_number=r["phone_number"],
            balance=money(r["balance"]),
            address=r["address"],
            email=r["email"],
        )

    @staticmethod
    def _normalize_text(s: str | None) -> str | None:
        if s is None:
            return None
        s = s.strip()
        return s or None

    @staticmethod
    def validate_party_data(name: str | None, phone: str | None, email: str | None = None) -> list[str]:
        """
        Checks used by the explicit party form (stricter than the implicit
        create-on-first-use path, which only needs a non-empty name/phone).
        """
        errors: list[str] = []
        if not non_empty(name):
            errors.append("Party name is required")
        if not non_empty(phone):
            errors.append("Phone number is required")
        elif not is_valid_phone(phone):
            errors.append("Invalid phone number format")
        if non_empty(email) and not is_valid_email(email):
            errors.append("Invalid email format")
        return errors

    # ---- Queries ----------------------------------------------------------

    def list_parties(self) -> list[Party]:
        rows = self.conn.execute(
            f"SELECT {_COLUMNS} FROM parties ORDER BY name COLLATE NOCASE, party_id"
        ).fetchall()
        return [self._to_party(r) for r in rows]

    def search(self, term: str) -> list[Party]:
        """
        Directory lookup for autocomplete: case-insensitive substring match on
        name or phone. An empty term returns every party.
        """
        term = (term or "").strip()
        if not term:
            return self.list_parties()
        pattern = like_pattern(term)
        rows = self.conn.execute(
            f"SELECT {_COLUMNS} FROM parties "
            "WHERE name LIKE ? ESCAPE '\\' OR phone_number LIKE ? ESCAPE '\\' "
            "ORDER BY name COLLATE NOCASE, party_id",
            (pattern, pattern),
        ).fetchall()
        return [self._to_party(r) for r in rows]

    def get(self, party_id: int) -> Party | None:
        r = self.conn.execute(
            f"SELECT {_COLUMNS} FROM parties WHERE party_id=?", (party_id,)
        ).fetchone()
        return self._to_party(r) if r else None

    def require(self, party_id: int) -> Party:
        p = self.get(party_id)
        if p is None:
            raise NotFoundError(f"Party {party_id} not found.")
        return p

    def get_by_key(self, key: PartyKey) -> Party | None:
        r = self.conn.execute(
            f"SELECT {_COLUMNS} FROM parties "
            "WHERE name = ? COLLATE NOCASE AND phone_number = ?",
            (key.name, key.phone),
        ).fetchone()
        return self._to_party(r) if r else None

    def find_by_name(self, name: str) -> list[Party]:
        rows = self.conn.execute(
            f"SELECT {_COLUMNS} FROM parties WHERE name = ? COLLATE NOCASE ORDER BY party_id",
            (name.strip(),),
        ).fetchall()
        return [self._to_party(r) for r in rows]

    def is_referenced(self, party_id: int) -> bool:
        for table in ("sales", "purchases", "payments"):
            if self.conn.execute(
                f"SELECT 1 FROM {table} WHERE party_id=? LIMIT 1", (party_id,)
            ).fetchone():
                return True
        return False

    def transactions(self, party_id: int) -> list[dict]:
        """
        Every stored document for a party, newest first:
        {kind, doc_id, ref_no, date, amount, effect}
        """
        rows = self.conn.execute(
            """
            SELECT kind, doc_id, ref_no, date, amount, effect
            FROM v_party_effects
            WHERE party_id = ?
            ORDER BY DATE(date) DESC, kind, doc_id DESC
            """,
            (party_id,),
        ).fetchall()
        out = []
        for r in rows:
            d = dict(r)
            d["amount"] = money(d["amount"])
            d["effect"] = money(d["effect"])
            out.append(d)
        return out

    def stats(self) -> dict:
        parties = self.list_parties()
        receivable = sum((p.balance for p in parties if p.balance > 0), Decimal("0.00"))
        payable = sum((-p.balance for p in parties if p.balance < 0), Decimal("0.00"))
        return {
            "total_parties": len(parties),
            "total_balance": receivable - payable,
            "receivable": receivable,
            "payable": payable,
        }

    # ---- Mutations --------------------------------------------------------

    def find_or_create(self, key: PartyKey, address: str | None = None, email: str | None = None) -> Party:
        """
        Resolve a party for a transaction.

        Precedence: exact (name, phone) match, otherwise a new party with a
        zero balance. A party that only shares the name is NOT reused.
        """
        existing = self.get_by_key(key)
        if existing is not None:
            return existing

        namesakes = self.find_by_name(key.name)
        if namesakes:
            _log.warning(
                "Party %r exists with phone(s) %s; creating a separate party for phone %s",
                key.name, ", ".join(p.phone_number for p in namesakes), key.phone,
            )

        cur = self.conn.execute(
            "INSERT INTO parties(name, phone_number, address, email, balance) VALUES (?,?,?,?,0)",
            (key.name, key.phone, self._normalize_text(address), self._normalize_text(email)),
        )
        _log.info("Created party %r (%s)", key.name, key.phone)
        return self.require(int(cur.lastrowid))

    def create(self, name: str, phone_number: str, address: str | None = None, email: str | None = None) -> int:
        """
        Explicit create from the party form. Balance always starts at zero.
        """
        errors = self.validate_party_data(name, phone_number, email)
        if errors:
            raise ValidationError("; ".join(errors), errors)
        key = PartyKey.of(name, phone_number)
        if self.get_by_key(key) is not None:
            raise ConflictError(f"Party '{key.name}' with phone {key.phone} already exists.")
        with transaction(self.conn):
            party = self.find_or_create(key, address=address, email=email)
        return int(party.party_id)

    def update(
        self,
        party_id: int,
        name: str,
        phone_number: str,
        address: str | None = None,
        email: str | None = None,
    ) -> None:
        """
        Update contact details. Stored documents keep their own name/phone
        snapshot; the ledger follows party_id, so balances are unaffected.
        """
        errors = self.validate_party_data(name, phone_number, email)
        if errors:
            raise ValidationError("; ".join(errors), errors)
        self.require(party_id)
        key = PartyKey.of(name, phone_number)
        clash = self.get_by_key(key)
        if clash is not None and clash.party_id != party_id:
            raise ConflictError(f"Party '{key.name}' with phone {key.phone} already exists.")
        with transaction(self.conn):
            self.conn.execute(
                "UPDATE parties SET name=?, phone_number=?, address=?, email=?, "
                "updated_at=CURRENT_TIMESTAMP WHERE party_id=?",
                (key.name, key.phone, self._normalize_text(address), self._normalize_text(email), party_id),
            )

    def delete(self, party_id: int) -> None:
        """
        Hard delete, refused while any sale/purchase/payment references the party.
        """
        self.require(party_id)
        if self.is_referenced(party_id):
            raise ProtectedRecordError(
                "Cannot delete party: it is referenced by transactions. "
                "Delete those transactions first."
            )
        with transaction(self.conn):
            self.conn.execute("DELETE FROM parties WHERE party_id=?", (party_id,))

    def add_to_balance(self, party_id: int, delta: Decimal) -> Decimal:
        """
        balance += delta; returns the new balance. Ledger use only.
        """
        with transaction(self.conn):
            r = self.conn.execute(
                "SELECT balance FROM parties WHERE party_id=?", (party_id,)
            ).fetchone()
            if r is None:
                raise NotFoundError(f"Party {party_id} not found.")
            new_balance = money(money(r["balance"]) + delta)
            self.conn.execute(
                "UPDATE parties SET balance=?, updated_at=CURRENT_TIMESTAMP WHERE party_id=?",
                (new_balance, party_id),
            )
        return new_balance
