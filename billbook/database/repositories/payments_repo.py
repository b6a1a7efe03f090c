from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
import sqlite3

from ...constants import PAYMENT_IN, PAYMENT_NO_PREFIX, PAYMENT_OUT
from ...errors import ConflictError, NotFoundError
from ...utils.helpers import like_pattern, money


@dataclass
class Payment:
    payment_id: int | None
    payment_no: str
    type: str            # 'payment-in' | 'payment-out'
    party_id: int
    party_name: str
    phone_number: str
    amount: Decimal
    date: str
    pdf_uri: str | None = None

    @property
    def kind(self) -> str:
        return self.type

    @property
    def number(self) -> str:
        return self.payment_no


_COLUMNS = (
    "payment_id, payment_no, type, party_id, party_name, phone_number, amount, date, pdf_uri"
)


def payment_no_prefix(date_iso: str) -> str:
    return f"{PAYMENT_NO_PREFIX}{date_iso.replace('-', '')}-"


class PaymentsRepo:
    """
    Payments received (payment-in) and made (payment-out).

    Payment numbers are system-assigned: PMT + yyyymmdd + -NNNN, counted per day.
    insert/replace/remove run inside the caller's unit of work.
    """

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    @staticmethod
    def _to_payment(r: sqlite3.Row) -> Payment:
        return Payment(
            payment_id=int(r["payment_id"]),
            payment_no=r["payment_no"],
            type=r["type"],
            party_id=int(r["party_id"]),
            party_name=r["party_name"],
            phone_number=r["phone_number"],
            amount=money(r["amount"]),
            date=r["date"],
            pdf_uri=r["pdf_uri"],
        )

    # ---- numbering ----------------------------------------------------

    def next_payment_no(self, date_iso: str) -> str:
        prefix = payment_no_prefix(date_iso)
        # numeric max: '-10000' must beat '-9999'
        row = self.conn.execute(
            "SELECT MAX(CAST(substr(payment_no, ?) AS INTEGER)) AS m FROM payments "
            "WHERE payment_no LIKE ? AND substr(payment_no, ?) NOT GLOB '*[^0-9]*'",
            (len(prefix) + 1, prefix + "%", len(prefix) + 1),
        ).fetchone()
        last = int(row["m"]) if row and row["m"] is not None else 0
        return f"{prefix}{last + 1:04d}"

    # ---- reads --------------------------------------------------------

    def search(
        self,
        *,
        type: str | None = None,
        party_name: str | None = None,
        phone_number: str | None = None,
        date: str | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
        search: str | None = None,
        party_id: int | None = None,
    ) -> list[Payment]:
        where: list[str] = []
        params: list = []
        if type:
            where.append("type = ?")
            params.append(type)
        if party_id is not None:
            where.append("party_id = ?")
            params.append(int(party_id))
        if party_name:
            where.append("party_name = ? COLLATE NOCASE")
            params.append(party_name.strip())
        if phone_number:
            where.append("phone_number = ?")
            params.append(phone_number.strip())
        if date:
            where.append("DATE(date) = DATE(?)")
            params.append(date)
        if start_date:
            where.append("DATE(date) >= DATE(?)")
            params.append(start_date)
        if end_date:
            where.append("DATE(date) <= DATE(?)")
            params.append(end_date)
        if search:
            where.append("(payment_no LIKE ? ESCAPE '\\' OR party_name LIKE ? ESCAPE '\\' OR phone_number LIKE ? ESCAPE '\\')")
            params += [like_pattern(search.strip())] * 3

        sql = f"SELECT {_COLUMNS} FROM payments"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY DATE(date) DESC, payment_id DESC"
        return [self._to_payment(r) for r in self.conn.execute(sql, params).fetchall()]

    def get(self, payment_id: int) -> Payment | None:
        r = self.conn.execute(
            f"SELECT {_COLUMNS} FROM payments WHERE payment_id=?", (payment_id,)
        ).fetchone()
        return self._to_payment(r) if r else None

    def require(self, payment_id: int) -> Payment:
        p = self.get(payment_id)
        if p is None:
            raise NotFoundError(f"Payment {payment_id} not found.")
        return p

    def get_by_number(self, payment_no: str) -> Payment | None:
        r = self.conn.execute(
            f"SELECT {_COLUMNS} FROM payments WHERE payment_no=?", (payment_no,)
        ).fetchone()
        return self._to_payment(r) if r else None

    def summary(self) -> dict:
        """
        Totals and counts per payment type:
          {total_in, total_out, count_in, count_out, net}
        net > 0 means more money came in than went out.
        """
        rows = self.conn.execute(
            "SELECT type, COUNT(*) AS n, COALESCE(SUM(CAST(amount AS REAL)), 0) AS total "
            "FROM payments GROUP BY type"
        ).fetchall()
        by_type = {r["type"]: r for r in rows}

        def _total(t: str) -> Decimal:
            return money(by_type[t]["total"]) if t in by_type else Decimal("0.00")

        def _count(t: str) -> int:
            return int(by_type[t]["n"]) if t in by_type else 0

        total_in, total_out = _total(PAYMENT_IN), _total(PAYMENT_OUT)
        return {
            "total_in": total_in,
            "total_out": total_out,
            "count_in": _count(PAYMENT_IN),
            "count_out": _count(PAYMENT_OUT),
            "net": total_in - total_out,
        }

    # ---- writes (call inside database.transaction()) -------------------

    def insert(self, p: Payment) -> int:
        try:
            cur = self.conn.execute(
                """
                INSERT INTO payments (
                    payment_no, type, party_id, party_name, phone_number, amount, date, pdf_uri
                ) VALUES (?,?,?,?,?,?,?,?)
                """,
                (p.payment_no, p.type, p.party_id, p.party_name, p.phone_number,
                 p.amount, p.date, p.pdf_uri),
            )
        except sqlite3.IntegrityError as e:
            if "payment_no" in str(e):
                raise ConflictError(f"Payment number '{p.payment_no}' already exists.") from e
            raise
        p.payment_id = int(cur.lastrowid)
        return p.payment_id

    def replace(self, p: Payment) -> None:
        self.conn.execute(
            """
            UPDATE payments
               SET type=?, party_id=?, party_name=?, phone_number=?, amount=?, date=?,
                   pdf_uri=?, updated_at=CURRENT_TIMESTAMP
             WHERE payment_id=?
            """,
            (p.type, p.party_id, p.party_name, p.phone_number, p.amount, p.date,
             p.pdf_uri, p.payment_id),
        )

    def remove(self, payment_id: int) -> None:
        self.conn.execute("DELETE FROM payments WHERE payment_id=?", (payment_id,))

    def set_pdf_uri(self, payment_id: int, uri: str | None) -> None:
        self.conn.execute("UPDATE payments SET pdf_uri=? WHERE payment_id=?", (uri, payment_id))
