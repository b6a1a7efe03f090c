"""
Shared storage for documents that carry item lines (sales and purchases).

Sales and purchases have the same shape: a header with a user-assigned
reference number, a denormalized party snapshot, the packaging bags moved by
the document, and item lines. SalesRepo / PurchasesRepo only differ in table
and column names.

Write methods (insert/replace/remove) do not open their own transaction:
the transaction store calls them inside one unit of work together with the
party ledger and the stock tracker.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import ClassVar, Iterable
import sqlite3

from ...errors import ConflictError, NotFoundError
from ...utils.helpers import like_pattern, money, to_decimal


@dataclass
class DocumentLine:
    item_id: int
    item_name: str
    quantity: Decimal   # kg
    rate: Decimal
    total: Decimal
    bags: int
    line_id: int | None = None


@dataclass
class LineDocument:
    doc_id: int | None
    number: str
    party_id: int
    party_name: str
    phone_number: str
    date: str
    total_amount: Decimal
    universal_item_id: int | None = None
    universal_bags: int = 0
    lines: list[DocumentLine] = field(default_factory=list)
    pdf_uri: str | None = None

    kind: ClassVar[str] = ""

    @property
    def total_bags(self) -> int:
        return sum(ln.bags for ln in self.lines)


class LineDocumentRepo:
    TABLE: ClassVar[str]
    ITEMS_TABLE: ClassVar[str]
    ID_COL: ClassVar[str]
    NO_COL: ClassVar[str]
    NUMBER_LABEL: ClassVar[str]
    DOC_CLASS: ClassVar[type[LineDocument]]

    def __init__(self, conn: sqlite3.Connection):
        # ensure rows behave like dicts/tuples
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------
    def _header_sql(self) -> str:
        return (
            f"SELECT {self.ID_COL} AS doc_id, {self.NO_COL} AS number, party_id, party_name, "
            "phone_number, date, total_amount, universal_item_id, universal_bags, pdf_uri "
            f"FROM {self.TABLE}"
        )

    def _to_doc(self, r: sqlite3.Row, lines: list[DocumentLine]) -> LineDocument:
        return self.DOC_CLASS(
            doc_id=int(r["doc_id"]),
            number=r["number"],
            party_id=int(r["party_id"]),
            party_name=r["party_name"],
            phone_number=r["phone_number"],
            date=r["date"],
            total_amount=money(r["total_amount"]),
            universal_item_id=r["universal_item_id"],
            universal_bags=int(r["universal_bags"] or 0),
            lines=lines,
            pdf_uri=r["pdf_uri"],
        )

    def _lines_for(self, doc_ids: list[int]) -> dict[int, list[DocumentLine]]:
        out: dict[int, list[DocumentLine]] = {i: [] for i in doc_ids}
        if not doc_ids:
            return out
        marks = ",".join("?" for _ in doc_ids)
        rows = self.conn.execute(
            f"""
            SELECT line_id, {self.ID_COL} AS doc_id, item_id, item_name,
                   quantity, rate, total, bags
            FROM {self.ITEMS_TABLE}
            WHERE {self.ID_COL} IN ({marks})
            ORDER BY line_id
            """,
            doc_ids,
        ).fetchall()
        for r in rows:
            out[int(r["doc_id"])].append(
                DocumentLine(
                    line_id=int(r["line_id"]),
                    item_id=int(r["item_id"]),
                    item_name=r["item_name"],
                    quantity=to_decimal(r["quantity"]),
                    rate=to_decimal(r["rate"]),
                    total=money(r["total"]),
                    bags=int(r["bags"]),
                )
            )
        return out

    # ------------------------------------------------------------------
    # READ
    # ------------------------------------------------------------------
    def search(
        self,
        *,
        party_name: str | None = None,
        phone_number: str | None = None,
        date: str | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
        search: str | None = None,
        party_id: int | None = None,
    ) -> list[LineDocument]:
        """
        Newest first. Only applies WHERE fragments for provided filters.
        `search` matches the reference number or the party name.
        """
        where: list[str] = []
        params: list = []
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
            where.append(f"({self.NO_COL} LIKE ? ESCAPE '\\' OR party_name LIKE ? ESCAPE '\\' OR phone_number LIKE ? ESCAPE '\\')")
            params += [like_pattern(search.strip())] * 3

        sql = self._header_sql()
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += f" ORDER BY DATE(date) DESC, {self.ID_COL} DESC"

        rows = self.conn.execute(sql, params).fetchall()
        lines = self._lines_for([int(r["doc_id"]) for r in rows])
        return [self._to_doc(r, lines[int(r["doc_id"])]) for r in rows]

    def get(self, doc_id: int) -> LineDocument | None:
        r = self.conn.execute(
            self._header_sql() + f" WHERE {self.ID_COL} = ?", (doc_id,)
        ).fetchone()
        if r is None:
            return None
        return self._to_doc(r, self._lines_for([int(doc_id)])[int(doc_id)])

    def require(self, doc_id: int) -> LineDocument:
        doc = self.get(doc_id)
        if doc is None:
            raise NotFoundError(f"{self.DOC_CLASS.__name__} {doc_id} not found.")
        return doc

    def get_by_number(self, number: str) -> LineDocument | None:
        r = self.conn.execute(
            self._header_sql() + f" WHERE {self.NO_COL} = ?", (number,)
        ).fetchone()
        if r is None:
            return None
        doc_id = int(r["doc_id"])
        return self._to_doc(r, self._lines_for([doc_id])[doc_id])

    def number_exists(self, number: str, exclude_id: int | None = None) -> bool:
        sql = f"SELECT 1 FROM {self.TABLE} WHERE {self.NO_COL} = ?"
        params: list = [number]
        if exclude_id is not None:
            sql += f" AND {self.ID_COL} <> ?"
            params.append(int(exclude_id))
        return self.conn.execute(sql + " LIMIT 1", params).fetchone() is not None

    def max_numeric_number(self) -> int | None:
        """Highest all-digit reference number, ignoring free-form ones."""
        r = self.conn.execute(
            f"""
            SELECT MAX(CAST({self.NO_COL} AS INTEGER)) AS m
            FROM {self.TABLE}
            WHERE {self.NO_COL} <> '' AND {self.NO_COL} NOT GLOB '*[^0-9]*'
            """
        ).fetchone()
        return None if r is None or r["m"] is None else int(r["m"])

    def bags_by_item(self) -> dict[int, int]:
        """Sum of line bags per item over every stored document."""
        rows = self.conn.execute(
            f"SELECT item_id, SUM(bags) AS b FROM {self.ITEMS_TABLE} GROUP BY item_id"
        ).fetchall()
        return {int(r["item_id"]): int(r["b"] or 0) for r in rows}

    def universal_bags_by_item(self) -> dict[int, int]:
        rows = self.conn.execute(
            f"""
            SELECT universal_item_id AS item_id, SUM(universal_bags) AS b
            FROM {self.TABLE}
            WHERE universal_item_id IS NOT NULL
            GROUP BY universal_item_id
            """
        ).fetchall()
        return {int(r["item_id"]): int(r["b"] or 0) for r in rows}

    # ------------------------------------------------------------------
    # WRITE (call inside database.transaction())
    # ------------------------------------------------------------------
    def _insert_lines(self, doc_id: int, lines: Iterable[DocumentLine]) -> None:
        for ln in lines:
            cur = self.conn.execute(
                f"""
                INSERT INTO {self.ITEMS_TABLE} (
                    {self.ID_COL}, item_id, item_name, quantity, rate, total, bags
                ) VALUES (?,?,?,?,?,?,?)
                """,
                (doc_id, ln.item_id, ln.item_name, ln.quantity, ln.rate, ln.total, ln.bags),
            )
            ln.line_id = int(cur.lastrowid)

    def _conflict(self, number: str) -> ConflictError:
        return ConflictError(
            f"{self.NUMBER_LABEL} '{number}' already exists. Please use a different {self.NUMBER_LABEL.lower()}."
        )

    def insert(self, doc: LineDocument) -> int:
        try:
            cur = self.conn.execute(
                f"""
                INSERT INTO {self.TABLE} (
                    {self.NO_COL}, party_id, party_name, phone_number, date,
                    total_amount, universal_item_id, universal_bags, pdf_uri
                ) VALUES (?,?,?,?,?,?,?,?,?)
                """,
                (
                    doc.number,
                    doc.party_id,
                    doc.party_name,
                    doc.phone_number,
                    doc.date,
                    doc.total_amount,
                    doc.universal_item_id,
                    doc.universal_bags,
                    doc.pdf_uri,
                ),
            )
        except sqlite3.IntegrityError as e:
            if self.NO_COL in str(e):
                raise self._conflict(doc.number) from e
            raise
        doc.doc_id = int(cur.lastrowid)
        self._insert_lines(doc.doc_id, doc.lines)
        return doc.doc_id

    def replace(self, doc: LineDocument) -> None:
        """Rewrite header fields and rebuild the lines of an existing document."""
        try:
            self.conn.execute(
                f"""
                UPDATE {self.TABLE}
                   SET {self.NO_COL}=?, party_id=?, party_name=?, phone_number=?, date=?,
                       total_amount=?, universal_item_id=?, universal_bags=?, pdf_uri=?,
                       updated_at=CURRENT_TIMESTAMP
                 WHERE {self.ID_COL}=?
                """,
                (
                    doc.number,
                    doc.party_id,
                    doc.party_name,
                    doc.phone_number,
                    doc.date,
                    doc.total_amount,
                    doc.universal_item_id,
                    doc.universal_bags,
                    doc.pdf_uri,
                    doc.doc_id,
                ),
            )
        except sqlite3.IntegrityError as e:
            if self.NO_COL in str(e):
                raise self._conflict(doc.number) from e
            raise
        self.conn.execute(f"DELETE FROM {self.ITEMS_TABLE} WHERE {self.ID_COL}=?", (doc.doc_id,))
        self._insert_lines(int(doc.doc_id), doc.lines)

    def remove(self, doc_id: int) -> None:
        self.conn.execute(f"DELETE FROM {self.ITEMS_TABLE} WHERE {self.ID_COL}=?", (doc_id,))
        self.conn.execute(f"DELETE FROM {self.TABLE} WHERE {self.ID_COL}=?", (doc_id,))

    def set_pdf_uri(self, doc_id: int, uri: str | None) -> None:
        self.conn.execute(
            f"UPDATE {self.TABLE} SET pdf_uri=? WHERE {self.ID_COL}=?", (uri, doc_id)
        )
