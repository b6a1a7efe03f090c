# billbook/modules/transactions/inputs.py
"""
Form payloads accepted by TransactionStore.

Values arrive as typed by the operator (strings, floats or Decimals); the
store validates and normalizes them before anything is written.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date as _date
from decimal import Decimal
from typing import Optional, Union

Number = Union[Decimal, int, float, str]
DateLike = Union[str, _date]


@dataclass
class LineInput:
    item_name: str
    quantity: Number          # kg
    rate: Number
    total: Optional[Number] = None   # must equal quantity x rate when given


@dataclass
class SaleInput:
    invoice_no: str
    party_name: str
    phone_number: str
    date: DateLike
    lines: list[LineInput] = field(default_factory=list)

    @property
    def number(self) -> str:
        return self.invoice_no


@dataclass
class PurchaseInput:
    bill_no: str
    party_name: str
    phone_number: str
    date: DateLike
    lines: list[LineInput] = field(default_factory=list)

    @property
    def number(self) -> str:
        return self.bill_no


@dataclass
class PaymentInput:
    type: str                 # 'payment-in' | 'payment-out'
    party_name: str
    phone_number: str
    amount: Number
    date: DateLike
