# billbook/modules/party/ledger.py
"""
Party ledger: moves parties.balance as transactions are created, edited and
deleted.

balance is the net amount the party owes the business:

    sale         +amount
    purchase     -amount
    payment-in   -amount   (party paid us)
    payment-out  +amount   (we paid the party)

The ledger never recomputes balances on read. Every call runs inside the
caller's unit of work (database.transaction), so a failure anywhere in a
create/update/delete leaves the balance untouched.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
import logging
import sqlite3

from ...constants import KIND_PURCHASE, KIND_SALE, PAYMENT_IN, PAYMENT_OUT
from ...database import transaction
from ...database.repositories.parties_repo import PartiesRepo, Party, PartyKey
from ...utils.helpers import money

_log = logging.getLogger(__name__)

_SIGNS = {
    KIND_SALE: 1,
    KIND_PURCHASE: -1,
    PAYMENT_IN: -1,
    PAYMENT_OUT: 1,
}


def ledger_effect(kind: str, amount) -> Decimal:
    """Signed balance delta for a transaction of `kind`."""
    try:
        sign = _SIGNS[kind]
    except KeyError:
        raise ValueError(f"Unknown transaction kind: {kind!r}") from None
    return money(amount) * sign


@dataclass(frozen=True)
class BalanceDrift:
    party_id: int
    name: str
    phone_number: str
    stored: Decimal
    expected: Decimal

    @property
    def difference(self) -> Decimal:
        return self.stored - self.expected


class PartyLedger:
    def __init__(self, conn: sqlite3.Connection, parties: PartiesRepo | None = None):
        self.conn = conn
        self.parties = parties or PartiesRepo(conn)

    # ---- mutations ------------------------------------------------------

    def apply_create(self, key: PartyKey, effect: Decimal) -> tuple[Party, Decimal]:
        """
        Resolve (or create) the party for `key` and add `effect`.
        Call exactly once per stored transaction.
        """
        with transaction(self.conn):
            party = self.parties.find_or_create(key)
            new_balance = self.parties.add_to_balance(int(party.party_id), effect)
        return party, new_balance

    def apply_update(
        self,
        old_party_id: int,
        new_key: PartyKey,
        old_effect: Decimal,
        new_effect: Decimal,
    ) -> tuple[Party, Decimal]:
        """
        Reverse-then-reapply. When the edit moves the transaction to another
        party, the old effect leaves the old party and the new effect lands
        on the new one (created if needed).

        Returns the party now carrying the transaction and its new balance.
        """
        with transaction(self.conn):
            new_party = self.parties.find_or_create(new_key)
            if new_party.party_id == old_party_id:
                new_balance = self.parties.add_to_balance(old_party_id, new_effect - old_effect)
            else:
                self.parties.add_to_balance(old_party_id, -old_effect)
                new_balance = self.parties.add_to_balance(int(new_party.party_id), new_effect)
                _log.info(
                    "Moved transaction effect from party %s to party %s",
                    old_party_id, new_party.party_id,
                )
        return new_party, new_balance

    def apply_delete(self, party_id: int, effect: Decimal) -> Decimal:
        with transaction(self.conn):
            return self.parties.add_to_balance(party_id, -effect)

    # ---- checks -----------------------------------------------------------

    def expected_balance(self, party_id: int) -> Decimal:
        """Sum of signed effects of every stored transaction for the party."""
        rows = self.conn.execute(
            "SELECT effect FROM v_party_effects WHERE party_id = ?", (party_id,)
        ).fetchall()
        return sum((money(r["effect"]) for r in rows), Decimal("0.00"))

    def audit(self) -> list[BalanceDrift]:
        """Parties whose stored balance differs from the sum of their transactions."""
        drift: list[BalanceDrift] = []
        for p in self.parties.list_parties():
            expected = self.expected_balance(int(p.party_id))
            if p.balance != expected:
                drift.append(
                    BalanceDrift(
                        party_id=int(p.party_id),
                        name=p.name,
                        phone_number=p.phone_number,
                        stored=p.balance,
                        expected=expected,
                    )
                )
        if drift:
            _log.warning("Ledger audit found %d part(y/ies) with drift", len(drift))
        return drift
