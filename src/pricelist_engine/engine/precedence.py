"""
Precedence strategies - order applicable entries so the best one comes first.

A strategy owns two decisions: which entries are eligible at all, and how
eligible entries rank against each other. The resolver only ever talks to
the strategy, so an alternate policy (per tenant, per channel) can be
plugged in without touching it.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Optional

from .applicability import is_applicable
from .dates import EPOCH, to_naive_utc
from .models import PriceListEntry


class PricePrecedenceStrategy(ABC):
    """Policy interface consumed by the resolver."""

    @abstractmethod
    def order_by_precedence(
        self,
        entries: Iterable[PriceListEntry],
        partner_id: Optional[str] = None,
        evaluation_date: Optional[datetime] = None
    ) -> list[PriceListEntry]:
        """
        Return entries best-first. May drop entries that must never win.

        evaluation_date lets a policy honor partner assignment windows;
        None means assignments count regardless of their window.
        """

    def is_entry_applicable(
        self,
        entry: PriceListEntry,
        evaluation_date: datetime,
        quantity: int
    ) -> bool:
        return is_applicable(entry, evaluation_date, quantity)


class DefaultPricePrecedenceStrategy(PricePrecedenceStrategy):
    """
    Default ordering policy.

    With a partner:
    1. Lists actively assigned to the partner (assignment window covering
       the evaluation date) rank before all other lists
    2. Then priority, using the assignment's override_priority when set
       (larger first unless higher_priority_wins is False)
    3. Then default lists before non-default lists
    4. Then newest created_at first
    5. Then entry id, so ties are broken the same way on every call

    Without a partner, partner-restricted lists are dropped and the rest
    are ordered by steps 2-5.
    """

    def __init__(self, higher_priority_wins: bool = True):
        self.higher_priority_wins = higher_priority_wins

    def order_by_precedence(
        self,
        entries: Iterable[PriceListEntry],
        partner_id: Optional[str] = None,
        evaluation_date: Optional[datetime] = None
    ) -> list[PriceListEntry]:
        if partner_id is None:
            candidates = [e for e in entries if not e.price_list.is_partner_restricted]
        else:
            candidates = list(entries)

        return sorted(candidates, key=lambda e: self.sort_key(e, partner_id, evaluation_date))

    def sort_key(
        self,
        entry: PriceListEntry,
        partner_id: Optional[str] = None,
        evaluation_date: Optional[datetime] = None
    ) -> tuple:
        """Composite ascending key; smaller sorts first."""
        price_list = entry.price_list
        assigned = price_list.is_assigned_to(partner_id, evaluation_date)
        priority = price_list.effective_priority(partner_id, evaluation_date)
        return (
            0 if assigned else 1,
            -priority if self.higher_priority_wins else priority,
            0 if price_list.is_default else 1,
            -(to_naive_utc(price_list.created_at) - EPOCH).total_seconds(),
            str(entry.id),
        )
