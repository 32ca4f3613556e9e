"""
Price Resolver - turns (product, quantity, date, partner) into one price.

Resolution order:
1. Validate quantity and normalize the evaluation date
2. Fetch every entry for the product from the collector
3. Keep the entries the strategy considers applicable
4. Try a forced price list first, then order with the strategy, best first
5. Take the head, or return NotFound when nothing is left

The resolver holds no mutable state. Caching, logging and persistence of
the chosen price are layered on by callers.
"""
import threading
from numbers import Integral
from datetime import datetime
from typing import Optional, Union

from .applicability import explain_applicability
from .collector import CandidateCollector
from .dates import DateLike, parse_date
from .errors import InvalidArgumentError, ResolutionCancelled
from .models import (
    AvailablePriceList,
    NotFound,
    PriceListEntry,
    ResolutionReport,
    ResolvedPrice,
)
from .precedence import DefaultPricePrecedenceStrategy, PricePrecedenceStrategy

Outcome = Union[ResolvedPrice, NotFound]

STRATEGY_REJECTED = "strategy_rejected"
PARTNER_RESTRICTED = "partner_restricted"
DROPPED_BY_STRATEGY = "dropped_by_strategy"


def validate_quantity(quantity) -> int:
    """Quantity must be a whole number of at least 1."""
    if isinstance(quantity, bool) or not isinstance(quantity, Integral):
        raise InvalidArgumentError(f"Quantity must be an integer, got {quantity!r}")
    if quantity < 1:
        raise InvalidArgumentError(f"Quantity must be at least 1, got {quantity}")
    return int(quantity)


class PriceResolver:
    """
    Facade over a candidate collector and a precedence strategy.

    The strategy is injected; pass any PricePrecedenceStrategy to change
    the policy without touching the resolver.
    """

    def __init__(
        self,
        collector: CandidateCollector,
        strategy: Optional[PricePrecedenceStrategy] = None
    ):
        self.collector = collector
        self.strategy = strategy or DefaultPricePrecedenceStrategy()

    def resolve(
        self,
        product_id: str,
        quantity: int,
        evaluation_date: Optional[DateLike] = None,
        partner_id: Optional[str] = None,
        forced_price_list_id: Optional[str] = None,
        cancel: Optional[threading.Event] = None
    ) -> Outcome:
        """
        Resolve the effective price for a product.

        Returns ResolvedPrice or NotFound. Raises InvalidArgumentError for a
        bad quantity or date and ResolutionCancelled when the cancel event is
        set. Collector errors propagate unchanged.
        """
        return self.resolve_with_trace(
            product_id,
            quantity,
            evaluation_date=evaluation_date,
            partner_id=partner_id,
            forced_price_list_id=forced_price_list_id,
            cancel=cancel,
        ).outcome

    def resolve_with_trace(
        self,
        product_id: str,
        quantity: int,
        evaluation_date: Optional[DateLike] = None,
        partner_id: Optional[str] = None,
        forced_price_list_id: Optional[str] = None,
        cancel: Optional[threading.Event] = None
    ) -> ResolutionReport:
        """Resolve and also report how the winner was picked."""
        quantity = validate_quantity(quantity)
        when = parse_date(evaluation_date)

        entries = self._fetch(product_id, cancel)

        report = ResolutionReport(outcome=NotFound(product_id=str(product_id)))
        report.add_trace(
            "Request",
            f"Product {product_id}, quantity {quantity}",
            when.isoformat()
        )
        if partner_id is not None:
            report.add_trace("Partner Mode", "Resolving for business partner", str(partner_id))
        else:
            report.add_trace("Partner Mode", "Anonymous; partner-restricted lists are hidden")

        report.add_trace("Candidates", "Entries fetched for product", str(len(entries)))

        applicable = []
        for entry in entries:
            if self.strategy.is_entry_applicable(entry, when, quantity):
                applicable.append(entry)
            else:
                reason = explain_applicability(entry, when, quantity) or STRATEGY_REJECTED
                report.add_trace("Rejected", f"Entry {entry.id} ({entry.price_list.name})", reason)

        # A forced list is tried first; when it has no usable entry, normal precedence applies
        considered, ordered = applicable, []
        if forced_price_list_id is not None:
            forced = [e for e in applicable if e.price_list_id == forced_price_list_id]
            ordered = self._order_forced(forced, partner_id, when)
            if ordered:
                considered = forced
                report.add_trace("Forced List", "Using forced price list", str(forced_price_list_id))
            else:
                report.add_trace(
                    "Forced List",
                    "No applicable entry in forced price list, using normal precedence",
                    str(forced_price_list_id)
                )
        if not ordered:
            ordered = list(self.strategy.order_by_precedence(applicable, partner_id, when))

        kept = set(id(e) for e in ordered)
        for entry in considered:
            if id(entry) not in kept:
                restricted = partner_id is None and entry.price_list.is_partner_restricted
                report.add_trace(
                    "Rejected",
                    f"Entry {entry.id} ({entry.price_list.name})",
                    PARTNER_RESTRICTED if restricted else DROPPED_BY_STRATEGY
                )

        report.available = [self._describe(e, partner_id, when) for e in ordered]

        if not ordered:
            report.add_trace("Result", "No applicable price list entry")
            return report

        winner = ordered[0]
        report.outcome = ResolvedPrice(
            price_list_id=winner.price_list_id,
            price=winner.price,
            currency=winner.currency,
            price_list_name=winner.price_list.name,
            entry_id=winner.id,
        )
        report.add_trace(
            "Selected",
            f"{winner.price_list.name} (priority {winner.price_list.effective_priority(partner_id, when)})",
            f"{winner.price} {winner.currency}"
        )
        return report

    def _fetch(self, product_id: str, cancel: Optional[threading.Event]) -> list[PriceListEntry]:
        if cancel is not None and cancel.is_set():
            raise ResolutionCancelled(f"Resolution for product {product_id} cancelled")

        if cancel is not None and getattr(self.collector, "accepts_cancel", False):
            entries = self.collector.fetch_candidates(product_id, cancel=cancel)
        else:
            entries = self.collector.fetch_candidates(product_id)

        if cancel is not None and cancel.is_set():
            raise ResolutionCancelled(f"Resolution for product {product_id} cancelled")
        return list(entries)

    def _order_forced(
        self,
        forced: list[PriceListEntry],
        partner_id: Optional[str],
        when: datetime
    ) -> list[PriceListEntry]:
        ordered = list(self.strategy.order_by_precedence(forced, partner_id, when))
        if not ordered and forced:
            # Partner visibility is bypassed for the forced list only;
            # every other list keeps the anonymous-exclusion rule
            ordered = sorted(forced, key=lambda e: str(e.id))
        return ordered

    @staticmethod
    def _describe(entry: PriceListEntry, partner_id: Optional[str], when: datetime) -> AvailablePriceList:
        price_list = entry.price_list
        return AvailablePriceList(
            price_list_id=price_list.id,
            name=price_list.name,
            priority=price_list.effective_priority(partner_id, when),
            price=entry.price,
            currency=entry.currency,
            is_default=price_list.is_default,
            is_assigned_to_partner=price_list.is_assigned_to(partner_id, when),
        )


def resolve_price(
    entries: list[PriceListEntry],
    quantity: int,
    evaluation_date: Optional[DateLike] = None,
    partner_id: Optional[str] = None,
    strategy: Optional[PricePrecedenceStrategy] = None
) -> Optional[PriceListEntry]:
    """
    Pure selection over an already-fetched slice of entries.

    Returns the winning entry or None. Useful when the caller already holds
    the candidates and wants no collector in the way.
    """
    strategy = strategy or DefaultPricePrecedenceStrategy()
    quantity = validate_quantity(quantity)
    when = parse_date(evaluation_date)
    applicable = [e for e in entries if strategy.is_entry_applicable(e, when, quantity)]
    ordered = strategy.order_by_precedence(applicable, partner_id, when)
    return ordered[0] if ordered else None
