"""End-to-end resolution through the PriceResolver facade."""
import threading
from datetime import date, datetime
from decimal import Decimal

import pytest

from conftest import PRODUCT, TODAY, make_list
from pricelist_engine.engine import (
    InMemoryCandidateCollector,
    InvalidArgumentError,
    NotFound,
    PricePrecedenceStrategy,
    PriceResolver,
    ResolutionCancelled,
    ResolvedPrice,
    resolve_price,
)


def resolver_for(*price_lists, strategy=None):
    return PriceResolver(InMemoryCandidateCollector(price_lists), strategy)


def test_scenario_a_partner_list_wins_for_partner(resolver):
    outcome = resolver.resolve(PRODUCT, 5, TODAY, partner_id="P")
    assert isinstance(outcome, ResolvedPrice)
    assert outcome.price_list_id == "LIST-X"
    assert outcome.price == Decimal("8.00")
    assert outcome.currency == "EUR"


def test_scenario_b_anonymous_gets_generic_list(resolver):
    outcome = resolver.resolve(PRODUCT, 5, TODAY, partner_id=None)
    assert outcome.found
    assert outcome.price_list_id == "LIST-Y"


def test_scenario_c_expired_window_is_not_found():
    list_z = make_list("LIST-Z", valid_from=datetime(2024, 1, 1), valid_to=datetime(2024, 1, 31))
    list_z.add_entry("Z-1", PRODUCT, "5.00")
    outcome = resolver_for(list_z).resolve(PRODUCT, 1, datetime(2024, 2, 1))
    assert isinstance(outcome, NotFound)
    assert not outcome.found


def test_scenario_d_minimum_quantity_with_open_upper_bound():
    price_list = make_list("BULK")
    price_list.add_entry("B-1", PRODUCT, "2.00", min_quantity=10, max_quantity=0)
    resolver = resolver_for(price_list)
    assert isinstance(resolver.resolve(PRODUCT, 9, TODAY), NotFound)
    assert resolver.resolve(PRODUCT, 10, TODAY).price_list_id == "BULK"
    assert resolver.resolve(PRODUCT, 100000, TODAY).price_list_id == "BULK"


def test_partner_restricted_list_never_selected_anonymously_even_when_alone():
    only = make_list("ONLY", priority=99, partners=("P",))
    only.add_entry("O-1", PRODUCT, "1.00")
    assert isinstance(resolver_for(only).resolve(PRODUCT, 1, TODAY), NotFound)


def test_unknown_product_is_not_found(resolver):
    outcome = resolver.resolve("NOPE", 1, TODAY)
    assert isinstance(outcome, NotFound)
    assert outcome.product_id == "NOPE"


def test_repeated_resolution_is_deterministic():
    created = datetime(2026, 1, 1)
    lists = []
    for list_id in ("L3", "L1", "L2"):
        pl = make_list(list_id, priority=5, created_at=created)
        pl.add_entry(f"{list_id}-E", PRODUCT, "3.00")
        lists.append(pl)
    resolver = resolver_for(*lists)
    outcomes = {resolver.resolve(PRODUCT, 1, TODAY).price_list_id for _ in range(20)}
    assert outcomes == {"L1"}


@pytest.mark.parametrize("quantity", [0, -3, 1.5, "2", True, None])
def test_invalid_quantity_raises(resolver, quantity):
    with pytest.raises(InvalidArgumentError):
        resolver.resolve(PRODUCT, quantity, TODAY)


def test_malformed_date_raises(resolver):
    with pytest.raises(InvalidArgumentError):
        resolver.resolve(PRODUCT, 1, "not-a-date")
    with pytest.raises(InvalidArgumentError):
        resolver.resolve(PRODUCT, 1, 12345)


def test_invalid_argument_is_a_value_error(resolver):
    with pytest.raises(ValueError):
        resolver.resolve(PRODUCT, 0)


def test_evaluation_date_accepts_date_and_iso_strings():
    pl = make_list("JAN", valid_from=datetime(2024, 1, 1), valid_to=datetime(2024, 1, 31))
    pl.add_entry("J-1", PRODUCT, "1.00")
    resolver = resolver_for(pl)
    assert resolver.resolve(PRODUCT, 1, date(2024, 1, 15)).found
    assert resolver.resolve(PRODUCT, 1, "2024-01-15T10:00:00Z").found
    assert resolver.resolve(PRODUCT, 1, "2024-01-31").found
    assert not resolver.resolve(PRODUCT, 1, "2024-02-01").found


def test_evaluation_date_defaults_to_now():
    pl = make_list("OPEN")
    pl.add_entry("O-1", PRODUCT, "1.00")
    past = make_list("PAST", priority=100, valid_to=datetime(2000, 1, 1))
    past.add_entry("P-1", PRODUCT, "0.50")
    assert resolver_for(pl, past).resolve(PRODUCT, 1).price_list_id == "OPEN"


def test_collector_errors_propagate_unchanged():
    class BrokenCollector:
        def fetch_candidates(self, product_id):
            raise ConnectionError("database unavailable")

    with pytest.raises(ConnectionError, match="database unavailable"):
        PriceResolver(BrokenCollector()).resolve(PRODUCT, 1, TODAY)


def test_cancelled_before_fetch(resolver):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(ResolutionCancelled):
        resolver.resolve(PRODUCT, 1, TODAY, cancel=cancel)


def test_cancel_is_passed_to_collectors_that_accept_it(scenario_lists):
    class CancellingCollector(InMemoryCandidateCollector):
        accepts_cancel = True

        def fetch_candidates(self, product_id, cancel=None):
            cancel.set()
            return super().fetch_candidates(product_id)

    resolver = PriceResolver(CancellingCollector(scenario_lists))
    with pytest.raises(ResolutionCancelled):
        resolver.resolve(PRODUCT, 1, TODAY, cancel=threading.Event())


def test_unset_cancel_event_resolves_normally(resolver):
    outcome = resolver.resolve(PRODUCT, 1, TODAY, partner_id="P", cancel=threading.Event())
    assert outcome.price_list_id == "LIST-X"


def test_custom_strategy_is_used():
    class CheapestFirst(PricePrecedenceStrategy):
        def order_by_precedence(self, entries, partner_id=None, evaluation_date=None):
            return sorted(entries, key=lambda e: (e.price, e.id))

    cheap = make_list("CHEAP", priority=1)
    cheap.add_entry("C-1", PRODUCT, "1.00")
    dear = make_list("DEAR", priority=100)
    dear.add_entry("D-1", PRODUCT, "9.00")
    assert resolver_for(cheap, dear).resolve(PRODUCT, 1, TODAY).price_list_id == "DEAR"
    assert resolver_for(cheap, dear, strategy=CheapestFirst()).resolve(PRODUCT, 1, TODAY).price_list_id == "CHEAP"


def test_custom_strategy_can_redefine_applicability():
    class WholesaleOnly(PricePrecedenceStrategy):
        def is_entry_applicable(self, entry, evaluation_date, quantity):
            return super().is_entry_applicable(entry, evaluation_date, quantity) and entry.min_quantity > 1

        def order_by_precedence(self, entries, partner_id=None, evaluation_date=None):
            return sorted(entries, key=lambda e: e.id)

    pl = make_list("PL")
    pl.add_entry("RETAIL", PRODUCT, "5.00")
    resolver = resolver_for(pl, strategy=WholesaleOnly())
    report = resolver.resolve_with_trace(PRODUCT, 3, TODAY)
    assert isinstance(report.outcome, NotFound)
    assert any(t.value == "strategy_rejected" for t in report.trace)


def test_forced_price_list_overrides_precedence(resolver):
    outcome = resolver.resolve(PRODUCT, 1, TODAY, partner_id="P", forced_price_list_id="LIST-Y")
    assert outcome.price_list_id == "LIST-Y"


def test_forced_partner_list_is_visible_anonymously(resolver):
    outcome = resolver.resolve(PRODUCT, 1, TODAY, forced_price_list_id="LIST-X")
    assert outcome.price_list_id == "LIST-X"


def test_inapplicable_forced_list_falls_back_to_precedence():
    expired = make_list("EXPIRED", priority=99, valid_to=datetime(2020, 1, 1))
    expired.add_entry("E-1", PRODUCT, "1.00")
    current = make_list("CURRENT")
    current.add_entry("C-1", PRODUCT, "2.00")
    report = resolver_for(expired, current).resolve_with_trace(PRODUCT, 1, TODAY, forced_price_list_id="EXPIRED")
    assert report.outcome.price_list_id == "CURRENT"
    assert any(t.value == "expired" for t in report.trace)


def test_forced_list_without_the_product_cascades_to_generic_list():
    forced = make_list("FORCED", priority=99)
    forced.add_entry("F-1", "OTHER-SKU", "1.00")
    generic = make_list("GEN", is_default=True)
    generic.add_entry("G-1", PRODUCT, "4.00")
    report = resolver_for(forced, generic).resolve_with_trace(PRODUCT, 1, TODAY, forced_price_list_id="FORCED")
    assert report.outcome.price_list_id == "GEN"
    forced_steps = [t for t in report.trace if t.step == "Forced List"]
    assert len(forced_steps) == 1
    assert "normal precedence" in forced_steps[0].description


def test_forced_list_fallback_keeps_partner_restriction():
    # Only the forced list bypasses partner visibility
    restricted = make_list("PARTNER-ONLY", priority=99, partners=("P",))
    restricted.add_entry("P-1", PRODUCT, "1.00")
    forced = make_list("FORCED")
    forced.add_entry("F-1", "OTHER-SKU", "1.00")
    outcome = resolver_for(restricted, forced).resolve(PRODUCT, 1, TODAY, forced_price_list_id="FORCED")
    assert isinstance(outcome, NotFound)


def test_unknown_forced_list_resolves_normally(resolver):
    outcome = resolver.resolve(PRODUCT, 1, TODAY, partner_id="P", forced_price_list_id="MISSING")
    assert outcome.price_list_id == "LIST-X"


def test_trace_lists_rejections_and_available_lists(resolver):
    report = resolver.resolve_with_trace(PRODUCT, 5, TODAY)
    assert report.outcome.price_list_id == "LIST-Y"
    assert [a.price_list_id for a in report.available] == ["LIST-Y"]
    assert any(t.value == "partner_restricted" for t in report.trace)

    text = report.get_trace_text()
    assert "→ Candidates: Entries fetched for product = 2" in text
    assert "→ Selected" in text


def test_available_lists_in_precedence_order_for_partner(resolver):
    report = resolver.resolve_with_trace(PRODUCT, 5, TODAY, partner_id="P")
    assert [a.price_list_id for a in report.available] == ["LIST-X", "LIST-Y"]
    assert report.available[0].is_assigned_to_partner
    assert not report.available[1].is_assigned_to_partner
    assert report.available[1].is_default


def test_resolve_price_over_fetched_slice(scenario_lists):
    entries = [e for pl in scenario_lists for e in pl.entries]
    assert resolve_price(entries, 1, TODAY, partner_id="P").id == "X-1"
    assert resolve_price(entries, 1, TODAY).id == "Y-1"
    assert resolve_price([], 1, TODAY) is None
