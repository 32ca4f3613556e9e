"""
Candidate Collector - supplies every price list entry for a product.

The resolver never reaches into storage itself. It asks a collector for a
product's entries, each with its owning price list (status, validity,
partner assignments) already attached. A collector must answer from one
consistent snapshot so a single resolution never mixes old and new list
state.
"""
import logging
import threading
from datetime import datetime
from typing import Iterable, Optional, Protocol, Sequence, runtime_checkable

from .models import PriceList, PriceListEntry
from .validation import PrecedenceReport, validate_precedence

logger = logging.getLogger(__name__)


@runtime_checkable
class CandidateCollector(Protocol):
    """Persistence boundary consumed by the resolver."""

    def fetch_candidates(self, product_id: str) -> Sequence[PriceListEntry]:
        ...


class CatalogSnapshot:
    """
    Immutable view over a set of price lists, indexed by product.

    Built once and never edited. Collectors replace the whole snapshot
    instead of patching it.
    """

    def __init__(self, price_lists: Iterable[PriceList]):
        self.price_lists: tuple[PriceList, ...] = tuple(price_lists)
        index: dict[str, list[PriceListEntry]] = {}
        for price_list in self.price_lists:
            for entry in price_list.entries:
                index.setdefault(str(entry.product_id), []).append(entry)
        self._by_product = {k: tuple(v) for k, v in index.items()}

    def entries_for(self, product_id: str) -> tuple[PriceListEntry, ...]:
        return self._by_product.get(str(product_id), ())

    def get_price_list(self, price_list_id: str) -> Optional[PriceList]:
        for price_list in self.price_lists:
            if price_list.id == price_list_id:
                return price_list
        return None

    def validate(self, now: Optional[datetime] = None, higher_priority_wins: bool = True) -> PrecedenceReport:
        """Precedence diagnostics for the lists in this snapshot."""
        return validate_precedence(self.price_lists, now, higher_priority_wins)

    @property
    def entry_count(self) -> int:
        return sum(len(v) for v in self._by_product.values())

    @property
    def product_count(self) -> int:
        return len(self._by_product)


class InMemoryCandidateCollector:
    """Collector over price lists already held in memory."""

    def __init__(self, price_lists: Iterable[PriceList] = ()):
        self._lock = threading.Lock()
        self._snapshot = CatalogSnapshot(price_lists)

    @property
    def snapshot(self) -> CatalogSnapshot:
        return self._snapshot

    def replace(self, price_lists: Iterable[PriceList]):
        """Swap in a new set of price lists in one step."""
        snapshot = CatalogSnapshot(price_lists)
        with self._lock:
            self._snapshot = snapshot
        logger.info(
            "Replaced in-memory snapshot: %d price lists, %d entries",
            len(snapshot.price_lists), snapshot.entry_count
        )

    def fetch_candidates(self, product_id: str) -> Sequence[PriceListEntry]:
        # Read the reference once so the whole answer comes from one snapshot
        snapshot = self._snapshot
        return list(snapshot.entries_for(product_id))
