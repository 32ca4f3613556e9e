"""
Caching layer placed above the resolver.

Outcomes (NotFound included) are cached per
(product_id, partner_id, quantity, date bucket, forced list) for a fixed
TTL. The date bucket only applies when the caller lets the date default
to now; explicit dates are keyed exactly. Expired keys are purged on
write and the map is capped at max_entries. Whoever edits price lists
must call invalidate_product or invalidate_all; the cache does not watch
the source.
"""
import logging
import threading
import time
from datetime import datetime
from typing import Callable, Optional

from .dates import DateLike, parse_date
from .resolver import Outcome, PriceResolver, validate_quantity

logger = logging.getLogger(__name__)

BUCKET_DAY = "day"
BUCKET_EXACT = "exact"


def date_bucket(when: datetime, bucket: str) -> str:
    if bucket == BUCKET_DAY:
        return when.date().isoformat()
    if bucket == BUCKET_EXACT:
        return when.isoformat()
    raise ValueError(f"Unknown date bucket '{bucket}'")


class CachingPriceResolver:
    """Wraps a PriceResolver with a TTL cache keyed on the request."""

    def __init__(
        self,
        resolver: PriceResolver,
        ttl_seconds: float = 300,
        bucket: str = BUCKET_DAY,
        max_entries: int = 10000,
        clock: Callable[[], float] = time.monotonic
    ):
        if bucket not in (BUCKET_DAY, BUCKET_EXACT):
            raise ValueError(f"Unknown date bucket '{bucket}'")
        self.resolver = resolver
        self.ttl_seconds = ttl_seconds
        self.bucket = bucket
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[tuple, tuple[float, Outcome]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def resolve(
        self,
        product_id: str,
        quantity: int,
        evaluation_date: Optional[DateLike] = None,
        partner_id: Optional[str] = None,
        forced_price_list_id: Optional[str] = None,
        cancel: Optional[threading.Event] = None
    ) -> Outcome:
        # Invalid input raises before the cache is touched, so it is never stored
        quantity = validate_quantity(quantity)
        when = parse_date(evaluation_date)
        # Bucketing only applies to "now"; an explicit date is keyed exactly
        if evaluation_date is None:
            bucket_key = date_bucket(when, self.bucket)
        else:
            bucket_key = when.isoformat()
        key = (
            str(product_id),
            partner_id,
            quantity,
            bucket_key,
            forced_price_list_id,
        )

        now = self._clock()
        with self._lock:
            cached = self._entries.get(key)
            if cached is not None and cached[0] > now:
                self.hits += 1
                logger.debug("Price cache hit for %s", key)
                return cached[1]
            self.misses += 1

        logger.debug("Price cache miss for %s", key)
        outcome = self.resolver.resolve(
            product_id,
            quantity,
            evaluation_date=when,
            partner_id=partner_id,
            forced_price_list_id=forced_price_list_id,
            cancel=cancel,
        )
        with self._lock:
            self._purge_expired(now)
            if key not in self._entries and len(self._entries) >= self.max_entries:
                # Drop the entry closest to expiry to stay within bounds
                oldest = min(self._entries, key=lambda k: self._entries[k][0])
                del self._entries[oldest]
            self._entries[key] = (now + self.ttl_seconds, outcome)
        return outcome

    def _purge_expired(self, now: float):
        # Caller holds the lock
        expired = [k for k, (expires, _) in self._entries.items() if expires <= now]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.debug("Purged %d expired cached prices", len(expired))

    def invalidate_product(self, product_id: str) -> int:
        """Drop every cached outcome for a product. Returns how many were dropped."""
        product_id = str(product_id)
        with self._lock:
            stale = [k for k in self._entries if k[0] == product_id]
            for k in stale:
                del self._entries[k]
        logger.debug("Invalidated %d cached prices for product %s", len(stale), product_id)
        return len(stale)

    def invalidate_all(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.debug("Invalidated all %d cached prices", count)
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
