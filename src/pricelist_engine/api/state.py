"""
Shared resolver state for the API routers.

Built lazily from Settings through the tabular collector. Tests and
embedding applications call configure() to plug in their own collector.
"""
import logging
from typing import Optional

from ..config.settings import get_settings, Settings
from ..data.load_price_lists import TabularCandidateCollector
from ..engine import (
    CachingPriceResolver,
    CandidateCollector,
    DefaultPricePrecedenceStrategy,
    PricePrecedenceStrategy,
    PriceResolver,
    StrategyRegistry,
)

logger = logging.getLogger(__name__)

_collector: Optional[CandidateCollector] = None
_registry: Optional[StrategyRegistry] = None
_cached: Optional[CachingPriceResolver] = None


def configure(
    collector: Optional[CandidateCollector] = None,
    strategy: Optional[PricePrecedenceStrategy] = None,
    settings: Optional[Settings] = None
):
    """(Re)build the collector, strategy registry and cached resolver."""
    global _collector, _registry, _cached
    settings = settings or get_settings()

    _collector = collector or TabularCandidateCollector(settings)
    default = strategy or DefaultPricePrecedenceStrategy(
        higher_priority_wins=settings.higher_priority_wins
    )
    _registry = StrategyRegistry(default)
    _cached = CachingPriceResolver(
        PriceResolver(_collector, default),
        ttl_seconds=settings.cache_ttl_seconds,
        bucket=settings.cache_date_bucket,
    )
    logger.info("Configured resolver with %s", type(_collector).__name__)


def get_collector() -> CandidateCollector:
    if _collector is None:
        configure()
    return _collector


def get_registry() -> StrategyRegistry:
    if _registry is None:
        configure()
    return _registry


def get_cached_resolver() -> CachingPriceResolver:
    if _cached is None:
        configure()
    return _cached


def get_resolver(strategy_name: Optional[str] = None) -> PriceResolver:
    """Uncached resolver for a named strategy, default when name is None."""
    return get_registry().resolver_for(get_collector(), strategy_name)
