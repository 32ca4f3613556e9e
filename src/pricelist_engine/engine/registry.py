"""
Strategy Registry - named precedence policies with a default fallback.

Lets callers plug in per-tenant or per-channel policies by name and build
resolvers for them without editing the resolver itself.
"""
import threading
from typing import Optional

from .collector import CandidateCollector
from .precedence import DefaultPricePrecedenceStrategy, PricePrecedenceStrategy
from .resolver import PriceResolver


class StrategyRegistry:
    """Thread-safe map of name -> PricePrecedenceStrategy."""

    def __init__(self, default: Optional[PricePrecedenceStrategy] = None):
        self._default = default or DefaultPricePrecedenceStrategy()
        self._strategies: dict[str, PricePrecedenceStrategy] = {}
        self._lock = threading.Lock()

    @property
    def default(self) -> PricePrecedenceStrategy:
        return self._default

    def register(self, name: str, strategy: PricePrecedenceStrategy, replace: bool = False):
        """Register a strategy under a name. Refuses to overwrite unless replace is set."""
        if not isinstance(strategy, PricePrecedenceStrategy):
            raise TypeError(f"Expected a PricePrecedenceStrategy, got {type(strategy).__name__}")
        with self._lock:
            if name in self._strategies and not replace:
                raise ValueError(f"Strategy '{name}' is already registered")
            self._strategies[name] = strategy

    def unregister(self, name: str):
        with self._lock:
            self._strategies.pop(name, None)

    def get(self, name: Optional[str] = None) -> PricePrecedenceStrategy:
        """Strategy registered under name, or the default when unknown or None."""
        if name is None:
            return self._default
        with self._lock:
            return self._strategies.get(name, self._default)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._strategies)

    def resolver_for(self, collector: CandidateCollector, name: Optional[str] = None) -> PriceResolver:
        return PriceResolver(collector, self.get(name))
