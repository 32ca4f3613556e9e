"""Engine subpackage - price list applicability, precedence and resolution."""
from .applicability import explain_applicability, is_applicable
from .cache import CachingPriceResolver
from .collector import CandidateCollector, CatalogSnapshot, InMemoryCandidateCollector
from .errors import CatalogLoadError, InvalidArgumentError, PriceResolutionError, ResolutionCancelled
from .models import (
    NotFound,
    PartnerAssignment,
    PartnerAssignmentStatus,
    PriceList,
    PriceListEntry,
    PriceListEntryStatus,
    PriceListStatus,
    ResolutionReport,
    ResolvedPrice,
)
from .precedence import DefaultPricePrecedenceStrategy, PricePrecedenceStrategy
from .registry import StrategyRegistry
from .resolver import PriceResolver, resolve_price
from .validation import PrecedenceFinding, PrecedenceReport, validate_precedence

__all__ = [
    'PriceResolver', 'CachingPriceResolver', 'StrategyRegistry', 'resolve_price',
    'PricePrecedenceStrategy', 'DefaultPricePrecedenceStrategy',
    'CandidateCollector', 'CatalogSnapshot', 'InMemoryCandidateCollector',
    'is_applicable', 'explain_applicability',
    'validate_precedence', 'PrecedenceReport', 'PrecedenceFinding',
    'PriceList', 'PriceListEntry', 'PartnerAssignment', 'PartnerAssignmentStatus',
    'PriceListStatus', 'PriceListEntryStatus',
    'ResolvedPrice', 'NotFound', 'ResolutionReport',
    'PriceResolutionError', 'InvalidArgumentError', 'ResolutionCancelled', 'CatalogLoadError',
]
