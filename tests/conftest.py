import os
import sys
from datetime import datetime

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from pricelist_engine.engine import (
    InMemoryCandidateCollector,
    PartnerAssignment,
    PriceList,
    PriceResolver,
)

PRODUCT = "SKU-100"
TODAY = datetime(2026, 6, 15, 12, 0)


def make_list(list_id, priority=0, is_default=False, partners=(), created_at=None, **kwargs):
    """Build a price list; partners holds partner ids or PartnerAssignment objects."""
    return PriceList(
        id=list_id,
        name=kwargs.pop('name', list_id),
        priority=priority,
        is_default=is_default,
        created_at=created_at or datetime(2026, 1, 1),
        partner_assignments=tuple(
            PartnerAssignment(partner_id=p) if isinstance(p, str) else p for p in partners
        ),
        **kwargs
    )


@pytest.fixture
def scenario_lists():
    """ListX: partner P at priority 10. ListY: generic default at priority 50."""
    list_x = make_list("LIST-X", priority=10, partners=("P",))
    list_x.add_entry("X-1", PRODUCT, "8.00")
    list_y = make_list("LIST-Y", priority=50, is_default=True)
    list_y.add_entry("Y-1", PRODUCT, "10.00")
    return [list_x, list_y]


@pytest.fixture
def resolver(scenario_lists):
    return PriceResolver(InMemoryCandidateCollector(scenario_lists))
