"""
Applicability Filter - decides whether a single price list entry is usable.

Checks run in a fixed order: entry status, owning list status, validity
window, quantity bracket. The first failing check decides the outcome.
"""
from datetime import datetime
from typing import Optional

from .dates import window_bound
from .models import PriceListEntry, PriceListEntryStatus, PriceListStatus

ENTRY_INACTIVE = "entry_inactive"
LIST_INACTIVE = "list_inactive"
NOT_YET_VALID = "not_yet_valid"
EXPIRED = "expired"
BELOW_MIN_QUANTITY = "below_min_quantity"
ABOVE_MAX_QUANTITY = "above_max_quantity"


def explain_applicability(
    entry: PriceListEntry,
    evaluation_date: datetime,
    quantity: int
) -> Optional[str]:
    """
    Return the reason code of the first failing check, or None if the
    entry applies.

    Accepts a plain date or an aware datetime for evaluation_date.
    """
    price_list = entry.price_list
    evaluation_date = window_bound(evaluation_date)

    if entry.status != PriceListEntryStatus.ACTIVE:
        return ENTRY_INACTIVE

    if price_list.status != PriceListStatus.ACTIVE:
        return LIST_INACTIVE

    # Both bounds inclusive; a missing bound never rejects
    if price_list.valid_from is not None and evaluation_date < price_list.valid_from:
        return NOT_YET_VALID

    if price_list.valid_to is not None and evaluation_date > price_list.valid_to:
        return EXPIRED

    if quantity < entry.min_quantity:
        return BELOW_MIN_QUANTITY

    if entry.max_quantity != 0 and quantity > entry.max_quantity:
        return ABOVE_MAX_QUANTITY

    return None


def is_applicable(entry: PriceListEntry, evaluation_date: datetime, quantity: int) -> bool:
    """True when the entry is usable for the given date and quantity."""
    return explain_applicability(entry, evaluation_date, quantity) is None
