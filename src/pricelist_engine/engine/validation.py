"""
Precedence validation - flags price list setups the resolver can only
settle by tie-break.

Issues make the setup invalid (no lists, several defaults, every active
list expired, overlapping windows at equal priority). Warnings point at
setups that resolve deterministically but probably not as intended.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from itertools import groupby
from typing import Iterable, Optional

from .dates import utcnow, window_bound
from .models import PriceList, PriceListStatus

logger = logging.getLogger(__name__)

EXPIRY_WARNING_DAYS = 7
MANY_ACTIVE_LISTS = 10

# Issue codes
NO_PRICE_LISTS = "no_price_lists"
MULTIPLE_DEFAULTS = "multiple_defaults"
EXPIRED_LISTS_ONLY = "expired_lists_only"
OVERLAPPING_VALIDITY = "overlapping_validity"

# Warning codes
NO_DEFAULT = "no_default"
DUPLICATE_PRIORITIES = "duplicate_priorities"
SOON_TO_EXPIRE = "soon_to_expire"
MANY_ACTIVE = "many_active_lists"


@dataclass(frozen=True)
class PrecedenceFinding:
    """One issue or warning, with the lists it concerns."""
    code: str
    severity: str
    description: str
    price_list_ids: tuple[str, ...] = ()


@dataclass
class PrecedenceReport:
    """Result of validating a set of price lists."""
    checked: int = 0
    active: int = 0
    defaults: int = 0
    expired: int = 0
    issues: list[PrecedenceFinding] = field(default_factory=list)
    warnings: list[PrecedenceFinding] = field(default_factory=list)
    recommended_default_id: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return not self.issues

    def add_issue(self, code: str, severity: str, description: str, lists: Iterable[PriceList] = ()):
        self.issues.append(PrecedenceFinding(code, severity, description, tuple(pl.id for pl in lists)))

    def add_warning(self, code: str, description: str, lists: Iterable[PriceList] = ()):
        self.warnings.append(PrecedenceFinding(code, "warning", description, tuple(pl.id for pl in lists)))


def _is_expired(price_list: PriceList, now: datetime) -> bool:
    return price_list.valid_to is not None and price_list.valid_to < now


def validate_precedence(
    price_lists: Iterable[PriceList],
    now: Optional[datetime] = None,
    higher_priority_wins: bool = True
) -> PrecedenceReport:
    """
    Check a set of price lists for ambiguous or broken precedence.

    Deleted lists are ignored. now defaults to the current UTC time.
    """
    now = window_bound(now) if now is not None else utcnow()
    lists = [pl for pl in price_lists if pl.status != PriceListStatus.DELETED]
    report = PrecedenceReport(checked=len(lists))

    if not lists:
        report.add_issue(NO_PRICE_LISTS, "critical", "No price lists found")
        return report

    active = [pl for pl in lists if pl.status == PriceListStatus.ACTIVE]
    defaults = [pl for pl in lists if pl.is_default]
    report.active = len(active)
    report.defaults = len(defaults)
    report.expired = sum(1 for pl in lists if _is_expired(pl, now))

    if len(defaults) > 1:
        report.add_issue(
            MULTIPLE_DEFAULTS, "high",
            f"Multiple default price lists found ({len(defaults)})", defaults
        )

    if not defaults and active:
        report.add_warning(NO_DEFAULT, "No default price list found", active)

    by_priority = sorted(active, key=lambda pl: (pl.priority, pl.id))
    priority_groups = []
    for priority, group in groupby(by_priority, key=lambda pl: pl.priority):
        group = list(group)
        if len(group) > 1:
            priority_groups.append(group)
            report.add_warning(
                DUPLICATE_PRIORITIES, f"Multiple price lists have priority {priority}", group
            )

    if active and all(_is_expired(pl, now) for pl in active):
        report.add_issue(EXPIRED_LISTS_ONLY, "critical", "All active price lists have expired", active)

    horizon = now + timedelta(days=EXPIRY_WARNING_DAYS)
    soon = [pl for pl in active if pl.valid_to is not None and now <= pl.valid_to <= horizon]
    if soon:
        report.add_warning(
            SOON_TO_EXPIRE,
            f"{len(soon)} price list(s) expiring within {EXPIRY_WARNING_DAYS} days",
            soon
        )

    if len(active) > MANY_ACTIVE_LISTS:
        report.add_warning(MANY_ACTIVE, f"Large number of active price lists ({len(active)})")

    # Consecutive lists by start date; an open start sorts first, an open end never ends
    for group in priority_groups:
        ordered = sorted(group, key=lambda pl: (pl.valid_from or datetime.min, pl.id))
        for current, following in zip(ordered, ordered[1:]):
            current_end = current.valid_to or datetime.max
            following_start = following.valid_from or datetime.min
            if current_end >= following_start:
                report.add_issue(
                    OVERLAPPING_VALIDITY, "medium",
                    f"Price lists '{current.name}' and '{following.name}' have overlapping "
                    f"validity periods with the same priority",
                    (current, following)
                )

    if len(defaults) == 1:
        report.recommended_default_id = defaults[0].id
    elif active:
        best = max if higher_priority_wins else min
        report.recommended_default_id = best(active, key=lambda pl: pl.priority).id

    logger.info(
        "Precedence validation: valid=%s, %d issues, %d warnings over %d price lists",
        report.is_valid, len(report.issues), len(report.warnings), report.checked
    )
    return report
