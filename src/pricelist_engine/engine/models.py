"""
Data models for the price resolution engine.

Uses dataclasses for structured, type-safe data representation.
Price lists own their entries; each entry keeps a back-reference to its
owning list so the engine can read list-level state (status, validity,
partner assignments) from a single entry.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from .dates import utcnow, window_bound


class PriceListStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    EXPIRED = "expired"
    DELETED = "deleted"


class PriceListEntryStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    DELETED = "deleted"


class PartnerAssignmentStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    DELETED = "deleted"


@dataclass(frozen=True)
class PartnerAssignment:
    """
    Link between a business partner and a price list.

    Only active assignments restrict a list. The assignment's own window
    limits when it counts for its partner, and override_priority replaces
    the list priority for that partner.
    """
    partner_id: str
    partner_name: Optional[str] = None
    status: PartnerAssignmentStatus = PartnerAssignmentStatus.ACTIVE
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    override_priority: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, 'valid_from', window_bound(self.valid_from))
        object.__setattr__(self, 'valid_to', window_bound(self.valid_to, end_of_day=True))

    @property
    def is_active(self) -> bool:
        return self.status == PartnerAssignmentStatus.ACTIVE

    def covers(self, when: Optional[datetime]) -> bool:
        """True when the assignment window includes when. None skips the window check."""
        if when is None:
            return True
        when = window_bound(when)
        if self.valid_from is not None and when < self.valid_from:
            return False
        if self.valid_to is not None and when > self.valid_to:
            return False
        return True


@dataclass(eq=False)
class PriceList:
    """A named, time-bounded set of product prices."""
    id: str
    name: str
    priority: int = 0
    is_default: bool = False
    status: PriceListStatus = PriceListStatus.ACTIVE
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    partner_assignments: tuple[PartnerAssignment, ...] = ()
    entries: list["PriceListEntry"] = field(default_factory=list, repr=False)

    def __post_init__(self):
        self.valid_from = window_bound(self.valid_from)
        self.valid_to = window_bound(self.valid_to, end_of_day=True)
        self.created_at = window_bound(self.created_at)
        self.partner_assignments = tuple(self.partner_assignments)

    @property
    def is_partner_restricted(self) -> bool:
        """True when at least one business partner is actively assigned to this list."""
        return any(a.is_active for a in self.partner_assignments)

    def assignment_for(
        self,
        partner_id: Optional[str],
        when: Optional[datetime] = None
    ) -> Optional[PartnerAssignment]:
        """The active assignment of partner_id covering when, if any."""
        if partner_id is None:
            return None
        for a in self.partner_assignments:
            if a.partner_id == partner_id and a.is_active and a.covers(when):
                return a
        return None

    def is_assigned_to(self, partner_id: Optional[str], when: Optional[datetime] = None) -> bool:
        return self.assignment_for(partner_id, when) is not None

    def effective_priority(self, partner_id: Optional[str], when: Optional[datetime] = None) -> int:
        """List priority, or the matched assignment's override_priority when set."""
        assignment = self.assignment_for(partner_id, when)
        if assignment is not None and assignment.override_priority is not None:
            return assignment.override_priority
        return self.priority

    def add_entry(
        self,
        id: str,
        product_id: str,
        price: Union[Decimal, int, str],
        currency: str = "EUR",
        min_quantity: int = 1,
        max_quantity: int = 0,
        status: PriceListEntryStatus = PriceListEntryStatus.ACTIVE,
    ) -> "PriceListEntry":
        """Create an entry owned by this list and return it."""
        entry = PriceListEntry(
            id=id,
            price_list=self,
            product_id=product_id,
            price=Decimal(str(price)),
            currency=currency,
            min_quantity=min_quantity,
            max_quantity=max_quantity,
            status=status,
        )
        self.entries.append(entry)
        return entry


@dataclass(eq=False)
class PriceListEntry:
    """One product's price within a price list."""
    id: str
    price_list: PriceList
    product_id: str
    price: Decimal
    currency: str = "EUR"
    min_quantity: int = 1
    max_quantity: int = 0  # 0 = no upper bound
    status: PriceListEntryStatus = PriceListEntryStatus.ACTIVE

    @property
    def price_list_id(self) -> str:
        return self.price_list.id


@dataclass(frozen=True)
class ResolvedPrice:
    """The winning entry of a resolution."""
    price_list_id: str
    price: Decimal
    currency: str
    price_list_name: Optional[str] = None
    entry_id: Optional[str] = None

    found = True


@dataclass(frozen=True)
class NotFound:
    """No applicable entry exists for the request. A valid business outcome."""
    product_id: str
    reason: str = "no applicable price list entry"

    found = False


@dataclass
class TraceStep:
    """A single step in the price resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass(frozen=True)
class AvailablePriceList:
    """An applicable candidate, as listed for UI selection."""
    price_list_id: str
    name: str
    priority: int
    price: Decimal
    currency: str
    is_default: bool
    is_assigned_to_partner: bool


@dataclass
class ResolutionReport:
    """Outcome of a resolution together with how it was reached."""
    outcome: Union[ResolvedPrice, NotFound]
    available: list[AvailablePriceList] = field(default_factory=list)
    trace: list[TraceStep] = field(default_factory=list)

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the resolution trace."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)
