"""
Tabular Candidate Collector - loads price lists from CSV files or a workbook.

Three tables feed the snapshot:
- price_lists:          id, name, priority, is_default, status,
                        valid_from, valid_to, created_at
- price_list_entries:   id, price_list_id, product_id, price, currency,
                        min_quantity, max_quantity, status
- partner_assignments:  price_list_id, partner_id, partner_name, status,
                        valid_from, valid_to, override_priority (all optional
                        after partner_id)

Each table comes from its own CSV in the data directory, or from the sheet
of the same name in one Excel workbook. reload() builds a complete new
snapshot before swapping it in, so a fetch never mixes old and new state.
"""
import logging
import threading
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional, Sequence
from zipfile import BadZipFile

import pandas as pd

from ..config.settings import get_settings, Settings
from ..engine.collector import CatalogSnapshot
from ..engine.dates import EPOCH, parse_date
from ..engine.errors import CatalogLoadError, InvalidArgumentError, ResolutionCancelled
from ..engine.models import (
    PartnerAssignment,
    PartnerAssignmentStatus,
    PriceList,
    PriceListEntry,
    PriceListEntryStatus,
    PriceListStatus,
)

logger = logging.getLogger(__name__)

PRICE_LISTS = 'price_lists'
ENTRIES = 'price_list_entries'
ASSIGNMENTS = 'partner_assignments'

REQUIRED_COLUMNS = {
    PRICE_LISTS: ('id', 'name'),
    ENTRIES: ('id', 'price_list_id', 'product_id', 'price'),
    ASSIGNMENTS: ('price_list_id', 'partner_id'),
}

TRUE_VALUES = {'true', '1', 'yes', 'y', 'x'}
FALSE_VALUES = {'false', '0', 'no', 'n', ''}


def read_tables(
    data_dir: Optional[Path] = None,
    workbook: Optional[Path] = None
) -> dict[str, pd.DataFrame]:
    """
    Read the three source tables as string DataFrames.

    A workbook takes precedence over CSV files. A missing assignments table
    just means every list is generic.
    """
    tables = {}
    if workbook is not None:
        if not workbook.exists():
            raise CatalogLoadError(f"Workbook not found at {workbook}")
        try:
            sheets = pd.read_excel(workbook, sheet_name=None, dtype=str)
        except (ValueError, OSError, BadZipFile) as e:
            raise CatalogLoadError(f"Workbook {workbook.name} could not be read: {e}") from e
        for name in (PRICE_LISTS, ENTRIES, ASSIGNMENTS):
            if name in sheets:
                tables[name] = sheets[name]
    else:
        data_dir = data_dir or get_settings().data_dir
        for name in (PRICE_LISTS, ENTRIES, ASSIGNMENTS):
            path = data_dir / f'{name}.csv'
            if path.exists():
                try:
                    tables[name] = pd.read_csv(path, dtype=str)
                except (ValueError, OSError) as e:
                    # ParserError, EmptyDataError and decode errors are all ValueErrors
                    raise CatalogLoadError(f"File {path.name} could not be read: {e}", table=name) from e

    for name in (PRICE_LISTS, ENTRIES):
        if name not in tables:
            raise CatalogLoadError("Table not found", table=name)
    if ASSIGNMENTS not in tables:
        tables[ASSIGNMENTS] = pd.DataFrame(columns=list(REQUIRED_COLUMNS[ASSIGNMENTS]))

    # Normalize: string cells, stripped, blanks instead of NaN
    for name, df in tables.items():
        df = df.copy()
        df.columns = [str(c).strip().lower() for c in df.columns]
        missing = [c for c in REQUIRED_COLUMNS[name] if c not in df.columns]
        if missing:
            raise CatalogLoadError(f"Missing columns: {', '.join(missing)}", table=name)
        df = df.fillna('')
        for col in df.columns:
            df[col] = df[col].astype(str).str.strip()
        tables[name] = df

    return tables


def _line(idx) -> int:
    # 1-based sheet line, header on line 1
    return int(idx) + 2


def _parse_int(value: str, column: str, table: str, idx, default: int) -> int:
    if value == '':
        return default
    try:
        number = float(value)
    except ValueError:
        raise CatalogLoadError(f"Column '{column}' is not a number: {value!r}", table, _line(idx)) from None
    if not number.is_integer():
        raise CatalogLoadError(f"Column '{column}' is not a whole number: {value!r}", table, _line(idx))
    return int(number)


def _parse_bool(value: str, column: str, table: str, idx) -> bool:
    lowered = value.lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise CatalogLoadError(f"Column '{column}' is not a boolean: {value!r}", table, _line(idx))


def _parse_when(value: str, column: str, table: str, idx):
    if value == '':
        return None
    try:
        # Date-only values stay dates so an upper bound covers the whole day
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return parse_date(value, default_now=False)
    except InvalidArgumentError:
        raise CatalogLoadError(f"Column '{column}' is not a date: {value!r}", table, _line(idx)) from None


def _parse_status(value: str, enum, table: str, idx):
    try:
        return enum((value or 'active').lower())
    except ValueError:
        raise CatalogLoadError(f"Unknown status {value!r}", table, _line(idx)) from None


def build_price_lists(
    tables: dict[str, pd.DataFrame],
    default_currency: str = "EUR"
) -> list[PriceList]:
    """Turn normalized tables into PriceList objects with entries and assignments."""
    price_lists: dict[str, PriceList] = {}

    df = tables[PRICE_LISTS]
    for idx, row in df.iterrows():
        list_id = row['id']
        if not list_id:
            raise CatalogLoadError("Missing price list id", PRICE_LISTS, _line(idx))
        if list_id in price_lists:
            raise CatalogLoadError(f"Duplicate price list id '{list_id}'", PRICE_LISTS, _line(idx))

        valid_from = _parse_when(row.get('valid_from', ''), 'valid_from', PRICE_LISTS, idx)
        valid_to = _parse_when(row.get('valid_to', ''), 'valid_to', PRICE_LISTS, idx)
        created_at = _parse_when(row.get('created_at', ''), 'created_at', PRICE_LISTS, idx)

        price_lists[list_id] = PriceList(
            id=list_id,
            name=row['name'] or list_id,
            priority=_parse_int(row.get('priority', ''), 'priority', PRICE_LISTS, idx, 0),
            is_default=_parse_bool(row.get('is_default', ''), 'is_default', PRICE_LISTS, idx),
            status=_parse_status(row.get('status', ''), PriceListStatus, PRICE_LISTS, idx),
            valid_from=valid_from,
            valid_to=valid_to,
            # A missing creation stamp sorts as oldest and stays stable across reloads
            created_at=created_at if created_at is not None else EPOCH,
        )

    assignments: dict[str, list[PartnerAssignment]] = {}
    df = tables[ASSIGNMENTS]
    for idx, row in df.iterrows():
        list_id = row['price_list_id']
        if list_id not in price_lists:
            logger.warning(
                "Skipping %s line %d: unknown price list '%s'", ASSIGNMENTS, _line(idx), list_id
            )
            continue
        if not row['partner_id']:
            raise CatalogLoadError("Missing partner id", ASSIGNMENTS, _line(idx))
        override = row.get('override_priority', '')
        assignments.setdefault(list_id, []).append(PartnerAssignment(
            partner_id=row['partner_id'],
            partner_name=row.get('partner_name') or None,
            status=_parse_status(row.get('status', ''), PartnerAssignmentStatus, ASSIGNMENTS, idx),
            valid_from=_parse_when(row.get('valid_from', ''), 'valid_from', ASSIGNMENTS, idx),
            valid_to=_parse_when(row.get('valid_to', ''), 'valid_to', ASSIGNMENTS, idx),
            override_priority=(
                _parse_int(override, 'override_priority', ASSIGNMENTS, idx, 0) if override else None
            ),
        ))

    for list_id, links in assignments.items():
        price_lists[list_id].partner_assignments = tuple(links)

    seen_entries = set()
    df = tables[ENTRIES]
    for idx, row in df.iterrows():
        list_id = row['price_list_id']
        price_list = price_lists.get(list_id)
        if price_list is None:
            logger.warning(
                "Skipping %s line %d: unknown price list '%s'", ENTRIES, _line(idx), list_id
            )
            continue

        entry_id = row['id']
        if not entry_id or not row['product_id']:
            raise CatalogLoadError("Missing entry id or product id", ENTRIES, _line(idx))
        if entry_id in seen_entries:
            raise CatalogLoadError(f"Duplicate entry id '{entry_id}'", ENTRIES, _line(idx))
        seen_entries.add(entry_id)

        try:
            price = Decimal(row['price'])
        except InvalidOperation:
            raise CatalogLoadError(f"Price is not a decimal: {row['price']!r}", ENTRIES, _line(idx)) from None
        if not price.is_finite():
            raise CatalogLoadError(f"Price is not a decimal: {row['price']!r}", ENTRIES, _line(idx))

        min_quantity = _parse_int(row.get('min_quantity', ''), 'min_quantity', ENTRIES, idx, 1)
        max_quantity = _parse_int(row.get('max_quantity', ''), 'max_quantity', ENTRIES, idx, 0)
        if min_quantity < 0 or max_quantity < 0:
            raise CatalogLoadError("Quantity bounds must not be negative", ENTRIES, _line(idx))
        # 0 is stored by some sources to mean "no minimum"
        min_quantity = max(min_quantity, 1)
        if max_quantity != 0 and max_quantity < min_quantity:
            raise CatalogLoadError(
                f"max_quantity {max_quantity} is below min_quantity {min_quantity}", ENTRIES, _line(idx)
            )

        price_list.add_entry(
            id=entry_id,
            product_id=row['product_id'],
            price=price,
            currency=row.get('currency') or default_currency,
            min_quantity=min_quantity,
            max_quantity=max_quantity,
            status=_parse_status(row.get('status', ''), PriceListEntryStatus, ENTRIES, idx),
        )

    return list(price_lists.values())


class TabularCandidateCollector:
    """
    Collector backed by CSV files or an Excel workbook.

    Loads lazily on first fetch. Accepts a cancellation event so a caller
    can abort before a slow load starts.
    """

    accepts_cancel = True

    def __init__(self, settings: Optional[Settings] = None, autoload: bool = False):
        self.settings = settings or get_settings()
        self._snapshot: Optional[CatalogSnapshot] = None
        self._load_lock = threading.Lock()
        self.loaded_at: Optional[datetime] = None
        if autoload:
            self.reload()

    @property
    def loaded(self) -> bool:
        return self._snapshot is not None

    @property
    def snapshot(self) -> CatalogSnapshot:
        if self._snapshot is None:
            self.reload()
        return self._snapshot

    def reload(self) -> CatalogSnapshot:
        """Read all tables again and swap in the new snapshot in one step."""
        with self._load_lock:
            tables = read_tables(self.settings.data_dir, self.settings.workbook)
            price_lists = build_price_lists(tables, self.settings.default_currency)
            snapshot = CatalogSnapshot(price_lists)
            self._snapshot = snapshot
            self.loaded_at = datetime.now()

        source = self.settings.workbook or self.settings.data_dir
        logger.info(
            "Loaded %d price lists, %d entries for %d products from %s",
            len(snapshot.price_lists), snapshot.entry_count, snapshot.product_count, source
        )
        return snapshot

    def fetch_candidates(
        self,
        product_id: str,
        cancel: Optional[threading.Event] = None
    ) -> Sequence[PriceListEntry]:
        snapshot = self._snapshot
        if snapshot is None:
            if cancel is not None and cancel.is_set():
                raise ResolutionCancelled(f"Fetch for product {product_id} cancelled before load")
            snapshot = self.snapshot
        return list(snapshot.entries_for(product_id))
