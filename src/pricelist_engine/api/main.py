"""
Pricing API - thin HTTP controller over the price resolver.
"""
import logging
from dataclasses import asdict
from decimal import Decimal
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from ..engine import CatalogLoadError, InvalidArgumentError, ResolvedPrice
from ..engine.collector import InMemoryCandidateCollector
from ..engine.dates import parse_date
from ..data.load_price_lists import TabularCandidateCollector
from . import state

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Price List Engine API",
    description="Resolves the effective product price across overlapping price lists",
    version="1.0.0"
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ResolveRequest(BaseModel):
    product_id: str
    quantity: int = 1
    evaluation_date: Optional[str] = None
    partner_id: Optional[str] = None
    forced_price_list_id: Optional[str] = None
    strategy: Optional[str] = None
    include_trace: bool = False


class AvailablePriceListResponse(BaseModel):
    price_list_id: str
    name: str
    priority: int
    price: Decimal
    currency: str
    is_default: bool
    is_assigned_to_partner: bool


class ResolveResponse(BaseModel):
    product_id: str
    price_list_id: str
    price_list_name: Optional[str] = None
    entry_id: Optional[str] = None
    price: Decimal
    currency: str
    available: Optional[list[AvailablePriceListResponse]] = None
    trace: Optional[list[str]] = None


class InvalidateRequest(BaseModel):
    product_id: Optional[str] = None


@app.get("/")
async def root():
    return {"status": "online", "message": "Price List Engine API Active"}


@app.post("/resolve", response_model=ResolveResponse)
def resolve_price(req: ResolveRequest):
    try:
        if req.include_trace or req.strategy:
            report = state.get_resolver(req.strategy).resolve_with_trace(
                req.product_id,
                req.quantity,
                evaluation_date=req.evaluation_date,
                partner_id=req.partner_id,
                forced_price_list_id=req.forced_price_list_id,
            )
            outcome = report.outcome
        else:
            report = None
            outcome = state.get_cached_resolver().resolve(
                req.product_id,
                req.quantity,
                evaluation_date=req.evaluation_date,
                partner_id=req.partner_id,
                forced_price_list_id=req.forced_price_list_id,
            )
    except InvalidArgumentError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except CatalogLoadError as e:
        logger.error("Price list data could not be loaded: %s", e)
        raise HTTPException(status_code=503, detail=str(e))

    if not isinstance(outcome, ResolvedPrice):
        raise HTTPException(
            status_code=404,
            detail={"product_id": req.product_id, "reason": outcome.reason}
        )

    response = ResolveResponse(
        product_id=req.product_id,
        price_list_id=outcome.price_list_id,
        price_list_name=outcome.price_list_name,
        entry_id=outcome.entry_id,
        price=outcome.price,
        currency=outcome.currency,
    )
    if report is not None and req.include_trace:
        response.available = [AvailablePriceListResponse(**a.__dict__) for a in report.available]
        response.trace = report.get_trace_text().splitlines()
    return response


@app.post("/cache/invalidate")
async def invalidate_cache(req: InvalidateRequest):
    cache = state.get_cached_resolver()
    if req.product_id is not None:
        dropped = cache.invalidate_product(req.product_id)
    else:
        dropped = cache.invalidate_all()
    return {"invalidated": dropped, "product_id": req.product_id}


@app.post("/system/reload")
def reload_price_lists():
    collector = state.get_collector()
    if not isinstance(collector, TabularCandidateCollector):
        raise HTTPException(status_code=409, detail="Collector does not support reloading")
    try:
        snapshot = collector.reload()
    except CatalogLoadError as e:
        logger.error("Reload failed, keeping previous snapshot: %s", e)
        raise HTTPException(status_code=409, detail=str(e))
    dropped = state.get_cached_resolver().invalidate_all()
    return {
        "price_lists": len(snapshot.price_lists),
        "entries": snapshot.entry_count,
        "cache_invalidated": dropped,
    }


def _loaded_snapshot(collector):
    if isinstance(collector, InMemoryCandidateCollector):
        return collector.snapshot
    if isinstance(collector, TabularCandidateCollector) and collector.loaded:
        return collector.snapshot
    return None


@app.get("/system/status")
def get_status():
    collector = state.get_collector()
    cache = state.get_cached_resolver()
    snapshot = _loaded_snapshot(collector)

    return {
        "engine_active": True,
        "collector": type(collector).__name__,
        "price_lists_count": len(snapshot.price_lists) if snapshot else None,
        "entries_count": snapshot.entry_count if snapshot else None,
        "strategies": state.get_registry().names(),
        "cache_size": len(cache),
        "cache_hits": cache.hits,
        "cache_misses": cache.misses,
    }


@app.get("/system/validate")
def validate_price_lists(evaluation_date: Optional[str] = None):
    """Precedence diagnostics over the current snapshot, loading it if needed."""
    collector = state.get_collector()
    try:
        now = parse_date(evaluation_date)
        if isinstance(collector, TabularCandidateCollector):
            snapshot = collector.snapshot
        else:
            snapshot = _loaded_snapshot(collector)
    except InvalidArgumentError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except CatalogLoadError as e:
        logger.error("Price list data could not be loaded: %s", e)
        raise HTTPException(status_code=503, detail=str(e))
    if snapshot is None:
        raise HTTPException(status_code=409, detail="Collector does not expose a snapshot")

    strategy = state.get_registry().default
    report = snapshot.validate(now, getattr(strategy, 'higher_priority_wins', True))
    return {
        "is_valid": report.is_valid,
        "checked": report.checked,
        "active": report.active,
        "defaults": report.defaults,
        "expired": report.expired,
        "recommended_default_id": report.recommended_default_id,
        "issues": [asdict(f) for f in report.issues],
        "warnings": [asdict(f) for f in report.warnings],
    }
