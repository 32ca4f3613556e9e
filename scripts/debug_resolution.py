import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from pricelist_engine.config.settings import configure_logging, get_settings
from pricelist_engine.data.load_price_lists import TabularCandidateCollector
from pricelist_engine.engine import DefaultPricePrecedenceStrategy, PriceResolver


def debug(product_id: str, quantity: int = 1, partner_id: str = None, evaluation_date: str = None):
    configure_logging()
    settings = get_settings()
    collector = TabularCandidateCollector(settings, autoload=True)
    strategy = DefaultPricePrecedenceStrategy(higher_priority_wins=settings.higher_priority_wins)
    resolver = PriceResolver(collector, strategy)

    print(f"Resolving product {product_id} x{quantity} for partner {partner_id or '(anonymous)'}")
    report = resolver.resolve_with_trace(
        product_id, quantity, evaluation_date=evaluation_date, partner_id=partner_id
    )
    print(report.get_trace_text())

    print("\nAvailable price lists:")
    for a in report.available:
        marker = "*" if a.is_assigned_to_partner else " "
        print(f" {marker} {a.name:<30} priority={a.priority:<5} {a.price} {a.currency}")

    print("\nOutcome:")
    print(report.outcome)


if __name__ == "__main__":
    args = sys.argv[1:]
    if not args:
        print("Usage: debug_resolution.py PRODUCT_ID [QUANTITY] [PARTNER_ID] [DATE]")
        sys.exit(1)
    debug(
        args[0],
        int(args[1]) if len(args) > 1 else 1,
        args[2] if len(args) > 2 else None,
        args[3] if len(args) > 3 else None,
    )
