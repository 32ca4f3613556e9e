"""Exception types raised by the price resolution engine."""


class PriceResolutionError(Exception):
    """Base class for errors raised while resolving a price."""


class InvalidArgumentError(PriceResolutionError, ValueError):
    """The caller passed a quantity or evaluation date the engine cannot use."""


class ResolutionCancelled(PriceResolutionError):
    """The caller's cancellation signal was set before resolution finished."""


class CatalogLoadError(PriceResolutionError):
    """Price list source data could not be loaded into a snapshot."""

    def __init__(self, message: str, table: str = None, row: int = None):
        self.table = table
        self.row = row
        location = ""
        if table:
            location = f"[{table}" + (f" row {row}" if row is not None else "") + "] "
        super().__init__(f"{location}{message}")
