"""
Price List Engine Package

Resolves the effective price of a product from overlapping price lists,
using partner assignment → validity window → quantity bracket → precedence.
"""

__version__ = "1.0.0"
