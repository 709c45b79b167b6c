"""
Scoping modules: catalog matching, scope assembly and pricing.
"""

from .catalog_matcher import CatalogMatcher
from .pricing import PricingEngine, calculate_estimate_totals, calculate_line_item_price
from .scope_assembly import ScopeAssembler

__all__ = [
    "CatalogMatcher",
    "PricingEngine",
    "ScopeAssembler",
    "calculate_estimate_totals",
    "calculate_line_item_price",
]
