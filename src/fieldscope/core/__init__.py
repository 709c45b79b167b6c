"""
Core components for FieldScope.
"""

from .codes import CatalogCodeParser, ParsedCode, get_parser
from .config import EngineSettings, load_settings
from .models import (
    CatalogEntry,
    CompanionRules,
    DamageObservation,
    InspectionRoom,
    PricedLineItem,
    Provenance,
    ScopeConditions,
    ScopeItem,
    TradeCode,
)
from .quantities import QuantityFormula, QuantityResult, derive_quantity
from .rule_engine import EstimateRule, RuleEngine

__all__ = [
    # Models
    "CatalogEntry",
    "CompanionRules",
    "DamageObservation",
    "InspectionRoom",
    "PricedLineItem",
    "Provenance",
    "ScopeConditions",
    "ScopeItem",
    "TradeCode",
    # Configuration
    "EngineSettings",
    "load_settings",
    # Quantities
    "QuantityFormula",
    "QuantityResult",
    "derive_quantity",
    # Rule Engine
    "EstimateRule",
    "RuleEngine",
    # Code Parser
    "CatalogCodeParser",
    "ParsedCode",
    "get_parser",
]
