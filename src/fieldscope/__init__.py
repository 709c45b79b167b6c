"""
FieldScope.

Inspection scoping for property insurance claims: assembles scope items
from damage observations, prices them regionally, and exports estimates
as interchange archives.
"""

from .core.config import EngineSettings, load_settings
from .core.exceptions import (
    DuplicateActiveScopeItemError,
    ExportError,
    FieldScopeError,
    RecordNotFoundError,
)
from .core.models import (
    CatalogEntry,
    Claim,
    DamageObservation,
    EstimateReport,
    EstimateTotals,
    InspectionRoom,
    InspectionSession,
    PricedLineItem,
    Provenance,
    RegionalPrice,
    ScopeAssemblyResult,
    ScopeItem,
    TradeCode,
)
from .core.storage import InMemoryScopeRepository, ScopeRepository
from .engine import FieldScopeEngine, assemble_scope, generate_interchange_archive
from .modules.pricing import PricingEngine
from .modules.scope_assembly import ScopeAssembler
from .reporting.interchange import InterchangeExportData, InterchangeExporter

__version__ = "0.1.0"

__all__ = [
    # Main Engine
    "FieldScopeEngine",
    "assemble_scope",
    "generate_interchange_archive",
    # Configuration
    "EngineSettings",
    "load_settings",
    # Errors
    "DuplicateActiveScopeItemError",
    "ExportError",
    "FieldScopeError",
    "RecordNotFoundError",
    # Models
    "CatalogEntry",
    "Claim",
    "DamageObservation",
    "EstimateReport",
    "EstimateTotals",
    "InspectionRoom",
    "InspectionSession",
    "PricedLineItem",
    "Provenance",
    "RegionalPrice",
    "ScopeAssemblyResult",
    "ScopeItem",
    "TradeCode",
    # Components
    "InMemoryScopeRepository",
    "InterchangeExportData",
    "InterchangeExporter",
    "PricingEngine",
    "ScopeAssembler",
    "ScopeRepository",
]
