"""
Core data models for FieldScope.
Uses Pydantic for validation and serialization.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

MANUAL_FORMULA = "MANUAL"
EACH_FORMULA = "EACH"


class TradeCode(str, Enum):
    """The sixteen construction trades a catalog entry can belong to."""

    MIT = "MIT"  # Mitigation
    DEM = "DEM"  # Demolition
    DRY = "DRY"  # Drywall
    PNT = "PNT"  # Painting
    FLR = "FLR"  # Flooring
    INS = "INS"  # Insulation
    CAR = "CAR"  # Carpentry
    CAB = "CAB"  # Cabinetry
    CTR = "CTR"  # Countertops
    RFG = "RFG"  # Roofing
    WIN = "WIN"  # Windows
    EXT = "EXT"  # Exterior
    ELE = "ELE"  # Electrical
    PLM = "PLM"  # Plumbing
    HVAC = "HVAC"  # HVAC
    GEN = "GEN"  # General


class Provenance(str, Enum):
    """Why a scope item exists."""

    DAMAGE_TRIGGERED = "damage_triggered"
    COMPANION_AUTO = "companion_auto"
    MANUAL = "manual"
    SUPPLEMENTAL_NEW = "supplemental_new"
    SUPPLEMENTAL_MODIFIED = "supplemental_modified"


class ScopeItemStatus(str, Enum):
    """Lifecycle status of a scope item."""

    ACTIVE = "active"
    REMOVED = "removed"


class FindingSeverity(str, Enum):
    """Severity of an estimate check finding."""

    WARNING = "warning"
    ERROR = "error"


# =============================================================================
# Catalog reference data
# =============================================================================


class ScopeConditions(BaseModel):
    """Optional filter restricting when a catalog entry applies."""

    damage_types: list[str] = Field(default_factory=list)
    severity: list[str] = Field(default_factory=list)
    room_types: list[str] = Field(default_factory=list)
    zone_types: list[str] = Field(default_factory=list)


class CompanionRules(BaseModel):
    """Catalog codes related to an entry."""

    requires: list[str] = Field(default_factory=list)
    auto_adds: list[str] = Field(default_factory=list)
    excludes: list[str] = Field(default_factory=list)


class CatalogEntry(BaseModel):
    """A line item in the estimating catalog."""

    model_config = ConfigDict(frozen=True)

    code: str
    description: str
    unit: str = "EA"
    trade_code: TradeCode
    default_waste_factor: Decimal | None = Field(default=None, ge=0)
    activity_type: str = "replace"
    coverage_type: str = "A"
    quantity_formula: str | None = None
    scope_conditions: ScopeConditions | None = None
    companion_rules: CompanionRules | None = None
    xact_selector: str | None = None
    xact_category_code: str | None = None
    is_active: bool = True


class RegionalPrice(BaseModel):
    """Per-unit cost rates for a catalog code in a pricing region."""

    line_item_code: str
    region_id: str
    material_cost: Decimal | None = None
    labor_cost: Decimal | None = None
    equipment_cost: Decimal | None = None
    effective_date: date | None = None


# =============================================================================
# Inspection data
# =============================================================================


class RoomDimensions(BaseModel):
    """Room geometry in feet."""

    length: float | None = Field(default=None, ge=0)
    width: float | None = Field(default=None, ge=0)
    height: float | None = Field(default=None, ge=0)


class InspectionRoom(BaseModel):
    """A room (or exterior elevation) recorded during an inspection."""

    id: int
    session_id: int
    name: str
    room_type: str | None = None
    structure: str | None = None
    dimensions: RoomDimensions | None = None
    damage_count: int = 0
    photo_count: int = 0
    status: str = "in_progress"

    @property
    def zone_type(self) -> str:
        """Zone derived from the room type prefix."""
        room_type = self.room_type or ""
        if room_type.startswith("interior_"):
            return "interior"
        if room_type.startswith("exterior_"):
            return "exterior"
        return "unknown"


class DamageObservation(BaseModel):
    """A damage observation; immutable once recorded."""

    model_config = ConfigDict(frozen=True)

    id: int
    room_id: int
    session_id: int
    damage_type: str | None = None
    severity: str | None = None
    location: str | None = None
    description: str = ""


class Opening(BaseModel):
    """A door, window or other wall opening in a room."""

    room_id: int
    opening_type: str
    width_ft: float = 0
    height_ft: float = 0
    quantity: int = 1
    opens_into: str | None = None
    goes_to_floor: bool = False
    goes_to_ceiling: bool = False


# =============================================================================
# Scope
# =============================================================================


class ScopeItemDraft(BaseModel):
    """A scope item ready to be persisted."""

    session_id: int
    room_id: int
    damage_id: int | None = None
    catalog_code: str
    description: str = ""
    trade_code: TradeCode
    quantity: float
    unit: str = "EA"
    quantity_formula: str | None = None
    provenance: Provenance = Provenance.DAMAGE_TRIGGERED
    coverage_type: str = "A"
    activity_type: str = "replace"
    waste_factor: Decimal | None = None
    status: ScopeItemStatus = ScopeItemStatus.ACTIVE
    parent_scope_item_id: int | None = None


class ScopeItem(ScopeItemDraft):
    """A persisted scope item. The parent link is an id, not a reference."""

    id: int
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_active(self) -> bool:
        return self.status == ScopeItemStatus.ACTIVE


class ManualQuantityItem(BaseModel):
    """A matched catalog entry whose quantity the adjuster must supply."""

    catalog_code: str
    description: str
    unit: str
    reason: str


class ScopeAssemblyResult(BaseModel):
    """Outcome of assembling scope for one damage observation."""

    created: list[ScopeItem] = Field(default_factory=list)
    companion_items: list[ScopeItem] = Field(default_factory=list)
    manual_quantity_needed: list[ManualQuantityItem] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def all_items(self) -> list[ScopeItem]:
        return [*self.created, *self.companion_items]


class ScopeSummary(BaseModel):
    """Session-level aggregation of scope items."""

    session_id: int
    total_items: int = 0
    active_items: int = 0
    removed_items: int = 0
    companion_items: int = 0
    items_by_trade: dict[str, int] = Field(default_factory=dict)
    items_by_room: dict[int, int] = Field(default_factory=dict)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


# =============================================================================
# Pricing
# =============================================================================


class UnitPriceBreakdown(BaseModel):
    """Per-unit costs after waste scaling."""

    material_cost: Decimal = Decimal("0")
    labor_cost: Decimal = Decimal("0")
    equipment_cost: Decimal = Decimal("0")
    waste_factor: Decimal = Decimal("0")
    unit_price: Decimal = Decimal("0")


class PricedLineItem(BaseModel):
    """A priced line of the estimate. Derived on demand, never stored."""

    code: str
    description: str
    unit: str
    quantity: float
    unit_price_breakdown: UnitPriceBreakdown
    total_price: Decimal
    trade_code: TradeCode

    # Export context, present when priced from a scope item
    scope_item_id: int | None = None
    room_id: int | None = None
    provenance: Provenance | None = None
    action: str | None = None
    selector: str | None = None


class EstimateTotals(BaseModel):
    """Roll-up of an estimate's priced line items."""

    subtotal_material: Decimal = Decimal("0")
    subtotal_labor: Decimal = Decimal("0")
    subtotal_equipment: Decimal = Decimal("0")
    subtotal: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    waste_included: Decimal = Decimal("0")
    grand_total: Decimal = Decimal("0")
    trades_involved: list[TradeCode] = Field(default_factory=list)
    qualifies_for_op: bool = False
    overhead_amount: Decimal = Decimal("0")
    profit_amount: Decimal = Decimal("0")
    total_with_op: Decimal = Decimal("0")


class EstimateFinding(BaseModel):
    """Single result of an estimate check."""

    rule_id: str
    rule_name: str
    severity: FindingSeverity
    message: str
    affected_codes: list[str] = Field(default_factory=list)


class ValidationResult(BaseModel):
    """Outcome of validating an estimate."""

    valid: bool = True
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    findings: list[EstimateFinding] = Field(default_factory=list)


class CompanionSuggestion(BaseModel):
    """Advisory suggestion for a possibly missing companion item."""

    code: str
    reason: str


class EstimateReport(BaseModel):
    """Priced estimate with totals, checks and suggestions."""

    line_items: list[PricedLineItem] = Field(default_factory=list)
    totals: EstimateTotals = Field(default_factory=EstimateTotals)
    validation: ValidationResult = Field(default_factory=ValidationResult)
    suggestions: list[CompanionSuggestion] = Field(default_factory=list)


# =============================================================================
# Claim context used by the interchange export
# =============================================================================


class Claim(BaseModel):
    """Claim header data."""

    id: int
    claim_number: str
    insured_name: str | None = None
    property_address: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    date_of_loss: str | None = None
    peril_type: str | None = None
    policy_number: str | None = None
    status: str = "draft"


class InspectionSession(BaseModel):
    """An inspection of a claim's property."""

    id: int
    claim_id: int
    status: str = "active"
    started_at: datetime | None = None
    completed_at: datetime | None = None


class CoverageSnapshot(BaseModel):
    """Coverage terms summarized in the pre-inspection briefing."""

    policy_number: str | None = None
    deductible: Decimal | None = None
    coverage_a: Decimal | None = None
    coverage_b: Decimal | None = None
    coverage_c: Decimal | None = None
    coverage_d: Decimal | None = None


class Briefing(BaseModel):
    """Pre-inspection briefing for a claim."""

    claim_id: int
    coverage_snapshot: CoverageSnapshot | None = None
    property_profile: dict[str, Any] = Field(default_factory=dict)
    peril_analysis: dict[str, Any] = Field(default_factory=dict)
    red_flags: list[str] = Field(default_factory=list)
