"""
Pricing Engine.
Prices scope items with regional rates and rolls them into estimate totals.
"""

import logging
from collections.abc import Sequence
from decimal import Decimal

from ..core.codes import get_parser
from ..core.config import EngineSettings
from ..core.models import (
    CatalogEntry,
    CompanionSuggestion,
    EstimateReport,
    EstimateTotals,
    FindingSeverity,
    PricedLineItem,
    RegionalPrice,
    ScopeItem,
    TradeCode,
    UnitPriceBreakdown,
    ValidationResult,
)
from ..core.rule_engine import EstimateRule, RuleEngine
from ..core.storage import ScopeRepository
from ..core.trades import ACTIVITY_ACTION_CODES

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")

DEFAULT_TAX_RATE = Decimal("0.08")
DEFAULT_OVERHEAD_PCT = Decimal("0.10")
DEFAULT_PROFIT_PCT = Decimal("0.10")
OP_TRADE_THRESHOLD = 3

Number = Decimal | float | int


def _dec(value: Number) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _rate(value: Decimal | None) -> Decimal:
    return value if value is not None else ZERO


def calculate_line_item_price(
    entry: CatalogEntry,
    regional_price: RegionalPrice | None,
    quantity: float,
    waste_override: Number | None = None,
) -> PricedLineItem:
    """
    Price a catalog entry for a quantity.

    Waste scales every cost component, not only materials:
    ``unit_price = (material + labor + equipment) * (1 + waste / 100)``.

    Args:
        entry: Catalog entry being priced
        regional_price: Regional rates; None prices at zero
        quantity: Quantity in the entry's unit
        waste_override: Waste percent replacing the catalog default

    Returns:
        Priced line item with the waste-scaled unit breakdown
    """
    if waste_override is not None:
        waste_factor = _dec(waste_override)
    else:
        waste_factor = entry.default_waste_factor or ZERO

    scale = 1 + waste_factor / HUNDRED

    material = _rate(regional_price.material_cost) if regional_price else ZERO
    labor = _rate(regional_price.labor_cost) if regional_price else ZERO
    equipment = _rate(regional_price.equipment_cost) if regional_price else ZERO

    unit_price = (material + labor + equipment) * scale

    return PricedLineItem(
        code=entry.code,
        description=entry.description,
        unit=entry.unit,
        quantity=quantity,
        unit_price_breakdown=UnitPriceBreakdown(
            material_cost=material * scale,
            labor_cost=labor * scale,
            equipment_cost=equipment * scale,
            waste_factor=waste_factor,
            unit_price=unit_price,
        ),
        total_price=unit_price * _dec(quantity),
        trade_code=entry.trade_code,
    )


def calculate_estimate_totals(
    items: Sequence[PricedLineItem],
    tax_rate: Number = DEFAULT_TAX_RATE,
    overhead_pct: Number = DEFAULT_OVERHEAD_PCT,
    profit_pct: Number = DEFAULT_PROFIT_PCT,
    op_trade_threshold: int = OP_TRADE_THRESHOLD,
) -> EstimateTotals:
    """
    Roll priced items into estimate totals.

    Overhead and profit apply only when the estimate touches at least
    ``op_trade_threshold`` distinct trades.
    """
    subtotal_material = ZERO
    subtotal_labor = ZERO
    subtotal_equipment = ZERO
    waste_included = ZERO
    trades: dict[TradeCode, None] = {}

    for item in items:
        breakdown = item.unit_price_breakdown
        quantity = _dec(item.quantity)

        subtotal_material += breakdown.material_cost * quantity
        subtotal_labor += breakdown.labor_cost * quantity
        subtotal_equipment += breakdown.equipment_cost * quantity
        trades.setdefault(item.trade_code, None)

        if breakdown.waste_factor > 0:
            scale = 1 + breakdown.waste_factor / HUNDRED
            base_price = (
                breakdown.material_cost / scale
                + breakdown.labor_cost / scale
                + breakdown.equipment_cost / scale
            ) * quantity
            waste_included += item.total_price - base_price

    subtotal = subtotal_material + subtotal_labor + subtotal_equipment
    tax_amount = subtotal * _dec(tax_rate)

    trades_involved = list(trades)
    qualifies_for_op = len(trades_involved) >= op_trade_threshold
    overhead_amount = subtotal * _dec(overhead_pct) if qualifies_for_op else ZERO
    profit_amount = subtotal * _dec(profit_pct) if qualifies_for_op else ZERO

    return EstimateTotals(
        subtotal_material=subtotal_material,
        subtotal_labor=subtotal_labor,
        subtotal_equipment=subtotal_equipment,
        subtotal=subtotal,
        tax_amount=tax_amount,
        waste_included=waste_included,
        grand_total=subtotal + tax_amount,
        trades_involved=trades_involved,
        qualifies_for_op=qualifies_for_op,
        overhead_amount=overhead_amount,
        profit_amount=profit_amount,
        total_with_op=subtotal + tax_amount + overhead_amount + profit_amount,
    )


# =============================================================================
# Estimate checks
# =============================================================================


def _check_duplicates(items: list[PricedLineItem]) -> list[tuple[str, list[str]]]:
    seen: set[str] = set()
    results: list[tuple[str, list[str]]] = []
    for item in items:
        if item.code in seen:
            results.append((f"Duplicate item: {item.code} appears multiple times", [item.code]))
        seen.add(item.code)
    return results


def _check_drywall_without_demo(items: list[PricedLineItem]) -> list[tuple[str, list[str]]]:
    trades = {item.trade_code for item in items}
    if TradeCode.DRY in trades and TradeCode.DEM not in trades:
        codes = [item.code for item in items if item.trade_code == TradeCode.DRY]
        return [
            (
                "Drywall work (DRY) present without Demolition (DEM): verify existing condition",
                codes,
            )
        ]
    return []


def _check_paint_without_drywall(items: list[PricedLineItem]) -> list[tuple[str, list[str]]]:
    trades = {item.trade_code for item in items}
    if TradeCode.PNT in trades and TradeCode.DRY not in trades:
        codes = [item.code for item in items if item.trade_code == TradeCode.PNT]
        return [("Painting (PNT) present without Drywall (DRY): verify surface prep", codes)]
    return []


def _check_quantities(items: list[PricedLineItem]) -> list[tuple[str, list[str]]]:
    return [
        (f"Item {item.code} has invalid quantity", [item.code])
        for item in items
        if not item.quantity or item.quantity <= 0
    ]


def build_estimate_rules(engine: RuleEngine | None = None) -> RuleEngine:
    """Register the standard estimate checks."""
    engine = engine or RuleEngine()

    engine.add_rule(
        EstimateRule(
            rule_id="EST-001",
            name="Duplicate Line Item",
            description="Flag catalog codes that appear more than once",
            severity=FindingSeverity.WARNING,
            check=_check_duplicates,
        )
    )
    engine.add_rule(
        EstimateRule(
            rule_id="EST-002",
            name="Drywall Without Demolition",
            description="Drywall replacement usually follows demolition",
            severity=FindingSeverity.WARNING,
            check=_check_drywall_without_demo,
        )
    )
    engine.add_rule(
        EstimateRule(
            rule_id="EST-003",
            name="Painting Without Drywall",
            description="Painting usually follows surface preparation",
            severity=FindingSeverity.WARNING,
            check=_check_paint_without_drywall,
        )
    )
    engine.add_rule(
        EstimateRule(
            rule_id="EST-004",
            name="Invalid Quantity",
            description="Every line item needs a positive quantity",
            severity=FindingSeverity.ERROR,
            check=_check_quantities,
        )
    )
    return engine


def validate_estimate(
    items: Sequence[PricedLineItem], rule_engine: RuleEngine | None = None
) -> ValidationResult:
    """
    Run sequencing and quantity checks over an estimate.

    Only errors make the estimate invalid; warnings are advisory.
    """
    engine = rule_engine or build_estimate_rules()
    findings = engine.execute_all(list(items))

    errors = [f.message for f in findings if f.severity == FindingSeverity.ERROR]
    warnings = [f.message for f in findings if f.severity == FindingSeverity.WARNING]

    return ValidationResult(
        valid=not errors,
        errors=errors,
        warnings=warnings,
        findings=findings,
    )


# =============================================================================
# Companion suggestions
# =============================================================================

ROOFING_COMPANIONS: tuple[tuple[str, str], ...] = (
    ("RFG-FELT-SQ", "Roofing felt underlayment required with shingle replacement"),
    ("RFG-ICE-SQ", "Ice & water shield recommended at eaves and valleys"),
    ("RFG-DRIP-LF", "Drip edge typically replaced with new shingles"),
    ("RFG-RIDG-LF", "Ridge cap shingles needed for roof replacement"),
)
DRYWALL_COMPANIONS: tuple[tuple[str, str], ...] = (
    ("DRY-TAPE-SF", "Tape and finish required for new drywall"),
    ("DRY-TEXT-SF", "Texture match required after drywall replacement"),
)
FLOORING_COMPANIONS: tuple[tuple[str, str], ...] = (
    ("FLR-ULAY-SF", "Underlayment typically required with new flooring"),
    ("FLR-BASE-LF", "Baseboard often replaced or reinstalled with new flooring"),
)
PAINT_COMPANIONS: tuple[tuple[str, str], ...] = (
    ("PNT-WALL-SF", "Paint required after drywall replacement"),
    ("PNT-PRIM-SF", "Primer/sealer recommended for new drywall"),
)
CARPET_CODE = "FLR-CAR-SF"
CARPET_PAD = ("FLR-CAR-PAD", "Carpet pad required with carpet installation")
HAUL_OFF = ("DEM-HAUL-EA", "Debris haul-off needed for demolished materials")
FLOOR_PROTECTION = ("GEN-PROT-SF", "Floor protection recommended for multi-trade projects")

FLOORING_PREFIXES = ("FLR-CAR", "FLR-VIN", "FLR-LAM", "FLR-HWD")
DRYWALL_FINISH_PREFIXES = ("DRY-TAPE", "DRY-TEXT")


def get_companion_suggestions(items: Sequence[PricedLineItem]) -> list[CompanionSuggestion]:
    """
    Suggest companion items that may be missing from an estimate.

    Advisory only; the estimate is never modified.
    """
    parser = get_parser()
    codes = {item.code for item in items}
    suggestions: list[CompanionSuggestion] = []

    def suggest_missing(candidates: Sequence[tuple[str, str]]) -> None:
        for code, reason in candidates:
            if code not in codes:
                suggestions.append(CompanionSuggestion(code=code, reason=reason))

    roofing_companion_codes = {code for code, _ in ROOFING_COMPANIONS}
    has_roofing = any(
        item.trade_code == TradeCode.RFG and item.code not in roofing_companion_codes
        for item in items
    )
    if has_roofing:
        suggest_missing(ROOFING_COMPANIONS)

    has_drywall = any(
        parser.has_prefix(item.code, "DRY-")
        and not parser.has_prefix(item.code, *DRYWALL_FINISH_PREFIXES)
        for item in items
    )
    if has_drywall:
        suggest_missing(DRYWALL_COMPANIONS)

    if any(parser.has_prefix(item.code, *FLOORING_PREFIXES) for item in items):
        suggest_missing(FLOORING_COMPANIONS)

    if CARPET_CODE in codes:
        suggest_missing((CARPET_PAD,))

    has_painting = any(
        item.trade_code == TradeCode.PNT or parser.has_prefix(item.code, "PNT-")
        for item in items
    )
    if has_drywall and not has_painting:
        suggest_missing(PAINT_COMPANIONS)

    if any(parser.has_prefix(item.code, "DEM-") for item in items):
        suggest_missing((HAUL_OFF,))

    code_trades = {parser.trade_prefix(item.code) for item in items}
    if len(code_trades) >= OP_TRADE_THRESHOLD:
        suggest_missing((FLOOR_PROTECTION,))

    return suggestions


# =============================================================================
# Engine
# =============================================================================


class PricingEngine:
    """
    Prices scope items with regional rates and builds estimate reports.
    """

    def __init__(
        self,
        repository: ScopeRepository,
        settings: EngineSettings | None = None,
        rule_engine: RuleEngine | None = None,
    ) -> None:
        self.repository = repository
        self.settings = settings or EngineSettings()
        self.rule_engine = rule_engine or build_estimate_rules()
        self.parser = get_parser()

    def price_scope_items(
        self, scope_items: Sequence[ScopeItem], region_id: str | None = None
    ) -> list[PricedLineItem]:
        """
        Price the active scope items with the region's rates.

        A missing regional price row prices the item at zero. The scope
        item's stored waste factor wins over the catalog default.
        """
        region = region_id or self.settings.default_region_id
        priced: list[PricedLineItem] = []

        for item in scope_items:
            if not item.is_active:
                continue

            entry = self.repository.get_catalog_entry(item.catalog_code)
            if entry is None:
                logger.debug("Pricing %s from its scope item snapshot", item.catalog_code)
                entry = CatalogEntry(
                    code=item.catalog_code,
                    description=item.description,
                    unit=item.unit,
                    trade_code=item.trade_code,
                    default_waste_factor=item.waste_factor,
                    activity_type=item.activity_type,
                )

            regional_price = self.repository.get_regional_price(item.catalog_code, region)
            if regional_price is None:
                logger.debug("No %s price for %s; using zero rates", region, item.catalog_code)

            line = calculate_line_item_price(
                entry, regional_price, item.quantity, waste_override=item.waste_factor
            )
            priced.append(
                line.model_copy(
                    update={
                        "scope_item_id": item.id,
                        "room_id": item.room_id,
                        "provenance": item.provenance,
                        "action": ACTIVITY_ACTION_CODES.get(item.activity_type),
                        "selector": entry.xact_selector or self.parser.selector(entry.code),
                    }
                )
            )

        return priced

    def calculate_totals(self, items: Sequence[PricedLineItem]) -> EstimateTotals:
        """Estimate totals with the configured tax and O&P parameters."""
        return calculate_estimate_totals(
            items,
            tax_rate=self.settings.tax_rate,
            overhead_pct=self.settings.overhead_pct,
            profit_pct=self.settings.profit_pct,
            op_trade_threshold=self.settings.op_trade_threshold,
        )

    def validate(self, items: Sequence[PricedLineItem]) -> ValidationResult:
        """Run the registered estimate checks."""
        return validate_estimate(items, self.rule_engine)

    def build_report(self, items: Sequence[PricedLineItem]) -> EstimateReport:
        """Totals, checks and companion suggestions for priced items."""
        return EstimateReport(
            line_items=list(items),
            totals=self.calculate_totals(items),
            validation=self.validate(items),
            suggestions=get_companion_suggestions(items),
        )
