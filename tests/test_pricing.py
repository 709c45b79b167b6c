"""
Tests for pricing, estimate totals, validation and suggestions.
"""

from decimal import Decimal

import pytest

from fieldscope.core.config import EngineSettings
from fieldscope.core.models import (
    CatalogEntry,
    DamageObservation,
    FindingSeverity,
    InspectionRoom,
    PricedLineItem,
    Provenance,
    RegionalPrice,
    ScopeItemDraft,
    TradeCode,
    UnitPriceBreakdown,
)
from fieldscope.core.storage import InMemoryScopeRepository
from fieldscope.modules.pricing import (
    PricingEngine,
    build_estimate_rules,
    calculate_estimate_totals,
    calculate_line_item_price,
    get_companion_suggestions,
    validate_estimate,
)
from fieldscope.modules.scope_assembly import ScopeAssembler

SESSION_ID = 10


def _entry(code: str, trade: TradeCode, waste: str | None = None) -> CatalogEntry:
    return CatalogEntry(
        code=code,
        description=code,
        unit="SF",
        trade_code=trade,
        default_waste_factor=Decimal(waste) if waste else None,
    )


def _price(code: str, material: str, labor: str, equipment: str = "0") -> RegionalPrice:
    return RegionalPrice(
        line_item_code=code,
        region_id="US_NATIONAL",
        material_cost=Decimal(material),
        labor_cost=Decimal(labor),
        equipment_cost=Decimal(equipment),
    )


def _priced(code: str, trade: TradeCode, quantity: float = 10) -> PricedLineItem:
    return PricedLineItem(
        code=code,
        description=code,
        unit="SF",
        quantity=quantity,
        unit_price_breakdown=UnitPriceBreakdown(),
        total_price=Decimal("0"),
        trade_code=trade,
    )


@pytest.fixture
def drywall_item() -> PricedLineItem:
    """DRY-12-SF at 1.65/SF (10% waste) for 100 SF."""
    return calculate_line_item_price(
        _entry("DRY-12-SF", TradeCode.DRY, "10"),
        _price("DRY-12-SF", "0.52", "0.92", "0.06"),
        100,
    )


class TestCalculateLineItemPrice:
    """Tests for single line item pricing."""

    def test_waste_scales_every_component(self, drywall_item: PricedLineItem) -> None:
        """Test the worked drywall example."""
        breakdown = drywall_item.unit_price_breakdown

        assert breakdown.unit_price == Decimal("1.65")
        assert drywall_item.total_price == Decimal("165.00")
        assert breakdown.material_cost == Decimal("0.572")
        assert breakdown.labor_cost == Decimal("1.012")
        assert breakdown.equipment_cost == Decimal("0.066")
        assert breakdown.waste_factor == Decimal("10")

    def test_carries_catalog_identity(self, drywall_item: PricedLineItem) -> None:
        """Test the priced item keeps code, unit, trade and quantity."""
        assert drywall_item.code == "DRY-12-SF"
        assert drywall_item.unit == "SF"
        assert drywall_item.trade_code == TradeCode.DRY
        assert drywall_item.quantity == 100

    def test_missing_regional_price(self) -> None:
        """Test a missing price row prices at zero."""
        item = calculate_line_item_price(_entry("DRY-12-SF", TradeCode.DRY, "10"), None, 100)

        assert item.unit_price_breakdown.unit_price == 0
        assert item.total_price == 0

    def test_waste_override(self) -> None:
        """Test an explicit waste factor replaces the catalog default."""
        item = calculate_line_item_price(
            _entry("DRY-12-SF", TradeCode.DRY, "10"),
            _price("DRY-12-SF", "0.52", "0.92", "0.06"),
            100,
            waste_override=0,
        )

        assert item.unit_price_breakdown.unit_price == Decimal("1.50")
        assert item.total_price == Decimal("150.00")

    def test_null_components(self) -> None:
        """Test missing cost components count as zero."""
        price = RegionalPrice(line_item_code="MIT-DRY-DA", region_id="US_NATIONAL", equipment_cost=Decimal("70"))
        item = calculate_line_item_price(_entry("MIT-DRY-DA", TradeCode.MIT), price, 3)

        assert item.unit_price_breakdown.unit_price == Decimal("70")
        assert item.total_price == Decimal("210")

    def test_fractional_quantity(self) -> None:
        """Test float quantities are priced exactly."""
        item = calculate_line_item_price(
            _entry("FLR-VIN-SF", TradeCode.FLR), _price("FLR-VIN-SF", "1.00", "0.50"), 13.33
        )
        assert item.total_price == Decimal("19.995")


class TestCalculateEstimateTotals:
    """Tests for estimate roll-ups."""

    @pytest.fixture
    def three_trade_items(self, drywall_item: PricedLineItem) -> list[PricedLineItem]:
        """DRY 165.00, PNT 100.00 and FLR 100.00."""
        paint = calculate_line_item_price(
            _entry("PNT-WALL-SF", TradeCode.PNT), _price("PNT-WALL-SF", "0.40", "0.60"), 100
        )
        floor = calculate_line_item_price(
            _entry("FLR-VIN-SF", TradeCode.FLR), _price("FLR-VIN-SF", "1.50", "0.50"), 50
        )
        return [drywall_item, paint, floor]

    def test_three_trades_qualify_for_op(self, three_trade_items: list[PricedLineItem]) -> None:
        """Test overhead and profit apply at three distinct trades."""
        totals = calculate_estimate_totals(three_trade_items)

        assert totals.subtotal == Decimal("365")
        assert totals.tax_amount == Decimal("29.20")
        assert totals.grand_total == Decimal("394.20")
        assert totals.qualifies_for_op is True
        assert totals.overhead_amount == Decimal("36.50")
        assert totals.profit_amount == Decimal("36.50")
        assert totals.total_with_op == Decimal("467.20")
        assert totals.trades_involved == [TradeCode.DRY, TradeCode.PNT, TradeCode.FLR]

    def test_subtotal_components(self, three_trade_items: list[PricedLineItem]) -> None:
        """Test component subtotals add up to the subtotal."""
        totals = calculate_estimate_totals(three_trade_items)

        assert totals.subtotal_material == Decimal("172.2")
        assert totals.subtotal_labor == Decimal("186.2")
        assert totals.subtotal_equipment == Decimal("6.6")
        assert (
            totals.subtotal_material + totals.subtotal_labor + totals.subtotal_equipment
            == totals.subtotal
        )

    def test_waste_included(self, three_trade_items: list[PricedLineItem]) -> None:
        """Test the waste portion is backed out of waste-bearing items."""
        totals = calculate_estimate_totals(three_trade_items)
        assert totals.waste_included == Decimal("15")

    def test_two_trades_do_not_qualify(self) -> None:
        """Test {DRY, DRY, PNT} counts two trades and no O&P."""
        items = [
            _priced("DRY-12-SF", TradeCode.DRY),
            _priced("DRY-TAPE-SF", TradeCode.DRY),
            _priced("PNT-WALL-SF", TradeCode.PNT),
        ]
        totals = calculate_estimate_totals(items)

        assert len(totals.trades_involved) == 2
        assert totals.qualifies_for_op is False
        assert totals.overhead_amount == 0
        assert totals.profit_amount == 0
        assert totals.total_with_op == totals.grand_total

    def test_custom_rates_and_threshold(self, three_trade_items: list[PricedLineItem]) -> None:
        """Test tax, O&P and threshold parameters."""
        totals = calculate_estimate_totals(
            three_trade_items,
            tax_rate=Decimal("0"),
            overhead_pct=Decimal("0.05"),
            profit_pct=Decimal("0.05"),
            op_trade_threshold=4,
        )

        assert totals.tax_amount == 0
        assert totals.qualifies_for_op is False
        assert totals.total_with_op == Decimal("365")

    def test_empty_estimate(self) -> None:
        """Test an empty estimate totals zero."""
        totals = calculate_estimate_totals([])

        assert totals.grand_total == 0
        assert totals.trades_involved == []
        assert totals.qualifies_for_op is False


class TestValidateEstimate:
    """Tests for estimate checks."""

    def test_clean_estimate(self) -> None:
        """Test drywall with demolition and no duplicates is clean."""
        result = validate_estimate(
            [_priced("DEM-DRY-SF", TradeCode.DEM), _priced("DRY-12-SF", TradeCode.DRY)]
        )

        assert result.valid is True
        assert result.errors == []
        assert result.warnings == []

    def test_duplicate_codes_warn(self) -> None:
        """Test repeated codes produce a warning."""
        result = validate_estimate([_priced("PNT-WALL-SF", TradeCode.PNT)] * 2 + [_priced("DRY-12-SF", TradeCode.DRY), _priced("DEM-DRY-SF", TradeCode.DEM)])

        assert result.valid is True
        assert result.warnings == ["Duplicate item: PNT-WALL-SF appears multiple times"]

    def test_sequencing_warnings(self) -> None:
        """Test drywall without demo and paint without drywall warn."""
        drywall_only = validate_estimate([_priced("DRY-12-SF", TradeCode.DRY)])
        paint_only = validate_estimate([_priced("PNT-WALL-SF", TradeCode.PNT)])

        assert drywall_only.warnings == [
            "Drywall work (DRY) present without Demolition (DEM): verify existing condition"
        ]
        assert paint_only.warnings == [
            "Painting (PNT) present without Drywall (DRY): verify surface prep"
        ]
        assert drywall_only.valid and paint_only.valid

    def test_invalid_quantity_is_error(self) -> None:
        """Test non-positive quantities make the estimate invalid."""
        result = validate_estimate(
            [_priced("DEM-DRY-SF", TradeCode.DEM), _priced("DRY-12-SF", TradeCode.DRY, quantity=0)]
        )

        assert result.valid is False
        assert result.errors == ["Item DRY-12-SF has invalid quantity"]
        assert result.findings[-1].severity == FindingSeverity.ERROR

    def test_disabled_rule(self) -> None:
        """Test checks can be switched off."""
        engine = build_estimate_rules()
        engine.disable_rule("EST-002")

        result = validate_estimate([_priced("DRY-12-SF", TradeCode.DRY)], engine)
        assert result.warnings == []


class TestCompanionSuggestions:
    """Tests for advisory companion suggestions."""

    def test_roofing(self) -> None:
        """Test roofing suggests the missing roofing accessories."""
        items = [_priced("RFG-300-SQ", TradeCode.RFG), _priced("RFG-FELT-SQ", TradeCode.RFG)]
        codes = [s.code for s in get_companion_suggestions(items)]
        assert codes == ["RFG-ICE-SQ", "RFG-DRIP-LF", "RFG-RIDG-LF"]

    def test_roofing_accessories_alone(self) -> None:
        """Test accessories on their own do not count as roofing."""
        assert get_companion_suggestions([_priced("RFG-FELT-SQ", TradeCode.RFG)]) == []

    def test_drywall_without_painting(self) -> None:
        """Test drywall suggests finishing and painting."""
        codes = [s.code for s in get_companion_suggestions([_priced("DRY-12-SF", TradeCode.DRY)])]
        assert codes == ["DRY-TAPE-SF", "DRY-TEXT-SF", "PNT-WALL-SF", "PNT-PRIM-SF"]

    def test_carpet(self) -> None:
        """Test carpet suggests underlayment, baseboard and pad."""
        codes = [s.code for s in get_companion_suggestions([_priced("FLR-CAR-SF", TradeCode.FLR)])]
        assert codes == ["FLR-ULAY-SF", "FLR-BASE-LF", "FLR-CAR-PAD"]

    def test_demolition(self) -> None:
        """Test demolition suggests haul-off."""
        suggestions = get_companion_suggestions([_priced("DEM-DRY-SF", TradeCode.DEM)])

        assert [s.code for s in suggestions] == ["DEM-HAUL-EA"]
        assert suggestions[0].reason == "Debris haul-off needed for demolished materials"

    def test_multi_trade_floor_protection(self) -> None:
        """Test three code trades suggest floor protection."""
        items = [
            _priced("DRY-12-SF", TradeCode.DRY),
            _priced("PNT-WALL-SF", TradeCode.PNT),
            _priced("FLR-VIN-SF", TradeCode.FLR),
        ]
        codes = [s.code for s in get_companion_suggestions(items)]
        assert codes == ["DRY-TAPE-SF", "DRY-TEXT-SF", "FLR-ULAY-SF", "FLR-BASE-LF", "GEN-PROT-SF"]

    def test_estimate_not_modified(self) -> None:
        """Test suggestions leave the input untouched."""
        items = [_priced("DRY-12-SF", TradeCode.DRY)]
        get_companion_suggestions(items)
        assert [item.code for item in items] == ["DRY-12-SF"]


class TestPricingEngine:
    """Tests for pricing persisted scope items."""

    @pytest.fixture
    def assembled(
        self,
        repository: InMemoryScopeRepository,
        room: InspectionRoom,
        damage: DamageObservation,
    ) -> InMemoryScopeRepository:
        """Repository after assembling the hallway water damage."""
        ScopeAssembler(repository).assemble_scope(room, damage)
        return repository

    def test_price_scope_items(self, assembled: InMemoryScopeRepository) -> None:
        """Test scope items are priced with regional rates."""
        engine = PricingEngine(assembled)
        priced = engine.price_scope_items(assembled.get_scope_items(SESSION_ID))

        assert [item.code for item in priced] == ["DRY-12-SF", "PNT-WALL-SF", "DRY-TAPE-SF", "PNT-PRIM-SF"]
        assert [item.total_price for item in priced] == [
            Decimal("580.80"),
            Decimal("352"),
            Decimal("352"),
            Decimal("176"),
        ]

    def test_export_context(self, assembled: InMemoryScopeRepository) -> None:
        """Test priced items carry their scope item context."""
        items = assembled.get_scope_items(SESSION_ID)
        priced = PricingEngine(assembled).price_scope_items(items)

        drywall, _, tape, _ = priced
        assert drywall.scope_item_id == items[0].id
        assert drywall.room_id == 100
        assert drywall.provenance == Provenance.DAMAGE_TRIGGERED
        assert drywall.action == "R"
        assert drywall.selector == "12"
        assert tape.provenance == Provenance.COMPANION_AUTO
        assert tape.action == "+"

    def test_removed_items_skipped(self, assembled: InMemoryScopeRepository) -> None:
        """Test only active scope items are priced."""
        items = assembled.get_scope_items(SESSION_ID)
        assembled.remove_scope_item(items[0].id)

        priced = PricingEngine(assembled).price_scope_items(assembled.get_scope_items(SESSION_ID))
        assert "DRY-12-SF" not in [item.code for item in priced]

    def test_unknown_region_prices_zero(self, assembled: InMemoryScopeRepository) -> None:
        """Test a region without rates prices every item at zero."""
        priced = PricingEngine(assembled).price_scope_items(
            assembled.get_scope_items(SESSION_ID), region_id="US_WEST"
        )
        assert all(item.total_price == 0 for item in priced)

    def test_scope_item_waste_wins(self, repository: InMemoryScopeRepository) -> None:
        """Test the stored waste factor overrides the catalog default."""
        item = repository.create_scope_item(
            ScopeItemDraft(
                session_id=SESSION_ID,
                room_id=100,
                catalog_code="DRY-12-SF",
                trade_code=TradeCode.DRY,
                quantity=100,
                waste_factor=Decimal("0"),
            )
        )
        priced = PricingEngine(repository).price_scope_items([item])
        assert priced[0].total_price == Decimal("150.00")

    def test_item_outside_catalog(self, repository: InMemoryScopeRepository) -> None:
        """Test items whose code left the catalog price from their snapshot."""
        item = repository.create_scope_item(
            ScopeItemDraft(
                session_id=SESSION_ID,
                room_id=100,
                catalog_code="GEN-MISC-EA",
                description="Misc",
                trade_code=TradeCode.GEN,
                quantity=1,
                unit="EA",
            )
        )
        priced = PricingEngine(repository).price_scope_items([item])

        assert priced[0].code == "GEN-MISC-EA"
        assert priced[0].unit == "EA"
        assert priced[0].total_price == 0

    def test_build_report(self, assembled: InMemoryScopeRepository) -> None:
        """Test the report combines totals, checks and suggestions."""
        engine = PricingEngine(assembled, EngineSettings(tax_rate=Decimal("0.10")))
        report = engine.build_report(engine.price_scope_items(assembled.get_scope_items(SESSION_ID)))

        assert report.totals.subtotal == Decimal("1460.80")
        assert report.totals.tax_amount == Decimal("146.08")
        assert report.totals.qualifies_for_op is False
        assert report.validation.warnings == [
            "Drywall work (DRY) present without Demolition (DEM): verify existing condition"
        ]
        assert [s.code for s in report.suggestions] == ["DRY-TEXT-SF"]
