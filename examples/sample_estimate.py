#!/usr/bin/env python3
"""
Sample Estimate Script.
Demonstrates assembling, pricing and exporting an inspection with FieldScope.
"""

import logging
import os
import sys
from decimal import Decimal
from pathlib import Path

from fieldscope import (
    CatalogEntry,
    Claim,
    DamageObservation,
    FieldScopeEngine,
    InMemoryScopeRepository,
    InspectionRoom,
    InspectionSession,
    RegionalPrice,
    TradeCode,
    load_settings,
)
from fieldscope.core.models import (
    Briefing,
    CompanionRules,
    CoverageSnapshot,
    Opening,
    RoomDimensions,
    ScopeConditions,
)

WATER = ScopeConditions(damage_types=["water"])


def create_sample_repository() -> InMemoryScopeRepository:
    """Create a repository with a small water-damage catalog and one inspection."""
    catalog = [
        CatalogEntry(
            code="MIT-EXTR-SF",
            description="Water extraction from floor",
            unit="SF",
            trade_code=TradeCode.MIT,
            activity_type="clean",
            quantity_formula="FLOOR_SF",
            scope_conditions=WATER,
        ),
        CatalogEntry(
            code="DEM-DRY-SF",
            description="Tear out wet drywall",
            unit="SF",
            trade_code=TradeCode.DEM,
            activity_type="remove",
            quantity_formula="WALL_SF_NET",
            scope_conditions=WATER,
            companion_rules=CompanionRules(auto_adds=["DEM-HAUL-EA"]),
        ),
        CatalogEntry(
            code="DEM-HAUL-EA",
            description="Haul debris - pickup truck load",
            unit="EA",
            trade_code=TradeCode.DEM,
            activity_type="remove",
            quantity_formula="EACH",
        ),
        CatalogEntry(
            code="DRY-12-SF",
            description='Drywall - 1/2" hung, taped, floated',
            unit="SF",
            trade_code=TradeCode.DRY,
            default_waste_factor=Decimal("10"),
            quantity_formula="WALL_SF_NET",
            scope_conditions=WATER,
            companion_rules=CompanionRules(auto_adds=["DRY-TEXT-SF"], requires=["DEM-DRY-SF"]),
        ),
        CatalogEntry(
            code="DRY-TEXT-SF",
            description="Texture drywall - light hand",
            unit="SF",
            trade_code=TradeCode.DRY,
            activity_type="install",
            quantity_formula="WALL_SF_NET",
        ),
        CatalogEntry(
            code="PNT-WALL-SF",
            description="Seal & paint walls - two coats",
            unit="SF",
            trade_code=TradeCode.PNT,
            quantity_formula="WALL_SF_NET",
            scope_conditions=WATER,
        ),
        CatalogEntry(
            code="FLR-CAR-SF",
            description="Carpet - standard grade",
            unit="SF",
            trade_code=TradeCode.FLR,
            default_waste_factor=Decimal("15"),
            quantity_formula="FLOOR_SF",
            scope_conditions=WATER,
        ),
    ]

    def price(code: str, material: str, labor: str, equipment: str = "0") -> RegionalPrice:
        return RegionalPrice(
            line_item_code=code,
            region_id="US_NATIONAL",
            material_cost=Decimal(material),
            labor_cost=Decimal(labor),
            equipment_cost=Decimal(equipment),
        )

    prices = [
        price("MIT-EXTR-SF", "0", "0.45", "0.20"),
        price("DEM-DRY-SF", "0", "0.62"),
        price("DEM-HAUL-EA", "0", "95.00", "60.00"),
        price("DRY-12-SF", "0.52", "0.92", "0.06"),
        price("DRY-TEXT-SF", "0.08", "0.41"),
        price("PNT-WALL-SF", "0.28", "0.71"),
        price("FLR-CAR-SF", "2.35", "0.55"),
    ]

    repo = InMemoryScopeRepository(catalog=catalog, prices=prices)
    repo.add_claim(
        Claim(
            id=1,
            claim_number="CLM-2024-WTR-001",
            insured_name="John Smith",
            property_address="123 Main Street",
            city="Springfield",
            state="IL",
            zip="62701",
            date_of_loss="2024-03-01",
            peril_type="water",
        )
    )
    repo.add_session(InspectionSession(id=1, claim_id=1))
    repo.add_room(
        InspectionRoom(
            id=1,
            session_id=1,
            name="Family Room",
            room_type="interior_family",
            structure="Main Level",
            dimensions=RoomDimensions(length=15, width=20, height=8),
        )
    )
    repo.add_opening(Opening(room_id=1, opening_type="door", width_ft=3, height_ft=6.67, goes_to_floor=True))
    repo.add_opening(Opening(room_id=1, opening_type="window", width_ft=4, height_ft=4, quantity=2))
    repo.add_briefing(
        Briefing(
            claim_id=1,
            coverage_snapshot=CoverageSnapshot(policy_number="HO-3-889201", deductible=Decimal("1000")),
        )
    )
    return repo


def main() -> None:
    """Run sample estimate demonstration."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 70)
    print("FIELDSCOPE - SAMPLE ESTIMATE")
    print("=" * 70)
    print()

    repo = create_sample_repository()
    engine = FieldScopeEngine(repo, load_settings(os.environ))

    room = repo.get_rooms(1)[0]
    damage = DamageObservation(
        id=1,
        room_id=room.id,
        session_id=1,
        damage_type="water_intrusion",
        severity="moderate",
        description="Standing water from supply line failure",
    )

    # Assemble scope
    result = engine.assemble_scope(room, damage)
    print(f"Created: {len(result.created)}  Companions: {len(result.companion_items)}")
    for item in result.all_items:
        print(f"  {item.catalog_code:<14} {item.quantity:>9.2f} {item.unit:<3} ({item.provenance.value})")
    for manual in result.manual_quantity_needed:
        print(f"  MANUAL {manual.catalog_code}: {manual.reason}")
    for warning in result.warnings:
        print(f"  ! {warning}")
    print()

    # Price and validate
    report = engine.estimate_session(1)
    totals = report.totals
    print(f"Subtotal:       ${totals.subtotal:,.2f}")
    print(f"Tax:            ${totals.tax_amount:,.2f}")
    print(f"Trades:         {', '.join(t.value for t in totals.trades_involved)}")
    print(f"O&P:            {'yes' if totals.qualifies_for_op else 'no'}")
    print(f"Total with O&P: ${totals.total_with_op:,.2f}")
    for warning in report.validation.warnings:
        print(f"  ! {warning}")
    for suggestion in report.suggestions:
        print(f"  + {suggestion.code}: {suggestion.reason}")
    print()

    # Export
    output = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("CLM-2024-WTR-001.esx")
    output.write_bytes(engine.export_session(1))
    print(f"Wrote {output} ({output.stat().st_size} bytes)")


if __name__ == "__main__":
    main()
