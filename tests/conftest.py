"""
Shared fixtures: a small drywall/painting catalog and a seeded repository.
"""

from collections.abc import Callable
from decimal import Decimal

import pytest

from fieldscope.core.models import (
    MANUAL_FORMULA,
    Briefing,
    CatalogEntry,
    Claim,
    CompanionRules,
    CoverageSnapshot,
    DamageObservation,
    InspectionRoom,
    InspectionSession,
    Opening,
    RegionalPrice,
    RoomDimensions,
    ScopeConditions,
    TradeCode,
)
from fieldscope.core.storage import InMemoryScopeRepository

REGION = "US_NATIONAL"
CLAIM_ID = 1
SESSION_ID = 10
ROOM_ID = 100
ELEVATION_ID = 101

EntryFactory = Callable[..., CatalogEntry]


@pytest.fixture
def make_entry() -> EntryFactory:
    """Factory for catalog entries with terse defaults."""

    def _make(
        code: str,
        trade: TradeCode,
        formula: str | None = "WALL_SF",
        *,
        unit: str = "SF",
        damage_types: list[str] | None = None,
        auto_adds: list[str] | None = None,
        requires: list[str] | None = None,
        excludes: list[str] | None = None,
        activity: str = "replace",
        waste: str | None = None,
        selector: str | None = None,
        active: bool = True,
    ) -> CatalogEntry:
        conditions = ScopeConditions(damage_types=damage_types) if damage_types else None
        rules = None
        if auto_adds or requires or excludes:
            rules = CompanionRules(
                auto_adds=auto_adds or [],
                requires=requires or [],
                excludes=excludes or [],
            )
        return CatalogEntry(
            code=code,
            description=f"{code} description",
            unit=unit,
            trade_code=trade,
            default_waste_factor=Decimal(waste) if waste is not None else None,
            activity_type=activity,
            quantity_formula=formula,
            scope_conditions=conditions,
            companion_rules=rules,
            xact_selector=selector,
            is_active=active,
        )

    return _make


@pytest.fixture
def catalog(make_entry: EntryFactory) -> list[CatalogEntry]:
    """Water-damage catalog with one companion chain and one manual entry."""
    return [
        make_entry(
            "DRY-12-SF",
            TradeCode.DRY,
            damage_types=["water"],
            auto_adds=["DRY-TAPE-SF"],
            waste="10",
        ),
        make_entry("DRY-TAPE-SF", TradeCode.DRY, auto_adds=["PNT-PRIM-SF"], activity="install"),
        make_entry("PNT-PRIM-SF", TradeCode.PNT, activity="install"),
        make_entry("PNT-WALL-SF", TradeCode.PNT, damage_types=["water"]),
        make_entry(
            "MIT-DRY-DA",
            TradeCode.MIT,
            MANUAL_FORMULA,
            unit="DA",
            damage_types=["water"],
        ),
    ]


@pytest.fixture
def prices() -> list[RegionalPrice]:
    """National rates for the fixture catalog."""

    def price(code: str, material: str, labor: str, equipment: str) -> RegionalPrice:
        return RegionalPrice(
            line_item_code=code,
            region_id=REGION,
            material_cost=Decimal(material),
            labor_cost=Decimal(labor),
            equipment_cost=Decimal(equipment),
        )

    return [
        price("DRY-12-SF", "0.52", "0.92", "0.06"),
        price("DRY-TAPE-SF", "0.30", "0.70", "0"),
        price("PNT-PRIM-SF", "0.20", "0.30", "0"),
        price("PNT-WALL-SF", "0.40", "0.60", "0"),
        price("MIT-DRY-DA", "0", "0", "70.00"),
    ]


@pytest.fixture
def room() -> InspectionRoom:
    """A 12 x 10 x 8 hallway: 352 SF of wall."""
    return InspectionRoom(
        id=ROOM_ID,
        session_id=SESSION_ID,
        name="Hallway",
        room_type="interior_hallway",
        structure="Main",
        dimensions=RoomDimensions(length=12, width=10, height=8),
    )


@pytest.fixture
def elevation() -> InspectionRoom:
    """An exterior elevation without recorded dimensions."""
    return InspectionRoom(
        id=ELEVATION_ID,
        session_id=SESSION_ID,
        name="Front Elevation",
        room_type="exterior_front_elevation",
        structure="Main",
    )


@pytest.fixture
def damage() -> DamageObservation:
    """Moderate water staining in the hallway."""
    return DamageObservation(
        id=1000,
        room_id=ROOM_ID,
        session_id=SESSION_ID,
        damage_type="water_stain",
        severity="moderate",
        description="Ceiling and wall staining",
    )


@pytest.fixture
def claim() -> Claim:
    return Claim(
        id=CLAIM_ID,
        claim_number="CLM-2024-0042",
        insured_name="Pat O'Neil",
        property_address="12 Elm St",
        city="Springfield",
        state="IL",
        zip="62701",
        date_of_loss="2024-03-01",
        peril_type="water",
        policy_number="POL-FALLBACK",
    )


@pytest.fixture
def repository(
    catalog: list[CatalogEntry],
    prices: list[RegionalPrice],
    claim: Claim,
    room: InspectionRoom,
    elevation: InspectionRoom,
) -> InMemoryScopeRepository:
    """Repository seeded with the claim, session, rooms and catalog."""
    repo = InMemoryScopeRepository(catalog=catalog, prices=prices)
    repo.add_claim(claim)
    repo.add_session(InspectionSession(id=SESSION_ID, claim_id=CLAIM_ID))
    repo.add_room(room)
    repo.add_room(elevation)
    repo.add_opening(
        Opening(
            room_id=ROOM_ID,
            opening_type="door",
            width_ft=3,
            height_ft=6.8,
            opens_into="Kitchen",
            goes_to_floor=True,
        )
    )
    repo.add_briefing(
        Briefing(
            claim_id=CLAIM_ID,
            coverage_snapshot=CoverageSnapshot(
                policy_number="POL-123",
                deductible=Decimal("1000"),
            ),
        )
    )
    return repo
