"""
Static trade lookup tables used by catalog matching.
All tables are read-only mappings built at import time.
"""

from types import MappingProxyType

from .models import TradeCode

DRY, PNT, FLR, INS, MIT, DEM = (
    TradeCode.DRY,
    TradeCode.PNT,
    TradeCode.FLR,
    TradeCode.INS,
    TradeCode.MIT,
    TradeCode.DEM,
)
RFG, EXT, WIN, CAB, CTR, CAR = (
    TradeCode.RFG,
    TradeCode.EXT,
    TradeCode.WIN,
    TradeCode.CAB,
    TradeCode.CTR,
    TradeCode.CAR,
)
PLM, ELE, HVAC = TradeCode.PLM, TradeCode.ELE, TradeCode.HVAC

FALLBACK_DAMAGE_TYPE = "other"
DEFAULT_SEVERITY = "moderate"

# Trades that stay relevant whatever the room type
ALWAYS_RETAINED_TRADES: frozenset[TradeCode] = frozenset({DRY, PNT})

DAMAGE_TYPE_TO_TRADES: MappingProxyType[str, tuple[TradeCode, ...]] = MappingProxyType(
    {
        "water_stain": (DRY, PNT, MIT),
        "water_intrusion": (DRY, PNT, FLR, INS, MIT, DEM),
        "mold": (DRY, PNT, MIT, DEM, INS),
        "wind_damage": (RFG, EXT, WIN, DRY, PNT),
        "hail_impact": (RFG, EXT, WIN, PNT),
        "crack": (DRY, PNT, EXT),
        "dent": (EXT, WIN, CAB),
        "missing": (RFG, EXT, WIN, DRY),
        "rot": (EXT, RFG, DRY, FLR, DEM),
        "mechanical": (PLM, ELE, HVAC),
        "wear_tear": (FLR, CAR, PNT, DRY),
        FALLBACK_DAMAGE_TYPE: (DRY, PNT, FLR, EXT, RFG),
    }
)

# Matched by substring against the room type, in this order
ROOM_TYPE_TRADES: MappingProxyType[str, tuple[TradeCode, ...]] = MappingProxyType(
    {
        "kitchen": (CAB, CTR, PLM, ELE, FLR),
        "bathroom": (PLM, CTR, FLR, DRY),
        "bedroom": (DRY, PNT, FLR, CAR),
        "living": (DRY, PNT, FLR, CAR),
        "garage": (DRY, ELE),
        "exterior": (RFG, EXT, WIN),
        "roof": (RFG,),
        "attic": (INS, DRY),
        "basement": (DRY, FLR, PLM, MIT),
        "laundry": (PLM, DRY, FLR),
    }
)

# Ordered selector prefixes used when a trade has no conditioned entries
DEFAULT_XACT_SELECTORS: MappingProxyType[TradeCode, tuple[str, ...]] = MappingProxyType(
    {
        DRY: ("1/2", "1/2+", "TAPE", "PRIM", "TEX"),
        RFG: ("300", "FELT", "DRIP", "FLASH", "RIDGE"),
        EXT: ("FCLP", "HWRAP", "CORNER"),
    }
)

# Canonical damage names used in authored scope conditions
DAMAGE_TYPE_ALIASES: MappingProxyType[str, str] = MappingProxyType(
    {
        "water_stain": "water",
        "water_intrusion": "water",
        "wind_damage": "wind",
        "hail_impact": "hail",
        "wear_tear": "general",
    }
)

# Activity type -> interchange action code
ACTIVITY_ACTION_CODES: MappingProxyType[str, str] = MappingProxyType(
    {
        "replace": "R",
        "install": "+",
        "remove": "-",
        "remove_replace": "R&R",
        "detach_reset": "D&R",
        "repair": "RPR",
        "clean": "CLN",
    }
)

DEFAULT_SELECTION_LIMIT = 3


def normalize_damage_type(damage_type: str) -> str:
    """Map a recorded damage type to its canonical condition name."""
    return DAMAGE_TYPE_ALIASES.get(damage_type, damage_type)
