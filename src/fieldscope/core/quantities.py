"""
Quantity derivation from room geometry.

Formulas return ``None`` when the room does not carry the geometry they
need; callers treat that as "manual quantity needed".
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .models import InspectionRoom

DEFAULT_CEILING_HEIGHT_FT = 8.0


class QuantityFormula(str, Enum):
    """Named geometry formulas a catalog entry can reference."""

    FLOOR_SF = "FLOOR_SF"
    FLOOR_SY = "FLOOR_SY"
    CEILING_SF = "CEILING_SF"
    WALL_SF = "WALL_SF"
    WALL_SF_NET = "WALL_SF_NET"
    WALLS_CEILING_SF = "WALLS_CEILING_SF"
    PERIMETER_LF = "PERIMETER_LF"
    CEILING_PERIMETER_LF = "CEILING_PERIMETER_LF"
    ROOF_SQ = "ROOF_SQ"
    EACH = "EACH"


@dataclass(frozen=True)
class QuantityResult:
    """A derived quantity and the formula that produced it."""

    quantity: float
    formula: QuantityFormula


@dataclass(frozen=True)
class RoomMeasurements:
    """Standard measurements of a box-shaped room."""

    length: float
    width: float
    height: float

    @property
    def floor_sf(self) -> float:
        return self.length * self.width

    @property
    def ceiling_sf(self) -> float:
        return self.floor_sf

    @property
    def perimeter_lf(self) -> float:
        return 2 * (self.length + self.width)

    @property
    def wall_sf(self) -> float:
        return self.perimeter_lf * self.height


def room_measurements(room: InspectionRoom) -> RoomMeasurements | None:
    """Measurements for a room, or None without length and width."""
    dims = room.dimensions
    if dims is None or not dims.length or not dims.width:
        return None
    return RoomMeasurements(
        length=dims.length,
        width=dims.width,
        height=dims.height or DEFAULT_CEILING_HEIGHT_FT,
    )


_FORMULAS: dict[QuantityFormula, Callable[[RoomMeasurements, float], float]] = {
    QuantityFormula.FLOOR_SF: lambda m, _: m.floor_sf,
    QuantityFormula.FLOOR_SY: lambda m, _: m.floor_sf / 9,
    QuantityFormula.CEILING_SF: lambda m, _: m.ceiling_sf,
    QuantityFormula.WALL_SF: lambda m, _: m.wall_sf,
    QuantityFormula.WALL_SF_NET: lambda m, deduction: max(0.0, m.wall_sf - deduction),
    QuantityFormula.WALLS_CEILING_SF: lambda m, _: m.wall_sf + m.ceiling_sf,
    QuantityFormula.PERIMETER_LF: lambda m, _: m.perimeter_lf,
    QuantityFormula.CEILING_PERIMETER_LF: lambda m, _: m.perimeter_lf,
    QuantityFormula.ROOF_SQ: lambda m, _: m.floor_sf / 100,
}


def derive_quantity(
    room: InspectionRoom,
    formula: QuantityFormula | str,
    net_wall_deduction: float = 0,
) -> QuantityResult | None:
    """
    Derive a quantity for a catalog formula from room geometry.

    Args:
        room: Room whose dimensions drive the formula
        formula: Formula name
        net_wall_deduction: Opening area subtracted by ``WALL_SF_NET``

    Returns:
        QuantityResult rounded to two decimals, or None when the formula is
        unknown or the room lacks the required dimensions
    """
    try:
        formula = QuantityFormula(formula)
    except ValueError:
        return None

    if formula == QuantityFormula.EACH:
        return QuantityResult(quantity=1.0, formula=formula)

    measurements = room_measurements(room)
    if measurements is None:
        return None

    value = _FORMULAS[formula](measurements, net_wall_deduction)
    return QuantityResult(quantity=round(value, 2), formula=formula)
