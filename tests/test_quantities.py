"""
Tests for quantity derivation from room geometry.
"""

import pytest

from fieldscope.core.models import InspectionRoom, RoomDimensions
from fieldscope.core.quantities import QuantityFormula, derive_quantity, room_measurements


def _room(length: float | None = 12, width: float | None = 10, height: float | None = 8) -> InspectionRoom:
    return InspectionRoom(
        id=1,
        session_id=1,
        name="Room",
        dimensions=RoomDimensions(length=length, width=width, height=height),
    )


class TestDeriveQuantity:
    """Tests for derive_quantity."""

    @pytest.mark.parametrize(
        ("formula", "expected"),
        [
            ("FLOOR_SF", 120.0),
            ("CEILING_SF", 120.0),
            ("FLOOR_SY", 13.33),
            ("WALL_SF", 352.0),
            ("WALLS_CEILING_SF", 472.0),
            ("PERIMETER_LF", 44.0),
            ("CEILING_PERIMETER_LF", 44.0),
            ("ROOF_SQ", 1.2),
            ("EACH", 1.0),
        ],
    )
    def test_formulas(self, formula: str, expected: float) -> None:
        """Test each formula on a 12 x 10 x 8 room."""
        result = derive_quantity(_room(), formula)

        assert result is not None
        assert result.quantity == pytest.approx(expected)
        assert result.formula == QuantityFormula(formula)

    def test_net_wall_deduction(self) -> None:
        """Test openings are subtracted from net wall area."""
        result = derive_quantity(_room(), QuantityFormula.WALL_SF_NET, net_wall_deduction=20.4)

        assert result is not None
        assert result.quantity == pytest.approx(331.6)

    def test_net_wall_never_negative(self) -> None:
        """Test an oversized deduction floors at zero."""
        result = derive_quantity(_room(), "WALL_SF_NET", net_wall_deduction=1000)

        assert result is not None
        assert result.quantity == 0

    def test_default_height(self) -> None:
        """Test missing height falls back to eight feet."""
        result = derive_quantity(_room(10, 10, None), "WALL_SF")

        assert result is not None
        assert result.quantity == pytest.approx(320.0)

    def test_missing_dimensions(self) -> None:
        """Test missing length or width yields None rather than raising."""
        assert derive_quantity(_room(None, 10), "FLOOR_SF") is None
        assert derive_quantity(InspectionRoom(id=1, session_id=1, name="Room"), "WALL_SF") is None

    def test_each_needs_no_geometry(self) -> None:
        """Test EACH resolves without room dimensions."""
        result = derive_quantity(InspectionRoom(id=1, session_id=1, name="Room"), "EACH")

        assert result is not None
        assert result.quantity == 1.0

    def test_unknown_formula(self) -> None:
        """Test unknown formula names yield None."""
        assert derive_quantity(_room(), "STAIR_TREADS") is None


class TestRoomMeasurements:
    """Tests for room_measurements."""

    def test_measurements(self) -> None:
        """Test standard box measurements."""
        measurements = room_measurements(_room())

        assert measurements is not None
        assert measurements.floor_sf == 120
        assert measurements.perimeter_lf == 44
        assert measurements.wall_sf == 352

    def test_zero_width(self) -> None:
        """Test zero width counts as missing geometry."""
        assert room_measurements(_room(12, 0)) is None
