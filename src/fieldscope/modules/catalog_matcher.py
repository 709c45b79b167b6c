"""
Catalog Matcher.
Selects candidate catalog entries for a damage observation in a room.
"""

import logging
from collections.abc import Mapping

from ..core.models import (
    CatalogEntry,
    DamageObservation,
    InspectionRoom,
    ScopeConditions,
    TradeCode,
)
from ..core.trades import (
    ALWAYS_RETAINED_TRADES,
    DAMAGE_TYPE_TO_TRADES,
    DEFAULT_SELECTION_LIMIT,
    DEFAULT_SEVERITY,
    DEFAULT_XACT_SELECTORS,
    FALLBACK_DAMAGE_TYPE,
    ROOM_TYPE_TRADES,
    normalize_damage_type,
)

logger = logging.getLogger(__name__)

INSTALL_ACTIVITY = "install"


class CatalogMatcher:
    """
    Trade-based catalog matching.

    Damage type and room type narrow the relevant trades. Within each trade,
    entries with authored scope conditions are preferred; trades without a
    conditioned match fall back to default selectors over generic install
    entries.
    """

    def __init__(
        self,
        damage_trades: Mapping[str, tuple[TradeCode, ...]] | None = None,
        room_trades: Mapping[str, tuple[TradeCode, ...]] | None = None,
        default_selectors: Mapping[TradeCode, tuple[str, ...]] | None = None,
    ) -> None:
        self.damage_trades = damage_trades or DAMAGE_TYPE_TO_TRADES
        self.room_trades = room_trades or ROOM_TYPE_TRADES
        self.default_selectors = default_selectors or DEFAULT_XACT_SELECTORS

    def relevant_trades(self, damage_type: str, room_type: str) -> list[TradeCode]:
        """
        Resolve the ordered trades relevant to a damage in a room.

        Args:
            damage_type: Recorded damage type
            room_type: Room type, matched by substring

        Returns:
            Damage trades, narrowed by the room's trades when the room type
            is recognized (drywall and painting always retained)
        """
        damage_trades = self.damage_trades.get(damage_type)
        if damage_trades is None:
            damage_trades = self.damage_trades.get(FALLBACK_DAMAGE_TYPE, ())

        room_trade_set = self._room_trade_set(room_type)
        if room_trade_set is None:
            return list(damage_trades)

        return [
            trade
            for trade in damage_trades
            if trade in room_trade_set or trade in ALWAYS_RETAINED_TRADES
        ]

    def _room_trade_set(self, room_type: str) -> frozenset[TradeCode] | None:
        lowered = room_type.lower()
        for key, trades in self.room_trades.items():
            if key in lowered:
                return frozenset(trades)
        return None

    def find_matching_items(
        self,
        catalog: list[CatalogEntry],
        damage: DamageObservation,
        room: InspectionRoom,
    ) -> list[CatalogEntry]:
        """
        Select assembly candidates for a damage observation.

        Args:
            catalog: Catalog entries; inactive entries are ignored
            damage: The damage observation
            room: The room the damage was recorded in

        Returns:
            Ordered candidates with no repeated codes
        """
        damage_type = damage.damage_type or FALLBACK_DAMAGE_TYPE
        severity = damage.severity or DEFAULT_SEVERITY
        room_type = room.room_type or ""
        zone_type = room.zone_type

        matched: list[CatalogEntry] = []
        seen_codes: set[str] = set()

        for trade in self.relevant_trades(damage_type, room_type):
            trade_items = [
                entry for entry in catalog if entry.trade_code == trade and entry.is_active
            ]

            conditioned = [
                entry
                for entry in trade_items
                if entry.scope_conditions is not None
                and self.matches_conditions(
                    entry.scope_conditions, damage_type, severity, room_type, zone_type
                )
            ]

            candidates = conditioned or self.select_default_items(
                [
                    entry
                    for entry in trade_items
                    if entry.scope_conditions is None
                    and entry.activity_type == INSTALL_ACTIVITY
                ],
                trade,
            )

            for entry in candidates:
                if entry.code not in seen_codes:
                    seen_codes.add(entry.code)
                    matched.append(entry)

        logger.debug(
            "Matched %d catalog entries for %s in %s",
            len(matched),
            damage_type,
            room_type or "unknown",
        )
        return matched

    @staticmethod
    def matches_conditions(
        conditions: ScopeConditions,
        damage_type: str,
        severity: str,
        room_type: str,
        zone_type: str,
    ) -> bool:
        """Every populated condition must hold; empty ones impose nothing."""
        canonical_damage = normalize_damage_type(damage_type)
        if (
            conditions.damage_types
            and damage_type not in conditions.damage_types
            and canonical_damage not in conditions.damage_types
        ):
            return False
        if conditions.severity and severity not in conditions.severity:
            return False
        if conditions.room_types and room_type not in conditions.room_types:
            return False
        if conditions.zone_types and zone_type not in conditions.zone_types:
            return False
        return True

    def select_default_items(
        self, items: list[CatalogEntry], trade: TradeCode
    ) -> list[CatalogEntry]:
        """
        Pick generic catalog entries for a trade by its default selectors.

        Without configured selectors, or when none of them hit, the first
        few entries are taken.
        """
        if not items:
            return []

        selectors = self.default_selectors.get(trade, ())
        selected: list[CatalogEntry] = []

        for selector in selectors:
            selector_lower = selector.lower()
            for item in items:
                if item in selected:
                    continue
                xact_selector = (item.xact_selector or "").lower()
                if (
                    xact_selector == selector_lower
                    or xact_selector.startswith(selector_lower)
                    or selector_lower in item.code.lower()
                ):
                    selected.append(item)
                    break

        return selected or items[:DEFAULT_SELECTION_LIMIT]
