"""
Persistence contract for FieldScope and an in-memory implementation.

The in-memory repository keeps every record in id-indexed arenas. Scope
items reference their parent by id only.
"""

from collections import Counter
from collections.abc import Iterable
from typing import Protocol

from .exceptions import DuplicateActiveScopeItemError
from .models import (
    Briefing,
    CatalogEntry,
    Claim,
    InspectionRoom,
    InspectionSession,
    Opening,
    Provenance,
    RegionalPrice,
    ScopeItem,
    ScopeItemDraft,
    ScopeItemStatus,
    ScopeSummary,
)


class ScopeRepository(Protocol):
    """Data access used by assembly, pricing and export."""

    def get_catalog_entries(self) -> list[CatalogEntry]: ...

    def get_catalog_entry(self, code: str) -> CatalogEntry | None: ...

    def get_regional_price(self, code: str, region_id: str) -> RegionalPrice | None: ...

    def get_scope_items(self, session_id: int) -> list[ScopeItem]: ...

    def get_active_scope_items_for_room(self, room_id: int) -> list[ScopeItem]: ...

    def create_scope_items(self, drafts: list[ScopeItemDraft]) -> list[ScopeItem]: ...

    def create_scope_item(self, draft: ScopeItemDraft) -> ScopeItem: ...

    def recalculate_scope_summary(self, session_id: int) -> ScopeSummary: ...

    def get_session(self, session_id: int) -> InspectionSession | None: ...

    def get_claim(self, claim_id: int) -> Claim | None: ...

    def get_rooms(self, session_id: int) -> list[InspectionRoom]: ...

    def get_openings(self, session_id: int) -> list[Opening]: ...

    def get_briefing(self, claim_id: int) -> Briefing | None: ...


class InMemoryScopeRepository:
    """
    Repository backed by dictionaries.

    Enforces the active (room, catalog code) uniqueness constraint that a
    database would enforce with a partial unique index.
    """

    def __init__(
        self,
        catalog: Iterable[CatalogEntry] = (),
        prices: Iterable[RegionalPrice] = (),
    ) -> None:
        self._catalog: dict[str, CatalogEntry] = {}
        self._prices: dict[tuple[str, str], RegionalPrice] = {}
        self._scope_items: dict[int, ScopeItem] = {}
        self._sessions: dict[int, InspectionSession] = {}
        self._claims: dict[int, Claim] = {}
        self._rooms: dict[int, InspectionRoom] = {}
        self._openings: list[Opening] = []
        self._briefings: dict[int, Briefing] = {}
        self._summaries: dict[int, ScopeSummary] = {}
        self._next_id = 1

        self.add_catalog_entries(catalog)
        self.add_regional_prices(prices)

    # -- loading ------------------------------------------------------------

    def add_catalog_entries(self, entries: Iterable[CatalogEntry]) -> None:
        for entry in entries:
            self._catalog[entry.code] = entry

    def add_regional_prices(self, prices: Iterable[RegionalPrice]) -> None:
        for price in prices:
            self._prices[(price.line_item_code, price.region_id)] = price

    def add_claim(self, claim: Claim) -> None:
        self._claims[claim.id] = claim

    def add_session(self, session: InspectionSession) -> None:
        self._sessions[session.id] = session

    def add_room(self, room: InspectionRoom) -> None:
        self._rooms[room.id] = room

    def add_opening(self, opening: Opening) -> None:
        self._openings.append(opening)

    def add_briefing(self, briefing: Briefing) -> None:
        self._briefings[briefing.claim_id] = briefing

    # -- catalog and prices -------------------------------------------------

    def get_catalog_entries(self) -> list[CatalogEntry]:
        return list(self._catalog.values())

    def get_catalog_entry(self, code: str) -> CatalogEntry | None:
        return self._catalog.get(code)

    def get_regional_price(self, code: str, region_id: str) -> RegionalPrice | None:
        return self._prices.get((code, region_id))

    # -- scope items --------------------------------------------------------

    def get_scope_item(self, item_id: int) -> ScopeItem | None:
        return self._scope_items.get(item_id)

    def get_scope_items(self, session_id: int) -> list[ScopeItem]:
        return [item for item in self._scope_items.values() if item.session_id == session_id]

    def get_active_scope_items_for_room(self, room_id: int) -> list[ScopeItem]:
        return [
            item
            for item in self._scope_items.values()
            if item.room_id == room_id and item.is_active
        ]

    def get_children(self, parent_id: int) -> list[ScopeItem]:
        """Scope items whose parent link points at ``parent_id``."""
        return [
            item
            for item in self._scope_items.values()
            if item.parent_scope_item_id == parent_id
        ]

    def create_scope_items(self, drafts: list[ScopeItemDraft]) -> list[ScopeItem]:
        staged: set[tuple[int, str]] = set()
        for draft in drafts:
            key = (draft.room_id, draft.catalog_code)
            if draft.status == ScopeItemStatus.ACTIVE:
                if key in staged or self._has_active(*key):
                    raise DuplicateActiveScopeItemError(*key)
                staged.add(key)

        return [self._insert(draft) for draft in drafts]

    def create_scope_item(self, draft: ScopeItemDraft) -> ScopeItem:
        return self.create_scope_items([draft])[0]

    def remove_scope_item(self, item_id: int) -> ScopeItem:
        """Mark a scope item removed. Its companions keep their own status."""
        item = self._scope_items[item_id]
        removed = item.model_copy(update={"status": ScopeItemStatus.REMOVED})
        self._scope_items[item_id] = removed
        return removed

    def _has_active(self, room_id: int, catalog_code: str) -> bool:
        return any(
            item.room_id == room_id and item.catalog_code == catalog_code and item.is_active
            for item in self._scope_items.values()
        )

    def _insert(self, draft: ScopeItemDraft) -> ScopeItem:
        item = ScopeItem(id=self._next_id, **draft.model_dump())
        self._scope_items[item.id] = item
        self._next_id += 1
        return item

    def recalculate_scope_summary(self, session_id: int) -> ScopeSummary:
        items = self.get_scope_items(session_id)
        active = [item for item in items if item.is_active]

        summary = ScopeSummary(
            session_id=session_id,
            total_items=len(items),
            active_items=len(active),
            removed_items=len(items) - len(active),
            companion_items=sum(
                1 for item in active if item.provenance == Provenance.COMPANION_AUTO
            ),
            items_by_trade=dict(Counter(item.trade_code.value for item in active)),
            items_by_room=dict(Counter(item.room_id for item in active)),
        )
        self._summaries[session_id] = summary
        return summary

    def get_scope_summary(self, session_id: int) -> ScopeSummary | None:
        return self._summaries.get(session_id)

    # -- export context -----------------------------------------------------

    def get_session(self, session_id: int) -> InspectionSession | None:
        return self._sessions.get(session_id)

    def get_claim(self, claim_id: int) -> Claim | None:
        return self._claims.get(claim_id)

    def get_rooms(self, session_id: int) -> list[InspectionRoom]:
        return [room for room in self._rooms.values() if room.session_id == session_id]

    def get_openings(self, session_id: int) -> list[Opening]:
        room_ids = {room.id for room in self.get_rooms(session_id)}
        return [opening for opening in self._openings if opening.room_id in room_ids]

    def get_briefing(self, claim_id: int) -> Briefing | None:
        return self._briefings.get(claim_id)
