"""
Scope Assembler.
Turns a damage observation plus room geometry into persisted scope items.

Scope defines what work is needed and never touches pricing. Quantities
come from room geometry, not estimation.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from ..core.models import (
    EACH_FORMULA,
    MANUAL_FORMULA,
    CatalogEntry,
    DamageObservation,
    InspectionRoom,
    ManualQuantityItem,
    Provenance,
    ScopeAssemblyResult,
    ScopeItem,
    ScopeItemDraft,
    ScopeItemStatus,
)
from ..core.quantities import QuantityResult, derive_quantity
from ..core.storage import ScopeRepository
from .catalog_matcher import CatalogMatcher

logger = logging.getLogger(__name__)

QuantityDeriver = Callable[[InspectionRoom, str, float], QuantityResult | None]

MAX_COMPANION_DEPTH = 3


@dataclass
class _AssemblyRun:
    """State of a single assembly invocation."""

    room: InspectionRoom
    damage: DamageObservation
    net_wall_deduction: float
    catalog: dict[str, CatalogEntry]
    active_codes: set[str]
    pending_codes: set[str] = field(default_factory=set)
    manual_codes: set[str] = field(default_factory=set)
    result: ScopeAssemblyResult = field(default_factory=ScopeAssemblyResult)

    def warn(self, message: str, level: int = logging.INFO) -> None:
        self.result.warnings.append(message)
        logger.log(level, "room %s: %s", self.room.id, message)

    def needs_manual(self, item: ManualQuantityItem) -> None:
        if item.catalog_code in self.manual_codes:
            return
        self.manual_codes.add(item.catalog_code)
        self.result.manual_quantity_needed.append(item)


class ScopeAssembler:
    """
    Assembles scope items for damage observations.

    Matching candidates are deduplicated against the room's active scope,
    quantified from room geometry, created, and then expanded through their
    catalog companion rules.
    """

    def __init__(
        self,
        repository: ScopeRepository,
        matcher: CatalogMatcher | None = None,
        max_companion_depth: int = MAX_COMPANION_DEPTH,
        quantity_deriver: QuantityDeriver = derive_quantity,
    ) -> None:
        """
        Initialize the assembler.

        Args:
            repository: Persistence collaborator
            matcher: Catalog matcher (default tables when omitted)
            max_companion_depth: Hard bound on companion expansion hops
            quantity_deriver: Geometry formula evaluator
        """
        self.repository = repository
        self.matcher = matcher or CatalogMatcher()
        self.max_companion_depth = max_companion_depth
        self.quantity_deriver = quantity_deriver

    def assemble_scope(
        self,
        room: InspectionRoom,
        damage: DamageObservation,
        net_wall_deduction: float = 0,
    ) -> ScopeAssemblyResult:
        """
        Assemble scope for one damage observation in a room.

        Args:
            room: Room the damage was recorded in
            damage: The damage observation
            net_wall_deduction: Opening area subtracted from net wall formulas

        Returns:
            Created items, companion items, entries needing a manual
            quantity, and warnings. Repository failures propagate.
        """
        catalog = {
            entry.code: entry
            for entry in self.repository.get_catalog_entries()
            if entry.is_active
        }

        run = _AssemblyRun(
            room=room,
            damage=damage,
            net_wall_deduction=net_wall_deduction,
            catalog=catalog,
            active_codes=set(),
        )

        candidates = self.matcher.find_matching_items(list(catalog.values()), damage, room)
        if not candidates:
            run.warn(
                f'No catalog items found for damage "{damage.damage_type}" in '
                f'"{room.room_type or "unknown"}" room. Items can be added manually.',
                logging.WARNING,
            )
            return run.result

        run.active_codes = {
            item.catalog_code
            for item in self.repository.get_active_scope_items_for_room(room.id)
        }

        drafts: list[ScopeItemDraft] = []
        for entry in candidates:
            if entry.code in run.active_codes:
                run.warn(f'Skipped "{entry.code}": already in scope for this room.')
                continue

            excluded_by = self._excluded_by(entry.code, candidates, run.active_codes)
            if excluded_by is not None:
                run.warn(f'Skipped "{entry.code}": excluded by existing scope item "{excluded_by}".')
                continue

            resolved = self._resolve_quantity(entry, run)
            if isinstance(resolved, ManualQuantityItem):
                run.needs_manual(resolved)
                continue

            quantity, formula = resolved
            if quantity <= 0:
                continue

            run.pending_codes.add(entry.code)
            drafts.append(
                self._draft(entry, run, quantity, formula, Provenance.DAMAGE_TRIGGERED)
            )

        if drafts:
            created = self.repository.create_scope_items(drafts)
            run.result.created.extend(created)
            for item in created:
                self._expand_companions(item, 0, run)

        self._check_requirements(run)
        self.repository.recalculate_scope_summary(damage.session_id)

        logger.info(
            "Assembled scope for damage %s in room %s: %d created, %d companions, %d manual",
            damage.id,
            room.id,
            len(run.result.created),
            len(run.result.companion_items),
            len(run.result.manual_quantity_needed),
        )
        return run.result

    @staticmethod
    def _excluded_by(
        code: str, candidates: list[CatalogEntry], active_codes: set[str]
    ) -> str | None:
        """Code of an active matched candidate whose rules exclude ``code``."""
        for other in candidates:
            if other.code == code or other.companion_rules is None:
                continue
            # room-scoped: items active in other rooms of the session do not exclude
            if code in other.companion_rules.excludes and other.code in active_codes:
                return other.code
        return None

    def _resolve_quantity(
        self,
        entry: CatalogEntry,
        run: _AssemblyRun,
        companion_of: str | None = None,
    ) -> tuple[float, str] | ManualQuantityItem:
        """Quantity and formula label, or the reason a manual quantity is needed."""
        formula = entry.quantity_formula
        prefix = f'Companion of "{companion_of}": ' if companion_of else ""

        if formula == MANUAL_FORMULA:
            return ManualQuantityItem(
                catalog_code=entry.code,
                description=entry.description,
                unit=entry.unit,
                reason=f"{prefix}Manual quantity required",
            )

        if not formula:
            return 1.0, EACH_FORMULA

        derived = self.quantity_deriver(run.room, formula, run.net_wall_deduction)
        if derived is None:
            return ManualQuantityItem(
                catalog_code=entry.code,
                description=entry.description,
                unit=entry.unit,
                reason=f"{prefix}Room dimensions required for {formula} formula",
            )

        return derived.quantity, formula

    @staticmethod
    def _draft(
        entry: CatalogEntry,
        run: _AssemblyRun,
        quantity: float,
        formula: str,
        provenance: Provenance,
        parent_id: int | None = None,
    ) -> ScopeItemDraft:
        return ScopeItemDraft(
            session_id=run.damage.session_id,
            room_id=run.room.id,
            damage_id=run.damage.id,
            catalog_code=entry.code,
            description=entry.description,
            trade_code=entry.trade_code,
            quantity=quantity,
            unit=entry.unit,
            quantity_formula=formula,
            provenance=provenance,
            coverage_type=entry.coverage_type or "A",
            activity_type=entry.activity_type or "replace",
            waste_factor=entry.default_waste_factor,
            status=ScopeItemStatus.ACTIVE,
            parent_scope_item_id=parent_id,
        )

    def _expand_companions(self, parent: ScopeItem, depth: int, run: _AssemblyRun) -> None:
        """Create auto-added companions of ``parent``, then theirs, up to the depth bound."""
        if depth >= self.max_companion_depth:
            return

        entry = run.catalog.get(parent.catalog_code)
        if entry is None or entry.companion_rules is None:
            return

        for code in entry.companion_rules.auto_adds:
            if code in run.active_codes or code in run.pending_codes:
                continue

            companion = run.catalog.get(code)
            if companion is None:
                run.warn(f'Companion "{code}" not found in catalog.', logging.WARNING)
                continue

            resolved = self._resolve_quantity(companion, run, companion_of=parent.catalog_code)
            if isinstance(resolved, ManualQuantityItem):
                run.needs_manual(resolved)
                continue

            quantity, formula = resolved
            if quantity <= 0:
                continue

            run.pending_codes.add(code)
            item = self.repository.create_scope_item(
                self._draft(
                    companion, run, quantity, formula, Provenance.COMPANION_AUTO, parent.id
                )
            )
            run.result.companion_items.append(item)
            self._expand_companions(item, depth + 1, run)

    @staticmethod
    def _check_requirements(run: _AssemblyRun) -> None:
        """Warn about required codes missing from the room's scope."""
        in_scope = run.active_codes | run.pending_codes
        for item in run.result.all_items:
            entry = run.catalog.get(item.catalog_code)
            if entry is None or entry.companion_rules is None:
                continue
            for required in entry.companion_rules.requires:
                if required not in in_scope:
                    run.warn(f'"{item.catalog_code}" requires "{required}", which is not in scope for this room.')
