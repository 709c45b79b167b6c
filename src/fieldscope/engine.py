"""
FieldScope Engine - Main Orchestrator.
Coordinates scope assembly, pricing and interchange export for inspections.
"""

import logging
from collections.abc import Sequence

from .core.config import EngineSettings
from .core.exceptions import RecordNotFoundError
from .core.models import (
    DamageObservation,
    EstimateReport,
    InspectionRoom,
    PricedLineItem,
    ScopeAssemblyResult,
    ScopeItem,
)
from .core.storage import ScopeRepository
from .modules.catalog_matcher import CatalogMatcher
from .modules.pricing import PricingEngine
from .modules.scope_assembly import ScopeAssembler
from .reporting.interchange import InterchangeExportData, InterchangeExporter

logger = logging.getLogger(__name__)


class FieldScopeEngine:
    """
    Main orchestrator for inspection scoping.

    Turns damage observations into scope items, prices a session's scope,
    and exports it as an interchange archive.
    """

    def __init__(
        self,
        repository: ScopeRepository,
        settings: EngineSettings | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            repository: Persistence collaborator shared by every component
            settings: Engine settings (defaults when omitted)
        """
        self.repository = repository
        self.settings = settings or EngineSettings()

        # Initialize components lazily
        self._matcher: CatalogMatcher | None = None
        self._assembler: ScopeAssembler | None = None
        self._pricing: PricingEngine | None = None
        self._exporter: InterchangeExporter | None = None

    @property
    def matcher(self) -> CatalogMatcher:
        """Get or create the catalog matcher."""
        if self._matcher is None:
            self._matcher = CatalogMatcher()
        return self._matcher

    @property
    def assembler(self) -> ScopeAssembler:
        """Get or create the scope assembler."""
        if self._assembler is None:
            self._assembler = ScopeAssembler(
                self.repository,
                matcher=self.matcher,
                max_companion_depth=self.settings.max_companion_depth,
            )
        return self._assembler

    @property
    def pricing(self) -> PricingEngine:
        """Get or create the pricing engine."""
        if self._pricing is None:
            self._pricing = PricingEngine(self.repository, self.settings)
        return self._pricing

    @property
    def exporter(self) -> InterchangeExporter:
        """Get or create the interchange exporter."""
        if self._exporter is None:
            self._exporter = InterchangeExporter(self.repository, self.pricing, self.settings)
        return self._exporter

    def opening_area(self, room: InspectionRoom) -> float:
        """Total wall area of the room's openings, in square feet."""
        return sum(
            opening.width_ft * opening.height_ft * opening.quantity
            for opening in self.repository.get_openings(room.session_id)
            if opening.room_id == room.id
        )

    def assemble_scope(
        self,
        room: InspectionRoom,
        damage: DamageObservation,
        net_wall_deduction: float | None = None,
    ) -> ScopeAssemblyResult:
        """
        Assemble scope for a damage observation.

        Args:
            room: Room the damage was recorded in
            damage: The damage observation
            net_wall_deduction: Opening area for net wall formulas; computed
                from the room's recorded openings when omitted

        Returns:
            Assembly result
        """
        if net_wall_deduction is None:
            net_wall_deduction = self.opening_area(room)
        return self.assembler.assemble_scope(room, damage, net_wall_deduction)

    def price_session(self, session_id: int, region_id: str | None = None) -> list[PricedLineItem]:
        """Price the session's active scope items."""
        return self.pricing.price_scope_items(
            self.repository.get_scope_items(session_id), region_id
        )

    def estimate_session(self, session_id: int, region_id: str | None = None) -> EstimateReport:
        """Priced line items, totals, checks and suggestions for a session."""
        report = self.pricing.build_report(self.price_session(session_id, region_id))
        logger.info(
            "Estimated session %s: %d items, total %s",
            session_id,
            len(report.line_items),
            report.totals.total_with_op,
        )
        return report

    def export_session(self, session_id: int, region_id: str | None = None) -> bytes:
        """Interchange archive of the session's full active scope."""
        return self.exporter.generate_archive(session_id, region_id)

    def export_supplemental(
        self,
        session_id: int,
        scope_items: Sequence[ScopeItem],
        reason: str | None = None,
        region_id: str | None = None,
    ) -> bytes:
        """
        Interchange archive for a supplemental claim.

        Args:
            session_id: Session the supplement belongs to
            scope_items: The new and modified scope items only
            reason: Text of the supplemental note
            region_id: Pricing region

        Returns:
            Zip archive bytes

        Raises:
            RecordNotFoundError: The session or its claim does not exist
        """
        session = self.repository.get_session(session_id)
        if session is None:
            raise RecordNotFoundError("Session", session_id)

        claim = self.repository.get_claim(session.claim_id)
        if claim is None:
            raise RecordNotFoundError("Claim", session.claim_id)

        data = InterchangeExportData(
            claim=claim,
            session=session,
            rooms=self.repository.get_rooms(session_id),
            line_items=self.pricing.price_scope_items(scope_items, region_id),
            briefing=self.repository.get_briefing(session.claim_id),
            openings=self.repository.get_openings(session_id),
            is_supplemental=True,
            supplemental_reason=reason,
        )
        return self.exporter.generate_from_data(data)

    def configure(
        self,
        settings: EngineSettings | None = None,
        matcher: CatalogMatcher | None = None,
    ) -> "FieldScopeEngine":
        """
        Configure the engine.

        Replacing the settings or matcher resets the components built from
        them.

        Args:
            settings: New engine settings
            matcher: Catalog matcher to use for assembly

        Returns:
            Self for method chaining
        """
        if settings is not None:
            self.settings = settings
            self._assembler = None
            self._pricing = None
            self._exporter = None
        if matcher is not None:
            self._matcher = matcher
            self._assembler = None
        return self


# Convenience functions for one-call use
def assemble_scope(
    repository: ScopeRepository,
    room: InspectionRoom,
    damage: DamageObservation,
    net_wall_deduction: float | None = None,
) -> ScopeAssemblyResult:
    """
    Convenience function for assembling scope for one damage observation.

    Args:
        repository: Persistence collaborator
        room: Room the damage was recorded in
        damage: The damage observation
        net_wall_deduction: Opening area for net wall formulas

    Returns:
        Assembly result
    """
    engine = FieldScopeEngine(repository)
    return engine.assemble_scope(room, damage, net_wall_deduction)


def generate_interchange_archive(
    repository: ScopeRepository,
    session_id: int,
    region_id: str | None = None,
    settings: EngineSettings | None = None,
) -> bytes:
    """Convenience function for exporting a session's interchange archive."""
    engine = FieldScopeEngine(repository, settings)
    return engine.export_session(session_id, region_id)
