"""
Interchange Export Module.
Builds XactImate-compatible ESX archives: a zip holding XACTDOC.XML
(claim summary) and GENERIC_ROUGHDRAFT.XML (room geometry and line items).
"""

import io
import logging
import re
import time
import uuid
import xml.etree.ElementTree as ET
import zipfile
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from xml.sax.saxutils import escape

from pydantic import BaseModel, Field

from ..core.codes import get_parser
from ..core.config import EngineSettings
from ..core.exceptions import ExportError, RecordNotFoundError
from ..core.models import (
    Briefing,
    Claim,
    InspectionRoom,
    InspectionSession,
    Opening,
    PricedLineItem,
    Provenance,
)
from ..core.quantities import DEFAULT_CEILING_HEIGHT_FT, RoomMeasurements
from ..core.storage import ScopeRepository
from ..modules.pricing import PricingEngine

logger = logging.getLogger(__name__)

SUMMARY_DOCUMENT = "XACTDOC.XML"
DETAIL_DOCUMENT = "GENERIC_ROUGHDRAFT.XML"
ARCHIVE_MEMBERS = (SUMMARY_DOCUMENT, DETAIL_DOCUMENT)

UNASSIGNED_ROOM = "Unassigned"
DEFAULT_LEVEL = "HOUSE"
DEFAULT_ACTION = "R"  # Replace
DEFAULT_ROOM_LENGTH_FT = 10.0
DEFAULT_ROOM_WIDTH_FT = 10.0

SUPPLEMENTAL_ACTIONS = {
    Provenance.SUPPLEMENTAL_NEW: "ADD",
    Provenance.SUPPLEMENTAL_MODIFIED: "MOD",
}

CENT = Decimal("0.01")
_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}

# Characters XML 1.0 does not allow anywhere in a document
_INVALID_XML_CHARS = re.compile("[^\x09\x0a\x0d\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def escape_xml(value: object) -> str:
    """
    Escape ``& < > " '`` for element text and attribute values.

    Control characters that XML 1.0 cannot represent are dropped.
    """
    return escape(_INVALID_XML_CHARS.sub("", str(value)), _XML_ENTITIES)


def _cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _fmt(value: Decimal | float) -> str:
    return f"{value:.2f}"


def _quantity(value: float) -> str:
    # two places unless that would lose precision
    text = _fmt(value)
    return text if float(text) == value else repr(float(value))


def _flag(value: bool) -> str:
    return "1" if value else "0"


@dataclass(frozen=True)
class InterchangeLineItem:
    """A priced line item with the export's cost split."""

    line_id: int | None
    code: str
    description: str
    category: str
    selector: str
    action: str
    quantity: float
    unit: str
    unit_price: Decimal
    labor_total: Decimal
    labor_hours: Decimal
    material: Decimal
    tax: Decimal
    acv_total: Decimal
    rcv_total: Decimal
    room_id: int | None
    provenance: Provenance | None

    @property
    def depreciation(self) -> Decimal:
        return self.rcv_total - self.acv_total


@dataclass(frozen=True)
class InterchangeSummary:
    """Coverage totals reported in the summary document."""

    total_rcv: Decimal
    total_acv: Decimal
    total_depreciation: Decimal
    line_item_count: int


@dataclass(frozen=True)
class InterchangeItemRow:
    """A line item read back from a detail document."""

    code: str
    description: str
    action: str
    quantity: float
    unit: str
    rcv_total: Decimal
    acv_total: Decimal


class InterchangeExportData(BaseModel):
    """Everything an archive is built from, already fetched and priced."""

    claim: Claim
    session: InspectionSession | None = None
    rooms: list[InspectionRoom] = Field(default_factory=list)
    line_items: list[PricedLineItem] = Field(default_factory=list)
    briefing: Briefing | None = None
    openings: list[Opening] = Field(default_factory=list)
    is_supplemental: bool = False
    supplemental_reason: str | None = None
    inspection_date: date | None = None


class InterchangeExporter:
    """
    Serializes a session's rooms and priced items into an interchange archive.

    The labor/material split and the actual cash value ratio are settings
    driven approximations; no depreciation schedule is consulted.
    """

    def __init__(
        self,
        repository: ScopeRepository | None = None,
        pricing: PricingEngine | None = None,
        settings: EngineSettings | None = None,
    ) -> None:
        self.repository = repository
        self.settings = settings or EngineSettings()
        if pricing is None and repository is not None:
            pricing = PricingEngine(repository, self.settings)
        self.pricing = pricing
        self.parser = get_parser()

    def generate_archive(self, session_id: int, region_id: str | None = None) -> bytes:
        """
        Fetch, price and export a session's active scope.

        Args:
            session_id: Inspection session to export
            region_id: Pricing region (settings default when omitted)

        Returns:
            Zip archive bytes

        Raises:
            RecordNotFoundError: The session or its claim does not exist
            ExportError: The exporter has no repository
        """
        if self.repository is None or self.pricing is None:
            raise ExportError("Exporter has no repository to fetch session data from")

        session = self.repository.get_session(session_id)
        if session is None:
            raise RecordNotFoundError("Session", session_id)

        claim = self.repository.get_claim(session.claim_id)
        if claim is None:
            raise RecordNotFoundError("Claim", session.claim_id)

        scope_items = self.repository.get_scope_items(session_id)
        line_items = self.pricing.price_scope_items(scope_items, region_id)

        return self.generate_from_data(
            InterchangeExportData(
                claim=claim,
                session=session,
                rooms=self.repository.get_rooms(session_id),
                line_items=line_items,
                briefing=self.repository.get_briefing(session.claim_id),
                openings=self.repository.get_openings(session_id),
            )
        )

    def generate_from_data(self, data: InterchangeExportData) -> bytes:
        """Build an archive from pre-fetched data (full or supplemental)."""
        summary_xml, detail_xml = self.build_documents(data)
        archive = self.package({SUMMARY_DOCUMENT: summary_xml, DETAIL_DOCUMENT: detail_xml})

        logger.info(
            "Built %s archive for claim %s: %d line items, %d bytes",
            "supplemental" if data.is_supplemental else "estimate",
            data.claim.claim_number,
            len(data.line_items),
            len(archive),
        )
        return archive

    def build_documents(self, data: InterchangeExportData) -> tuple[str, str]:
        """Summary and detail documents for the data."""
        records = [self.build_line_item_record(item) for item in data.line_items]
        summary = self.summarize(records)
        inspected = data.inspection_date or date.today()

        summary_xml = self.build_summary_document(data, summary, inspected)
        detail_xml = self.build_detail_document(data.rooms, records, data.openings)
        return summary_xml, detail_xml

    def build_line_item_record(self, item: PricedLineItem) -> InterchangeLineItem:
        """Split a priced item into the export's labor, material, tax and ACV figures."""
        settings = self.settings
        total = item.total_price
        labor_ratio = settings.effective_labor_ratio
        labor = total * labor_ratio

        action = SUPPLEMENTAL_ACTIONS.get(item.provenance) if item.provenance else None

        return InterchangeLineItem(
            line_id=item.scope_item_id,
            code=item.code,
            description=item.description,
            category=item.trade_code.value[:3].upper(),
            selector=item.selector or self.parser.selector(item.code) or "",
            action=action or item.action or DEFAULT_ACTION,
            quantity=item.quantity,
            unit=item.unit or "EA",
            unit_price=item.unit_price_breakdown.unit_price,
            labor_total=_cents(labor),
            labor_hours=_cents(labor / settings.export_labor_rate),
            material=_cents(total * (1 - labor_ratio)),
            tax=_cents(total * settings.export_tax_rate),
            acv_total=_cents(total * settings.export_acv_ratio),
            rcv_total=_cents(total),
            room_id=item.room_id,
            provenance=item.provenance,
        )

    @staticmethod
    def summarize(records: list[InterchangeLineItem]) -> InterchangeSummary:
        total_rcv = sum((r.rcv_total for r in records), Decimal("0"))
        total_acv = sum((r.acv_total for r in records), Decimal("0"))
        return InterchangeSummary(
            total_rcv=total_rcv,
            total_acv=total_acv,
            total_depreciation=total_rcv - total_acv,
            line_item_count=len(records),
        )

    def transaction_id(self) -> str:
        return f"{self.settings.carrier_id}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"

    def build_summary_document(
        self,
        data: InterchangeExportData,
        summary: InterchangeSummary,
        inspected: date,
    ) -> str:
        """XACTDOC.XML: transaction, contacts, coverage totals and notes."""
        settings = self.settings
        claim = data.claim
        coverage = data.briefing.coverage_snapshot if data.briefing else None
        deductible = (coverage.deductible if coverage else None) or Decimal("0")
        policy_number = (coverage.policy_number if coverage else None) or claim.policy_number or ""
        estimate_type = "SUPPLEMENT" if data.is_supplemental else "ESTIMATE"
        depreciation_type = "Recoverable" if claim.peril_type == "water" else "Standard"

        notes = ""
        if data.is_supplemental:
            reason = data.supplemental_reason or "Supplemental claim"
            notes = f"""
  <NOTES>
    <NOTE type="SUPPLEMENTAL" date="{inspected.isoformat()}">
      <TEXT>{escape_xml(reason)}</TEXT>
    </NOTE>
  </NOTES>"""

        return f"""<?xml version="1.0" encoding="UTF-8"?>
<XACTDOC>
  <XACTNET_INFO>
    <transactionId>{escape_xml(self.transaction_id())}</transactionId>
    <carrierId>{escape_xml(settings.carrier_id)}</carrierId>
    <carrierName>{escape_xml(settings.carrier_name)}</carrierName>
    <CONTROL_POINTS>
      <CONTROL_POINT name="ASSIGNMENT" status="COMPLETE"/>
      <CONTROL_POINT name="{estimate_type}" status="COMPLETE"/>
    </CONTROL_POINTS>
    <SUMMARY>
      <totalRCV>{_fmt(summary.total_rcv)}</totalRCV>
      <totalACV>{_fmt(summary.total_acv)}</totalACV>
      <totalDepreciation>{_fmt(summary.total_depreciation)}</totalDepreciation>
      <deductible>{_fmt(deductible)}</deductible>
      <lineItemCount>{summary.line_item_count}</lineItemCount>
    </SUMMARY>
  </XACTNET_INFO>
  <CONTACTS>
    <CONTACT type="INSURED">
      <name>{escape_xml(claim.insured_name or "")}</name>
      <address>{escape_xml(claim.property_address or "")}</address>
      <city>{escape_xml(claim.city or "")}</city>
      <state>{escape_xml(claim.state or "")}</state>
      <zip>{escape_xml(claim.zip or "")}</zip>
    </CONTACT>
    <CONTACT type="ADJUSTER">
      <name>{escape_xml(settings.adjuster_name)}</name>
    </CONTACT>
  </CONTACTS>
  <ADM>
    <dateOfLoss>{escape_xml(claim.date_of_loss or "")}</dateOfLoss>
    <dateInspected>{inspected.isoformat()}</dateInspected>
    <COVERAGE_LOSS>
      <claimNumber>{escape_xml(claim.claim_number)}</claimNumber>
      <policyNumber>{escape_xml(policy_number)}</policyNumber>
    </COVERAGE_LOSS>
    <PARAMS>
      <priceList>{escape_xml(settings.price_list)}</priceList>
      <laborEfficiency>{settings.labor_efficiency}</laborEfficiency>
      <depreciationType>{depreciation_type}</depreciationType>
    </PARAMS>
  </ADM>{notes}
</XACTDOC>"""

    def build_detail_document(
        self,
        rooms: list[InspectionRoom],
        records: list[InterchangeLineItem],
        openings: list[Opening],
    ) -> str:
        """GENERIC_ROUGHDRAFT.XML: room geometry plus line items grouped by room."""
        rooms_by_id = {room.id: room for room in rooms}

        lines = ['<?xml version="1.0" encoding="UTF-8"?>', "<GENERIC_ROUGHDRAFT>", "  <DIM>"]
        for room in rooms:
            lines.extend(self._room_geometry(room, [o for o in openings if o.room_id == room.id]))
        lines.append("  </DIM>")

        # room id -> records, in order of first appearance
        groups: dict[int | None, list[InterchangeLineItem]] = {}
        for record in records:
            room_id = record.room_id if record.room_id in rooms_by_id else None
            groups.setdefault(room_id, []).append(record)

        levels: dict[str, list[int | None]] = {}
        for room_id in groups:
            room = rooms_by_id.get(room_id) if room_id is not None else None
            level = (room.structure if room else None) or DEFAULT_LEVEL
            levels.setdefault(level, []).append(room_id)

        lines.append("  <LINE_ITEM_DETAIL>")
        lines.append('    <GROUP type="estimate" name="Estimate">')
        for level, room_ids in levels.items():
            lines.append(f'      <GROUP type="level" name="{escape_xml(level)}">')
            for room_id in room_ids:
                room = rooms_by_id.get(room_id) if room_id is not None else None
                lines.extend(self._item_group(room, groups[room_id]))
            lines.append("      </GROUP>")
        lines.append("    </GROUP>")
        lines.append("  </LINE_ITEM_DETAIL>")
        lines.append("</GENERIC_ROUGHDRAFT>")

        return "\n".join(lines)

    @staticmethod
    def _room_geometry(room: InspectionRoom, openings: list[Opening]) -> list[str]:
        dims = room.dimensions
        measurements = RoomMeasurements(
            length=(dims.length if dims else None) or DEFAULT_ROOM_LENGTH_FT,
            width=(dims.width if dims else None) or DEFAULT_ROOM_WIDTH_FT,
            height=(dims.height if dims else None) or DEFAULT_CEILING_HEIGHT_FT,
        )
        room_type = room.room_type or ""
        shape = "elevation" if "elevation" in room_type else "box"

        lines = [
            f'    <ROOM id="{room.id}" name="{escape_xml(room.name)}" type="{shape}"'
            f' structure="{escape_xml(room.structure or DEFAULT_LEVEL)}"'
            f' length="{_fmt(measurements.length)}" width="{_fmt(measurements.width)}"'
            f' height="{_fmt(measurements.height)}"'
            f' sfWalls="{_fmt(measurements.wall_sf)}" sfFloor="{_fmt(measurements.floor_sf)}"'
            f' sfCeiling="{_fmt(measurements.ceiling_sf)}"'
            f' lfPerimeter="{_fmt(measurements.perimeter_lf)}">'
        ]

        if openings:
            lines.append("      <OPENINGS>")
            for opening in openings:
                lines.append(
                    f'        <OPENING type="{escape_xml(opening.opening_type)}"'
                    f' width="{_fmt(opening.width_ft)}" height="{_fmt(opening.height_ft)}"'
                    f' quantity="{opening.quantity}"'
                    f' opensInto="{escape_xml(opening.opens_into or "")}"'
                    f' goesToFloor="{_flag(opening.goes_to_floor)}"'
                    f' goesToCeiling="{_flag(opening.goes_to_ceiling)}"/>'
                )
            lines.append("      </OPENINGS>")
        else:
            lines.append("      <OPENINGS/>")

        lines.append("    </ROOM>")
        return lines

    @staticmethod
    def _item_group(room: InspectionRoom | None, records: list[InterchangeLineItem]) -> list[str]:
        name = room.name if room else UNASSIGNED_ROOM
        room_attr = f' roomId="{room.id}"' if room else ""
        is_sketch = room is not None and (room.room_type or "").startswith("exterior_")
        sketch_attrs = ' source="Sketch" isRoom="1"' if is_sketch else ""

        lines = [
            f'        <GROUP type="room" name="{escape_xml(name)}"{room_attr}{sketch_attrs}>',
            "          <ITEMS>",
        ]
        for index, record in enumerate(records, start=1):
            lines.append(
                f'            <ITEM lineNum="{index}" code="{escape_xml(record.code)}"'
                f' cat="{escape_xml(record.category)}" sel="{escape_xml(record.selector)}"'
                f' act="{escape_xml(record.action)}" desc="{escape_xml(record.description)}"'
                f' qty="{_quantity(record.quantity)}" unit="{escape_xml(record.unit)}"'
                f' remove="0" replace="{_fmt(record.rcv_total)}" total="{_fmt(record.rcv_total)}"'
                f' laborTotal="{_fmt(record.labor_total)}" laborHours="{_fmt(record.labor_hours)}"'
                f' material="{_fmt(record.material)}" tax="{_fmt(record.tax)}"'
                f' acvTotal="{_fmt(record.acv_total)}" rcvTotal="{_fmt(record.rcv_total)}"/>'
            )
        lines.append("          </ITEMS>")
        lines.append("        </GROUP>")
        return lines

    @staticmethod
    def package(documents: dict[str, str]) -> bytes:
        """Zip the named documents at maximum deflate compression."""
        buffer = io.BytesIO()
        with zipfile.ZipFile(
            buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9
        ) as archive:
            for name, text in documents.items():
                archive.writestr(name, text.encode("utf-8"))
        return buffer.getvalue()


def read_archive(data: bytes) -> dict[str, str]:
    """
    Read the two documents out of an interchange archive.

    Raises:
        ExportError: The bytes are not a zip or a member is missing
    """
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            names = set(archive.namelist())
            missing = [name for name in ARCHIVE_MEMBERS if name not in names]
            if missing:
                raise ExportError("Interchange archive is missing members", {"missing": missing})
            return {name: archive.read(name).decode("utf-8") for name in ARCHIVE_MEMBERS}
    except zipfile.BadZipFile as e:
        raise ExportError("Not an interchange archive", {"error": str(e)}) from e


def parse_line_item_groups(detail_xml: str) -> dict[int | None, list[InterchangeItemRow]]:
    """
    Line items of a detail document, keyed by room id.

    Items exported without a known room are keyed by ``None``. Rooms that
    share a name stay separate.
    """
    root = ET.fromstring(detail_xml.encode("utf-8"))
    groups: dict[int | None, list[InterchangeItemRow]] = {}

    for group in root.iter("GROUP"):
        if group.get("type") != "room":
            continue
        room_id = group.get("roomId")
        rows = groups.setdefault(int(room_id) if room_id else None, [])
        for item in group.iter("ITEM"):
            rows.append(
                InterchangeItemRow(
                    code=item.get("code", ""),
                    description=item.get("desc", ""),
                    action=item.get("act", ""),
                    quantity=float(item.get("qty", "0")),
                    unit=item.get("unit", ""),
                    rcv_total=Decimal(item.get("rcvTotal", "0")),
                    acv_total=Decimal(item.get("acvTotal", "0")),
                )
            )

    return groups
