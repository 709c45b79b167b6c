"""
Catalog Code Parser using Regular Expressions.
Splits estimating codes such as ``DRY-12-SF`` into trade, selector and unit.
"""

import re
from dataclasses import dataclass

from .models import TradeCode


@dataclass(frozen=True)
class ParsedCode:
    """Parsed catalog code with extracted components."""

    original_code: str
    trade_prefix: str
    trade_code: TradeCode | None
    selector: str | None
    unit: str | None


class CatalogCodeParser:
    """
    Parser for catalog line item codes.
    Codes follow ``TRADE-SELECTOR[-UNIT]`` with ``-`` or ``_`` separators.
    """

    CODE_PATTERN: re.Pattern[str] = re.compile(
        r"^(?P<trade>[A-Z]{2,4})(?:[-_](?P<rest>.+))?$", re.IGNORECASE
    )
    UNIT_PATTERN: re.Pattern[str] = re.compile(
        r"[-_](?P<unit>SF|SY|LF|SQ|EA|HR|DA|CF|CY|GL)$", re.IGNORECASE
    )

    def __init__(self) -> None:
        self._code_cache: dict[str, ParsedCode] = {}

    def parse_code(self, code: str) -> ParsedCode:
        """
        Parse a catalog code.

        Args:
            code: The catalog code to parse

        Returns:
            ParsedCode with extracted components; codes that do not fit the
            pattern keep the whole code as trade prefix
        """
        if code in self._code_cache:
            return self._code_cache[code]

        match = self.CODE_PATTERN.match(code.strip())
        if match is None:
            parsed = ParsedCode(
                original_code=code,
                trade_prefix=code.upper(),
                trade_code=None,
                selector=None,
                unit=None,
            )
        else:
            trade_prefix = match.group("trade").upper()
            rest = match.group("rest") or ""
            unit: str | None = None

            unit_match = self.UNIT_PATTERN.search(f"-{rest}") if rest else None
            if unit_match and len(rest) > len(unit_match.group("unit")):
                unit = unit_match.group("unit").upper()
                rest = rest[: -(len(unit) + 1)]

            parsed = ParsedCode(
                original_code=code,
                trade_prefix=trade_prefix,
                trade_code=self._trade_for(trade_prefix),
                selector=rest or None,
                unit=unit,
            )

        self._code_cache[code] = parsed
        return parsed

    @staticmethod
    def _trade_for(prefix: str) -> TradeCode | None:
        try:
            return TradeCode(prefix)
        except ValueError:
            return None

    def trade_prefix(self, code: str) -> str:
        """Leading trade segment of a code."""
        return self.parse_code(code).trade_prefix

    def selector(self, code: str) -> str | None:
        """Selector segment of a code, without trade and unit."""
        return self.parse_code(code).selector

    def has_prefix(self, code: str | None, *prefixes: str) -> bool:
        """Case-insensitive prefix test against the raw code."""
        if not code:
            return False
        upper = code.upper()
        return any(upper.startswith(prefix.upper()) for prefix in prefixes)


# Singleton instance
_parser_instance: CatalogCodeParser | None = None


def get_parser() -> CatalogCodeParser:
    """Get the singleton parser instance."""
    global _parser_instance
    if _parser_instance is None:
        _parser_instance = CatalogCodeParser()
    return _parser_instance
