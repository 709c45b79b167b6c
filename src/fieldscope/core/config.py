"""
Runtime settings for FieldScope.
Defaults can be overridden from ``FIELDSCOPE_*`` environment variables.
"""

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "FIELDSCOPE_"


class EngineSettings(BaseSettings):
    """
    Pricing, assembly and export parameters.

    Loaded from the process environment on construction; keyword arguments
    win over environment variables.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_ignore_empty=True,
        case_sensitive=False,
        str_strip_whitespace=True,
        extra="ignore",
    )

    # Pricing
    tax_rate: Decimal = Field(default=Decimal("0.08"), ge=0)
    overhead_pct: Decimal = Field(default=Decimal("0.10"), ge=0)
    profit_pct: Decimal = Field(default=Decimal("0.10"), ge=0)
    op_trade_threshold: int = Field(default=3, ge=1)
    default_region_id: str = "US_NATIONAL"

    # Assembly
    max_companion_depth: int = Field(default=3, ge=0)

    # Interchange export heuristics
    export_labor_ratio: Decimal = Field(default=Decimal("0.35"), ge=0, le=1)
    export_labor_ratio_min: Decimal = Field(default=Decimal("0.20"), ge=0, le=1)
    export_labor_ratio_max: Decimal = Field(default=Decimal("0.40"), ge=0, le=1)
    export_tax_rate: Decimal = Field(default=Decimal("0.08"), ge=0)
    export_acv_ratio: Decimal = Field(default=Decimal("0.70"), ge=0, le=1)
    export_labor_rate: Decimal = Field(default=Decimal("75"), gt=0)

    # Interchange export identity
    carrier_id: str = "FIELDSCOPE"
    carrier_name: str = "FieldScope"
    adjuster_name: str = "FieldScope Inspector"
    price_list: str = "USNATNL"
    labor_efficiency: int = 100

    @model_validator(mode="after")
    def _check_labor_bounds(self) -> "EngineSettings":
        if self.export_labor_ratio_min > self.export_labor_ratio_max:
            raise ValueError("export_labor_ratio_min must not exceed export_labor_ratio_max")
        return self

    @property
    def effective_labor_ratio(self) -> Decimal:
        """Export labor ratio clamped to its configured bounds."""
        return min(
            self.export_labor_ratio_max,
            max(self.export_labor_ratio_min, self.export_labor_ratio),
        )


def load_settings(env: Mapping[str, str], **overrides: Any) -> EngineSettings:
    """
    Build :class:`EngineSettings` from an explicit environment mapping.

    Blank values are ignored. Keyword overrides win over the mapping.

    Args:
        env: Environment mapping, usually ``os.environ``
        **overrides: Explicit field values

    Returns:
        Validated settings

    Raises:
        pydantic.ValidationError: A value does not parse or is out of range
    """
    values: dict[str, Any] = {}
    for key, raw in env.items():
        if not key.upper().startswith(ENV_PREFIX) or not raw.strip():
            continue
        name = key[len(ENV_PREFIX):].lower()
        if name in EngineSettings.model_fields:
            values[name] = raw

    values.update(overrides)
    return EngineSettings(**values)
