"""
Dictionary-based Rule Engine for estimate checks.
Allows easy addition and management of estimate validation rules.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .models import EstimateFinding, FindingSeverity, PricedLineItem

# A check returns (message, affected codes) pairs
RuleCheck = Callable[[list[PricedLineItem]], list[tuple[str, list[str]]]]


@dataclass
class EstimateRule:
    """Definition of an estimate check."""

    rule_id: str
    name: str
    description: str
    severity: FindingSeverity
    check: RuleCheck | None = None
    enabled: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)


class RuleEngine:
    """
    Dictionary-based rule engine for managing and executing estimate checks.

    Rules run in registration order and can be added, removed or toggled
    at runtime.
    """

    def __init__(self) -> None:
        self._rules: dict[str, EstimateRule] = {}

    def add_rule(self, rule: EstimateRule) -> None:
        """Add a rule to the engine."""
        self._rules[rule.rule_id] = rule

    def remove_rule(self, rule_id: str) -> bool:
        """Remove a rule from the engine."""
        if rule_id not in self._rules:
            return False
        del self._rules[rule_id]
        return True

    def get_rule(self, rule_id: str) -> EstimateRule | None:
        """Get a specific rule by ID."""
        return self._rules.get(rule_id)

    def get_rules_by_severity(self, severity: FindingSeverity) -> list[EstimateRule]:
        """Get all enabled rules of a severity."""
        return [
            rule
            for rule in self._rules.values()
            if rule.enabled and rule.severity == severity
        ]

    def enable_rule(self, rule_id: str) -> bool:
        """Enable a specific rule."""
        if rule_id in self._rules:
            self._rules[rule_id].enabled = True
            return True
        return False

    def disable_rule(self, rule_id: str) -> bool:
        """Disable a specific rule."""
        if rule_id in self._rules:
            self._rules[rule_id].enabled = False
            return True
        return False

    def execute_rule(
        self, rule: EstimateRule, items: list[PricedLineItem]
    ) -> list[EstimateFinding]:
        """Execute a single rule against the estimate's line items."""
        if not rule.enabled or rule.check is None:
            return []

        return [
            EstimateFinding(
                rule_id=rule.rule_id,
                rule_name=rule.name,
                severity=rule.severity,
                message=message,
                affected_codes=affected,
            )
            for message, affected in rule.check(items)
        ]

    def execute_all(self, items: list[PricedLineItem]) -> list[EstimateFinding]:
        """Execute all enabled rules."""
        findings: list[EstimateFinding] = []
        for rule in self._rules.values():
            findings.extend(self.execute_rule(rule, items))
        return findings

    def list_rules(self) -> list[dict[str, Any]]:
        """List all rules with their status."""
        return [
            {
                "rule_id": rule.rule_id,
                "name": rule.name,
                "severity": rule.severity.value,
                "enabled": rule.enabled,
                "description": rule.description,
            }
            for rule in self._rules.values()
        ]
