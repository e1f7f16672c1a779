"""
Audience Rule Model

Declarative segmentation rules that describe a customer audience.

A rule compares one customer attribute against a value:

    totalSpends  >  "10000"
    visits       <  "3"
    lastVisit    >  "30"      (days since the last visit)

Rules are kept in order; the ``logic`` field of each rule after the first
says how it joins the rules before it (see rule_compiler for grouping).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Sequence


class RuleField(str, Enum):
    """Customer attributes a rule can target"""
    TOTAL_SPENDS = "totalSpends"
    VISITS = "visits"
    LAST_VISIT = "lastVisit"

    @property
    def attribute(self) -> str:
        """Customer attribute name backing this field"""
        return _ATTRIBUTES[self]


_ATTRIBUTES = {
    RuleField.TOTAL_SPENDS: "total_spends",
    RuleField.VISITS: "visits",
    RuleField.LAST_VISIT: "last_visit",
}


class RuleOperator(str, Enum):
    """Comparison operators accepted in rules"""
    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="
    EQ = "="


class RuleLogic(str, Enum):
    """How a rule joins the rules before it"""
    AND = "AND"
    OR = "OR"


@dataclass(frozen=True)
class Rule:
    """
    Single audience rule

    Attributes:
        field: Customer attribute to compare
        operator: Comparison operator
        value: Raw value as entered by the operator (parsed at compile time)
        logic: Joiner with the previous rule (ignored on the first rule)
    """
    field: RuleField
    operator: RuleOperator
    value: str
    logic: RuleLogic = RuleLogic.AND

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rule":
        """
        Build a rule from its wire representation

        Args:
            data: Mapping with field, operator, value and optional logic

        Raises:
            InvalidRuleError: If field, operator or logic is not recognised
        """
        try:
            field = RuleField(data["field"])
            operator = RuleOperator(data["operator"])
            logic = RuleLogic(data.get("logic") or RuleLogic.AND.value)
        except (KeyError, ValueError) as e:
            raise InvalidRuleError(f"Invalid rule {data!r}: {e}") from e

        return cls(
            field=field,
            operator=operator,
            value=str(data.get("value", "")),
            logic=logic,
        )

    def to_dict(self) -> Dict[str, str]:
        """Serialize rule to its wire representation"""
        return {
            "field": self.field.value,
            "operator": self.operator.value,
            "value": self.value,
            "logic": self.logic.value,
        }


# Ordered; order decides grouping
RuleSet = Sequence[Rule]


def rules_from_dicts(items: Sequence[Dict[str, Any]]) -> List[Rule]:
    """Parse a list of wire-format rules"""
    return [Rule.from_dict(item) for item in items]


def rules_to_dicts(rules: RuleSet) -> List[Dict[str, str]]:
    """Serialize a rule set for storage"""
    return [rule.to_dict() for rule in rules]


class InvalidRuleError(ValueError):
    """Raised when a rule cannot be parsed for its field type"""
    pass
