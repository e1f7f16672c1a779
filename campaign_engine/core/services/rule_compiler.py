"""
Rule Compiler

Translates an ordered rule set into a Predicate.

Per-rule translation:
    totalSpends / visits: the value is a number and the operator applies
    directly (``visits < 5``).

    lastVisit: the value is a day count. A reference timestamp
    ``T = now - value days`` is computed and the operator is read as
    "more / less days ago", so the comparison on the timestamp is
    inverted:

        lastVisit >  N   ->  last_visit <  T
        lastVisit <  N   ->  last_visit >  T
        lastVisit >= N   ->  last_visit <= T
        lastVisit <= N   ->  last_visit >= T
        lastVisit =  N   ->  last_visit == T   (exact timestamp)

Grouping:
    Rules are read left to right. A rule whose logic is AND joins the
    current group; a rule whose logic is OR closes the current group and
    opens a new one. Groups are then joined with AND, so OR never yields a
    top-level disjunction:

        [a, b AND, c OR, d AND]  ->  (a AND b) AND (c AND d)

    Groups of one collapse to their single comparison, a single rule
    compiles to its bare comparison and an empty rule set matches all.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from campaign_engine.core.domain.predicate import (
    Comparator,
    Comparison,
    Conjunction,
    MatchAll,
    Predicate,
)
from campaign_engine.core.domain.rules import (
    InvalidRuleError,
    Rule,
    RuleField,
    RuleLogic,
    RuleOperator,
    RuleSet,
)


NUMERIC_COMPARATORS: Dict[RuleOperator, Comparator] = {
    RuleOperator.GT: Comparator.GT,
    RuleOperator.LT: Comparator.LT,
    RuleOperator.GTE: Comparator.GE,
    RuleOperator.LTE: Comparator.LE,
    RuleOperator.EQ: Comparator.EQ,
}

RECENCY_COMPARATORS: Dict[RuleOperator, Comparator] = {
    RuleOperator.GT: Comparator.LT,
    RuleOperator.LT: Comparator.GT,
    RuleOperator.GTE: Comparator.LE,
    RuleOperator.LTE: Comparator.GE,
    RuleOperator.EQ: Comparator.EQ,
}


def compile_rules(rules: RuleSet, now: Optional[datetime] = None) -> Predicate:
    """
    Compile a rule set into a predicate

    Args:
        rules: Ordered rules
        now: Reference time for lastVisit rules (defaults to current UTC)

    Returns:
        Predicate equivalent to the rule set

    Raises:
        InvalidRuleError: If any rule value does not parse for its field
    """
    if not rules:
        return MatchAll()

    now = now or datetime.now(timezone.utc)
    comparisons = [compile_rule(rule, now) for rule in rules]

    if len(comparisons) == 1:
        return comparisons[0]

    groups: List[List[Predicate]] = [[comparisons[0]]]
    for rule, comparison in zip(rules[1:], comparisons[1:]):
        if rule.logic == RuleLogic.OR:
            groups.append([comparison])
        else:
            groups[-1].append(comparison)

    return Conjunction(tuple(_collapse(group) for group in groups))


def compile_rule(rule: Rule, now: datetime) -> Comparison:
    """Compile one rule into a comparison"""
    if rule.field == RuleField.LAST_VISIT:
        days = parse_day_count(rule.value)
        try:
            reference = now - timedelta(days=days)
        except OverflowError:
            raise InvalidRuleError(f"Rule value {rule.value!r} is out of range")

        return Comparison(
            attribute=rule.field.attribute,
            comparator=RECENCY_COMPARATORS[rule.operator],
            value=reference,
        )

    return Comparison(
        attribute=rule.field.attribute,
        comparator=NUMERIC_COMPARATORS[rule.operator],
        value=parse_number(rule.value),
    )


def parse_number(value: str) -> float:
    """Parse a numeric rule value"""
    try:
        number = float(str(value).strip())
    except ValueError:
        raise InvalidRuleError(f"Rule value {value!r} is not a number")

    if not math.isfinite(number):
        raise InvalidRuleError(f"Rule value {value!r} is not a finite number")

    return number


def parse_day_count(value: str) -> int:
    """Parse a lastVisit rule value as a non-negative day count"""
    try:
        days = int(str(value).strip())
    except ValueError:
        raise InvalidRuleError(f"Rule value {value!r} is not a whole number of days")

    if days < 0:
        raise InvalidRuleError(f"Rule value {value!r} is a negative day count")

    return days


def _collapse(group: List[Predicate]) -> Predicate:
    if len(group) == 1:
        return group[0]
    return Conjunction(tuple(group))
