"""
Rule compiler tests

Covers per-field translation, left-to-right grouping (OR starts a new
AND-group, groups are AND-ed), lastVisit inversion and value parsing.
"""

import operator
import random
from datetime import timedelta

import pytest

from campaign_engine.core.domain.customer import Customer
from campaign_engine.core.domain.predicate import Comparator, Comparison, Conjunction, MatchAll
from campaign_engine.core.domain.rules import (
    InvalidRuleError,
    Rule,
    RuleField,
    RuleLogic,
    RuleOperator,
    rules_from_dicts,
)
from campaign_engine.core.services.rule_compiler import compile_rules


def make_customer(now, total_spends=0.0, visits=0, days_ago=1.0):
    return Customer(
        name="Ann",
        email="ann@example.com",
        total_spends=total_spends,
        visits=visits,
        last_visit=now - timedelta(days=days_ago),
    )


def rule(field, op, value, logic="AND"):
    return Rule.from_dict({"field": field, "operator": op, "value": value, "logic": logic})


class TestSingleRule:
    def test_total_spends_greater_than(self, now):
        predicate = compile_rules([rule("totalSpends", ">", "100")], now=now)

        assert predicate == Comparison("total_spends", Comparator.GT, 100.0)
        assert predicate.matches(make_customer(now, total_spends=150))
        assert not predicate.matches(make_customer(now, total_spends=100))

    def test_visits_operators_apply_directly(self, now):
        customer = make_customer(now, visits=5)

        assert compile_rules([rule("visits", "=", "5")], now=now).matches(customer)
        assert compile_rules([rule("visits", ">=", "5")], now=now).matches(customer)
        assert compile_rules([rule("visits", "<=", "5")], now=now).matches(customer)
        assert not compile_rules([rule("visits", "<", "5")], now=now).matches(customer)
        assert not compile_rules([rule("visits", ">", "5")], now=now).matches(customer)

    def test_decimal_spend_value(self, now):
        predicate = compile_rules([rule("totalSpends", "<", "99.5")], now=now)

        assert predicate.matches(make_customer(now, total_spends=99.4))
        assert not predicate.matches(make_customer(now, total_spends=99.5))


class TestLastVisit:
    def test_more_than_n_days_ago(self, now):
        predicate = compile_rules([rule("lastVisit", ">", "7")], now=now)

        assert predicate == Comparison("last_visit", Comparator.LT, now - timedelta(days=7))
        assert predicate.matches(make_customer(now, days_ago=10))
        assert not predicate.matches(make_customer(now, days_ago=3))

    def test_less_than_n_days_ago(self, now):
        predicate = compile_rules([rule("lastVisit", "<", "7")], now=now)

        assert predicate.matches(make_customer(now, days_ago=3))
        assert not predicate.matches(make_customer(now, days_ago=10))

    def test_inclusive_bounds_are_inverted(self, now):
        at_boundary = make_customer(now, days_ago=7)

        gte = compile_rules([rule("lastVisit", ">=", "7")], now=now)
        lte = compile_rules([rule("lastVisit", "<=", "7")], now=now)

        assert gte == Comparison("last_visit", Comparator.LE, now - timedelta(days=7))
        assert lte == Comparison("last_visit", Comparator.GE, now - timedelta(days=7))
        assert gte.matches(at_boundary)
        assert lte.matches(at_boundary)
        assert gte.matches(make_customer(now, days_ago=8))
        assert not lte.matches(make_customer(now, days_ago=8))

    def test_equals_is_exact_timestamp_equality(self, now):
        predicate = compile_rules([rule("lastVisit", "=", "7")], now=now)

        assert predicate.matches(make_customer(now, days_ago=7))
        # same calendar day, one second off: no match
        almost = make_customer(now, days_ago=7)
        almost.last_visit += timedelta(seconds=1)
        assert not predicate.matches(almost)

    def test_zero_days(self, now):
        predicate = compile_rules([rule("lastVisit", "<", "0")], now=now)

        assert predicate == Comparison("last_visit", Comparator.GT, now)


class TestGrouping:
    def test_empty_rule_set_matches_everything(self, now):
        predicate = compile_rules([], now=now)

        assert predicate == MatchAll()
        assert predicate.matches(make_customer(now))

    def test_or_starts_a_new_group_that_is_anded(self, now):
        predicate = compile_rules(
            [rule("totalSpends", ">", "100"), rule("visits", "<", "5", "OR")],
            now=now,
        )

        assert predicate == Conjunction((
            Comparison("total_spends", Comparator.GT, 100.0),
            Comparison("visits", Comparator.LT, 5.0),
        ))
        assert predicate.matches(make_customer(now, total_spends=150, visits=2))
        # either side alone is not enough
        assert not predicate.matches(make_customer(now, total_spends=150, visits=10))
        assert not predicate.matches(make_customer(now, total_spends=50, visits=2))

    def test_groups_collect_consecutive_and_rules(self, now):
        a = rule("totalSpends", ">", "1")
        b = rule("totalSpends", "<", "2")
        c = rule("visits", ">", "3", "OR")
        d = rule("visits", "<", "4")

        predicate = compile_rules([a, b, c, d], now=now)

        assert predicate == Conjunction((
            Conjunction((
                Comparison("total_spends", Comparator.GT, 1.0),
                Comparison("total_spends", Comparator.LT, 2.0),
            )),
            Conjunction((
                Comparison("visits", Comparator.GT, 3.0),
                Comparison("visits", Comparator.LT, 4.0),
            )),
        ))

    def test_logic_of_first_rule_is_ignored(self, now):
        predicate = compile_rules(
            [rule("visits", ">", "1", "OR"), rule("visits", "<", "9")],
            now=now,
        )

        assert predicate == Conjunction((
            Conjunction((
                Comparison("visits", Comparator.GT, 1.0),
                Comparison("visits", Comparator.LT, 9.0),
            )),
        ))

    def test_missing_logic_defaults_to_and(self):
        rules = rules_from_dicts([{"field": "visits", "operator": ">", "value": "1"}])

        assert rules[0].logic == RuleLogic.AND


# Reference semantics, written independently of the compiler
NUMERIC_OPS = {">": operator.gt, "<": operator.lt, ">=": operator.ge, "<=": operator.le, "=": operator.eq}
RECENCY_OPS = {">": operator.lt, "<": operator.gt, ">=": operator.le, "<=": operator.ge, "=": operator.eq}


def evaluate_sequentially(rules, customer, now):
    groups = []
    for index, r in enumerate(rules):
        if r.field == RuleField.LAST_VISIT:
            reference = now - timedelta(days=int(r.value))
            result = RECENCY_OPS[r.operator.value](customer.last_visit, reference)
        else:
            left = getattr(customer, r.field.attribute)
            result = NUMERIC_OPS[r.operator.value](left, float(r.value))

        if index == 0 or r.logic == RuleLogic.OR:
            groups.append(result)
        else:
            groups[-1] = groups[-1] and result
    return all(groups)


def test_compiled_predicate_agrees_with_sequential_evaluation(now):
    rng = random.Random(20240601)
    customers = [
        make_customer(
            now,
            total_spends=rng.choice([0, 50, 100, 150, 5000]),
            visits=rng.choice([0, 1, 5, 10]),
            days_ago=rng.choice([0, 3, 7, 30]),
        )
        for _ in range(40)
    ]

    for _ in range(200):
        rules = [
            Rule(
                field=rng.choice(list(RuleField)),
                operator=rng.choice(list(RuleOperator)),
                value=str(rng.choice([0, 1, 5, 7, 100])),
                logic=rng.choice(list(RuleLogic)),
            )
            for _ in range(rng.randint(0, 5))
        ]
        predicate = compile_rules(rules, now=now)

        for customer in customers:
            assert predicate.matches(customer) == evaluate_sequentially(rules, customer, now)


class TestInvalidRules:
    @pytest.mark.parametrize("value", ["abc", "", "nan", "inf", "1e400"])
    def test_non_numeric_spend(self, now, value):
        with pytest.raises(InvalidRuleError):
            compile_rules([rule("totalSpends", ">", value)], now=now)

    @pytest.mark.parametrize("value", ["1.5", "-3", "seven", "9999999999"])
    def test_bad_day_count(self, now, value):
        with pytest.raises(InvalidRuleError):
            compile_rules([rule("lastVisit", ">", value)], now=now)

    def test_unknown_field(self):
        with pytest.raises(InvalidRuleError):
            Rule.from_dict({"field": "age", "operator": ">", "value": "1"})

    def test_unknown_operator(self):
        with pytest.raises(InvalidRuleError):
            Rule.from_dict({"field": "visits", "operator": "!=", "value": "1"})

    def test_one_bad_rule_fails_the_whole_set(self, now):
        with pytest.raises(InvalidRuleError):
            compile_rules(
                [rule("visits", ">", "1"), rule("totalSpends", "<", "lots")],
                now=now,
            )
