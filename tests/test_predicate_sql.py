"""
SQL translation tests

Statements are compiled against the PostgreSQL dialect and inspected as
text; nothing here needs a running database.
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql

from campaign_engine.adapters.db.predicate_sql import to_clause
from campaign_engine.adapters.db.repositories.campaign_repo import (
    complete_if_exhausted_statement,
    record_outcome_statement,
)
from campaign_engine.adapters.db.repositories.customer_repo import record_order_statement
from campaign_engine.adapters.db.repositories.delivery_repo import settle_statement
from campaign_engine.core.domain.delivery import DeliveryStatus
from campaign_engine.core.domain.predicate import Comparator, Comparison, Conjunction, MatchAll
from campaign_engine.core.domain.rules import Rule
from campaign_engine.core.services.rule_compiler import compile_rules


def sql(element) -> str:
    return str(element.compile(dialect=postgresql.dialect()))


@pytest.mark.parametrize(
    "comparator, symbol",
    [
        (Comparator.GT, ">"),
        (Comparator.LT, "<"),
        (Comparator.GE, ">="),
        (Comparator.LE, "<="),
        (Comparator.EQ, "="),
    ],
)
def test_comparison_operators(comparator, symbol):
    clause = sql(to_clause(Comparison("visits", comparator, 5.0)))

    assert clause.startswith(f"customers.visits {symbol} ")


def test_match_all_is_true():
    assert sql(to_clause(MatchAll())) == "true"


def test_last_visit_rule_compares_timestamp(now):
    predicate = compile_rules(
        [Rule.from_dict({"field": "lastVisit", "operator": ">", "value": "30"})],
        now=now,
    )

    clause = to_clause(predicate)

    assert sql(clause).startswith("customers.last_visit < ")
    assert clause.right.value == now - timedelta(days=30)


def test_groups_join_with_and():
    predicate = Conjunction((
        Comparison("total_spends", Comparator.GT, 100.0),
        Conjunction((
            Comparison("visits", Comparator.GE, 2.0),
            Comparison("visits", Comparator.LE, 9.0),
        )),
    ))

    clause = sql(to_clause(predicate))

    assert " OR " not in clause
    assert clause.count(" AND ") == 2
    assert "customers.total_spends >" in clause


def test_unknown_predicate_is_rejected():
    with pytest.raises(TypeError):
        to_clause(object())


class TestCounterStatement:
    def test_sent_outcome_increments_sent_count(self):
        statement = sql(record_outcome_statement(uuid4(), DeliveryStatus.SENT))
        set_clause = statement.split(" WHERE ")[0]

        assert statement.startswith("UPDATE campaigns SET ")
        assert "sent_count=" in set_clause
        assert "failed_count=" not in set_clause

    def test_failed_outcome_increments_failed_count(self):
        set_clause = sql(record_outcome_statement(uuid4(), DeliveryStatus.FAILED)).split(" WHERE ")[0]

        assert "failed_count=" in set_clause
        assert "sent_count=" not in set_clause

    def test_guarded_by_status_and_audience_size(self):
        statement = sql(record_outcome_statement(uuid4(), DeliveryStatus.SENT))
        where_clause = statement.split(" WHERE ")[1]

        assert "campaigns.status = " in where_clause
        assert "campaigns.sent_count + campaigns.failed_count < campaigns.audience_size" in where_clause

    def test_completes_in_same_statement(self):
        statement = sql(record_outcome_statement(uuid4(), DeliveryStatus.SENT))

        assert "CASE WHEN" in statement
        assert statement.endswith("RETURNING campaigns.status")

    def test_pending_is_not_an_outcome(self):
        with pytest.raises(ValueError):
            record_outcome_statement(uuid4(), DeliveryStatus.PENDING)

    def test_complete_if_exhausted_guard(self):
        statement = sql(complete_if_exhausted_statement(uuid4()))

        assert "campaigns.sent_count + campaigns.failed_count >= campaigns.audience_size" in statement


def test_settle_only_touches_pending_records():
    statement = sql(settle_statement(uuid4(), DeliveryStatus.FAILED))
    where_clause = statement.split(" WHERE ")[1]

    assert statement.startswith("UPDATE delivery_records SET ")
    assert "delivery_records.status = " in where_clause
    assert statement.endswith("RETURNING delivery_records.id")


def test_order_is_applied_with_increments(now):
    compiled = record_order_statement("Ann@Example.com", 49.5, now).compile(
        dialect=postgresql.dialect()
    )
    statement = str(compiled)
    set_clause = statement.split(" WHERE ")[0]

    assert statement.startswith("UPDATE customers SET ")
    assert "customers.total_spends +" in set_clause
    assert "customers.visits +" in set_clause
    assert statement.endswith("RETURNING customers.id")
    assert "ann@example.com" in compiled.params.values()
