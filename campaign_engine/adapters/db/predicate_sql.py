"""
Predicate to SQL translation

Turns a compiled audience Predicate into a SQLAlchemy WHERE clause over
the customers table. Comparisons go through the shared COMPARATORS table,
so the database applies exactly the operators the in-memory path does.
"""

from functools import singledispatch

from sqlalchemy import and_, true
from sqlalchemy.sql.elements import ColumnElement

from campaign_engine.adapters.db.models import CustomerModel
from campaign_engine.core.domain.predicate import (
    COMPARATORS,
    Comparison,
    Conjunction,
    MatchAll,
    Predicate,
)


@singledispatch
def to_clause(predicate: Predicate) -> ColumnElement:
    """
    Translate a predicate into a WHERE clause on CustomerModel

    Example:
        >>> stmt = select(CustomerModel).where(to_clause(predicate))
    """
    raise TypeError(f"Unsupported predicate: {type(predicate).__name__}")


@to_clause.register
def _(predicate: MatchAll) -> ColumnElement:
    return true()


@to_clause.register
def _(predicate: Comparison) -> ColumnElement:
    column = getattr(CustomerModel, predicate.attribute)
    return COMPARATORS[predicate.comparator](column, predicate.value)


@to_clause.register
def _(predicate: Conjunction) -> ColumnElement:
    return and_(*(to_clause(term) for term in predicate.terms))
