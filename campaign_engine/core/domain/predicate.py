"""
Audience Predicate

Compiled, store-independent form of a rule set.

A predicate is a small expression tree:

    MatchAll                 - matches every customer
    Comparison(attr, op, v)  - customer.<attr> <op> v
    Conjunction(terms)       - every term matches

The same ``COMPARATORS`` table drives in-memory evaluation here and the
SQL translation in the database adapter, so both paths agree on every
match.
"""

import operator
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Tuple, Union


class Comparator(str, Enum):
    """Comparison applied as ``attribute <comparator> value``"""
    GT = "gt"
    LT = "lt"
    GE = "ge"
    LE = "le"
    EQ = "eq"


COMPARATORS: Dict[Comparator, Callable[[Any, Any], Any]] = {
    Comparator.GT: operator.gt,
    Comparator.LT: operator.lt,
    Comparator.GE: operator.ge,
    Comparator.LE: operator.le,
    Comparator.EQ: operator.eq,
}


class Predicate(ABC):
    """Boolean matcher over customer attributes"""

    @abstractmethod
    def matches(self, customer: Any) -> bool:
        """Evaluate the predicate against a customer"""
        pass


@dataclass(frozen=True)
class MatchAll(Predicate):
    """Predicate of an empty rule set"""

    def matches(self, customer: Any) -> bool:
        return True


@dataclass(frozen=True)
class Comparison(Predicate):
    """
    One attribute comparison

    Attributes:
        attribute: Customer attribute name (total_spends, visits, last_visit)
        comparator: Comparison to apply
        value: Right-hand operand (number or timestamp)
    """
    attribute: str
    comparator: Comparator
    value: Union[float, datetime]

    def matches(self, customer: Any) -> bool:
        left = getattr(customer, self.attribute)
        return bool(COMPARATORS[self.comparator](left, self.value))


@dataclass(frozen=True)
class Conjunction(Predicate):
    """All terms must match"""
    terms: Tuple[Predicate, ...]

    def matches(self, customer: Any) -> bool:
        return all(term.matches(customer) for term in self.terms)
