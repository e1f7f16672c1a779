"""
Audience Service

Resolves compiled predicates against the customer store.

Responsibilities:
    - Count matching customers (audience preview)
    - Load matching customers (dispatch)

Customers are always read fresh from the store; nothing is cached
between calls because order ingestion keeps mutating spend, visits and
recency.
"""

from typing import Callable, List, Optional
from datetime import datetime
import logging

from campaign_engine.core.domain.customer import Customer
from campaign_engine.core.domain.predicate import Predicate
from campaign_engine.core.domain.rules import RuleSet
from campaign_engine.core.ports.repository import RepositoryException, UnitOfWork
from campaign_engine.core.services.rule_compiler import compile_rules


logger = logging.getLogger(__name__)


class AudienceService:
    """
    Audience resolution service

    Example:
        >>> audience = AudienceService(uow_factory)
        >>> await audience.preview(rules)
        128
    """

    def __init__(self, uow_factory: Callable[[], UnitOfWork]):
        """
        Initialize audience service

        Args:
            uow_factory: Creates a fresh Unit of Work per resolution
        """
        self.uow_factory = uow_factory

    async def preview(
        self,
        rules: RuleSet,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Estimate audience size for a rule set

        Uses the same compiler as dispatch, so the preview matches the
        audience later dispatched against as long as the store is unchanged.

        Raises:
            InvalidRuleError: If a rule does not parse
            ResolverUnavailableError: If the customer store fails
        """
        return await self.count(compile_rules(rules, now=now))

    async def count(self, predicate: Predicate) -> int:
        """Count customers matching a predicate"""
        try:
            async with self.uow_factory() as uow:
                return await uow.customers.count(predicate)
        except RepositoryException as e:
            logger.error(f"Audience count failed: {e}")
            raise ResolverUnavailableError(str(e)) from e

    async def resolve(self, predicate: Predicate) -> List[Customer]:
        """Load customers matching a predicate"""
        try:
            async with self.uow_factory() as uow:
                customers = await uow.customers.find(predicate)
        except RepositoryException as e:
            logger.error(f"Audience resolution failed: {e}")
            raise ResolverUnavailableError(str(e)) from e

        logger.debug(f"Resolved audience of {len(customers)} customers")
        return customers


class ResolverUnavailableError(Exception):
    """Raised when the customer store cannot answer an audience query"""
    pass
