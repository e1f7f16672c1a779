"""
Repository Port Interface

Defines the contract for the persistence layer.
Implements Repository Pattern for domain model persistence.

Implementations:
    - SQLAlchemy (PostgreSQL) repositories
    - In-memory repositories (local runs and tests)

Pattern: Repository Pattern + Unit of Work

Atomicity:
    CampaignRepository.record_outcome and complete_if_exhausted are the
    only writes to campaign counters and status after dispatch. Each must
    be a single atomic step per campaign so concurrent receipts never lose
    updates and COMPLETED is reported exactly once.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, List, TypeVar, Generic
from uuid import UUID

from campaign_engine.core.domain.campaign import Campaign, CounterUpdate
from campaign_engine.core.domain.customer import Customer, Order
from campaign_engine.core.domain.delivery import DeliveryRecord, DeliveryStatus
from campaign_engine.core.domain.predicate import Predicate


T = TypeVar('T')


class Repository(ABC, Generic[T]):
    """
    Generic repository interface

    Provides basic persistence operations for domain entities.
    """

    @abstractmethod
    async def save(self, entity: T) -> T:
        """
        Save entity (insert or update)

        Args:
            entity: Entity to persist

        Returns:
            Saved entity
        """
        pass

    @abstractmethod
    async def get_by_id(self, id: UUID) -> Optional[T]:
        """
        Retrieve entity by ID

        Args:
            id: Entity identifier

        Returns:
            Entity or None if not found
        """
        pass


class CustomerRepository(Repository[Customer]):
    """
    Customer queries used by audience resolution

    Results of find() are ordered by creation time, then id, so repeated
    resolutions over an unchanged store return the same sequence.
    """

    @abstractmethod
    async def count(self, predicate: Predicate) -> int:
        """Count customers matching a predicate"""
        pass

    @abstractmethod
    async def find(self, predicate: Predicate) -> List[Customer]:
        """Return customers matching a predicate"""
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[Customer]:
        """Get customer by unique email"""
        pass

    @abstractmethod
    async def record_order(self, email: str, amount: float, at: datetime) -> bool:
        """
        Atomically apply an order to the customer with this email

        Adds amount to total_spends, increments visits and sets last_visit
        in one step, so concurrent orders never lose an update.

        Returns:
            True if a customer with the email exists
        """
        pass

    @abstractmethod
    async def list(self, limit: int = 100, offset: int = 0) -> List[Customer]:
        """List customers, oldest first"""
        pass

    @abstractmethod
    async def count_all(self) -> int:
        """Total number of customers"""
        pass


class CampaignRepository(Repository[Campaign]):
    """
    Campaign-specific repository operations
    """

    @abstractmethod
    async def list(self, limit: int = 100, offset: int = 0) -> List[Campaign]:
        """List campaigns, newest first"""
        pass

    @abstractmethod
    async def count_all(self) -> int:
        """Total number of campaigns"""
        pass

    @abstractmethod
    async def mark_sending(self, campaign_id: UUID) -> Optional[Campaign]:
        """
        Atomically move a PENDING campaign to SENDING

        Returns:
            Updated campaign, or None if the campaign was not PENDING

        Raises:
            EntityNotFoundException: If the campaign does not exist
        """
        pass

    @abstractmethod
    async def release_to_pending(self, campaign_id: UUID) -> None:
        """Move a SENDING campaign with no outcomes back to PENDING"""
        pass

    @abstractmethod
    async def record_outcome(
        self,
        campaign_id: UUID,
        outcome: DeliveryStatus,
    ) -> CounterUpdate:
        """
        Atomically count one outcome and complete the campaign if exhausted

        Args:
            campaign_id: Owning campaign
            outcome: SENT or FAILED

        Returns:
            Whether the outcome was counted and whether it completed the
            campaign
        """
        pass

    @abstractmethod
    async def complete_if_exhausted(self, campaign_id: UUID) -> bool:
        """
        Atomically flip SENDING to COMPLETED when counters reach audience size

        Returns:
            True if this call performed the transition
        """
        pass


class DeliveryRecordRepository(Repository[DeliveryRecord]):
    """
    Delivery record operations

    Handles high-volume record persistence.
    """

    @abstractmethod
    async def save_batch(
        self,
        records: List[DeliveryRecord],
    ) -> List[DeliveryRecord]:
        """
        Bulk save records

        Args:
            records: Records to save

        Returns:
            Saved records
        """
        pass

    @abstractmethod
    async def settle(
        self,
        record_id: UUID,
        outcome: DeliveryStatus,
    ) -> bool:
        """
        Conditionally move a record from PENDING to an outcome

        Returns:
            True if the record was PENDING and is now settled, False if it
            had already been settled

        Raises:
            EntityNotFoundException: If the record does not exist
        """
        pass

    @abstractmethod
    async def get_by_campaign(
        self,
        campaign_id: UUID,
        limit: int = 100,
        offset: int = 0,
        status: Optional[DeliveryStatus] = None,
    ) -> List[DeliveryRecord]:
        """
        Get records for a campaign

        Args:
            campaign_id: Campaign identifier
            limit: Max results
            offset: Pagination offset
            status: Filter by status

        Returns:
            List of records
        """
        pass

    @abstractmethod
    async def count_since(self, since: datetime) -> int:
        """Count records created at or after a timestamp"""
        pass


class OrderRepository(Repository[Order]):
    """Order persistence"""

    @abstractmethod
    async def list(self, limit: int = 100, offset: int = 0) -> List[Order]:
        """List orders, most recent order date first"""
        pass

    @abstractmethod
    async def count_all(self) -> int:
        """Total number of orders"""
        pass


class UnitOfWork(ABC):
    """
    Unit of Work pattern for transaction management

    Ensures atomic operations across multiple repositories.
    """

    @abstractmethod
    async def __aenter__(self):
        """Begin transaction"""
        pass

    @abstractmethod
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Commit or rollback transaction"""
        pass

    @abstractmethod
    async def commit(self) -> None:
        """Commit transaction"""
        pass

    @abstractmethod
    async def rollback(self) -> None:
        """Rollback transaction"""
        pass

    @property
    @abstractmethod
    def customers(self) -> CustomerRepository:
        """Get customer repository"""
        pass

    @property
    @abstractmethod
    def campaigns(self) -> CampaignRepository:
        """Get campaign repository"""
        pass

    @property
    @abstractmethod
    def deliveries(self) -> DeliveryRecordRepository:
        """Get delivery record repository"""
        pass

    @property
    @abstractmethod
    def orders(self) -> OrderRepository:
        """Get order repository"""
        pass


class RepositoryException(Exception):
    """Base exception for repository errors"""
    pass


class EntityNotFoundException(RepositoryException):
    """Raised when entity is not found"""
    pass


class DuplicateEntityException(RepositoryException):
    """Raised when a unique key is already taken"""
    pass


class StoreUnavailableError(RepositoryException):
    """Raised when the backing store cannot be reached"""
    pass
