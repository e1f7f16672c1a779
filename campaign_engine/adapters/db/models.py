"""
SQLAlchemy ORM Models

Database table definitions using SQLAlchemy ORM.
Maps domain models to database tables.

Tables:
    - customers
    - orders
    - campaigns
    - delivery_records (one row per campaign recipient)
"""

from typing import Optional
from uuid import UUID, uuid4
from datetime import datetime

from sqlalchemy import (
    String,
    Integer,
    Float,
    DateTime,
    Text,
    JSON,
    ForeignKey,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from campaign_engine.adapters.db.postgres import Base
from campaign_engine.core.domain.campaign import CampaignStatus
from campaign_engine.core.domain.delivery import DeliveryStatus


class CustomerModel(Base):
    """Customer table"""

    __tablename__ = "customers"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    # Segmentation attributes
    total_spends: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    visits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_visit: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_customers_total_spends", "total_spends"),
        Index("ix_customers_last_visit", "last_visit"),
        Index("ix_customers_created", "created_at", "id"),
    )


class OrderModel(Base):
    """Order table"""

    __tablename__ = "orders"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    customer_email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    items: Mapped[list] = mapped_column(JSON, nullable=False, default=list)


class CampaignModel(Base):
    """Campaign table"""

    __tablename__ = "campaigns"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    rules: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=CampaignStatus.PENDING.value,
        index=True,
    )

    # Completion counters
    audience_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sent_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("ix_campaigns_created", "created_at"),
    )


class DeliveryRecordModel(Base):
    """Delivery record table (high volume, one row per recipient)"""

    __tablename__ = "delivery_records"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    campaign_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("campaigns.id"),
        nullable=False,
        index=True,
    )
    customer_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("customers.id"),
        nullable=False,
    )
    customer_email: Mapped[str] = mapped_column(String(320), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DeliveryStatus.PENDING.value,
    )

    __table_args__ = (
        Index("ix_delivery_records_campaign_status", "campaign_id", "status"),
        Index("ix_delivery_records_created", "created_at"),
    )
