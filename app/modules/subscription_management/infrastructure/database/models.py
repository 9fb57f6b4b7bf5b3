# 📄 File: app/modules/subscription_management/infrastructure/database/models.py
# 🧭 Purpose (Layman Explanation):
# This file defines how plans, contributors and subscriptions are stored in the database,
# including the rule that a contributor can only have one running subscription at a time.
#
# 🧪 Purpose (Technical Summary):
# SQLAlchemy ORM models for the subscription engine, with the partial unique index that
# enforces a single ACTIVE subscription per contributor at the storage level.
#
# 🔗 Dependencies:
# - SQLAlchemy ORM
# - app.shared.infrastructure.database.connection (declarative Base)
#
# 🔄 Connected Modules / Calls From:
# - *_repository_impl.py (CRUD operations)
# - migrations/ (schema generation)
# - tests (metadata.create_all)

"""
SQLAlchemy Models for Subscription Management

Models:
- PackageModel: Pricing plan definitions
- ContributorModel: Entitlement mirror of the contributor
- SubscriptionModel: Time-bounded contributor/package binding
- ContributorSubscriptionHistoryModel: Ordered, append-only subscription history

Identifiers are stored as 36-character strings so the schema runs unchanged
on PostgreSQL and SQLite.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship

from app.shared.infrastructure.database.connection import Base

ACTIVE_SUBSCRIPTION_INDEX = "uq_subscriptions_one_active_per_contributor"


def _uuid() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# PACKAGE MODEL - Plan Catalog
# =============================================================================

class PackageModel(Base):
    """SQLAlchemy model for pricing plans."""
    __tablename__ = "packages"

    package_id = Column(String(36), primary_key=True, default=_uuid, nullable=False)
    name = Column(String(100), nullable=False, unique=True, comment="Unique plan name")
    description = Column(Text, nullable=False, default="")
    price = Column(Numeric(12, 2), nullable=False, default=0)

    duration = Column(Integer, nullable=False, default=1)
    duration_unit = Column(String(10), nullable=False, default="months", comment="days/months/years")
    tier = Column(String(20), nullable=False, default="basic", comment="free/basic/premium/enterprise")

    # Usage ceilings: integer >= 0 or "unlimited"
    ceilings = Column(JSON, nullable=False, default=dict)
    max_projects = Column(String(20), nullable=True)
    storage_limit = Column(String(20), nullable=True)
    api_calls_limit = Column(String(20), nullable=True)
    features = Column(JSON, nullable=False, default=list)

    is_free = Column(Boolean, nullable=False, default=False)
    is_popular = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    auto_renewal = Column(Boolean, nullable=False, default=False)

    max_free_trial_duration = Column(Integer, nullable=True, comment="Free trial length in days")
    discount_percentage = Column(Numeric(5, 2), nullable=True)
    discount_valid_until = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        CheckConstraint("duration >= 1", name="duration_positive"),
        CheckConstraint(
            "max_free_trial_duration IS NULL OR (max_free_trial_duration BETWEEN 1 AND 365)",
            name="trial_duration_range",
        ),
    )

    def __repr__(self) -> str:
        return f"<PackageModel(package_id={self.package_id}, name={self.name})>"


# =============================================================================
# CONTRIBUTOR MODEL - Entitlement Mirror
# =============================================================================

class ContributorModel(Base):
    """SQLAlchemy model for the contributor's entitlement fields."""
    __tablename__ = "contributors"

    contributor_id = Column(String(36), primary_key=True, default=_uuid, nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)

    status = Column(String(20), nullable=False, default="pending")
    current_subscription_id = Column(String(36), nullable=True, comment="Active or trial subscription")
    subscription_status = Column(String(20), nullable=True, comment="active/expired/cancelled/pending/trial")
    subscription_tier = Column(String(20), nullable=False, default="free")
    trial_ends_at = Column(DateTime(timezone=True), nullable=True)

    billing_info = Column(JSON, nullable=True)
    usage_limits = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    history = relationship(
        "ContributorSubscriptionHistoryModel",
        order_by="ContributorSubscriptionHistoryModel.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<ContributorModel(contributor_id={self.contributor_id}, tier={self.subscription_tier})>"


# =============================================================================
# SUBSCRIPTION MODEL
# =============================================================================

class SubscriptionModel(Base):
    """
    SQLAlchemy model for subscriptions.

    ``uq_subscriptions_one_active_per_contributor`` allows at most one row per
    contributor with status 'active'.
    """
    __tablename__ = "subscriptions"

    subscription_id = Column(String(36), primary_key=True, default=_uuid, nullable=False)
    contributor_id = Column(
        String(36),
        ForeignKey("contributors.contributor_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    package_id = Column(String(36), ForeignKey("packages.package_id"), nullable=False)

    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False, index=True)

    status = Column(String(20), nullable=False, default="pending", comment="pending/active/expired/cancelled/suspended")
    payment_status = Column(String(20), nullable=False, default="pending", comment="pending/paid/failed/refunded")
    payment_method = Column(String(20), nullable=True)
    transaction_id = Column(String(100), nullable=True, unique=True)

    amount = Column(Numeric(12, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="XOF")

    auto_renewal = Column(Boolean, nullable=False, default=False)
    renewal_attempts = Column(Integer, nullable=False, default=0)
    last_renewal_date = Column(DateTime(timezone=True), nullable=True)
    next_billing_date = Column(DateTime(timezone=True), nullable=True)

    canceled_at = Column(DateTime(timezone=True), nullable=True)
    cancelation_reason = Column(String(500), nullable=True)

    is_free_trial = Column(Boolean, nullable=False, default=False)
    last_notified_threshold = Column(Integer, nullable=True)

    usage_stats = Column(JSON, nullable=False, default=dict)
    extra_metadata = Column("metadata", JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        CheckConstraint("end_date > start_date", name="end_after_start"),
        Index(
            ACTIVE_SUBSCRIPTION_INDEX,
            "contributor_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        Index("ix_subscriptions_status_end_date", "status", "end_date"),
    )

    def __repr__(self) -> str:
        return f"<SubscriptionModel(subscription_id={self.subscription_id}, status={self.status})>"


# =============================================================================
# CONTRIBUTOR SUBSCRIPTION HISTORY
# =============================================================================

class ContributorSubscriptionHistoryModel(Base):
    """Ordered, append-only list of a contributor's subscriptions."""
    __tablename__ = "contributor_subscription_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    contributor_id = Column(
        String(36),
        ForeignKey("contributors.contributor_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    subscription_id = Column(
        String(36),
        ForeignKey("subscriptions.subscription_id", ondelete="CASCADE"),
        nullable=False,
    )
    position = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


# =============================================================================
# MODEL REGISTRY
# =============================================================================

__all__ = [
    "ACTIVE_SUBSCRIPTION_INDEX",
    "ContributorModel",
    "ContributorSubscriptionHistoryModel",
    "PackageModel",
    "SubscriptionModel",
]
