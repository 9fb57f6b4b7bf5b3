# 📄 File: app/modules/subscription_management/infrastructure/database/mappers.py
# 🧭 Purpose (Layman Explanation):
# Translates between the way records are stored in the database and the way the app works
# with them, so both sides can change without breaking each other.
# 🧪 Purpose (Technical Summary):
# ORM <-> domain conversion for packages, contributors and subscriptions, plus IntegrityError
# classification for the subscription engine's unique constraints.
# 🔗 Dependencies:
# SQLAlchemy exceptions, domain models, app.shared.utils.dates
# 🔄 Connected Modules / Calls From:
# package_repository_impl.py, contributor_repository_impl.py, subscription_repository_impl.py

from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from app.modules.subscription_management.domain.models.contributor import Contributor
from app.modules.subscription_management.domain.models.entitlements import UsageLimits
from app.modules.subscription_management.domain.models.package import (
    CEILING_FIELDS,
    UNLIMITED,
    Discount,
    Package,
)
from app.modules.subscription_management.domain.models.subscription import Subscription
from app.modules.subscription_management.infrastructure.database.models import (
    ACTIVE_SUBSCRIPTION_INDEX,
    ContributorModel,
    PackageModel,
    SubscriptionModel,
)
from app.shared.core.exceptions import ConflictError
from app.shared.utils.dates import ensure_utc


def _utc(value):
    return ensure_utc(value) if value is not None else None


def _enum_value(value):
    return getattr(value, "value", value)


def ceiling_to_column(value) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def ceiling_from_column(value):
    if value is None:
        return None
    if value == UNLIMITED:
        return UNLIMITED
    return int(value)


# =============================================================================
# PACKAGE
# =============================================================================

def package_to_row(package: Package) -> Dict[str, Any]:
    discount = package.discount
    return {
        "package_id": package.package_id,
        "name": package.name,
        "description": package.description,
        "price": package.price,
        "duration": package.duration,
        "duration_unit": _enum_value(package.duration_unit),
        "tier": _enum_value(package.tier),
        "ceilings": package.ceilings(),
        "max_projects": ceiling_to_column(package.max_projects),
        "storage_limit": ceiling_to_column(package.storage_limit),
        "api_calls_limit": ceiling_to_column(package.api_calls_limit),
        "features": [feature.model_dump() for feature in package.features],
        "is_free": package.is_free,
        "is_popular": package.is_popular,
        "is_active": package.is_active,
        "auto_renewal": package.auto_renewal,
        "max_free_trial_duration": package.max_free_trial_duration,
        "discount_percentage": discount.percentage if discount else None,
        "discount_valid_until": discount.valid_until if discount else None,
        "created_at": package.created_at,
        "updated_at": package.updated_at,
    }


def package_to_domain(model: PackageModel) -> Package:
    discount = None
    if model.discount_percentage is not None:
        discount = Discount(
            percentage=model.discount_percentage,
            valid_until=_utc(model.discount_valid_until),
        )

    ceilings = {name: (model.ceilings or {}).get(name, 0) for name in CEILING_FIELDS}
    return Package(
        package_id=model.package_id,
        name=model.name,
        description=model.description or "",
        price=model.price,
        duration=model.duration,
        duration_unit=model.duration_unit,
        tier=model.tier,
        max_projects=ceiling_from_column(model.max_projects),
        storage_limit=ceiling_from_column(model.storage_limit),
        api_calls_limit=ceiling_from_column(model.api_calls_limit),
        features=model.features or [],
        is_free=model.is_free,
        is_popular=model.is_popular,
        is_active=model.is_active,
        auto_renewal=model.auto_renewal,
        max_free_trial_duration=model.max_free_trial_duration,
        discount=discount,
        created_at=_utc(model.created_at),
        updated_at=_utc(model.updated_at),
        **ceilings,
    )


# =============================================================================
# CONTRIBUTOR
# =============================================================================

def contributor_column_value(key: str, value):
    if key == "usage_limits" and isinstance(value, UsageLimits):
        return value.model_dump()
    return _enum_value(value)


def contributor_to_domain(model: ContributorModel, history: List[str]) -> Contributor:
    return Contributor(
        contributor_id=model.contributor_id,
        name=model.name,
        email=model.email,
        status=model.status,
        current_subscription_id=model.current_subscription_id,
        subscription_history=history,
        subscription_status=model.subscription_status,
        subscription_tier=model.subscription_tier,
        trial_ends_at=_utc(model.trial_ends_at),
        billing_info=model.billing_info,
        usage_limits=UsageLimits(**(model.usage_limits or {})),
        created_at=_utc(model.created_at),
        updated_at=_utc(model.updated_at),
    )


# =============================================================================
# SUBSCRIPTION
# =============================================================================

def subscription_column_value(key: str, value):
    return _enum_value(value)


def subscription_to_row(subscription: Subscription) -> Dict[str, Any]:
    data = subscription.model_dump(exclude={"metadata"})
    row = {key: _enum_value(value) for key, value in data.items()}
    row["extra_metadata"] = dict(subscription.metadata)
    return row


def subscription_to_domain(model: SubscriptionModel) -> Subscription:
    return Subscription(
        subscription_id=model.subscription_id,
        contributor_id=model.contributor_id,
        package_id=model.package_id,
        start_date=_utc(model.start_date),
        end_date=_utc(model.end_date),
        status=model.status,
        payment_status=model.payment_status,
        payment_method=model.payment_method,
        transaction_id=model.transaction_id,
        amount=model.amount,
        currency=model.currency,
        auto_renewal=model.auto_renewal,
        renewal_attempts=model.renewal_attempts,
        last_renewal_date=_utc(model.last_renewal_date),
        next_billing_date=_utc(model.next_billing_date),
        canceled_at=_utc(model.canceled_at),
        cancelation_reason=model.cancelation_reason,
        is_free_trial=model.is_free_trial,
        last_notified_threshold=model.last_notified_threshold,
        usage_stats=model.usage_stats or {},
        metadata=model.extra_metadata or {},
        created_at=_utc(model.created_at),
        updated_at=_utc(model.updated_at),
    )


# =============================================================================
# INTEGRITY ERRORS
# =============================================================================

def integrity_conflict(error: IntegrityError, resource_id: Optional[str] = None) -> ConflictError:
    """Translate a unique-constraint violation into a ConflictError."""
    message = str(getattr(error, "orig", error))

    if ACTIVE_SUBSCRIPTION_INDEX in message or "subscriptions.contributor_id" in message:
        return ConflictError(
            "Contributor already has an active subscription",
            resource_type="subscription",
            resource_id=resource_id,
            current_state="active",
        )
    if "transaction_id" in message:
        return ConflictError(
            "Transaction reference already used",
            resource_type="subscription",
            resource_id=resource_id,
        )
    if "packages.name" in message or "uq_packages_name" in message:
        return ConflictError("A package with this name already exists", resource_type="package")
    if "contributors.email" in message or "uq_contributors_email" in message:
        return ConflictError("A contributor with this email already exists", resource_type="contributor")

    return ConflictError(f"Integrity constraint violated: {message}", resource_id=resource_id)
