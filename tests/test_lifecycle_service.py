"""Subscription lifecycle: purchase, activation, cancellation, renewal, extension and trials."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.modules.subscription_management.domain.models.contributor import (
    ContributorStatus,
    ContributorSubscriptionStatus,
    SubscriptionTier,
)
from app.modules.subscription_management.domain.models.entitlements import free_tier_limits
from app.modules.subscription_management.domain.models.subscription import (
    PaymentStatus,
    SubscriptionStatus,
)
from app.modules.subscription_management.domain.services.lifecycle_service import (
    SubscriptionLifecycleService,
)
from app.modules.subscription_management.infrastructure.database.contributor_repository_impl import (
    ContributorRepositoryImpl,
)
from app.modules.subscription_management.infrastructure.database.package_repository_impl import (
    PackageRepositoryImpl,
)
from app.modules.subscription_management.infrastructure.database.subscription_repository_impl import (
    SubscriptionRepositoryImpl,
)
from app.shared.core.exceptions import (
    ConflictError,
    NotFoundError,
    TransactionError,
    ValidationError,
)

UTC = timezone.utc


async def load_contributor(uow_factory, contributor_id):
    async with uow_factory("load_contributor") as uow:
        return await ContributorRepositoryImpl().get_by_id(uow.session, contributor_id)


async def load_subscription(uow_factory, subscription_id):
    async with uow_factory("load_subscription") as uow:
        return await SubscriptionRepositoryImpl().get_by_id(uow.session, subscription_id)


async def activate(service, contributor, package):
    pending = await service.create_subscription(contributor.contributor_id, package.package_id)
    return await service.confirm_payment(pending.subscription_id)


# =============================================================================
# PURCHASE AND ACTIVATION
# =============================================================================

async def test_purchase_activate_and_expire(lifecycle_service, uow_factory, clock, contributor, basic_package):
    pending = await lifecycle_service.create_subscription(
        contributor.contributor_id, basic_package.package_id, payment_method="mobile_money"
    )

    assert pending.status == SubscriptionStatus.PENDING
    assert pending.payment_status == PaymentStatus.PENDING
    assert pending.amount == Decimal("5000")
    assert pending.currency == "XOF"
    assert pending.start_date == clock.now()
    assert pending.end_date == datetime(2024, 3, 2, 10, 0, tzinfo=UTC)
    assert pending.transaction_id.startswith("TXN_")

    untouched = await load_contributor(uow_factory, contributor.contributor_id)
    assert untouched.subscription_tier == SubscriptionTier.FREE
    assert untouched.current_subscription_id is None

    active = await lifecycle_service.confirm_payment(pending.subscription_id, transaction_id="GW-123")
    assert active.status == SubscriptionStatus.ACTIVE
    assert active.payment_status == PaymentStatus.PAID
    assert active.transaction_id == "GW-123"

    mirrored = await load_contributor(uow_factory, contributor.contributor_id)
    assert mirrored.current_subscription_id == pending.subscription_id
    assert mirrored.subscription_status == ContributorSubscriptionStatus.ACTIVE
    assert mirrored.subscription_tier == SubscriptionTier.BASIC
    assert mirrored.status == ContributorStatus.ACTIVE
    assert mirrored.usage_limits.max_users == 5
    assert mirrored.subscription_history == [pending.subscription_id]

    clock.set(datetime(2024, 3, 3, tzinfo=UTC))
    report = await lifecycle_service.check_expired_subscriptions()
    assert report.expired == 1

    expired = await load_subscription(uow_factory, pending.subscription_id)
    assert expired.status == SubscriptionStatus.EXPIRED
    assert expired.auto_renewal is False

    downgraded = await load_contributor(uow_factory, contributor.contributor_id)
    assert downgraded.usage_limits.max_users == 1
    assert downgraded.usage_limits == free_tier_limits()
    assert downgraded.subscription_tier == SubscriptionTier.FREE
    assert downgraded.subscription_status == ContributorSubscriptionStatus.EXPIRED
    assert downgraded.status == ContributorStatus.INACTIVE
    assert downgraded.current_subscription_id is None


async def test_create_requires_known_contributor_and_package(lifecycle_service, contributor, basic_package):
    with pytest.raises(NotFoundError):
        await lifecycle_service.create_subscription("missing", basic_package.package_id)
    with pytest.raises(NotFoundError):
        await lifecycle_service.create_subscription(contributor.contributor_id, "missing")


async def test_create_rejects_inactive_package(lifecycle_service, package_service, contributor, basic_package):
    await package_service.deactivate_package(basic_package.package_id)

    with pytest.raises(ConflictError):
        await lifecycle_service.create_subscription(contributor.contributor_id, basic_package.package_id)


async def test_create_rejects_second_active_subscription(lifecycle_service, contributor, basic_package):
    await activate(lifecycle_service, contributor, basic_package)

    with pytest.raises(ConflictError):
        await lifecycle_service.create_subscription(contributor.contributor_id, basic_package.package_id)


async def test_create_validates_payment_method_and_currency(lifecycle_service, contributor, basic_package):
    with pytest.raises(ValidationError):
        await lifecycle_service.create_subscription(
            contributor.contributor_id, basic_package.package_id, payment_method="cheque"
        )
    with pytest.raises(ValidationError):
        await lifecycle_service.create_subscription(
            contributor.contributor_id, basic_package.package_id, currency="GBP"
        )

    created = await lifecycle_service.create_subscription(
        contributor.contributor_id, basic_package.package_id, currency="eur"
    )
    assert created.currency == "EUR"


async def test_create_stores_billing_info(lifecycle_service, uow_factory, contributor, basic_package):
    await lifecycle_service.create_subscription(
        contributor.contributor_id,
        basic_package.package_id,
        billing_info={"address": "Rue 12, Abidjan"},
    )

    stored = await load_contributor(uow_factory, contributor.contributor_id)
    assert stored.billing_info == {"address": "Rue 12, Abidjan"}


async def test_confirm_payment_twice_conflicts(lifecycle_service, contributor, basic_package):
    active = await activate(lifecycle_service, contributor, basic_package)

    with pytest.raises(ConflictError):
        await lifecycle_service.confirm_payment(active.subscription_id)


async def test_confirm_second_pending_while_active_conflicts(lifecycle_service, contributor, basic_package):
    first = await lifecycle_service.create_subscription(contributor.contributor_id, basic_package.package_id)
    second = await lifecycle_service.create_subscription(contributor.contributor_id, basic_package.package_id)
    await lifecycle_service.confirm_payment(first.subscription_id)

    with pytest.raises(ConflictError):
        await lifecycle_service.confirm_payment(second.subscription_id)


async def test_confirm_unknown_subscription(lifecycle_service):
    with pytest.raises(NotFoundError):
        await lifecycle_service.confirm_payment("missing")


async def test_failed_payment_keeps_subscription_pending(lifecycle_service, contributor, basic_package):
    pending = await lifecycle_service.create_subscription(contributor.contributor_id, basic_package.package_id)

    failed = await lifecycle_service.fail_payment(pending.subscription_id, reason="Card declined")
    assert failed.status == SubscriptionStatus.PENDING
    assert failed.payment_status == PaymentStatus.FAILED
    assert failed.metadata["payment_failure_reason"] == "Card declined"

    retried = await lifecycle_service.confirm_payment(pending.subscription_id)
    assert retried.status == SubscriptionStatus.ACTIVE

    with pytest.raises(ConflictError):
        await lifecycle_service.fail_payment(pending.subscription_id)


# =============================================================================
# CANCELLATION
# =============================================================================

async def test_cancel_active_downgrades_contributor(
    lifecycle_service, uow_factory, clock, contributor, basic_package
):
    active = await activate(lifecycle_service, contributor, basic_package)
    clock.advance(days=3)

    cancelled = await lifecycle_service.cancel_subscription(active.subscription_id)
    assert cancelled.status == SubscriptionStatus.CANCELLED
    assert cancelled.canceled_at == clock.now()
    assert cancelled.cancelation_reason == "Cancelled by the user"
    assert cancelled.auto_renewal is False

    contributor_after = await load_contributor(uow_factory, contributor.contributor_id)
    assert contributor_after.subscription_status == ContributorSubscriptionStatus.CANCELLED
    assert contributor_after.subscription_tier == SubscriptionTier.FREE
    assert contributor_after.usage_limits == free_tier_limits()


async def test_timestamps_follow_the_service_clock(
    lifecycle_service, uow_factory, clock, contributor, basic_package
):
    created_at = clock.now()
    pending = await lifecycle_service.create_subscription(contributor.contributor_id, basic_package.package_id)
    assert pending.created_at == created_at
    assert pending.updated_at == created_at

    clock.advance(hours=5)
    await lifecycle_service.confirm_payment(pending.subscription_id)

    stored = await load_subscription(uow_factory, pending.subscription_id)
    assert stored.created_at == created_at
    assert stored.updated_at == clock.now()
    contributor_after = await load_contributor(uow_factory, contributor.contributor_id)
    assert contributor_after.updated_at == clock.now()


async def test_cancel_twice_conflicts_and_leaves_record_unchanged(
    lifecycle_service, uow_factory, clock, contributor, basic_package
):
    active = await activate(lifecycle_service, contributor, basic_package)
    first = await lifecycle_service.cancel_subscription(active.subscription_id, reason="Too expensive")
    clock.advance(hours=5)

    with pytest.raises(ConflictError):
        await lifecycle_service.cancel_subscription(active.subscription_id, reason="Again")

    stored = await load_subscription(uow_factory, active.subscription_id)
    assert stored.canceled_at == first.canceled_at
    assert stored.cancelation_reason == "Too expensive"


async def test_cancel_pending_keeps_running_subscription(
    lifecycle_service, uow_factory, contributor, basic_package
):
    running = await lifecycle_service.create_subscription(contributor.contributor_id, basic_package.package_id)
    stray = await lifecycle_service.create_subscription(contributor.contributor_id, basic_package.package_id)
    await lifecycle_service.confirm_payment(running.subscription_id)

    await lifecycle_service.cancel_subscription(stray.subscription_id)

    contributor_after = await load_contributor(uow_factory, contributor.contributor_id)
    assert contributor_after.current_subscription_id == running.subscription_id
    assert contributor_after.subscription_tier == SubscriptionTier.BASIC
    assert contributor_after.usage_limits.max_users == 5


async def test_cancel_reason_length_is_bounded(lifecycle_service, contributor, basic_package):
    active = await activate(lifecycle_service, contributor, basic_package)

    with pytest.raises(ValidationError):
        await lifecycle_service.cancel_subscription(active.subscription_id, reason="x" * 501)


async def test_expired_subscription_cannot_be_cancelled(lifecycle_service, clock, contributor, basic_package):
    active = await activate(lifecycle_service, contributor, basic_package)
    clock.advance(days=40)
    await lifecycle_service.check_expired_subscriptions()

    with pytest.raises(ConflictError):
        await lifecycle_service.cancel_subscription(active.subscription_id)


# =============================================================================
# RENEWAL AND EXTENSION
# =============================================================================

async def test_renew_creates_new_pending_subscription(
    lifecycle_service, uow_factory, contributor, basic_package
):
    active = await activate(lifecycle_service, contributor, basic_package)
    await lifecycle_service.cancel_subscription(active.subscription_id)

    renewal = await lifecycle_service.renew_subscription(active.subscription_id)

    assert renewal.subscription_id != active.subscription_id
    assert renewal.status == SubscriptionStatus.PENDING
    assert renewal.package_id == basic_package.package_id
    assert renewal.metadata == {"renewed_from": active.subscription_id}

    original = await load_subscription(uow_factory, active.subscription_id)
    assert original.status == SubscriptionStatus.CANCELLED


async def test_renew_while_active_conflicts(lifecycle_service, contributor, basic_package):
    active = await activate(lifecycle_service, contributor, basic_package)

    with pytest.raises(ConflictError):
        await lifecycle_service.renew_subscription(active.subscription_id)


async def test_extend_pushes_end_date_by_whole_periods(lifecycle_service, clock, contributor, basic_package):
    active = await activate(lifecycle_service, contributor, basic_package)

    extended = await lifecycle_service.extend_subscription(active.subscription_id, periods=2)

    assert extended.end_date == datetime(2024, 5, 2, 10, 0, tzinfo=UTC)
    assert extended.renewal_attempts == 1
    assert extended.last_renewal_date == clock.now()
    assert extended.status == SubscriptionStatus.ACTIVE


async def test_extend_requires_active_subscription(lifecycle_service, contributor, basic_package):
    pending = await lifecycle_service.create_subscription(contributor.contributor_id, basic_package.package_id)

    with pytest.raises(ConflictError):
        await lifecycle_service.extend_subscription(pending.subscription_id)
    with pytest.raises(ValidationError):
        await lifecycle_service.extend_subscription(pending.subscription_id, periods=0)


# =============================================================================
# FREE TRIALS
# =============================================================================

async def test_free_trial_grants_package_entitlements(
    lifecycle_service, uow_factory, clock, contributor, premium_package
):
    trial = await lifecycle_service.create_free_trial_subscription(
        contributor.contributor_id, premium_package.package_id
    )

    assert trial.status == SubscriptionStatus.ACTIVE
    assert trial.is_free_trial is True
    assert trial.amount == Decimal("0")
    assert trial.end_date == clock.now() + timedelta(days=14)

    mirrored = await load_contributor(uow_factory, contributor.contributor_id)
    assert mirrored.status == ContributorStatus.TRIAL
    assert mirrored.subscription_status == ContributorSubscriptionStatus.TRIAL
    assert mirrored.subscription_tier == SubscriptionTier.PREMIUM
    assert mirrored.trial_ends_at == trial.end_date
    assert mirrored.usage_limits.max_users == "unlimited"
    assert mirrored.usage_limits.max_projects == 25

    status = await lifecycle_service.get_active_status(contributor.contributor_id)
    assert status.has_active_subscription is True
    assert status.is_free_trial is True


async def test_only_one_free_trial_per_contributor(lifecycle_service, contributor, premium_package):
    trial = await lifecycle_service.create_free_trial_subscription(
        contributor.contributor_id, premium_package.package_id
    )
    await lifecycle_service.cancel_subscription(trial.subscription_id)

    with pytest.raises(ConflictError):
        await lifecycle_service.create_free_trial_subscription(
            contributor.contributor_id, premium_package.package_id
        )


async def test_trial_requires_package_offering_one(lifecycle_service, contributor, basic_package):
    with pytest.raises(ConflictError):
        await lifecycle_service.create_free_trial_subscription(
            contributor.contributor_id, basic_package.package_id
        )


# =============================================================================
# STATUS
# =============================================================================

async def test_active_status_reports_days_remaining(lifecycle_service, contributor, basic_package):
    active = await activate(lifecycle_service, contributor, basic_package)

    status = await lifecycle_service.get_active_status(contributor.contributor_id)

    assert status.has_active_subscription is True
    assert status.subscription.subscription_id == active.subscription_id
    assert status.days_remaining == 31
    assert status.expiring_soon is False
    assert status.subscription_tier == SubscriptionTier.BASIC


async def test_active_status_without_subscription(lifecycle_service, contributor):
    status = await lifecycle_service.get_active_status(contributor.contributor_id)

    assert status.has_active_subscription is False
    assert status.subscription is None
    assert status.days_remaining == 0
    assert status.subscription_tier == SubscriptionTier.FREE
    assert status.usage_limits == free_tier_limits()


async def test_active_status_unknown_contributor(lifecycle_service):
    with pytest.raises(NotFoundError):
        await lifecycle_service.get_active_status("missing")


# =============================================================================
# CONSISTENCY GUARDS
# =============================================================================

async def test_database_allows_one_active_subscription_per_contributor(
    lifecycle_service, uow_factory, contributor, basic_package
):
    first = await lifecycle_service.create_subscription(contributor.contributor_id, basic_package.package_id)
    second = await lifecycle_service.create_subscription(contributor.contributor_id, basic_package.package_id)
    repository = SubscriptionRepositoryImpl()

    with pytest.raises(ConflictError):
        async with uow_factory("force_activation") as uow:
            await repository.update(uow.session, first.subscription_id, {"status": SubscriptionStatus.ACTIVE})
            await repository.update(uow.session, second.subscription_id, {"status": SubscriptionStatus.ACTIVE})

    assert (await load_subscription(uow_factory, first.subscription_id)).status == SubscriptionStatus.PENDING
    assert (await load_subscription(uow_factory, second.subscription_id)).status == SubscriptionStatus.PENDING


class BrokenContributorRepository(ContributorRepositoryImpl):
    async def update(self, session, contributor_id, update_data):
        raise RuntimeError("contributor store unavailable")


async def test_failed_entitlement_mirror_leaves_subscription_pending(
    uow_factory, clock, notifier, settings, contributor, basic_package
):
    service = SubscriptionLifecycleService(
        uow_factory=uow_factory,
        subscription_repository=SubscriptionRepositoryImpl(),
        package_repository=PackageRepositoryImpl(),
        contributor_repository=BrokenContributorRepository(),
        notifier=notifier,
        clock=clock,
        settings=settings,
    )
    pending = await service.create_subscription(contributor.contributor_id, basic_package.package_id)

    with pytest.raises(TransactionError) as caught:
        await service.confirm_payment(pending.subscription_id)

    assert caught.value.partial is False
    stored = await load_subscription(uow_factory, pending.subscription_id)
    assert stored.status == SubscriptionStatus.PENDING
    assert stored.payment_status == PaymentStatus.PENDING
