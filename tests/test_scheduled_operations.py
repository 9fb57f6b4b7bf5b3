"""Daily expiry sweep and near-expiry reminder scan."""

from datetime import datetime, timedelta, timezone

from app.modules.subscription_management.domain.models.contributor import SubscriptionTier
from app.modules.subscription_management.domain.models.entitlements import free_tier_limits
from app.modules.subscription_management.domain.models.subscription import SubscriptionStatus
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

from .conftest import RecordingNotifier

UTC = timezone.utc


async def activate(service, contributor, package):
    pending = await service.create_subscription(contributor.contributor_id, package.package_id)
    return await service.confirm_payment(pending.subscription_id)


async def load_subscription(uow_factory, subscription_id):
    async with uow_factory("load_subscription") as uow:
        return await SubscriptionRepositoryImpl().get_by_id(uow.session, subscription_id)


async def load_contributor(uow_factory, contributor_id):
    async with uow_factory("load_contributor") as uow:
        return await ContributorRepositoryImpl().get_by_id(uow.session, contributor_id)


def build_service(uow_factory, clock, settings, notifier=None, contributor_repository=None):
    return SubscriptionLifecycleService(
        uow_factory=uow_factory,
        subscription_repository=SubscriptionRepositoryImpl(),
        package_repository=PackageRepositoryImpl(),
        contributor_repository=contributor_repository or ContributorRepositoryImpl(),
        notifier=notifier,
        clock=clock,
        settings=settings,
    )


# =============================================================================
# EXPIRY SWEEP
# =============================================================================

async def test_sweep_expires_day_pass_after_its_end(
    lifecycle_service, uow_factory, clock, contributor, daily_package
):
    clock.set(datetime(2024, 1, 31, tzinfo=UTC))
    active = await activate(lifecycle_service, contributor, daily_package)
    assert active.end_date == datetime(2024, 2, 1, tzinfo=UTC)

    clock.set(datetime(2024, 2, 2, tzinfo=UTC))
    report = await lifecycle_service.check_expired_subscriptions()

    assert report.processed == 1
    assert report.expired == 1
    assert report.errors == []

    stored = await load_subscription(uow_factory, active.subscription_id)
    assert stored.status == SubscriptionStatus.EXPIRED
    contributor_after = await load_contributor(uow_factory, contributor.contributor_id)
    assert contributor_after.usage_limits == free_tier_limits()
    assert contributor_after.subscription_tier == SubscriptionTier.FREE


async def test_sweep_rerun_is_a_no_op(lifecycle_service, clock, contributor, daily_package):
    await activate(lifecycle_service, contributor, daily_package)
    clock.advance(days=2)

    first = await lifecycle_service.check_expired_subscriptions()
    second = await lifecycle_service.check_expired_subscriptions()

    assert first.expired == 1
    assert second.processed == 0
    assert second.expired == 0


async def test_sweep_includes_subscription_ending_exactly_now(
    lifecycle_service, clock, contributor, daily_package
):
    active = await activate(lifecycle_service, contributor, daily_package)

    clock.set(active.end_date - timedelta(seconds=1))
    assert (await lifecycle_service.check_expired_subscriptions()).processed == 0

    clock.set(active.end_date)
    assert (await lifecycle_service.check_expired_subscriptions()).expired == 1


async def test_sweep_leaves_pending_subscriptions_alone(
    lifecycle_service, uow_factory, clock, contributor, daily_package
):
    pending = await lifecycle_service.create_subscription(contributor.contributor_id, daily_package.package_id)
    clock.advance(days=5)

    report = await lifecycle_service.check_expired_subscriptions()

    assert report.processed == 0
    stored = await load_subscription(uow_factory, pending.subscription_id)
    assert stored.status == SubscriptionStatus.PENDING


class FailingForContributor(ContributorRepositoryImpl):
    def __init__(self, contributor_id):
        self.contributor_id = contributor_id

    async def update(self, session, contributor_id, update_data):
        if contributor_id == self.contributor_id:
            raise RuntimeError("contributor row locked")
        return await super().update(session, contributor_id, update_data)


async def test_sweep_failure_is_isolated_and_retried_next_run(
    lifecycle_service, uow_factory, clock, settings, make_contributor, daily_package
):
    healthy = await make_contributor("Kofi Mensah")
    troubled = await make_contributor("Awa Traore")
    healthy_sub = await activate(lifecycle_service, healthy, daily_package)
    troubled_sub = await activate(lifecycle_service, troubled, daily_package)
    clock.advance(days=2)

    flaky = build_service(
        uow_factory, clock, settings, contributor_repository=FailingForContributor(troubled.contributor_id)
    )
    report = await flaky.check_expired_subscriptions()

    assert report.processed == 2
    assert report.expired == 1
    assert [error["subscription_id"] for error in report.errors] == [troubled_sub.subscription_id]
    assert (await load_subscription(uow_factory, healthy_sub.subscription_id)).status == SubscriptionStatus.EXPIRED
    assert (await load_subscription(uow_factory, troubled_sub.subscription_id)).status == SubscriptionStatus.ACTIVE

    retry = await lifecycle_service.check_expired_subscriptions()
    assert retry.expired == 1
    assert (await load_subscription(uow_factory, troubled_sub.subscription_id)).status == SubscriptionStatus.EXPIRED


# =============================================================================
# NEAR-EXPIRY SCAN
# =============================================================================

async def test_reminders_fire_once_per_threshold(
    lifecycle_service, notifier, clock, contributor, basic_package
):
    active = await activate(lifecycle_service, contributor, basic_package)
    end = active.end_date

    clock.set(end - timedelta(days=7))
    report = await lifecycle_service.scan_near_expiry()
    assert report.notified == 1
    assert notifier.sent == [{
        "subscription_id": active.subscription_id,
        "threshold": "week",
        "days_remaining": 7,
        "contributor_id": contributor.contributor_id,
    }]

    repeat = await lifecycle_service.scan_near_expiry()
    assert repeat.notified == 0
    assert repeat.skipped == 1

    clock.advance(hours=1)
    assert (await lifecycle_service.scan_near_expiry()).notified == 0

    clock.set(end - timedelta(days=3))
    await lifecycle_service.scan_near_expiry()
    clock.set(end - timedelta(days=1))
    await lifecycle_service.scan_near_expiry()
    await lifecycle_service.scan_near_expiry()

    assert [item["threshold"] for item in notifier.sent] == ["week", "three_days", "one_day"]


async def test_one_day_left_fires_one_day_reminder(
    lifecycle_service, notifier, clock, contributor, basic_package
):
    active = await activate(lifecycle_service, contributor, basic_package)

    clock.set(active.end_date - timedelta(days=1))
    report = await lifecycle_service.scan_near_expiry()

    assert report.notifications[0]["threshold"] == "one_day"
    assert notifier.sent[0]["days_remaining"] == 1


async def test_days_between_thresholds_are_skipped(
    lifecycle_service, notifier, clock, contributor, basic_package
):
    active = await activate(lifecycle_service, contributor, basic_package)

    clock.set(active.end_date - timedelta(days=2))
    report = await lifecycle_service.scan_near_expiry()
    assert report.scanned == 1
    assert report.notified == 0

    clock.set(active.end_date - timedelta(days=10))
    assert (await lifecycle_service.scan_near_expiry()).scanned == 0
    assert notifier.sent == []


async def test_extension_rearms_reminders(
    lifecycle_service, notifier, clock, contributor, basic_package
):
    active = await activate(lifecycle_service, contributor, basic_package)
    clock.set(active.end_date - timedelta(days=7))
    await lifecycle_service.scan_near_expiry()

    extended = await lifecycle_service.extend_subscription(active.subscription_id)
    clock.set(extended.end_date - timedelta(days=7))
    await lifecycle_service.scan_near_expiry()

    assert [item["threshold"] for item in notifier.sent] == ["week", "week"]


async def test_delivery_failure_is_logged_not_retried(
    uow_factory, clock, settings, contributor, basic_package, lifecycle_service
):
    active = await activate(lifecycle_service, contributor, basic_package)
    failing = RecordingNotifier(fail=True)
    service = build_service(uow_factory, clock, settings, notifier=failing)

    clock.set(active.end_date - timedelta(days=7))
    report = await service.scan_near_expiry()
    assert report.notified == 1
    assert len(report.errors) == 1

    again = await service.scan_near_expiry()
    assert again.notified == 0
    assert len(failing.sent) == 1

    stored = await load_subscription(uow_factory, active.subscription_id)
    assert stored.last_notified_threshold == 7


async def test_custom_thresholds_use_day_labels(
    lifecycle_service, notifier, clock, contributor, basic_package
):
    active = await activate(lifecycle_service, contributor, basic_package)

    clock.set(active.end_date - timedelta(days=14))
    report = await lifecycle_service.scan_near_expiry(thresholds=[14, 7])

    assert report.notified == 1
    assert notifier.sent[0]["threshold"] == "14_days"


async def test_scan_without_notifier_still_records_threshold(
    uow_factory, clock, settings, contributor, basic_package, lifecycle_service
):
    active = await activate(lifecycle_service, contributor, basic_package)
    silent = build_service(uow_factory, clock, settings, notifier=None)

    clock.set(active.end_date - timedelta(days=3))
    report = await silent.scan_near_expiry()

    assert report.notified == 1
    stored = await load_subscription(uow_factory, active.subscription_id)
    assert stored.last_notified_threshold == 3
