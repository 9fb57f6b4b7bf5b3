"""Package, entitlement and subscription rules that need no database."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError

from app.modules.subscription_management.domain.models.entitlements import (
    CurrentUsage,
    derive_usage_limits,
    free_tier_limits,
)
from app.modules.subscription_management.domain.models.package import Discount, Package, coerce_ceiling
from app.modules.subscription_management.domain.models.subscription import (
    PaymentStatus,
    Subscription,
    SubscriptionStatus,
    can_transition,
    generate_transaction_reference,
    threshold_label,
)

NOW = datetime(2024, 2, 1, 12, 0, tzinfo=timezone.utc)


def make_subscription(**overrides) -> Subscription:
    data = {
        "contributor_id": "c-1",
        "package_id": "p-1",
        "start_date": NOW - timedelta(days=20),
        "end_date": NOW + timedelta(days=10),
        "status": SubscriptionStatus.ACTIVE,
        "payment_status": PaymentStatus.PAID,
    }
    data.update(overrides)
    return Subscription(**data)


# =============================================================================
# PACKAGE
# =============================================================================

class TestPackage:
    def test_legacy_infinite_becomes_unlimited(self):
        package = Package(name="Pro", max_users="infinite", max_reports="12", max_pledges=3.0)

        assert package.max_users == "unlimited"
        assert package.max_reports == 12
        assert package.max_pledges == 3

    @pytest.mark.parametrize("value", [-1, 2.5, "lots", True])
    def test_invalid_ceiling_rejected(self, value):
        with pytest.raises(PydanticValidationError):
            Package(name="Pro", max_users=value)

    def test_coerce_ceiling_accepts_case_and_whitespace(self):
        assert coerce_ceiling(" Unlimited ") == "unlimited"
        assert coerce_ceiling(0) == 0

    def test_short_name_rejected(self):
        with pytest.raises(PydanticValidationError):
            Package(name="  ab ")

    def test_trial_length_bounds(self):
        assert Package(name="Trial", max_free_trial_duration=14).offers_free_trial
        assert not Package(name="Trial").offers_free_trial
        with pytest.raises(PydanticValidationError):
            Package(name="Trial", max_free_trial_duration=0)
        with pytest.raises(PydanticValidationError):
            Package(name="Trial", max_free_trial_duration=366)

    def test_duration_must_be_positive(self):
        with pytest.raises(PydanticValidationError):
            Package(name="Broken", duration=0)

    def test_effective_price_applies_active_discount(self):
        package = Package(
            name="Promo",
            price=Decimal("5000"),
            discount=Discount(percentage=Decimal("15"), valid_until=NOW + timedelta(days=1)),
        )
        assert package.effective_price(NOW) == Decimal("4250.00")
        assert package.effective_price(NOW + timedelta(days=2)) == Decimal("5000.00")

    def test_ceilings_lists_the_eight_usage_limits(self):
        package = Package(name="Pro", max_users=5, max_following="unlimited")
        ceilings = package.ceilings()

        assert len(ceilings) == 8
        assert ceilings["max_users"] == 5
        assert ceilings["max_following"] == "unlimited"


# =============================================================================
# ENTITLEMENTS
# =============================================================================

class TestEntitlements:
    def test_free_tier(self):
        limits = free_tier_limits()

        assert limits.max_projects == 1
        assert limits.max_users == 1
        assert limits.storage_limit == 1
        assert limits.api_calls_limit == 100
        assert limits.current_usage == CurrentUsage()

    def test_no_package_means_free_tier(self):
        assert derive_usage_limits(None) == free_tier_limits()

    def test_package_ceilings_are_mirrored(self):
        package = Package(name="Basic", max_users=5, max_reports="unlimited")
        limits = derive_usage_limits(package)

        assert limits.max_users == 5
        assert limits.resource_limits["max_reports"] == "unlimited"
        assert limits.max_projects == 10
        assert limits.storage_limit == 10
        assert limits.api_calls_limit == 1000

    def test_package_quotas_override_defaults(self):
        package = Package(name="Premium", max_users="unlimited", max_projects=25, api_calls_limit="unlimited")
        limits = derive_usage_limits(package)

        assert limits.max_users == "unlimited"
        assert limits.max_projects == 25
        assert limits.api_calls_limit == "unlimited"

    def test_current_usage_carried_over(self):
        usage = CurrentUsage(projects=3, api_calls_used=40)
        limits = derive_usage_limits(Package(name="Basic", max_users=5), usage)

        assert limits.current_usage.projects == 3
        assert limits.current_usage.api_calls_used == 40

    def test_package_without_ceilings_yields_free_tier(self):
        class Bare:
            def ceilings(self):
                return {}

        assert derive_usage_limits(Bare()) == free_tier_limits()


# =============================================================================
# SUBSCRIPTION
# =============================================================================

class TestSubscriptionStateMachine:
    @pytest.mark.parametrize(
        "current, target, allowed",
        [
            (SubscriptionStatus.PENDING, SubscriptionStatus.ACTIVE, True),
            (SubscriptionStatus.PENDING, SubscriptionStatus.CANCELLED, True),
            (SubscriptionStatus.ACTIVE, SubscriptionStatus.EXPIRED, True),
            (SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED, True),
            (SubscriptionStatus.PENDING, SubscriptionStatus.EXPIRED, False),
            (SubscriptionStatus.EXPIRED, SubscriptionStatus.ACTIVE, False),
            (SubscriptionStatus.CANCELLED, SubscriptionStatus.ACTIVE, False),
            (SubscriptionStatus.SUSPENDED, SubscriptionStatus.ACTIVE, False),
        ],
    )
    def test_transitions(self, current, target, allowed):
        assert can_transition(current, target) is allowed

    def test_end_must_follow_start(self):
        with pytest.raises(PydanticValidationError):
            make_subscription(end_date=NOW - timedelta(days=20))


class TestSubscriptionDerivedFields:
    def test_active_when_paid_and_not_ended(self):
        subscription = make_subscription()

        assert subscription.is_active(NOW)
        assert subscription.days_remaining(NOW) == 10
        assert not subscription.is_expiring_soon(NOW)

    def test_unpaid_subscription_is_not_usable(self):
        assert not make_subscription(payment_status=PaymentStatus.PENDING).is_active(NOW)

    def test_unpaid_trial_is_usable(self):
        trial = make_subscription(payment_status=PaymentStatus.PENDING, is_free_trial=True)
        assert trial.is_active(NOW)

    def test_ended_subscription_is_not_usable(self):
        assert not make_subscription().is_active(NOW + timedelta(days=10))

    def test_expiring_soon_within_a_week(self):
        assert make_subscription(end_date=NOW + timedelta(days=6)).is_expiring_soon(NOW)


class TestReminderThresholds:
    def test_exact_match_fires(self):
        assert make_subscription(end_date=NOW + timedelta(days=7)).due_threshold(NOW) == 7

    def test_partial_day_rounds_up(self):
        subscription = make_subscription(end_date=NOW + timedelta(days=6, hours=2))
        assert subscription.due_threshold(NOW) == 7

    def test_non_threshold_day_is_ignored(self):
        assert make_subscription(end_date=NOW + timedelta(days=5)).due_threshold(NOW) is None

    def test_already_notified_threshold_does_not_fire_again(self):
        subscription = make_subscription(end_date=NOW + timedelta(days=7), last_notified_threshold=7)
        assert subscription.due_threshold(NOW) is None

    def test_closer_threshold_fires_after_farther_one(self):
        subscription = make_subscription(end_date=NOW + timedelta(days=3), last_notified_threshold=7)
        assert subscription.due_threshold(NOW) == 3

    def test_custom_thresholds(self):
        subscription = make_subscription(end_date=NOW + timedelta(days=5))
        assert subscription.due_threshold(NOW, thresholds=(5,)) == 5

    def test_labels(self):
        assert threshold_label(7) == "week"
        assert threshold_label(3) == "three_days"
        assert threshold_label(1) == "one_day"
        assert threshold_label(14) == "14_days"


def test_transaction_reference_format():
    reference = generate_transaction_reference(NOW)
    prefix, millis, suffix = reference.split("_")

    assert prefix == "TXN"
    assert millis == str(int(NOW.timestamp() * 1000))
    assert len(suffix) == 9
