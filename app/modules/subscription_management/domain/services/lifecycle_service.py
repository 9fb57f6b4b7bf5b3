# 📄 File: app/modules/subscription_management/domain/services/lifecycle_service.py
# 🧭 Purpose (Layman Explanation):
# The heart of the subscription system: it starts subscriptions, switches them on when
# payment arrives, cancels, renews and extends them, expires the ones whose time is up,
# and keeps each contributor's plan limits in step with what they are paying for.
# 🧪 Purpose (Technical Summary):
# Lifecycle Engine domain service. Enforces the subscription state machine and the
# single-ACTIVE-subscription rule (backed by a partial unique index), mirrors entitlements
# onto the contributor inside one unit of work, and implements the expiry sweep and the
# near-expiry reminder scan invoked by the scheduler.
# 🔗 Dependencies:
# Subscription/Package/Contributor domain models, repositories, unit of work, clock,
# expiration notifier, app.shared.utils.dates, app.shared.utils.logging
# 🔄 Connected Modules / Calls From:
# Application command handlers, SubscriptionScheduler, API dependencies

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.modules.subscription_management.domain.models.contributor import (
    Contributor,
    ContributorStatus,
    ContributorSubscriptionStatus,
    SubscriptionTier,
)
from app.modules.subscription_management.domain.models.entitlements import (
    UsageLimits,
    derive_usage_limits,
    free_tier_limits,
)
from app.modules.subscription_management.domain.models.package import Package
from app.modules.subscription_management.domain.models.subscription import (
    DEFAULT_THRESHOLDS,
    PaymentStatus,
    Subscription,
    SubscriptionStatus,
    can_transition,
    generate_transaction_reference,
    threshold_label,
)
from app.modules.subscription_management.domain.repositories.contributor_repository import (
    ContributorRepository,
)
from app.modules.subscription_management.domain.repositories.package_repository import (
    PackageRepository,
)
from app.modules.subscription_management.domain.repositories.subscription_repository import (
    SubscriptionRepository,
)
from app.shared.config.settings import Settings, get_settings
from app.shared.core.clock import Clock, get_clock
from app.shared.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.shared.infrastructure.database.session import UnitOfWork, UnitOfWorkFactory
from app.shared.utils.dates import add_duration
from app.shared.utils.logging import get_logger

logger = get_logger(__name__)

MAX_CANCELLATION_REASON_LENGTH = 500

# Contributor fields owned by the lifecycle engine
ENTITLEMENT_FIELDS = (
    "current_subscription_id",
    "subscription_status",
    "subscription_tier",
    "status",
    "usage_limits",
    "trial_ends_at",
)


# =============================================================================
# RESULT TYPES
# =============================================================================

class SweepReport(BaseModel):
    """Outcome of one expiry sweep"""
    started_at: datetime
    processed: int = 0
    expired: int = 0
    skipped: int = 0
    errors: List[Dict[str, str]] = Field(default_factory=list)


class ScanReport(BaseModel):
    """Outcome of one near-expiry scan"""
    started_at: datetime
    scanned: int = 0
    notified: int = 0
    skipped: int = 0
    notifications: List[Dict[str, Any]] = Field(default_factory=list)
    errors: List[Dict[str, str]] = Field(default_factory=list)


class ActiveStatus(BaseModel):
    """Whether a contributor currently holds a usable subscription"""
    contributor_id: str
    has_active_subscription: bool
    subscription: Optional[Subscription] = None
    days_remaining: int = 0
    expiring_soon: bool = False
    is_free_trial: bool = False
    subscription_tier: SubscriptionTier
    subscription_status: Optional[ContributorSubscriptionStatus] = None
    usage_limits: UsageLimits


class SubscriptionLifecycleService:
    """
    Lifecycle Engine: sole writer of subscription status and contributor entitlements.

    Every multi-entity change runs in one unit of work. On transactional
    backends it commits atomically; on sequential backends each step commits
    and registers a compensation that restores the previous values.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        subscription_repository: SubscriptionRepository,
        package_repository: PackageRepository,
        contributor_repository: ContributorRepository,
        notifier=None,
        clock: Optional[Clock] = None,
        settings: Optional[Settings] = None,
    ):
        self.uow_factory = uow_factory
        self.subscription_repository = subscription_repository
        self.package_repository = package_repository
        self.contributor_repository = contributor_repository
        self.notifier = notifier
        self.clock = clock or get_clock()
        self.settings = settings or get_settings()

    # =========================================================================
    # LOOKUP HELPERS
    # =========================================================================

    async def _require_contributor(self, uow: UnitOfWork, contributor_id: str) -> Contributor:
        contributor = await self.contributor_repository.get_by_id(uow.session, contributor_id)
        if contributor is None:
            raise NotFoundError(
                "Contributor not found", resource_type="contributor", resource_id=contributor_id
            )
        return contributor

    async def _require_package(self, uow: UnitOfWork, package_id: str) -> Package:
        package = await self.package_repository.get_by_id(uow.session, package_id)
        if package is None:
            raise NotFoundError("Package not found", resource_type="package", resource_id=package_id)
        return package

    async def _require_subscription(self, uow: UnitOfWork, subscription_id: str) -> Subscription:
        subscription = await self.subscription_repository.get_by_id(uow.session, subscription_id)
        if subscription is None:
            raise NotFoundError(
                "Subscription not found", resource_type="subscription", resource_id=subscription_id
            )
        return subscription

    async def _ensure_no_active(self, uow: UnitOfWork, contributor_id: str, allow_id: str = None) -> None:
        # Fast path only; the partial unique index is the real guard
        active = await self.subscription_repository.get_active_for_contributor(uow.session, contributor_id)
        if active is not None and active.subscription_id != allow_id:
            raise ConflictError(
                "Contributor already has an active subscription",
                resource_type="subscription",
                resource_id=active.subscription_id,
                current_state=SubscriptionStatus.ACTIVE.value,
            )

    def _validate_payment_method(self, payment_method: Optional[str]) -> None:
        if payment_method is None:
            return
        value = getattr(payment_method, "value", payment_method)
        if value not in self.settings.allowed_payment_methods:
            raise ValidationError(
                "Unsupported payment method",
                field="payment_method",
                value=value,
                constraint=f"one of {self.settings.allowed_payment_methods}",
            )

    def _validate_currency(self, currency: str) -> str:
        currency = currency.upper()
        if currency not in self.settings.allowed_currencies:
            raise ValidationError(
                "Unsupported currency",
                field="currency",
                value=currency,
                constraint=f"one of {self.settings.allowed_currencies}",
            )
        return currency

    @staticmethod
    def _period_end(start: datetime, duration: int, package: Package) -> datetime:
        try:
            return add_duration(start, duration, package.duration_unit)
        except ValueError as e:
            raise ValidationError(str(e), field="duration", value=duration) from e

    @staticmethod
    def _snapshot(model: BaseModel, fields) -> Dict[str, Any]:
        return {name: getattr(model, name) for name in fields}

    # =========================================================================
    # WRITE STEPS WITH COMPENSATION
    # =========================================================================

    async def _update_subscription(
        self, uow: UnitOfWork, subscription: Subscription, changes: Dict[str, Any], step: str
    ) -> Subscription:
        changes = {**changes, "updated_at": self.clock.now()}
        previous = self._snapshot(subscription, changes.keys())
        updated = await self.subscription_repository.update(
            uow.session, subscription.subscription_id, changes
        )

        async def restore(session):
            await self.subscription_repository.update(session, subscription.subscription_id, previous)

        await uow.checkpoint(step, compensate=restore)
        return updated

    async def _update_contributor(
        self, uow: UnitOfWork, contributor: Contributor, changes: Dict[str, Any], step: str,
        appended_subscription_id: Optional[str] = None,
    ) -> Contributor:
        changes = {**changes, "updated_at": self.clock.now()}
        previous = self._snapshot(contributor, changes.keys())
        updated = await self.contributor_repository.update(uow.session, contributor.contributor_id, changes)
        if appended_subscription_id is not None:
            await self.contributor_repository.append_history(
                uow.session, contributor.contributor_id, appended_subscription_id
            )

        async def restore(session):
            await self.contributor_repository.update(session, contributor.contributor_id, previous)
            if appended_subscription_id is not None:
                await self.contributor_repository.remove_history_entry(
                    session, contributor.contributor_id, appended_subscription_id
                )

        await uow.checkpoint(step, compensate=restore)
        return updated

    async def _mirror_activation(
        self,
        uow: UnitOfWork,
        contributor: Contributor,
        package: Package,
        subscription: Subscription,
        contributor_status: ContributorStatus,
        subscription_status: ContributorSubscriptionStatus,
    ) -> Contributor:
        changes = {
            "current_subscription_id": subscription.subscription_id,
            "subscription_status": subscription_status,
            "subscription_tier": SubscriptionTier(package.tier.value),
            "status": contributor_status,
            "usage_limits": derive_usage_limits(package, contributor.usage_limits.current_usage),
        }
        if subscription.is_free_trial:
            changes["trial_ends_at"] = subscription.end_date

        return await self._update_contributor(
            uow, contributor, changes, "mirror entitlements",
            appended_subscription_id=subscription.subscription_id,
        )

    async def _downgrade(
        self,
        uow: UnitOfWork,
        subscription: Subscription,
        subscription_status: ContributorSubscriptionStatus,
    ) -> Optional[Contributor]:
        contributor = await self.contributor_repository.get_by_id(uow.session, subscription.contributor_id)
        if contributor is None:
            logger.warning(
                "Contributor missing during downgrade",
                subscription_id=subscription.subscription_id,
                contributor_id=subscription.contributor_id,
            )
            return None

        # A pending subscription being cancelled must not strip a running one
        if contributor.current_subscription_id not in (None, subscription.subscription_id):
            return contributor

        changes = {
            "subscription_status": subscription_status,
            "subscription_tier": SubscriptionTier.FREE,
            "status": ContributorStatus.INACTIVE,
            "current_subscription_id": None,
            "usage_limits": free_tier_limits(),
        }
        return await self._update_contributor(uow, contributor, changes, "downgrade contributor")

    # =========================================================================
    # LIFECYCLE OPERATIONS
    # =========================================================================

    async def create_subscription(
        self,
        contributor_id: str,
        package_id: str,
        payment_method: Optional[str] = None,
        auto_renewal: bool = False,
        billing_info: Optional[Dict[str, Any]] = None,
        currency: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Subscription:
        """
        Create a PENDING subscription awaiting payment.

        Args:
            contributor_id: Buyer
            package_id: Plan to subscribe to
            payment_method: One of the allowed payment methods
            auto_renewal: Whether the subscription should renew automatically
            billing_info: Stored on the contributor when supplied
            currency: Defaults to DEFAULT_CURRENCY
            metadata: Free-form data kept on the subscription

        Returns:
            Subscription: The created PENDING subscription

        Raises:
            NotFoundError: Contributor or package absent
            ConflictError: Package inactive or an ACTIVE subscription already exists
            ValidationError: Unsupported payment method or currency
        """
        self._validate_payment_method(payment_method)
        currency = self._validate_currency(currency or self.settings.DEFAULT_CURRENCY)

        async with self.uow_factory("create_subscription") as uow:
            contributor = await self._require_contributor(uow, contributor_id)
            package = await self._require_package(uow, package_id)
            if not package.is_active:
                raise ConflictError(
                    "Package is not active", resource_type="package", resource_id=package_id,
                    current_state="inactive",
                )
            await self._ensure_no_active(uow, contributor_id)

            now = self.clock.now()
            subscription = Subscription(
                contributor_id=contributor_id,
                package_id=package_id,
                start_date=now,
                end_date=self._period_end(now, package.duration, package),
                payment_method=payment_method,
                transaction_id=generate_transaction_reference(now),
                amount=package.effective_price(now),
                currency=currency,
                auto_renewal=auto_renewal,
                metadata=metadata or {},
                created_at=now,
                updated_at=now,
            )
            created = await self.subscription_repository.create(uow.session, subscription)

            async def remove(session):
                await self.subscription_repository.delete(session, created.subscription_id)

            await uow.checkpoint("create subscription", compensate=remove)

            if billing_info:
                await self._update_contributor(
                    uow, contributor, {"billing_info": billing_info}, "store billing info"
                )

        logger.log_business_event(
            "subscription_created",
            f"Subscription created for contributor {contributor_id}",
            entity_id=created.subscription_id,
            entity_type="subscription",
            extra={"package_id": package_id, "amount": str(created.amount), "currency": currency},
        )
        return created

    async def confirm_payment(
        self,
        subscription_id: str,
        transaction_id: Optional[str] = None,
        payment_method: Optional[str] = None,
    ) -> Subscription:
        """
        Activate a subscription after the payment gateway confirmed it.

        Raises:
            NotFoundError: Subscription, package or contributor absent
            ConflictError: Already paid, not activatable, or another ACTIVE subscription exists
        """
        self._validate_payment_method(payment_method)

        async with self.uow_factory("confirm_payment") as uow:
            subscription = await self._require_subscription(uow, subscription_id)
            if subscription.payment_status == PaymentStatus.PAID:
                raise ConflictError(
                    "Payment already confirmed for this subscription",
                    resource_type="subscription", resource_id=subscription_id,
                    current_state=PaymentStatus.PAID.value,
                )
            if not can_transition(subscription.status, SubscriptionStatus.ACTIVE):
                raise ConflictError(
                    f"Cannot activate a {subscription.status.value} subscription",
                    resource_type="subscription", resource_id=subscription_id,
                    current_state=subscription.status.value,
                )

            package = await self._require_package(uow, subscription.package_id)
            contributor = await self._require_contributor(uow, subscription.contributor_id)
            await self._ensure_no_active(uow, subscription.contributor_id, allow_id=subscription_id)

            changes = {
                "status": SubscriptionStatus.ACTIVE,
                "payment_status": PaymentStatus.PAID,
            }
            if transaction_id:
                changes["transaction_id"] = transaction_id
            if payment_method:
                changes["payment_method"] = payment_method

            activated = await self._update_subscription(uow, subscription, changes, "activate subscription")
            await self._mirror_activation(
                uow, contributor, package, activated,
                ContributorStatus.ACTIVE, ContributorSubscriptionStatus.ACTIVE,
            )

        logger.log_business_event(
            "subscription_activated",
            f"Payment confirmed for subscription {subscription_id}",
            entity_id=subscription_id,
            entity_type="subscription",
            extra={"contributor_id": activated.contributor_id, "tier": package.tier.value},
        )
        return activated

    async def fail_payment(self, subscription_id: str, reason: Optional[str] = None) -> Subscription:
        """Record a failed payment; the subscription stays PENDING."""
        async with self.uow_factory("fail_payment") as uow:
            subscription = await self._require_subscription(uow, subscription_id)
            if subscription.status != SubscriptionStatus.PENDING or subscription.payment_status == PaymentStatus.PAID:
                raise ConflictError(
                    "Only pending, unpaid subscriptions can fail payment",
                    resource_type="subscription", resource_id=subscription_id,
                    current_state=subscription.status.value,
                )

            metadata = dict(subscription.metadata)
            if reason:
                metadata["payment_failure_reason"] = reason
            failed = await self._update_subscription(
                uow, subscription,
                {"payment_status": PaymentStatus.FAILED, "metadata": metadata},
                "record payment failure",
            )

        logger.log_business_event(
            "subscription_payment_failed",
            f"Payment failed for subscription {subscription_id}",
            entity_id=subscription_id,
            entity_type="subscription",
            extra={"reason": reason},
        )
        return failed

    async def cancel_subscription(self, subscription_id: str, reason: Optional[str] = None) -> Subscription:
        """
        Cancel a subscription and downgrade its contributor to the free tier.

        Raises:
            NotFoundError: Subscription absent
            ConflictError: Already cancelled, or in a state that cannot be cancelled
            ValidationError: Reason longer than 500 characters
        """
        if reason is not None and len(reason) > MAX_CANCELLATION_REASON_LENGTH:
            raise ValidationError(
                "Cancellation reason is too long",
                field="reason",
                constraint=f"max {MAX_CANCELLATION_REASON_LENGTH} characters",
            )

        async with self.uow_factory("cancel_subscription") as uow:
            subscription = await self._require_subscription(uow, subscription_id)
            if subscription.status == SubscriptionStatus.CANCELLED:
                raise ConflictError(
                    "Subscription is already cancelled",
                    resource_type="subscription", resource_id=subscription_id,
                    current_state=SubscriptionStatus.CANCELLED.value,
                )
            if not can_transition(subscription.status, SubscriptionStatus.CANCELLED):
                raise ConflictError(
                    f"Cannot cancel a {subscription.status.value} subscription",
                    resource_type="subscription", resource_id=subscription_id,
                    current_state=subscription.status.value,
                )

            cancelled = await self._update_subscription(
                uow, subscription,
                {
                    "status": SubscriptionStatus.CANCELLED,
                    "canceled_at": self.clock.now(),
                    "cancelation_reason": reason or self.settings.DEFAULT_CANCELLATION_REASON,
                    "auto_renewal": False,
                },
                "cancel subscription",
            )
            await self._downgrade(uow, cancelled, ContributorSubscriptionStatus.CANCELLED)

        logger.log_business_event(
            "subscription_cancelled",
            f"Subscription {subscription_id} cancelled",
            entity_id=subscription_id,
            entity_type="subscription",
            extra={"contributor_id": cancelled.contributor_id, "reason": cancelled.cancelation_reason},
        )
        return cancelled

    async def renew_subscription(self, subscription_id: str) -> Subscription:
        """
        Buy the same package again as a new PENDING subscription.

        The existing record is left untouched; the contributor must no longer
        hold an ACTIVE subscription for the renewal to be accepted.
        """
        async with self.uow_factory("renew_subscription") as uow:
            subscription = await self._require_subscription(uow, subscription_id)
            package = await self._require_package(uow, subscription.package_id)

        return await self.create_subscription(
            contributor_id=subscription.contributor_id,
            package_id=package.package_id,
            payment_method=subscription.payment_method,
            auto_renewal=subscription.auto_renewal,
            currency=subscription.currency,
            metadata={"renewed_from": subscription_id},
        )

    async def extend_subscription(self, subscription_id: str, periods: int = 1) -> Subscription:
        """
        Extend an ACTIVE subscription in place by whole package periods.

        Raises:
            ValidationError: periods < 1
            ConflictError: Subscription not ACTIVE
        """
        if periods < 1:
            raise ValidationError("Periods must be at least 1", field="periods", value=periods)

        async with self.uow_factory("extend_subscription") as uow:
            subscription = await self._require_subscription(uow, subscription_id)
            if subscription.status != SubscriptionStatus.ACTIVE:
                raise ConflictError(
                    "Only active subscriptions can be extended",
                    resource_type="subscription", resource_id=subscription_id,
                    current_state=subscription.status.value,
                )
            package = await self._require_package(uow, subscription.package_id)

            extended = await self._update_subscription(
                uow, subscription,
                {
                    "end_date": self._period_end(subscription.end_date, package.duration * periods, package),
                    "last_renewal_date": self.clock.now(),
                    "renewal_attempts": subscription.renewal_attempts + 1,
                    "last_notified_threshold": None,
                },
                "extend subscription",
            )

        logger.log_business_event(
            "subscription_extended",
            f"Subscription {subscription_id} extended by {periods} period(s)",
            entity_id=subscription_id,
            entity_type="subscription",
            extra={"end_date": extended.end_date.isoformat()},
        )
        return extended

    async def create_free_trial_subscription(self, contributor_id: str, package_id: str) -> Subscription:
        """
        Start a free trial: an ACTIVE, unpaid subscription lasting the package's trial length.

        Raises:
            NotFoundError: Contributor or package absent
            ConflictError: Package inactive or without trial, ACTIVE subscription exists,
                or the contributor already used a free trial
        """
        async with self.uow_factory("create_free_trial_subscription") as uow:
            contributor = await self._require_contributor(uow, contributor_id)
            package = await self._require_package(uow, package_id)
            if not package.is_active:
                raise ConflictError(
                    "Package is not active", resource_type="package", resource_id=package_id,
                    current_state="inactive",
                )
            if not package.offers_free_trial:
                raise ConflictError(
                    "Package does not offer a free trial", resource_type="package", resource_id=package_id
                )
            await self._ensure_no_active(uow, contributor_id)
            if await self.subscription_repository.has_free_trial(uow.session, contributor_id):
                raise ConflictError(
                    "Contributor already used a free trial",
                    resource_type="contributor", resource_id=contributor_id,
                )

            now = self.clock.now()
            trial = Subscription(
                contributor_id=contributor_id,
                package_id=package_id,
                start_date=now,
                end_date=now + timedelta(days=package.max_free_trial_duration),
                status=SubscriptionStatus.ACTIVE,
                transaction_id=generate_transaction_reference(now),
                amount=0,
                currency=self.settings.DEFAULT_CURRENCY,
                is_free_trial=True,
                created_at=now,
                updated_at=now,
            )
            created = await self.subscription_repository.create(uow.session, trial)

            async def remove(session):
                await self.subscription_repository.delete(session, created.subscription_id)

            await uow.checkpoint("create trial subscription", compensate=remove)
            await self._mirror_activation(
                uow, contributor, package, created,
                ContributorStatus.TRIAL, ContributorSubscriptionStatus.TRIAL,
            )

        logger.log_business_event(
            "free_trial_started",
            f"Free trial started for contributor {contributor_id}",
            entity_id=created.subscription_id,
            entity_type="subscription",
            extra={"package_id": package_id, "end_date": created.end_date.isoformat()},
        )
        return created

    async def get_active_status(self, contributor_id: str) -> ActiveStatus:
        """Report whether the contributor holds a usable subscription right now."""
        async with self.uow_factory("get_active_status") as uow:
            contributor = await self._require_contributor(uow, contributor_id)
            active = await self.subscription_repository.get_active_for_contributor(uow.session, contributor_id)

        now = self.clock.now()
        usable = active is not None and active.is_active(now)
        return ActiveStatus(
            contributor_id=contributor_id,
            has_active_subscription=usable,
            subscription=active if usable else None,
            days_remaining=active.days_remaining(now) if usable else 0,
            expiring_soon=active.is_expiring_soon(now) if usable else False,
            is_free_trial=active.is_free_trial if usable else False,
            subscription_tier=contributor.subscription_tier,
            subscription_status=contributor.subscription_status,
            usage_limits=contributor.usage_limits,
        )

    # =========================================================================
    # SCHEDULED OPERATIONS
    # =========================================================================

    async def check_expired_subscriptions(self) -> SweepReport:
        """
        Expire every ACTIVE subscription whose end date has passed.

        Each subscription is handled in its own unit of work; a failure is
        logged and recorded and the sweep moves on. Re-running is a no-op.
        """
        now = self.clock.now()
        report = SweepReport(started_at=now)

        async with self.uow_factory("find_due_for_expiry") as uow:
            due = await self.subscription_repository.find_due_for_expiry(uow.session, now)

        for candidate in due:
            report.processed += 1
            try:
                if await self._expire_one(candidate.subscription_id, now):
                    report.expired += 1
                else:
                    report.skipped += 1
            except Exception as e:
                logger.error(
                    "Failed to expire subscription",
                    exc_info=True,
                    subscription_id=candidate.subscription_id,
                    error=str(e),
                )
                report.errors.append({"subscription_id": candidate.subscription_id, "error": str(e)})

        logger.info(
            "Expiry sweep finished",
            processed=report.processed,
            expired=report.expired,
            skipped=report.skipped,
            failed=len(report.errors),
        )
        return report

    async def _expire_one(self, subscription_id: str, now: datetime) -> bool:
        async with self.uow_factory("expire_subscription") as uow:
            subscription = await self.subscription_repository.get_by_id(uow.session, subscription_id)
            if (
                subscription is None
                or subscription.status != SubscriptionStatus.ACTIVE
                or subscription.end_date > now
            ):
                return False

            expired = await self._update_subscription(
                uow, subscription,
                {"status": SubscriptionStatus.EXPIRED, "auto_renewal": False},
                "expire subscription",
            )
            await self._downgrade(uow, expired, ContributorSubscriptionStatus.EXPIRED)

        logger.log_business_event(
            "subscription_expired",
            f"Subscription {subscription_id} expired",
            entity_id=subscription_id,
            entity_type="subscription",
            extra={"contributor_id": expired.contributor_id},
        )
        return True

    async def scan_near_expiry(self, thresholds=None) -> ScanReport:
        """
        Fire reminders for ACTIVE subscriptions reaching a days-remaining threshold.

        A threshold fires at most once per subscription period: it is recorded
        in ``last_notified_threshold`` before the notifier is called, so a
        delivery failure is logged and not retried.
        """
        thresholds = tuple(thresholds or self.settings.reminder_thresholds or DEFAULT_THRESHOLDS)
        now = self.clock.now()
        report = ScanReport(started_at=now)

        async with self.uow_factory("find_ending_soon") as uow:
            candidates = await self.subscription_repository.find_ending_between(
                uow.session, now, now + timedelta(days=max(thresholds))
            )

        for candidate in candidates:
            report.scanned += 1
            threshold = candidate.due_threshold(now, thresholds)
            if threshold is None:
                report.skipped += 1
                continue

            label = threshold_label(threshold)
            try:
                async with self.uow_factory("record_reminder") as uow:
                    await self.subscription_repository.update(
                        uow.session,
                        candidate.subscription_id,
                        {"last_notified_threshold": threshold, "updated_at": now},
                    )
                    await uow.checkpoint("record reminder")
            except Exception as e:
                logger.error(
                    "Failed to record reminder",
                    exc_info=True,
                    subscription_id=candidate.subscription_id,
                    error=str(e),
                )
                report.errors.append({"subscription_id": candidate.subscription_id, "error": str(e)})
                continue

            report.notified += 1
            report.notifications.append(
                {"subscription_id": candidate.subscription_id, "threshold": label, "days_remaining": threshold}
            )
            await self._notify(candidate, label, threshold, report)

        logger.info(
            "Near-expiry scan finished",
            scanned=report.scanned,
            notified=report.notified,
            skipped=report.skipped,
            failed=len(report.errors),
        )
        return report

    async def _notify(self, subscription: Subscription, label: str, days: int, report: ScanReport) -> None:
        if self.notifier is None:
            logger.warning("No expiration notifier configured", subscription_id=subscription.subscription_id)
            return
        try:
            await self.notifier.send_expiration_reminder(
                subscription_id=subscription.subscription_id,
                threshold=label,
                days_remaining=days,
                contributor_id=subscription.contributor_id,
                end_date=subscription.end_date,
            )
        except Exception as e:
            logger.error(
                "Expiration reminder delivery failed",
                exc_info=True,
                subscription_id=subscription.subscription_id,
                threshold=label,
                error=str(e),
            )
            report.errors.append({"subscription_id": subscription.subscription_id, "error": str(e)})
