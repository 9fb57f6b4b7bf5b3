"""HTTP surface: packages, subscriptions, history, scheduler and health endpoints."""

from decimal import Decimal

import pytest

from app.background_jobs.scheduler import SCAN_JOB, SWEEP_JOB, build_subscription_scheduler
from app.modules.subscription_management.domain.models.contributor import Contributor
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

API = "/api/v1"

PACKAGE_PAYLOAD = {
    "name": "Basic Monthly",
    "price": 5000,
    "duration": 1,
    "duration_unit": "months",
    "tier": "basic",
    "max_users": 5,
    "max_following": "infinite",
    "max_free_trial_duration": 7,
}


@pytest.fixture
async def contributor_id(transactional_manager):
    async with transactional_manager.unit_of_work("seed_contributor") as uow:
        created = await ContributorRepositoryImpl().create(
            uow.session, Contributor(name="Fatou Ndiaye", email="fatou@example.org")
        )
    return created.contributor_id


@pytest.fixture
async def package_id(client):
    response = await client.post(f"{API}/packages/", json=PACKAGE_PAYLOAD)
    assert response.status_code == 201
    return response.json()["package_id"]


# =============================================================================
# PACKAGES
# =============================================================================

async def test_package_catalog(client, package_id):
    listing = await client.get(f"{API}/packages/")
    assert [item["package_id"] for item in listing.json()] == [package_id]

    detail = await client.get(f"{API}/packages/{package_id}")
    assert detail.status_code == 200
    assert detail.json()["max_following"] == "unlimited"

    removed = await client.delete(f"{API}/packages/{package_id}")
    assert removed.json()["is_active"] is False
    assert (await client.get(f"{API}/packages/")).json() == []


async def test_invalid_package_rejected(client):
    response = await client.post(f"{API}/packages/", json={**PACKAGE_PAYLOAD, "max_users": -3})

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_duplicate_package_name_conflicts(client, package_id):
    response = await client.post(f"{API}/packages/", json=PACKAGE_PAYLOAD)
    assert response.status_code == 409


async def test_unknown_package_uses_error_envelope(client):
    response = await client.get(f"{API}/packages/missing")

    assert response.status_code == 404
    error = response.json()["error"]
    assert error["code"] == "NOT_FOUND"
    assert error["status_code"] == 404
    assert error["details"]["resource_type"] == "package"


# =============================================================================
# SUBSCRIPTIONS
# =============================================================================

async def test_subscription_lifecycle_over_http(client, contributor_id, package_id):
    created = await client.post(
        f"{API}/subscriptions/",
        json={"contributor_id": contributor_id, "package_id": package_id, "payment_method": "card"},
    )
    assert created.status_code == 201
    body = created.json()
    assert body["status"] == "pending"
    assert body["is_active"] is False
    assert Decimal(body["amount"]) == Decimal("5000")
    subscription_id = body["subscription_id"]

    confirmed = await client.post(f"{API}/subscriptions/{subscription_id}/confirm-payment")
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "active"
    assert confirmed.json()["is_active"] is True
    assert confirmed.json()["days_remaining"] == 31

    status = await client.get(f"{API}/subscriptions/contributor/{contributor_id}/status")
    assert status.json()["has_active_subscription"] is True
    assert status.json()["subscription_tier"] == "basic"
    assert status.json()["usage_limits"]["max_users"] == 5

    extended = await client.post(f"{API}/subscriptions/{subscription_id}/extend", json={"periods": 1})
    assert extended.json()["end_date"].startswith("2024-04-02")

    cancelled = await client.put(
        f"{API}/subscriptions/{subscription_id}/cancel", json={"reason": "Switching plans"}
    )
    assert cancelled.json()["status"] == "cancelled"
    assert cancelled.json()["cancelation_reason"] == "Switching plans"

    again = await client.put(f"{API}/subscriptions/{subscription_id}/cancel")
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "CONFLICT"

    renewed = await client.post(f"{API}/subscriptions/{subscription_id}/renew")
    assert renewed.status_code == 201
    assert renewed.json()["metadata"] == {"renewed_from": subscription_id}

    listing = await client.get(f"{API}/subscriptions/contributor/{contributor_id}")
    assert len(listing.json()) == 2


async def test_second_active_subscription_conflicts(client, contributor_id, package_id):
    payload = {"contributor_id": contributor_id, "package_id": package_id}
    first = (await client.post(f"{API}/subscriptions/", json=payload)).json()
    await client.post(f"{API}/subscriptions/{first['subscription_id']}/confirm-payment")

    response = await client.post(f"{API}/subscriptions/", json=payload)

    assert response.status_code == 409
    assert response.json()["error"]["details"]["current_state"] == "active"


async def test_free_trial_endpoint(client, contributor_id, package_id):
    payload = {"contributor_id": contributor_id, "package_id": package_id}

    trial = await client.post(f"{API}/subscriptions/free-trial", json=payload)
    assert trial.status_code == 201
    assert trial.json()["is_free_trial"] is True
    assert trial.json()["days_remaining"] == 7

    await client.put(f"{API}/subscriptions/{trial.json()['subscription_id']}/cancel")
    second = await client.post(f"{API}/subscriptions/free-trial", json=payload)
    assert second.status_code == 409


async def test_request_validation(client, contributor_id, package_id):
    bad_currency = await client.post(
        f"{API}/subscriptions/",
        json={"contributor_id": contributor_id, "package_id": package_id, "currency": "EURO"},
    )
    assert bad_currency.status_code == 422

    unsupported = await client.post(
        f"{API}/subscriptions/",
        json={"contributor_id": contributor_id, "package_id": package_id, "currency": "GBP"},
    )
    assert unsupported.status_code == 422
    assert unsupported.json()["error"]["details"]["field"] == "currency"

    long_reason = await client.put(f"{API}/subscriptions/anything/cancel", json={"reason": "x" * 501})
    assert long_reason.status_code == 422


async def test_declined_payment_callback(client, contributor_id, package_id):
    payload = {"contributor_id": contributor_id, "package_id": package_id}
    created = (await client.post(f"{API}/subscriptions/", json=payload)).json()
    subscription_id = created["subscription_id"]

    declined = await client.post(
        f"{API}/subscriptions/{subscription_id}/fail-payment", json={"reason": "Card declined"}
    )
    assert declined.status_code == 200
    assert declined.json()["status"] == "pending"
    assert declined.json()["payment_status"] == "failed"
    assert declined.json()["metadata"]["payment_failure_reason"] == "Card declined"

    confirmed = await client.post(f"{API}/subscriptions/{subscription_id}/confirm-payment")
    assert confirmed.json()["status"] == "active"

    too_late = await client.post(f"{API}/subscriptions/{subscription_id}/fail-payment")
    assert too_late.status_code == 409


async def test_unknown_subscription_returns_404(client):
    response = await client.post(f"{API}/subscriptions/missing/confirm-payment")
    assert response.status_code == 404


async def test_history_endpoint(client, contributor_id, package_id):
    payload = {"contributor_id": contributor_id, "package_id": package_id}
    await client.post(f"{API}/subscriptions/", json=payload)
    await client.post(f"{API}/subscriptions/", json=payload)

    response = await client.get(
        f"{API}/subscriptions/contributor/{contributor_id}/history",
        params={"page": 1, "limit": 1, "status": "pending"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["pagination"]["total"] == 2
    assert body["pagination"]["has_next_page"] is True
    assert len(body["items"]) == 1
    assert body["statistics"]["pending"] == 2

    invalid = await client.get(
        f"{API}/subscriptions/contributor/{contributor_id}/history", params={"page": 0}
    )
    assert invalid.status_code == 422


# =============================================================================
# SCHEDULER
# =============================================================================

@pytest.fixture
def scheduler(api_app, transactional_manager, clock, notifier):
    service = SubscriptionLifecycleService(
        uow_factory=transactional_manager.unit_of_work,
        subscription_repository=SubscriptionRepositoryImpl(),
        package_repository=PackageRepositoryImpl(),
        contributor_repository=ContributorRepositoryImpl(),
        notifier=notifier,
        clock=clock,
    )
    scheduler = build_subscription_scheduler(service, clock=clock)
    api_app.state.scheduler = scheduler
    return scheduler


async def test_scheduler_jobs_listed(client, scheduler):
    response = await client.get(f"{API}/scheduler/jobs")

    assert response.status_code == 200
    assert {job["name"] for job in response.json()} == {SWEEP_JOB, SCAN_JOB}
    assert all(job["running"] is False for job in response.json())


async def test_manual_sweep_run(client, scheduler, contributor_id, package_id, clock):
    payload = {"contributor_id": contributor_id, "package_id": package_id}
    created = (await client.post(f"{API}/subscriptions/", json=payload)).json()
    await client.post(f"{API}/subscriptions/{created['subscription_id']}/confirm-payment")
    clock.advance(days=40)

    response = await client.post(f"{API}/scheduler/jobs/{SWEEP_JOB}/run")

    assert response.status_code == 200
    body = response.json()
    assert body["succeeded"] is True
    assert body["result"]["expired"] == 1
    status = await client.get(f"{API}/subscriptions/contributor/{contributor_id}/status")
    assert status.json()["subscription_tier"] == "free"


async def test_unknown_job_is_rejected(client, scheduler):
    response = await client.post(f"{API}/scheduler/jobs/weekly-report/run")

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "SCHEDULER_ERROR"


async def test_scheduler_endpoints_without_scheduler(client):
    response = await client.get(f"{API}/scheduler/jobs")
    assert response.status_code == 400


# =============================================================================
# HEALTH
# =============================================================================

async def test_liveness_probe(client):
    response = await client.get("/health/live")

    assert response.status_code == 200
    assert response.json()["status"] == "alive"


async def test_api_info(client):
    response = await client.get(f"{API}/")
    assert response.status_code == 200
