"""Transactional and compensating unit-of-work strategies."""

import pytest
from sqlalchemy import delete, func, select

from app.modules.subscription_management.domain.models.package import Package
from app.modules.subscription_management.infrastructure.database.models import PackageModel
from app.modules.subscription_management.infrastructure.database.package_repository_impl import (
    PackageRepositoryImpl,
)
from app.shared.core.exceptions import ConflictError, DatabaseError, TransactionError
from app.shared.infrastructure.database.session import DatabaseSessionManager


@pytest.fixture
async def sequential_manager(engine):
    manager = DatabaseSessionManager()
    await manager.initialize(engine=engine, transaction_mode="sequential")
    return manager


async def count_packages(manager) -> int:
    async with manager.unit_of_work("count") as uow:
        return (await uow.session.execute(select(func.count(PackageModel.package_id)))).scalar_one()


def remover(package_id, calls):
    async def _remove(session):
        calls.append(package_id)
        await session.execute(delete(PackageModel).where(PackageModel.package_id == package_id))

    return _remove


# =============================================================================
# SEQUENTIAL
# =============================================================================

async def test_sequential_compensates_in_reverse_order(sequential_manager):
    repo = PackageRepositoryImpl()
    calls = []

    with pytest.raises(TransactionError) as caught:
        async with sequential_manager.unit_of_work("two_steps") as uow:
            first = await repo.create(uow.session, Package(name="First plan"))
            await uow.checkpoint("first", compensate=remover(first.package_id, calls))
            second = await repo.create(uow.session, Package(name="Second plan"))
            await uow.checkpoint("second", compensate=remover(second.package_id, calls))
            raise RuntimeError("boom")

    assert calls == [second.package_id, first.package_id]
    assert caught.value.partial is False
    assert await count_packages(sequential_manager) == 0


async def test_sequential_domain_error_propagates_after_compensation(sequential_manager):
    repo = PackageRepositoryImpl()
    calls = []

    with pytest.raises(ConflictError):
        async with sequential_manager.unit_of_work("conflict") as uow:
            created = await repo.create(uow.session, Package(name="Doomed plan"))
            await uow.checkpoint("create", compensate=remover(created.package_id, calls))
            raise ConflictError("Contributor already has an active subscription")

    assert calls == [created.package_id]
    assert await count_packages(sequential_manager) == 0


async def test_sequential_failed_compensation_reports_partial_write(sequential_manager):
    repo = PackageRepositoryImpl()

    async def broken(session):
        raise RuntimeError("cannot undo")

    with pytest.raises(TransactionError) as caught:
        async with sequential_manager.unit_of_work("partial") as uow:
            await repo.create(uow.session, Package(name="Stuck plan"))
            await uow.checkpoint("create package", compensate=broken)
            raise ConflictError("late failure")

    assert caught.value.partial is True
    assert caught.value.failed_compensations == ["create package"]
    assert caught.value.details["partial"] is True
    assert await count_packages(sequential_manager) == 1


async def test_sequential_step_without_compensation_counts_as_failed(sequential_manager):
    repo = PackageRepositoryImpl()

    with pytest.raises(TransactionError) as caught:
        async with sequential_manager.unit_of_work("no_undo") as uow:
            await repo.create(uow.session, Package(name="Orphan plan"))
            await uow.checkpoint("create package")
            raise RuntimeError("boom")

    assert caught.value.partial is True
    assert caught.value.failed_compensations == ["create package"]


async def test_sequential_steps_are_visible_before_completion(sequential_manager):
    repo = PackageRepositoryImpl()

    async with sequential_manager.unit_of_work("visible") as uow:
        await repo.create(uow.session, Package(name="Committed plan"))
        await uow.checkpoint("create package")
        assert await count_packages(sequential_manager) == 1


# =============================================================================
# TRANSACTIONAL
# =============================================================================

async def test_transactional_rolls_back_everything(transactional_manager):
    repo = PackageRepositoryImpl()

    with pytest.raises(TransactionError) as caught:
        async with transactional_manager.unit_of_work("rollback") as uow:
            await repo.create(uow.session, Package(name="First plan"))
            await uow.checkpoint("first")
            await repo.create(uow.session, Package(name="Second plan"))
            await uow.checkpoint("second")
            raise RuntimeError("boom")

    assert caught.value.partial is False
    assert await count_packages(transactional_manager) == 0


async def test_transactional_domain_error_propagates_unchanged(transactional_manager):
    repo = PackageRepositoryImpl()

    with pytest.raises(ConflictError):
        async with transactional_manager.unit_of_work("conflict") as uow:
            await repo.create(uow.session, Package(name="Doomed plan"))
            await uow.checkpoint("create")
            raise ConflictError("no")

    assert await count_packages(transactional_manager) == 0


async def test_transactional_commits_on_success(transactional_manager):
    repo = PackageRepositoryImpl()

    async with transactional_manager.unit_of_work("commit") as uow:
        await repo.create(uow.session, Package(name="Kept plan"))
        await uow.checkpoint("create")

    assert await count_packages(transactional_manager) == 1


# =============================================================================
# SESSION MANAGER
# =============================================================================

def test_uninitialized_manager_refuses_units_of_work():
    with pytest.raises(DatabaseError):
        DatabaseSessionManager().unit_of_work("anything")


async def test_manager_hands_out_strategy_for_mode(transactional_manager, sequential_manager):
    assert transactional_manager.unit_of_work("op").transactional is True
    assert sequential_manager.unit_of_work("op").transactional is False


async def test_session_is_only_available_inside_context(transactional_manager):
    uow = transactional_manager.unit_of_work("outside")
    with pytest.raises(DatabaseError):
        uow.session
