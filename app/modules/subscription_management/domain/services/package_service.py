# 📄 File: app/modules/subscription_management/domain/services/package_service.py
# 🧭 Purpose (Layman Explanation):
# Lets administrators put pricing plans on sale, look them up, and take them off sale.
# 🧪 Purpose (Technical Summary):
# Plan Catalog domain service: validated package creation (pydantic errors surface as
# ValidationError), lookup, active listing and deactivation.
# 🔗 Dependencies:
# Package domain model, PackageRepository, unit of work, app.shared.core.exceptions
# 🔄 Connected Modules / Calls From:
# Administrative collaborators, test fixtures

from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError

from app.modules.subscription_management.domain.models.package import Package
from app.modules.subscription_management.domain.repositories.package_repository import (
    PackageRepository,
)
from app.shared.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.shared.infrastructure.database.session import UnitOfWorkFactory
from app.shared.utils.logging import get_logger

logger = get_logger(__name__)


class PackageService:
    """Domain service for the plan catalog."""

    def __init__(self, uow_factory: UnitOfWorkFactory, package_repository: PackageRepository):
        self.uow_factory = uow_factory
        self.package_repository = package_repository

    async def create_package(self, package_data: Dict[str, Any]) -> Package:
        """
        Validate and persist a package.

        Raises:
            ValidationError: Malformed duration, ceilings, trial length or discount
            ConflictError: Name already taken
        """
        try:
            package = Package(**package_data)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ()))
            raise ValidationError(
                f"Invalid package: {first.get('msg')}",
                field=field or None,
                details={"errors": [
                    {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg")}
                    for err in e.errors()
                ]},
            ) from e

        async with self.uow_factory("create_package") as uow:
            if await self.package_repository.get_by_name(uow.session, package.name):
                raise ConflictError(
                    "A package with this name already exists", resource_type="package"
                )
            created = await self.package_repository.create(uow.session, package)

        logger.log_business_event(
            "package_created",
            f"Package {created.name} created",
            entity_id=created.package_id,
            entity_type="package",
        )
        return created

    async def get_package(self, package_id: str) -> Package:
        async with self.uow_factory("get_package") as uow:
            package = await self.package_repository.get_by_id(uow.session, package_id)
        if package is None:
            raise NotFoundError("Package not found", resource_type="package", resource_id=package_id)
        return package

    async def list_active_packages(self) -> List[Package]:
        async with self.uow_factory("list_active_packages") as uow:
            return await self.package_repository.list_active(uow.session)

    async def deactivate_package(self, package_id: str) -> Package:
        """Take a package off sale; existing subscriptions are unaffected."""
        async with self.uow_factory("deactivate_package") as uow:
            package = await self.package_repository.update(uow.session, package_id, {"is_active": False})
        if package is None:
            raise NotFoundError("Package not found", resource_type="package", resource_id=package_id)

        logger.log_business_event(
            "package_deactivated",
            f"Package {package.name} deactivated",
            entity_id=package_id,
            entity_type="package",
        )
        return package
