# 📄 File: app/modules/subscription_management/presentation/api/v1/packages.py
# 🧭 Purpose (Layman Explanation):
# Lets administrators add plans to the catalog, take them off sale, and lets anyone see which
# plans are on offer.
#
# 🧪 Purpose (Technical Summary):
# Thin FastAPI routes over PackageService for the plan catalog.
#
# 🔗 Dependencies:
# FastAPI, PackageService, subscription_schemas.CreatePackageRequest
#
# 🔄 Connected Modules / Calls From:
# app.api.v1.router (mounted at /packages)

from typing import List

from fastapi import APIRouter, Depends, status

from app.modules.subscription_management.domain.models.package import Package
from app.modules.subscription_management.domain.services.package_service import PackageService
from app.modules.subscription_management.presentation.api.schemas.subscription_schemas import (
    CreatePackageRequest,
)
from app.modules.subscription_management.presentation.dependencies import get_package_service

packages_router = APIRouter()


@packages_router.post("/", response_model=Package, status_code=status.HTTP_201_CREATED)
async def create_package(
    request: CreatePackageRequest,
    service: PackageService = Depends(get_package_service),
) -> Package:
    return await service.create_package(request.model_dump(exclude_none=True))


@packages_router.get("/", response_model=List[Package])
async def list_active_packages(service: PackageService = Depends(get_package_service)) -> List[Package]:
    return await service.list_active_packages()


@packages_router.get("/{package_id}", response_model=Package)
async def get_package(package_id: str, service: PackageService = Depends(get_package_service)) -> Package:
    return await service.get_package(package_id)


@packages_router.delete("/{package_id}", response_model=Package)
async def deactivate_package(
    package_id: str,
    service: PackageService = Depends(get_package_service),
) -> Package:
    """Take a package off sale."""
    return await service.deactivate_package(package_id)
