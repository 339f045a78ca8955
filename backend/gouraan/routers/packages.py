"""
旅行套餐路由

朝觐 / 副朝套餐除 manage_packages 外，也可由对应的专用权限管理。
"""
from decimal import Decimal
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from gouraan.database import get_db
from gouraan.exceptions import PermissionDeniedError
from gouraan.models.entities import User, PackageType
from gouraan.models.schemas import PackageCreate, PackageUpdate, PackageResponse, Paginated
from gouraan.services.package_service import PackageService, permissions_for_package_type
from gouraan.security.auth import get_current_user
from gouraan.security.permissions import user_has_permission

router = APIRouter(prefix="/packages", tags=["旅行套餐"])


def _ensure_can_manage(user: User, package_type: PackageType) -> None:
    perms = permissions_for_package_type(package_type)
    if not user_has_permission(user, *perms):
        raise PermissionDeniedError(f"缺少权限: {', '.join(perms)}")


@router.get("", response_model=Paginated[PackageResponse])
def list_packages(
    package_type: Optional[PackageType] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """套餐列表"""
    return PackageService(db).list_packages(
        package_type, is_active, search, min_price, max_price, page, limit
    ).to_response(PackageResponse)


@router.get("/{package_id}", response_model=PackageResponse)
def get_package(package_id: int, db: Session = Depends(get_db)):
    return PackageService(db).get_package(package_id)


@router.post("", response_model=PackageResponse, status_code=status.HTTP_201_CREATED)
def create_package(
    data: PackageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """创建套餐"""
    _ensure_can_manage(current_user, data.package_type)
    return PackageService(db).create_package(data)


@router.put("/{package_id}", response_model=PackageResponse)
def update_package(
    package_id: int,
    data: PackageUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    service = PackageService(db)
    package = service.get_package(package_id)
    _ensure_can_manage(current_user, package.package_type)
    return service.update_package(package, data)


@router.delete("/{package_id}")
def delete_package(
    package_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    service = PackageService(db)
    package = service.get_package(package_id)
    _ensure_can_manage(current_user, package.package_type)
    service.delete_package(package)
    return {"message": "套餐已删除"}
