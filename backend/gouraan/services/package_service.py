"""
旅行套餐服务 - 朝觐 / 副朝 / 度假
"""
import logging
from decimal import Decimal
from typing import Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session

from gouraan.exceptions import NotFoundError, BusinessRuleError
from gouraan.models.entities import TravelPackage, PackageType, Booking
from gouraan.models.schemas import PackageCreate, PackageUpdate
from gouraan.repositories import BaseRepository, Page
from gouraan.security.permissions import Permissions

logger = logging.getLogger(__name__)

# 套餐类型 → 可替代 manage_packages 的专用权限
PACKAGE_TYPE_PERMISSIONS = {
    PackageType.HAJJ: Permissions.MANAGE_HAJJ_PACKAGES,
    PackageType.UMRAH: Permissions.MANAGE_UMRAH_PACKAGES,
}


def permissions_for_package_type(package_type: PackageType) -> list[str]:
    """管理某类套餐所需的权限（任一即可）"""
    perms = [Permissions.MANAGE_PACKAGES]
    if package_type in PACKAGE_TYPE_PERMISSIONS:
        perms.append(PACKAGE_TYPE_PERMISSIONS[package_type])
    return perms


class PackageService:
    """套餐服务"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BaseRepository(db, TravelPackage)

    def get_package(self, package_id: int) -> TravelPackage:
        package = self.repo.get_by_id(package_id)
        if not package:
            raise NotFoundError("套餐不存在")
        return package

    def list_packages(self, package_type: Optional[PackageType] = None,
                      is_active: Optional[bool] = None, search: Optional[str] = None,
                      min_price: Optional[Decimal] = None, max_price: Optional[Decimal] = None,
                      page: int = 1, limit: int = 10) -> Page:
        query = self.db.query(TravelPackage)
        if package_type:
            query = query.filter(TravelPackage.package_type == package_type)
        if is_active is not None:
            query = query.filter(TravelPackage.is_active == is_active)
        if search:
            term = f"%{search}%"
            query = query.filter(or_(
                TravelPackage.name.ilike(term),
                TravelPackage.description.ilike(term),
            ))
        if min_price is not None:
            query = query.filter(TravelPackage.price >= min_price)
        if max_price is not None:
            query = query.filter(TravelPackage.price <= max_price)
        return self.repo.paginate(
            query, page, limit,
            order_by=[TravelPackage.departure_date.asc(), TravelPackage.id.asc()]
        )

    def create_package(self, data: PackageCreate) -> TravelPackage:
        payload = data.model_dump()
        if payload.get("available_slots") is None:
            payload["available_slots"] = payload["total_slots"]
        if payload["available_slots"] > payload["total_slots"]:
            raise BusinessRuleError("可用名额不能超过总名额")
        if data.return_date and data.departure_date and data.return_date < data.departure_date:
            raise BusinessRuleError("返程日期不能早于出发日期")

        package = self.repo.create(TravelPackage(**payload))
        self.db.commit()
        self.db.refresh(package)
        logger.info(f"Package created: {package.name} ({package.package_type.value})")
        return package

    def update_package(self, package: TravelPackage, data: PackageUpdate) -> TravelPackage:
        update_data = data.model_dump(exclude_unset=True)
        total = update_data.get("total_slots", package.total_slots)
        available = update_data.get("available_slots", package.available_slots)
        if available > total:
            raise BusinessRuleError("可用名额不能超过总名额")
        self.repo.update(package, update_data)
        self.db.commit()
        self.db.refresh(package)
        return package

    def delete_package(self, package: TravelPackage) -> None:
        if self.db.query(Booking).filter(Booking.package_id == package.id).first():
            raise BusinessRuleError("套餐存在预订记录，无法删除")
        self.repo.delete(package)
        self.db.commit()

    # ---------- 名额 ----------

    def reserve_slot(self, package_id: int) -> TravelPackage:
        """占用一个名额（不提交，由调用方控制事务）"""
        package = self.get_package(package_id)
        if not package.is_active:
            raise BusinessRuleError("套餐已下架")
        if package.available_slots <= 0:
            raise BusinessRuleError("套餐名额已售罄")
        package.available_slots -= 1
        return package

    def release_slot(self, package_id: int) -> None:
        package = self.repo.get_by_id(package_id)
        if package and package.available_slots < package.total_slots:
            package.available_slots += 1
