"""
预订服务 - 预订聚合根
创建、确认、取消、完成、过期清理，确认时发放积分
"""
import logging
import random
import string
import time
from datetime import datetime, date, timedelta
from typing import Optional
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from gouraan_core.engine import event_bus, Event
from gouraan.config import settings
from gouraan.exceptions import (
    NotFoundError, ConflictError, BusinessRuleError, PermissionDeniedError,
)
from gouraan.models.entities import (
    Booking, BookingType, BookingStatus, PaymentStatus,
    User, LoyaltyTransaction,
)
from gouraan.models.events import EventType
from gouraan.models.schemas import BookingCreate, BookingUpdate
from gouraan.repositories import BaseRepository, Page
from gouraan.security.permissions import Permissions, can_manage_all_bookings, user_has_permission
from gouraan.services.package_service import PackageService
from gouraan.services.room_service import RoomService

logger = logging.getLogger(__name__)

REFERENCE_PREFIXES = {
    BookingType.FLIGHT: "FL",
    BookingType.HOTEL: "HT",
    BookingType.PACKAGE: "PK",
    BookingType.HAJJ: "HJ",
    BookingType.UMRAH: "UM",
}

# 预订类型 → 所需权限
BOOKING_TYPE_PERMISSIONS = {
    BookingType.FLIGHT: Permissions.BOOK_FLIGHT,
    BookingType.HOTEL: Permissions.BOOK_HOTEL,
    BookingType.PACKAGE: Permissions.BOOK_PACKAGE,
    BookingType.HAJJ: Permissions.BOOK_PACKAGE,
    BookingType.UMRAH: Permissions.BOOK_PACKAGE,
}

PACKAGE_BOOKING_TYPES = {BookingType.PACKAGE, BookingType.HAJJ, BookingType.UMRAH}

EXPIRED_NOTE = "Automatically cancelled due to expiry"


def generate_booking_reference(booking_type) -> str:
    """预订号：类型前缀 + 毫秒时间戳后 6 位 + 4 位大写字母数字"""
    prefix = REFERENCE_PREFIXES.get(booking_type, "BK")
    timestamp = str(int(time.time() * 1000))[-6:]
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=4))
    return f"{prefix}{timestamp}{suffix}"


class BookingService:
    """预订服务"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BaseRepository(db, Booking)

    def _new_reference(self, booking_type) -> str:
        for _ in range(5):
            reference = generate_booking_reference(booking_type)
            if not self.repo.exists(reference=reference):
                return reference
        raise ConflictError("无法生成唯一预订号，请重试")

    # ---------- 查询 ----------

    def get_booking(self, booking_id: int, user: Optional[User] = None) -> Booking:
        """获取预订；传入 user 时校验归属（员工可见全部）"""
        booking = self.repo.get_by_id(booking_id)
        if not booking or (user and not self._can_access(booking, user)):
            raise NotFoundError("预订不存在")
        return booking

    def get_by_reference(self, reference: str, user: Optional[User] = None) -> Booking:
        booking = self.repo.find_one(reference=reference)
        if not booking or (user and not self._can_access(booking, user)):
            raise NotFoundError("预订不存在")
        return booking

    @staticmethod
    def _can_access(booking: Booking, user: User) -> bool:
        return booking.user_id == user.id or can_manage_all_bookings(user)

    def _filtered_query(self, booking_type: Optional[BookingType] = None,
                        status: Optional[BookingStatus] = None,
                        payment_status: Optional[PaymentStatus] = None,
                        date_from: Optional[date] = None, date_to: Optional[date] = None):
        query = self.db.query(Booking)
        if booking_type:
            query = query.filter(Booking.booking_type == booking_type)
        if status:
            query = query.filter(Booking.status == status)
        if payment_status:
            query = query.filter(Booking.payment_status == payment_status)
        if date_from:
            query = query.filter(Booking.created_at >= datetime.combine(date_from, datetime.min.time()))
        if date_to:
            query = query.filter(Booking.created_at < datetime.combine(date_to + timedelta(days=1), datetime.min.time()))
        return query

    def list_user_bookings(self, user: User, page: int = 1, limit: int = 10, **filters) -> Page:
        """当前用户的预订"""
        query = self._filtered_query(**filters).filter(Booking.user_id == user.id)
        return self.repo.paginate(query, page, limit, order_by=Booking.created_at.desc())

    def list_all_bookings(self, user_id: Optional[int] = None, search: Optional[str] = None,
                          page: int = 1, limit: int = 10, **filters) -> Page:
        """后台预订列表：按用户与关键字（预订号、用户邮箱/姓名）过滤"""
        query = self._filtered_query(**filters)
        if user_id:
            query = query.filter(Booking.user_id == user_id)
        if search:
            term = f"%{search}%"
            query = query.join(User, Booking.user_id == User.id).filter(or_(
                Booking.reference.ilike(term),
                User.email.ilike(term),
                User.first_name.ilike(term),
                User.last_name.ilike(term),
            ))
        return self.repo.paginate(query, page, limit, order_by=Booking.created_at.desc())

    # ---------- 创建 / 更新 ----------

    def create_booking(self, user: User, data: BookingCreate) -> Booking:
        """创建预订（待支付，保留 BOOKING_HOLD_MINUTES 分钟）"""
        required = BOOKING_TYPE_PERMISSIONS.get(data.booking_type)
        if required and not user_has_permission(user, required):
            raise PermissionDeniedError(f"缺少权限: {required}")

        if data.booking_type == BookingType.HOTEL and data.room_id:
            if not data.check_in_date or not data.check_out_date:
                raise BusinessRuleError("酒店预订需要入住与离店日期")
            availability = RoomService(self.db).check_availability(
                data.room_id, data.check_in_date, data.check_out_date
            )
            if not availability["available"]:
                raise ConflictError(availability["reason"])

        if data.booking_type in PACKAGE_BOOKING_TYPES and data.package_id:
            PackageService(self.db).reserve_slot(data.package_id)

        booking = Booking(
            reference=self._new_reference(data.booking_type),
            user_id=user.id,
            booking_type=data.booking_type,
            status=BookingStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            total_amount=data.total_amount,
            currency=data.currency,
            booking_data=data.booking_data,
            room_id=data.room_id,
            check_in_date=data.check_in_date,
            check_out_date=data.check_out_date,
            package_id=data.package_id,
            notes=data.notes,
            expires_at=datetime.utcnow() + timedelta(minutes=settings.BOOKING_HOLD_MINUTES),
        )
        self.repo.create(booking)
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"Booking {booking.reference} created for user {user.id}")

        event_bus.publish(Event(
            event_type=EventType.BOOKING_CREATED,
            data={"booking_id": booking.id, "reference": booking.reference, "user_id": user.id},
            source="booking_service",
        ))
        return booking

    def update_booking(self, booking: Booking, data: BookingUpdate) -> Booking:
        if booking.status in (BookingStatus.CANCELLED, BookingStatus.COMPLETED):
            raise BusinessRuleError(f"预订状态为 {booking.status.value}，无法修改")
        self.repo.update(booking, data.model_dump(exclude_unset=True))
        self.db.commit()
        self.db.refresh(booking)
        return booking

    # ---------- 状态流转 ----------

    def confirm_booking(self, booking: Booking) -> Booking:
        """确认预订：需已支付；发放积分并发布事件"""
        if booking.status != BookingStatus.PENDING:
            raise BusinessRuleError(f"只有待确认的预订可以确认，当前状态: {booking.status.value}")
        if booking.payment_status != PaymentStatus.PAID:
            raise BusinessRuleError("预订尚未支付，无法确认")

        booking.status = BookingStatus.CONFIRMED
        booking.confirmed_at = datetime.utcnow()
        booking.expires_at = None

        points = 0
        if settings.ENABLE_LOYALTY_PROGRAM:
            points = self._award_loyalty_points(booking)

        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"Booking {booking.reference} confirmed")

        event_bus.publish(Event(
            event_type=EventType.BOOKING_CONFIRMED,
            data={
                "booking_id": booking.id,
                "reference": booking.reference,
                "user_id": booking.user_id,
                "booking_type": booking.booking_type.value,
                "total_amount": str(booking.total_amount),
                "currency": booking.currency,
                "points": points,
            },
            source="booking_service",
        ))
        return booking

    def _award_loyalty_points(self, booking: Booking) -> int:
        """积分 = 金额向下取整"""
        points = int(booking.total_amount)
        if points <= 0:
            return 0
        self.db.add(LoyaltyTransaction(
            user_id=booking.user_id,
            booking_id=booking.id,
            points=points,
            transaction_type="earned",
            description=f"Points earned for booking {booking.reference}",
        ))
        user = self.db.query(User).filter(User.id == booking.user_id).first()
        user.loyalty_points = (user.loyalty_points or 0) + points
        logger.info(f"Awarded {points} loyalty points to user {booking.user_id} for booking {booking.reference}")
        return points

    def cancel_booking(self, booking: Booking, reason: Optional[str] = None) -> Booking:
        if booking.status in (BookingStatus.CANCELLED, BookingStatus.COMPLETED):
            raise BusinessRuleError(f"预订状态为 {booking.status.value}，无法取消")

        self._mark_cancelled(booking, reason or "Cancelled by user")
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"Booking {booking.reference} cancelled")

        event_bus.publish(Event(
            event_type=EventType.BOOKING_CANCELLED,
            data={
                "booking_id": booking.id,
                "reference": booking.reference,
                "user_id": booking.user_id,
                "reason": booking.cancellation_reason,
            },
            source="booking_service",
        ))
        return booking

    def _mark_cancelled(self, booking: Booking, reason: str) -> None:
        booking.status = BookingStatus.CANCELLED
        booking.cancelled_at = datetime.utcnow()
        booking.cancellation_reason = reason
        booking.notes = f"{booking.notes}\n{reason}" if booking.notes else reason
        booking.expires_at = None
        if booking.package_id and booking.booking_type in PACKAGE_BOOKING_TYPES:
            PackageService(self.db).release_slot(booking.package_id)

    def complete_booking(self, booking: Booking) -> Booking:
        if booking.status != BookingStatus.CONFIRMED:
            raise BusinessRuleError("只有已确认的预订可以完成")
        booking.status = BookingStatus.COMPLETED
        self.db.commit()
        self.db.refresh(booking)
        return booking

    # ---------- 统计与清理 ----------

    def get_stats(self, user: Optional[User] = None) -> dict:
        """按状态计数与已支付收入；传入 user 时只统计该用户"""
        count_query = self.db.query(Booking.status, func.count(Booking.id))
        revenue_query = self.db.query(func.coalesce(func.sum(Booking.total_amount), 0)).filter(
            Booking.payment_status == PaymentStatus.PAID
        )
        if user:
            count_query = count_query.filter(Booking.user_id == user.id)
            revenue_query = revenue_query.filter(Booking.user_id == user.id)

        by_status = {s.value: 0 for s in BookingStatus}
        for status, count in count_query.group_by(Booking.status).all():
            by_status[status.value] = count

        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "revenue": float(revenue_query.scalar() or 0),
        }

    def cleanup_expired(self) -> int:
        """取消所有已过期的待支付预订，返回数量"""
        now = datetime.utcnow()
        expired = self.db.query(Booking).filter(
            Booking.status == BookingStatus.PENDING,
            Booking.payment_status == PaymentStatus.PENDING,
            Booking.expires_at.isnot(None),
            Booking.expires_at < now,
        ).all()
        for booking in expired:
            self._mark_cancelled(booking, EXPIRED_NOTE)
            booking.notes = EXPIRED_NOTE
        self.db.commit()
        logger.info(f"Cleaned up {len(expired)} expired bookings")
        return len(expired)
