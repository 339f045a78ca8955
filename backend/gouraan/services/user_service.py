"""
用户服务 - 个人资料、偏好、积分、设备与后台用户管理
"""
import logging
from typing import Optional
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from gouraan.exceptions import NotFoundError, ConflictError, BusinessRuleError, AuthenticationError
from gouraan.models.entities import (
    User, UserPreferences, UserDevice, UserRole, UserStatus,
    Booking, BookingStatus, PaymentStatus, LoyaltyTransaction,
)
from gouraan.models.schemas import UserProfileUpdate, PreferencesUpdate
from gouraan.repositories import BaseRepository, Page
from gouraan.security.auth import verify_password

logger = logging.getLogger(__name__)


class UserService:
    """用户服务"""

    def __init__(self, db: Session):
        self.db = db
        self.users = BaseRepository(db, User)

    def get_user(self, user_id: int) -> User:
        user = self.users.get_by_id(user_id)
        if not user:
            raise NotFoundError("用户不存在")
        return user

    # ---------- 个人资料 ----------

    def update_profile(self, user: User, data: UserProfileUpdate) -> User:
        update_data = data.model_dump(exclude_unset=True)
        phone = update_data.get("phone")
        if phone and phone != user.phone:
            if self.db.query(User).filter(User.phone == phone, User.id != user.id).first():
                raise ConflictError("手机号已被使用")
        self.users.update(user, update_data)
        self.db.commit()
        self.db.refresh(user)
        return user

    def get_preferences(self, user: User) -> UserPreferences:
        """读取偏好，不存在时按默认值创建"""
        if not user.preferences:
            user.preferences = UserPreferences()
            self.db.commit()
            self.db.refresh(user)
        return user.preferences

    def update_preferences(self, user: User, data: PreferencesUpdate) -> UserPreferences:
        prefs = self.get_preferences(user)
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(prefs, key, value)
        self.db.commit()
        self.db.refresh(prefs)
        return prefs

    def deactivate(self, user: User) -> User:
        user.status = UserStatus.INACTIVE
        self.db.commit()
        logger.info(f"User {user.id} deactivated own account")
        return user

    def reactivate_with_credentials(self, email: str, password: str) -> User:
        """停用账号无法通过令牌认证，重新启用时校验邮箱与密码"""
        user = self.db.query(User).filter(User.email == email).first()
        if not user or not verify_password(password, user.password_hash):
            raise AuthenticationError("邮箱或密码错误")
        return self.reactivate(user)

    def reactivate(self, user: User) -> User:
        if user.status == UserStatus.SUSPENDED:
            raise BusinessRuleError("账号已被封禁，请联系客服")
        user.status = UserStatus.ACTIVE
        self.db.commit()
        return user

    # ---------- 预订与积分 ----------

    def booking_history(self, user: User, page: int = 1, limit: int = 10) -> Page:
        query = self.db.query(Booking).filter(Booking.user_id == user.id)
        return BaseRepository(self.db, Booking).paginate(
            query, page, limit, order_by=Booking.created_at.desc()
        )

    def loyalty_transactions(self, user: User, page: int = 1, limit: int = 10) -> Page:
        query = self.db.query(LoyaltyTransaction).filter(LoyaltyTransaction.user_id == user.id)
        return BaseRepository(self.db, LoyaltyTransaction).paginate(
            query, page, limit, order_by=LoyaltyTransaction.created_at.desc()
        )

    def get_stats(self, user: User) -> dict:
        """个人统计：预订数量、消费总额、积分"""
        rows = self.db.query(Booking.status, func.count(Booking.id)).filter(
            Booking.user_id == user.id
        ).group_by(Booking.status).all()
        by_status = {status.value: count for status, count in rows}

        total_spent = self.db.query(func.coalesce(func.sum(Booking.total_amount), 0)).filter(
            Booking.user_id == user.id,
            Booking.payment_status == PaymentStatus.PAID
        ).scalar()

        return {
            "total_bookings": sum(by_status.values()),
            "confirmed_bookings": by_status.get(BookingStatus.CONFIRMED.value, 0),
            "completed_bookings": by_status.get(BookingStatus.COMPLETED.value, 0),
            "cancelled_bookings": by_status.get(BookingStatus.CANCELLED.value, 0),
            "pending_bookings": by_status.get(BookingStatus.PENDING.value, 0),
            "total_spent": float(total_spent or 0),
            "loyalty_points": user.loyalty_points or 0,
        }

    # ---------- 推送设备 ----------

    def register_device(self, user: User, push_token: str, platform: str = "android") -> UserDevice:
        """登记推送设备，同一令牌重复登记时重新激活"""
        device = self.db.query(UserDevice).filter(
            UserDevice.user_id == user.id,
            UserDevice.push_token == push_token
        ).first()
        if device:
            device.is_active = True
            device.platform = platform
        else:
            device = UserDevice(user_id=user.id, push_token=push_token, platform=platform)
            self.db.add(device)
        self.db.commit()
        self.db.refresh(device)
        return device

    def remove_device(self, user: User, device_id: int) -> None:
        device = self.db.query(UserDevice).filter(
            UserDevice.id == device_id, UserDevice.user_id == user.id
        ).first()
        if not device:
            raise NotFoundError("设备不存在")
        device.is_active = False
        self.db.commit()

    # ---------- 后台管理 ----------

    def list_users(self, role: Optional[UserRole] = None, status: Optional[UserStatus] = None,
                   search: Optional[str] = None, page: int = 1, limit: int = 10) -> Page:
        query = self.db.query(User)
        if role:
            query = query.filter(User.role == role)
        if status:
            query = query.filter(User.status == status)
        if search:
            term = f"%{search}%"
            query = query.filter(or_(
                User.email.ilike(term),
                User.first_name.ilike(term),
                User.last_name.ilike(term),
                User.phone.ilike(term),
            ))
        return self.users.paginate(query, page, limit, order_by=User.created_at.desc())

    def update_status(self, user_id: int, status: UserStatus, operator: User) -> User:
        user = self.get_user(user_id)
        if user.id == operator.id:
            raise BusinessRuleError("不能修改自己的账号状态")
        user.status = status
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"User {user.id} status set to {status.value} by {operator.id}")
        return user

    def change_role(self, user_id: int, role: UserRole, operator: User) -> User:
        user = self.get_user(user_id)
        if user.id == operator.id:
            raise BusinessRuleError("不能修改自己的角色")
        user.role = role
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"User {user.id} role set to {role.value} by {operator.id}")
        return user
