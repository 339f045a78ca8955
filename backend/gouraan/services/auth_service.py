"""
认证服务 - 注册、登录、令牌刷新、密码找回、邮箱验证
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session

from gouraan_core.notification.channel import ChannelMessage, NotificationChannelRegistry
from gouraan.config import settings
from gouraan.exceptions import (
    AuthenticationError, ConflictError, PermissionDeniedError, BusinessRuleError,
)
from gouraan.i18n import translator
from gouraan.models.entities import (
    User, UserPreferences, UserSession, UserRole, UserStatus,
)
from gouraan.models.schemas import RegisterRequest
from gouraan.security.auth import (
    get_password_hash, verify_password, hash_token,
    create_access_token, create_refresh_token, decode_refresh_token,
)
from gouraan.security.permissions import SELF_REGISTER_ROLES

logger = logging.getLogger(__name__)

_LOGIN_BLOCKED = {UserStatus.SUSPENDED, UserStatus.INACTIVE}


class AuthService:
    """认证服务"""

    def __init__(self, db: Session):
        self.db = db

    # ---------- 令牌 ----------

    def issue_tokens(self, user: User) -> dict:
        """签发访问令牌与刷新令牌，并持久化会话"""
        access_token = create_access_token(user.id, user.role)
        refresh_token, expires_at = create_refresh_token(user.id)
        self.db.add(UserSession(
            user_id=user.id,
            refresh_token=refresh_token,
            expires_at=expires_at,
            is_active=True,
        ))
        self.db.commit()
        return {"access_token": access_token, "refresh_token": refresh_token, "token_type": "bearer"}

    def _deactivate_sessions(self, user_id: int) -> int:
        count = self.db.query(UserSession).filter(
            UserSession.user_id == user_id,
            UserSession.is_active == True  # noqa: E712
        ).update({UserSession.is_active: False}, synchronize_session=False)
        return count

    # ---------- 注册 / 登录 ----------

    def register(self, data: RegisterRequest) -> tuple[User, dict]:
        """注册新用户（仅客户与旅行代理可自助注册）"""
        if not settings.ENABLE_REGISTRATION:
            raise PermissionDeniedError("注册功能已关闭")

        if data.role not in SELF_REGISTER_ROLES:
            raise PermissionDeniedError("该角色不允许自助注册")

        if self.db.query(User).filter(User.email == data.email).first():
            raise ConflictError("邮箱已被注册")

        if data.phone and self.db.query(User).filter(User.phone == data.phone).first():
            raise ConflictError("手机号已被注册")

        user = User(
            email=data.email,
            password_hash=get_password_hash(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
            role=data.role,
            status=UserStatus.PENDING_VERIFICATION,
            email_verified=False,
            email_verification_token=secrets.token_urlsafe(24),
        )
        user.preferences = UserPreferences(
            language=settings.DEFAULT_LOCALE,
            currency=settings.DEFAULT_CURRENCY,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"User registered: {user.email} ({user.role.value})")

        self._send_email(
            user, "email_verification",
            {"name": user.first_name, "token": user.email_verification_token},
            {"token": user.email_verification_token},
        )
        return user, self.issue_tokens(user)

    def login(self, email: str, password: str) -> tuple[User, dict]:
        """登录"""
        user = self.db.query(User).filter(User.email == email).first()
        if not user or not verify_password(password, user.password_hash):
            raise AuthenticationError("邮箱或密码错误")

        if user.status in _LOGIN_BLOCKED:
            raise AuthenticationError("账号已停用")

        user.last_login_at = datetime.utcnow()
        self.db.commit()
        logger.info(f"User {user.id} logged in")
        return user, self.issue_tokens(user)

    def refresh(self, refresh_token: str) -> dict:
        """刷新令牌：校验签名与会话，轮换两枚令牌"""
        payload = decode_refresh_token(refresh_token)
        if not payload:
            raise AuthenticationError("无效的刷新令牌")

        session = self.db.query(UserSession).filter(
            UserSession.refresh_token == refresh_token,
            UserSession.is_active == True  # noqa: E712
        ).first()
        if not session or session.expires_at < datetime.utcnow():
            raise AuthenticationError("会话已失效")

        user = self.db.query(User).filter(User.id == int(payload["sub"])).first()
        if not user or user.status in _LOGIN_BLOCKED:
            raise AuthenticationError("用户不可用")

        session.is_active = False
        return self.issue_tokens(user)

    def logout(self, user: User) -> int:
        """注销：停用全部会话"""
        count = self._deactivate_sessions(user.id)
        self.db.commit()
        return count

    # ---------- 密码 ----------

    def forgot_password(self, email: str) -> None:
        """生成重置令牌并通过邮件发送；邮箱不存在时静默返回"""
        user = self.db.query(User).filter(User.email == email.strip().lower()).first()
        if not user:
            logger.info("Password reset requested for unknown email")
            return

        raw_token = secrets.token_urlsafe(32)
        user.password_reset_token = hash_token(raw_token)
        user.password_reset_expires = datetime.utcnow() + timedelta(
            minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES
        )
        self.db.commit()

        self._send_email(
            user, "password_reset",
            {"token": raw_token, "minutes": settings.PASSWORD_RESET_EXPIRE_MINUTES},
            {"token": raw_token},
        )

    def reset_password(self, token: str, new_password: str) -> None:
        user = self.db.query(User).filter(User.password_reset_token == hash_token(token)).first()
        if not user or not user.password_reset_expires \
                or user.password_reset_expires < datetime.utcnow():
            raise BusinessRuleError("重置令牌无效或已过期")

        user.password_hash = get_password_hash(new_password)
        user.password_reset_token = None
        user.password_reset_expires = None
        self._deactivate_sessions(user.id)
        self.db.commit()
        logger.info(f"Password reset for user {user.id}")

    def change_password(self, user: User, current_password: str, new_password: str) -> None:
        if not verify_password(current_password, user.password_hash):
            raise BusinessRuleError("当前密码错误")
        user.password_hash = get_password_hash(new_password)
        self.db.commit()

    def verify_email(self, token: str) -> User:
        """验证邮箱，待验证账户随之激活"""
        user = self.db.query(User).filter(User.email_verification_token == token).first()
        if not user:
            raise BusinessRuleError("验证令牌无效")
        user.email_verified = True
        user.email_verification_token = None
        if user.status == UserStatus.PENDING_VERIFICATION:
            user.status = UserStatus.ACTIVE
        self.db.commit()
        self.db.refresh(user)
        return user

    # ---------- 内部 ----------

    def _send_email(self, user: User, name: str, params: dict, extra: Optional[dict] = None) -> bool:
        locale = translator.resolve_locale(user.preferences.language if user.preferences else None)
        subject, content = translator.notification_text(name, locale, params)
        result = NotificationChannelRegistry().deliver(
            "email", [user.email], ChannelMessage(subject, content, extra or {})
        )
        if not result.success:
            logger.warning(f"Email '{name}' to user {user.id} was not delivered: {result.error}")
        return result.success
