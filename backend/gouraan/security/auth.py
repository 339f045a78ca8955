"""
认证与授权模块

- bcrypt 密码哈希
- JWT 访问令牌 / 刷新令牌（刷新令牌持久化在 user_sessions 中，可吊销）
- require_permission：基于角色权限表的依赖（OR 逻辑）
"""
import bcrypt
import hashlib
import logging
import secrets
from datetime import datetime, timedelta, UTC
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from gouraan.config import settings
from gouraan.database import get_db
from gouraan.models.entities import User, UserRole, UserStatus
from gouraan.security.permissions import user_has_permission

logger = logging.getLogger(__name__)

security = HTTPBearer()

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

# 不允许访问的账户状态
_BLOCKED_STATUSES = {UserStatus.SUSPENDED, UserStatus.INACTIVE}


def get_password_hash(password: str) -> str:
    """密码哈希"""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """验证密码"""
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))


def hash_token(token: str) -> str:
    """一次性令牌（重置密码）只保存摘要"""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _role_value(role) -> str:
    return role.value if isinstance(role, UserRole) else str(role)


def create_access_token(user_id: int, role, expires_minutes: Optional[int] = None) -> str:
    """创建访问令牌"""
    expire = datetime.now(UTC) + timedelta(
        minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    to_encode = {
        "sub": str(user_id),
        "role": _role_value(role),
        "type": ACCESS_TOKEN_TYPE,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_refresh_token(user_id: int) -> tuple[str, datetime]:
    """创建刷新令牌，返回 (token, 过期时间)"""
    expire = datetime.now(UTC) + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    to_encode = {
        "sub": str(user_id),
        "type": REFRESH_TOKEN_TYPE,
        "exp": expire,
        "jti": secrets.token_hex(8),
    }
    token = jwt.encode(to_encode, settings.REFRESH_SECRET_KEY, algorithm=settings.ALGORITHM)
    return token, expire.replace(tzinfo=None)


def decode_token(token: str) -> dict:
    """解码访问令牌"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="无效的认证凭证"
        )
    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="无效的认证凭证"
        )
    return payload


def decode_refresh_token(token: str) -> Optional[dict]:
    """解码刷新令牌，失败返回 None"""
    try:
        payload = jwt.decode(token, settings.REFRESH_SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != REFRESH_TOKEN_TYPE:
        return None
    return payload


def authenticate_token(token: str, db: Session) -> Optional[User]:
    """校验访问令牌并返回用户（供 WebSocket 等非 HTTPBearer 场景使用）"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != ACCESS_TOKEN_TYPE or not payload.get("sub"):
        return None
    user = db.query(User).filter(User.id == int(payload["sub"])).first()
    if not user or user.status in _BLOCKED_STATUSES:
        return None
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """获取当前登录用户"""
    payload = decode_token(credentials.credentials)

    user_id = int(payload.get("sub"))
    user = db.query(User).filter(User.id == user_id).first()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="用户不存在"
        )

    if user.status in _BLOCKED_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="账号已停用"
        )

    return user


def require_permission(*permission_codes: str):
    """权限检查依赖 - 支持多个权限码（OR 逻辑）

    admin 始终通过；其余角色查角色权限表（含层级继承）。
    """
    async def permission_checker(current_user: User = Depends(get_current_user)):
        if user_has_permission(current_user, *permission_codes):
            return current_user
        logger.info(f"User {current_user.id} denied, missing {permission_codes}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"缺少权限: {', '.join(permission_codes)}"
        )
    return permission_checker


def require_role(allowed_roles: list[UserRole]):
    """角色检查依赖"""
    async def role_checker(current_user: User = Depends(get_current_user)):
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="权限不足"
            )
        return current_user
    return role_checker


require_admin = require_role([UserRole.ADMIN])
