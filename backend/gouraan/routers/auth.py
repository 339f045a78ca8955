"""
认证路由
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from gouraan.database import get_db
from gouraan.models.entities import User
from gouraan.models.schemas import (
    RegisterRequest, LoginRequest, RefreshRequest, ForgotPasswordRequest,
    ResetPasswordRequest, PasswordChange, VerifyEmailRequest,
    AuthResponse, TokenPair, MeResponse, UserResponse,
)
from gouraan.services.auth_service import AuthService
from gouraan.security.auth import get_current_user
from gouraan.security.permissions import get_user_permissions

router = APIRouter(prefix="/auth", tags=["认证"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    """注册"""
    user, tokens = AuthService(db).register(data)
    return {"user": user, **tokens}


@router.post("/login", response_model=AuthResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    """用户登录"""
    user, tokens = AuthService(db).login(data.email, data.password)
    return {"user": user, **tokens}


@router.post("/refresh", response_model=TokenPair)
def refresh(data: RefreshRequest, db: Session = Depends(get_db)):
    """刷新令牌"""
    return AuthService(db).refresh(data.refresh_token)


@router.post("/logout")
def logout(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """注销"""
    AuthService(db).logout(current_user)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=MeResponse)
def get_current_user_info(current_user: User = Depends(get_current_user)):
    """获取当前用户信息与有效权限"""
    data = UserResponse.model_validate(current_user).model_dump()
    return MeResponse(**data, permissions=sorted(get_user_permissions(current_user)))


@router.post("/forgot-password")
def forgot_password(data: ForgotPasswordRequest, db: Session = Depends(get_db)):
    """发送重置密码令牌；邮箱是否存在都返回相同响应"""
    AuthService(db).forgot_password(data.email.strip().lower())
    return {"message": "If the email exists, a password reset link has been sent"}


@router.post("/reset-password")
def reset_password(data: ResetPasswordRequest, db: Session = Depends(get_db)):
    """重置密码"""
    AuthService(db).reset_password(data.token, data.new_password)
    return {"message": "Password has been reset successfully"}


@router.post("/change-password")
def change_password(
    data: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """修改密码"""
    AuthService(db).change_password(current_user, data.current_password, data.new_password)
    return {"message": "密码修改成功"}


@router.post("/verify-email", response_model=UserResponse)
def verify_email(data: VerifyEmailRequest, db: Session = Depends(get_db)):
    """验证邮箱"""
    return AuthService(db).verify_email(data.token)
