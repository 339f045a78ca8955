"""
用户路由 - 个人中心与后台用户管理
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from gouraan.database import get_db
from gouraan.models.entities import User, UserRole, UserStatus
from gouraan.models.schemas import (
    UserResponse, UserProfileUpdate, PreferencesResponse, PreferencesUpdate,
    UserStatusUpdate, UserRoleUpdate, DeviceRegister, DeviceResponse,
    LoyaltyTransactionResponse, BookingResponse, LoginRequest, Paginated,
)
from gouraan.services.user_service import UserService
from gouraan.security.auth import get_current_user, require_permission
from gouraan.security.permissions import P

router = APIRouter(prefix="/users", tags=["用户"])


# ============== 个人中心 ==============

@router.get("/me", response_model=UserResponse)
def get_profile(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/me", response_model=UserResponse)
def update_profile(
    data: UserProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """更新个人资料"""
    return UserService(db).update_profile(current_user, data)


@router.get("/me/preferences", response_model=PreferencesResponse)
def get_preferences(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return UserService(db).get_preferences(current_user)


@router.put("/me/preferences", response_model=PreferencesResponse)
def update_preferences(
    data: PreferencesUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """更新通知与语言偏好"""
    return UserService(db).update_preferences(current_user, data)


@router.get("/me/bookings", response_model=Paginated[BookingResponse])
def booking_history(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return UserService(db).booking_history(current_user, page, limit).to_response(BookingResponse)


@router.get("/me/loyalty", response_model=Paginated[LoyaltyTransactionResponse])
def loyalty_transactions(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """积分流水"""
    return UserService(db).loyalty_transactions(current_user, page, limit) \
        .to_response(LoyaltyTransactionResponse)


@router.get("/me/stats")
def user_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return UserService(db).get_stats(current_user)


@router.post("/me/deactivate")
def deactivate_account(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """停用自己的账号"""
    UserService(db).deactivate(current_user)
    return {"message": "Account deactivated"}


@router.post("/reactivate", response_model=UserResponse)
def reactivate_account(data: LoginRequest, db: Session = Depends(get_db)):
    """重新启用账号（凭邮箱与密码）"""
    return UserService(db).reactivate_with_credentials(data.email, data.password)


@router.post("/me/devices", response_model=DeviceResponse, status_code=status.HTTP_201_CREATED)
def register_device(
    data: DeviceRegister,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """登记推送设备"""
    return UserService(db).register_device(current_user, data.push_token, data.platform)


@router.delete("/me/devices/{device_id}")
def remove_device(
    device_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    UserService(db).remove_device(current_user, device_id)
    return {"message": "Device removed"}


# ============== 后台管理 ==============

@router.get("", response_model=Paginated[UserResponse])
def list_users(
    role: Optional[UserRole] = None,
    status: Optional[UserStatus] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.MANAGE_USERS))
):
    """用户列表"""
    return UserService(db).list_users(role, status, search, page, limit).to_response(UserResponse)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.MANAGE_USERS))
):
    return UserService(db).get_user(user_id)


@router.put("/{user_id}/status", response_model=UserResponse)
def update_user_status(
    user_id: int,
    data: UserStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.MANAGE_USERS))
):
    """修改账号状态"""
    return UserService(db).update_status(user_id, data.status, current_user)


@router.put("/{user_id}/role", response_model=UserResponse)
def change_user_role(
    user_id: int,
    data: UserRoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.MANAGE_USERS))
):
    """修改角色"""
    return UserService(db).change_role(user_id, data.role, current_user)
