"""
预订路由
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from gouraan.database import get_db
from gouraan.models.entities import User, BookingType, BookingStatus, PaymentStatus
from gouraan.models.schemas import (
    BookingCreate, BookingUpdate, BookingCancel, BookingResponse, Paginated,
)
from gouraan.services.booking_service import BookingService
from gouraan.security.auth import get_current_user, require_permission, require_admin
from gouraan.security.permissions import P, can_manage_all_bookings

router = APIRouter(prefix="/bookings", tags=["预订"])


async def require_booking_manager(current_user: User = Depends(get_current_user)) -> User:
    """可管理所有预订的员工"""
    if not can_manage_all_bookings(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"缺少权限: {P.MANAGE_BOOKINGS}"
        )
    return current_user


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """创建预订（待支付，超时自动取消）"""
    return BookingService(db).create_booking(current_user, data)


@router.get("", response_model=Paginated[BookingResponse])
def list_my_bookings(
    booking_type: Optional[BookingType] = None,
    status: Optional[BookingStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """我的预订"""
    return BookingService(db).list_user_bookings(
        current_user, page, limit,
        booking_type=booking_type, status=status, payment_status=payment_status,
        date_from=date_from, date_to=date_to,
    ).to_response(BookingResponse)


@router.get("/stats")
def my_booking_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return BookingService(db).get_stats(current_user)


@router.get("/admin/all", response_model=Paginated[BookingResponse])
def list_all_bookings(
    user_id: Optional[int] = None,
    search: Optional[str] = None,
    booking_type: Optional[BookingType] = None,
    status: Optional[BookingStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(require_booking_manager),
    db: Session = Depends(get_db)
):
    """后台预订列表"""
    return BookingService(db).list_all_bookings(
        user_id, search, page, limit,
        booking_type=booking_type, status=status, payment_status=payment_status,
        date_from=date_from, date_to=date_to,
    ).to_response(BookingResponse)


@router.get("/admin/stats")
def global_booking_stats(
    current_user: User = Depends(require_booking_manager),
    db: Session = Depends(get_db)
):
    return BookingService(db).get_stats()


@router.post("/admin/cleanup-expired")
def cleanup_expired_bookings(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """取消超时未支付的预订"""
    count = BookingService(db).cleanup_expired()
    return {"cancelled": count}


@router.get("/reference/{reference}", response_model=BookingResponse)
def get_booking_by_reference(
    reference: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return BookingService(db).get_by_reference(reference, current_user)


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return BookingService(db).get_booking(booking_id, current_user)


@router.put("/{booking_id}", response_model=BookingResponse)
def update_booking(
    booking_id: int,
    data: BookingUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = BookingService(db)
    booking = service.get_booking(booking_id, current_user)
    return service.update_booking(booking, data)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
def confirm_booking(
    booking_id: int,
    current_user: User = Depends(require_permission(P.MANUAL_BOOKING_CONFIRMATION)),
    db: Session = Depends(get_db)
):
    """人工确认已支付的预订"""
    service = BookingService(db)
    return service.confirm_booking(service.get_booking(booking_id))


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: int,
    data: Optional[BookingCancel] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """取消预订"""
    service = BookingService(db)
    booking = service.get_booking(booking_id, current_user)
    return service.cancel_booking(booking, data.reason if data else None)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
def complete_booking(
    booking_id: int,
    current_user: User = Depends(require_booking_manager),
    db: Session = Depends(get_db)
):
    service = BookingService(db)
    return service.complete_booking(service.get_booking(booking_id))
