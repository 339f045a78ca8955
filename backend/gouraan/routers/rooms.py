"""
房间管理路由
"""
from datetime import date
from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from gouraan.database import get_db
from gouraan.models.entities import User, RoomType, RoomStatus
from gouraan.models.schemas import (
    RoomCreate, RoomUpdate, RoomResponse, RoomStatusUpdate, AvailabilityResponse, Paginated,
)
from gouraan.services.room_service import RoomService
from gouraan.security.auth import require_permission
from gouraan.security.permissions import P

router = APIRouter(prefix="/rooms", tags=["房间管理"])


@router.get("", response_model=Paginated[RoomResponse])
def list_rooms(
    hotel_id: Optional[int] = None,
    room_type: Optional[RoomType] = None,
    status: Optional[RoomStatus] = None,
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    min_adults: Optional[int] = Query(None, ge=1),
    min_children: Optional[int] = Query(None, ge=0),
    amenities: Optional[List[str]] = Query(None),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """房间列表"""
    return RoomService(db).list_rooms(
        hotel_id, room_type, status, min_price, max_price,
        min_adults, min_children, amenities, search, page, limit
    ).to_response(RoomResponse)


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(room_id: int, db: Session = Depends(get_db)):
    return RoomService(db).get_room(room_id)


@router.get("/{room_id}/availability", response_model=AvailabilityResponse)
def check_availability(
    room_id: int,
    check_in: date,
    check_out: date,
    db: Session = Depends(get_db)
):
    """检查房间在日期区间内是否可订"""
    result = RoomService(db).check_availability(room_id, check_in, check_out)
    return AvailabilityResponse(
        room_id=room_id, check_in_date=check_in, check_out_date=check_out, **result
    )


@router.post("", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
def create_room(
    data: RoomCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.MANAGE_HOTELS))
):
    """创建房间"""
    return RoomService(db).create_room(data)


@router.put("/{room_id}", response_model=RoomResponse)
def update_room(
    room_id: int,
    data: RoomUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.MANAGE_HOTELS))
):
    return RoomService(db).update_room(room_id, data)


@router.patch("/{room_id}/status", response_model=RoomResponse)
def update_room_status(
    room_id: int,
    data: RoomStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.MANAGE_HOTELS))
):
    """修改房间状态"""
    return RoomService(db).update_status(room_id, data.status)


@router.delete("/{room_id}")
def delete_room(
    room_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.MANAGE_HOTELS))
):
    RoomService(db).delete_room(room_id)
    return {"message": "房间已删除"}
