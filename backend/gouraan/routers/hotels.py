"""
酒店管理路由
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from gouraan.database import get_db
from gouraan.models.entities import User
from gouraan.models.schemas import HotelCreate, HotelUpdate, HotelResponse, RoomResponse, Paginated
from gouraan.services.hotel_service import HotelService
from gouraan.services.room_service import RoomService
from gouraan.security.auth import require_permission
from gouraan.security.permissions import P

router = APIRouter(prefix="/hotels", tags=["酒店管理"])


@router.get("", response_model=Paginated[HotelResponse])
def list_hotels(
    search: Optional[str] = None,
    city: Optional[str] = None,
    country_code: Optional[str] = None,
    min_rating: Optional[int] = Query(None, ge=1, le=5),
    max_rating: Optional[int] = Query(None, ge=1, le=5),
    amenities: Optional[List[str]] = Query(None),
    is_active: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """酒店列表（公开）"""
    return HotelService(db).list_hotels(
        search, city, country_code, min_rating, max_rating, amenities, is_active, page, limit
    ).to_response(HotelResponse)


@router.get("/{hotel_id}", response_model=HotelResponse)
def get_hotel(hotel_id: int, db: Session = Depends(get_db)):
    return HotelService(db).get_hotel(hotel_id)


@router.get("/{hotel_id}/rooms", response_model=Paginated[RoomResponse])
def list_hotel_rooms(
    hotel_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """酒店下的房间"""
    HotelService(db).get_hotel(hotel_id)
    return RoomService(db).list_rooms(hotel_id=hotel_id, page=page, limit=limit).to_response(RoomResponse)


@router.post("", response_model=HotelResponse, status_code=status.HTTP_201_CREATED)
def create_hotel(
    data: HotelCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.MANAGE_HOTELS))
):
    """创建酒店"""
    return HotelService(db).create_hotel(data)


@router.put("/{hotel_id}", response_model=HotelResponse)
def update_hotel(
    hotel_id: int,
    data: HotelUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.MANAGE_HOTELS))
):
    return HotelService(db).update_hotel(hotel_id, data)


@router.patch("/{hotel_id}/toggle-active", response_model=HotelResponse)
def toggle_hotel_active(
    hotel_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.MANAGE_HOTELS))
):
    """启用 / 停用酒店"""
    return HotelService(db).toggle_active(hotel_id)


@router.delete("/{hotel_id}")
def delete_hotel(
    hotel_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.MANAGE_HOTELS))
):
    HotelService(db).delete_hotel(hotel_id)
    return {"message": "酒店已删除"}
