"""
房间服务 - 房间管理与可用性检查
"""
import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session

from gouraan.exceptions import NotFoundError, ConflictError, BusinessRuleError
from gouraan.models.entities import (
    Room, Hotel, Booking, RoomStatus, RoomType, BookingType, BookingStatus,
)
from gouraan.models.schemas import RoomCreate, RoomUpdate
from gouraan.repositories import BaseRepository, Page
from gouraan.services.hotel_service import json_list_contains

logger = logging.getLogger(__name__)


class RoomService:
    """房间服务"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BaseRepository(db, Room)

    def get_room(self, room_id: int) -> Room:
        room = self.repo.get_by_id(room_id)
        if not room:
            raise NotFoundError("房间不存在")
        return room

    def list_rooms(self, hotel_id: Optional[int] = None, room_type: Optional[RoomType] = None,
                   status: Optional[RoomStatus] = None, min_price: Optional[Decimal] = None,
                   max_price: Optional[Decimal] = None, min_adults: Optional[int] = None,
                   min_children: Optional[int] = None, amenities: Optional[List[str]] = None,
                   search: Optional[str] = None, page: int = 1, limit: int = 10) -> Page:
        """房间列表"""
        query = self.db.query(Room)
        if hotel_id:
            query = query.filter(Room.hotel_id == hotel_id)
        if room_type:
            query = query.filter(Room.room_type == room_type)
        if status:
            query = query.filter(Room.status == status)
        if min_price is not None:
            query = query.filter(Room.base_price >= min_price)
        if max_price is not None:
            query = query.filter(Room.base_price <= max_price)
        if min_adults:
            query = query.filter(Room.max_adults >= min_adults)
        if min_children:
            query = query.filter(Room.max_children >= min_children)
        for amenity in amenities or []:
            query = query.filter(json_list_contains(Room.amenities, amenity))
        if search:
            term = f"%{search}%"
            query = query.filter(or_(
                Room.room_number.ilike(term),
                Room.description.ilike(term),
            ))
        return self.repo.paginate(query, page, limit, order_by=[Room.hotel_id, Room.room_number])

    def create_room(self, data: RoomCreate) -> Room:
        hotel = self.db.query(Hotel).filter(Hotel.id == data.hotel_id).first()
        if not hotel:
            raise NotFoundError("酒店不存在")
        if self.repo.exists(hotel_id=data.hotel_id, room_number=data.room_number):
            raise ConflictError(f"房间号 {data.room_number} 已存在")

        room = self.repo.create(Room(**data.model_dump()))
        self.db.commit()
        self.db.refresh(room)
        logger.info(f"Room {room.room_number} created in hotel {hotel.id}")
        return room

    def update_room(self, room_id: int, data: RoomUpdate) -> Room:
        room = self.get_room(room_id)
        update_data = data.model_dump(exclude_unset=True)
        new_number = update_data.get("room_number")
        if new_number and new_number != room.room_number \
                and self.repo.exists(hotel_id=room.hotel_id, room_number=new_number):
            raise ConflictError(f"房间号 {new_number} 已存在")
        self.repo.update(room, update_data)
        self.db.commit()
        self.db.refresh(room)
        return room

    def update_status(self, room_id: int, status: RoomStatus) -> Room:
        room = self.get_room(room_id)
        old_status = room.status
        room.status = status
        self.db.commit()
        self.db.refresh(room)
        logger.info(f"Room {room.id} status {old_status.value} -> {status.value}")
        return room

    def delete_room(self, room_id: int) -> None:
        room = self.get_room(room_id)
        if self.db.query(Booking).filter(Booking.room_id == room_id).first():
            raise BusinessRuleError("房间存在预订记录，无法删除")
        self.repo.delete(room)
        self.db.commit()

    def find_overlapping_booking(self, room_id: int, check_in: date, check_out: date,
                                 exclude_booking_id: Optional[int] = None) -> Optional[Booking]:
        """查找与 [check_in, check_out) 重叠的未取消酒店预订"""
        query = self.db.query(Booking).filter(
            Booking.room_id == room_id,
            Booking.booking_type == BookingType.HOTEL,
            Booking.status != BookingStatus.CANCELLED,
            Booking.check_in_date < check_out,
            Booking.check_out_date > check_in,
        )
        if exclude_booking_id:
            query = query.filter(Booking.id != exclude_booking_id)
        return query.first()

    def check_availability(self, room_id: int, check_in: date, check_out: date) -> dict:
        """
        检查房间在日期区间内是否可订

        Returns:
            {"available": bool, "reason": str | None}
        """
        if check_out <= check_in:
            raise BusinessRuleError("离店日期必须晚于入住日期")

        room = self.get_room(room_id)
        if room.status != RoomStatus.AVAILABLE:
            return {"available": False, "reason": f"Room is currently {room.status.value}"}

        if self.find_overlapping_booking(room_id, check_in, check_out):
            return {"available": False, "reason": "Room is already booked for the selected dates"}

        return {"available": True, "reason": None}
