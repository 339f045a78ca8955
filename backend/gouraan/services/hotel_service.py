"""
酒店服务
"""
import logging
from typing import List, Optional
from sqlalchemy import String, cast, func, or_
from sqlalchemy.orm import Session

from gouraan.exceptions import NotFoundError, ConflictError, BusinessRuleError
from gouraan.models.entities import Hotel, Room, Booking
from gouraan.models.schemas import HotelCreate, HotelUpdate
from gouraan.repositories import BaseRepository, Page

logger = logging.getLogger(__name__)


def json_list_contains(column, value: str):
    """JSON 数组列包含某个字符串元素"""
    return cast(column, String).like(f'%"{value}"%')


class HotelService:
    """酒店服务"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BaseRepository(db, Hotel)

    def get_hotel(self, hotel_id: int) -> Hotel:
        hotel = self.repo.get_by_id(hotel_id)
        if not hotel:
            raise NotFoundError("酒店不存在")
        return hotel

    def list_hotels(self, search: Optional[str] = None, city: Optional[str] = None,
                    country_code: Optional[str] = None, min_rating: Optional[int] = None,
                    max_rating: Optional[int] = None, amenities: Optional[List[str]] = None,
                    is_active: Optional[bool] = None, page: int = 1, limit: int = 10) -> Page:
        """酒店列表"""
        query = self.db.query(Hotel)
        if search:
            term = f"%{search}%"
            query = query.filter(or_(
                Hotel.name.ilike(term),
                Hotel.city.ilike(term),
                Hotel.description.ilike(term),
            ))
        if city:
            query = query.filter(Hotel.city.ilike(city))
        if country_code:
            query = query.filter(Hotel.country_code == country_code.upper())
        if min_rating is not None:
            query = query.filter(Hotel.star_rating >= min_rating)
        if max_rating is not None:
            query = query.filter(Hotel.star_rating <= max_rating)
        for amenity in amenities or []:
            query = query.filter(json_list_contains(Hotel.amenities, amenity))
        if is_active is not None:
            query = query.filter(Hotel.is_active == is_active)
        return self.repo.paginate(query, page, limit, order_by=Hotel.name.asc())

    def room_count(self, hotel_id: int) -> int:
        return self.db.query(func.count(Room.id)).filter(Room.hotel_id == hotel_id).scalar() or 0

    def create_hotel(self, data: HotelCreate) -> Hotel:
        if self.repo.exists(name=data.name):
            raise ConflictError(f"酒店 {data.name} 已存在")
        hotel = self.repo.create(Hotel(**data.model_dump()))
        self.db.commit()
        self.db.refresh(hotel)
        logger.info(f"Hotel created: {hotel.name}")
        return hotel

    def update_hotel(self, hotel_id: int, data: HotelUpdate) -> Hotel:
        hotel = self.get_hotel(hotel_id)
        update_data = data.model_dump(exclude_unset=True)
        new_name = update_data.get("name")
        if new_name and new_name != hotel.name and self.repo.exists(name=new_name):
            raise ConflictError(f"酒店 {new_name} 已存在")
        self.repo.update(hotel, update_data)
        self.db.commit()
        self.db.refresh(hotel)
        return hotel

    def toggle_active(self, hotel_id: int) -> Hotel:
        hotel = self.get_hotel(hotel_id)
        hotel.is_active = not hotel.is_active
        self.db.commit()
        self.db.refresh(hotel)
        return hotel

    def delete_hotel(self, hotel_id: int) -> None:
        """删除酒店：有房间或预订时拒绝"""
        hotel = self.get_hotel(hotel_id)
        if self.room_count(hotel_id) > 0:
            raise BusinessRuleError("酒店下仍有房间，无法删除")
        has_bookings = self.db.query(Booking).join(Room, Booking.room_id == Room.id).filter(
            Room.hotel_id == hotel_id
        ).first()
        if has_bookings:
            raise BusinessRuleError("酒店存在预订记录，无法删除")
        self.repo.delete(hotel)
        self.db.commit()
