"""
航班路由 - 搜索、维护与锁座
"""
from datetime import date
from decimal import Decimal
from typing import List, Literal, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from gouraan.database import get_db
from gouraan.models.entities import User, CabinClass
from gouraan.models.schemas import (
    FlightCreate, FlightUpdate, FlightResponse, FlightSeatResponse, Paginated,
)
from gouraan.services.flight_service import FlightService
from gouraan.security.auth import get_current_user, require_permission
from gouraan.security.permissions import P

router = APIRouter(prefix="/flights", tags=["航班"])

FlightSort = Literal[
    "price_asc", "price_desc", "departure_asc", "departure_desc",
    "arrival_asc", "arrival_desc", "duration_asc", "duration_desc",
]


@router.get("", response_model=Paginated[FlightResponse])
def search_flights(
    origin: Optional[str] = Query(None, alias="from"),
    destination: Optional[str] = Query(None, alias="to"),
    departure_airport_id: Optional[int] = None,
    arrival_airport_id: Optional[int] = None,
    departure_date: Optional[date] = None,
    cabin_class: Optional[List[CabinClass]] = Query(None),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    airline_ids: Optional[List[int]] = Query(None),
    adults: int = Query(1, ge=1, le=9),
    children: int = Query(0, ge=0, le=9),
    max_duration: Optional[int] = Query(None, ge=1, description="最长飞行时间（分钟）"),
    sort_by: FlightSort = "price_asc",
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """航班搜索（公开）"""
    return FlightService(db).search_flights(
        origin, destination, departure_airport_id, arrival_airport_id, departure_date,
        cabin_class, min_price, max_price, airline_ids, adults, children, max_duration,
        sort_by, page, limit
    ).to_response(FlightResponse)


@router.get("/{flight_id}", response_model=FlightResponse)
def get_flight(flight_id: int, db: Session = Depends(get_db)):
    return FlightService(db).get_flight(flight_id)


@router.post("", response_model=FlightResponse, status_code=status.HTTP_201_CREATED)
def create_flight(
    data: FlightCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.MANAGE_FLIGHTS))
):
    """创建航班（同时生成座位图）"""
    return FlightService(db).create_flight(data)


@router.put("/{flight_id}", response_model=FlightResponse)
def update_flight(
    flight_id: int,
    data: FlightUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.MANAGE_FLIGHTS))
):
    return FlightService(db).update_flight(flight_id, data)


@router.delete("/{flight_id}")
def delete_flight(
    flight_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.MANAGE_FLIGHTS))
):
    FlightService(db).deactivate_flight(flight_id)
    return {"message": "航班已停用"}


@router.get("/{flight_id}/seats", response_model=List[FlightSeatResponse])
def available_seats(flight_id: int, db: Session = Depends(get_db)):
    """可选座位"""
    return FlightService(db).available_seats(flight_id)


@router.post("/{flight_id}/seats/{seat_id}/hold", response_model=FlightSeatResponse)
def hold_seat(
    flight_id: int,
    seat_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return FlightService(db).hold_seat(flight_id, seat_id, current_user)


@router.post("/{flight_id}/seats/{seat_id}/release", response_model=FlightSeatResponse)
def release_seat(
    flight_id: int,
    seat_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return FlightService(db).release_seat(flight_id, seat_id, current_user)
