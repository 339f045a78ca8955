"""
机票预订路由
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from gouraan.database import get_db
from gouraan.exceptions import NotFoundError
from gouraan.models.entities import User, FlightBooking, FlightBookingStatus
from gouraan.models.schemas import (
    FlightBookingCreate, FlightBookingUpdate, FlightBookingResponse, FlightCancel,
    TicketCreate, TicketResponse, Paginated,
)
from gouraan.services.flight_booking_service import FlightBookingService, to_response
from gouraan.security.auth import get_current_user, require_permission
from gouraan.security.permissions import P, user_has_permission, can_manage_all_bookings

router = APIRouter(prefix="/flight-bookings", tags=["机票预订"])


def _can_manage(user: User) -> bool:
    return user_has_permission(user, P.MANAGE_FLIGHTS) or can_manage_all_bookings(user)


def _check_access(booking: FlightBooking, user: User) -> FlightBooking:
    """非本人且无管理权限时视为不存在"""
    if booking.user_id != user.id and not _can_manage(user):
        raise NotFoundError("机票预订不存在")
    return booking


@router.post("", response_model=FlightBookingResponse, status_code=status.HTTP_201_CREATED)
def create_flight_booking(
    data: FlightBookingCreate,
    current_user: User = Depends(require_permission(P.BOOK_FLIGHT, P.MANAGE_FLIGHTS)),
    db: Session = Depends(get_db)
):
    """创建机票预订（航段与乘客一并提交）"""
    booking = FlightBookingService(db).create_booking(data, current_user.id)
    return to_response(booking)


@router.get("", response_model=Paginated[FlightBookingResponse])
def list_flight_bookings(
    search_term: Optional[str] = None,
    status: Optional[FlightBookingStatus] = None,
    include_cancelled: bool = False,
    departure_airport: Optional[str] = None,
    arrival_airport: Optional[str] = None,
    departure_date: Optional[date] = None,
    booking_date_from: Optional[date] = None,
    booking_date_to: Optional[date] = None,
    sort_by: str = Query("booking_date", pattern="^(booking_date|total_fare|created_at|status)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """机票预订列表；普通用户只看到自己的预订"""
    user_id = None if _can_manage(current_user) else current_user.id
    page_result = FlightBookingService(db).list_bookings(
        search_term, status, include_cancelled, departure_airport, arrival_airport,
        departure_date, booking_date_from, booking_date_to, sort_by, sort_order,
        user_id, page, limit,
    )
    return page_result.map(to_response).to_response()


@router.get("/report")
def flight_booking_report(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status: Optional[FlightBookingStatus] = None,
    current_user: User = Depends(require_permission(P.MANAGE_FLIGHTS, P.VIEW_REPORTS)),
    db: Session = Depends(get_db)
):
    """机票销售汇总"""
    return FlightBookingService(db).get_report(start_date, end_date, status)


@router.get("/reference/{reference}", response_model=FlightBookingResponse)
def get_by_reference(
    reference: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    booking = FlightBookingService(db).get_by_reference(reference)
    return to_response(_check_access(booking, current_user))


@router.get("/pnr/{pnr}", response_model=FlightBookingResponse)
def get_by_pnr(
    pnr: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    booking = FlightBookingService(db).get_by_pnr(pnr)
    return to_response(_check_access(booking, current_user))


@router.get("/{booking_id}", response_model=FlightBookingResponse)
def get_flight_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    booking = FlightBookingService(db).get_booking(booking_id)
    return to_response(_check_access(booking, current_user))


@router.put("/{booking_id}", response_model=FlightBookingResponse)
def update_flight_booking(
    booking_id: int,
    data: FlightBookingUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """更新机票预订（预订号与 PNR 不可修改）"""
    service = FlightBookingService(db)
    _check_access(service.get_booking(booking_id), current_user)
    return to_response(service.update_booking(booking_id, data))


@router.post("/{booking_id}/cancel", response_model=FlightBookingResponse)
def cancel_flight_booking(
    booking_id: int,
    data: Optional[FlightCancel] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = FlightBookingService(db)
    _check_access(service.get_booking(booking_id), current_user)
    reason = data.reason if data else FlightCancel().reason
    return to_response(service.cancel_booking(booking_id, reason))


@router.delete("/{booking_id}")
def delete_flight_booking(
    booking_id: int,
    current_user: User = Depends(require_permission(P.MANAGE_FLIGHTS)),
    db: Session = Depends(get_db)
):
    """删除机票预订（先删除票号）"""
    FlightBookingService(db).delete_booking(booking_id)
    return {"message": "机票预订已删除"}


@router.post("/{booking_id}/tickets", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
def generate_ticket(
    booking_id: int,
    data: TicketCreate,
    current_user: User = Depends(require_permission(P.MANAGE_FLIGHTS)),
    db: Session = Depends(get_db)
):
    """为乘客出票"""
    return FlightBookingService(db).generate_ticket(booking_id, data.passenger_id, data.ticket_number)
