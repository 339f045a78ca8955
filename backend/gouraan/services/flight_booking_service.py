"""
机票预订服务
航段、乘客一次性创建；响应映射计算往返、总飞行时长、经停数
"""
import logging
from datetime import datetime, date, timedelta
from decimal import Decimal
from typing import Optional, List
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from gouraan.exceptions import NotFoundError, ConflictError, BusinessRuleError
from gouraan.models.entities import (
    FlightBooking, FlightSegment, FlightPassenger, Ticket,
    FlightBookingStatus, FlightTicketStatus, BookingType,
)
from gouraan.models.schemas import (
    FlightBookingCreate, FlightBookingUpdate, FlightBookingResponse,
    FlightSegmentResponse, PassengerResponse, TicketResponse,
)
from gouraan.repositories import BaseRepository, Page
from gouraan.services.booking_service import generate_booking_reference

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "booking_date": FlightBooking.booking_date,
    "total_fare": FlightBooking.total_fare,
    "created_at": FlightBooking.created_at,
    "status": FlightBooking.status,
}

# 不可通过 update 修改的字段
IMMUTABLE_FIELDS = {"booking_reference", "pnr"}


def to_response(booking: FlightBooking) -> FlightBookingResponse:
    """ORM → 响应：拆分去程 / 回程航段并计算行程指标"""
    departure = sorted(
        (s for s in booking.segments if not s.is_return), key=lambda s: s.departure_time
    )
    returns = sorted(
        (s for s in booking.segments if s.is_return), key=lambda s: s.departure_time
    )

    total_travel_time = 0
    if departure:
        last = returns[-1] if returns else departure[-1]
        total_travel_time = round((last.arrival_time - departure[0].departure_time).total_seconds() / 60)

    return FlightBookingResponse(
        id=booking.id,
        booking_reference=booking.booking_reference,
        pnr=booking.pnr,
        user_id=booking.user_id,
        status=booking.status,
        booking_date=booking.booking_date,
        base_fare=booking.base_fare or Decimal("0"),
        taxes=booking.taxes or Decimal("0"),
        total_fare=booking.total_fare,
        currency=booking.currency,
        cabin_class=booking.cabin_class,
        contact_email=booking.contact_email,
        contact_phone=booking.contact_phone,
        documents=booking.documents or [],
        cancellation_reason=booking.cancellation_reason,
        cancelled_at=booking.cancelled_at,
        segments=[FlightSegmentResponse.model_validate(s) for s in departure],
        return_segments=[FlightSegmentResponse.model_validate(s) for s in returns],
        passengers=[PassengerResponse.model_validate(p) for p in booking.passengers],
        tickets=[TicketResponse.model_validate(t) for t in booking.tickets],
        is_round_trip=len(returns) > 0,
        total_travel_time=total_travel_time,
        number_of_stops=max(0, len(departure) - 1),
        is_direct=len(departure) == 1 and len(returns) <= 1,
    )


class FlightBookingService:
    """机票预订服务"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BaseRepository(db, FlightBooking)

    def _get(self, **filters) -> FlightBooking:
        booking = self.repo.find_one(**filters)
        if not booking:
            raise NotFoundError("机票预订不存在")
        return booking

    def get_booking(self, booking_id: int) -> FlightBooking:
        return self._get(id=booking_id)

    def get_by_reference(self, reference: str) -> FlightBooking:
        return self._get(booking_reference=reference)

    def get_by_pnr(self, pnr: str) -> FlightBooking:
        return self._get(pnr=pnr.upper())

    def create_booking(self, data: FlightBookingCreate, user_id: Optional[int] = None) -> FlightBooking:
        """创建机票预订（航段、乘客同一事务）"""
        if self.repo.exists(pnr=data.pnr):
            raise ConflictError(f"PNR {data.pnr} 已存在")

        reference = data.booking_reference or generate_booking_reference(BookingType.FLIGHT)
        if self.repo.exists(booking_reference=reference):
            raise ConflictError(f"预订号 {reference} 已存在")

        for seg in list(data.segments) + list(data.return_segments):
            if seg.arrival_time <= seg.departure_time:
                raise BusinessRuleError(f"航班 {seg.flight_number} 到达时间必须晚于出发时间")

        booking = FlightBooking(
            booking_reference=reference,
            pnr=data.pnr,
            user_id=user_id,
            status=FlightBookingStatus.PENDING,
            base_fare=data.base_fare,
            taxes=data.taxes,
            total_fare=data.total_fare,
            currency=data.currency,
            cabin_class=data.cabin_class,
            contact_email=data.contact_email,
            contact_phone=data.contact_phone,
            documents=[],
        )
        booking.segments = [
            FlightSegment(is_return=False, **s.model_dump()) for s in data.segments
        ] + [
            FlightSegment(is_return=True, **s.model_dump()) for s in data.return_segments
        ]
        booking.passengers = [FlightPassenger(**p.model_dump()) for p in data.passengers]

        try:
            self.repo.create(booking)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error(f"Error creating flight booking {data.pnr}", exc_info=True)
            raise
        self.db.refresh(booking)
        logger.info(f"Flight booking {booking.booking_reference} (PNR {booking.pnr}) created")
        return booking

    def list_bookings(self, search_term: Optional[str] = None,
                      status: Optional[FlightBookingStatus] = None,
                      include_cancelled: bool = False,
                      departure_airport: Optional[str] = None,
                      arrival_airport: Optional[str] = None,
                      departure_date: Optional[date] = None,
                      booking_date_from: Optional[date] = None,
                      booking_date_to: Optional[date] = None,
                      sort_by: str = "booking_date", sort_order: str = "desc",
                      user_id: Optional[int] = None,
                      page: int = 1, limit: int = 10) -> Page:
        """机票预订列表"""
        query = self.db.query(FlightBooking)

        if user_id:
            query = query.filter(FlightBooking.user_id == user_id)

        if search_term:
            term = f"%{search_term}%"
            passenger_match = self.db.query(FlightPassenger.flight_booking_id).filter(or_(
                FlightPassenger.first_name.ilike(term),
                FlightPassenger.last_name.ilike(term),
                FlightPassenger.passport_number.ilike(term),
            ))
            query = query.filter(or_(
                FlightBooking.booking_reference.ilike(term),
                FlightBooking.pnr.ilike(term),
                FlightBooking.contact_email.ilike(term),
                FlightBooking.contact_phone.ilike(term),
                FlightBooking.id.in_(passenger_match),
            ))

        if status:
            query = query.filter(FlightBooking.status == status)
        elif not include_cancelled:
            query = query.filter(FlightBooking.status != FlightBookingStatus.CANCELLED)

        # 航段条件作用于同一条去程航段
        if departure_airport or arrival_airport or departure_date:
            seg_query = self.db.query(FlightSegment.flight_booking_id).filter(
                FlightSegment.is_return == False  # noqa: E712
            )
            if departure_airport:
                seg_query = seg_query.filter(func.upper(FlightSegment.departure_airport) == departure_airport.upper())
            if arrival_airport:
                seg_query = seg_query.filter(func.upper(FlightSegment.arrival_airport) == arrival_airport.upper())
            if departure_date:
                start = datetime.combine(departure_date, datetime.min.time())
                seg_query = seg_query.filter(
                    FlightSegment.departure_time >= start,
                    FlightSegment.departure_time < start + timedelta(days=1),
                )
            query = query.filter(FlightBooking.id.in_(seg_query))

        if booking_date_from:
            query = query.filter(FlightBooking.booking_date >= datetime.combine(booking_date_from, datetime.min.time()))
        if booking_date_to:
            query = query.filter(FlightBooking.booking_date < datetime.combine(booking_date_to + timedelta(days=1), datetime.min.time()))

        column = SORTABLE_FIELDS.get(sort_by, FlightBooking.booking_date)
        order = column.asc() if sort_order.lower() == "asc" else column.desc()
        return self.repo.paginate(query, page, limit, order_by=[order, FlightBooking.id.desc()])

    def update_booking(self, booking_id: int, data: FlightBookingUpdate) -> FlightBooking:
        """更新：预订号与 PNR 不可修改"""
        booking = self.get_booking(booking_id)
        update_data = {
            k: v for k, v in data.model_dump(exclude_unset=True).items()
            if k not in IMMUTABLE_FIELDS
        }
        self.repo.update(booking, update_data)
        self.db.commit()
        self.db.refresh(booking)
        return booking

    def cancel_booking(self, booking_id: int, reason: str = "Cancelled by user") -> FlightBooking:
        booking = self.get_booking(booking_id)
        if booking.status == FlightBookingStatus.CANCELLED:
            raise BusinessRuleError("机票预订已取消")

        booking.status = FlightBookingStatus.CANCELLED
        booking.cancellation_reason = reason
        booking.cancelled_at = datetime.utcnow()
        for ticket in booking.tickets:
            ticket.status = FlightTicketStatus.CANCELLED
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"Flight booking {booking.booking_reference} cancelled: {reason}")
        return booking

    def delete_booking(self, booking_id: int) -> None:
        """硬删除：先删客票，航段与乘客级联删除"""
        booking = self.get_booking(booking_id)
        for ticket in list(booking.tickets):
            self.db.delete(ticket)
        self.db.flush()
        self.db.delete(booking)
        self.db.commit()

    def generate_ticket(self, booking_id: int, passenger_id: int, ticket_number: str) -> Ticket:
        """为乘客出票：乘客须属于该预订，每人一张"""
        booking = self.get_booking(booking_id)
        passenger = next((p for p in booking.passengers if p.id == passenger_id), None)
        if not passenger:
            raise NotFoundError(f"乘客 {passenger_id} 不属于预订 {booking_id}")

        if self.db.query(Ticket).filter(Ticket.passenger_id == passenger_id).first():
            raise ConflictError("该乘客已出票")
        if self.db.query(Ticket).filter(Ticket.ticket_number == ticket_number).first():
            raise ConflictError(f"票号 {ticket_number} 已存在")

        ticket = Ticket(
            flight_booking_id=booking.id,
            passenger_id=passenger_id,
            ticket_number=ticket_number,
            status=FlightTicketStatus.ISSUED,
        )
        self.db.add(ticket)
        if all(p.ticket is not None or p.id == passenger_id for p in booking.passengers):
            booking.status = FlightBookingStatus.TICKETED
        self.db.commit()
        self.db.refresh(ticket)
        return ticket

    def get_report(self, start_date: Optional[date] = None, end_date: Optional[date] = None,
                   status: Optional[FlightBookingStatus] = None) -> dict:
        """汇总报表：预订数、收入、乘客数"""
        query = self.db.query(FlightBooking)
        if start_date:
            query = query.filter(FlightBooking.booking_date >= datetime.combine(start_date, datetime.min.time()))
        if end_date:
            query = query.filter(FlightBooking.booking_date < datetime.combine(end_date + timedelta(days=1), datetime.min.time()))
        if status:
            query = query.filter(FlightBooking.status == status)
        bookings: List[FlightBooking] = query.all()

        total_revenue = sum((b.total_fare or Decimal("0")) for b in bookings)
        total_passengers = sum(len(b.passengers) for b in bookings)
        return {
            "total_bookings": len(bookings),
            "total_revenue": float(total_revenue),
            "total_passengers": total_passengers,
            "average_revenue_per_booking": float(total_revenue / len(bookings)) if bookings else 0,
        }
