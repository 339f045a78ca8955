"""
运营分析服务 - 仪表盘统计
"""
from datetime import datetime, date, time
from typing import Any, Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from gouraan.models.entities import (
    Booking, BookingStatus, Payment, PaymentStatus, User, Room, Hotel,
    SupportTicket, SupportTicketStatus,
)

CLOSED_TICKET_STATUSES = [SupportTicketStatus.RESOLVED, SupportTicketStatus.CLOSED]


def _range_filter(query, column, date_from: Optional[date], date_to: Optional[date]):
    if date_from:
        query = query.filter(column >= datetime.combine(date_from, time.min))
    if date_to:
        query = query.filter(column <= datetime.combine(date_to, time.max))
    return query


class AnalyticsService:
    """报表统计"""

    def __init__(self, db: Session):
        self.db = db

    def overview(self, date_from: Optional[date] = None, date_to: Optional[date] = None) -> Dict[str, Any]:
        bookings = _range_filter(self.db.query(Booking), Booking.created_at, date_from, date_to)

        by_status = {s.value: 0 for s in BookingStatus}
        status_rows = bookings.with_entities(Booking.status, func.count(Booking.id)) \
            .group_by(Booking.status).all()
        for status, count in status_rows:
            by_status[status.value] = count
        total = sum(by_status.values())

        converted = by_status[BookingStatus.CONFIRMED.value] + by_status[BookingStatus.COMPLETED.value]
        conversion_rate = round(converted / total * 100, 2) if total else 0

        revenue = bookings.filter(Booking.payment_status == PaymentStatus.PAID) \
            .with_entities(func.coalesce(func.sum(Booking.total_amount), 0)).scalar()

        users = _range_filter(self.db.query(User), User.created_at, date_from, date_to).count()
        open_tickets = self.db.query(SupportTicket).filter(
            SupportTicket.status.notin_(CLOSED_TICKET_STATUSES)
        ).count()

        return {
            "users": users,
            "bookings": {"total": total, "by_status": by_status},
            "revenue": float(revenue or 0),
            "conversion_rate": conversion_rate,
            "open_tickets": open_tickets,
            "date_range": {
                "from": date_from.isoformat() if date_from else None,
                "to": date_to.isoformat() if date_to else None,
            },
        }

    def bookings_by_type(self, date_from: Optional[date] = None,
                         date_to: Optional[date] = None) -> Dict[str, int]:
        query = self.db.query(Booking.booking_type, func.count(Booking.id))
        query = _range_filter(query, Booking.created_at, date_from, date_to)
        return {t.value: c for t, c in query.group_by(Booking.booking_type).all()}

    def revenue_by_day(self, date_from: Optional[date] = None,
                       date_to: Optional[date] = None) -> List[Dict[str, Any]]:
        """按支付日期汇总已支付金额"""
        day = func.date(Payment.paid_at)
        query = self.db.query(day, func.sum(Payment.amount), func.count(Payment.id)).filter(
            Payment.status == PaymentStatus.PAID,
            Payment.paid_at.isnot(None),
        )
        query = _range_filter(query, Payment.paid_at, date_from, date_to)
        rows = query.group_by(day).order_by(day).all()
        return [
            {"date": str(d), "revenue": float(amount or 0), "payments": count}
            for d, amount, count in rows
        ]

    def popular_hotels(self, limit: int = 5) -> List[Dict[str, Any]]:
        rows = self.db.query(Hotel.id, Hotel.name, Hotel.city, func.count(Booking.id).label("bookings")) \
            .join(Room, Room.hotel_id == Hotel.id) \
            .join(Booking, Booking.room_id == Room.id) \
            .filter(Booking.status != BookingStatus.CANCELLED) \
            .group_by(Hotel.id, Hotel.name, Hotel.city) \
            .order_by(func.count(Booking.id).desc()) \
            .limit(limit).all()
        return [
            {"hotel_id": hid, "name": name, "city": city, "bookings": count}
            for hid, name, city, count in rows
        ]

    def recent_activity(self, limit: int = 10) -> List[Dict[str, Any]]:
        """最近的预订、支付、工单，按时间合并"""
        activity = []
        for b in self.db.query(Booking).order_by(Booking.created_at.desc()).limit(limit):
            activity.append({
                "type": "booking", "id": b.id, "reference": b.reference,
                "status": b.status.value, "user_id": b.user_id, "created_at": b.created_at,
            })
        for p in self.db.query(Payment).order_by(Payment.created_at.desc()).limit(limit):
            activity.append({
                "type": "payment", "id": p.id, "amount": float(p.amount),
                "status": p.status.value, "user_id": p.user_id, "created_at": p.created_at,
            })
        for t in self.db.query(SupportTicket).order_by(SupportTicket.created_at.desc()).limit(limit):
            activity.append({
                "type": "ticket", "id": t.id, "title": t.title,
                "status": t.status.value, "user_id": t.user_id, "created_at": t.created_at,
            })
        activity.sort(key=lambda a: a["created_at"], reverse=True)
        return activity[:limit]
