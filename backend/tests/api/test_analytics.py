"""
运营分析 API 测试
"""
from datetime import datetime
from decimal import Decimal

import pytest

from gouraan.models.entities import (
    Booking, BookingStatus, BookingType, Payment, PaymentGatewayName, PaymentStatus,
)

ENDPOINTS = [
    "/analytics/overview",
    "/analytics/bookings-by-type",
    "/analytics/revenue",
    "/analytics/popular-hotels",
    "/analytics/recent-activity",
]


@pytest.fixture
def activity(db_session, customer, sample_room, stay_dates):
    check_in, check_out = stay_dates
    hotel = Booking(
        reference="HT260101AAAA", user_id=customer.id, booking_type=BookingType.HOTEL,
        status=BookingStatus.CONFIRMED, payment_status=PaymentStatus.PAID,
        room_id=sample_room.id, check_in_date=check_in, check_out_date=check_out,
        total_amount=Decimal("1350.00"), currency="SAR",
    )
    flight = Booking(
        reference="FL260101BBBB", user_id=customer.id, booking_type=BookingType.FLIGHT,
        status=BookingStatus.PENDING, payment_status=PaymentStatus.PENDING,
        total_amount=Decimal("800.00"), currency="SAR",
    )
    db_session.add_all([hotel, flight])
    db_session.flush()
    db_session.add(Payment(
        booking_id=hotel.id, user_id=customer.id, amount=Decimal("1350.00"), currency="SAR",
        gateway=PaymentGatewayName.STRIPE, status=PaymentStatus.PAID, paid_at=datetime.utcnow(),
    ))
    db_session.commit()
    return hotel, flight


@pytest.mark.parametrize("path", ENDPOINTS)
def test_requires_view_reports(client, customer_headers, path):
    assert client.get(path, headers=customer_headers).status_code == 403


def test_overview(client, finance_headers, activity):
    body = client.get("/analytics/overview", headers=finance_headers).json()

    assert body["bookings"]["total"] == 2
    assert body["bookings"]["by_status"]["confirmed"] == 1
    assert body["revenue"] == 1350.0
    assert body["conversion_rate"] == 50.0
    assert body["date_range"] == {"from": None, "to": None}


def test_bookings_by_type(client, finance_headers, activity):
    body = client.get("/analytics/bookings-by-type", headers=finance_headers).json()
    assert body == {"hotel": 1, "flight": 1}


def test_revenue_and_popular_hotels(client, admin_headers, activity, sample_hotel):
    revenue = client.get("/analytics/revenue", headers=admin_headers).json()
    assert len(revenue) == 1
    assert revenue[0]["revenue"] == 1350.0
    assert revenue[0]["payments"] == 1

    hotels = client.get("/analytics/popular-hotels", headers=admin_headers).json()
    assert hotels == [{"hotel_id": sample_hotel.id, "name": "Makkah Towers", "city": "Makkah", "bookings": 1}]


def test_recent_activity(client, admin_headers, activity):
    body = client.get("/analytics/recent-activity", headers=admin_headers, params={"limit": 2}).json()
    assert len(body) == 2
    assert {item["type"] for item in body} <= {"booking", "payment", "ticket"}
