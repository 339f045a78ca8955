"""
预订服务测试：可订性、名额、确认发放积分、过期清理
"""
import re
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from gouraan_core.engine import event_bus
from gouraan.exceptions import BusinessRuleError, ConflictError
from gouraan.models.entities import (
    BookingStatus, BookingType, LoyaltyTransaction, PaymentStatus, RoomStatus, UserRole,
)
from gouraan.models.events import EventType
from gouraan.models.schemas import BookingCreate
from gouraan.services.booking_service import (
    BookingService, generate_booking_reference, EXPIRED_NOTE,
)


@pytest.fixture
def service(db_session):
    return BookingService(db_session)


def hotel_booking(room, stay_dates, amount="1350.00"):
    check_in, check_out = stay_dates
    return BookingCreate(
        booking_type=BookingType.HOTEL,
        total_amount=Decimal(amount),
        room_id=room.id,
        check_in_date=check_in,
        check_out_date=check_out,
    )


def test_reference_format():
    reference = generate_booking_reference(BookingType.HAJJ)
    assert re.fullmatch(r"HJ\d{6}[A-Z0-9]{4}", reference)


class TestCreate:

    def test_create_hotel_booking(self, service, customer, sample_room, stay_dates):
        booking = service.create_booking(customer, hotel_booking(sample_room, stay_dates))

        assert booking.status == BookingStatus.PENDING
        assert booking.payment_status == PaymentStatus.PENDING
        assert booking.reference.startswith("HT")
        assert booking.expires_at > datetime.utcnow()
        assert event_bus.get_history(EventType.BOOKING_CREATED)[0].data["booking_id"] == booking.id

    def test_overlapping_dates_conflict(self, service, customer, other_customer, sample_room, stay_dates):
        service.create_booking(customer, hotel_booking(sample_room, stay_dates))
        check_in, check_out = stay_dates
        overlapping = (check_in + timedelta(days=1), check_out + timedelta(days=1))

        with pytest.raises(ConflictError):
            service.create_booking(other_customer, hotel_booking(sample_room, overlapping))

    def test_back_to_back_stays_allowed(self, service, customer, other_customer, sample_room, stay_dates):
        service.create_booking(customer, hotel_booking(sample_room, stay_dates))
        check_out = stay_dates[1]
        booking = service.create_booking(
            other_customer, hotel_booking(sample_room, (check_out, check_out + timedelta(days=2)))
        )
        assert booking.id is not None

    def test_cancelled_booking_frees_room(self, service, customer, other_customer, sample_room, stay_dates):
        first = service.create_booking(customer, hotel_booking(sample_room, stay_dates))
        service.cancel_booking(first)
        assert service.create_booking(other_customer, hotel_booking(sample_room, stay_dates)).id

    def test_room_in_maintenance(self, service, customer, sample_room, stay_dates, db_session):
        sample_room.status = RoomStatus.MAINTENANCE
        db_session.commit()
        with pytest.raises(ConflictError):
            service.create_booking(customer, hotel_booking(sample_room, stay_dates))

    def test_hotel_booking_requires_dates(self, service, customer, sample_room):
        data = BookingCreate(booking_type=BookingType.HOTEL, total_amount=Decimal("100"),
                             room_id=sample_room.id)
        with pytest.raises(BusinessRuleError):
            service.create_booking(customer, data)

    def test_inactive_package(self, service, customer, sample_package, db_session):
        sample_package.is_active = False
        db_session.commit()
        data = BookingCreate(booking_type=BookingType.UMRAH, total_amount=Decimal("5200"),
                             package_id=sample_package.id)
        with pytest.raises(BusinessRuleError):
            service.create_booking(customer, data)

    def test_package_slots(self, service, create_user, sample_package):
        data = BookingCreate(booking_type=BookingType.UMRAH, total_amount=Decimal("5200"),
                             package_id=sample_package.id)
        first = service.create_booking(create_user(), data)
        service.create_booking(create_user(), data)
        assert sample_package.available_slots == 0

        with pytest.raises(BusinessRuleError):
            service.create_booking(create_user(), data)

        service.cancel_booking(first)
        assert sample_package.available_slots == 1


class TestLifecycle:

    @pytest.fixture
    def booking(self, service, customer, sample_room, stay_dates):
        return service.create_booking(customer, hotel_booking(sample_room, stay_dates))

    def test_confirm_requires_payment(self, service, booking):
        with pytest.raises(BusinessRuleError):
            service.confirm_booking(booking)

    def test_confirm_awards_loyalty_points(self, service, booking, customer, db_session):
        booking.payment_status = PaymentStatus.PAID
        db_session.commit()

        service.confirm_booking(booking)

        assert booking.status == BookingStatus.CONFIRMED
        assert booking.confirmed_at is not None
        db_session.refresh(customer)
        assert customer.loyalty_points == 1350
        tx = db_session.query(LoyaltyTransaction).filter_by(booking_id=booking.id).one()
        assert tx.points == 1350
        assert event_bus.get_history(EventType.BOOKING_CONFIRMED)[0].data["points"] == 1350

    def test_complete_only_confirmed(self, service, booking):
        with pytest.raises(BusinessRuleError):
            service.complete_booking(booking)

    def test_cancel_twice(self, service, booking):
        service.cancel_booking(booking, "Change of plans")
        assert booking.cancellation_reason == "Change of plans"
        with pytest.raises(BusinessRuleError):
            service.cancel_booking(booking)

    def test_cleanup_expired(self, service, booking, db_session):
        booking.expires_at = datetime.utcnow() - timedelta(minutes=1)
        db_session.commit()

        assert service.cleanup_expired() == 1
        assert booking.status == BookingStatus.CANCELLED
        assert booking.notes == EXPIRED_NOTE
        assert service.cleanup_expired() == 0

    def test_stats(self, service, booking, customer, create_user, sample_package):
        other = create_user(UserRole.CUSTOMER)
        service.create_booking(other, BookingCreate(
            booking_type=BookingType.UMRAH, total_amount=Decimal("5200"), package_id=sample_package.id
        ))
        assert service.get_stats()["total"] == 2
        own = service.get_stats(customer)
        assert own["total"] == 1
        assert own["by_status"]["pending"] == 1
        assert own["revenue"] == 0
