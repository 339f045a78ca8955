"""
事件处理器测试：事件 → 本地化通知
"""
from decimal import Decimal

import pytest

from gouraan_core.engine import Event, EventBus
from gouraan.models.entities import (
    BookingType, Notification, NotificationType, PaymentStatus, UserPreferences,
    UserRole, UserStatus,
)
from gouraan.models.events import EventType
from gouraan.models.schemas import BookingCreate, SupportTicketCreate
from gouraan.services.booking_service import BookingService
from gouraan.services.event_handlers import EventHandlers
from gouraan.services.support_service import SupportService


def notifications_for(db_session, user):
    return db_session.query(Notification).filter(Notification.user_id == user.id).all()


@pytest.fixture
def paid_booking(db_session, customer):
    booking = BookingService(db_session).create_booking(customer, BookingCreate(
        booking_type=BookingType.FLIGHT, total_amount=Decimal("800.00")
    ))
    booking.payment_status = PaymentStatus.PAID
    db_session.commit()
    return booking


def test_booking_confirmed_in_english(db_session, customer, paid_booking, outbox):
    BookingService(db_session).confirm_booking(paid_booking)

    notification, = notifications_for(db_session, customer)
    assert notification.notification_type == NotificationType.BOOKING_CONFIRMATION
    assert notification.title == "Booking confirmed"
    assert paid_booking.reference in notification.message
    assert "800 loyalty points" in notification.message
    assert outbox("whatsapp").messages_for(customer.phone)


def test_booking_confirmed_uses_user_language(db_session, customer, paid_booking):
    customer.preferences = UserPreferences(language="ar", whatsapp_notifications=True)
    db_session.commit()

    BookingService(db_session).confirm_booking(paid_booking)

    notification, = notifications_for(db_session, customer)
    assert notification.title == "تم تأكيد الحجز"


def test_unsupported_language_falls_back(db_session, customer, paid_booking):
    customer.preferences = UserPreferences(language="fr")
    db_session.commit()

    BookingService(db_session).cancel_booking(paid_booking, "Visa refused")

    notification, = notifications_for(db_session, customer)
    assert notification.notification_type == NotificationType.BOOKING_CANCELLED
    assert "Visa refused" in notification.message


def test_ticket_created_notifies_support_team(db_session, customer, support_user, admin, create_user):
    suspended = create_user(UserRole.SUPPORT_STAFF, status=UserStatus.SUSPENDED)

    SupportService(db_session).create_ticket(customer, SupportTicketCreate(
        title="Seat selection", description="Can I pick a window seat?"
    ))

    assert len(notifications_for(db_session, support_user)) == 1
    assert len(notifications_for(db_session, admin)) == 1
    assert notifications_for(db_session, suspended) == []
    assert notifications_for(db_session, customer) == []
    assert "Seat selection" in notifications_for(db_session, support_user)[0].message


class FakeNotificationService:

    def __init__(self):
        self.sent = []

    def send_notification(self, user_id, notification_type, title, message, channels, **kwargs):
        self.sent.append((user_id, notification_type, title, message, channels))


class TestInjectedFactories:

    @pytest.fixture
    def fake(self):
        return FakeNotificationService()

    @pytest.fixture
    def handlers(self, session_factory, fake):
        return EventHandlers(db_session_factory=session_factory,
                             notification_service_factory=lambda db: fake)

    def test_payment_failed_channels(self, handlers, fake, customer):
        handlers.handle_payment_failed(Event(
            event_type=EventType.PAYMENT_FAILED,
            data={"user_id": customer.id, "reference": "FL250101ABCD", "reason": "Card declined"},
            source="test",
        ))
        user_id, notification_type, title, message, channels = fake.sent[0]
        assert user_id == customer.id
        assert notification_type == NotificationType.PAYMENT_FAILED
        assert title == "Payment failed"
        assert message.endswith("Card declined")
        assert channels == ["email", "sms", "push"]

    def test_payment_received_formats_amount(self, handlers, fake, customer):
        handlers.handle_payment_received(Event(
            event_type=EventType.PAYMENT_RECEIVED,
            data={"user_id": customer.id, "reference": "HT250101ABCD",
                  "amount": "1350.00", "currency": "SAR"},
            source="test",
        ))
        assert "SAR 1,350.00" in fake.sent[0][3]

    def test_reply_without_recipient_is_ignored(self, handlers, fake):
        handlers.handle_ticket_replied(Event(
            event_type=EventType.TICKET_REPLIED,
            data={"ticket_id": 1, "recipient_id": None, "title": "x"},
            source="test",
        ))
        assert fake.sent == []

    def test_missing_user_is_skipped(self, handlers, fake):
        handlers.handle_ticket_closed(Event(
            event_type=EventType.TICKET_CLOSED,
            data={"user_id": 9999, "ticket_id": 1, "title": "x"},
            source="test",
        ))
        assert fake.sent == []

    def test_register_is_idempotent(self, handlers):
        bus = EventBus()
        handlers.register_handlers(bus)
        handlers.register_handlers(bus)
        assert bus.handler_count(EventType.TICKET_CLOSED) == 1

        handlers.unregister_handlers(bus)
        assert bus.handler_count(EventType.TICKET_CLOSED) == 0
