"""
通知服务测试：渠道过滤、投递状态汇总、分群、定时发送
"""
from datetime import datetime, timedelta

import pytest

from gouraan.exceptions import NotFoundError, BusinessRuleError
from gouraan.models.entities import (
    Booking, BookingType, NotificationStatus, NotificationType, UserDevice,
    UserPreferences, UserRole,
)
from gouraan.services.notification_service import NotificationService


@pytest.fixture
def service(db_session):
    return NotificationService(db_session)


def send(service, user, channels, **kwargs):
    return service.send_notification(
        user.id, NotificationType.SYSTEM_ALERT, "Maintenance", "Scheduled maintenance tonight",
        channels, **kwargs
    )


class TestDelivery:

    def test_all_channels_succeed(self, service, customer, outbox):
        notification = send(service, customer, ["email", "sms"])

        assert notification.status == NotificationStatus.SENT
        assert notification.sent_at is not None
        assert notification.delivery_status == {
            "email": {"success": True, "delivered": 1},
            "sms": {"success": True, "delivered": 1},
        }
        email = outbox("email").messages_for(customer.email)[-1]
        assert email["subject"] == "Maintenance"
        assert email["extra"]["template"] == "system-alert"
        assert outbox("sms").messages_for(customer.phone)

    def test_partial_when_one_channel_fails(self, service, customer):
        notification = send(service, customer, ["email", "push"])

        assert notification.status == NotificationStatus.PARTIAL
        assert notification.delivery_status["push"]["success"] is False
        assert "no active devices" in notification.delivery_status["push"]["error"]

    def test_failed_when_every_channel_fails(self, service, other_customer):
        notification = send(service, other_customer, ["sms"])

        assert notification.status == NotificationStatus.FAILED
        assert notification.failure_reason == "User has no phone number"

    def test_push_uses_active_devices(self, service, customer, db_session, outbox):
        db_session.add(UserDevice(user_id=customer.id, push_token="device-token-1"))
        db_session.add(UserDevice(user_id=customer.id, push_token="device-token-2", is_active=False))
        db_session.commit()

        notification = send(service, customer, ["push"])

        assert notification.status == NotificationStatus.SENT
        assert outbox("push").messages_for("device-token-1")
        assert not outbox("push").messages_for("device-token-2")

    def test_preferences_filter_channels(self, service, customer, db_session, outbox):
        customer.preferences = UserPreferences(email_notifications=True, sms_notifications=False)
        db_session.commit()

        notification = send(service, customer, ["email", "sms"])

        assert notification.status == NotificationStatus.SENT
        assert set(notification.delivery_status) == {"email"}
        assert not outbox("sms").messages_for(customer.phone)

    def test_skipped_when_preferences_disable_everything(self, service, customer, db_session):
        customer.preferences = UserPreferences(email_notifications=False)
        db_session.commit()

        notification = send(service, customer, ["email"])

        assert notification.status == NotificationStatus.SKIPPED
        assert notification.delivery_status == {"reason": "User preferences disabled all channels"}

    def test_whatsapp_template(self, service, customer, outbox):
        service.send_notification(
            customer.id, NotificationType.BOOKING_CONFIRMATION, "Confirmed", "Your booking is confirmed",
            ["whatsapp"],
        )
        message = outbox("whatsapp").messages_for(customer.phone)[-1]
        assert message["extra"]["template"] == "booking_confirmation"

    def test_missing_user(self, service):
        with pytest.raises(NotFoundError):
            service.send_notification(999, NotificationType.SYSTEM_ALERT, "t", "m", ["email"])


class TestScheduled:

    def test_scheduled_is_not_sent_immediately(self, service, customer):
        notification = send(service, customer, ["email"],
                            scheduled_at=datetime.utcnow() + timedelta(hours=1))
        assert notification.status == NotificationStatus.SCHEDULED
        assert notification.sent_at is None

    def test_process_due_scheduled(self, service, customer):
        notification = send(service, customer, ["email"],
                            scheduled_at=datetime.utcnow() + timedelta(hours=1))

        assert service.process_due_scheduled() == 0
        assert service.process_due_scheduled(now=datetime.utcnow() + timedelta(hours=2)) == 1
        service.db.refresh(notification)
        assert notification.status == NotificationStatus.SENT


class TestSegments:

    def test_premium_users(self, service, create_user):
        rich = create_user(loyalty_points=6000)
        create_user(loyalty_points=100)
        assert service.users_in_segment("PREMIUM_USERS") == [rich.id]

    def test_hajj_customers(self, service, customer, other_customer, db_session):
        db_session.add(Booking(reference="HJ000001AAAA", user_id=customer.id,
                               booking_type=BookingType.HAJJ, total_amount=15000))
        db_session.commit()
        assert service.users_in_segment("HAJJ_CUSTOMERS") == [customer.id]

    def test_inactive_users(self, service, create_user):
        stale = create_user(last_login_at=datetime.utcnow() - timedelta(days=45))
        create_user(last_login_at=datetime.utcnow())
        assert service.users_in_segment("INACTIVE_USERS") == [stale.id]

    def test_unknown_segment(self, service):
        with pytest.raises(BusinessRuleError):
            service.users_in_segment("EVERYONE")

    def test_send_segmented(self, service, create_user):
        create_user(UserRole.CUSTOMER)
        create_user(UserRole.TRAVEL_AGENT)
        result = service.send_segmented("ALL_USERS", NotificationType.PROMOTIONAL,
                                        "Ramadan offers", "Save 20%", ["email"])
        assert result == {"total": 2, "sent": 2, "failed": 0, "segment": "ALL_USERS"}

    def test_bulk_counts_missing_users(self, service, customer):
        result = service.send_bulk([customer.id, 4242], NotificationType.PROMOTIONAL,
                                   "Offer", "Body", ["email"])
        assert result == {"total": 2, "sent": 1, "failed": 1}


class TestReadState:

    def test_mark_read_and_stats(self, service, customer, other_customer):
        first = send(service, customer, ["email"])
        send(service, customer, ["sms"])
        send(service, other_customer, ["email"])

        assert service.unread_count(customer.id) == 2
        service.mark_as_read(first.id, customer.id)
        assert service.unread_count(customer.id) == 1

        stats = service.get_stats(customer.id)
        assert stats["total"] == 2
        assert stats["unread"] == 1
        assert stats["sent"] == 2
        assert stats["success_rate"] == 100
        assert stats["by_type"] == {"system_alert": 2}

    def test_cannot_read_someone_elses(self, service, customer, other_customer):
        notification = send(service, customer, ["email"])
        with pytest.raises(NotFoundError):
            service.mark_as_read(notification.id, other_customer.id)

    def test_mark_all_as_read(self, service, customer):
        send(service, customer, ["email"])
        send(service, customer, ["email"])
        assert service.mark_all_as_read(customer.id) == 2
        assert service.unread_count(customer.id) == 0
        assert service.list_user_notifications(customer.id, unread_only=True).total == 0
