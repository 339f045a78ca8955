"""
通知渠道注册表单元测试
"""
import pytest

from gouraan_core.notification import ChannelMessage, DeliveryResult, INotificationChannel, NotificationChannelRegistry
from gouraan.notification import SimulatedChannel, register_notification_channels


class FlakyChannel(INotificationChannel):
    """对指定接收方失败或抛异常"""

    channel_type = "sms"

    def __init__(self, rejects=(), raises=()):
        self.rejects = set(rejects)
        self.raises = set(raises)

    def send(self, recipient, message):
        if recipient in self.raises:
            raise ConnectionError("gateway timeout")
        return recipient not in self.rejects


@pytest.fixture
def registry():
    registry = NotificationChannelRegistry()
    registry.clear()
    yield registry
    registry.clear()
    register_notification_channels()


MESSAGE = ChannelMessage("Flight reminder", "SV804 departs at 08:00", {"template": "flight_reminder"})


def test_singleton():
    assert NotificationChannelRegistry() is NotificationChannelRegistry()


def test_deliver_collects_recipients(registry):
    channel = SimulatedChannel("push")
    registry.register(channel)

    result = registry.deliver("push", ["token-1", "token-2"], MESSAGE)

    assert result.success
    assert result.delivered == ["token-1", "token-2"]
    assert result.to_dict() == {"success": True, "delivered": 2}
    assert channel.messages_for("token-2")[0]["extra"] == {"template": "flight_reminder"}


def test_partial_recipients_still_success(registry):
    registry.register(FlakyChannel(rejects={"+8801700000000"}, raises={"+966500000009"}))

    result = registry.deliver("sms", ["+8801700000000", "+966500000001", "+966500000009"], MESSAGE)

    assert result.delivered == ["+966500000001"]
    assert result.failed == ["+8801700000000", "+966500000009"]
    assert result.success


def test_all_recipients_fail(registry):
    registry.register(FlakyChannel(rejects={"+966500000001"}))

    result = registry.deliver("sms", ["+966500000001"], MESSAGE)

    assert not result.success
    assert result.to_dict() == {"success": False, "error": "sms delivery failed"}


def test_unregistered_channel(registry):
    result = registry.deliver("whatsapp", ["+966500000001"], MESSAGE)
    assert result.to_dict() == {"success": False, "error": "Channel whatsapp is not registered"}


def test_empty_recipients_skipped(registry):
    channel = SimulatedChannel("email")
    registry.register(channel)

    result = registry.deliver("email", ["", None], MESSAGE)

    assert result.error == "No email recipient"
    assert not channel.outbox


def test_register_replaces_same_type(registry):
    first, second = SimulatedChannel("email"), SimulatedChannel("email")
    registry.register(first)
    registry.register(second)

    assert registry.get_channel("email") is second
    assert registry.channel_types() == ["email"]


def test_result_defaults():
    assert DeliveryResult(channel="push").to_dict() == {"success": False, "error": "push delivery failed"}
