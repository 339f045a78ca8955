"""
通知渠道抽象层 - 仅定义接口，应用层实现具体渠道
"""
from gouraan_core.notification.channel import (
    ChannelMessage, DeliveryResult, INotificationChannel, NotificationChannelRegistry,
)

__all__ = ["ChannelMessage", "DeliveryResult", "INotificationChannel", "NotificationChannelRegistry"]
