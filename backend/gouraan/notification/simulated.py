"""
模拟通知渠道 - 短信 / 推送 / WhatsApp（以及未启用 SMTP 时的邮件）

不调用外部服务：记录日志并放入 outbox，便于调试与测试断言。
"""
import logging
from collections import deque
from datetime import datetime
from typing import Dict, List

from gouraan_core.notification.channel import ChannelMessage, INotificationChannel

logger = logging.getLogger(__name__)

# 通知类型 → WhatsApp 模板名
WHATSAPP_TEMPLATES = {
    "booking_confirmation": "booking_confirmation",
    "booking_cancelled": "booking_cancellation",
    "payment_success": "payment_confirmation",
    "payment_failed": "payment_failed",
    "flight_reminder": "flight_reminder",
}


def get_whatsapp_template(notification_type: str) -> str:
    return WHATSAPP_TEMPLATES.get(notification_type, "general_notification")


class SimulatedChannel(INotificationChannel):
    """模拟渠道"""

    def __init__(self, channel_type: str, outbox_size: int = 200):
        self.channel_type = channel_type
        self.outbox: deque = deque(maxlen=outbox_size)

    def send(self, recipient: str, message: ChannelMessage) -> bool:
        self.outbox.append({
            "recipient": recipient,
            "subject": message.subject,
            "content": message.content,
            "extra": message.extra,
            "sent_at": datetime.utcnow(),
        })
        logger.info(f"[{self.channel_type}] simulated delivery to {recipient}: {message.subject}")
        return True

    def messages_for(self, recipient: str) -> List[Dict]:
        return [m for m in self.outbox if m["recipient"] == recipient]

    def clear(self) -> None:
        self.outbox.clear()
