"""
通知渠道 - 渠道接口、投递结果与注册表

应用层实现 INotificationChannel（邮件、短信、推送、WhatsApp），
在 lifespan 中注册；业务代码只通过注册表的 deliver 投递。
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class ChannelMessage:
    """一条待投递的消息，同一条消息可发往多个接收方"""
    subject: str
    content: str
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DeliveryResult:
    """
    单个渠道的投递结果

    Attributes:
        channel: 渠道类型
        delivered: 投递成功的接收方
        failed: 投递失败的接收方
        error: 整体失败原因（渠道未注册、无接收方等）
    """
    channel: str
    delivered: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        """至少一个接收方投递成功"""
        return bool(self.delivered)

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "delivered": len(self.delivered)}
        return {"success": False, "error": self.error or f"{self.channel} delivery failed"}


class INotificationChannel(ABC):
    """通知渠道接口"""

    channel_type: str = ""

    @abstractmethod
    def send(self, recipient: str, message: ChannelMessage) -> bool:
        """
        向单个接收方发送

        recipient 的含义由渠道决定：邮箱、手机号或设备令牌。
        返回 False 表示投递失败；抛出的异常由注册表记为失败。
        """


class NotificationChannelRegistry:
    """通知渠道注册表 - 单例模式

    registry = NotificationChannelRegistry()
    registry.register(SimulatedChannel("sms"))
    result = registry.deliver("sms", ["+966500000001"], ChannelMessage("标题", "内容"))
    """

    _instance: Optional["NotificationChannelRegistry"] = None

    def __new__(cls) -> "NotificationChannelRegistry":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._channels: Dict[str, INotificationChannel] = {}
        return cls._instance

    def register(self, channel: INotificationChannel) -> None:
        """注册通知渠道（同类型覆盖）"""
        self._channels[channel.channel_type] = channel

    def get_channel(self, channel_type: str) -> Optional[INotificationChannel]:
        return self._channels.get(channel_type)

    def channel_types(self) -> List[str]:
        return sorted(self._channels)

    def deliver(self, channel_type: str, recipients: Iterable[str],
                message: ChannelMessage) -> DeliveryResult:
        """逐个接收方投递，单个接收方失败不影响其余接收方"""
        result = DeliveryResult(channel=channel_type)
        channel = self.get_channel(channel_type)
        if channel is None:
            result.error = f"Channel {channel_type} is not registered"
            return result

        recipients = [r for r in recipients if r]
        if not recipients:
            result.error = f"No {channel_type} recipient"
            return result

        for recipient in recipients:
            try:
                sent = channel.send(recipient, message)
            except Exception as e:
                logger.error(f"[{channel_type}] delivery to {recipient} raised: {e}", exc_info=True)
                sent = False
            (result.delivered if sent else result.failed).append(recipient)
        return result

    def clear(self) -> None:
        """清除所有渠道（用于测试）"""
        self._channels.clear()
