"""
通知渠道实现与注册
"""
from gouraan_core.notification.channel import NotificationChannelRegistry
from gouraan.config import settings
from gouraan.notification.email_channel import EmailChannel, get_email_template
from gouraan.notification.simulated import SimulatedChannel, get_whatsapp_template


def register_notification_channels(registry: NotificationChannelRegistry = None) -> NotificationChannelRegistry:
    """注册全部通知渠道：SMTP 启用时邮件走 SMTP，其余渠道为模拟实现"""
    registry = registry or NotificationChannelRegistry()
    if settings.SMTP_ENABLED:
        registry.register(EmailChannel(
            smtp_host=settings.SMTP_HOST,
            smtp_port=settings.SMTP_PORT,
            smtp_user=settings.SMTP_USER,
            smtp_password=settings.SMTP_PASSWORD,
            sender_email=settings.FROM_EMAIL,
            use_tls=settings.SMTP_USE_TLS,
        ))
    else:
        registry.register(SimulatedChannel("email"))
    for channel_type in ("sms", "push", "whatsapp"):
        registry.register(SimulatedChannel(channel_type))
    return registry


__all__ = [
    'EmailChannel', 'SimulatedChannel', 'register_notification_channels',
    'get_email_template', 'get_whatsapp_template',
]
