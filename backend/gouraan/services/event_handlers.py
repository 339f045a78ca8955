"""
事件处理器 - 订阅领域事件并发送通知

预订、支付、工单服务只发布事件，通知文本由翻译目录按用户语言生成。
"""
from typing import Callable, Dict, Any, List, Optional
import logging

from gouraan_core.engine import event_bus, Event
from gouraan.database import SessionLocal
from gouraan.i18n import translator
from gouraan.models.entities import (
    NotificationType, NotificationPriority, User, UserRole, UserStatus,
)
from gouraan.models.events import EventType

logger = logging.getLogger(__name__)

DEFAULT_CHANNELS = ["email", "push"]
SUPPORT_TEAM_ROLES = [UserRole.SUPPORT_STAFF, UserRole.ADMIN]


class EventHandlers:
    """
    事件处理器集合

    支持依赖注入以便于测试：
    - db_session_factory: 数据库会话工厂
    - notification_service_factory: 通知服务工厂
    """

    def __init__(
        self,
        db_session_factory: Callable = None,
        notification_service_factory: Callable = None
    ):
        self._db_session_factory = db_session_factory or SessionLocal
        self._notification_service_factory = notification_service_factory
        self._registered = False

    def set_session_factory(self, factory: Callable) -> None:
        self._db_session_factory = factory

    def _get_db(self):
        return self._db_session_factory()

    def _get_notification_service(self, db):
        if self._notification_service_factory:
            return self._notification_service_factory(db)
        from gouraan.services.notification_service import NotificationService
        return NotificationService(db)

    def _notify(self, user_ids: List[int], name: str, params: Dict[str, Any],
                notification_type: NotificationType, channels: Optional[List[str]] = None,
                priority: NotificationPriority = NotificationPriority.MEDIUM) -> None:
        """按每个用户的语言偏好生成文本并发送"""
        db = self._get_db()
        try:
            service = self._get_notification_service(db)
            for user_id in user_ids:
                user = db.query(User).filter(User.id == user_id).first()
                if not user:
                    logger.warning(f"Notification target missing: user {user_id}")
                    continue
                locale = translator.resolve_locale(
                    user.preferences.language if user.preferences else None
                )
                title, message = translator.notification_text(name, locale, params)
                service.send_notification(
                    user.id, notification_type, title, message,
                    channels or DEFAULT_CHANNELS,
                    template_data=params, priority=priority,
                )
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to send {name} notification: {e}", exc_info=True)
        finally:
            db.close()

    def _support_team(self) -> List[int]:
        db = self._get_db()
        try:
            rows = db.query(User.id).filter(
                User.role.in_(SUPPORT_TEAM_ROLES),
                User.status == UserStatus.ACTIVE,
            ).all()
            return [r[0] for r in rows]
        finally:
            db.close()

    # ---------- 预订 ----------

    def handle_booking_confirmed(self, event: Event) -> None:
        data = event.data
        self._notify(
            [data["user_id"]], "booking_confirmed",
            {"reference": data.get("reference"), "points": data.get("points", 0)},
            NotificationType.BOOKING_CONFIRMATION,
            channels=["email", "push", "whatsapp"],
            priority=NotificationPriority.HIGH,
        )

    def handle_booking_cancelled(self, event: Event) -> None:
        data = event.data
        self._notify(
            [data["user_id"]], "booking_cancelled",
            {"reference": data.get("reference"), "reason": data.get("reason") or ""},
            NotificationType.BOOKING_CANCELLED,
        )

    # ---------- 支付 ----------

    def handle_payment_received(self, event: Event) -> None:
        data = event.data
        amount = translator.format_currency(data.get("amount", 0), data.get("currency", ""))
        self._notify(
            [data["user_id"]], "payment_received",
            {"reference": data.get("reference"), "amount": amount},
            NotificationType.PAYMENT_SUCCESS,
        )

    def handle_payment_failed(self, event: Event) -> None:
        data = event.data
        self._notify(
            [data["user_id"]], "payment_failed",
            {"reference": data.get("reference"), "reason": data.get("reason") or ""},
            NotificationType.PAYMENT_FAILED,
            channels=["email", "sms", "push"],
            priority=NotificationPriority.HIGH,
        )

    # ---------- 工单 ----------

    def handle_ticket_created(self, event: Event) -> None:
        """新工单通知客服团队"""
        data = event.data
        team = [uid for uid in self._support_team() if uid != data.get("user_id")]
        if not team:
            logger.warning(f"No support staff to notify for ticket {data.get('ticket_id')}")
            return
        self._notify(
            team, "ticket_created",
            {"ticket_id": data.get("ticket_id"), "title": data.get("title")},
            NotificationType.SUPPORT_TICKET, channels=["email"],
        )

    def handle_ticket_replied(self, event: Event) -> None:
        data = event.data
        recipient_id = data.get("recipient_id")
        if not recipient_id:
            return
        self._notify(
            [recipient_id], "ticket_reply",
            {"ticket_id": data.get("ticket_id"), "title": data.get("title")},
            NotificationType.SUPPORT_TICKET,
        )

    def handle_ticket_closed(self, event: Event) -> None:
        data = event.data
        self._notify(
            [data["user_id"]], "ticket_closed",
            {"ticket_id": data.get("ticket_id"), "title": data.get("title")},
            NotificationType.SUPPORT_TICKET,
        )

    def _subscriptions(self):
        return [
            (EventType.BOOKING_CONFIRMED, self.handle_booking_confirmed),
            (EventType.BOOKING_CANCELLED, self.handle_booking_cancelled),
            (EventType.PAYMENT_RECEIVED, self.handle_payment_received),
            (EventType.PAYMENT_FAILED, self.handle_payment_failed),
            (EventType.TICKET_CREATED, self.handle_ticket_created),
            (EventType.TICKET_REPLIED, self.handle_ticket_replied),
            (EventType.TICKET_CLOSED, self.handle_ticket_closed),
        ]

    def register_handlers(self, event_bus_instance=None) -> None:
        """注册所有事件处理器"""
        if self._registered:
            return

        bus = event_bus_instance or event_bus
        for event_type, handler in self._subscriptions():
            bus.subscribe(event_type, handler)

        self._registered = True
        logger.info("Event handlers registered successfully")

    def unregister_handlers(self, event_bus_instance=None) -> None:
        """取消注册所有事件处理器（用于测试）"""
        bus = event_bus_instance or event_bus
        for event_type, handler in self._subscriptions():
            bus.unsubscribe(event_type, handler)

        self._registered = False
        logger.info("Event handlers unregistered")


# 全局事件处理器实例
event_handlers = EventHandlers()


def register_event_handlers():
    """注册所有事件处理器（应用启动时调用）"""
    event_handlers.register_handlers()
