"""
通知服务 - 多渠道通知分派

按用户偏好过滤渠道，逐个渠道投递并汇总为 sent / partial / failed / skipped。
渠道实现通过 gouraan_core 的 NotificationChannelRegistry 获取。
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from gouraan_core.notification.channel import ChannelMessage, DeliveryResult, NotificationChannelRegistry
from gouraan.exceptions import NotFoundError, BusinessRuleError
from gouraan.models.entities import (
    Notification, NotificationStatus, NotificationType, NotificationPriority,
    NotificationChannelType, User, UserStatus, UserDevice, Booking, BookingType,
)
from gouraan.notification import get_email_template, get_whatsapp_template
from gouraan.repositories import BaseRepository, Page

logger = logging.getLogger(__name__)

# 渠道 → 偏好字段
PREFERENCE_FIELDS = {
    NotificationChannelType.EMAIL.value: "email_notifications",
    NotificationChannelType.SMS.value: "sms_notifications",
    NotificationChannelType.PUSH.value: "push_notifications",
    NotificationChannelType.WHATSAPP.value: "whatsapp_notifications",
}

SEGMENTS = ("ALL_USERS", "PREMIUM_USERS", "HAJJ_CUSTOMERS", "INACTIVE_USERS")
PREMIUM_POINTS_THRESHOLD = 5000
INACTIVE_DAYS = 30


class DeliveryError(Exception):
    """单个渠道投递失败"""


class NotificationService:
    """通知服务"""

    def __init__(self, db: Session, registry: Optional[NotificationChannelRegistry] = None):
        self.db = db
        self.repo = BaseRepository(db, Notification)
        self.registry = registry or NotificationChannelRegistry()

    # ---------- 发送 ----------

    def send_notification(self, user_id: int, notification_type: NotificationType,
                          title: str, message: str, channels: List[str],
                          template_data: Optional[Dict[str, Any]] = None,
                          priority: NotificationPriority = NotificationPriority.MEDIUM,
                          scheduled_at: Optional[datetime] = None) -> Notification:
        """创建通知；未指定定时则立即处理"""
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("用户不存在")

        notification = Notification(
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            channels=[_channel_value(c) for c in channels],
            priority=priority,
            status=NotificationStatus.SCHEDULED if scheduled_at else NotificationStatus.PENDING,
            scheduled_at=scheduled_at,
            template_data=template_data,
        )
        self.repo.create(notification)
        self.db.commit()

        if not scheduled_at:
            self.process_notification(notification.id)
        self.db.refresh(notification)
        return notification

    def enabled_channels(self, user: User, channels: List[str]) -> List[str]:
        """按用户偏好过滤渠道；无偏好记录时全部保留"""
        prefs = user.preferences
        if prefs is None:
            return list(channels)
        return [c for c in channels if getattr(prefs, PREFERENCE_FIELDS.get(c, ""), False)]

    def process_notification(self, notification_id: int) -> Optional[Notification]:
        notification = self.repo.get_by_id(notification_id)
        if not notification:
            logger.warning(f"Notification not found: {notification_id}")
            return None

        user = notification.user
        channels = self.enabled_channels(user, notification.channels or [])
        if not channels:
            notification.status = NotificationStatus.SKIPPED
            notification.sent_at = datetime.utcnow()
            notification.failure_reason = "User preferences disabled all channels"
            notification.delivery_status = {"reason": "User preferences disabled all channels"}
            self.db.commit()
            return notification

        notification.status = NotificationStatus.SENDING
        self.db.commit()

        results: Dict[str, Dict[str, Any]] = {}
        for channel in channels:
            try:
                result = self._deliver(channel, notification, user)
            except DeliveryError as e:
                result = DeliveryResult(channel=channel, error=str(e))
            if not result.success:
                logger.error(f"Failed to send {channel} notification {notification.id}: {result.error}")
            results[channel] = result.to_dict()

        succeeded = [c for c, r in results.items() if r["success"]]
        if len(succeeded) == len(results):
            notification.status = NotificationStatus.SENT
        elif succeeded:
            notification.status = NotificationStatus.PARTIAL
        else:
            notification.status = NotificationStatus.FAILED
            notification.failure_reason = "; ".join(r["error"] for r in results.values())
        notification.sent_at = datetime.utcnow()
        notification.delivery_status = results
        self.db.commit()
        logger.info(f"Notification processed: {notification.id} - {notification.status.value}")
        return notification

    def _deliver(self, channel: str, notification: Notification, user: User) -> DeliveryResult:
        """解析接收方并交给注册表投递；无接收方时抛 DeliveryError"""
        ntype = notification.notification_type.value
        extra = {"template_data": notification.template_data or {}, "notification_id": notification.id}

        if channel == NotificationChannelType.EMAIL.value:
            if not user.email:
                raise DeliveryError("User has no email address")
            extra["template"] = get_email_template(ntype)
            recipients = [user.email]
        elif channel in (NotificationChannelType.SMS.value, NotificationChannelType.WHATSAPP.value):
            if not user.phone:
                raise DeliveryError("User has no phone number")
            if channel == NotificationChannelType.WHATSAPP.value:
                extra["template"] = get_whatsapp_template(ntype)
            recipients = [user.phone]
        elif channel == NotificationChannelType.PUSH.value:
            devices = self.db.query(UserDevice).filter(
                UserDevice.user_id == user.id,
                UserDevice.is_active == True  # noqa: E712
            ).all()
            if not devices:
                raise DeliveryError("User has no active devices")
            recipients = [d.push_token for d in devices]
        else:
            raise DeliveryError(f"Unsupported channel: {channel}")

        return self.registry.deliver(
            channel, recipients, ChannelMessage(notification.title, notification.message, extra)
        )

    def send_bulk(self, user_ids: List[int], notification_type: NotificationType, title: str,
                  message: str, channels: List[str],
                  priority: NotificationPriority = NotificationPriority.MEDIUM) -> Dict[str, int]:
        """批量发送，单个用户失败不影响其他用户"""
        sent, failed = 0, 0
        for user_id in user_ids:
            try:
                self.send_notification(user_id, notification_type, title, message, channels,
                                       priority=priority)
                sent += 1
            except NotFoundError:
                logger.warning(f"Bulk notification skipped missing user {user_id}")
                failed += 1
        return {"total": len(user_ids), "sent": sent, "failed": failed}

    def users_in_segment(self, segment: str) -> List[int]:
        """按分群返回活跃用户 id"""
        query = self.db.query(User.id).filter(User.status == UserStatus.ACTIVE)
        if segment == "ALL_USERS":
            pass
        elif segment == "PREMIUM_USERS":
            query = query.filter(User.loyalty_points >= PREMIUM_POINTS_THRESHOLD)
        elif segment == "HAJJ_CUSTOMERS":
            pilgrims = self.db.query(Booking.user_id).filter(
                Booking.booking_type.in_([BookingType.HAJJ, BookingType.UMRAH])
            )
            query = query.filter(User.id.in_(pilgrims))
        elif segment == "INACTIVE_USERS":
            cutoff = datetime.utcnow() - timedelta(days=INACTIVE_DAYS)
            query = query.filter(User.last_login_at < cutoff)
        else:
            raise BusinessRuleError(f"未知用户分群: {segment}")
        return [row[0] for row in query.all()]

    def send_segmented(self, segment: str, notification_type: NotificationType, title: str,
                       message: str, channels: List[str],
                       priority: NotificationPriority = NotificationPriority.MEDIUM) -> Dict[str, int]:
        user_ids = self.users_in_segment(segment)
        result = self.send_bulk(user_ids, notification_type, title, message, channels, priority)
        result["segment"] = segment
        return result

    def process_due_scheduled(self, now: Optional[datetime] = None) -> int:
        """发送到期的定时通知"""
        now = now or datetime.utcnow()
        due = self.db.query(Notification.id).filter(
            Notification.status == NotificationStatus.SCHEDULED,
            Notification.scheduled_at <= now,
        ).all()
        for (notification_id,) in due:
            self.process_notification(notification_id)
        return len(due)

    # ---------- 查询与已读 ----------

    def list_user_notifications(self, user_id: int, unread_only: bool = False,
                                page: int = 1, limit: int = 20) -> Page:
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read == False)  # noqa: E712
        return self.repo.paginate(query, page, limit, order_by=Notification.created_at.desc())

    def unread_count(self, user_id: int) -> int:
        return self.db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.is_read == False  # noqa: E712
        ).count()

    def mark_as_read(self, notification_id: int, user_id: int) -> Notification:
        notification = self.db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        ).first()
        if not notification:
            raise NotFoundError("通知不存在")
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.utcnow()
            self.db.commit()
            self.db.refresh(notification)
        return notification

    def mark_all_as_read(self, user_id: int) -> int:
        count = self.db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.is_read == False  # noqa: E712
        ).update({Notification.is_read: True, Notification.read_at: datetime.utcnow()},
                 synchronize_session=False)
        self.db.commit()
        return count

    def get_stats(self, user_id: Optional[int] = None) -> Dict[str, Any]:
        base = self.db.query(Notification)
        if user_id:
            base = base.filter(Notification.user_id == user_id)

        total = base.count()
        unread = base.filter(Notification.is_read == False).count()  # noqa: E712
        sent = base.filter(Notification.status == NotificationStatus.SENT).count()
        failed = base.filter(Notification.status == NotificationStatus.FAILED).count()

        type_query = self.db.query(Notification.notification_type, func.count(Notification.id))
        if user_id:
            type_query = type_query.filter(Notification.user_id == user_id)
        by_type = {t.value: c for t, c in type_query.group_by(Notification.notification_type).all()}

        return {
            "total": total,
            "unread": unread,
            "sent": sent,
            "failed": failed,
            "success_rate": (sent / total) * 100 if total else 0,
            "by_type": by_type,
        }


def _channel_value(channel) -> str:
    return channel.value if isinstance(channel, NotificationChannelType) else str(channel)
