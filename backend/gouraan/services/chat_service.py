"""
聊天消息服务 - WebSocket 网关与 REST 接口共用
"""
import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from gouraan.exceptions import BusinessRuleError, NotFoundError
from gouraan.models.entities import ChatMessage, SupportTicket, User
from gouraan.services.support_service import SupportService

logger = logging.getLogger(__name__)


class ChatService:
    """聊天服务"""

    def __init__(self, db: Session):
        self.db = db
        self.support = SupportService(db)

    def get_ticket(self, ticket_id: int, user: User) -> SupportTicket:
        return self.support.get_ticket(ticket_id, user)

    def send_message(self, sender: User, content: str, ticket_id: Optional[int] = None,
                     recipient_id: Optional[int] = None) -> ChatMessage:
        content = (content or "").strip()
        if not content:
            raise BusinessRuleError("消息内容不能为空")
        if ticket_id is None and recipient_id is None:
            raise BusinessRuleError("需要指定 ticket_id 或 recipient_id")

        if ticket_id is not None:
            self.get_ticket(ticket_id, sender)
        if recipient_id is not None:
            recipient = self.db.query(User).filter(User.id == recipient_id).first()
            if not recipient:
                raise NotFoundError("用户不存在")

        message = ChatMessage(
            sender_id=sender.id,
            recipient_id=recipient_id,
            ticket_id=ticket_id,
            content=content,
        )
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)
        logger.debug(f"Chat message {message.id} from {sender.id}")
        return message

    def ticket_messages(self, ticket_id: int, user: User) -> List[ChatMessage]:
        """工单会话消息，同时把他人发送的消息标记为已读"""
        self.get_ticket(ticket_id, user)
        messages = self.db.query(ChatMessage).filter(
            ChatMessage.ticket_id == ticket_id
        ).order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc()).all()

        now = datetime.utcnow()
        changed = False
        for m in messages:
            if m.sender_id != user.id and not m.is_read:
                m.is_read = True
                m.read_at = now
                changed = True
        if changed:
            self.db.commit()
        return messages

    def conversation(self, user: User, other_user_id: int, limit: int = 50) -> List[ChatMessage]:
        """两个用户之间的私聊记录（按时间正序）"""
        messages = self.db.query(ChatMessage).filter(
            ChatMessage.ticket_id.is_(None),
            or_(
                and_(ChatMessage.sender_id == user.id, ChatMessage.recipient_id == other_user_id),
                and_(ChatMessage.sender_id == other_user_id, ChatMessage.recipient_id == user.id),
            ),
        ).order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc()).limit(limit).all()
        return list(reversed(messages))

    def unread_count(self, user_id: int) -> int:
        return self.db.query(ChatMessage).filter(
            ChatMessage.recipient_id == user_id,
            ChatMessage.is_read == False  # noqa: E712
        ).count()

    def mark_as_read(self, message_ids: List[int], user_id: int) -> int:
        """只标记发给当前用户的消息"""
        if not message_ids:
            return 0
        count = self.db.query(ChatMessage).filter(
            ChatMessage.id.in_(message_ids),
            ChatMessage.recipient_id == user_id,
            ChatMessage.is_read == False  # noqa: E712
        ).update({ChatMessage.is_read: True, ChatMessage.read_at: datetime.utcnow()},
                 synchronize_session=False)
        self.db.commit()
        return count
