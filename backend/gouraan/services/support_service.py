"""
客服工单服务
"""
import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session

from gouraan_core.engine import event_bus, Event
from gouraan.exceptions import NotFoundError, BusinessRuleError, PermissionDeniedError
from gouraan.models.entities import (
    SupportTicket, SupportTicketMessage, SupportTicketStatus, Booking, User,
)
from gouraan.models.events import EventType
from gouraan.models.schemas import SupportTicketCreate, SupportMessageCreate
from gouraan.repositories import BaseRepository, Page
from gouraan.security.permissions import P, user_has_permission, is_staff

logger = logging.getLogger(__name__)


def can_manage_tickets(user: User) -> bool:
    return is_staff(user) and user_has_permission(user, P.MANAGE_TICKETS)


class SupportService:
    """工单服务"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BaseRepository(db, SupportTicket)

    def get_ticket(self, ticket_id: int, user: Optional[User] = None) -> SupportTicket:
        """工单所有者、被指派人或客服可见，其余返回 404"""
        ticket = self.repo.get_by_id(ticket_id)
        if not ticket or (user and not self.can_access(ticket, user)):
            raise NotFoundError("工单不存在")
        return ticket

    @staticmethod
    def can_access(ticket: SupportTicket, user: User) -> bool:
        return (
            ticket.user_id == user.id
            or ticket.assigned_to_id == user.id
            or can_manage_tickets(user)
        )

    def visible_messages(self, ticket: SupportTicket, user: User) -> List[SupportTicketMessage]:
        """客户看不到内部备注"""
        if can_manage_tickets(user):
            return list(ticket.messages)
        return [m for m in ticket.messages if not m.is_internal]

    def list_tickets(self, user: User, status: Optional[SupportTicketStatus] = None,
                     page: int = 1, limit: int = 10) -> Page:
        query = self.db.query(SupportTicket)
        if not can_manage_tickets(user):
            query = query.filter(or_(
                SupportTicket.user_id == user.id,
                SupportTicket.assigned_to_id == user.id,
            ))
        if status:
            query = query.filter(SupportTicket.status == status)
        return self.repo.paginate(query, page, limit, order_by=SupportTicket.created_at.desc())

    def create_ticket(self, user: User, data: SupportTicketCreate) -> SupportTicket:
        if data.booking_id is not None:
            booking = self.db.query(Booking).filter(
                Booking.id == data.booking_id,
                Booking.user_id == user.id,
            ).first()
            if not booking:
                raise NotFoundError("预订不存在")

        ticket = SupportTicket(
            user_id=user.id,
            booking_id=data.booking_id,
            title=data.title,
            description=data.description,
            priority=data.priority,
            category=data.category,
            status=SupportTicketStatus.OPEN,
            extra_data=data.metadata,
        )
        self.repo.create(ticket)
        self.db.commit()
        self.db.refresh(ticket)
        logger.info(f"Support ticket created: {ticket.id} by user {user.id}")

        event_bus.publish(Event(
            event_type=EventType.TICKET_CREATED,
            data={"ticket_id": ticket.id, "user_id": user.id, "title": ticket.title,
                  "priority": ticket.priority},
            source="support_service",
        ))
        return ticket

    def add_message(self, ticket_id: int, user: User, data: SupportMessageCreate) -> SupportTicketMessage:
        ticket = self.get_ticket(ticket_id, user)
        if ticket.status == SupportTicketStatus.CLOSED:
            raise BusinessRuleError("工单已关闭")

        staff_reply = can_manage_tickets(user) and ticket.user_id != user.id
        if data.is_internal and not staff_reply:
            raise PermissionDeniedError("只有客服可以添加内部备注")

        message = SupportTicketMessage(
            ticket_id=ticket.id,
            sender_id=user.id,
            content=data.content,
            is_internal=data.is_internal,
        )
        self.db.add(message)

        if not data.is_internal:
            ticket.status = (
                SupportTicketStatus.WAITING_CUSTOMER_RESPONSE if staff_reply
                else SupportTicketStatus.WAITING_SUPPORT_RESPONSE
            )
        self.db.commit()
        self.db.refresh(message)

        if not data.is_internal:
            recipient_id = ticket.user_id if staff_reply else ticket.assigned_to_id
            event_bus.publish(Event(
                event_type=EventType.TICKET_REPLIED,
                data={"ticket_id": ticket.id, "sender_id": user.id, "recipient_id": recipient_id,
                      "title": ticket.title, "from_staff": staff_reply},
                source="support_service",
            ))
        return message

    def assign_ticket(self, ticket_id: int, assignee_id: int) -> SupportTicket:
        ticket = self.get_ticket(ticket_id)
        assignee = self.db.query(User).filter(User.id == assignee_id).first()
        if not assignee:
            raise NotFoundError("用户不存在")
        if not can_manage_tickets(assignee):
            raise BusinessRuleError("只能指派给客服人员")

        ticket.assigned_to_id = assignee.id
        if ticket.status == SupportTicketStatus.OPEN:
            ticket.status = SupportTicketStatus.IN_PROGRESS
        self.db.commit()
        self.db.refresh(ticket)
        logger.info(f"Ticket {ticket.id} assigned to {assignee.id}")
        return ticket

    def update_status(self, ticket_id: int, status: SupportTicketStatus) -> SupportTicket:
        if status == SupportTicketStatus.CLOSED:
            return self.close_ticket(ticket_id)
        ticket = self.get_ticket(ticket_id)
        if ticket.status == SupportTicketStatus.CLOSED:
            raise BusinessRuleError("工单已关闭")
        ticket.status = status
        self.db.commit()
        self.db.refresh(ticket)
        return ticket

    def close_ticket(self, ticket_id: int, user: Optional[User] = None) -> SupportTicket:
        ticket = self.get_ticket(ticket_id, user)
        if ticket.status == SupportTicketStatus.CLOSED:
            raise BusinessRuleError("工单已关闭")

        ticket.status = SupportTicketStatus.CLOSED
        ticket.closed_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(ticket)
        logger.info(f"Ticket closed: {ticket.id}")

        event_bus.publish(Event(
            event_type=EventType.TICKET_CLOSED,
            data={"ticket_id": ticket.id, "user_id": ticket.user_id, "title": ticket.title},
            source="support_service",
        ))
        return ticket
