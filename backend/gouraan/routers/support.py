"""
客服工单路由
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from gouraan.database import get_db
from gouraan.models.entities import User, SupportTicketStatus
from gouraan.models.schemas import (
    SupportTicketCreate, SupportTicketResponse, SupportTicketDetail,
    SupportMessageCreate, SupportMessageResponse, TicketAssign, TicketStatusUpdate, Paginated,
)
from gouraan.services.support_service import SupportService
from gouraan.security.auth import get_current_user, require_permission
from gouraan.security.permissions import P

router = APIRouter(prefix="/support/tickets", tags=["客服工单"])


def _detail(service: SupportService, ticket, user: User) -> SupportTicketDetail:
    messages = [SupportMessageResponse.model_validate(m) for m in service.visible_messages(ticket, user)]
    return SupportTicketDetail.model_validate(ticket).model_copy(update={"messages": messages})


@router.post("", response_model=SupportTicketResponse, status_code=status.HTTP_201_CREATED)
def create_ticket(
    data: SupportTicketCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """提交工单"""
    return SupportService(db).create_ticket(current_user, data)


@router.get("", response_model=Paginated[SupportTicketResponse])
def list_tickets(
    status: Optional[SupportTicketStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """工单列表：客服看全部，其他用户看自己的"""
    return SupportService(db).list_tickets(current_user, status, page, limit) \
        .to_response(SupportTicketResponse)


@router.get("/{ticket_id}", response_model=SupportTicketDetail)
def get_ticket(
    ticket_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = SupportService(db)
    ticket = service.get_ticket(ticket_id, current_user)
    return _detail(service, ticket, current_user)


@router.post("/{ticket_id}/messages", response_model=SupportMessageResponse,
             status_code=status.HTTP_201_CREATED)
def add_message(
    ticket_id: int,
    data: SupportMessageCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """回复工单"""
    return SupportService(db).add_message(ticket_id, current_user, data)


@router.put("/{ticket_id}/assign", response_model=SupportTicketResponse)
def assign_ticket(
    ticket_id: int,
    data: TicketAssign,
    current_user: User = Depends(require_permission(P.MANAGE_TICKETS)),
    db: Session = Depends(get_db)
):
    return SupportService(db).assign_ticket(ticket_id, data.assignee_id)


@router.put("/{ticket_id}/status", response_model=SupportTicketResponse)
def update_ticket_status(
    ticket_id: int,
    data: TicketStatusUpdate,
    current_user: User = Depends(require_permission(P.MANAGE_TICKETS)),
    db: Session = Depends(get_db)
):
    return SupportService(db).update_status(ticket_id, data.status)


@router.post("/{ticket_id}/close", response_model=SupportTicketResponse)
def close_ticket(
    ticket_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """关闭工单（工单所有者或客服）"""
    return SupportService(db).close_ticket(ticket_id, current_user)
