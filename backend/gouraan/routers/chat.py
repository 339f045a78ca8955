"""
聊天路由 - WebSocket 会话与历史消息
"""
from typing import List
from fastapi import APIRouter, Depends, Query, WebSocket
from sqlalchemy.orm import Session
from gouraan.chat import chat_endpoint
from gouraan.database import get_db
from gouraan.models.entities import User
from gouraan.models.schemas import ChatMessageResponse
from gouraan.services.chat_service import ChatService
from gouraan.security.auth import get_current_user

router = APIRouter(prefix="/chat", tags=["聊天"])


@router.websocket("/ws")
async def chat_websocket(
    websocket: WebSocket,
    token: str = Query(""),
    db: Session = Depends(get_db)
):
    """实时聊天：/chat/ws?token=<访问令牌>"""
    await chat_endpoint(websocket, token, db)


@router.get("/tickets/{ticket_id}/messages", response_model=List[ChatMessageResponse])
def ticket_messages(
    ticket_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """工单会话记录（同时标记为已读）"""
    return ChatService(db).ticket_messages(ticket_id, current_user)


@router.get("/conversations/{user_id}", response_model=List[ChatMessageResponse])
def conversation(
    user_id: int,
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """与某个用户的私聊记录"""
    return ChatService(db).conversation(current_user, user_id, limit)


@router.get("/unread-count")
def unread_count(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return {"count": ChatService(db).unread_count(current_user.id)}
