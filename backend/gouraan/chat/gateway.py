"""
聊天网关 - 处理客户端事件

客户端消息格式：{"event": "<名称>", "data": {...}}
data 按事件对应的模型校验，格式错误回复 error 事件，连接保持。
"""
import json
import logging
from typing import Any, Dict

from fastapi import WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from gouraan.chat.connection_manager import ConnectionManager, manager, user_room, ticket_room
from gouraan.exceptions import ApplicationError
from gouraan.models.schemas import (
    ChatMessageResponse, SendMessageEvent, JoinTicketEvent, TypingEvent, MarkAsReadEvent,
)
from gouraan.security.auth import authenticate_token
from gouraan.services.chat_service import ChatService

logger = logging.getLogger(__name__)


def _message_payload(message) -> Dict[str, Any]:
    return ChatMessageResponse.model_validate(message).model_dump(mode="json")


def _validation_message(event: str, error: ValidationError) -> str:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"])
    if field:
        return f"Invalid {event} data: {field}: {first['msg']}"
    return f"Invalid {event} data: {first['msg']}"


class ChatGateway:
    """单个连接的事件分派"""

    def __init__(self, websocket: WebSocket, db: Session, user, connections: ConnectionManager = manager):
        self.websocket = websocket
        self.db = db
        self.user = user
        self.connections = connections
        self.service = ChatService(db)
        self.handlers = {
            "sendMessage": (SendMessageEvent, self.on_send_message),
            "joinTicket": (JoinTicketEvent, self.on_join_ticket),
            "typing": (TypingEvent, self.on_typing),
            "markAsRead": (MarkAsReadEvent, self.on_mark_as_read),
        }

    async def on_connect(self) -> None:
        await self.connections.connect(self.websocket, self.user.id)
        await self.connections.broadcast(
            "userStatus", {"user_id": self.user.id, "status": "online"}, exclude=self.websocket
        )
        unread = self.service.unread_count(self.user.id)
        if unread > 0:
            await self.connections.send(self.websocket, "unreadMessages", {"count": unread})

    async def on_disconnect(self) -> None:
        self.connections.disconnect(self.websocket)
        if not self.connections.is_online(self.user.id):
            await self.connections.broadcast("userStatus", {"user_id": self.user.id, "status": "offline"})

    async def error(self, message: str) -> None:
        await self.connections.send(self.websocket, "error", {"message": message})

    async def dispatch(self, payload: Any) -> None:
        if not isinstance(payload, dict):
            await self.error("Invalid message format")
            return
        event = payload.get("event")
        if not isinstance(event, str) or event not in self.handlers:
            await self.error(f"Unknown event: {event}")
            return
        model, handler = self.handlers[event]
        try:
            data: BaseModel = model.model_validate(payload.get("data") or {})
        except ValidationError as e:
            await self.error(_validation_message(event, e))
            return
        try:
            await handler(data)
        except ApplicationError as e:
            self.db.rollback()
            await self.error(e.message)

    async def on_send_message(self, data: SendMessageEvent) -> None:
        message = self.service.send_message(self.user, data.content, data.ticket_id, data.recipient_id)
        payload = _message_payload(message)

        if data.ticket_id is not None:
            room = ticket_room(data.ticket_id)
            self.connections.join(self.websocket, room)
            await self.connections.emit(room, "newMessage", payload)
        else:
            await self.connections.emit(user_room(data.recipient_id), "newMessage", payload)
            if data.recipient_id != self.user.id:
                await self.connections.emit(user_room(self.user.id), "newMessage", payload)

    async def on_join_ticket(self, data: JoinTicketEvent) -> None:
        ticket = self.service.get_ticket(data.ticket_id, self.user)
        self.connections.join(self.websocket, ticket_room(ticket.id))
        await self.connections.send(self.websocket, "joinedTicket", {"ticket_id": ticket.id})

    async def on_typing(self, data: TypingEvent) -> None:
        payload = {"user_id": self.user.id, "is_typing": data.is_typing}
        if data.ticket_id is not None:
            payload["ticket_id"] = data.ticket_id
            room = ticket_room(data.ticket_id)
        elif data.recipient_id is not None:
            room = user_room(data.recipient_id)
        else:
            await self.error("ticket_id or recipient_id is required")
            return
        await self.connections.emit(room, "userTyping", payload, exclude=self.websocket)

    async def on_mark_as_read(self, data: MarkAsReadEvent) -> None:
        count = self.service.mark_as_read(data.message_ids, self.user.id)
        await self.connections.send(self.websocket, "messagesRead", {"count": count})


async def chat_endpoint(websocket: WebSocket, token: str, db: Session,
                        connections: ConnectionManager = manager) -> None:
    """WebSocket 会话：令牌无效时以策略违规关闭"""
    user = authenticate_token(token, db) if token else None
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    gateway = ChatGateway(websocket, db, user, connections)
    await gateway.on_connect()
    try:
        while True:
            text = await websocket.receive_text()
            try:
                payload = json.loads(text)
            except ValueError:
                await gateway.error("Invalid JSON")
                continue
            await gateway.dispatch(payload)
    except WebSocketDisconnect:
        pass
    finally:
        await gateway.on_disconnect()
