"""
WebSocket 连接管理 - 按房间分组推送

房间命名：user_<id> 为用户私有房间，ticket_<id> 为工单会话房间。
"""
from typing import Any, Dict, Set
import logging

from fastapi import WebSocket

logger = logging.getLogger(__name__)


def user_room(user_id: int) -> str:
    return f"user_{user_id}"


def ticket_room(ticket_id: int) -> str:
    return f"ticket_{ticket_id}"


class ConnectionManager:
    """管理在线连接与房间订阅"""

    def __init__(self):
        self.rooms: Dict[str, Set[WebSocket]] = {}
        self.connection_rooms: Dict[WebSocket, Set[str]] = {}
        self.connection_users: Dict[WebSocket, int] = {}

    async def connect(self, websocket: WebSocket, user_id: int) -> None:
        await websocket.accept()
        self.connection_users[websocket] = user_id
        self.connection_rooms[websocket] = set()
        self.join(websocket, user_room(user_id))
        logger.info(f"Chat client connected: user {user_id}. Total connections: {len(self.connection_users)}")

    def disconnect(self, websocket: WebSocket) -> None:
        user_id = self.connection_users.pop(websocket, None)
        for room in self.connection_rooms.pop(websocket, set()):
            members = self.rooms.get(room)
            if members is not None:
                members.discard(websocket)
                if not members:
                    del self.rooms[room]
        logger.info(f"Chat client disconnected: user {user_id}. Total connections: {len(self.connection_users)}")

    def join(self, websocket: WebSocket, room: str) -> None:
        self.rooms.setdefault(room, set()).add(websocket)
        self.connection_rooms.setdefault(websocket, set()).add(room)

    def is_online(self, user_id: int) -> bool:
        return bool(self.rooms.get(user_room(user_id)))

    async def send(self, websocket: WebSocket, event: str, data: Any) -> None:
        await websocket.send_json({"event": event, "data": data})

    async def emit(self, room: str, event: str, data: Any, exclude: WebSocket = None) -> None:
        """向房间内所有连接推送，发送失败的连接被移除"""
        dead = []
        for ws in list(self.rooms.get(room, ())):
            if ws is exclude:
                continue
            try:
                await self.send(ws, event, data)
            except Exception as e:
                logger.warning(f"Failed to send to chat client: {e}")
                dead.append(ws)
        for ws in dead:
            self.disconnect(ws)

    async def broadcast(self, event: str, data: Any, exclude: WebSocket = None) -> None:
        for ws in list(self.connection_users):
            if ws is exclude:
                continue
            try:
                await self.send(ws, event, data)
            except Exception as e:
                logger.warning(f"Failed to broadcast to chat client: {e}")


# 全局连接管理器
manager = ConnectionManager()
