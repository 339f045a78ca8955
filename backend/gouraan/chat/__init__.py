"""
实时聊天：WebSocket 连接管理与事件网关
"""
from gouraan.chat.connection_manager import ConnectionManager, manager, user_room, ticket_room
from gouraan.chat.gateway import ChatGateway, chat_endpoint

__all__ = ['ConnectionManager', 'manager', 'user_room', 'ticket_room', 'ChatGateway', 'chat_endpoint']
