"""
事件引擎 - 内存级发布/订阅
"""
from gouraan_core.engine.event_bus import Event, EventBus, event_bus

__all__ = ["Event", "EventBus", "event_bus"]
