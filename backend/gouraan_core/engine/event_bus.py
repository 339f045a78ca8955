"""
事件总线 - 进程内同步发布/订阅

预订、支付与工单服务发布领域事件，通知处理器订阅后发送本地化通知。
应用使用模块级的 event_bus；测试可以构造独立的 EventBus。
"""
import logging
import threading
import uuid
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, DefaultDict, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class Event:
    """领域事件"""
    event_type: str
    data: Dict[str, Any]
    source: str  # 发布方服务名
    timestamp: datetime = field(default_factory=datetime.utcnow)
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)


Handler = Callable[[Event], None]


class EventBus:
    """
    同步事件总线

    处理器在发布线程内按订阅顺序执行，单个处理器出错只记录日志。
    最近发布的事件保留在 history 中，供排查与测试断言。
    """

    def __init__(self, history_size: int = 200):
        self._handlers: DefaultDict[str, List[Handler]] = defaultdict(list)
        self._history: Deque[Event] = deque(maxlen=history_size)
        self._lock = threading.Lock()

    def subscribe(self, event_type: str, handler: Handler) -> None:
        """同一处理器重复订阅只记一次"""
        with self._lock:
            if handler not in self._handlers[event_type]:
                self._handlers[event_type].append(handler)
                logger.debug(f"{handler.__name__} subscribed to {event_type}")

    def unsubscribe(self, event_type: str, handler: Handler) -> None:
        with self._lock:
            if handler in self._handlers.get(event_type, []):
                self._handlers[event_type].remove(handler)

    def handler_count(self, event_type: str) -> int:
        with self._lock:
            return len(self._handlers.get(event_type, []))

    def publish(self, event: Event) -> int:
        """发布事件，返回执行失败的处理器数量"""
        with self._lock:
            self._history.append(event)
            handlers = list(self._handlers.get(event.event_type, []))

        failures = 0
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                failures += 1
                logger.error(f"Event handler {handler.__name__} failed for {event.event_type}: {e}",
                             exc_info=True)
        if handlers:
            logger.info(f"Published {event.event_type} ({event.source}) to {len(handlers)} handlers")
        return failures

    def get_history(self, event_type: Optional[str] = None, limit: int = 50) -> List[Event]:
        """最近的事件，最新的在前"""
        with self._lock:
            history = list(self._history)
        if event_type:
            history = [e for e in history if e.event_type == event_type]
        return history[::-1][:limit]

    def reset(self) -> None:
        """清空订阅与历史"""
        with self._lock:
            self._handlers.clear()
            self._history.clear()

    def clear_history(self) -> None:
        with self._lock:
            self._history.clear()


event_bus = EventBus()
