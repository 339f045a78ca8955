"""
领域事件定义 (Domain Events)
预订、支付、工单模块发布，通知模块订阅
"""
from enum import Enum


class EventType(str, Enum):
    """事件类型枚举"""
    # 预订相关
    BOOKING_CREATED = "booking.created"
    BOOKING_CONFIRMED = "booking.confirmed"
    BOOKING_CANCELLED = "booking.cancelled"

    # 支付相关
    PAYMENT_RECEIVED = "payment.received"
    PAYMENT_FAILED = "payment.failed"
    PAYMENT_REFUNDED = "payment.refunded"

    # 工单相关
    TICKET_CREATED = "ticket.created"
    TICKET_REPLIED = "ticket.replied"
    TICKET_CLOSED = "ticket.closed"

    # 账户相关
    PASSWORD_RESET_REQUESTED = "user.password_reset_requested"
    USER_REGISTERED = "user.registered"
