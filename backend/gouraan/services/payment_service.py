"""
支付服务 - 在线网关支付、退款、线下银行转账与现金
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session

from gouraan_core.engine import event_bus, Event
from gouraan.exceptions import NotFoundError, BusinessRuleError, PaymentGatewayError
from gouraan.models.entities import (
    Payment, Booking, User, PaymentStatus, BookingStatus, PaymentGatewayName,
)
from gouraan.models.events import EventType
from gouraan.models.schemas import (
    PaymentCreate, RefundRequest, BankTransferCreate, CashPaymentCreate,
)
from gouraan.repositories import BaseRepository
from gouraan.security.permissions import is_staff
from gouraan.services.booking_service import BookingService
from gouraan.services.payment_gateways import PaymentGatewayRegistry

logger = logging.getLogger(__name__)

OFFLINE_GATEWAYS = {PaymentGatewayName.BANK_TRANSFER, PaymentGatewayName.CASH}


class PaymentService:
    """支付服务"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BaseRepository(db, Payment)
        self.booking_service = BookingService(db)

    # ---------- 查询 ----------

    def get_payment(self, payment_id: int, user: Optional[User] = None) -> Payment:
        payment = self.repo.get_by_id(payment_id)
        if not payment or (user and payment.user_id != user.id and not is_staff(user)):
            raise NotFoundError("支付记录不存在")
        return payment

    def list_for_booking(self, booking_id: int, user: User) -> List[Payment]:
        booking = self.booking_service.get_booking(booking_id, user)
        return self.db.query(Payment).filter(
            Payment.booking_id == booking.id
        ).order_by(Payment.created_at.desc()).all()

    def _payable_booking(self, booking_id: int, user_id: int) -> Booking:
        booking = self.db.query(Booking).filter(
            Booking.id == booking_id,
            Booking.user_id == user_id,
            Booking.status == BookingStatus.PENDING,
        ).first()
        if not booking:
            raise NotFoundError("预订不存在或不可支付")
        return booking

    # ---------- 在线支付 ----------

    def create_payment(self, user: User, data: PaymentCreate) -> Payment:
        if data.gateway in OFFLINE_GATEWAYS:
            raise BusinessRuleError("线下支付请使用银行转账或现金接口")
        booking = self._payable_booking(data.booking_id, user.id)

        payment = Payment(
            booking_id=booking.id,
            user_id=user.id,
            amount=data.amount or booking.total_amount,
            currency=data.currency or booking.currency,
            gateway=data.gateway,
            method=data.method,
            status=PaymentStatus.PENDING,
        )
        self.repo.create(payment)
        self.db.commit()
        self.db.refresh(payment)
        logger.info(f"Payment created: {payment.id} for booking: {booking.id}")
        return payment

    def process_payment(self, payment_id: int, user: User, payload: Dict[str, Any]) -> Payment:
        """调用网关扣款；成功后标记预订已支付并确认预订"""
        payment = self.get_payment(payment_id, user)
        if payment.status != PaymentStatus.PENDING:
            raise BusinessRuleError("支付不是待处理状态")
        self._ensure_booking_payable(payment)

        gateway_name = payment.gateway.value
        gateway = PaymentGatewayRegistry().get(gateway_name)
        if gateway is None:
            raise BusinessRuleError("不支持的支付网关")

        try:
            result = gateway.charge(
                payment.amount, payment.currency, payload,
                metadata={"payment_id": payment.id, "booking_id": payment.booking_id},
            )
        except Exception as e:
            logger.error(f"Payment processing failed: {payment.id}", exc_info=True)
            payment.status = PaymentStatus.FAILED
            payment.failure_reason = str(e)
            payment.gateway_response = {"error": str(e)}
            self.db.commit()
            self._publish_failed(payment, str(e))
            if isinstance(e, PaymentGatewayError):
                raise
            raise BusinessRuleError("支付处理失败")

        payment.gateway_response = result.to_dict()
        if result.success:
            self._mark_paid(payment, result.transaction_id)
            logger.info(f"Payment successful: {payment.id}")
        else:
            payment.status = PaymentStatus.FAILED
            payment.failure_reason = result.error
            self.db.commit()
            logger.warning(f"Payment failed: {payment.id} - {result.error}")
            self._publish_failed(payment, result.error)

        self.db.refresh(payment)
        return payment

    @staticmethod
    def _ensure_booking_payable(payment: Payment) -> None:
        """扣款前复核：预订在创建支付后可能已被取消或已由其他支付付清"""
        booking = payment.booking
        if booking.status != BookingStatus.PENDING:
            raise BusinessRuleError(f"预订状态为 {booking.status.value}，不能支付")
        if booking.payment_status == PaymentStatus.PAID:
            raise BusinessRuleError("预订已支付")

    def _mark_paid(self, payment: Payment, transaction_id: Optional[str] = None,
                   verified_by: Optional[User] = None) -> None:
        """支付成功：更新支付与预订，确认预订并发布事件"""
        payment.status = PaymentStatus.PAID
        payment.transaction_id = transaction_id
        payment.paid_at = datetime.utcnow()
        if verified_by:
            payment.verified_by_id = verified_by.id

        booking = payment.booking
        booking.payment_status = PaymentStatus.PAID
        self.db.commit()

        if booking.status == BookingStatus.PENDING:
            self.booking_service.confirm_booking(booking)

        event_bus.publish(Event(
            event_type=EventType.PAYMENT_RECEIVED,
            data={
                "payment_id": payment.id,
                "booking_id": booking.id,
                "reference": booking.reference,
                "user_id": payment.user_id,
                "amount": str(payment.amount),
                "currency": payment.currency,
            },
            source="payment_service",
        ))

    def _publish_failed(self, payment: Payment, reason: Optional[str]) -> None:
        event_bus.publish(Event(
            event_type=EventType.PAYMENT_FAILED,
            data={
                "payment_id": payment.id,
                "booking_id": payment.booking_id,
                "reference": payment.booking.reference,
                "user_id": payment.user_id,
                "reason": reason or "",
            },
            source="payment_service",
        ))

    # ---------- 退款 ----------

    def refund_payment(self, payment_id: int, data: RefundRequest) -> Payment:
        payment = self.get_payment(payment_id)
        if payment.status != PaymentStatus.PAID:
            raise BusinessRuleError("只有已支付的记录可以退款")

        amount = data.amount if data.amount is not None else Decimal(payment.amount)
        if amount > payment.amount:
            raise BusinessRuleError("退款金额不能超过支付金额")

        if payment.gateway not in OFFLINE_GATEWAYS:
            gateway = PaymentGatewayRegistry().get(payment.gateway.value)
            if gateway is None:
                raise BusinessRuleError("该支付网关不支持退款")
            try:
                result = gateway.refund(payment.transaction_id, amount, data.reason)
            except Exception:
                logger.error(f"Refund failed: {payment.id}", exc_info=True)
                raise BusinessRuleError("退款处理失败")
            if not result.success:
                raise BusinessRuleError("退款处理失败")
            payment.gateway_response = {**(payment.gateway_response or {}), "refund": result.to_dict()}

        payment.status = PaymentStatus.REFUNDED
        payment.refund_amount = amount
        payment.refund_reason = data.reason
        payment.refunded_at = datetime.utcnow()

        booking = payment.booking
        booking.payment_status = PaymentStatus.REFUNDED
        booking.status = BookingStatus.REFUNDED
        self.db.commit()
        self.db.refresh(payment)
        logger.info(f"Payment {payment.id} refunded: {amount}")

        event_bus.publish(Event(
            event_type=EventType.PAYMENT_REFUNDED,
            data={"payment_id": payment.id, "booking_id": booking.id,
                  "user_id": payment.user_id, "amount": str(amount)},
            source="payment_service",
        ))
        return payment

    # ---------- 线下支付 ----------

    def create_bank_transfer(self, user: User, data: BankTransferCreate) -> Payment:
        """银行转账：待管理员核实"""
        booking = self._payable_booking(data.booking_id, user.id)
        payment = Payment(
            booking_id=booking.id,
            user_id=user.id,
            amount=data.amount or booking.total_amount,
            currency=booking.currency,
            gateway=PaymentGatewayName.BANK_TRANSFER,
            method="bank_transfer",
            status=PaymentStatus.PENDING,
            reference_number=data.reference_number,
            bank_details={
                "bank_name": data.bank_name,
                "account_name": data.account_name,
                "transfer_date": data.transfer_date.isoformat() if data.transfer_date else None,
            },
        )
        self.repo.create(payment)
        self.db.commit()
        self.db.refresh(payment)
        logger.info(f"Bank transfer {payment.reference_number} recorded for booking {booking.id}")
        return payment

    def verify_bank_transfer(self, payment_id: int, approved: bool, operator: User,
                             notes: Optional[str] = None) -> Payment:
        payment = self.get_payment(payment_id)
        if payment.gateway != PaymentGatewayName.BANK_TRANSFER:
            raise BusinessRuleError("该支付不是银行转账")
        if payment.status != PaymentStatus.PENDING:
            raise BusinessRuleError("支付不是待处理状态")

        payment.bank_details = {**(payment.bank_details or {}), "verification_notes": notes}
        if approved:
            self._ensure_booking_payable(payment)
            self._mark_paid(payment, payment.reference_number, verified_by=operator)
        else:
            payment.status = PaymentStatus.FAILED
            payment.failure_reason = notes or "Bank transfer rejected"
            payment.verified_by_id = operator.id
            self.db.commit()
            self._publish_failed(payment, payment.failure_reason)
        self.db.refresh(payment)
        return payment

    def record_cash_payment(self, operator: User, data: CashPaymentCreate) -> Payment:
        """现金收款：直接记为已支付并确认预订"""
        booking = self.db.query(Booking).filter(
            Booking.id == data.booking_id,
            Booking.status == BookingStatus.PENDING,
        ).first()
        if not booking:
            raise NotFoundError("预订不存在或不可支付")

        payment = Payment(
            booking_id=booking.id,
            user_id=booking.user_id,
            amount=data.amount or booking.total_amount,
            currency=booking.currency,
            gateway=PaymentGatewayName.CASH,
            method="cash",
            status=PaymentStatus.PENDING,
            reference_number=f"CASH-{int(datetime.utcnow().timestamp() * 1000)}",
            bank_details={"received_by": data.received_by or operator.email},
        )
        self.repo.create(payment)
        self._mark_paid(payment, payment.reference_number, verified_by=operator)
        self.db.refresh(payment)
        return payment
