"""
支付路由 - 在线支付、退款、银行转账与现金
"""
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from gouraan.database import get_db
from gouraan.models.entities import User
from gouraan.models.schemas import (
    PaymentCreate, PaymentProcess, RefundRequest, BankTransferCreate, BankTransferVerify,
    CashPaymentCreate, PaymentResponse,
)
from gouraan.services.payment_service import PaymentService
from gouraan.security.auth import get_current_user, require_permission
from gouraan.security.permissions import P

router = APIRouter(prefix="/payments", tags=["支付"])


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
def create_payment(
    data: PaymentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """为待支付预订创建支付单"""
    return PaymentService(db).create_payment(current_user, data)


@router.post("/{payment_id}/process", response_model=PaymentResponse)
def process_payment(
    payment_id: int,
    data: PaymentProcess,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """调用支付网关扣款"""
    return PaymentService(db).process_payment(payment_id, current_user, data.payload)


@router.get("/booking/{booking_id}", response_model=List[PaymentResponse])
def list_booking_payments(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return PaymentService(db).list_for_booking(booking_id, current_user)


@router.get("/{payment_id}", response_model=PaymentResponse)
def get_payment(
    payment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return PaymentService(db).get_payment(payment_id, current_user)


@router.post("/{payment_id}/refund", response_model=PaymentResponse)
def refund_payment(
    payment_id: int,
    data: RefundRequest,
    current_user: User = Depends(require_permission(P.PROCESS_REFUNDS)),
    db: Session = Depends(get_db)
):
    """退款（默认全额）"""
    return PaymentService(db).refund_payment(payment_id, data)


# ============== 线下支付 ==============

@router.post("/bank-transfer", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
def create_bank_transfer(
    data: BankTransferCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """提交银行转账凭据，等待核实"""
    return PaymentService(db).create_bank_transfer(current_user, data)


@router.post("/{payment_id}/verify", response_model=PaymentResponse)
def verify_bank_transfer(
    payment_id: int,
    data: BankTransferVerify,
    current_user: User = Depends(require_permission(P.MANAGE_INVOICES)),
    db: Session = Depends(get_db)
):
    """核实银行转账"""
    return PaymentService(db).verify_bank_transfer(payment_id, data.approved, current_user, data.notes)


@router.post("/cash", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
def record_cash_payment(
    data: CashPaymentCreate,
    current_user: User = Depends(require_permission(P.MANAGE_INVOICES)),
    db: Session = Depends(get_db)
):
    """登记现金收款"""
    return PaymentService(db).record_cash_payment(current_user, data)
