"""
支付网关接口
"""
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

from gouraan.exceptions import PaymentGatewayError


@dataclass
class GatewayResult:
    """网关调用结果"""
    success: bool
    transaction_id: Optional[str] = None
    status: str = ""
    error: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "transaction_id": self.transaction_id,
            "status": self.status,
            "error": self.error,
            **self.raw,
        }


class PaymentGateway(ABC):
    """支付网关策略接口"""

    name: str = ""
    # 处理支付时 payload 中必须携带的字段
    required_field: str = ""

    def __init__(self, mode: str = "sandbox"):
        self.mode = mode

    def validate_payload(self, payload: Dict[str, Any]) -> str:
        token = payload.get(self.required_field)
        if not token:
            raise PaymentGatewayError(self.name, f"{self.required_field} is required")
        return str(token)

    @abstractmethod
    def charge(self, amount: Decimal, currency: str, payload: Dict[str, Any],
               metadata: Optional[Dict[str, Any]] = None) -> GatewayResult:
        """扣款"""

    @abstractmethod
    def refund(self, transaction_id: str, amount: Decimal, reason: Optional[str] = None) -> GatewayResult:
        """退款"""


class SimulatedGateway(PaymentGateway):
    """
    沙箱网关：不调用第三方，生成交易号

    以 "fail" 开头的支付令牌模拟拒付。
    """

    transaction_prefix = "txn"

    def _transaction_id(self) -> str:
        return f"{self.transaction_prefix}_{uuid.uuid4().hex[:16]}"

    def charge(self, amount, currency, payload, metadata=None) -> GatewayResult:
        token = self.validate_payload(payload)
        if token.lower().startswith("fail"):
            return GatewayResult(
                success=False,
                status="declined",
                error="Payment was declined by the gateway",
                raw={"gateway": self.name, self.required_field: token},
            )
        return GatewayResult(
            success=True,
            transaction_id=self._transaction_id(),
            status="succeeded",
            raw={
                "gateway": self.name,
                "mode": self.mode,
                "amount": str(amount),
                "currency": currency,
                self.required_field: token,
                "metadata": metadata or {},
            },
        )

    def refund(self, transaction_id, amount, reason=None) -> GatewayResult:
        if not transaction_id:
            raise PaymentGatewayError(self.name, "transaction id is required for refund")
        return GatewayResult(
            success=True,
            transaction_id=f"re_{uuid.uuid4().hex[:16]}",
            status="refunded",
            raw={"gateway": self.name, "original_transaction": transaction_id,
                 "amount": str(amount), "reason": reason},
        )
