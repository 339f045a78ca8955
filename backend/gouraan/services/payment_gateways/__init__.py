"""
支付网关注册表 - 单例模式

lifespan 中调用 register_payment_gateways() 注册全部网关，
PaymentService 按支付记录上的网关名分派。
"""
from typing import Dict, List, Optional

from gouraan.services.payment_gateways.base import GatewayResult, PaymentGateway, SimulatedGateway
from gouraan.services.payment_gateways.adapters import (
    StripeGateway, PaypalGateway, SslcommerzGateway, HyperpayGateway,
)


class PaymentGatewayRegistry:
    """支付网关注册表"""

    _instance: Optional["PaymentGatewayRegistry"] = None

    def __new__(cls) -> "PaymentGatewayRegistry":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._gateways: Dict[str, PaymentGateway] = {}
        return cls._instance

    def register(self, gateway: PaymentGateway) -> None:
        self._gateways[gateway.name] = gateway

    def get(self, name: str) -> Optional[PaymentGateway]:
        return self._gateways.get(name)

    def names(self) -> List[str]:
        return list(self._gateways.keys())

    def clear(self) -> None:
        self._gateways.clear()


def register_payment_gateways(mode: str = "sandbox") -> PaymentGatewayRegistry:
    registry = PaymentGatewayRegistry()
    for gateway_cls in (StripeGateway, PaypalGateway, SslcommerzGateway, HyperpayGateway):
        registry.register(gateway_cls(mode=mode))
    return registry


__all__ = [
    'GatewayResult', 'PaymentGateway', 'SimulatedGateway', 'PaymentGatewayRegistry',
    'StripeGateway', 'PaypalGateway', 'SslcommerzGateway', 'HyperpayGateway',
    'register_payment_gateways',
]
