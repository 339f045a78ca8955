"""
各支付网关适配器（沙箱实现）
"""
from gouraan.services.payment_gateways.base import SimulatedGateway


class StripeGateway(SimulatedGateway):
    name = "stripe"
    required_field = "payment_method_id"
    transaction_prefix = "pi"


class PaypalGateway(SimulatedGateway):
    name = "paypal"
    required_field = "order_id"
    transaction_prefix = "PAYID"


class SslcommerzGateway(SimulatedGateway):
    """孟加拉国本地网关"""
    name = "sslcommerz"
    required_field = "transaction_id"
    transaction_prefix = "SSL"


class HyperpayGateway(SimulatedGateway):
    """中东地区网关（mada / Visa / Mastercard）"""
    name = "hyperpay"
    required_field = "checkout_id"
    transaction_prefix = "HP"
