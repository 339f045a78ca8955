"""
业务异常定义

服务层抛出这些异常，由 main 中注册的异常处理器统一转换为 HTTP 响应。
"""


class ApplicationError(Exception):
    """所有业务异常的基类"""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(ApplicationError):
    """资源不存在"""

    status_code = 404


class ConflictError(ApplicationError):
    """唯一性冲突（邮箱、PNR、房间号等）"""

    status_code = 409


class BusinessRuleError(ApplicationError):
    """违反业务规则（状态不允许、日期非法等）"""

    status_code = 400


class AuthenticationError(ApplicationError):
    """认证失败"""

    status_code = 401


class PermissionDeniedError(ApplicationError):
    """权限不足"""

    status_code = 403


class PaymentGatewayError(ApplicationError):
    """支付网关调用失败"""

    status_code = 400

    def __init__(self, gateway: str, message: str):
        super().__init__(message, {"gateway": gateway})
