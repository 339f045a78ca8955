"""
应用配置
从环境变量与 .env 读取
"""
from typing import List, Optional
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """应用设置"""

    # 应用基础配置
    APP_NAME: str = "GoUraan API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    FRONTEND_URL: str = "http://localhost:3000"
    CORS_ORIGINS: List[str] = ["*"]

    # 数据库配置
    DATABASE_URL: str = "sqlite:///./gouraan.db"

    # JWT 配置
    SECRET_KEY: str = "gouraan-secret-key-change-in-production"
    REFRESH_SECRET_KEY: str = "gouraan-refresh-secret-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    PASSWORD_RESET_EXPIRE_MINUTES: int = 60

    # 预订配置
    BOOKING_HOLD_MINUTES: int = 30        # 待支付预订保留时长
    SEAT_HOLD_MINUTES: int = 15           # 锁座时长
    DEFAULT_CURRENCY: str = "SAR"

    # 邮件配置（未启用时走模拟渠道）
    SMTP_ENABLED: bool = False
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    FROM_EMAIL: str = "noreply@gouraan.com"

    # 支付网关
    PAYMENT_MODE: str = "sandbox"
    STRIPE_SECRET_KEY: Optional[str] = None
    PAYPAL_CLIENT_ID: Optional[str] = None
    SSLCOMMERZ_STORE_ID: Optional[str] = None
    HYPERPAY_ENTITY_ID: Optional[str] = None

    # 文件上传
    UPLOAD_DIR: str = "./uploads"
    MAX_UPLOAD_SIZE: int = 5 * 1024 * 1024
    ALLOWED_UPLOAD_TYPES: List[str] = [
        "image/jpeg", "image/png", "image/webp", "application/pdf",
    ]

    # 国际化
    DEFAULT_LOCALE: str = "en"

    # 功能开关
    ENABLE_REGISTRATION: bool = True
    ENABLE_LOYALTY_PROGRAM: bool = True

    model_config = ConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


# 全局设置实例
settings = Settings()
