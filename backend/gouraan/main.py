"""
GoUraan 主应用入口
机票、酒店与朝觐/副朝套餐预订平台
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from gouraan import __version__
from gouraan.config import settings
from gouraan.database import init_db
from gouraan.exceptions import ApplicationError
from gouraan.logging_config import configure_logging
from gouraan.routers import (
    health, auth, users, hotels, rooms, packages, bookings, flight_bookings,
    payments, notifications, support, chat, reviews, analytics, files,
    airlines, airports, flights,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    configure_logging(settings.LOG_LEVEL)

    init_db()

    from gouraan.security.permissions import register_travel_permissions
    register_travel_permissions()

    from gouraan.notification import register_notification_channels
    register_notification_channels()

    from gouraan.services.payment_gateways import register_payment_gateways
    register_payment_gateways(settings.PAYMENT_MODE)

    from gouraan.services.event_handlers import register_event_handlers
    register_event_handlers()

    from gouraan.i18n import translator
    translator.load()

    logger.info(f"{settings.APP_NAME} {__version__} started")
    yield


# 创建应用
app = FastAPI(
    title=settings.APP_NAME,
    description="旅行预订平台：机票、酒店、朝觐/副朝套餐",
    version=__version__,
    lifespan=lifespan
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ApplicationError)
async def application_error_handler(request: Request, exc: ApplicationError):
    """业务异常统一转换为 JSON 响应"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, **exc.details},
    )


# 注册路由
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(hotels.router)
app.include_router(rooms.router)
app.include_router(packages.router)
app.include_router(bookings.router)
app.include_router(flight_bookings.router)
app.include_router(airlines.router)
app.include_router(airports.router)
app.include_router(flights.router)
app.include_router(payments.router)
app.include_router(notifications.router)
app.include_router(support.router)
app.include_router(chat.router)
app.include_router(reviews.router)
app.include_router(analytics.router)
app.include_router(files.router)
