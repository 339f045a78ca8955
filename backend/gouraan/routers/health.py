"""
健康检查与系统信息
"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from gouraan import __version__
from gouraan.config import settings
from gouraan.database import get_db, check_db
from gouraan.i18n import translator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["系统"])


@router.get("/")
def root():
    """根路径"""
    return {"name": settings.APP_NAME, "version": __version__}


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """健康检查（含数据库往返）"""
    try:
        database_ok = check_db(db)
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        database_ok = False
    return {
        "status": "healthy" if database_ok else "degraded",
        "database": "ok" if database_ok else "unavailable",
        "version": __version__,
    }


@router.get("/i18n/locales")
def supported_locales():
    """支持的语言及书写方向"""
    return [
        {"code": locale, "direction": translator.get_text_direction(locale)}
        for locale in translator.get_supported_locales()
    ]
