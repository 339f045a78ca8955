"""
运营分析路由
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from gouraan.database import get_db
from gouraan.models.entities import User
from gouraan.services.analytics_service import AnalyticsService
from gouraan.security.auth import require_permission
from gouraan.security.permissions import P

router = APIRouter(prefix="/analytics", tags=["运营分析"])


@router.get("/overview")
def overview(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.VIEW_REPORTS))
):
    """仪表盘概览"""
    return AnalyticsService(db).overview(date_from, date_to)


@router.get("/bookings-by-type")
def bookings_by_type(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.VIEW_REPORTS))
):
    return AnalyticsService(db).bookings_by_type(date_from, date_to)


@router.get("/revenue")
def revenue_by_day(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.VIEW_REPORTS))
):
    """每日收入"""
    return AnalyticsService(db).revenue_by_day(date_from, date_to)


@router.get("/popular-hotels")
def popular_hotels(
    limit: int = Query(5, ge=1, le=50),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.VIEW_REPORTS))
):
    return AnalyticsService(db).popular_hotels(limit)


@router.get("/recent-activity")
def recent_activity(
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(P.VIEW_REPORTS))
):
    return AnalyticsService(db).recent_activity(limit)
