"""
通知路由
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from gouraan.database import get_db
from gouraan.models.entities import User
from gouraan.models.schemas import (
    NotificationCreate, BulkNotificationCreate, SegmentNotificationCreate,
    NotificationResponse, Paginated,
)
from gouraan.services.notification_service import NotificationService
from gouraan.security.auth import get_current_user, require_permission
from gouraan.security.permissions import P

router = APIRouter(prefix="/notifications", tags=["通知"])


@router.get("", response_model=Paginated[NotificationResponse])
def list_my_notifications(
    unread_only: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """我的通知"""
    return NotificationService(db).list_user_notifications(
        current_user.id, unread_only, page, limit
    ).to_response(NotificationResponse)


@router.get("/unread-count")
def unread_count(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return {"count": NotificationService(db).unread_count(current_user.id)}


@router.get("/stats")
def my_notification_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return NotificationService(db).get_stats(current_user.id)


@router.patch("/read-all")
def mark_all_as_read(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    count = NotificationService(db).mark_all_as_read(current_user.id)
    return {"updated": count}


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
def mark_as_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return NotificationService(db).mark_as_read(notification_id, current_user.id)


# ============== 后台发送 ==============

@router.post("/send", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
def send_notification(
    data: NotificationCreate,
    current_user: User = Depends(require_permission(P.MANAGE_USERS)),
    db: Session = Depends(get_db)
):
    """向单个用户发送通知（可定时）"""
    return NotificationService(db).send_notification(
        data.user_id, data.notification_type, data.title, data.message,
        [c.value for c in data.channels], data.template_data, data.priority, data.scheduled_at,
    )


@router.post("/bulk")
def send_bulk_notification(
    data: BulkNotificationCreate,
    current_user: User = Depends(require_permission(P.MANAGE_USERS)),
    db: Session = Depends(get_db)
):
    return NotificationService(db).send_bulk(
        data.user_ids, data.notification_type, data.title, data.message,
        [c.value for c in data.channels], data.priority,
    )


@router.post("/segment")
def send_segment_notification(
    data: SegmentNotificationCreate,
    current_user: User = Depends(require_permission(P.MANAGE_USERS)),
    db: Session = Depends(get_db)
):
    """按用户分群发送"""
    return NotificationService(db).send_segmented(
        data.segment, data.notification_type, data.title, data.message,
        [c.value for c in data.channels], data.priority,
    )


@router.post("/process-scheduled")
def process_scheduled(
    current_user: User = Depends(require_permission(P.MANAGE_USERS)),
    db: Session = Depends(get_db)
):
    """发送到期的定时通知"""
    return {"processed": NotificationService(db).process_due_scheduled()}


@router.get("/admin/stats")
def global_notification_stats(
    current_user: User = Depends(require_permission(P.MANAGE_USERS, P.VIEW_REPORTS)),
    db: Session = Depends(get_db)
):
    return NotificationService(db).get_stats()
