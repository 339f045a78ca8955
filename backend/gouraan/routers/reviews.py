"""
评价路由
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from gouraan.database import get_db
from gouraan.models.entities import User, ReviewType
from gouraan.models.schemas import ReviewCreate, ReviewUpdate, ReviewResponse, Paginated
from gouraan.services.review_service import ReviewService
from gouraan.security.auth import get_current_user

router = APIRouter(prefix="/reviews", tags=["评价"])


@router.get("", response_model=Paginated[ReviewResponse])
def list_reviews(
    review_type: Optional[ReviewType] = None,
    item_id: Optional[int] = None,
    user_id: Optional[int] = None,
    is_approved: Optional[bool] = None,
    min_rating: Optional[int] = Query(None, ge=1, le=5),
    max_rating: Optional[int] = Query(None, ge=1, le=5),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """评价列表"""
    return ReviewService(db).list_reviews(
        review_type, item_id, user_id, is_approved, min_rating, max_rating, page, limit
    ).to_response(ReviewResponse)


@router.get("/stats/{review_type}/{item_id}")
def rating_stats(review_type: ReviewType, item_id: int, db: Session = Depends(get_db)):
    """已审核评价的平均分"""
    return ReviewService(db).rating_stats(review_type, item_id)


@router.get("/{review_id}", response_model=ReviewResponse)
def get_review(review_id: int, db: Session = Depends(get_db)):
    return ReviewService(db).get_review(review_id)


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def create_review(
    data: ReviewCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """发表评价（需审核后计入评分）"""
    return ReviewService(db).create_review(current_user, data)


@router.put("/{review_id}", response_model=ReviewResponse)
def update_review(
    review_id: int,
    data: ReviewUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return ReviewService(db).update_review(review_id, current_user, data)


@router.delete("/{review_id}")
def delete_review(
    review_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    ReviewService(db).delete_review(review_id, current_user)
    return {"message": "评价已删除"}


@router.patch("/{review_id}/approve", response_model=ReviewResponse)
def approve_review(
    review_id: int,
    approved: bool = True,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """审核评价（approved=false 撤销审核）"""
    return ReviewService(db).set_approval(review_id, approved, current_user)
