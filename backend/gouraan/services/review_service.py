"""
评价服务
"""
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from gouraan.exceptions import NotFoundError, ConflictError, PermissionDeniedError
from gouraan.models.entities import (
    Review, ReviewType, Hotel, TravelPackage, FlightBooking, User, UserRole,
)
from gouraan.models.schemas import ReviewCreate, ReviewUpdate
from gouraan.repositories import BaseRepository, Page
from gouraan.security.permissions import P, user_has_permission

logger = logging.getLogger(__name__)

# 评价对象类型 → (模型, 审核所需权限)
REVIEW_TARGETS = {
    ReviewType.HOTEL: (Hotel, P.MANAGE_HOTELS),
    ReviewType.PACKAGE: (TravelPackage, P.MANAGE_PACKAGES),
    ReviewType.FLIGHT: (FlightBooking, P.MANAGE_FLIGHTS),
}

REVIEW_TARGET_NAMES = {
    ReviewType.HOTEL: "酒店",
    ReviewType.PACKAGE: "套餐",
    ReviewType.FLIGHT: "航班预订",
}


class ReviewService:
    """评价服务"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BaseRepository(db, Review)

    def get_review(self, review_id: int) -> Review:
        review = self.repo.get_by_id(review_id)
        if not review:
            raise NotFoundError(f"评价 {review_id} 不存在")
        return review

    def _get_item(self, review_type: ReviewType, item_id: int):
        model, _ = REVIEW_TARGETS[review_type]
        item = self.db.query(model).filter(model.id == item_id).first()
        if not item:
            raise NotFoundError(f"{REVIEW_TARGET_NAMES[review_type]} {item_id} 不存在")
        return item

    def list_reviews(self, review_type: Optional[ReviewType] = None, item_id: Optional[int] = None,
                     user_id: Optional[int] = None, is_approved: Optional[bool] = None,
                     min_rating: Optional[int] = None, max_rating: Optional[int] = None,
                     page: int = 1, limit: int = 10) -> Page:
        query = self.db.query(Review)
        if review_type:
            query = query.filter(Review.review_type == review_type)
        if item_id is not None:
            query = query.filter(Review.item_id == item_id)
        if user_id is not None:
            query = query.filter(Review.user_id == user_id)
        if is_approved is not None:
            query = query.filter(Review.is_approved == is_approved)
        if min_rating is not None:
            query = query.filter(Review.rating >= min_rating)
        if max_rating is not None:
            query = query.filter(Review.rating <= max_rating)
        return self.repo.paginate(query, page, limit, order_by=Review.created_at.desc())

    def create_review(self, user: User, data: ReviewCreate) -> Review:
        if self.repo.exists(user_id=user.id, review_type=data.review_type, item_id=data.item_id):
            raise ConflictError("已评价过该项目")
        self._get_item(data.review_type, data.item_id)

        review = Review(
            user_id=user.id,
            review_type=data.review_type,
            item_id=data.item_id,
            rating=data.rating,
            title=data.title,
            comment=data.comment,
            is_approved=False,
        )
        self.repo.create(review)
        self.db.commit()
        self.db.refresh(review)
        logger.info(f"Review created: {review.id}")
        return review

    def _check_owner(self, review: Review, user: User) -> None:
        if review.user_id != user.id and user.role != UserRole.ADMIN:
            raise PermissionDeniedError("只能修改自己的评价")

    def update_review(self, review_id: int, user: User, data: ReviewUpdate) -> Review:
        review = self.get_review(review_id)
        self._check_owner(review, user)
        self.repo.update(review, data.model_dump(exclude_unset=True))
        self.recompute_rating(review.review_type, review.item_id)
        self.db.commit()
        self.db.refresh(review)
        return review

    def delete_review(self, review_id: int, user: User) -> None:
        review = self.get_review(review_id)
        self._check_owner(review, user)
        review_type, item_id = review.review_type, review.item_id
        self.repo.delete(review)
        self.db.flush()
        self.recompute_rating(review_type, item_id)
        self.db.commit()
        logger.info(f"Review deleted: {review_id}")

    @staticmethod
    def can_moderate(user: User, review_type: ReviewType) -> bool:
        _, permission = REVIEW_TARGETS[review_type]
        return user.role == UserRole.ADMIN or user_has_permission(user, permission)

    def set_approval(self, review_id: int, approved: bool, operator: User) -> Review:
        review = self.get_review(review_id)
        if not self.can_moderate(operator, review.review_type):
            raise PermissionDeniedError("缺少审核该类型评价的权限")

        review.is_approved = approved
        review.approved_at = datetime.utcnow() if approved else None
        review.approved_by_id = operator.id if approved else None
        self.db.flush()
        self.recompute_rating(review.review_type, review.item_id)
        self.db.commit()
        self.db.refresh(review)
        logger.info(f"Review {review.id} approval set to: {approved}")
        return review

    def rating_stats(self, review_type: ReviewType, item_id: int) -> dict:
        """已审核评价的平均分与数量"""
        avg, count = self.db.query(func.avg(Review.rating), func.count(Review.id)).filter(
            Review.review_type == review_type,
            Review.item_id == item_id,
            Review.is_approved == True  # noqa: E712
        ).one()
        return {"average_rating": round(float(avg), 2) if avg else 0.0, "review_count": count}

    def recompute_rating(self, review_type: ReviewType, item_id: int) -> None:
        """把评分写回酒店或套餐；航班预订没有评分字段"""
        model, _ = REVIEW_TARGETS[review_type]
        if not hasattr(model, "average_rating"):
            return
        item = self.db.query(model).filter(model.id == item_id).first()
        if not item:
            return
        stats = self.rating_stats(review_type, item_id)
        item.average_rating = stats["average_rating"]
        item.review_count = stats["review_count"]
