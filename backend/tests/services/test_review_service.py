"""
评价服务测试
"""
import pytest

from gouraan.exceptions import ConflictError, NotFoundError, PermissionDeniedError
from gouraan.models.entities import ReviewType
from gouraan.models.schemas import ReviewCreate, ReviewUpdate
from gouraan.services.review_service import ReviewService


@pytest.fixture
def service(db_session):
    return ReviewService(db_session)


def hotel_review(hotel, rating=4):
    return ReviewCreate(review_type=ReviewType.HOTEL, item_id=hotel.id, rating=rating,
                        title="Close to Haram")


def test_create_is_pending_approval(service, customer, sample_hotel):
    review = service.create_review(customer, hotel_review(sample_hotel))
    assert review.is_approved is False
    assert service.rating_stats(ReviewType.HOTEL, sample_hotel.id) == {
        "average_rating": 0.0, "review_count": 0,
    }


def test_one_review_per_item(service, customer, sample_hotel):
    service.create_review(customer, hotel_review(sample_hotel))
    with pytest.raises(ConflictError) as exc:
        service.create_review(customer, hotel_review(sample_hotel, rating=2))
    assert exc.value.message == "已评价过该项目"


def test_unknown_item(service, customer):
    with pytest.raises(NotFoundError) as exc:
        service.create_review(customer, ReviewCreate(review_type=ReviewType.PACKAGE, item_id=77, rating=5))
    assert exc.value.message == "套餐 77 不存在"


def test_approval_updates_hotel_rating(service, customer, other_customer, admin, sample_hotel):
    first = service.create_review(customer, hotel_review(sample_hotel, rating=5))
    second = service.create_review(other_customer, hotel_review(sample_hotel, rating=2))

    service.set_approval(first.id, True, admin)
    service.set_approval(second.id, True, admin)
    assert sample_hotel.average_rating == 3.5
    assert sample_hotel.review_count == 2
    assert first.approved_by_id == admin.id

    service.set_approval(second.id, False, admin)
    assert sample_hotel.average_rating == 5.0
    assert sample_hotel.review_count == 1
    assert second.approved_at is None


def test_update_and_delete_recompute(service, customer, admin, sample_hotel):
    review = service.create_review(customer, hotel_review(sample_hotel, rating=5))
    service.set_approval(review.id, True, admin)

    service.update_review(review.id, customer, ReviewUpdate(rating=3))
    assert sample_hotel.average_rating == 3.0

    service.delete_review(review.id, customer)
    assert sample_hotel.review_count == 0
    assert sample_hotel.average_rating == 0.0


def test_only_owner_or_admin_modifies(service, customer, other_customer, admin, sample_hotel):
    review = service.create_review(customer, hotel_review(sample_hotel))
    with pytest.raises(PermissionDeniedError):
        service.update_review(review.id, other_customer, ReviewUpdate(rating=1))
    service.update_review(review.id, admin, ReviewUpdate(comment="Edited by moderator"))
    assert review.comment == "Edited by moderator"


def test_moderation_permission(service, customer, operations_user, admin, sample_package):
    review = service.create_review(customer, ReviewCreate(
        review_type=ReviewType.PACKAGE, item_id=sample_package.id, rating=5
    ))
    with pytest.raises(PermissionDeniedError):
        service.set_approval(review.id, True, customer)
    with pytest.raises(PermissionDeniedError):
        service.set_approval(review.id, True, operations_user)
    assert service.set_approval(review.id, True, admin).is_approved
    assert sample_package.average_rating == 5.0


def test_list_filters(service, customer, other_customer, admin, sample_hotel):
    first = service.create_review(customer, hotel_review(sample_hotel, rating=5))
    service.create_review(other_customer, hotel_review(sample_hotel, rating=1))
    service.set_approval(first.id, True, admin)

    assert service.list_reviews(review_type=ReviewType.HOTEL, item_id=sample_hotel.id).total == 2
    assert service.list_reviews(is_approved=True).total == 1
    assert service.list_reviews(min_rating=2).total == 1
    assert service.list_reviews(user_id=other_customer.id, max_rating=1).total == 1
