"""
通用仓储与分页测试
"""
import pytest

from gouraan.models.entities import Hotel
from gouraan.models.schemas import HotelResponse
from gouraan.repositories import BaseRepository, Page, normalize_paging


@pytest.mark.parametrize("page,limit,expected", [
    (None, None, (1, 10)),
    (0, 5, (1, 5)),
    (-3, 500, (1, 100)),
    (2, 0, (2, 10)),
])
def test_normalize_paging(page, limit, expected):
    assert normalize_paging(page, limit) == expected


def test_page_meta():
    page = Page(items=[1, 2], total=25, page=2, limit=10)
    assert page.meta() == {
        "total": 25,
        "page": 2,
        "limit": 10,
        "total_pages": 3,
        "has_next_page": True,
        "has_previous_page": True,
    }


def test_page_map():
    page = Page(items=[1, 2], total=2, page=1, limit=10).map(lambda x: x * 10)
    assert page.items == [10, 20]
    assert page.total == 2


class TestBaseRepository:

    @pytest.fixture
    def repo(self, db_session):
        repo = BaseRepository(db_session, Hotel)
        for i in range(12):
            repo.create(Hotel(name=f"Hotel {i:02d}", city="Madinah", country_code="SA"))
        db_session.commit()
        return repo

    def test_paginate_default_order(self, repo):
        page = repo.paginate(page=1, limit=5)
        assert page.total == 12
        assert len(page.items) == 5
        assert page.items[0].name == "Hotel 11"

    def test_paginate_last_page(self, repo):
        page = repo.paginate(page=3, limit=5, order_by=Hotel.name.asc())
        assert [h.name for h in page.items] == ["Hotel 10", "Hotel 11"]
        assert not page.has_next_page

    def test_find_and_count(self, repo):
        assert repo.find_one(name="Hotel 03").city == "Madinah"
        assert repo.count(city="Madinah") == 12
        assert repo.exists(name="Hotel 05")
        assert not repo.exists(name="Nope")

    def test_update_ignores_unknown_keys(self, repo, db_session):
        hotel = repo.find_one(name="Hotel 01")
        repo.update(hotel, {"city": "Jeddah", "not_a_column": 1})
        db_session.commit()
        assert repo.get_by_id(hotel.id).city == "Jeddah"

    def test_delete(self, repo, db_session):
        hotel = repo.find_one(name="Hotel 02")
        repo.delete(hotel)
        db_session.commit()
        assert repo.get_by_id(hotel.id) is None

    def test_to_response(self, repo):
        body = repo.paginate(limit=2).to_response(HotelResponse)
        assert body["meta"]["total_pages"] == 6
        assert isinstance(body["data"][0], HotelResponse)
