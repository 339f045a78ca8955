"""
评价 API 测试
"""


def review(client, headers, item_id, rating=4, review_type="hotel"):
    return client.post("/reviews", headers=headers, json={
        "review_type": review_type, "item_id": item_id, "rating": rating, "title": "Great stay",
    })


def test_create_is_pending(client, customer_headers, sample_hotel):
    response = review(client, customer_headers, sample_hotel.id)
    assert response.status_code == 201
    assert response.json()["is_approved"] is False

    assert review(client, customer_headers, sample_hotel.id).status_code == 409


def test_unknown_item(client, customer_headers):
    assert review(client, customer_headers, 404, review_type="package").status_code == 404


def test_rating_validation(client, customer_headers, sample_hotel):
    assert review(client, customer_headers, sample_hotel.id, rating=6).status_code == 422


def test_approval_updates_stats(client, customer_headers, other_customer_headers, admin_headers, sample_hotel):
    first = review(client, customer_headers, sample_hotel.id, rating=5).json()
    second = review(client, other_customer_headers, sample_hotel.id, rating=2).json()

    stats = client.get(f"/reviews/stats/hotel/{sample_hotel.id}").json()
    assert stats == {"average_rating": 0.0, "review_count": 0}

    for r in (first, second):
        response = client.patch(f"/reviews/{r['id']}/approve", headers=admin_headers)
        assert response.json()["is_approved"] is True

    stats = client.get(f"/reviews/stats/hotel/{sample_hotel.id}").json()
    assert stats == {"average_rating": 3.5, "review_count": 2}
    assert client.get(f"/hotels/{sample_hotel.id}").json()["average_rating"] == 3.5

    client.patch(f"/reviews/{second['id']}/approve", headers=admin_headers, params={"approved": "false"})
    stats = client.get(f"/reviews/stats/hotel/{sample_hotel.id}").json()
    assert stats == {"average_rating": 5.0, "review_count": 1}


def test_customer_cannot_approve(client, customer_headers, sample_hotel):
    created = review(client, customer_headers, sample_hotel.id).json()
    response = client.patch(f"/reviews/{created['id']}/approve", headers=customer_headers)
    assert response.status_code == 403


def test_list_filters(client, customer_headers, admin_headers, sample_hotel, sample_package):
    hotel_review = review(client, customer_headers, sample_hotel.id).json()
    review(client, customer_headers, sample_package.id, review_type="package")
    client.patch(f"/reviews/{hotel_review['id']}/approve", headers=admin_headers)

    body = client.get("/reviews", params={"review_type": "hotel"}).json()
    assert [r["id"] for r in body["data"]] == [hotel_review["id"]]

    body = client.get("/reviews", params={"is_approved": "false"}).json()
    assert body["meta"]["total"] == 1


def test_update_and_delete_own(client, customer_headers, other_customer_headers, sample_hotel):
    created = review(client, customer_headers, sample_hotel.id).json()

    response = client.put(f"/reviews/{created['id']}", headers=other_customer_headers, json={"rating": 1})
    assert response.status_code == 403

    response = client.put(f"/reviews/{created['id']}", headers=customer_headers, json={"rating": 3})
    assert response.json()["rating"] == 3

    response = client.delete(f"/reviews/{created['id']}", headers=customer_headers)
    assert response.json() == {"message": "评价已删除"}
    assert client.get(f"/reviews/{created['id']}").status_code == 404
