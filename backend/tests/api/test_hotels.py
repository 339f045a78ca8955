"""
酒店 API 测试
"""

HOTEL = {
    "name": "Madinah Hilton",
    "city": "Madinah",
    "country_code": "sa",
    "star_rating": 4,
    "amenities": ["wifi", "shuttle"],
}


def test_create_requires_manage_hotels(client, customer_headers):
    assert client.post("/hotels", headers=customer_headers, json=HOTEL).status_code == 403
    assert client.post("/hotels", json=HOTEL).status_code in (401, 403)


def test_create_and_get(client, admin_headers):
    response = client.post("/hotels", headers=admin_headers, json=HOTEL)
    assert response.status_code == 201
    hotel = response.json()
    assert hotel["country_code"] == "SA"
    assert hotel["room_count"] == 0
    assert hotel["is_active"] is True

    assert client.get(f"/hotels/{hotel['id']}").json()["name"] == "Madinah Hilton"
    assert client.get("/hotels/9999").status_code == 404


def test_duplicate_name(client, admin_headers, sample_hotel):
    response = client.post("/hotels", headers=admin_headers, json={**HOTEL, "name": sample_hotel.name})
    assert response.status_code == 409


def test_public_listing_filters(client, admin_headers, sample_hotel):
    client.post("/hotels", headers=admin_headers, json=HOTEL)

    body = client.get("/hotels").json()
    assert body["meta"]["total"] == 2
    assert [h["name"] for h in body["data"]] == ["Madinah Hilton", "Makkah Towers"]

    assert client.get("/hotels", params={"city": "makkah"}).json()["meta"]["total"] == 1
    assert client.get("/hotels", params={"min_rating": 5}).json()["meta"]["total"] == 1
    assert client.get("/hotels", params={"amenities": ["wifi", "pool"]}).json()["meta"]["total"] == 1
    assert client.get("/hotels", params={"search": "hilton"}).json()["meta"]["total"] == 1


def test_update_and_toggle(client, admin_headers, sample_hotel):
    response = client.put(f"/hotels/{sample_hotel.id}", headers=admin_headers, json={"star_rating": 4})
    assert response.json()["star_rating"] == 4

    response = client.patch(f"/hotels/{sample_hotel.id}/toggle-active", headers=admin_headers)
    assert response.json()["is_active"] is False
    assert client.get("/hotels", params={"is_active": True}).json()["meta"]["total"] == 0


def test_hotel_rooms(client, sample_room):
    body = client.get(f"/hotels/{sample_room.hotel_id}/rooms").json()
    assert [r["room_number"] for r in body["data"]] == ["101"]


def test_delete_hotel_with_rooms(client, admin_headers, sample_room):
    response = client.delete(f"/hotels/{sample_room.hotel_id}", headers=admin_headers)
    assert response.status_code == 400


def test_delete_empty_hotel(client, admin_headers, sample_hotel):
    assert client.delete(f"/hotels/{sample_hotel.id}", headers=admin_headers).status_code == 200
    assert client.get(f"/hotels/{sample_hotel.id}").status_code == 404
