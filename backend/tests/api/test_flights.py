"""
航班目录 API 测试：航空公司、机场、航班与锁座
"""
from datetime import datetime, timedelta

import pytest

DEPARTURE = (datetime.utcnow() + timedelta(days=20)).replace(hour=9, minute=0, second=0, microsecond=0)


@pytest.fixture
def route(client, admin_headers):
    airline = client.post("/airlines", headers=admin_headers, json={
        "name": "Biman Bangladesh", "iata_code": "bg", "country": "Bangladesh",
    }).json()
    dac = client.post("/airports", headers=admin_headers, json={
        "iata_code": "dac", "icao_code": "vghs", "name": "Hazrat Shahjalal International",
        "city": "Dhaka", "country": "Bangladesh", "is_hub": True,
    }).json()
    med = client.post("/airports", headers=admin_headers, json={
        "iata_code": "MED", "name": "Prince Mohammad bin Abdulaziz", "city": "Madinah",
        "country": "Saudi Arabia",
    }).json()
    return airline, dac, med


@pytest.fixture
def flight(client, admin_headers, route):
    airline, dac, med = route
    response = client.post("/flights", headers=admin_headers, json={
        "flight_number": "bg135",
        "airline_id": airline["id"],
        "departure_airport_id": dac["id"],
        "arrival_airport_id": med["id"],
        "departure_time": DEPARTURE.isoformat(),
        "arrival_time": (DEPARTURE + timedelta(hours=7, minutes=15)).isoformat(),
        "aircraft_type": "A320",
        "total_seats": 180,
        "base_price": "850.00",
    })
    assert response.status_code == 201
    return response.json()


def test_catalog_writes_require_manage_flights(client, customer_headers, route):
    airline, dac, med = route
    assert client.post("/airlines", headers=customer_headers, json={"name": "X"}).status_code == 403
    assert client.put(f"/airports/{dac['id']}", headers=customer_headers,
                      json={"is_hub": False}).status_code == 403
    assert client.post("/flights", json={}).status_code in (401, 403)


def test_airline_endpoints(client, admin_headers, route):
    airline = route[0]
    assert airline["iata_code"] == "BG"

    assert client.get("/airlines").json()["meta"]["total"] == 1
    assert [a["id"] for a in client.get("/airlines/search", params={"q": "biman"}).json()] == [airline["id"]]

    duplicate = client.post("/airlines", headers=admin_headers, json={"name": "Other", "iata_code": "BG"})
    assert duplicate.status_code == 409

    assert client.delete(f"/airlines/{airline['id']}", headers=admin_headers).json() == {"message": "航空公司已停用"}
    assert client.get(f"/airlines/{airline['id']}").status_code == 404


def test_airport_endpoints(client, admin_headers, route):
    _, dac, med = route
    assert dac["iata_code"] == "DAC" and dac["icao_code"] == "VGHS"

    assert client.get("/airports/by-iata/med").json()["id"] == med["id"]
    assert client.get("/airports/by-icao/VGHS").json()["id"] == dac["id"]
    assert client.get("/airports/by-iata/XXX").status_code == 404
    assert [a["iata_code"] for a in client.get("/airports/hubs").json()] == ["DAC"]
    assert client.get("/airports", params={"country": "saudi"}).json()["meta"]["total"] == 1
    assert client.get("/airports/search", params={"q": "madinah"}).json()[0]["id"] == med["id"]


def test_create_flight(flight):
    assert flight["flight_number"] == "BG135"
    assert flight["duration_minutes"] == 435
    assert flight["available_seats"] == 180
    assert flight["airline"]["iata_code"] == "BG"
    assert flight["departure_airport"]["city"] == "Dhaka"


def test_create_flight_validation(client, admin_headers, route):
    airline, dac, _ = route
    response = client.post("/flights", headers=admin_headers, json={
        "flight_number": "BG001",
        "airline_id": airline["id"],
        "departure_airport_id": dac["id"],
        "arrival_airport_id": dac["id"],
        "departure_time": DEPARTURE.isoformat(),
        "arrival_time": (DEPARTURE + timedelta(hours=1)).isoformat(),
        "total_seats": 10,
        "base_price": "100",
    })
    assert response.status_code == 400


def test_search(client, flight):
    params = {"from": "DAC", "to": "madinah", "departure_date": DEPARTURE.date().isoformat()}
    body = client.get("/flights", params=params).json()
    assert [f["id"] for f in body["data"]] == [flight["id"]]

    assert client.get("/flights", params={**params, "to": "JED"}).json()["meta"]["total"] == 0
    assert client.get("/flights", params={"cabin_class": ["business"]}).json()["meta"]["total"] == 0
    assert client.get("/flights", params={"max_price": 500}).json()["meta"]["total"] == 0
    assert client.get("/flights", params={"sort_by": "cheapest"}).status_code == 422


def test_update_and_delete(client, admin_headers, flight):
    response = client.put(f"/flights/{flight['id']}", headers=admin_headers, json={"status": "delayed"})
    assert response.json()["status"] == "delayed"

    assert client.delete(f"/flights/{flight['id']}", headers=admin_headers).json() == {"message": "航班已停用"}
    assert client.get(f"/flights/{flight['id']}").status_code == 404


def test_seat_hold_and_release(client, flight, customer_headers, other_customer_headers):
    seats = client.get(f"/flights/{flight['id']}/seats").json()
    assert len(seats) == 30 * 6
    seat = seats[0]

    hold_url = f"/flights/{flight['id']}/seats/{seat['id']}/hold"
    release_url = f"/flights/{flight['id']}/seats/{seat['id']}/release"

    assert client.post(hold_url).status_code in (401, 403)
    held = client.post(hold_url, headers=customer_headers)
    assert held.status_code == 200
    assert held.json()["status"] == "reserved"

    assert client.post(hold_url, headers=other_customer_headers).status_code == 409
    assert client.post(release_url, headers=other_customer_headers).status_code == 403
    assert len(client.get(f"/flights/{flight['id']}/seats").json()) == 30 * 6 - 1

    released = client.post(release_url, headers=customer_headers)
    assert released.json()["status"] == "available"
    assert client.post(release_url, headers=customer_headers).status_code == 400
