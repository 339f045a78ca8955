"""
机票预订 API 测试
"""
import pytest

FLIGHT = {
    "pnr": "QRX123",
    "total_fare": "2900.00",
    "contact_email": "traveller@example.com",
    "segments": [{
        "airline_code": "SV", "flight_number": "SV803",
        "departure_airport": "DAC", "arrival_airport": "JED",
        "departure_time": "2026-12-10T02:00:00", "arrival_time": "2026-12-10T07:30:00",
    }],
    "passengers": [{"first_name": "Karim", "last_name": "Hossain", "passport_number": "EB1234567"}],
}


@pytest.fixture
def booking(client, customer_headers):
    response = client.post("/flight-bookings", headers=customer_headers, json=FLIGHT)
    assert response.status_code == 201, response.text
    return response.json()


def test_create(booking, customer):
    assert booking["user_id"] == customer.id
    assert booking["status"] == "pending"
    assert booking["is_direct"] is True
    assert booking["total_travel_time"] == 330
    assert booking["passengers"][0]["first_name"] == "Karim"


def test_duplicate_pnr(client, customer_headers, booking):
    assert client.post("/flight-bookings", headers=customer_headers, json=FLIGHT).status_code == 409


def test_customer_sees_only_own(client, booking, other_customer_headers, support_headers):
    assert client.get("/flight-bookings", headers=other_customer_headers).json()["meta"]["total"] == 0
    assert client.get(f"/flight-bookings/{booking['id']}", headers=other_customer_headers).status_code == 404
    assert client.get("/flight-bookings", headers=support_headers).json()["meta"]["total"] == 1


def test_lookup(client, booking, customer_headers):
    assert client.get("/flight-bookings/pnr/qrx123", headers=customer_headers).json()["id"] == booking["id"]
    response = client.get(f"/flight-bookings/reference/{booking['booking_reference']}", headers=customer_headers)
    assert response.json()["pnr"] == "QRX123"


def test_update_ignores_pnr(client, booking, customer_headers):
    response = client.put(f"/flight-bookings/{booking['id']}", headers=customer_headers,
                          json={"pnr": "NEWPNR", "contact_phone": "+8801800000000"})
    assert response.json()["pnr"] == "QRX123"
    assert response.json()["contact_phone"] == "+8801800000000"


def test_ticketing_requires_manage_flights(client, booking, customer_headers, admin_headers):
    passenger_id = booking["passengers"][0]["id"]
    payload = {"passenger_id": passenger_id, "ticket_number": "0651234567890"}

    assert client.post(f"/flight-bookings/{booking['id']}/tickets", headers=customer_headers,
                       json=payload).status_code == 403

    response = client.post(f"/flight-bookings/{booking['id']}/tickets", headers=admin_headers, json=payload)
    assert response.status_code == 201
    assert client.get(f"/flight-bookings/{booking['id']}", headers=admin_headers).json()["status"] == "ticketed"


def test_cancel_and_report(client, booking, customer_headers, finance_headers):
    response = client.post(f"/flight-bookings/{booking['id']}/cancel", headers=customer_headers)
    assert response.json()["status"] == "cancelled"
    assert response.json()["cancellation_reason"] == "Cancelled by user"

    report = client.get("/flight-bookings/report", headers=finance_headers).json()
    assert report["total_bookings"] == 1
    assert report["total_passengers"] == 1


def test_delete(client, booking, customer_headers, admin_headers):
    assert client.delete(f"/flight-bookings/{booking['id']}", headers=customer_headers).status_code == 403
    assert client.delete(f"/flight-bookings/{booking['id']}", headers=admin_headers).status_code == 200
