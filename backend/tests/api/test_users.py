"""
用户 API 测试：个人中心与后台管理
"""
from gouraan.models.entities import UserStatus


class TestProfile:

    def test_update_profile(self, client, customer_headers):
        response = client.put("/users/me", headers=customer_headers, json={"first_name": "Aisha"})
        assert response.status_code == 200
        assert response.json()["first_name"] == "Aisha"

    def test_phone_taken(self, client, customer, other_customer_headers):
        response = client.put("/users/me", headers=other_customer_headers, json={"phone": customer.phone})
        assert response.status_code == 409

    def test_preferences_created_on_demand(self, client, customer_headers):
        response = client.get("/users/me/preferences", headers=customer_headers)
        assert response.status_code == 200
        assert response.json()["language"] == "en"

        response = client.put("/users/me/preferences", headers=customer_headers,
                              json={"language": "ar", "sms_notifications": False})
        assert response.json()["language"] == "ar"
        assert response.json()["sms_notifications"] is False

    def test_unsupported_language(self, client, customer_headers):
        response = client.put("/users/me/preferences", headers=customer_headers, json={"language": "fr"})
        assert response.status_code == 422

    def test_stats_and_history(self, client, customer_headers):
        stats = client.get("/users/me/stats", headers=customer_headers).json()
        assert stats["total_bookings"] == 0
        assert stats["loyalty_points"] == 0

        history = client.get("/users/me/bookings", headers=customer_headers).json()
        assert history["data"] == []
        assert history["meta"]["total"] == 0

    def test_devices(self, client, customer_headers):
        response = client.post("/users/me/devices", headers=customer_headers,
                               json={"push_token": "fcm-abc", "platform": "ios"})
        assert response.status_code == 201
        device_id = response.json()["id"]

        assert client.delete(f"/users/me/devices/{device_id}", headers=customer_headers).status_code == 200
        assert client.delete("/users/me/devices/9999", headers=customer_headers).status_code == 404


class TestDeactivation:

    def test_deactivate_then_reactivate(self, client, customer, customer_headers):
        assert client.post("/users/me/deactivate", headers=customer_headers).status_code == 200
        assert client.get("/users/me", headers=customer_headers).status_code == 401

        wrong = client.post("/users/reactivate", json={"email": customer.email, "password": "bad"})
        assert wrong.status_code == 401

        response = client.post("/users/reactivate", json={"email": customer.email, "password": "Password123"})
        assert response.status_code == 200
        assert response.json()["status"] == "active"
        assert client.get("/users/me", headers=customer_headers).status_code == 200

    def test_suspended_cannot_reactivate(self, client, create_user):
        user = create_user(status=UserStatus.SUSPENDED)
        response = client.post("/users/reactivate", json={"email": user.email, "password": "Password123"})
        assert response.status_code == 400


class TestAdmin:

    def test_list_requires_manage_users(self, client, support_headers):
        assert client.get("/users", headers=support_headers).status_code == 403

    def test_list_and_filter(self, client, admin_headers, customer, support_user):
        body = client.get("/users", headers=admin_headers, params={"role": "customer"}).json()
        assert [u["id"] for u in body["data"]] == [customer.id]

        body = client.get("/users", headers=admin_headers, params={"search": "support@"}).json()
        assert body["meta"]["total"] == 1

    def test_change_status_and_role(self, client, admin_headers, customer):
        response = client.put(f"/users/{customer.id}/status", headers=admin_headers, json={"status": "suspended"})
        assert response.json()["status"] == "suspended"

        response = client.put(f"/users/{customer.id}/role", headers=admin_headers, json={"role": "travel_agent"})
        assert response.json()["role"] == "travel_agent"

    def test_cannot_change_self(self, client, admin, admin_headers):
        response = client.put(f"/users/{admin.id}/role", headers=admin_headers, json={"role": "customer"})
        assert response.status_code == 400

    def test_get_missing_user(self, client, admin_headers):
        assert client.get("/users/9999", headers=admin_headers).status_code == 404
