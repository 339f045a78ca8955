"""
通知 API 测试
"""
from datetime import datetime, timedelta


def send(client, headers, user, **extra):
    payload = {"user_id": user.id, "notification_type": "system_alert",
               "title": "Hajj briefing", "message": "Briefing at 8pm", **extra}
    return client.post("/notifications/send", headers=headers, json=payload)


def test_send_requires_manage_users(client, support_headers, customer):
    assert send(client, support_headers, customer).status_code == 403


def test_send_and_read(client, admin_headers, customer, customer_headers):
    response = send(client, admin_headers, customer, channels=["email", "sms"])
    assert response.status_code == 201
    notification = response.json()
    assert notification["status"] == "sent"

    assert client.get("/notifications/unread-count", headers=customer_headers).json() == {"count": 1}
    listing = client.get("/notifications", headers=customer_headers).json()
    assert [n["id"] for n in listing["data"]] == [notification["id"]]

    response = client.patch(f"/notifications/{notification['id']}/read", headers=customer_headers)
    assert response.json()["is_read"] is True
    assert client.get("/notifications", headers=customer_headers,
                      params={"unread_only": True}).json()["meta"]["total"] == 0


def test_cannot_read_others(client, admin_headers, customer, other_customer_headers):
    notification = send(client, admin_headers, customer).json()
    response = client.patch(f"/notifications/{notification['id']}/read", headers=other_customer_headers)
    assert response.status_code == 404


def test_read_all_and_stats(client, admin_headers, customer, customer_headers):
    send(client, admin_headers, customer)
    send(client, admin_headers, customer, channels=["push"])

    stats = client.get("/notifications/stats", headers=customer_headers).json()
    assert stats["total"] == 2
    assert stats["failed"] == 1

    assert client.patch("/notifications/read-all", headers=customer_headers).json() == {"updated": 2}


def test_scheduled(client, admin_headers, customer):
    later = (datetime.utcnow() + timedelta(hours=3)).isoformat()
    notification = send(client, admin_headers, customer, scheduled_at=later).json()
    assert notification["status"] == "scheduled"
    assert client.post("/notifications/process-scheduled", headers=admin_headers).json() == {"processed": 0}


def test_bulk_and_segment(client, admin_headers, customer, other_customer):
    response = client.post("/notifications/bulk", headers=admin_headers, json={
        "user_ids": [customer.id, other_customer.id], "notification_type": "promotional",
        "title": "Eid offer", "message": "10% off",
    })
    assert response.json() == {"total": 2, "sent": 2, "failed": 0}

    response = client.post("/notifications/segment", headers=admin_headers, json={
        "segment": "PREMIUM_USERS", "title": "Gold tier", "message": "Thanks",
    })
    assert response.json()["total"] == 0

    response = client.post("/notifications/segment", headers=admin_headers, json={
        "segment": "EVERYONE", "title": "x", "message": "y",
    })
    assert response.status_code == 422


def test_global_stats_for_finance(client, finance_headers, admin_headers, customer):
    send(client, admin_headers, customer)
    assert client.get("/notifications/admin/stats", headers=finance_headers).json()["total"] == 1
