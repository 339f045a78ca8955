"""
客服工单 API 测试
"""
import pytest


@pytest.fixture
def ticket(client, customer_headers):
    response = client.post("/support/tickets", headers=customer_headers, json={
        "title": "Refund status", "description": "When will my refund arrive?",
        "category": "refund", "priority": 2, "metadata": {"channel": "web"},
    })
    assert response.status_code == 201, response.text
    return response.json()


def test_create(ticket, customer):
    assert ticket["status"] == "open"
    assert ticket["user_id"] == customer.id
    assert ticket["metadata"] == {"channel": "web"}


def test_support_team_notified(client, support_user, ticket, outbox):
    email = outbox("email").messages_for(support_user.email)[-1]
    assert "Refund status" in email["content"]


def test_listing_scope(client, ticket, customer_headers, other_customer_headers, support_headers):
    assert client.get("/support/tickets", headers=customer_headers).json()["meta"]["total"] == 1
    assert client.get("/support/tickets", headers=other_customer_headers).json()["meta"]["total"] == 0
    assert client.get("/support/tickets", headers=support_headers).json()["meta"]["total"] == 1
    assert client.get(f"/support/tickets/{ticket['id']}", headers=other_customer_headers).status_code == 404


def test_conversation_hides_internal_notes(client, ticket, customer_headers, support_headers):
    url = f"/support/tickets/{ticket['id']}/messages"
    client.post(url, headers=support_headers, json={"content": "Refund approved by finance", "is_internal": True})
    client.post(url, headers=support_headers, json={"content": "Your refund is on its way"})

    detail = client.get(f"/support/tickets/{ticket['id']}", headers=customer_headers).json()
    assert [m["content"] for m in detail["messages"]] == ["Your refund is on its way"]
    assert detail["status"] == "waiting_customer_response"

    staff_view = client.get(f"/support/tickets/{ticket['id']}", headers=support_headers).json()
    assert len(staff_view["messages"]) == 2

    response = client.post(url, headers=customer_headers, json={"content": "secret", "is_internal": True})
    assert response.status_code == 403


def test_assign_and_status(client, ticket, support_user, support_headers, customer_headers):
    response = client.put(f"/support/tickets/{ticket['id']}/assign", headers=support_headers,
                          json={"assignee_id": support_user.id})
    assert response.json()["status"] == "in_progress"
    assert response.json()["assigned_to_id"] == support_user.id

    assert client.put(f"/support/tickets/{ticket['id']}/status", headers=customer_headers,
                      json={"status": "resolved"}).status_code == 403
    response = client.put(f"/support/tickets/{ticket['id']}/status", headers=support_headers,
                          json={"status": "resolved"})
    assert response.json()["status"] == "resolved"


def test_close(client, ticket, customer, customer_headers, outbox):
    response = client.post(f"/support/tickets/{ticket['id']}/close", headers=customer_headers)
    assert response.json()["status"] == "closed"
    assert client.post(f"/support/tickets/{ticket['id']}/close", headers=customer_headers).status_code == 400
    assert outbox("email").messages_for(customer.email)
