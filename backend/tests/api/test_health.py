"""
系统端点测试
"""
from gouraan import __version__


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"name": "GoUraan API", "version": __version__}


def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["database"] == "ok"


def test_locales(client):
    body = client.get("/i18n/locales").json()
    assert {"code": "ar", "direction": "rtl"} in body
    assert {"code": "en", "direction": "ltr"} in body
