from datetime import datetime


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["service"] == "Geo Project Manager"
    assert body["version"] == "1.0.0"
    assert body["timestamp"].endswith("Z")
    datetime.strptime(body["timestamp"], "%Y-%m-%dT%H:%M:%S.%fZ")


def test_unknown_route(client):
    assert client.get("/api/unknown").status_code == 404
