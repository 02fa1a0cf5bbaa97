"""A full region -> project -> pin lifecycle through the HTTP API."""


def test_region_project_pin_lifecycle(client):
    region = client.post("/api/regions", json={"name": "North America"})
    assert region.status_code == 201
    region_id = region.json()["id"]

    project = client.post(
        f"/api/regions/{region_id}/projects",
        json={
            "name": "Manhattan Survey",
            "geo_json": {"type": "Point", "coordinates": [-74.006, 40.7128]},
        },
    )
    assert project.status_code == 201
    project_id = project.json()["id"]

    pin = client.post(
        f"/api/projects/{project_id}/pins",
        json={"latitude": 40.7128, "longitude": -74.0060},
    )
    assert pin.status_code == 201
    pin_id = pin.json()["id"]
    assert pin.json()["latitude"] == "40.71280000"
    assert pin.json()["longitude"] == "-74.00600000"

    # Warm the cache, then mutate and read again
    tree = client.get(f"/api/regions/{region_id}").json()
    assert tree["projects"][0]["pins"][0]["latitude"] == "40.71280000"

    moved = client.put(f"/api/pins/{pin_id}", json={"latitude": 40.758, "longitude": -73.9855})
    assert moved.status_code == 200

    tree = client.get(f"/api/regions/{region_id}").json()
    assert tree["projects"][0]["pins"][0]["latitude"] == "40.75800000"
    assert tree["projects"][0]["pins"][0]["longitude"] == "-73.98550000"

    detail = client.get(f"/api/pins/{pin_id}").json()
    assert detail["project"]["name"] == "Manhattan Survey"
    assert detail["project"]["region"]["name"] == "North America"

    blocked = client.delete(f"/api/regions/{region_id}")
    assert blocked.status_code == 400

    deleted = client.delete(f"/api/regions/{region_id}?force_delete=true")
    assert deleted.json() == {"message": "Region and all associated data deleted successfully"}

    assert client.get("/api/regions").json() == []
    assert client.get(f"/api/projects/{project_id}").status_code == 404
    assert client.get(f"/api/pins/{pin_id}").status_code == 404
