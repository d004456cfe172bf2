from proasset.models import Location
from proasset.services.locations import hierarchical_locations


def test_hierarchy_is_depth_first_with_levels():
    locs = [
        Location(id="a", name="Jakarta"),
        Location(id="b", name="Bandung"),
        Location(id="a1", name="Floor 1", parent_id="a"),
        Location(id="a1x", name="Server Room", parent_id="a1"),
        Location(id="a2", name="Floor 2", parent_id="a"),
    ]
    rows = hierarchical_locations(locs)
    assert [(r["id"], r["level"]) for r in rows] == [
        ("a", 0), ("a1", 1), ("a1x", 2), ("a2", 1), ("b", 0),
    ]


def test_create_child_and_tree(client, admin):
    root = client.post("/locations", json={"name": "HQ"}, headers=admin).json()
    child = client.post("/locations", json={"name": "Room 101", "parent_id": root["id"]}, headers=admin).json()
    assert child["parent_id"] == root["id"]

    tree = client.get("/locations/tree", headers=admin).json()
    assert [(r["name"], r["level"]) for r in tree] == [("HQ", 0), ("Room 101", 1)]


def test_parent_must_exist(client, admin):
    r = client.post("/locations", json={"name": "Orphan", "parent_id": "nope"}, headers=admin)
    assert r.status_code == 404


def test_delete_refused_with_children_or_assets(client, admin, new_asset, location):
    child = client.post("/locations", json={"name": "Annex", "parent_id": location["id"]}, headers=admin).json()

    r = client.delete(f"/locations/{location['id']}", headers=admin)
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "LOCATION_HAS_CHILDREN"

    assert client.delete(f"/locations/{child['id']}", headers=admin).status_code == 200

    new_asset("Cabinet")
    r = client.delete(f"/locations/{location['id']}", headers=admin)
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "LOCATION_HAS_ASSETS"


def test_viewer_cannot_create_location(client, make_user):
    viewer = make_user("v", "VIEWER")
    assert client.post("/locations", json={"name": "X"}, headers=viewer).status_code == 403
    assert client.get("/locations", headers=viewer).status_code == 200
