from backend.clubpulse.core.results import ErrorKind
from backend.clubpulse.models.admin_action import AdminAction, UPDATE_THRESHOLD
from backend.clubpulse.models.role_threshold import RoleThreshold
from backend.clubpulse.services.thresholds import upsert_threshold
from conftest import PANEL_HEADERS, MEMBER_HEADERS


def test_upsert_creates_then_updates(db, panel):
    first = upsert_threshold(db, "  Executive ", 3, panel)
    assert first.success
    assert first.data["threshold"]["role_name"] == "executive"
    second = upsert_threshold(db, "EXECUTIVE", 4, panel)
    assert second.success
    rows = db.query(RoleThreshold).all()
    assert [(r.role_name, r.threshold) for r in rows] == [("executive", 4)]
    actions = db.query(AdminAction).order_by(AdminAction.id).all()
    assert [a.action for a in actions] == [UPDATE_THRESHOLD, UPDATE_THRESHOLD]
    assert actions[0].details == {"roleName": "executive", "oldThreshold": None, "newThreshold": 3}
    assert actions[1].details["oldThreshold"] == 3


def test_upsert_validation(db, panel, guest):
    assert upsert_threshold(db, "", 3, panel).error == ErrorKind.VALIDATION
    assert upsert_threshold(db, "executive", -1, panel).error == ErrorKind.VALIDATION
    assert upsert_threshold(db, "executive", True, panel).error == ErrorKind.VALIDATION
    assert upsert_threshold(db, "executive", 3, guest).error == ErrorKind.UNAUTHORIZED
    assert db.query(RoleThreshold).count() == 0
    assert db.query(AdminAction).count() == 0


def test_threshold_routes(client):
    r = client.put("/api/thresholds", json={"role_name": "New Recruit", "threshold": 2}, headers=PANEL_HEADERS)
    assert r.status_code == 200
    assert r.json()["threshold"]["threshold"] == 2

    listed = client.get("/api/thresholds", headers=MEMBER_HEADERS)
    assert listed.status_code == 200
    assert [(t["role_name"], t["threshold"]) for t in listed.json()] == [("new recruit", 2)]

    assert client.put("/api/thresholds", json={"role_name": "x", "threshold": 2}, headers=MEMBER_HEADERS).status_code == 403
    assert client.put("/api/thresholds", json={"role_name": "x", "threshold": -2}, headers=PANEL_HEADERS).status_code == 400


def test_sheet_roles(client, wire):
    wire(rows=[
        ["A", "a@club.org", 1, "Executive"],
        ["B", "b@club.org", 1, "executive"],
        ["C", "c@club.org", 1, "co-director"],
        ["D", "d@club.org", 1],
    ])
    r = client.get("/api/thresholds/roles", headers=PANEL_HEADERS)
    assert r.status_code == 200
    assert r.json()["roles"] == ["co-director", "Executive"]
