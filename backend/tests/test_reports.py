from backend.clubpulse.models.admin_action import AdminAction
from backend.clubpulse.models.queue_entry import EmailStatus
from conftest import PANEL_HEADERS, MEMBER_HEADERS

DISTRIBUTION_ROWS = [
    ["A", "a@club.org", 0, "Executive"],
    ["B", "b@club.org", 2, "Executive"],
    ["C", "c@club.org", 4, "Executive"],
    ["D", "d@club.org", 9, "Executive"],
    ["E", "e@club.org", 12, "Executive"],
    ["F", "", 3, "Executive"],
]


def test_dashboard_summary(client, db, make_entry):
    make_entry("a@club.org")
    make_entry("b@club.org")
    make_entry("c@club.org", EmailStatus.SENT)
    for i in range(7):
        db.add(AdminAction(admin_user_id="p", admin_user_email="panel@club.org", action="APPROVE_EMAIL", details={"n": i}))
    db.commit()

    r = client.get("/api/dashboard", headers=PANEL_HEADERS)
    assert r.status_code == 200
    body = r.json()
    assert body["pendingEmailCount"] == 2
    assert len(body["recentAdminLogs"]) == 5
    assert client.get("/api/dashboard", headers=MEMBER_HEADERS).status_code == 403


def test_analytics_buckets(client, wire):
    wire(rows=DISTRIBUTION_ROWS)
    r = client.get("/api/analytics", headers=PANEL_HEADERS)
    assert r.status_code == 200
    body = r.json()
    assert body["totalMembers"] == 5
    assert body["activeCount"] == 2
    assert body["belowThresholdCount"] == 3
    assert body["invalidRows"] == 1
    assert body["activityDistribution"] == [
        {"range": "0", "count": 1},
        {"range": "1-2", "count": 1},
        {"range": "3-4", "count": 1},
        {"range": "5-9", "count": 1},
        {"range": "10+", "count": 1},
    ]


def test_member_status(client, wire):
    wire()
    r = client.get("/api/members/me", headers=MEMBER_HEADERS)
    assert r.status_code == 200
    status = r.json()["status"]
    assert status["email"] == "ana@club.org"
    assert status["activityCount"] == 2
    assert status["effectiveThreshold"] == 5
    assert status["statusMessage"] == "Below threshold"

    missing = client.get("/api/members/me", headers={**MEMBER_HEADERS, "X-Operator-Email": "ghost@club.org"})
    assert missing.status_code == 404
    assert client.get("/api/members/me").status_code == 403


def test_warning_and_admin_logs(client, make_entry):
    make_entry("a@club.org")
    make_entry("b@club.org")
    client.post("/api/queue/approve-all", headers=PANEL_HEADERS)

    warnings = client.get("/api/logs/warnings", headers=PANEL_HEADERS).json()
    assert warnings["total"] == 2
    assert {w["status"] for w in warnings["items"]} == {"APPROVED"}
    only_b = client.get("/api/logs/warnings?recipient=B@club.org", headers=PANEL_HEADERS).json()
    assert [w["recipient_email"] for w in only_b["items"]] == ["b@club.org"]

    admin = client.get("/api/logs/admin", headers=PANEL_HEADERS).json()
    assert admin["total"] == 1
    assert admin["items"][0]["action"] == "APPROVE_ALL_EMAILS"
    assert client.get("/api/logs/admin", headers=MEMBER_HEADERS).status_code == 403


def test_member_status_on_track(client, wire):
    wire()
    headers = {**MEMBER_HEADERS, "X-Operator-Email": "Ben@Club.org"}
    r = client.get("/api/members/me", headers=headers)
    assert r.status_code == 200
    status = r.json()["status"]
    assert status["email"] == "ben@club.org"
    assert status["activityCount"] == 7
    assert status["statusMessage"] == "On track"
