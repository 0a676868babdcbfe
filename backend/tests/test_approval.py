from backend.clubpulse.core.results import ErrorKind
from backend.clubpulse.models.admin_action import AdminAction, APPROVE_EMAIL, CANCEL_EMAIL, APPROVE_ALL
from backend.clubpulse.models.audit_log import AuditLogEntry
from backend.clubpulse.models.queue_entry import QueueEntry, EmailStatus
from backend.clubpulse.services.approval import transition_entry, approve_all


def _audit_status(db, entry_id):
    return db.query(AuditLogEntry).filter(AuditLogEntry.queue_entry_id == entry_id).one().status


def test_approve_updates_entry_log_and_admin_action(db, panel, make_entry):
    entry = make_entry("ana@club.org")
    result = transition_entry(db, entry.id, "APPROVED", panel)
    assert result.success
    assert result.data == {"id": entry.id, "status": "APPROVED"}
    db.expire_all()
    assert db.get(QueueEntry, entry.id).status == EmailStatus.APPROVED
    assert _audit_status(db, entry.id) == EmailStatus.APPROVED
    action = db.query(AdminAction).one()
    assert action.action == APPROVE_EMAIL
    assert action.admin_user_email == "panel@club.org"
    assert action.details["emailId"] == entry.id
    assert action.details["previousStatus"] == "QUEUED"
    assert action.details["newStatus"] == "APPROVED"


def test_cancel(db, panel, make_entry):
    entry = make_entry("ed@club.org")
    result = transition_entry(db, entry.id, "canceled", panel)
    assert result.success
    db.expire_all()
    assert db.get(QueueEntry, entry.id).status == EmailStatus.CANCELED
    assert _audit_status(db, entry.id) == EmailStatus.CANCELED
    assert db.query(AdminAction).one().action == CANCEL_EMAIL


def test_only_queued_entries_can_be_reviewed(db, panel, make_entry):
    entry = make_entry("ana@club.org", EmailStatus.SENT)
    result = transition_entry(db, entry.id, "CANCELED", panel)
    assert not result.success
    assert result.error == ErrorKind.CONFLICT
    assert result.http_status == 409
    db.expire_all()
    assert db.get(QueueEntry, entry.id).status == EmailStatus.SENT
    assert db.query(AdminAction).count() == 0


def test_second_review_conflicts(db, panel, make_entry):
    entry = make_entry("ana@club.org")
    assert transition_entry(db, entry.id, "APPROVED", panel).success
    again = transition_entry(db, entry.id, "CANCELED", panel)
    assert again.error == ErrorKind.CONFLICT
    assert db.query(AdminAction).count() == 1


def test_invalid_target_and_missing_entry(db, panel, make_entry):
    entry = make_entry("ana@club.org")
    assert transition_entry(db, entry.id, "SENT", panel).error == ErrorKind.VALIDATION
    assert transition_entry(db, entry.id, "bogus", panel).http_status == 400
    assert transition_entry(db, 9999, "APPROVED", panel).error == ErrorKind.NOT_FOUND


def test_non_panel_cannot_review(db, guest, make_entry):
    entry = make_entry("ana@club.org")
    result = transition_entry(db, entry.id, "APPROVED", guest)
    assert result.error == ErrorKind.UNAUTHORIZED
    db.expire_all()
    assert db.get(QueueEntry, entry.id).status == EmailStatus.QUEUED


def test_approve_all_is_one_action(db, panel, make_entry):
    a = make_entry("a@club.org")
    b = make_entry("b@club.org")
    c = make_entry("c@club.org", EmailStatus.CANCELED)
    result = approve_all(db, panel)
    assert result.success
    assert result.data["approved"] == 2
    assert sorted(result.data["ids"]) == sorted([a.id, b.id])
    db.expire_all()
    assert db.get(QueueEntry, c.id).status == EmailStatus.CANCELED
    assert _audit_status(db, a.id) == EmailStatus.APPROVED
    action = db.query(AdminAction).one()
    assert action.action == APPROVE_ALL
    assert action.details["count"] == 2


def test_approve_all_with_nothing_queued(db, panel):
    result = approve_all(db, panel)
    assert result.success
    assert result.data["approved"] == 0
    assert db.query(AdminAction).count() == 0


def test_approve_all_reports_only_entries_it_flipped(db, panel, make_entry, monkeypatch):
    from backend.clubpulse.services import approval
    a = make_entry("a@club.org")
    b = make_entry("b@club.org")
    original = approval._approve_if_queued

    def lost_race_for_b(session, entry_id, now):
        if entry_id == b.id:
            return False
        return original(session, entry_id, now)

    monkeypatch.setattr(approval, "_approve_if_queued", lost_race_for_b)
    result = approve_all(db, panel)
    assert result.data == {"approved": 1, "ids": [a.id]}
    action = db.query(AdminAction).one()
    assert action.details == {"count": 1, "emailIds": [a.id]}
    db.expire_all()
    assert _audit_status(db, b.id) == EmailStatus.QUEUED
