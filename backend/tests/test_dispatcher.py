from sqlalchemy.exc import OperationalError

from backend.clubpulse.models.audit_log import AuditLogEntry
from backend.clubpulse.models.queue_entry import QueueEntry, EmailStatus
from backend.clubpulse.services import dispatcher
from backend.clubpulse.services.dispatcher import process_queue
from conftest import FakeMailer


def test_sends_approved_entries_only(db, make_entry):
    approved = make_entry("ana@club.org", EmailStatus.APPROVED, name="Ana")
    queued = make_entry("ben@club.org", EmailStatus.QUEUED)
    mailer = FakeMailer()
    result = process_queue(db, mailer)
    assert result.success
    assert result.data == {"processed": 1, "sent": 1, "failed": 0}
    assert [m["to"] for m in mailer.sent] == ["ana@club.org"]
    assert mailer.sent[0]["html"] == approved.body_html

    db.expire_all()
    sent = db.get(QueueEntry, approved.id)
    assert sent.status == EmailStatus.SENT
    assert sent.message_id == "msg-1"
    assert sent.sent_at is not None
    log_row = db.query(AuditLogEntry).filter(AuditLogEntry.queue_entry_id == approved.id).one()
    assert log_row.status == EmailStatus.SENT
    assert log_row.email_sent_at is not None
    assert db.get(QueueEntry, queued.id).status == EmailStatus.QUEUED


def test_provider_errors_mark_failed_and_continue(db, make_entry):
    ok = make_entry("ana@club.org", EmailStatus.APPROVED)
    rejected = make_entry("bad@club.org", EmailStatus.APPROVED)
    crashed = make_entry("boom@club.org", EmailStatus.APPROVED)
    mailer = FakeMailer(fail_for={"bad@club.org"}, raise_for={"boom@club.org"})
    result = process_queue(db, mailer)
    assert result.data == {"processed": 3, "sent": 1, "failed": 2}
    db.expire_all()
    assert db.get(QueueEntry, ok.id).status == EmailStatus.SENT
    for entry in (rejected, crashed):
        row = db.get(QueueEntry, entry.id)
        assert row.status == EmailStatus.FAILED
        assert row.message_id is None
        assert db.query(AuditLogEntry).filter(AuditLogEntry.queue_entry_id == entry.id).one().status == EmailStatus.FAILED


def test_unrecorded_send_is_marked_failed(db, make_entry, monkeypatch):
    entry = make_entry("ana@club.org", EmailStatus.APPROVED)
    original = dispatcher._sync_audit

    def flaky_sync(session, e, status, sent_at=None):
        if status == EmailStatus.SENT:
            raise OperationalError("UPDATE warning_logs", {}, Exception("database is locked"))
        return original(session, e, status, sent_at)

    monkeypatch.setattr(dispatcher, "_sync_audit", flaky_sync)
    result = process_queue(db, FakeMailer())
    assert result.data == {"processed": 1, "sent": 0, "failed": 1}
    db.expire_all()
    row = db.get(QueueEntry, entry.id)
    assert row.status == EmailStatus.FAILED
    assert row.message_id is None


def test_nothing_approved(db, make_entry):
    make_entry("ana@club.org", EmailStatus.QUEUED)
    result = process_queue(db, FakeMailer())
    assert result.success
    assert result.data == {"processed": 0, "sent": 0, "failed": 0}


def test_failed_entries_are_not_retried(db, make_entry):
    make_entry("ana@club.org", EmailStatus.FAILED)
    mailer = FakeMailer()
    process_queue(db, mailer)
    assert mailer.sent == []


def test_operator_dispatch_requires_panel(db, guest, make_entry):
    make_entry("ana@club.org", EmailStatus.APPROVED)
    mailer = FakeMailer()
    result = process_queue(db, mailer, actor=guest)
    assert result.http_status == 403
    assert mailer.sent == []
