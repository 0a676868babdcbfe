import os
import tempfile

# must be set before the app modules create their engine / read settings
_TMP = tempfile.mkdtemp(prefix="clubpulse-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["APP_ENV"] = "test"
os.environ.pop("CLUBPULSE_API_KEY", None)

import pytest
from fastapi.testclient import TestClient

from backend.clubpulse.core.config import Settings, get_settings
from backend.clubpulse.db.database import Base, SessionLocal, engine, ensure_schema
from backend.clubpulse.main import app
from backend.clubpulse.models.audit_log import AuditLogEntry
from backend.clubpulse.models.queue_entry import QueueEntry, EmailStatus
from backend.clubpulse.routers.deps import get_sheets, get_mail_client
from backend.clubpulse.security.api_key import Operator, Role
from backend.clubpulse.services.mailer import SendResult

ensure_schema()

PANEL_HEADERS = {"X-Operator-Id": "panel-1", "X-Operator-Email": "panel@club.org", "X-Operator-Role": "PANEL"}
MEMBER_HEADERS = {"X-Operator-Id": "member-1", "X-Operator-Email": "ana@club.org", "X-Operator-Role": "MEMBER"}

MEMBER_ROWS = [
    ["Ana", "ana@club.org", 2, "Executive"],
    ["Ben", "BEN@club.org", 7, "Executive"],
    ["Cy", "", 1, "Executive"],
    ["Di", "di@club.org", "abc", "New Recruit"],
    ["Ed", "ed@club.org", 0],
]


class FakeSheets:
    """Stands in for GoogleSheetsClient; `rows=None` simulates a failed read."""

    def __init__(self, rows=None):
        self.rows = rows
        self.ranges = []

    def get_values(self, cell_range):
        self.ranges.append(cell_range)
        return self.rows


class FakeMailer:
    """Records sends; recipients listed in `fail_for` get a provider error."""

    def __init__(self, fail_for=(), raise_for=()):
        self.fail_for = set(fail_for)
        self.raise_for = set(raise_for)
        self.sent = []

    def send(self, to, subject, html, from_=None, reply_to=None):
        if to in self.raise_for:
            raise ConnectionError("socket closed")
        if to in self.fail_for:
            return SendResult(error="domain not verified")
        self.sent.append({"to": to, "subject": subject, "html": html})
        return SendResult(id=f"msg-{len(self.sent)}")

    def close(self):
        pass


@pytest.fixture(autouse=True)
def clean_tables():
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def settings():
    return Settings(
        environment="test",
        google_sheet_id="sheet-123",
        member_data_range="Members!A2:D",
        default_threshold=5,
    )


@pytest.fixture
def panel():
    return Operator(id="panel-1", email="panel@club.org", role=Role.PANEL)


@pytest.fixture
def guest():
    return Operator(id="anonymous", email="", role=Role.GUEST)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def wire(settings):
    """Point the app at the test settings and fake collaborators; returns them for assertions."""
    def _wire(rows=MEMBER_ROWS, mailer=None, app_settings=None):
        sheets = FakeSheets(rows)
        mailer = mailer or FakeMailer()
        app.dependency_overrides[get_settings] = lambda: app_settings or settings
        app.dependency_overrides[get_sheets] = lambda: sheets
        app.dependency_overrides[get_mail_client] = lambda: mailer
        return sheets, mailer
    return _wire


@pytest.fixture
def make_entry(db):
    """Insert a QueueEntry (and its linked warning log row) directly."""
    def _make(email, status=EmailStatus.QUEUED, name="Member", message_id=None):
        entry = QueueEntry(
            recipient_email=email,
            recipient_name=name,
            subject=f"Club Activity Alert for {name}",
            body_html=f"<p>Hi {name}</p>",
            template="low_activity_generic",
            status=status,
            message_id=message_id,
        )
        db.add(entry)
        db.flush()
        db.add(AuditLogEntry(
            queue_entry_id=entry.id,
            recipient_email=email,
            recipient_name=name,
            activity_count=1,
            threshold=5,
            template_used="low_activity_generic",
            status=status,
        ))
        db.commit()
        db.refresh(entry)
        return entry
    return _make
