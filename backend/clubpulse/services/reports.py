"""Read-only views for the dashboard: summary, analytics, member status, sheet roles."""
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import Settings
from ..core.results import OperationResult, ErrorKind
from ..models.queue_entry import QueueEntry, EmailStatus
from ..models.admin_action import AdminAction
from ..security.api_key import Operator
from .activity_check import fetch_member_rows
from .activity_scanner import scan_rows, parse_row, resolve_threshold, load_threshold_overrides

log = logging.getLogger(__name__)

# (label, low, high) inclusive; high None means open-ended
ACTIVITY_BUCKETS = [("0", 0, 0), ("1-2", 1, 2), ("3-4", 3, 4), ("5-9", 5, 9), ("10+", 10, None)]
RECENT_ACTIONS = 5


def _bucket(count: int) -> str:
    for label, lo, hi in ACTIVITY_BUCKETS:
        if count >= lo and (hi is None or count <= hi):
            return label
    return ACTIVITY_BUCKETS[-1][0]


def dashboard_summary(db: Session, actor: Operator) -> OperationResult:
    if not actor.is_panel:
        return OperationResult.unauthorized()
    try:
        pending = db.query(QueueEntry).filter(QueueEntry.status == EmailStatus.QUEUED).count()
        recent = db.query(AdminAction).order_by(AdminAction.timestamp.desc(), AdminAction.id.desc()).limit(RECENT_ACTIONS).all()
    except SQLAlchemyError:
        log.exception("dashboard_summary_failed")
        return OperationResult.fail(ErrorKind.INTERNAL, "Failed to fetch dashboard data.")
    return OperationResult.ok(
        "Dashboard summary loaded.",
        pendingEmailCount=pending,
        recentAdminLogs=[
            {"id": a.id, "adminUserEmail": a.admin_user_email, "action": a.action, "timestamp": a.timestamp}
            for a in recent
        ],
    )


def activity_analytics(db: Session, settings: Settings, actor: Operator, sheets=None) -> OperationResult:
    """Active vs below-threshold breakdown and activity distribution over the member sheet."""
    if not actor.is_panel:
        return OperationResult.unauthorized()
    rows, failure = fetch_member_rows(settings, sheets)
    if failure:
        return failure
    try:
        overrides = load_threshold_overrides(db)
    except SQLAlchemyError:
        log.exception("threshold_load_failed")
        return OperationResult.fail(ErrorKind.INTERNAL, "Failed to load role thresholds.")
    report = scan_rows(rows or [], overrides, settings.default_threshold)
    distribution = {label: 0 for label, _, _ in ACTIVITY_BUCKETS}
    for ev in report.valid:
        distribution[_bucket(ev.member.activity_count)] += 1
    return OperationResult.ok(
        "Analytics loaded.",
        totalMembers=len(report.valid),
        activeCount=len(report.at_or_above),
        belowThresholdCount=len(report.below),
        invalidRows=len(report.errors),
        activityDistribution=[{"range": label, "count": distribution[label]} for label, _, _ in ACTIVITY_BUCKETS],
    )


def member_status(db: Session, settings: Settings, actor: Operator, sheets=None) -> OperationResult:
    """The calling member's own row, effective threshold and standing."""
    if actor.role.value not in ("MEMBER", "PANEL") or not actor.email:
        return OperationResult.unauthorized()
    rows, failure = fetch_member_rows(settings, sheets)
    if failure:
        return failure
    for idx, row in enumerate(rows or []):
        member, _, _ = parse_row(idx, row)
        if member is None or member.email != actor.email:
            continue
        try:
            overrides = load_threshold_overrides(db)
        except SQLAlchemyError:
            log.exception("threshold_load_failed")
            return OperationResult.fail(ErrorKind.INTERNAL, "Failed to load role thresholds.")
        threshold = resolve_threshold(member.role, overrides, settings.default_threshold)
        below = member.activity_count < threshold
        return OperationResult.ok(
            "Status loaded.",
            status={
                "name": member.name,
                "email": member.email,
                "activityCount": member.activity_count,
                "role": member.role,
                "effectiveThreshold": threshold,
                "statusMessage": "Below threshold" if below else "On track",
            },
        )
    return OperationResult.fail(ErrorKind.NOT_FOUND, "Your email was not found in the activity sheet.")


def unique_roles(settings: Settings, actor: Operator, sheets=None) -> OperationResult:
    """Distinct role labels present in the sheet, for the threshold form."""
    if not actor.is_panel:
        return OperationResult.unauthorized()
    rows, failure = fetch_member_rows(settings, sheets)
    if failure:
        return failure
    seen = {}
    for idx, row in enumerate(rows or []):
        member, _, _ = parse_row(idx, row)
        if member and member.role:
            seen.setdefault(member.role.lower(), member.role)
    roles = sorted(seen.values(), key=str.lower)
    return OperationResult.ok(f"Found {len(roles)} role(s).", roles=roles)
