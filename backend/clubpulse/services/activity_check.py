import logging
from typing import Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import Settings
from ..core.events import notify, EMAIL_QUEUE_EVENT
from ..core.results import OperationResult, ErrorKind
from ..security.api_key import Operator
from .activity_scanner import scan_rows, load_threshold_overrides
from .queue_writer import queue_warnings
from .sheets import SheetRows, SheetsConfigError, get_sheets_client
from .templates import WarningRenderer

log = logging.getLogger(__name__)


def fetch_member_rows(settings: Settings, sheets=None) -> Tuple[Optional[SheetRows],Optional[OperationResult]]:
    """Read the member range; returns (rows, None) or (None, failure result)."""
    if not settings.member_data_range:
        return None, OperationResult.fail(
            ErrorKind.CONFIGURATION, "Member sheet range is not configured (GOOGLE_SHEET_MEMBER_DATA_RANGE).")
    try:
        client = sheets or get_sheets_client(settings)
        rows = client.get_values(settings.member_data_range)
    except SheetsConfigError as e:
        log.error("sheet_config_error", extra={"reason": str(e)})
        return None, OperationResult.fail(ErrorKind.CONFIGURATION, str(e))
    if rows is None:
        return None, OperationResult.fail(ErrorKind.COLLABORATOR, "Failed to fetch data from Google Sheet.")
    return rows, None


def check_member_activity(db: Session, settings: Settings, sheets=None,
                          renderer: Optional[WarningRenderer] = None,
                          actor: Optional[Operator] = None) -> OperationResult:
    """Scan the member sheet and queue warnings for everyone below their threshold.

    `actor` is set for operator-triggered runs (which must be PANEL); scheduled runs
    pass None and are authorized by the cron guard.
    """
    if actor is not None and not actor.is_panel:
        return OperationResult.unauthorized()
    log.info("activity_check_started", extra={"job": "check-activity"})

    rows, failure = fetch_member_rows(settings, sheets)
    if failure:
        return failure
    if not rows:
        return OperationResult.ok("No member data found in the specified range.", checked=0, flagged=0, queued=0, skipped=0, errors=0)

    try:
        overrides = load_threshold_overrides(db)
    except SQLAlchemyError:
        log.exception("threshold_load_failed")
        return OperationResult.fail(ErrorKind.INTERNAL, "Failed to load role thresholds.")

    report = scan_rows(rows, overrides, settings.default_threshold)
    for issue in report.errors:
        log.warning("row_invalid", extra={"row": issue.row_index, "reason": issue.reason})
    for issue in report.warnings:
        log.info("row_warning", extra={"row": issue.row_index, "reason": issue.reason})

    outcome = queue_warnings(db, report.below, renderer or WarningRenderer())
    row_errors = report.errors + outcome.errors
    summary = dict(
        checked=report.checked,
        flagged=len(report.below),
        queued=len(outcome.queued),
        skipped=len(outcome.skipped),
        errors=len(row_errors),
        rowErrors=[i.to_dict() for i in row_errors],
        rowWarnings=[i.to_dict() for i in report.warnings],
    )
    message = (f"Activity check complete. Checked: {summary['checked']}, Flagged: {summary['flagged']}, "
               f"Queued: {summary['queued']}, Skipped: {summary['skipped']}, Errors: {summary['errors']}.")
    log.info("activity_check_complete", extra={k: summary[k] for k in ("checked", "flagged", "queued", "skipped", "errors")})
    if outcome.queued:
        notify(EMAIL_QUEUE_EVENT, {"triggeredBy": "checkMemberActivity", "queued": len(outcome.queued)})
    return OperationResult.ok(message, **summary)
