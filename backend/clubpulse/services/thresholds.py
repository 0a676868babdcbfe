import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.events import notify, THRESHOLDS_EVENT
from ..core.results import OperationResult, ErrorKind
from ..models.role_threshold import RoleThreshold, normalize_role
from ..models.admin_action import AdminAction, UPDATE_THRESHOLD
from ..security.api_key import Operator

log = logging.getLogger(__name__)


def list_thresholds(db: Session) -> List[RoleThreshold]:
    return db.query(RoleThreshold).order_by(RoleThreshold.role_name).all()


def upsert_threshold(db: Session, role_name: str, threshold, actor: Operator) -> OperationResult:
    """Create or replace the activity threshold for one role and log the change."""
    if not actor.is_panel:
        return OperationResult.unauthorized()
    key = normalize_role(role_name)
    if not key:
        return OperationResult.fail(ErrorKind.VALIDATION, "Role name is required.")
    if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold < 0:
        return OperationResult.fail(ErrorKind.VALIDATION, "Threshold must be a non-negative integer.")

    try:
        row = db.query(RoleThreshold).filter(RoleThreshold.role_name == key).first()
        old = row.threshold if row else None
        if row:
            row.threshold = threshold
        else:
            row = RoleThreshold(role_name=key, threshold=threshold)
            db.add(row)
        db.add(AdminAction(
            admin_user_id=actor.id,
            admin_user_email=actor.email,
            action=UPDATE_THRESHOLD,
            details={"roleName": key, "oldThreshold": old, "newThreshold": threshold},
        ))
        db.commit()
        db.refresh(row)
    except SQLAlchemyError:
        db.rollback()
        log.exception("threshold_upsert_failed", extra={"reason": key})
        return OperationResult.fail(ErrorKind.INTERNAL, "Failed to update threshold.")

    log.info("threshold_updated", extra={"operator": actor.email, "reason": f"{key}={threshold}"})
    notify(THRESHOLDS_EVENT, {"roleName": key, "threshold": threshold})
    return OperationResult.ok(
        f"Threshold for '{key}' set to {threshold}.",
        threshold={"id": row.id, "role_name": row.role_name, "threshold": row.threshold, "updated_at": row.updated_at},
    )
