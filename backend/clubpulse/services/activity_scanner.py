"""Member sheet validation and threshold checks.

Rows come straight from the sheet as lists of cell values laid out
name | email | activity count | role. Each row is validated on its own: bad rows are
reported with their index and raw contents and never abort the scan.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.config import COL_NAME, COL_EMAIL, COL_ACTIVITY, COL_ROLE, DEFAULT_THRESHOLD
from ..models.role_threshold import RoleThreshold, normalize_role

_INT_RE = re.compile(r'^[+-]?\d+(\.\d+)?$')

MISSING_EMAIL = "missing or invalid email"
MISSING_ACTIVITY = "missing activity count"
INVALID_ACTIVITY = "invalid activity count"
MISSING_ROLE = "missing role; default template will be used"


@dataclass
class Member:
    row_index: int
    name: str
    email: str
    activity_count: int
    role: Optional[str] = None


@dataclass
class RowIssue:
    row_index: int
    reason: str
    raw: List[Any] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"row": self.row_index, "reason": self.reason, "raw": self.raw}


@dataclass
class Evaluation:
    member: Member
    threshold: int

    @property
    def below_threshold(self) -> bool:
        return self.member.activity_count < self.threshold


@dataclass
class ScanReport:
    checked: int = 0
    below: List[Evaluation] = field(default_factory=list)
    at_or_above: List[Evaluation] = field(default_factory=list)
    errors: List[RowIssue] = field(default_factory=list)
    warnings: List[RowIssue] = field(default_factory=list)

    @property
    def valid(self) -> List[Evaluation]:
        return self.below + self.at_or_above


def _cell(row: Sequence[Any], idx: int) -> Any:
    return row[idx] if idx < len(row) else None


def parse_activity_count(value: Any) -> Optional[int]:
    """Coerce a sheet cell into a non-negative integer count; None when it is not one.

    Numeric strings and floats are truncated toward zero; booleans are rejected.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        count = value
    elif isinstance(value, float):
        if value != value or value in (float('inf'), float('-inf')):
            return None
        count = int(value)
    elif isinstance(value, str) and _INT_RE.match(value.strip()):
        count = int(float(value.strip()))
    else:
        return None
    return count if count >= 0 else None


def parse_row(row_index: int, row: Sequence[Any]):
    """Validate one sheet row. Returns (member, error, warning); member is None on error."""
    raw = list(row) if row is not None else []
    email = _cell(raw, COL_EMAIL)
    if not isinstance(email, str) or not email.strip():
        return None, RowIssue(row_index, MISSING_EMAIL, raw), None

    activity = _cell(raw, COL_ACTIVITY)
    if activity is None or (isinstance(activity, str) and not activity.strip()):
        return None, RowIssue(row_index, MISSING_ACTIVITY, raw), None
    count = parse_activity_count(activity)
    if count is None:
        return None, RowIssue(row_index, INVALID_ACTIVITY, raw), None

    name = _cell(raw, COL_NAME)
    role = _cell(raw, COL_ROLE)
    role = str(role).strip() if role is not None and str(role).strip() else None
    warning = None if role else RowIssue(row_index, MISSING_ROLE, raw)
    member = Member(
        row_index=row_index,
        name=str(name).strip() if name is not None else '',
        email=email.strip().lower(),
        activity_count=count,
        role=role,
    )
    return member, None, warning


def resolve_threshold(role: Optional[str], overrides: Mapping[str, int], default: int = DEFAULT_THRESHOLD) -> int:
    """Effective threshold: the role override if one exists, else the default."""
    key = normalize_role(role)
    if key and key in overrides:
        return overrides[key]
    return default


def scan_rows(rows: Sequence[Sequence[Any]], overrides: Mapping[str, int], default: int = DEFAULT_THRESHOLD) -> ScanReport:
    """Validate every row and split valid members into below / at-or-above threshold."""
    report = ScanReport(checked=len(rows))
    for idx, row in enumerate(rows):
        member, error, warning = parse_row(idx, row)
        if error:
            report.errors.append(error)
            continue
        if warning:
            report.warnings.append(warning)
        ev = Evaluation(member, resolve_threshold(member.role, overrides, default))
        (report.below if ev.below_threshold else report.at_or_above).append(ev)
    return report


def load_threshold_overrides(db: Session) -> Dict[str, int]:
    return {normalize_role(rt.role_name): rt.threshold for rt in db.query(RoleThreshold).all()}
