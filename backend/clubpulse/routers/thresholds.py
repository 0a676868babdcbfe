from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.config import Settings, get_settings
from ..db.database import get_db
from ..schemas.threshold import ThresholdIn, ThresholdOut
from ..security.api_key import Operator, get_operator
from ..services.reports import unique_roles
from ..services.thresholds import list_thresholds, upsert_threshold
from .deps import get_sheets, respond

router = APIRouter()


@router.get("")
def get_thresholds(db: Session = Depends(get_db), _operator: Operator = Depends(get_operator)):
    return [ThresholdOut.model_validate(t).model_dump() for t in list_thresholds(db)]


@router.put("")
def put_threshold(payload: ThresholdIn, db: Session = Depends(get_db), operator: Operator = Depends(get_operator)):
    return respond(upsert_threshold(db, payload.role_name, payload.threshold, operator))


@router.get("/roles")
def sheet_roles(
    settings: Settings = Depends(get_settings),
    sheets=Depends(get_sheets),
    operator: Operator = Depends(get_operator),
):
    """Distinct role labels found in the member sheet."""
    return respond(unique_roles(settings, operator, sheets=sheets))
