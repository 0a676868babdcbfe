from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.config import Settings, get_settings
from ..db.database import get_db
from ..security.api_key import Operator, get_operator
from ..services.reports import dashboard_summary, activity_analytics, member_status
from .deps import get_sheets, respond

router = APIRouter()


@router.get("/dashboard")
def dashboard(db: Session = Depends(get_db), operator: Operator = Depends(get_operator)):
    return respond(dashboard_summary(db, operator))


@router.get("/analytics")
def analytics(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    sheets=Depends(get_sheets),
    operator: Operator = Depends(get_operator),
):
    return respond(activity_analytics(db, settings, operator, sheets=sheets))


@router.get("/members/me")
def my_status(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    sheets=Depends(get_sheets),
    operator: Operator = Depends(get_operator),
):
    return respond(member_status(db, settings, operator, sheets=sheets))
