"""Shared router plumbing: collaborator providers and OperationResult -> HTTP mapping.

Tests swap the providers through app.dependency_overrides.
"""
from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ..core.config import Settings, get_settings
from ..core.results import OperationResult
from ..services.mailer import ResendMailer, get_mailer
from ..services.sheets import GoogleSheetsClient, SheetsConfigError, get_sheets_client
from ..services.templates import WarningRenderer


def get_sheets(settings: Settings = Depends(get_settings)) -> Optional[GoogleSheetsClient]:
    try:
        return get_sheets_client(settings)
    except SheetsConfigError:
        # fetch_member_rows rebuilds the client and reports the configuration failure
        return None


def get_mail_client(settings: Settings = Depends(get_settings)):
    mailer: ResendMailer = get_mailer(settings)
    try:
        yield mailer
    finally:
        mailer.close()


@lru_cache(maxsize=1)
def get_renderer() -> WarningRenderer:
    return WarningRenderer()


def respond(result: OperationResult) -> JSONResponse:
    return JSONResponse(status_code=result.http_status, content=jsonable_encoder(result.to_dict()))
