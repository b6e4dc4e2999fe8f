# gatepass/routers/deps.py
"""Shared FastAPI dependencies and error mapping for the gate pass routers."""

from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, Header
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from gatepass.database import get_db
from gatepass.services.alert_service import AlertNotifier
from gatepass.services.gatepass_service import GatePassService
from gatepass.services.sql_pass_store import SqlPassStore
from gatepass.services.vehicle_service import SqlVehicleDirectory
from gatepass.utils.errors import http_status_for


def get_service(db: Session = Depends(get_db)) -> GatePassService:
    """FastAPI dependency — one service per request, bound to the request's DB session."""
    return GatePassService(
        store=SqlPassStore(db),
        directory=SqlVehicleDirectory(db),
        notifier=AlertNotifier(db),
    )


def get_role(x_user_role: Optional[str] = Header(default=None)) -> Optional[str]:
    return x_user_role.strip().lower() if x_user_role else None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def error_response(error) -> JSONResponse:
    return JSONResponse(status_code=http_status_for(error), content={"detail": error.as_dict()})
