# gatepass/routers/dashboard.py
"""Operational counters for the gate dashboard. Recomputed on every call."""

from fastapi import APIRouter, Depends

from gatepass.routers.deps import get_service, utc_now
from gatepass.schemas.counters import OperationalCounters
from gatepass.services.gatepass_service import GatePassService

router = APIRouter()


@router.get("/dashboard/counters", response_model=OperationalCounters, summary="Live gate counters")
def get_counters(service: GatePassService = Depends(get_service)):
    """Visitors inside, vehicles out, visitors expected today and expiry/approval backlog."""
    return service.dashboard(utc_now())
