# gatepass/routers/passes.py
"""
Gate pass endpoints.
POST /gate-passes              — create a pass (and its approval request)
GET  /gate-passes              — list passes, newest first
GET  /gate-passes/{id}         — one pass with its expiry status
POST /gate-passes/{id}/entry   — guard records entry
POST /gate-passes/{id}/exit    — guard records visitor exit
POST /gate-passes/{id}/return  — guard records vehicle return
POST /gate-passes/{id}/cancel  — cancel a pending pass
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from gatepass.routers.deps import error_response, get_role, get_service, utc_now
from gatepass.schemas.gate_pass import PassCreateIn, PassIntent, PassStatus, PassTransitionIn
from gatepass.services.gatepass_service import GatePassService
from gatepass.services.validity_service import expiry_status
from gatepass.services.vehicle_selector import SearchCreateSelection

router = APIRouter()


def _pass_out(gate_pass, now) -> dict:
    body = gate_pass.model_dump(mode="json")
    expiry = expiry_status(gate_pass, now)
    body["expiry"] = {
        "is_expired": expiry.is_expired,
        "is_expiring_soon": expiry.is_expiring_soon,
        "severity": expiry.severity,
        "message": expiry.message,
    }
    return body


@router.post("/gate-passes", status_code=201, summary="Create a gate pass")
def create_gate_pass(body: PassCreateIn, role: Optional[str] = Depends(get_role),
                     service: GatePassService = Depends(get_service)):
    """
    Validates the form, stamps the default validity window and stores the pass.
    With auto_approve (default) an approval request is opened too; requesters
    allowed to approve get it resolved immediately.
    Inbound passes may send registration_number instead of fields.vehicle_id.
    """
    now = utc_now()
    selection = None
    if body.registration_number:
        selection = SearchCreateSelection(body.registration_number, body.make, body.model)

    if body.auto_approve:
        result = service.create_and_approve(body.intent, body.fields, role, now, selection)
        if not result.ok:
            return error_response(result.error)
        created = result.value
        return {
            "gate_pass": _pass_out(created.gate_pass, now),
            "approval_request": created.request.model_dump(mode="json") if created.request else None,
        }

    result = service.create_pass(body.intent, body.fields, now, selection, created_by_role=role)
    if not result.ok:
        return error_response(result.error)
    return {"gate_pass": _pass_out(result.value, now), "approval_request": None}


@router.get("/gate-passes", summary="List gate passes")
def list_gate_passes(intent: Optional[PassIntent] = None, status: Optional[PassStatus] = None,
                     limit: int = 50, service: GatePassService = Depends(get_service)):
    now = utc_now()
    passes = service.store.list_passes()
    if intent:
        passes = [p for p in passes if p.intent == intent]
    if status:
        passes = [p for p in passes if p.status == status]
    return [_pass_out(p, now) for p in passes[:limit]]


@router.get("/gate-passes/{pass_id}", summary="Get one gate pass")
def get_gate_pass(pass_id: str, service: GatePassService = Depends(get_service)):
    gate_pass = service.store.get_pass(pass_id)
    if not gate_pass:
        raise HTTPException(status_code=404, detail=f"Pass '{pass_id}' not found")
    request = service.store.get_request_for_pass(pass_id)
    body = _pass_out(gate_pass, utc_now())
    body["approval_request"] = request.model_dump(mode="json") if request else None
    return body


def _transition_response(result):
    if not result.ok:
        return error_response(result.error)
    return _pass_out(result.value, utc_now())


@router.post("/gate-passes/{pass_id}/entry", summary="Record entry at the gate")
def record_entry(pass_id: str, body: PassTransitionIn, service: GatePassService = Depends(get_service)):
    return _transition_response(service.mark_entry(pass_id, body.expected_status, utc_now()))


@router.post("/gate-passes/{pass_id}/exit", summary="Record visitor exit")
def record_exit(pass_id: str, body: PassTransitionIn, service: GatePassService = Depends(get_service)):
    return _transition_response(service.mark_exit(pass_id, body.expected_status, utc_now()))


@router.post("/gate-passes/{pass_id}/return", summary="Record vehicle return")
def record_return(pass_id: str, body: PassTransitionIn, service: GatePassService = Depends(get_service)):
    return _transition_response(service.mark_return(pass_id, body.expected_status, utc_now()))


@router.post("/gate-passes/{pass_id}/cancel", summary="Cancel a pending pass")
def cancel_pass(pass_id: str, body: PassTransitionIn, service: GatePassService = Depends(get_service)):
    return _transition_response(service.cancel(pass_id, body.expected_status, utc_now(), body.reason))
