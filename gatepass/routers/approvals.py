# gatepass/routers/approvals.py
"""Approval queue — list open requests, approve, reject, escalate."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from gatepass.routers.deps import error_response, get_role, get_service, utc_now
from gatepass.schemas.approval import ApproveIn, ReasonIn
from gatepass.services.gatepass_service import GatePassService

router = APIRouter()


@router.get("/approvals", summary="Open approval requests")
def list_approvals(approver_role: Optional[str] = None, service: GatePassService = Depends(get_service)):
    """Pending and escalated requests. Filter by the role that has to act next."""
    requests = service.pending_requests()
    if approver_role:
        requests = [r for r in requests if r.current_approver_role == approver_role]
    return [r.model_dump(mode="json") for r in requests]


@router.get("/approvals/{request_id}", summary="Get one approval request")
def get_approval(request_id: str, service: GatePassService = Depends(get_service)):
    request = service.store.get_request(request_id)
    if not request:
        raise HTTPException(status_code=404, detail=f"Approval request '{request_id}' not found")
    return request.model_dump(mode="json")


def _respond(result):
    if not result.ok:
        return error_response(result.error)
    return result.value.model_dump(mode="json")


@router.post("/approvals/{request_id}/approve", summary="Approve the current (or given) level")
def approve_request(request_id: str, body: ApproveIn, role: Optional[str] = Depends(get_role),
                    service: GatePassService = Depends(get_service)):
    notes = body.notes or (f"Approved by {role}" if role else None)
    return _respond(service.approve(request_id, body.expected_status, body.level, notes, utc_now()))


@router.post("/approvals/{request_id}/reject", summary="Reject the request and cancel its pass")
def reject_request(request_id: str, body: ReasonIn, service: GatePassService = Depends(get_service)):
    return _respond(service.reject(request_id, body.expected_status, body.reason, utc_now()))


@router.post("/approvals/{request_id}/escalate", summary="Escalate to the next approval tier")
def escalate_request(request_id: str, body: ReasonIn, service: GatePassService = Depends(get_service)):
    return _respond(service.escalate(request_id, body.expected_status, body.reason, utc_now()))
