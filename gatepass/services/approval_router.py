# gatepass/services/approval_router.py
"""
Multi-level approval routing for gate passes.

Routes are a fixed per-intent table. A requester whose role carries the
auto-approve capability skips the table entirely. Levels are approved in
ascending order; the request is approved once every required level is.

The router owns ApprovalRequest/ApprovalLevel only. Whenever an action must
move the pass (final approval, rejection) it goes through pass_lifecycle,
which can refuse it.
"""

from datetime import datetime
from typing import List, Optional

from gatepass.schemas.approval import (
    ApprovalLevel, ApprovalOutcome, ApprovalRequest, ApprovalStatus,
)
from gatepass.schemas.gate_pass import GatePass, PassIntent
from gatepass.services import pass_lifecycle, validity_service
from gatepass.utils.errors import ApprovalError, ApprovalReason
from gatepass.utils.result import Err, Ok, Result

APPROVAL_ROUTES = {
    PassIntent.VISITOR: ("manager",),
    PassIntent.VEHICLE_INBOUND: ("supervisor",),
    PassIntent.VEHICLE_OUTBOUND: ("supervisor", "manager"),
}

# Next tier for escalation when the route itself has no higher level
ESCALATION_LADDER = ("supervisor", "manager", "director")

# gate_pass actions per role
ROLE_CAPABILITIES = {
    "super_admin": {"create", "read", "update", "delete", "approve", "validate"},
    "admin": {"create", "read", "update", "delete", "approve", "validate"},
    "director": {"create", "read", "approve", "validate"},
    "yard_incharge": {"create", "read", "approve", "validate"},
    "manager": {"read", "approve", "validate"},
    "supervisor": {"read", "approve", "validate"},
    "executive": {"create", "read", "validate"},
    "clerk": {"create", "read"},
    "guard": {"read", "validate"},
}


def can_auto_approve(role: Optional[str]) -> bool:
    """Roles that may both create and approve passes skip the approval queue."""
    return {"create", "approve"} <= ROLE_CAPABILITIES.get(role or "", set())


def route_for(intent, requester_role: Optional[str]) -> List[ApprovalLevel]:
    if can_auto_approve(requester_role):
        return []
    roles = APPROVAL_ROUTES[PassIntent(intent)]
    return [ApprovalLevel(level=i, approver_role=role) for i, role in enumerate(roles, start=1)]


def open_request(gate_pass: GatePass, requester_role: Optional[str], now: datetime,
                 levels: Optional[List[ApprovalLevel]] = None) -> ApprovalRequest:
    levels = route_for(gate_pass.intent, requester_role) if levels is None else levels
    return ApprovalRequest(
        id=pass_lifecycle.new_id(),
        pass_id=gate_pass.id,
        intent=gate_pass.intent,
        requester_role=requester_role,
        approval_level=levels[0].level if levels else 1,
        current_approver_role=levels[0].approver_role if levels else None,
        levels=levels,
        created_at=now,
    )


def _refuse(reason: ApprovalReason, detail: str, lifecycle=None) -> Err:
    return Err(ApprovalError(reason, detail, lifecycle))


def _check_open(request: ApprovalRequest) -> Optional[Err]:
    if not request.is_open:
        return _refuse(ApprovalReason.ALREADY_RESOLVED, f"request is {request.status.value}")
    return None


def _replace_level(request: ApprovalRequest, updated: ApprovalLevel) -> List[ApprovalLevel]:
    return [updated if lvl.level == updated.level else lvl for lvl in request.levels]


def _next_open_level(levels: List[ApprovalLevel]) -> Optional[ApprovalLevel]:
    return next(
        (lvl for lvl in sorted(levels, key=lambda l: l.level)
         if lvl.required and lvl.status != ApprovalStatus.APPROVED),
        None,
    )


def approve(request: ApprovalRequest, gate_pass: GatePass, level: Optional[int],
            notes: Optional[str], now: datetime) -> Result:
    """Approve one level. The last required level approves the request and activates the pass."""
    refused = _check_open(request)
    if refused:
        return refused

    level = request.approval_level if level is None else level
    target = request.level_for(level)
    if target is None:
        return _refuse(ApprovalReason.UNKNOWN_LEVEL, f"request has no level {level}")
    if target.status == ApprovalStatus.APPROVED:
        return _refuse(ApprovalReason.ALREADY_RESOLVED, f"level {level} already approved")
    if target.status == ApprovalStatus.ESCALATED:
        return _refuse(ApprovalReason.ALREADY_RESOLVED, f"level {level} was escalated")

    blocking = [
        lvl.level for lvl in request.levels
        if lvl.level < level and lvl.required and lvl.status != ApprovalStatus.APPROVED
    ]
    if blocking:
        return _refuse(ApprovalReason.OUT_OF_ORDER, f"levels {blocking} must be approved before level {level}")
    if validity_service.is_expired(gate_pass, now):
        return _refuse(ApprovalReason.EXPIRED, f"pass expired at {gate_pass.valid_to.isoformat()}")

    levels = _replace_level(request, target.model_copy(update={
        "status": ApprovalStatus.APPROVED, "notes": notes, "acted_at": now,
    }))
    pending = _next_open_level(levels)
    if pending is not None:
        updated = request.model_copy(update={
            "levels": levels,
            "approval_level": pending.level,
            "current_approver_role": pending.approver_role,
        })
        return Ok(ApprovalOutcome(request=updated, gate_pass=gate_pass))

    activated = pass_lifecycle.activate(gate_pass, now)
    if not activated.ok:
        return _refuse(ApprovalReason.LIFECYCLE_REFUSED, activated.error.detail, activated.error)

    updated = request.model_copy(update={
        "levels": levels,
        "status": ApprovalStatus.APPROVED,
        "approval_notes": notes,
        "resolved_at": now,
    })
    return Ok(ApprovalOutcome(request=updated, gate_pass=activated.value))


def auto_approve(request: ApprovalRequest, gate_pass: GatePass, now: datetime,
                 notes: str = "Auto-approved during creation") -> Result:
    """Resolve a request with no required levels (or approve all of them) in one step."""
    refused = _check_open(request)
    if refused:
        return refused
    activated = pass_lifecycle.activate(gate_pass, now)
    if not activated.ok:
        return _refuse(ApprovalReason.LIFECYCLE_REFUSED, activated.error.detail, activated.error)
    levels = [
        lvl.model_copy(update={"status": ApprovalStatus.APPROVED, "notes": notes, "acted_at": now})
        for lvl in request.levels
    ]
    updated = request.model_copy(update={
        "levels": levels,
        "status": ApprovalStatus.APPROVED,
        "approval_notes": notes,
        "resolved_at": now,
    })
    return Ok(ApprovalOutcome(request=updated, gate_pass=activated.value))


def reject(request: ApprovalRequest, gate_pass: GatePass, reason: Optional[str], now: datetime) -> Result:
    """Reject outright, skipping any remaining levels. Final: a new pass is needed to retry."""
    refused = _check_open(request)
    if refused:
        return refused
    if not reason or not reason.strip():
        return _refuse(ApprovalReason.MISSING_REASON, "a rejection reason is required")
    reason = reason.strip()

    rejected = pass_lifecycle.reject_pass(gate_pass, now, reason)
    if not rejected.ok:
        return _refuse(ApprovalReason.LIFECYCLE_REFUSED, rejected.error.detail, rejected.error)

    levels = request.levels
    current = request.level_for(request.approval_level)
    if current is not None:
        levels = _replace_level(request, current.model_copy(update={
            "status": ApprovalStatus.REJECTED, "notes": reason, "acted_at": now,
        }))
    updated = request.model_copy(update={
        "levels": levels,
        "status": ApprovalStatus.REJECTED,
        "rejection_reason": reason,
        "resolved_at": now,
    })
    return Ok(ApprovalOutcome(request=updated, gate_pass=rejected.value))


def _next_tier_role(role: Optional[str]) -> Optional[str]:
    if role not in ESCALATION_LADDER:
        return ESCALATION_LADDER[0]
    position = ESCALATION_LADDER.index(role)
    if position + 1 >= len(ESCALATION_LADDER):
        return None
    return ESCALATION_LADDER[position + 1]


def escalate(request: ApprovalRequest, gate_pass: GatePass, reason: Optional[str], now: datetime) -> Result:
    """
    Hand the current level to the next tier. The escalated level stops being
    required (its sign-off moves up), approval_level goes up by exactly one and
    the pass is left untouched.
    """
    refused = _check_open(request)
    if refused:
        return refused

    current_level = request.approval_level
    next_level = current_level + 1
    current = request.level_for(current_level)
    existing = request.level_for(next_level)

    if existing is not None:
        target = existing.model_copy(update={"required": True, "status": ApprovalStatus.PENDING})
    else:
        role = _next_tier_role(request.current_approver_role)
        if role is None:
            return _refuse(ApprovalReason.NO_HIGHER_TIER, f"no tier above {request.current_approver_role}")
        target = ApprovalLevel(level=next_level, approver_role=role)

    levels = [lvl for lvl in request.levels if lvl.level != next_level]
    if current is not None:
        levels = [
            current.model_copy(update={
                "status": ApprovalStatus.ESCALATED, "required": False, "notes": reason, "acted_at": now,
            }) if lvl.level == current_level else lvl
            for lvl in levels
        ]
    levels = sorted(levels + [target], key=lambda l: l.level)

    updated = request.model_copy(update={
        "levels": levels,
        "approval_level": next_level,
        "current_approver_role": target.approver_role,
        "status": ApprovalStatus.ESCALATED,
        "escalation_reason": reason,
        "escalated_at": now,
    })
    return Ok(ApprovalOutcome(request=updated, gate_pass=gate_pass))


def withdraw(request: ApprovalRequest, reason: str, now: datetime) -> Result:
    """Close an open request because its pass was cancelled. The pass is not touched."""
    refused = _check_open(request)
    if refused:
        return refused
    return Ok(request.model_copy(update={
        "status": ApprovalStatus.REJECTED,
        "rejection_reason": reason,
        "resolved_at": now,
    }))
