# gatepass/services/pass_lifecycle.py
"""
Lifecycle of a single gate pass. This module is the only writer of
GatePass.status; the approval router asks for activate()/reject_pass() and
gets the same guards as the gate.

  visitor           pending --entry--> inside --exit--> exited
  vehicle_outbound  (pending --activate-->) out --return--> returned
  vehicle_inbound   pending --entry--> entered
  any intent        pending --cancel--> cancelled

Each step stamps its own timestamp once. Running a step a second time is
refused instead of overwriting the stamp.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from gatepass.config import settings
from gatepass.schemas.gate_pass import GatePass, PassApprovalStatus, PassIntent, PassStatus
from gatepass.services import field_validator, validity_service
from gatepass.utils.errors import ErrorKind, FieldError, LifecycleError, LifecycleReason, ValidationError
from gatepass.utils.result import Err, Ok, Result


@dataclass(frozen=True)
class EntryPolicy:
    block_expired: bool = False
    block_early: bool = False

    @classmethod
    def from_settings(cls) -> "EntryPolicy":
        return cls(block_expired=settings.BLOCK_EXPIRED_ENTRY, block_early=settings.BLOCK_EARLY_ENTRY)


def new_id() -> str:
    return uuid.uuid4().hex


def _refuse(reason: LifecycleReason, detail: str) -> Err:
    return Err(LifecycleError(reason, detail))


def _window(intent: PassIntent, fields: Mapping[str, Any], now: datetime):
    valid_from = validity_service.align_tz(field_validator.parse_timestamp(fields.get("valid_from")), now)
    valid_to = validity_service.align_tz(field_validator.parse_timestamp(fields.get("valid_to")), now)
    duration = fields.get("duration_minutes")
    if valid_to is None and duration:
        custom = validity_service.window_from_duration(valid_from or now, duration)
        return custom.valid_from, custom.valid_to
    default = validity_service.default_window(intent, valid_from or now)
    return default.valid_from, valid_to or default.valid_to


def create_pass(intent, fields: Mapping[str, Any], now: datetime,
                requires_approval: bool = False,
                created_by_role: Optional[str] = None) -> Result:
    """Validate a create form and build the pass in its intent's initial state."""
    intent = PassIntent(intent)
    result = field_validator.validate(intent, fields)
    if not result.valid:
        return Err(ValidationError(result.errors))

    valid_from, valid_to = _window(intent, fields, now)
    try:
        window_ok = valid_to > valid_from
    except TypeError:
        window_ok = False
    if not window_ok:
        return Err(ValidationError({"valid_to": FieldError(
            "valid_to", ErrorKind.INVALID_FORMAT, "must be after valid_from")}))

    record = dict(field_validator.normalize_fields(intent, fields))
    if "expected_return_at" in record:
        record["expected_return_at"] = validity_service.align_tz(record["expected_return_at"], now)
    record.update(
        id=new_id(),
        intent=intent,
        status=PassStatus.PENDING,
        approval_status=PassApprovalStatus.PENDING if requires_approval else PassApprovalStatus.NOT_REQUIRED,
        valid_from=valid_from,
        valid_to=valid_to,
        created_at=now,
        created_by_role=created_by_role,
    )
    # Outbound vehicles leave on creation unless an approval gates them
    if intent == PassIntent.VEHICLE_OUTBOUND and not requires_approval:
        record.update(status=PassStatus.OUT, departure_time=now)
    return Ok(GatePass(**record))


def mark_entry(gate_pass: GatePass, now: datetime, policy: Optional[EntryPolicy] = None) -> Result:
    policy = policy or EntryPolicy()
    if gate_pass.intent == PassIntent.VEHICLE_OUTBOUND:
        return _refuse(LifecycleReason.INVALID_TRANSITION, "outbound passes record departure and return, not entry")
    if gate_pass.status == PassStatus.CANCELLED:
        return _refuse(LifecycleReason.INVALID_TRANSITION, "pass is cancelled")
    if gate_pass.status != PassStatus.PENDING or gate_pass.entry_time is not None:
        return _refuse(LifecycleReason.INVALID_TRANSITION, f"entry already recorded (status={gate_pass.status.value})")
    if gate_pass.approval_status in (PassApprovalStatus.PENDING, PassApprovalStatus.REJECTED):
        return _refuse(LifecycleReason.INVALID_TRANSITION, f"approval is {gate_pass.approval_status.value}")
    if policy.block_expired and validity_service.is_expired(gate_pass, now):
        return _refuse(LifecycleReason.EXPIRED, f"pass expired at {gate_pass.valid_to.isoformat()}")
    if policy.block_early and validity_service.is_not_yet_valid(gate_pass, now):
        return _refuse(LifecycleReason.NOT_YET_VALID, f"pass valid from {gate_pass.valid_from.isoformat()}")

    new_status = PassStatus.INSIDE if gate_pass.intent == PassIntent.VISITOR else PassStatus.ENTERED
    return Ok(gate_pass.model_copy(update={"status": new_status, "entry_time": now}))


def mark_exit(gate_pass: GatePass, now: datetime) -> Result:
    if gate_pass.intent != PassIntent.VISITOR:
        return _refuse(LifecycleReason.INVALID_TRANSITION, f"{gate_pass.intent.value} passes have no exit step")
    if gate_pass.status == PassStatus.CANCELLED:
        return _refuse(LifecycleReason.INVALID_TRANSITION, "pass is cancelled")
    if gate_pass.status != PassStatus.INSIDE or gate_pass.exit_time is not None:
        return _refuse(LifecycleReason.INVALID_TRANSITION, f"visitor is not inside (status={gate_pass.status.value})")
    if gate_pass.entry_time is None or now <= gate_pass.entry_time:
        return _refuse(LifecycleReason.INVALID_TRANSITION, "exit must be later than entry")
    return Ok(gate_pass.model_copy(update={"status": PassStatus.EXITED, "exit_time": now}))


def mark_return(gate_pass: GatePass, now: datetime) -> Result:
    if gate_pass.intent != PassIntent.VEHICLE_OUTBOUND:
        return _refuse(LifecycleReason.INVALID_TRANSITION, f"{gate_pass.intent.value} passes have no return step")
    if gate_pass.status == PassStatus.CANCELLED:
        return _refuse(LifecycleReason.INVALID_TRANSITION, "pass is cancelled")
    if gate_pass.status != PassStatus.OUT or gate_pass.return_time is not None:
        return _refuse(LifecycleReason.INVALID_TRANSITION, f"vehicle is not out (status={gate_pass.status.value})")
    if gate_pass.departure_time is None or now <= gate_pass.departure_time:
        return _refuse(LifecycleReason.INVALID_TRANSITION, "return must be later than departure")
    return Ok(gate_pass.model_copy(update={"status": PassStatus.RETURNED, "return_time": now}))


def cancel(gate_pass: GatePass, now: datetime, reason: Optional[str] = None) -> Result:
    if gate_pass.status != PassStatus.PENDING:
        return _refuse(LifecycleReason.INVALID_TRANSITION, f"cannot cancel a pass that is {gate_pass.status.value}")
    return Ok(gate_pass.model_copy(update={
        "status": PassStatus.CANCELLED,
        "cancelled_at": now,
        "cancel_reason": reason,
    }))


def activate(gate_pass: GatePass, now: datetime) -> Result:
    """Post-approval step: outbound vehicles depart, other passes become actionable."""
    if gate_pass.status == PassStatus.CANCELLED:
        return _refuse(LifecycleReason.INVALID_TRANSITION, "pass is cancelled")
    if gate_pass.approval_status != PassApprovalStatus.PENDING or gate_pass.status != PassStatus.PENDING:
        return _refuse(LifecycleReason.ALREADY_RESOLVED, f"approval is {gate_pass.approval_status.value}")
    if validity_service.is_expired(gate_pass, now):
        return _refuse(LifecycleReason.EXPIRED, f"pass expired at {gate_pass.valid_to.isoformat()}")

    update = {"approval_status": PassApprovalStatus.APPROVED}
    if gate_pass.intent == PassIntent.VEHICLE_OUTBOUND:
        update.update(status=PassStatus.OUT, departure_time=now)
    return Ok(gate_pass.model_copy(update=update))


def reject_pass(gate_pass: GatePass, now: datetime, reason: str) -> Result:
    if gate_pass.approval_status != PassApprovalStatus.PENDING or gate_pass.status != PassStatus.PENDING:
        return _refuse(LifecycleReason.ALREADY_RESOLVED, f"approval is {gate_pass.approval_status.value}")
    return Ok(gate_pass.model_copy(update={
        "status": PassStatus.CANCELLED,
        "approval_status": PassApprovalStatus.REJECTED,
        "cancelled_at": now,
        "cancel_reason": reason,
    }))
