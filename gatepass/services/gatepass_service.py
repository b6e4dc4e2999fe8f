# gatepass/services/gatepass_service.py
"""
Contract surface of the gate pass engine, consumed by the HTTP routers.

Every mutating call:
  1. loads the current record from the store
  2. checks the caller's expected status (stale view -> CONFLICT)
  3. runs the pure lifecycle / approval step
  4. writes back with compare-and-swap (lost race -> CONFLICT)

CONFLICT is the only error a caller should retry, after re-fetching.
Notifications go through the injected notifier; nothing here renders or
sends anything itself.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional

from gatepass.schemas.approval import ApprovalRequest, ApprovalStatus
from gatepass.schemas.counters import OperationalCounters
from gatepass.schemas.gate_pass import GatePass
from gatepass.services import aggregator_service, approval_router, pass_lifecycle
from gatepass.services.pass_lifecycle import EntryPolicy
from gatepass.services.pass_store import PassStore
from gatepass.services.vehicle_selector import (
    SearchCreateSelection, SelectorMode, VehicleDirectory, apply_selection,
    preview_selection, resolve_selection, selection_fields,
)
from gatepass.utils.errors import (
    ApprovalError, ApprovalReason, ErrorKind, FieldError, LifecycleError, LifecycleReason,
    ValidationError,
)
from gatepass.utils.logger import audit, get_logger
from gatepass.utils.result import Err, Ok, Result

logger = get_logger(__name__)

Notifier = Callable[[str, str, dict], Any]


@dataclass(frozen=True)
class CreatedPass:
    gate_pass: GatePass
    request: Optional[ApprovalRequest]


def _value(status) -> str:
    return getattr(status, "value", status)


class GatePassService:
    def __init__(self, store: PassStore, directory: Optional[VehicleDirectory] = None,
                 notifier: Optional[Notifier] = None, entry_policy: Optional[EntryPolicy] = None):
        self.store = store
        self.directory = directory
        self.notifier = notifier
        self.entry_policy = entry_policy or EntryPolicy.from_settings()

    # ── Creation ─────────────────────────────────────────────────────────────
    def create_pass(self, intent, fields: Mapping[str, Any], now: datetime,
                    selection: Optional[SelectorMode] = None,
                    created_by_role: Optional[str] = None) -> Result:
        """Validate, stamp default validity and store a pass in its initial state."""
        result = self._build_pass(intent, fields, now, selection, created_by_role=created_by_role)
        if not result.ok:
            logger.info(f"Rejected {_value(intent)} pass form: {result.error.fields}")
            return result
        self.store.add_pass(result.value)
        logger.info(f"Created {result.value.intent.value} pass {result.value.id} ({result.value.status.value})")
        audit("created", result.value.id, intent=result.value.intent.value,
              status=result.value.status.value, role=created_by_role)
        return result

    def create_and_approve(self, intent, fields: Mapping[str, Any], requester_role: Optional[str],
                           now: datetime, selection: Optional[SelectorMode] = None) -> Result:
        """
        Create a pass together with its approval request. Requesters with the
        auto-approve capability get both resolved before anything is stored;
        everyone else gets a pending request at level 1.
        """
        levels = approval_router.route_for(intent, requester_role)
        created = self._build_pass(
            intent, fields, now, selection, requires_approval=True, created_by_role=requester_role,
        )
        if not created.ok:
            logger.info(f"Rejected {_value(intent)} pass form: {created.error.fields}")
            return created

        gate_pass = created.value
        request = approval_router.open_request(gate_pass, requester_role, now, levels)
        if not levels:
            outcome = approval_router.auto_approve(request, gate_pass, now)
            if not outcome.ok:
                logger.warning(f"Auto-approval refused for pass {gate_pass.id}: {outcome.error.detail}")
                return outcome
            gate_pass, request = outcome.value.gate_pass, outcome.value.request

        self.store.add_pass(gate_pass, request)
        logger.info(
            f"Created {gate_pass.intent.value} pass {gate_pass.id} ({gate_pass.status.value}) "
            f"with request {request.id} ({request.status.value}, {len(request.levels)} level(s))"
        )
        audit("created", gate_pass.id, intent=gate_pass.intent.value, status=gate_pass.status.value,
              role=requester_role, request=request.id, approval=request.status.value)
        return Ok(CreatedPass(gate_pass=gate_pass, request=request))

    def _build_pass(self, intent, fields: Mapping[str, Any], now: datetime,
                    selection: Optional[SelectorMode], **kwargs) -> Result:
        """
        Build the pass with the selected vehicle(s) filled in. A search-create
        registration is written to the directory only after the rest of the
        form has passed, so a rejected form leaves the directory untouched.
        """
        if not isinstance(selection, SearchCreateSelection):
            fields = apply_selection(intent, fields, selection, self.directory)
            return pass_lifecycle.create_pass(intent, fields, now, **kwargs)

        if self.directory is None:
            name = next(iter(selection_fields(intent, ())))
            return Err(ValidationError({name: FieldError(
                name, ErrorKind.INVALID_FORMAT, "no vehicle directory to search")}))

        preview = dict(fields)
        preview.update(selection_fields(intent, preview_selection(selection, self.directory)))
        built = pass_lifecycle.create_pass(intent, preview, now, **kwargs)
        if not built.ok:
            return built
        refs = resolve_selection(selection, self.directory)
        return Ok(built.value.model_copy(update=selection_fields(intent, refs)))

    # ── Gate transitions ─────────────────────────────────────────────────────
    def _transition(self, pass_id: str, expected_status, action: str, step) -> Result:
        current = self.store.get_pass(pass_id)
        if current is None:
            return Err(LifecycleError(LifecycleReason.NOT_FOUND, f"pass {pass_id} not found"))
        if current.status.value != _value(expected_status):
            return Err(LifecycleError(
                LifecycleReason.CONFLICT,
                f"pass {pass_id} is {current.status.value}, expected {_value(expected_status)}",
            ))

        result = step(current)
        if not result.ok:
            logger.warning(f"{action} refused for pass {pass_id}: {result.error.reason.value} ({result.error.detail})")
            return result
        if not self.store.swap_pass(result.value, current.status):
            return Err(LifecycleError(LifecycleReason.CONFLICT, f"pass {pass_id} changed during {action}"))

        logger.info(f"Pass {pass_id}: {current.status.value} -> {result.value.status.value} ({action})")
        audit(action, pass_id, status=f"{current.status.value}->{result.value.status.value}")
        return result

    def mark_entry(self, pass_id: str, expected_status, now: datetime) -> Result:
        return self._transition(pass_id, expected_status, "entry",
                                lambda p: pass_lifecycle.mark_entry(p, now, self.entry_policy))

    def mark_exit(self, pass_id: str, expected_status, now: datetime) -> Result:
        return self._transition(pass_id, expected_status, "exit",
                                lambda p: pass_lifecycle.mark_exit(p, now))

    def mark_return(self, pass_id: str, expected_status, now: datetime) -> Result:
        return self._transition(pass_id, expected_status, "return",
                                lambda p: pass_lifecycle.mark_return(p, now))

    def cancel(self, pass_id: str, expected_status, now: datetime, reason: Optional[str] = None) -> Result:
        """Cancel a pending pass; an open approval request is withdrawn in the same write."""
        request = self.store.get_request_for_pass(pass_id)
        if request is None or not request.is_open:
            result = self._transition(pass_id, expected_status, "cancel",
                                      lambda p: pass_lifecycle.cancel(p, now, reason))
            if result.ok:
                self._notify("pass_cancelled", f"Pass {pass_id} cancelled: {reason or 'no reason given'}",
                             {"pass_id": pass_id})
            return result

        current = self.store.get_pass(pass_id)
        if current.status.value != _value(expected_status):
            return Err(LifecycleError(
                LifecycleReason.CONFLICT,
                f"pass {pass_id} is {current.status.value}, expected {_value(expected_status)}",
            ))
        cancelled = pass_lifecycle.cancel(current, now, reason)
        if not cancelled.ok:
            return cancelled
        withdrawn = approval_router.withdraw(request, f"pass cancelled: {reason or 'no reason given'}", now)
        if not withdrawn.ok or not self.store.swap_approval(
            withdrawn.value, request.status, request.approval_level,
            gate_pass=cancelled.value, expected_pass_status=current.status,
        ):
            return Err(LifecycleError(LifecycleReason.CONFLICT, f"pass {pass_id} changed during cancel"))
        logger.info(f"Pass {pass_id} cancelled, request {request.id} withdrawn")
        audit("cancel", pass_id, request=request.id, reason=reason)
        self._notify("pass_cancelled", f"Pass {pass_id} cancelled: {reason or 'no reason given'}",
                     {"pass_id": pass_id})
        return cancelled

    # ── Approvals ────────────────────────────────────────────────────────────
    def _approval_action(self, request_id: str, expected_status, action: str, step) -> Result:
        request = self.store.get_request(request_id)
        if request is None:
            return Err(ApprovalError(ApprovalReason.NOT_FOUND, f"approval request {request_id} not found"))
        if request.status.value != _value(expected_status):
            return Err(ApprovalError(
                ApprovalReason.CONFLICT,
                f"request {request_id} is {request.status.value}, expected {_value(expected_status)}",
            ))
        gate_pass = self.store.get_pass(request.pass_id)
        if gate_pass is None:
            return Err(ApprovalError(ApprovalReason.NOT_FOUND, f"pass {request.pass_id} not found"))

        result = step(request, gate_pass)
        if not result.ok:
            logger.warning(f"{action} refused for request {request_id}: {result.error.reason.value} ({result.error.detail})")
            return result

        outcome = result.value
        pass_changed = outcome.gate_pass != gate_pass
        swapped = self.store.swap_approval(
            outcome.request, request.status, request.approval_level,
            gate_pass=outcome.gate_pass if pass_changed else None,
            expected_pass_status=gate_pass.status,
        )
        if not swapped:
            return Err(ApprovalError(ApprovalReason.CONFLICT, f"request {request_id} changed during {action}"))

        logger.info(
            f"Request {request_id} {action}: level {request.approval_level} -> {outcome.request.approval_level}, "
            f"status {request.status.value} -> {outcome.request.status.value}"
        )
        audit(action, request.pass_id, request=request_id,
              level=f"{request.approval_level}->{outcome.request.approval_level}",
              approval=f"{request.status.value}->{outcome.request.status.value}")
        return Ok(outcome.request)

    def approve(self, request_id: str, expected_status, level: Optional[int],
                notes: Optional[str], now: datetime) -> Result:
        return self._approval_action(
            request_id, expected_status, "approve",
            lambda r, p: approval_router.approve(r, p, level, notes, now),
        )

    def reject(self, request_id: str, expected_status, reason: Optional[str], now: datetime) -> Result:
        result = self._approval_action(
            request_id, expected_status, "reject",
            lambda r, p: approval_router.reject(r, p, reason, now),
        )
        if result.ok:
            self._notify("pass_rejected", f"Pass {result.value.pass_id} rejected: {result.value.rejection_reason}",
                         {"pass_id": result.value.pass_id, "approver_role": result.value.current_approver_role})
        return result

    def escalate(self, request_id: str, expected_status, reason: Optional[str], now: datetime) -> Result:
        result = self._approval_action(
            request_id, expected_status, "escalate",
            lambda r, p: approval_router.escalate(r, p, reason, now),
        )
        if result.ok:
            request = result.value
            self._notify(
                "pass_escalated",
                f"Pass {request.pass_id} escalated to level {request.approval_level} "
                f"({request.current_approver_role}): {reason or 'no reason given'}",
                {"pass_id": request.pass_id, "approver_role": request.current_approver_role},
            )
        return result

    # ── Reads ────────────────────────────────────────────────────────────────
    def snapshot_counters(self, passes, now: datetime) -> OperationalCounters:
        return aggregator_service.snapshot_counters(passes, now)

    def dashboard(self, now: datetime) -> OperationalCounters:
        return aggregator_service.snapshot_counters(self.store.list_passes(), now, self.store.list_requests())

    def pending_requests(self) -> List[ApprovalRequest]:
        return [r for r in self.store.list_requests() if r.status in (ApprovalStatus.PENDING, ApprovalStatus.ESCALATED)]

    def _notify(self, kind: str, message: str, payload: dict):
        if self.notifier is None:
            return
        try:
            self.notifier(kind, message, payload)
        except Exception as e:
            # The transition is already committed; a failed notice must not undo it
            logger.error(f"Notifier failed for {kind}: {e}", exc_info=True)
