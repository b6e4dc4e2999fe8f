"""Unit tests for the gate pass service (store + compare-and-swap + notifications)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import MagicMock, patch
from datetime import datetime, timedelta, timezone
from gatepass.schemas.approval import ApprovalStatus
from gatepass.schemas.gate_pass import PassApprovalStatus, PassStatus
from gatepass.services.gatepass_service import GatePassService
from gatepass.services.pass_lifecycle import EntryPolicy
from gatepass.services.pass_store import InMemoryPassStore
from gatepass.services.vehicle_selector import InMemoryVehicleDirectory, SearchCreateSelection
from gatepass.utils.errors import ApprovalReason, LifecycleReason, ValidationError

NOW = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)

VISITOR = {
    "visitor_name": "Asha Rao",
    "visitor_phone": "9876543210",
    "referred_by": "Front desk",
    "vehicles_to_view": ["veh-1"],
    "purpose": "inspection",
}
OUTBOUND = {"vehicle_id": "veh-1", "driver_name": "Ravi Kumar", "driver_contact": "9123456780", "purpose": "sold"}


def at(minutes):
    return NOW + timedelta(minutes=minutes)


@pytest.fixture
def notifier():
    return MagicMock()


@pytest.fixture
def service(notifier):
    return GatePassService(
        store=InMemoryPassStore(),
        directory=InMemoryVehicleDirectory(),
        notifier=notifier,
        entry_policy=EntryPolicy(),
    )


def create(service, intent, fields, role):
    result = service.create_and_approve(intent, fields, role, NOW)
    assert result.ok, result
    return result.value


class TestCreate:
    def test_clerk_visitor_waits_for_manager(self, service):
        created = create(service, "visitor", VISITOR, "clerk")
        assert created.gate_pass.status == PassStatus.PENDING
        assert created.gate_pass.approval_status == PassApprovalStatus.PENDING
        assert created.request.current_approver_role == "manager"
        assert service.store.get_pass(created.gate_pass.id) == created.gate_pass
        assert service.store.get_request_for_pass(created.gate_pass.id) == created.request

    def test_admin_outbound_is_auto_approved_and_out(self, service):
        created = create(service, "vehicle_outbound", OUTBOUND, "admin")
        assert created.request.status == ApprovalStatus.APPROVED
        assert created.gate_pass.status == PassStatus.OUT
        assert created.gate_pass.departure_time == NOW
        assert service.dashboard(NOW).vehicles_out == 1

    def test_invalid_form_stores_nothing(self, service):
        result = service.create_and_approve("visitor", {"visitor_name": "Asha Rao"}, "clerk", NOW)
        assert not result.ok
        assert isinstance(result.error, ValidationError)
        assert service.store.list_passes() == []
        assert service.store.list_requests() == []

    def test_invalid_form_registers_no_vehicle(self, service):
        result = service.create_pass("vehicle_inbound", {}, NOW, selection=SearchCreateSelection("KA01AB1234"))
        assert not result.ok
        assert result.error.fields == ["purpose"]
        assert service.directory.lookup("KA01AB1234") is None
        assert service.store.list_passes() == []

    def test_search_create_without_directory_is_a_validation_error(self):
        service = GatePassService(store=InMemoryPassStore(), entry_policy=EntryPolicy())
        result = service.create_pass("vehicle_inbound", {"purpose": "service"}, NOW,
                                     selection=SearchCreateSelection("KA01AB1234"))
        assert not result.ok
        assert isinstance(result.error, ValidationError)
        assert result.error.fields == ["vehicle_id"]
        assert service.store.list_passes() == []

    def test_plain_create_has_no_request(self, service):
        result = service.create_pass("vehicle_inbound", {"purpose": "service"}, NOW,
                                     selection=SearchCreateSelection("ka01ab1234"))
        assert result.ok
        assert result.value.vehicle_id == service.directory.lookup("KA01AB1234")
        assert service.store.get_request_for_pass(result.value.id) is None


class TestGateTransitions:
    def test_visitor_round_trip(self, service):
        gate_pass = create(service, "visitor", VISITOR, "admin").gate_pass
        inside = service.mark_entry(gate_pass.id, PassStatus.PENDING, at(5)).value
        assert inside.status == PassStatus.INSIDE
        exited = service.mark_exit(gate_pass.id, PassStatus.INSIDE, at(65)).value
        assert exited.status == PassStatus.EXITED
        assert exited.entry_time == at(5)
        assert exited.exit_time == at(65)
        assert service.store.get_pass(gate_pass.id) == exited

    def test_only_committed_steps_reach_the_audit_trail(self, service):
        gate_pass = create(service, "visitor", VISITOR, "admin").gate_pass
        with patch("gatepass.services.gatepass_service.audit") as audit:
            assert service.mark_entry(gate_pass.id, "pending", at(5)).ok
            assert not service.mark_exit(gate_pass.id, "pending", at(6)).ok
        audit.assert_called_once_with("entry", gate_pass.id, status="pending->inside")

    def test_exit_twice_is_a_conflict(self, service):
        gate_pass = create(service, "visitor", VISITOR, "admin").gate_pass
        service.mark_entry(gate_pass.id, "pending", at(5))
        assert service.mark_exit(gate_pass.id, "inside", at(10)).ok
        result = service.mark_exit(gate_pass.id, "inside", at(20))
        assert result.error.reason == LifecycleReason.CONFLICT
        assert service.store.get_pass(gate_pass.id).exit_time == at(10)

    def test_unknown_pass(self, service):
        assert service.mark_entry("missing", PassStatus.PENDING, NOW).error.reason == LifecycleReason.NOT_FOUND

    def test_lost_race_is_a_conflict(self, service):
        gate_pass = create(service, "visitor", VISITOR, "admin").gate_pass
        with patch.object(service.store, "swap_pass", return_value=False):
            result = service.mark_entry(gate_pass.id, PassStatus.PENDING, at(5))
        assert result.error.reason == LifecycleReason.CONFLICT
        assert service.store.get_pass(gate_pass.id).status == PassStatus.PENDING

    def test_refusal_passes_through(self, service):
        gate_pass = create(service, "visitor", VISITOR, "clerk").gate_pass
        result = service.mark_entry(gate_pass.id, PassStatus.PENDING, at(5))
        assert result.error.reason == LifecycleReason.INVALID_TRANSITION

    def test_outbound_return(self, service):
        gate_pass = create(service, "vehicle_outbound", OUTBOUND, "admin").gate_pass
        returned = service.mark_return(gate_pass.id, PassStatus.OUT, at(120)).value
        assert returned.status == PassStatus.RETURNED

    def test_cancel_withdraws_open_request(self, service, notifier):
        created = create(service, "visitor", VISITOR, "clerk")
        result = service.cancel(created.gate_pass.id, PassStatus.PENDING, at(5), "visit called off")
        assert result.value.status == PassStatus.CANCELLED
        request = service.store.get_request(created.request.id)
        assert request.status == ApprovalStatus.REJECTED
        assert service.dashboard(at(5)).pending_approvals == 0
        assert notifier.call_args[0][0] == "pass_cancelled"

    def test_cancel_without_request(self, service):
        gate_pass = service.create_pass("vehicle_inbound", {"vehicle_id": "veh-2", "purpose": "service"}, NOW).value
        assert service.cancel(gate_pass.id, PassStatus.PENDING, at(5)).value.status == PassStatus.CANCELLED


class TestApprovals:
    def test_two_level_approval_moves_vehicle_out(self, service):
        created = create(service, "vehicle_outbound", OUTBOUND, "executive")
        request_id = created.request.id

        out_of_order = service.approve(request_id, ApprovalStatus.PENDING, 2, None, at(5))
        assert out_of_order.error.reason == ApprovalReason.OUT_OF_ORDER

        first = service.approve(request_id, ApprovalStatus.PENDING, 1, "fine", at(5)).value
        assert first.approval_level == 2
        assert service.store.get_pass(created.gate_pass.id).status == PassStatus.PENDING

        second = service.approve(request_id, ApprovalStatus.PENDING, 2, None, at(10)).value
        assert second.status == ApprovalStatus.APPROVED
        assert service.store.get_pass(created.gate_pass.id).status == PassStatus.OUT

    def test_stale_expected_status_is_a_conflict(self, service):
        created = create(service, "visitor", VISITOR, "clerk")
        result = service.approve(created.request.id, ApprovalStatus.ESCALATED, None, None, at(5))
        assert result.error.reason == ApprovalReason.CONFLICT

    def test_concurrent_approval_of_same_level(self, service):
        created = create(service, "vehicle_outbound", OUTBOUND, "executive")
        with patch.object(service.store, "swap_approval", return_value=False):
            result = service.approve(created.request.id, ApprovalStatus.PENDING, 1, None, at(5))
        assert result.error.reason == ApprovalReason.CONFLICT
        assert service.store.get_request(created.request.id).approval_level == 1

    def test_unknown_request(self, service):
        assert service.approve("missing", "pending", None, None, NOW).error.reason == ApprovalReason.NOT_FOUND

    def test_reject_then_approve_is_already_resolved(self, service, notifier):
        created = create(service, "visitor", VISITOR, "clerk")
        rejected = service.reject(created.request.id, ApprovalStatus.PENDING, "not expected", at(5)).value
        assert rejected.status == ApprovalStatus.REJECTED
        assert service.store.get_pass(created.gate_pass.id).status == PassStatus.CANCELLED
        kind, message, payload = notifier.call_args[0]
        assert kind == "pass_rejected"
        assert payload["pass_id"] == created.gate_pass.id

        again = service.approve(created.request.id, ApprovalStatus.REJECTED, None, None, at(6))
        assert again.error.reason == ApprovalReason.ALREADY_RESOLVED
        escalated = service.escalate(created.request.id, ApprovalStatus.REJECTED, "retry", at(6))
        assert escalated.error.reason == ApprovalReason.ALREADY_RESOLVED

    def test_reject_needs_reason(self, service, notifier):
        created = create(service, "visitor", VISITOR, "clerk")
        result = service.reject(created.request.id, ApprovalStatus.PENDING, "", at(5))
        assert result.error.reason == ApprovalReason.MISSING_REASON
        notifier.assert_not_called()

    def test_escalate_raises_level_and_leaves_pass(self, service, notifier):
        created = create(service, "visitor", VISITOR, "clerk")
        escalated = service.escalate(created.request.id, ApprovalStatus.PENDING, "manager away", at(5)).value
        assert escalated.approval_level == created.request.approval_level + 1
        assert escalated.status == ApprovalStatus.ESCALATED
        assert service.store.get_pass(created.gate_pass.id) == created.gate_pass
        assert notifier.call_args[0][0] == "pass_escalated"
        assert notifier.call_args[0][2]["approver_role"] == "director"

    def test_notifier_failure_does_not_undo_transition(self, service, notifier):
        notifier.side_effect = RuntimeError("smtp down")
        created = create(service, "visitor", VISITOR, "clerk")
        result = service.reject(created.request.id, ApprovalStatus.PENDING, "not expected", at(5))
        assert result.ok
        assert service.store.get_request(created.request.id).status == ApprovalStatus.REJECTED


class TestDashboard:
    def test_counters_follow_the_store(self, service):
        inside = create(service, "visitor", VISITOR, "admin").gate_pass
        create(service, "visitor", VISITOR, "admin")
        create(service, "visitor", VISITOR, "clerk")
        service.mark_entry(inside.id, PassStatus.PENDING, at(5))

        counters = service.dashboard(at(10))
        assert counters.visitors_inside == 1
        assert counters.expected_today == 2
        assert counters.total_today == 3
        assert counters.pending_approvals == 1

    def test_expired_visitor_drops_out_of_expected_today(self, service):
        create(service, "visitor", VISITOR, "admin")
        assert service.dashboard(at(60)).expected_today == 1
        later = service.dashboard(NOW + timedelta(hours=5))
        assert later.expected_today == 0
        assert later.expired_unresolved == 1

    def test_snapshot_counters_over_given_passes(self, service):
        gate_pass = create(service, "vehicle_outbound", OUTBOUND, "admin").gate_pass
        assert service.snapshot_counters([gate_pass], NOW).vehicles_out == 1
