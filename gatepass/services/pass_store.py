# gatepass/services/pass_store.py
"""
Pass-record store used by the gate pass service.

Writes are compare-and-swap: an update only lands if the stored status is
still the one the caller computed from. A False return means someone else
moved the record first and the caller should report a conflict.
"""

import threading
from typing import Dict, List, Optional

from gatepass.schemas.approval import ApprovalRequest
from gatepass.schemas.gate_pass import GatePass


class PassStore:
    def get_pass(self, pass_id: str) -> Optional[GatePass]:
        raise NotImplementedError

    def list_passes(self) -> List[GatePass]:
        raise NotImplementedError

    def add_pass(self, gate_pass: GatePass, request: Optional[ApprovalRequest] = None) -> None:
        """Insert a pass and, in the same unit of work, its approval request."""
        raise NotImplementedError

    def swap_pass(self, updated: GatePass, expected_status) -> bool:
        raise NotImplementedError

    def get_request(self, request_id: str) -> Optional[ApprovalRequest]:
        raise NotImplementedError

    def get_request_for_pass(self, pass_id: str) -> Optional[ApprovalRequest]:
        raise NotImplementedError

    def list_requests(self) -> List[ApprovalRequest]:
        raise NotImplementedError

    def swap_approval(self, updated: ApprovalRequest, expected_status, expected_level: int,
                      gate_pass: Optional[GatePass] = None, expected_pass_status=None) -> bool:
        """Update a request (and optionally its pass) only if neither moved underneath."""
        raise NotImplementedError


class InMemoryPassStore(PassStore):
    def __init__(self):
        self._passes: Dict[str, GatePass] = {}
        self._requests: Dict[str, ApprovalRequest] = {}
        self._lock = threading.Lock()

    def get_pass(self, pass_id):
        return self._passes.get(pass_id)

    def list_passes(self):
        return list(self._passes.values())

    def add_pass(self, gate_pass, request=None):
        with self._lock:
            self._passes[gate_pass.id] = gate_pass
            if request is not None:
                self._requests[request.id] = request

    def swap_pass(self, updated, expected_status):
        with self._lock:
            current = self._passes.get(updated.id)
            if current is None or current.status != expected_status:
                return False
            self._passes[updated.id] = updated
            return True

    def get_request(self, request_id):
        return self._requests.get(request_id)

    def get_request_for_pass(self, pass_id):
        return next((r for r in self._requests.values() if r.pass_id == pass_id), None)

    def list_requests(self):
        return list(self._requests.values())

    def swap_approval(self, updated, expected_status, expected_level,
                      gate_pass=None, expected_pass_status=None):
        with self._lock:
            current = self._requests.get(updated.id)
            if current is None or current.status != expected_status or current.approval_level != expected_level:
                return False
            if gate_pass is not None:
                stored = self._passes.get(gate_pass.id)
                if stored is None or stored.status != expected_pass_status:
                    return False
                self._passes[gate_pass.id] = gate_pass
            self._requests[updated.id] = updated
            return True
