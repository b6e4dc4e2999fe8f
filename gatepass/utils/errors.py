# gatepass/utils/errors.py
"""
Error taxonomy of the gate pass engine.

ValidationError  — client-fixable field problems, never retried automatically.
LifecycleError   — refused pass transitions. CONFLICT means the caller's view
                   of the pass is stale: re-fetch and retry.
ApprovalError    — refused approval actions.

These are plain values carried inside Err(...). Exceptions are kept for
storage failures: SqlPassStore raises StoreUnavailableError, which the API
maps to 503.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Union


class ErrorKind(str, Enum):
    MISSING = "missing"
    INVALID_FORMAT = "invalid_format"


class LifecycleReason(str, Enum):
    INVALID_TRANSITION = "invalid_transition"
    ALREADY_RESOLVED = "already_resolved"
    EXPIRED = "expired"
    NOT_YET_VALID = "not_yet_valid"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"


class ApprovalReason(str, Enum):
    ALREADY_RESOLVED = "already_resolved"
    OUT_OF_ORDER = "out_of_order"
    MISSING_REASON = "missing_reason"
    EXPIRED = "expired"
    UNKNOWN_LEVEL = "unknown_level"
    NO_HIGHER_TIER = "no_higher_tier"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    LIFECYCLE_REFUSED = "lifecycle_refused"


@dataclass(frozen=True)
class FieldError:
    field: str
    kind: ErrorKind
    reason: Optional[str] = None

    def as_dict(self) -> dict:
        return {"field": self.field, "kind": self.kind.value, "reason": self.reason}


@dataclass(frozen=True)
class ValidationError:
    errors: Dict[str, FieldError] = field(default_factory=dict)

    @property
    def fields(self) -> list:
        return sorted(self.errors)

    def as_dict(self) -> dict:
        return {
            "error": "validation_error",
            "errors": {name: err.as_dict() for name, err in sorted(self.errors.items())},
        }


@dataclass(frozen=True)
class LifecycleError:
    reason: LifecycleReason
    detail: str = ""

    def as_dict(self) -> dict:
        return {"error": "lifecycle_error", "reason": self.reason.value, "detail": self.detail}


@dataclass(frozen=True)
class ApprovalError:
    reason: ApprovalReason
    detail: str = ""
    lifecycle: Optional[LifecycleError] = None

    def as_dict(self) -> dict:
        body = {"error": "approval_error", "reason": self.reason.value, "detail": self.detail}
        if self.lifecycle is not None:
            body["lifecycle"] = self.lifecycle.as_dict()
        return body


EngineError = Union[ValidationError, LifecycleError, ApprovalError]

_UNPROCESSABLE = {ApprovalReason.MISSING_REASON}


def http_status_for(error: EngineError) -> int:
    """409 for state conflicts, 422 for client-fixable input, 404 for unknown ids."""
    if isinstance(error, ValidationError):
        return 422
    if error.reason in (LifecycleReason.NOT_FOUND, ApprovalReason.NOT_FOUND):
        return 404
    if error.reason in _UNPROCESSABLE:
        return 422
    return 409


class GatePassError(Exception):
    """Base exception for failures below the engine (storage, wiring)."""
    pass


class StoreUnavailableError(GatePassError):
    """Raised when the pass store cannot be reached."""
    pass
