# gatepass/schemas/gate_pass.py
"""
Gate pass records and the fixed intent catalog (statuses, purposes).
GatePass is immutable: every lifecycle step returns a new copy.
"""

from enum import Enum
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class PassIntent(str, Enum):
    VISITOR = "visitor"
    VEHICLE_OUTBOUND = "vehicle_outbound"
    VEHICLE_INBOUND = "vehicle_inbound"


class PassStatus(str, Enum):
    PENDING = "pending"
    INSIDE = "inside"
    EXITED = "exited"
    OUT = "out"
    RETURNED = "returned"
    ENTERED = "entered"
    CANCELLED = "cancelled"


class PassApprovalStatus(str, Enum):
    NOT_REQUIRED = "not_required"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


INTENT_STATUSES = {
    PassIntent.VISITOR: {PassStatus.PENDING, PassStatus.INSIDE, PassStatus.EXITED, PassStatus.CANCELLED},
    PassIntent.VEHICLE_OUTBOUND: {PassStatus.PENDING, PassStatus.OUT, PassStatus.RETURNED, PassStatus.CANCELLED},
    PassIntent.VEHICLE_INBOUND: {PassStatus.PENDING, PassStatus.ENTERED, PassStatus.CANCELLED},
}

TERMINAL_STATUSES = {PassStatus.EXITED, PassStatus.RETURNED, PassStatus.ENTERED, PassStatus.CANCELLED}

PURPOSES = {
    PassIntent.VISITOR: ("inspection", "service", "delivery", "meeting", "other"),
    PassIntent.VEHICLE_OUTBOUND: ("rto_work", "sold", "test_drive", "service", "auction", "other"),
    PassIntent.VEHICLE_INBOUND: ("service", "delivery", "inspection", "other"),
}

# Payload fields accepted from a create form, per intent
PAYLOAD_FIELDS = {
    PassIntent.VISITOR: (
        "visitor_name", "visitor_phone", "visitor_company", "referred_by",
        "additional_visitors", "additional_head_count", "vehicles_to_view",
    ),
    PassIntent.VEHICLE_OUTBOUND: (
        "vehicle_id", "driver_name", "driver_contact", "driver_license_number",
        "destination", "expected_return_at",
    ),
    PassIntent.VEHICLE_INBOUND: ("vehicle_id",),
}
COMMON_FIELDS = ("purpose", "notes", "yard_id")


class GatePass(BaseModel):
    id: str
    intent: PassIntent
    status: PassStatus
    approval_status: PassApprovalStatus = PassApprovalStatus.NOT_REQUIRED
    purpose: str
    valid_from: datetime
    valid_to: datetime
    created_at: datetime
    created_by_role: Optional[str] = None
    notes: Optional[str] = None
    yard_id: Optional[str] = None

    # Visitor payload
    visitor_name: Optional[str] = None
    visitor_phone: Optional[str] = None
    visitor_company: Optional[str] = None
    referred_by: Optional[str] = None
    additional_visitors: Optional[str] = None
    additional_head_count: int = 0
    vehicles_to_view: List[str] = Field(default_factory=list)

    # Vehicle payload
    vehicle_id: Optional[str] = None
    driver_name: Optional[str] = None
    driver_contact: Optional[str] = None
    driver_license_number: Optional[str] = None
    destination: Optional[str] = None
    expected_return_at: Optional[datetime] = None

    # Movement timestamps: each set once, never rewritten
    entry_time: Optional[datetime] = None
    exit_time: Optional[datetime] = None
    departure_time: Optional[datetime] = None
    return_time: Optional[datetime] = None

    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None

    class Config:
        frozen = True

    @model_validator(mode="after")
    def _status_belongs_to_intent(self):
        if self.status not in INTENT_STATUSES[self.intent]:
            raise ValueError(f"{self.status.value} is not a {self.intent.value} status")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class PassCreateIn(BaseModel):
    intent: PassIntent
    fields: dict = Field(default_factory=dict)
    registration_number: Optional[str] = None   # search-create vehicle selection
    make: Optional[str] = None
    model: Optional[str] = None
    auto_approve: bool = True


class PassTransitionIn(BaseModel):
    expected_status: PassStatus
    reason: Optional[str] = None
