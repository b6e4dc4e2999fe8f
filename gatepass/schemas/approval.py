# gatepass/schemas/approval.py
"""Approval requests and their ordered sign-off levels."""

from enum import Enum
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from gatepass.schemas.gate_pass import GatePass, PassIntent


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ESCALATED = "escalated"


OPEN_STATUSES = {ApprovalStatus.PENDING, ApprovalStatus.ESCALATED}


class ApprovalLevel(BaseModel):
    level: int
    approver_role: str
    required: bool = True
    status: ApprovalStatus = ApprovalStatus.PENDING
    notes: Optional[str] = None
    acted_at: Optional[datetime] = None

    class Config:
        frozen = True


class ApprovalRequest(BaseModel):
    id: str
    pass_id: str
    intent: PassIntent
    requester_role: Optional[str] = None
    approval_level: int = 1
    current_approver_role: Optional[str] = None
    status: ApprovalStatus = ApprovalStatus.PENDING
    levels: List[ApprovalLevel] = Field(default_factory=list)
    approval_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    escalation_reason: Optional[str] = None
    escalated_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        frozen = True

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    @property
    def fully_approved(self) -> bool:
        return all(lvl.status == ApprovalStatus.APPROVED for lvl in self.levels if lvl.required)

    def level_for(self, level: int) -> Optional[ApprovalLevel]:
        return next((lvl for lvl in self.levels if lvl.level == level), None)


class ApprovalOutcome(BaseModel):
    """An approval action together with the pass it left behind."""
    request: ApprovalRequest
    gate_pass: GatePass

    class Config:
        frozen = True


class ApproveIn(BaseModel):
    expected_status: ApprovalStatus
    level: Optional[int] = None     # defaults to the request's current level
    notes: Optional[str] = None


class ReasonIn(BaseModel):
    expected_status: ApprovalStatus
    reason: Optional[str] = None
