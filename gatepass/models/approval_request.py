# gatepass/models/approval_request.py
"""
Approval requests and their ordered levels.
At most one request per gate pass; the pass row stays authoritative for lifecycle status.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from gatepass.database import Base


class ApprovalRequestRecord(Base):
    __tablename__ = "approval_requests"

    id = Column(String(32), primary_key=True)
    pass_id = Column(String(32), ForeignKey("gate_passes.id"), nullable=False, unique=True, index=True)
    intent = Column(String(30), nullable=False)
    requester_role = Column(String(50))
    approval_level = Column(Integer, nullable=False, default=1)
    current_approver_role = Column(String(50))
    status = Column(String(20), nullable=False, index=True)    # pending | approved | rejected | escalated
    approval_notes = Column(Text)
    rejection_reason = Column(Text)
    escalation_reason = Column(Text)
    escalated_at = Column(DateTime(timezone=True))
    resolved_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), nullable=False)

    levels = relationship(
        "ApprovalLevelRecord",
        order_by="ApprovalLevelRecord.level",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<ApprovalRequestRecord {self.id} pass={self.pass_id} status={self.status} level={self.approval_level}>"


class ApprovalLevelRecord(Base):
    __tablename__ = "approval_levels"

    id = Column(Integer, primary_key=True, autoincrement=True)
    approval_request_id = Column(String(32), ForeignKey("approval_requests.id"), nullable=False, index=True)
    level = Column(Integer, nullable=False)
    approver_role = Column(String(50), nullable=False)
    required = Column(Boolean, nullable=False, default=True)
    status = Column(String(20), nullable=False, default="pending")
    notes = Column(Text)
    acted_at = Column(DateTime(timezone=True))

    def __repr__(self):
        return f"<ApprovalLevelRecord {self.approval_request_id}#{self.level} {self.approver_role} {self.status}>"
