# gatepass/models/alert.py
"""
Alerts table — notices raised by the gate pass service (rejections, escalations).
Written by alert_service, which the API wires in as the service's notifier.
"""

from sqlalchemy import Column, Integer, String, DateTime, Text
from gatepass.database import Base


class Alert(Base):
    __tablename__ = "alerts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    alert_type = Column(String(50), nullable=False, index=True)   # pass_rejected | pass_escalated | pass_cancelled
    pass_id = Column(String(32), index=True)
    approver_role = Column(String(50))
    description = Column(Text)
    is_resolved = Column(Integer, default=0, nullable=False)
    triggered_at = Column(DateTime(timezone=True), nullable=False, index=True)
    resolved_at = Column(DateTime(timezone=True))

    def __repr__(self):
        return f"<Alert {self.id} type={self.alert_type} resolved={self.is_resolved}>"
