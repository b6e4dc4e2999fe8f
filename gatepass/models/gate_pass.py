# gatepass/models/gate_pass.py
"""
Gate pass table — one row per visitor visit or vehicle movement.
Status is only ever changed through a compare-and-swap UPDATE (see sql_pass_store).
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, JSON
from gatepass.database import Base


class GatePassRecord(Base):
    __tablename__ = "gate_passes"

    id = Column(String(32), primary_key=True)
    intent = Column(String(30), nullable=False, index=True)      # visitor | vehicle_outbound | vehicle_inbound
    status = Column(String(20), nullable=False, index=True)
    approval_status = Column(String(20), nullable=False, default="not_required")
    purpose = Column(String(30), nullable=False)
    valid_from = Column(DateTime(timezone=True), nullable=False)
    valid_to = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_by_role = Column(String(50))
    notes = Column(Text)
    yard_id = Column(String(50))

    visitor_name = Column(String(200))
    visitor_phone = Column(String(20))
    visitor_company = Column(String(200))
    referred_by = Column(String(200))
    additional_visitors = Column(Text)
    additional_head_count = Column(Integer, default=0, nullable=False)
    vehicles_to_view = Column(JSON)                                # list of vehicle ids

    vehicle_id = Column(String(50), index=True)
    driver_name = Column(String(200))
    driver_contact = Column(String(20))
    driver_license_number = Column(String(50))
    destination = Column(String(200))
    expected_return_at = Column(DateTime(timezone=True))

    entry_time = Column(DateTime(timezone=True))
    exit_time = Column(DateTime(timezone=True))
    departure_time = Column(DateTime(timezone=True))
    return_time = Column(DateTime(timezone=True))

    cancelled_at = Column(DateTime(timezone=True))
    cancel_reason = Column(Text)

    def __repr__(self):
        return f"<GatePassRecord {self.id} intent={self.intent} status={self.status}>"
