# gatepass/schemas/counters.py
from pydantic import BaseModel
from datetime import datetime


class OperationalCounters(BaseModel):
    as_of: datetime
    visitors_inside: int
    vehicles_out: int
    expected_today: int
    expiring_soon: int = 0
    expired_unresolved: int = 0
    total_today: int = 0
    pending_approvals: int = 0
