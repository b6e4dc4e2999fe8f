# gatepass/schemas/vehicle.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class VehicleCreate(BaseModel):
    registration_number: str
    make: Optional[str] = None
    model: Optional[str] = None
    notes: Optional[str] = None


class VehicleOut(BaseModel):
    id: str
    registration_number: str
    make: Optional[str]
    model: Optional[str]
    status: str
    registered_at: Optional[datetime]
    notes: Optional[str]

    class Config:
        from_attributes = True
