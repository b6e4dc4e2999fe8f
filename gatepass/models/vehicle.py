# gatepass/models/vehicle.py
"""
Vehicle directory table.
Gate passes reference vehicles by id; inbound passes can register an unknown
registration number on the fly (search-create selection).
"""

from sqlalchemy import Column, String, DateTime, Text
from gatepass.database import Base


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(String(32), primary_key=True)
    registration_number = Column(String(50), unique=True, nullable=False, index=True)
    make = Column(String(100))
    model = Column(String(100))
    status = Column(String(30), nullable=False, default="available")   # available | out | sold | under_maintenance
    registered_at = Column(DateTime(timezone=True))
    notes = Column(Text)

    def __repr__(self):
        return f"<Vehicle {self.registration_number} {self.make or ''} {self.model or ''}>"
