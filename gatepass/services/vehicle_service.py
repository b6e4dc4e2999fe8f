# gatepass/services/vehicle_service.py
"""
Vehicle lookup and registration helpers.
Used by the vehicles router and, through SqlVehicleDirectory, by search-create
vehicle selection on inbound passes.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session
from gatepass.models.vehicle import Vehicle
from gatepass.services.pass_lifecycle import new_id
from gatepass.services.vehicle_selector import VehicleDirectory, normalize_registration
from gatepass.utils.logger import get_logger

logger = get_logger(__name__)


def lookup_vehicle_by_registration(db: Session, registration_number: str):
    """Find a vehicle by registration number. Returns None if not found."""
    key = normalize_registration(registration_number)
    return db.query(Vehicle).filter(Vehicle.registration_number == key).first()


def is_registered(db: Session, registration_number: str) -> bool:
    return lookup_vehicle_by_registration(db, registration_number) is not None


def register_vehicle(db: Session, registration_number: str, make: Optional[str] = None,
                     model: Optional[str] = None, notes: Optional[str] = None) -> Vehicle:
    vehicle = Vehicle(
        id=new_id(),
        registration_number=normalize_registration(registration_number),
        make=make,
        model=model,
        notes=notes,
        status="available",
        registered_at=datetime.now(timezone.utc),
    )
    db.add(vehicle)
    db.commit()
    logger.info(f"Registered vehicle {vehicle.registration_number} ({vehicle.id})")
    return vehicle


class SqlVehicleDirectory(VehicleDirectory):
    def __init__(self, db: Session):
        self.db = db

    def lookup(self, registration_number):
        vehicle = lookup_vehicle_by_registration(self.db, registration_number)
        return vehicle.id if vehicle else None

    def create(self, registration_number, make=None, model=None):
        return register_vehicle(self.db, registration_number, make, model,
                                notes="Created from gate pass search").id
