# gatepass/routers/vehicles.py
"""Vehicle directory — list, register and look up vehicles by registration number."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from gatepass.database import get_db
from gatepass.models.vehicle import Vehicle
from gatepass.schemas.vehicle import VehicleCreate, VehicleOut
from gatepass.services.vehicle_selector import normalize_registration
from gatepass.services.vehicle_service import lookup_vehicle_by_registration, register_vehicle

router = APIRouter()


@router.get("/vehicles", response_model=list[VehicleOut], summary="List vehicles")
def list_vehicles(status: str = None, db: Session = Depends(get_db)):
    q = db.query(Vehicle)
    if status:
        q = q.filter(Vehicle.status == status)
    return q.order_by(Vehicle.registration_number).all()


@router.post("/vehicles", status_code=201, summary="Register a vehicle")
def create_vehicle(body: VehicleCreate, db: Session = Depends(get_db)):
    """Register a vehicle by registration number (whitespace-insensitive, upper-cased)."""
    if not normalize_registration(body.registration_number):
        raise HTTPException(status_code=422, detail="registration_number is required")
    if lookup_vehicle_by_registration(db, body.registration_number):
        raise HTTPException(status_code=400, detail=f"{body.registration_number} already registered")
    vehicle = register_vehicle(db, body.registration_number, body.make, body.model, body.notes)
    return {"status": "registered", "id": vehicle.id, "registration_number": vehicle.registration_number}


@router.get("/vehicles/lookup/{registration}", summary="Look up a registration number")
def lookup_vehicle(registration: str, db: Session = Depends(get_db)):
    vehicle = lookup_vehicle_by_registration(db, registration)
    if not vehicle:
        return {"registration_number": normalize_registration(registration), "registered": False}
    return {"registration_number": vehicle.registration_number, "registered": True,
            "id": vehicle.id, "make": vehicle.make, "model": vehicle.model, "status": vehicle.status}
