# gatepass/routers/alerts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from gatepass.database import get_db
from gatepass.models.alert import Alert
from gatepass.schemas.alert import AlertOut
from typing import Optional

router = APIRouter()

@router.get("/alerts", response_model=list[AlertOut], summary="Gate pass alerts — filterable by type")
def get_all_alerts(
    alert_type: Optional[str] = None,
    pass_id: Optional[str] = None,
    is_resolved: Optional[int] = None,
    limit: int = 50,
    db: Session = Depends(get_db)
):
    """Rejections, escalations and cancellations raised by the gate pass service."""
    q = db.query(Alert)
    if alert_type:
        q = q.filter(Alert.alert_type == alert_type)
    if pass_id:
        q = q.filter(Alert.pass_id == pass_id)
    if is_resolved is not None:
        q = q.filter(Alert.is_resolved == is_resolved)
    return q.order_by(Alert.triggered_at.desc()).limit(limit).all()
