# gatepass/services/alert_service.py
"""
Shared alert creation service.
The API passes AlertNotifier into GatePassService as its notifier, so the
engine itself never writes alerts. Extend here for push, SMS, email, etc.
"""

from datetime import datetime, timezone
from sqlalchemy.orm import Session
from gatepass.models.alert import Alert
from gatepass.utils.logger import get_logger

logger = get_logger(__name__)


def create_alert(db: Session, alert_type, pass_id, description, approver_role=None):
    """Create and persist an alert record. Always commits immediately."""
    alert = Alert(alert_type=alert_type, pass_id=pass_id, approver_role=approver_role,
                  description=description, is_resolved=0, triggered_at=datetime.now(timezone.utc))
    db.add(alert)
    db.commit()
    logger.warning(f"[ALERT][{alert_type.upper()}] {description}")
    return alert


class AlertNotifier:
    """Notifier callable: (kind, message, payload) -> persisted alert."""

    def __init__(self, db: Session):
        self.db = db

    def __call__(self, kind: str, message: str, payload: dict):
        return create_alert(self.db, kind, payload.get("pass_id"), message,
                            approver_role=payload.get("approver_role"))
