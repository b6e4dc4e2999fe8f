# gatepass/services/sql_pass_store.py
"""
SQLAlchemy implementation of the pass store.

Compare-and-swap is a single conditional UPDATE:
    UPDATE gate_passes SET ... WHERE id = :id AND status = :expected
A rowcount of 0 means the row moved (or vanished) and nothing is written.
Timestamps are stored and returned as UTC-aware datetimes.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gatepass.models.approval_request import ApprovalLevelRecord, ApprovalRequestRecord
from gatepass.models.gate_pass import GatePassRecord
from gatepass.schemas.approval import ApprovalLevel, ApprovalRequest
from gatepass.schemas.gate_pass import GatePass
from gatepass.services.pass_store import PassStore
from gatepass.utils.errors import StoreUnavailableError
from gatepass.utils.logger import get_logger

logger = get_logger(__name__)

_PASS_COLUMNS = [c.name for c in GatePassRecord.__table__.columns]
_REQUEST_COLUMNS = [c.name for c in ApprovalRequestRecord.__table__.columns]


def _as_utc(value):
    if not isinstance(value, datetime):
        return value
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _pass_values(gate_pass: GatePass) -> dict:
    data = gate_pass.model_dump()
    values = {name: _as_utc(data.get(name)) for name in _PASS_COLUMNS}
    values["intent"] = gate_pass.intent.value
    values["status"] = gate_pass.status.value
    values["approval_status"] = gate_pass.approval_status.value
    return values


def _to_pass(row: GatePassRecord) -> GatePass:
    data = {name: _as_utc(getattr(row, name)) for name in _PASS_COLUMNS}
    data["vehicles_to_view"] = list(row.vehicles_to_view or [])
    return GatePass(**{k: v for k, v in data.items() if v is not None})


def _request_values(request: ApprovalRequest) -> dict:
    data = request.model_dump()
    values = {name: _as_utc(data.get(name)) for name in _REQUEST_COLUMNS}
    values["intent"] = request.intent.value
    values["status"] = request.status.value
    return values


def _level_rows(request: ApprovalRequest) -> list:
    return [
        ApprovalLevelRecord(
            approval_request_id=request.id,
            level=lvl.level,
            approver_role=lvl.approver_role,
            required=lvl.required,
            status=lvl.status.value,
            notes=lvl.notes,
            acted_at=_as_utc(lvl.acted_at),
        )
        for lvl in request.levels
    ]


def _to_request(row: ApprovalRequestRecord) -> ApprovalRequest:
    data = {name: _as_utc(getattr(row, name)) for name in _REQUEST_COLUMNS}
    data["levels"] = [
        ApprovalLevel(
            level=lvl.level,
            approver_role=lvl.approver_role,
            required=bool(lvl.required),
            status=lvl.status,
            notes=lvl.notes,
            acted_at=_as_utc(lvl.acted_at),
        )
        for lvl in row.levels
    ]
    return ApprovalRequest(**{k: v for k, v in data.items() if v is not None})


class SqlPassStore(PassStore):
    def __init__(self, db: Session):
        self.db = db

    def get_pass(self, pass_id):
        row = self.db.get(GatePassRecord, pass_id)
        return _to_pass(row) if row else None

    def list_passes(self):
        rows = self.db.query(GatePassRecord).order_by(GatePassRecord.created_at.desc()).all()
        return [_to_pass(r) for r in rows]

    def add_pass(self, gate_pass, request=None):
        try:
            self.db.add(GatePassRecord(**_pass_values(gate_pass)))
            if request is not None:
                # Pass row must exist before the request's foreign key points at it
                self.db.flush()
                self.db.add(ApprovalRequestRecord(**_request_values(request), levels=_level_rows(request)))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreUnavailableError(str(e)) from e

    def _swap_pass_row(self, gate_pass: GatePass, expected_status) -> bool:
        values = _pass_values(gate_pass)
        values.pop("id")
        result = self.db.execute(
            update(GatePassRecord)
            .where(GatePassRecord.id == gate_pass.id, GatePassRecord.status == _value(expected_status))
            .values(**values)
        )
        return result.rowcount == 1

    def swap_pass(self, updated, expected_status):
        try:
            swapped = self._swap_pass_row(updated, expected_status)
            if not swapped:
                self.db.rollback()
                logger.warning(f"CAS miss on pass {updated.id} (expected {_value(expected_status)})")
                return False
            self.db.commit()
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreUnavailableError(str(e)) from e

    def get_request(self, request_id):
        row = self.db.get(ApprovalRequestRecord, request_id)
        return _to_request(row) if row else None

    def get_request_for_pass(self, pass_id):
        row = self.db.query(ApprovalRequestRecord).filter(ApprovalRequestRecord.pass_id == pass_id).first()
        return _to_request(row) if row else None

    def list_requests(self):
        rows = self.db.query(ApprovalRequestRecord).order_by(ApprovalRequestRecord.created_at.desc()).all()
        return [_to_request(r) for r in rows]

    def swap_approval(self, updated, expected_status, expected_level,
                      gate_pass=None, expected_pass_status=None):
        try:
            values = _request_values(updated)
            values.pop("id")
            result = self.db.execute(
                update(ApprovalRequestRecord)
                .where(
                    ApprovalRequestRecord.id == updated.id,
                    ApprovalRequestRecord.status == _value(expected_status),
                    ApprovalRequestRecord.approval_level == expected_level,
                )
                .values(**values)
            )
            if result.rowcount != 1 or (
                gate_pass is not None and not self._swap_pass_row(gate_pass, expected_pass_status)
            ):
                self.db.rollback()
                logger.warning(f"CAS miss on approval request {updated.id}")
                return False

            # delete-orphan cascade drops the previous level rows
            record = self.db.get(ApprovalRequestRecord, updated.id)
            record.levels = _level_rows(updated)
            self.db.commit()
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreUnavailableError(str(e)) from e


def _value(status) -> Optional[str]:
    return getattr(status, "value", status)
