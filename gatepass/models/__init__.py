# Gate Pass Engine — Database Models
# Import all models here for SQLAlchemy discovery

from gatepass.models.gate_pass import GatePassRecord                                    # noqa
from gatepass.models.approval_request import ApprovalRequestRecord, ApprovalLevelRecord  # noqa
from gatepass.models.vehicle import Vehicle                                             # noqa
from gatepass.models.alert import Alert                                                 # noqa
