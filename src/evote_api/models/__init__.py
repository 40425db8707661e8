"""ORM model registry: import all models so Alembic autogenerate discovers them."""

from evote_api.models.audit_log import AuditLog
from evote_api.models.election import Candidate, Election
from evote_api.models.fraud_alert import FraudAlert
from evote_api.models.roll_record import RollRecord
from evote_api.models.user import User
from evote_api.models.vote import VoteTransaction
from evote_api.models.voter import Voter

__all__ = [
    "AuditLog",
    "Candidate",
    "Election",
    "FraudAlert",
    "RollRecord",
    "User",
    "VoteTransaction",
    "Voter",
]
