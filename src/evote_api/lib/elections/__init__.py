"""Election status computation."""

from evote_api.lib.elections.status import ElectionStatus, as_utc, compute_election_status

__all__ = ["ElectionStatus", "as_utc", "compute_election_status"]
