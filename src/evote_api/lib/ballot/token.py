"""Opaque integrity tokens for recorded ballots."""

import hashlib
import secrets
import uuid
from datetime import datetime


def generate_integrity_token(
    election_id: uuid.UUID,
    candidate_id: uuid.UUID,
    voter_id: uuid.UUID,
    cast_at: datetime,
    nonce: str | None = None,
) -> str:
    """Return a 64-character hex token binding a ballot to its identifiers.

    A random nonce is mixed in so the token cannot be recomputed from the
    public identifiers alone.
    """
    nonce = nonce or secrets.token_hex(16)
    material = "|".join((str(election_id), str(candidate_id), str(voter_id), cast_at.isoformat(), nonce))
    return hashlib.sha256(material.encode("utf-8")).hexdigest()
