"""Ballot integrity helpers."""

from evote_api.lib.ballot.token import generate_integrity_token

__all__ = ["generate_integrity_token"]
