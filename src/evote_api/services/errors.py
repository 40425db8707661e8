"""Lookup errors shared by the service layer."""


class NotFoundError(ValueError):
    """A referenced resource does not exist."""


class VoterNotFoundError(NotFoundError):
    pass


class ElectionNotFoundError(NotFoundError):
    pass


class CandidateNotFoundError(NotFoundError):
    pass


class RollRecordNotFoundError(NotFoundError):
    pass
