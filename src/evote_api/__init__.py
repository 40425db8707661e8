"""evote-api: voter identity verification and ballot casting service."""

__version__ = "0.1.0"
