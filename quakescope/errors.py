"""
Error taxonomy shared by the services and the HTTP layer.

Every error carries a public ``message`` that is safe to hand back to a
caller. ``details`` is only populated when it helps a client fix its own
payload (e.g. malformed JSON); internal causes are logged, not returned.
"""

from __future__ import annotations

from typing import Any, Optional


class QuakeScopeError(Exception):
    """Base class for all engine errors."""

    status_code: int = 500

    def __init__(self, message: str, *, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(QuakeScopeError):
    """Missing or malformed input. Raised before any store access."""

    status_code = 400


class NotFoundError(QuakeScopeError):
    """Unknown identifier on retrieval."""

    status_code = 404


class UpstreamComputationError(QuakeScopeError):
    """Store unavailable or unexpected failure while computing a result."""

    status_code = 500


class CacheError(QuakeScopeError):
    """Ephemeral cache read/write failure. Never fatal to a request."""

    status_code = 500
