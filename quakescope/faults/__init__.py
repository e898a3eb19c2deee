"""Event-fault association backfill and fault-context composition."""

from .backfill import FaultAssociationBackfill
from .context import FaultContextService, validate_fault_context_request

__all__ = [
    "FaultAssociationBackfill",
    "FaultContextService",
    "validate_fault_context_request",
]
