"""QuakeScope: earthquake clustering and fault-association engine."""

__version__ = "0.1.0"
