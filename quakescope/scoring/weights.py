"""
Relevance weight configuration for event-fault scoring.

Weights are kept as a small dataclass so alternative weightings can be
loaded from YAML and compared side by side.
"""

from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml


@dataclass(frozen=True)
class RelevanceWeights:
    """
    Weights and normalisation scales for the relevance score.

    Attributes:
        w_distance: Weight of the proximity component
        w_activity: Weight of the slip-rate component
        w_size: Weight of the fault-length component
        distance_scale_km: Distance at which proximity reaches zero
        slip_rate_scale: Slip rate (mm/yr) at which activity saturates
        length_scale_km: Fault length at which size saturates
        name: Label carried into debug logs
    """
    w_distance: float = 0.5
    w_activity: float = 0.3
    w_size: float = 0.2
    distance_scale_km: float = 100.0
    slip_rate_scale: float = 50.0
    length_scale_km: float = 100.0
    name: str = "default"

    @property
    def total(self) -> float:
        return self.w_distance + self.w_activity + self.w_size

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def validate(self) -> None:
        """
        Raises:
            ValueError: If a weight is negative or a scale is not positive
        """
        for name in ("w_distance", "w_activity", "w_size"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        if self.total <= 0:
            raise ValueError("At least one relevance weight must be positive")
        for name in ("distance_scale_km", "slip_rate_scale", "length_scale_km"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")


DEFAULT_WEIGHTS = RelevanceWeights()


def weights_from_mapping(data: Optional[Mapping[str, Any]], name: str = "custom") -> RelevanceWeights:
    """Build weights from a mapping, falling back to defaults for missing keys."""

    if not data:
        return DEFAULT_WEIGHTS
    known = {f.name for f in fields(RelevanceWeights)}
    values = {k: v for k, v in data.items() if k in known}
    values.setdefault("name", name)
    weights = RelevanceWeights(**values)
    weights.validate()
    return weights


def load_weights_from_yaml(yaml_path: Path, section: str = "scoring") -> RelevanceWeights:
    """
    Load relevance weights from a YAML file.

    YAML Format:
        ```yaml
        scoring:
          w_distance: 0.5
          w_activity: 0.3
          w_size: 0.2
        ```

    Raises:
        FileNotFoundError: If the file does not exist
    """
    path = Path(yaml_path)
    if not path.exists():
        raise FileNotFoundError(f"Weights file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    return weights_from_mapping(data.get(section), name=path.stem)
