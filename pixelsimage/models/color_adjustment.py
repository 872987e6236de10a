from __future__ import annotations
import math
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional


@dataclass
class ColorAdjustment:
    """
    Value-object holding brightness/contrast/saturation offsets as
    fractions of neutral (0.25 ~ +25 %, -0.5 ~ -50 %).
    None or 0 leaves that stage out.
    """
    brightness: Optional[float] = None
    contrast:   Optional[float] = None
    saturation: Optional[float] = None

    def is_noop(self) -> bool:
        return not (self.brightness or self.contrast or self.saturation)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ColorAdjustment:
        """
        Build from request data; unknown keys are ignored, blanks mean unset.
        Raises ValueError for anything that is not a finite number.
        """
        values = {}
        for f in fields(cls):
            raw = data.get(f.name)
            if raw is None or raw == "":
                continue
            value = float(raw)
            if not math.isfinite(value):
                raise ValueError(f"{f.name} must be a finite number, got {raw!r}")
            values[f.name] = value
        return cls(**values)
