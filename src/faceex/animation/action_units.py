"""Action Unit and Expression value types.

An Action Unit groups morph target channels under a FACS code ("AU12") and
stores a five-step strength curve per channel, one value per intensity
level A-E.  Level 0 is implicit: every channel at 0.

``blendshapes`` keeps the persisted layout, a list of channel->curve
mappings, so documents survive a load/save cycle unchanged.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from faceex.constants import DEFAULT_STRENGTHS, STRENGTH_LEVELS

_NUMBER_RE = re.compile(r"\d+")


def au_number(au_key: str) -> Optional[int]:
    """Numeric part of an AU key: ``"AU12"`` -> 12, ``"12A"`` -> 12."""
    m = _NUMBER_RE.search(str(au_key))
    return int(m.group()) if m else None


@dataclass
class ActionUnit:
    prefix: str = ""
    number: str = ""
    description: str = ""
    blendshapes: list[dict[str, list[float]]] = field(default_factory=list)

    @classmethod
    def with_default_strengths(
        cls,
        prefix: str,
        number: str,
        description: str,
        channel_names: Iterable[str],
        strengths: Iterable[float] = DEFAULT_STRENGTHS,
    ) -> "ActionUnit":
        """Every listed channel gets its own copy of the same strength curve."""
        curve = [float(v) for v in strengths]
        return cls(
            prefix=prefix,
            number=number,
            description=description,
            blendshapes=[{name: list(curve) for name in channel_names}],
        )

    @property
    def key(self) -> str:
        return f"{self.prefix}{self.number}"

    @property
    def channels(self) -> dict[str, list[float]]:
        """All channel curves merged into one mapping (later entries win)."""
        merged: dict[str, list[float]] = {}
        for mapping in self.blendshapes:
            merged.update(mapping)
        return merged

    def matches(self, au_key: str) -> bool:
        n = au_number(au_key)
        return n is not None and n == au_number(self.number)

    def values_at_level(self, level: int) -> dict[str, float]:
        """Channel values for intensity ``level`` (0 = neutral, 1-5 = A-E)."""
        if not 0 <= level <= STRENGTH_LEVELS:
            raise ValueError(f"Intensity level must be 0-{STRENGTH_LEVELS}, got {level}")
        if level == 0:
            return {name: 0.0 for name in self.channels}
        return {name: float(curve[level - 1]) for name, curve in self.channels.items()}

    def peak_values(self) -> dict[str, float]:
        return {name: float(curve[-1]) for name, curve in self.channels.items() if curve}

    def set_strengths(self, channel: str, strengths: list[float]) -> bool:
        found = False
        for mapping in self.blendshapes:
            if channel in mapping:
                mapping[channel] = list(strengths)
                found = True
        return found

    def to_dict(self) -> dict:
        return {
            "prefix": self.prefix,
            "number": self.number,
            "description": self.description,
            "blendshapes": [
                {name: list(curve) for name, curve in mapping.items()}
                for mapping in self.blendshapes
            ],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ActionUnit":
        return cls(
            prefix=d.get("prefix", ""),
            number=str(d["number"]),
            description=d.get("description", ""),
            blendshapes=[
                {name: list(curve) for name, curve in mapping.items()}
                for mapping in d["blendshapes"]
            ],
        )


@dataclass
class Expression:
    """Named composition of Action Units driven by one intensity value."""

    identifier: str = ""
    action_units: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"identifier": self.identifier, "actionUnits": list(self.action_units)}

    @classmethod
    def from_dict(cls, d: dict) -> "Expression":
        return cls(identifier=d["identifier"], action_units=list(d["actionUnits"]))
