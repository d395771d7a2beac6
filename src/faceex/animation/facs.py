"""FACS driver -- turns Action Unit levels and Expression intensities into channel values.

Action Units are scored 0 (neutral) or A-E, the five steps of each channel's
strength curve.  The resulting pose is written into :class:`MorphState`;
several Action Units touching the same channel simply overwrite each other
in the order they are set.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from faceex.animation.config_store import ConfigurationStore
from faceex.constants import INTENSITY_LABELS, STRENGTH_LEVELS
from faceex.core.events import EventBus, EventType
from faceex.core.state import MorphState

logger = logging.getLogger(__name__)

_FACS_TERM_RE = re.compile(r"^(?:[A-Za-z]{1,2})?(\d{1,3})([A-E])$")


def parse_facs_code(code: str) -> list[tuple[str, int]]:
    """``"12A+4C"`` -> ``[("12", 1), ("4", 3)]``; raises ValueError on a bad term."""
    terms = [t.strip() for t in code.split("+")] if code.strip() else []
    parsed = []
    for term in terms:
        m = _FACS_TERM_RE.match(term)
        if m is None:
            raise ValueError(f"Invalid FACS term {term!r} in {code!r}")
        parsed.append((m.group(1), INTENSITY_LABELS.index(m.group(2))))
    return parsed


class FACSDriver:
    """Apply Action Unit levels and Expression intensities to the face."""

    def __init__(
        self,
        state: MorphState,
        config: ConfigurationStore,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.state = state
        self.config = config
        self.bus = bus
        self._levels: dict[str, int] = {}

    @property
    def levels(self) -> dict[str, int]:
        """Current non-zero level per Action Unit key."""
        return dict(self._levels)

    def set_action_unit_level(self, au_key: str, level: int) -> bool:
        au = self.config.find_action_unit(au_key)
        if au is None:
            logger.warning("No Action Unit matches %r", au_key)
            return False
        if not 0 <= level <= STRENGTH_LEVELS:
            logger.warning("Intensity level %r out of range for %s", level, au.key)
            return False

        for channel, value in au.values_at_level(level).items():
            self.state.set_influence(channel, value)
        if level:
            self._levels[au.key] = level
        else:
            self._levels.pop(au.key, None)
        self._publish(EventType.AU_LEVEL_CHANGED, number=au.number, level=level)
        return True

    def set_expression_intensity(self, identifier: str, t: float) -> bool:
        """Drive every referenced AU at ``peak * t`` with ``t`` clamped to [0, 1]."""
        expr = self.config.find_expression(identifier)
        if expr is None:
            logger.warning("No Expression named %r", identifier)
            return False

        t = min(max(float(t), 0.0), 1.0)
        for au_key in expr.action_units:
            au = self.config.find_action_unit(au_key)
            if au is None:
                logger.warning("Expression %r references unknown Action Unit %r", identifier, au_key)
                continue
            for channel, peak in au.peak_values().items():
                self.state.set_influence(channel, peak * t)
        self._publish(EventType.EXPRESSION_SET, identifier=identifier, intensity=t)
        return True

    def facs_code(self) -> str:
        """``"12A+4C"`` for the Action Units currently above 0, in configuration order."""
        terms = []
        for au in self.config.get_action_units():
            level = self._levels.get(au.key, 0)
            if level:
                terms.append(f"{au.number}{INTENSITY_LABELS[level]}")
        return "+".join(terms)

    def apply_facs_code(self, code: str) -> bool:
        """Reset the face, then set every AU named in ``code``."""
        try:
            terms = parse_facs_code(code)
        except ValueError as e:
            logger.warning("%s", e)
            return False
        missing = [n for n, _ in terms if self.config.find_action_unit(n) is None]
        if missing:
            logger.warning("FACS code %r names unknown Action Units: %s", code, ", ".join(missing))
            return False

        self.reset()
        for number, level in terms:
            self.set_action_unit_level(number, level)
        return True

    def reset(self) -> None:
        self.state.reset()
        self._levels.clear()
        self._publish(EventType.FACE_RESET)

    def _publish(self, event_type: EventType, **data) -> None:
        if self.bus is not None:
            self.bus.publish(event_type, **data)
