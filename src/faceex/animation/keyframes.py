"""Captured keyframes: ordered poses with timing and a thumbnail.

``position`` is the keyframe's index in the sequence, not an identity;
every mutation keeps ``keyframes[i].position == i``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterator, Optional, Sequence

import numpy as np

from faceex.constants import CHANNEL_COUNT, ISI_VALUE
from faceex.core.events import EventBus, EventType
from faceex.core.schema import SchemaValidator, ValidationMessage, keyframe_validator
from faceex.export.thumbnails import blank_thumbnail, is_encoded_thumbnail

logger = logging.getLogger(__name__)


def is_isi_frame(influences: Sequence[float]) -> bool:
    """A blank (inter-stimulus) frame has every influence exactly 1."""
    return len(influences) > 0 and all(v == ISI_VALUE for v in influences)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _non_finite(candidate: dict) -> list[ValidationMessage]:
    """JSON Schema accepts NaN and infinity as numbers; a keyframe does not."""
    errors = []
    duration = candidate.get("duration")
    if _is_number(duration) and not math.isfinite(duration):
        errors.append(ValidationMessage("duration", "must be a finite number"))
    influences = candidate.get("influences")
    if isinstance(influences, list) and any(_is_number(v) and not math.isfinite(v) for v in influences):
        errors.append(ValidationMessage("influences", "values must be finite"))
    return errors


@dataclass
class Keyframe:
    position: int = 0
    duration: float = 0.0  # ms since the previous keyframe
    influences: list[float] = field(default_factory=list)
    thumbnail: str = ""

    @property
    def is_isi(self) -> bool:
        return is_isi_frame(self.influences)

    def to_dict(self) -> dict:
        return {
            "position": self.position,
            "duration": self.duration,
            "influences": list(self.influences),
            "thumbnail": self.thumbnail,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Keyframe":
        return cls(
            position=d["position"],
            duration=d["duration"],
            influences=list(d["influences"]),
            thumbnail=d["thumbnail"],
        )


def _plain_list(values):
    if values is None:
        return None
    if isinstance(values, np.ndarray):
        return values.tolist()
    return [v.item() if isinstance(v, np.generic) else v for v in values]


class KeyframeStore:
    """Ordered keyframe sequence with validated insert/remove/update."""

    def __init__(self, bus: Optional[EventBus] = None):
        self.bus = bus
        self._keyframes: list[Keyframe] = []
        self._validator: SchemaValidator = keyframe_validator()
        self._errors: list[ValidationMessage] = []

    def __len__(self) -> int:
        return len(self._keyframes)

    def __iter__(self) -> Iterator[Keyframe]:
        return iter(list(self._keyframes))

    def get_keyframes(self) -> list[Keyframe]:
        return list(self._keyframes)

    def get_keyframe(self, position: int) -> Optional[Keyframe]:
        if 0 <= position < len(self._keyframes):
            return self._keyframes[position]
        return None

    def errors(self) -> list[ValidationMessage]:
        return list(self._errors)

    # ── Commands ──────────────────────────────────────────────────

    def add_keyframe(self, duration: float, influences: Sequence[float], thumbnail: str) -> bool:
        """Append a keyframe; the first one always gets duration 0."""
        self._errors = []
        position = len(self._keyframes)
        if position == 0:
            duration = 0
        candidate = {
            "position": position,
            "duration": duration,
            "influences": _plain_list(influences),
            "thumbnail": thumbnail,
        }
        if not self._check(candidate):
            self._report(f"Keyframe at position {position} was not added")
            return False

        self._keyframes.append(Keyframe.from_dict(candidate))
        logger.info("Keyframe added at position %d (%d keyframes)", position, len(self._keyframes))
        self._publish(EventType.KEYFRAME_ADDED, position=position)
        return True

    def add_isi_keyframe(self, duration: float, thumbnail: Optional[str] = None) -> bool:
        """Append a blank frame: all influences 1, black thumbnail by default."""
        return self.add_keyframe(
            duration, [ISI_VALUE] * CHANNEL_COUNT, thumbnail or blank_thumbnail(),
        )

    def remove_keyframe(self, position: int) -> bool:
        self._errors = []
        if not 0 <= position < len(self._keyframes):
            self._errors.append(ValidationMessage("position", f"No keyframe at position {position}"))
            logger.error("No keyframe found at position %d", position)
            return False

        del self._keyframes[position]
        self._renumber()
        logger.info("Keyframe at position %d removed", position)
        self._publish(EventType.KEYFRAME_REMOVED, position=position)
        return True

    def change_keyframe(
        self,
        position: int,
        duration: Optional[float] = None,
        influences: Optional[Sequence[float]] = None,
        thumbnail: Optional[str] = None,
    ) -> bool:
        """Overwrite the given fields in place; ``None`` leaves a field untouched."""
        self._errors = []
        keyframe = self.get_keyframe(position)
        if keyframe is None:
            self._errors.append(ValidationMessage("position", f"No keyframe at position {position}"))
            logger.error("No keyframe found at position %d", position)
            return False

        candidate = keyframe.to_dict()
        if duration is not None:
            candidate["duration"] = 0 if position == 0 else duration
        if influences is not None:
            candidate["influences"] = _plain_list(influences)
        if thumbnail is not None:
            candidate["thumbnail"] = thumbnail
        if not self._check(candidate):
            self._report(f"Keyframe at position {position} was not changed")
            return False

        keyframe.duration = candidate["duration"]
        keyframe.influences = candidate["influences"]
        keyframe.thumbnail = candidate["thumbnail"]
        logger.info("Keyframe at position %d updated", position)
        self._publish(EventType.KEYFRAME_CHANGED, position=position)
        return True

    def clear(self) -> None:
        self._keyframes = []
        self._errors = []
        logger.info("All keyframes deleted")
        self._publish(EventType.KEYFRAMES_CLEARED)

    # ── Export / import ───────────────────────────────────────────

    def to_dict(self) -> dict:
        return {"keyframes": [kf.to_dict() for kf in self._keyframes]}

    def load_dict(self, document) -> bool:
        """Replace the whole sequence; every record must validate."""
        self._errors = []
        records = document.get("keyframes") if isinstance(document, dict) else None
        if not isinstance(records, list):
            self._errors.append(ValidationMessage("keyframes", "expected a list of keyframes"))
            self._report("Keyframes were not imported")
            return False

        loaded = []
        for i, record in enumerate(records):
            if not isinstance(record, dict):
                self._errors.append(ValidationMessage(f"keyframes.{i}", "expected an object"))
                continue
            candidate = dict(record, position=i)
            if i == 0:
                candidate["duration"] = 0
            if self._check(candidate, prefix=f"keyframes.{i}"):
                loaded.append(Keyframe.from_dict(candidate))
        if self._errors:
            self._report("Keyframes were not imported")
            return False

        self._keyframes = loaded
        logger.info("Imported %d keyframes", len(loaded))
        self._publish(EventType.KEYFRAMES_LOADED, count=len(loaded))
        return True

    # ── Internal ──────────────────────────────────────────────────

    def _check(self, candidate: dict, prefix: str = "") -> bool:
        errors = []
        if not self._validator.validate(candidate):
            errors.extend(self._validator.errors())
        thumbnail = candidate.get("thumbnail")
        if isinstance(thumbnail, str) and thumbnail and not is_encoded_thumbnail(thumbnail):
            errors.append(ValidationMessage("thumbnail", "is not base64 encoded"))
        errors.extend(_non_finite(candidate))
        if prefix:
            errors = [
                ValidationMessage(prefix if e.path == "<root>" else f"{prefix}.{e.path}", e.message)
                for e in errors
            ]
        self._errors.extend(errors)
        return not errors

    def _renumber(self) -> None:
        for i, kf in enumerate(self._keyframes):
            kf.position = i
        if self._keyframes:
            self._keyframes[0].duration = 0

    def _report(self, headline: str) -> None:
        logger.warning(headline)
        for e in self._errors:
            logger.error("  %s", e)

    def _publish(self, event_type: EventType, **data) -> None:
        if self.bus is not None:
            self.bus.publish(event_type, **data)
