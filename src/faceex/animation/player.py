"""Playback of a MorphClip onto the live morph state.

The player is driven by ``tick(dt)`` from the host's frame loop.  Starting
playback remembers the pose on screen; ``stop()`` (and the end of a play-once
clip that is not clamped) puts that pose back.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from faceex.animation.interpolation import DISCRETE, sample
from faceex.animation.tracks import MorphClip
from faceex.core.events import EventBus, EventType
from faceex.core.state import MorphState

logger = logging.getLogger(__name__)


class LoopMode(Enum):
    ONCE = "once"
    REPEAT = "repeat"


class MorphAnimationPlayer:
    """Plays a MorphClip by sampling every track each tick.

    Callbacks:
      on_visibility(part, visible)  -- a mesh part was shown or hidden
      on_complete()                 -- a play-once clip reached its end
    """

    def __init__(self, state: MorphState, bus: Optional[EventBus] = None) -> None:
        self.state = state
        self.bus = bus
        self._clip: MorphClip | None = None
        self._time: float = 0.0
        self._playing: bool = False
        self._paused: bool = False
        self._speed: float = 1.0
        self._loop: LoopMode = LoopMode.ONCE
        self._clamp: bool = True
        self._saved_influences: list[float] | None = None
        self._saved_visibility: dict[str, bool] | None = None

        self.on_visibility: Callable | None = None
        self.on_complete: Callable | None = None

    # ── Properties ────────────────────────────────────────────────

    @property
    def clip(self) -> MorphClip | None:
        return self._clip

    @property
    def is_playing(self) -> bool:
        return self._playing

    @property
    def loop(self) -> LoopMode:
        return self._loop

    @property
    def current_time(self) -> float:
        return self._time

    @property
    def duration(self) -> float:
        return self._clip.duration if self._clip else 0.0

    @property
    def speed(self) -> float:
        return self._speed

    @property
    def progress(self) -> float:
        d = self.duration
        if d <= 0.0:
            return 0.0
        return min(self._time / d, 1.0)

    # ── Control ───────────────────────────────────────────────────

    def load(self, clip: MorphClip) -> None:
        """Load a clip and reset to the beginning; a running clip is stopped first."""
        if self._playing or self._paused:
            self.stop()
        self._clip = clip
        self._time = 0.0
        logger.info("Loaded clip %r (%d tracks, %.3fs)", clip.name, len(clip.tracks), clip.duration)

    def play(self, loop: LoopMode = LoopMode.ONCE, clamp_when_finished: bool = True) -> bool:
        """Start from the beginning, or resume after ``pause()``."""
        if self._clip is None:
            logger.warning("No animation loaded")
            return False

        self._loop = loop
        self._clamp = clamp_when_finished
        if not self._paused:
            if self._saved_influences is None:
                self._save_pose()
            self._time = 0.0
        self._paused = False
        self._playing = True
        self._publish(EventType.ANIM_PLAY, loop=loop)
        self._evaluate()
        return True

    def pause(self) -> None:
        if self._playing:
            self._playing = False
            self._paused = True

    def stop(self) -> None:
        was_active = self._playing or self._paused
        self._playing = False
        self._paused = False
        self._time = 0.0
        self._restore_pose()
        if was_active:
            self._publish(EventType.ANIM_STOP)

    def seek(self, fraction: float) -> None:
        """Seek to a normalized position (0-1)."""
        if self._clip is None:
            return
        self._time = min(max(fraction, 0.0), 1.0) * self._clip.duration
        self._evaluate()

    def set_speed(self, s: float) -> None:
        self._speed = max(0.01, s)

    # ── Per-frame tick ────────────────────────────────────────────

    def tick(self, dt: float) -> None:
        """Advance the animation by dt seconds and apply the sampled values."""
        if not self._playing or self._clip is None:
            return

        self._time += dt * self._speed
        duration = self._clip.duration

        if self._time >= duration:
            if self._loop is LoopMode.REPEAT:
                self._time = self._time % duration if duration > 0 else 0.0
            else:
                self._time = duration
                self._playing = False
                if self._clamp:
                    self._evaluate()
                else:
                    self._restore_pose()
                self._publish(EventType.ANIM_FINISHED)
                if self.on_complete:
                    self.on_complete()
                return

        self._evaluate()

    # ── Sampling ──────────────────────────────────────────────────

    def _evaluate(self) -> None:
        clip = self._clip
        if clip is None:
            return
        t = self._time
        count = self.state.channel_count
        for track in clip.number_tracks:
            if 0 <= track.index < count:
                value = sample(track.times, track.values, t, track.interpolation)
                self.state.set_influence_at(track.index, float(value))
        for track in clip.visibility_tracks:
            self._apply_visibility(track.part, bool(sample(track.times, track.values, t, DISCRETE)))

    def _apply_visibility(self, part: str, visible: bool) -> None:
        if self.state.visibility.get(part) == visible:
            return
        self.state.set_visible(part, visible)
        if self.on_visibility:
            self.on_visibility(part, visible)

    def _save_pose(self) -> None:
        self._saved_influences = self.state.influences()
        self._saved_visibility = dict(self.state.visibility)

    def _restore_pose(self) -> None:
        if self._saved_influences is None:
            return
        self.state.set_influences(self._saved_influences)
        for part, visible in (self._saved_visibility or {}).items():
            self._apply_visibility(part, visible)
        self._saved_influences = None
        self._saved_visibility = None

    def _publish(self, event_type: EventType, **data) -> None:
        if self.bus is not None:
            self.bus.publish(event_type, **data)
