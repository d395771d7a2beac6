"""Command interface of FaceEx -- wires the stores, the FACS driver and the player.

Every command answers with a success flag (or the object it built) and
leaves the field-level problems of a failure in :meth:`FaceExSession.errors`.
A UI layer only issues commands and re-renders from the store snapshots.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional, Sequence

from PIL import Image

from faceex.animation.config_store import AlertFn, ConfigurationStore, ConfirmFn
from faceex.animation.facs import FACSDriver
from faceex.animation.keyframes import Keyframe, KeyframeStore
from faceex.animation.player import LoopMode, MorphAnimationPlayer
from faceex.animation.tracks import MorphClip, SynthesisError, synthesize
from faceex.constants import CHANNEL_NAMES, DEFAULT_STRENGTHS, SAVE_FILE_NAME
from faceex.core.config_loader import ConfigSourceError, Source, fetch_json, save_json
from faceex.core.events import EventBus, EventType
from faceex.core.schema import ValidationMessage
from faceex.core.state import MorphState
from faceex.export import thumbnails

logger = logging.getLogger(__name__)


class FaceExSession:
    """One face, its configuration, its keyframes and its animation."""

    def __init__(
        self,
        channel_names: Sequence[str] = CHANNEL_NAMES,
        bus: Optional[EventBus] = None,
        confirm: Optional[ConfirmFn] = None,
        alert: Optional[AlertFn] = None,
    ):
        self.bus = bus if bus is not None else EventBus()
        self.confirm = confirm
        self.alert = alert

        self.state = MorphState(channel_names)
        self.config = ConfigurationStore(self.bus)
        self.keyframes = KeyframeStore(self.bus)
        self.facs = FACSDriver(self.state, self.config, self.bus)
        self.player = MorphAnimationPlayer(self.state, self.bus)
        self._errors: list[ValidationMessage] = []

        # AU levels on the face refer to the configuration they were set from
        self._detach = [
            self.bus.subscribe(EventType.CONFIG_LOADED, self._on_config_replaced),
            self.bus.subscribe(EventType.CONFIG_CLEARED, self._on_config_replaced),
        ]

    def close(self) -> None:
        """Stop playback and detach from a bus shared with other listeners."""
        self.player.stop()
        for detach in self._detach:
            detach()
        self._detach = []

    def errors(self) -> list[ValidationMessage]:
        """Problems reported by the most recent failed command."""
        return list(self._errors)

    # ── Configuration ─────────────────────────────────────────────

    def get_channel_names(self) -> list[str]:
        return self.state.channel_names

    def get_action_unit_names(self) -> list[str]:
        return self.config.get_action_unit_names()

    def get_blendshapes_for_au(self, au_key: str) -> list[dict[str, list[float]]]:
        return self.config.get_blendshapes_for_au(au_key)

    def add_action_unit(
        self,
        prefix: str,
        number: str,
        description: str,
        channel_names: Iterable[str],
        strengths: Iterable[float] = DEFAULT_STRENGTHS,
    ) -> bool:
        ok = self.config.add_action_unit(prefix, number, description, channel_names, strengths)
        self._errors = self.config.errors()
        return ok

    def add_expression(self, identifier: str, au_keys: Iterable[str]) -> bool:
        ok = self.config.add_expression(identifier, au_keys)
        self._errors = self.config.errors()
        return ok

    def update_strengths(self, au_key: str, channel: str, strengths: Iterable[float]) -> bool:
        ok = self.config.update_strengths(au_key, channel, strengths)
        self._errors = self.config.errors()
        return ok

    def save_config(self, path: Optional[Path] = None) -> Optional[Path]:
        path = Path(path) if path is not None else Path(SAVE_FILE_NAME)
        self._errors = []
        try:
            return self.config.save_to_file(path)
        except OSError as e:
            self._fail("<file>", f"cannot write {path} ({e})")
            return None

    def load_config(self, source: Source) -> bool:
        ok = self.config.load_source(source, confirm=self.confirm, alert=self.alert)
        self._errors = self.config.errors()
        return ok

    def load_default_config(self) -> bool:
        ok = self.config.load_default(confirm=self.confirm, alert=self.alert)
        self._errors = self.config.errors()
        return ok

    # ── Face ──────────────────────────────────────────────────────

    def set_action_unit_level(self, au_key: str, level: int) -> bool:
        self._errors = []
        if not self.facs.set_action_unit_level(au_key, level):
            self._fail("actionUnits", f"cannot set {au_key!r} to level {level!r}")
            return False
        return True

    def set_expression_intensity(self, identifier: str, t: float) -> bool:
        self._errors = []
        if not self.facs.set_expression_intensity(identifier, t):
            self._fail("expressions", f"No Expression named {identifier!r}")
            return False
        return True

    def apply_facs_code(self, code: str) -> bool:
        self._errors = []
        if not self.facs.apply_facs_code(code):
            self._fail("facs", f"cannot apply FACS code {code!r}")
            return False
        return True

    def facs_code(self) -> str:
        return self.facs.facs_code()

    def reset_face(self) -> None:
        self.player.stop()
        self.facs.reset()

    def save_snapshot(self, frame: Image.Image, directory: Path) -> Optional[Path]:
        """Store the centred crop of ``frame`` named after the current FACS code."""
        self._errors = []
        try:
            return thumbnails.save_snapshot(frame, directory, self.facs_code() or "neutral")
        except OSError as e:
            self._fail("<file>", f"cannot write snapshot to {directory} ({e})")
            return None

    # ── Keyframes ─────────────────────────────────────────────────

    def capture_keyframe(self, duration: float, frame: Optional[Image.Image] = None) -> bool:
        """Append the pose on screen; ``frame`` is the rendered image for the thumbnail."""
        ok = self.keyframes.add_keyframe(duration, self.state.influences(), self._thumbnail(frame))
        self._errors = self.keyframes.errors()
        return ok

    def capture_isi(self, duration: float) -> bool:
        ok = self.keyframes.add_isi_keyframe(duration)
        self._errors = self.keyframes.errors()
        return ok

    def remove_keyframe(self, position: int) -> bool:
        ok = self.keyframes.remove_keyframe(position)
        self._errors = self.keyframes.errors()
        return ok

    def edit_keyframe(self, position: int, duration: float, frame: Optional[Image.Image] = None) -> bool:
        """Overwrite a keyframe with the pose on screen; the thumbnail changes only with a frame."""
        thumbnail = thumbnails.crop_keyframe_thumbnail(frame) if frame is not None else None
        ok = self.keyframes.change_keyframe(
            position, duration=duration, influences=self.state.influences(), thumbnail=thumbnail,
        )
        self._errors = self.keyframes.errors()
        return ok

    def show_keyframe(self, position: int) -> bool:
        """Put a captured pose back on the face."""
        self._errors = []
        keyframe = self.keyframes.get_keyframe(position)
        if keyframe is None:
            self._fail("position", f"No keyframe at position {position}")
            return False
        if len(keyframe.influences) != self.state.channel_count:
            self._fail("influences", f"keyframe {position} does not fit this face")
            return False
        self.player.stop()
        self.state.set_influences(keyframe.influences)
        return True

    def get_keyframes(self) -> list[Keyframe]:
        return self.keyframes.get_keyframes()

    def delete_keyframes(self) -> None:
        self.keyframes.clear()
        self._errors = []

    def export_keyframes(self, path: Path) -> bool:
        self._errors = []
        try:
            save_json(Path(path), self.keyframes.to_dict())
        except OSError as e:
            self._fail("<file>", f"cannot write {path} ({e})")
            return False
        logger.info("Exported %d keyframes to %s", len(self.keyframes), path)
        return True

    def import_keyframes(self, source: Source) -> bool:
        try:
            document = fetch_json(source)
        except ConfigSourceError as e:
            self._errors = []
            self._fail("<source>", str(e))
            return False
        ok = self.keyframes.load_dict(document)
        self._errors = self.keyframes.errors()
        return ok

    # ── Animation ─────────────────────────────────────────────────

    def create_animation(self, from_keyframes: bool = True) -> Optional[MorphClip]:
        """Build and load a clip; ``from_keyframes=False`` takes the raw sequence path."""
        self._errors = []
        try:
            clip = synthesize(self.keyframes.get_keyframes(), isi_aware=from_keyframes)
        except SynthesisError as e:
            self._fail("keyframes", str(e))
            return None
        self.player.load(clip)
        logger.info("Animation %r created from %d keyframes", clip.name, len(self.keyframes))
        self.bus.publish(EventType.ANIMATION_CREATED, clip=clip)
        return clip

    def play_animation(self, loop: LoopMode = LoopMode.ONCE, clamp: bool = True) -> bool:
        self._errors = []
        if not self.player.play(loop, clamp_when_finished=clamp):
            self._fail("animation", "No animation has been created")
            return False
        return True

    def stop_animations(self) -> None:
        self.player.stop()

    def update(self, dt: float) -> None:
        """Advance playback by ``dt`` seconds; call once per rendered frame."""
        self.player.tick(dt)

    # ── Internal ──────────────────────────────────────────────────

    def _on_config_replaced(self, **data) -> None:
        if self.facs.levels:
            logger.info("Configuration replaced, resetting the face")
            self.reset_face()

    @staticmethod
    def _thumbnail(frame: Optional[Image.Image]) -> str:
        if frame is None:
            return thumbnails.blank_thumbnail()
        return thumbnails.crop_keyframe_thumbnail(frame)

    def _fail(self, path: str, message: str) -> None:
        self._errors.append(ValidationMessage(path, message))
        logger.warning("%s: %s", path, message)
