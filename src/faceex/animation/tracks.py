"""Morph target animation tracks synthesized from keyframes.

Two ways in:

* :func:`synthesize_from_keyframes` -- the captured keyframe sequence, with
  blank (ISI) frames holding the neighbouring pose while the mesh parts are
  hidden through boolean visibility tracks.
* :func:`synthesize_from_sequence` -- raw influence vectors plus the
  durations *between* them (one fewer than vectors); no ISI handling.

Both either return a complete :class:`MorphClip` or raise
:class:`SynthesisError`; a partial track set is never produced.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence, Union

import numpy as np
from numpy.typing import NDArray

from faceex.animation.interpolation import DISCRETE, LINEAR, SMOOTH
from faceex.animation.keyframes import Keyframe, is_isi_frame
from faceex.constants import CLIP_NAME, FACE_MESH_NAME, MESH_PARTS, RAW_CLIP_NAME


class SynthesisError(ValueError):
    """Keyframe data cannot be turned into tracks."""


# ── Data classes ─────────────────────────────────────────────────────

@dataclass
class NumberTrack:
    """Influence of one morph target channel over time."""

    name: str
    index: int
    times: NDArray[np.float64]
    values: NDArray[np.float64]
    interpolation: str = LINEAR


@dataclass
class BooleanTrack:
    """Visibility of one mesh part over time; always sampled discretely."""

    name: str
    part: str
    times: NDArray[np.float64]
    values: NDArray[np.bool_]
    interpolation: str = DISCRETE


Track = Union[NumberTrack, BooleanTrack]


@dataclass
class MorphClip:
    name: str = CLIP_NAME
    tracks: list[Track] = field(default_factory=list)

    @property
    def duration(self) -> float:
        if not self.tracks:
            return 0.0
        return max(float(t.times[-1]) for t in self.tracks)

    @property
    def number_tracks(self) -> list[NumberTrack]:
        return [t for t in self.tracks if isinstance(t, NumberTrack)]

    @property
    def visibility_tracks(self) -> list[BooleanTrack]:
        return [t for t in self.tracks if isinstance(t, BooleanTrack)]


def influence_track_name(mesh_name: str, index: int) -> str:
    return f"{mesh_name}.morphTargetInfluences[{index}]"


def visibility_track_name(part: str) -> str:
    return f"{part}.visible"


# ── Synthesis ────────────────────────────────────────────────────────

def _as_matrix(influences: Sequence[Sequence[float]]) -> NDArray[np.float64]:
    """Stack influence vectors into a (frames, channels) array."""
    if len(influences) == 0:
        raise SynthesisError("empty keyframe list")
    width = len(influences[0])
    if width == 0:
        raise SynthesisError("keyframes carry no influences")
    for i, frame in enumerate(influences):
        if len(frame) != width:
            raise SynthesisError(
                f"length mismatch: keyframe {i} has {len(frame)} influences, expected {width}"
            )
    try:
        frames = np.asarray(influences, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise SynthesisError(f"non-numeric influences ({e})") from e
    if not np.isfinite(frames).all():
        raise SynthesisError("influences must be finite")
    return frames


def _as_durations(durations_ms: Sequence[float]) -> NDArray[np.float64]:
    try:
        ms = np.asarray(durations_ms, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise SynthesisError(f"non-numeric durations ({e})") from e
    if not np.isfinite(ms).all() or (ms < 0).any():
        raise SynthesisError("durations must be finite and non-negative")
    return ms


def keyframe_times(durations_ms: Sequence[float]) -> NDArray[np.float64]:
    """Cumulative timestamps in seconds; the first keyframe sits at 0."""
    ms = np.asarray(durations_ms, dtype=np.float64).copy()
    ms[0] = 0.0
    return np.cumsum(ms) / 1000.0


def substitute_isi_frames(frames: NDArray[np.float64], isi: NDArray[np.bool_]) -> NDArray[np.float64]:
    """Replace blank frames by the pose they should hold.

    A blank frame takes the (already substituted) pose before it; a leading
    run of blank frames takes the first real pose after it.  With no real
    pose anywhere the face stays neutral.
    """
    out = frames.copy()
    real = np.flatnonzero(~isi)
    for k in np.flatnonzero(isi):
        if k > 0:
            out[k] = out[k - 1]
        elif real.size:
            out[k] = frames[real[0]]
        else:
            out[k] = 0.0
    return out


def synthesize_from_keyframes(
    keyframes: Sequence[Keyframe],
    mesh_name: str = FACE_MESH_NAME,
    mesh_parts: Sequence[str] = MESH_PARTS,
    name: str = CLIP_NAME,
) -> MorphClip:
    """One linear track per channel plus visibility tracks when blank frames exist."""
    frames = _as_matrix([kf.influences for kf in keyframes])
    durations = [kf.duration for kf in keyframes]
    _as_durations(durations[1:])
    times = keyframe_times(durations)
    isi = np.array([is_isi_frame(f) for f in frames], dtype=bool)
    poses = substitute_isi_frames(frames, isi)

    tracks: list[Track] = [
        NumberTrack(
            name=influence_track_name(mesh_name, ch),
            index=ch,
            times=times.copy(),
            values=poses[:, ch].copy(),
            interpolation=LINEAR,
        )
        for ch in range(frames.shape[1])
    ]

    if isi.any():
        visible = ~isi
        tracks.extend(
            BooleanTrack(
                name=visibility_track_name(part),
                part=part,
                times=times.copy(),
                values=visible.copy(),
            )
            for part in mesh_parts
        )
    return MorphClip(name=name, tracks=tracks)


def synthesize_from_sequence(
    influences: Sequence[Sequence[float]],
    durations_ms: Sequence[float],
    mesh_name: str = FACE_MESH_NAME,
    name: str = RAW_CLIP_NAME,
) -> MorphClip:
    """Tracks from raw poses and the transition durations between them."""
    frames = _as_matrix(influences)
    if len(durations_ms) != len(frames) - 1:
        raise SynthesisError(
            f"length mismatch: {len(frames)} poses need {len(frames) - 1} durations, "
            f"got {len(durations_ms)}"
        )
    times = np.concatenate(([0.0], np.cumsum(_as_durations(durations_ms)) / 1000.0))

    tracks: list[Track] = [
        NumberTrack(
            name=influence_track_name(mesh_name, ch),
            index=ch,
            times=times.copy(),
            values=frames[:, ch].copy(),
            interpolation=SMOOTH,
        )
        for ch in range(frames.shape[1])
    ]
    return MorphClip(name=name, tracks=tracks)


def synthesize(
    keyframes: Sequence[Keyframe],
    isi_aware: bool = True,
    mesh_name: str = FACE_MESH_NAME,
    mesh_parts: Sequence[str] = MESH_PARTS,
) -> MorphClip:
    """Single entry point for both paths; the raw path ignores the first duration."""
    if isi_aware:
        return synthesize_from_keyframes(keyframes, mesh_name=mesh_name, mesh_parts=mesh_parts)
    return synthesize_from_sequence(
        [kf.influences for kf in keyframes],
        [kf.duration for kf in keyframes][1:],
        mesh_name=mesh_name,
    )


# ── Serialization ─────────────────────────────────────────────────

def clip_to_dict(clip: MorphClip) -> dict:
    """Serialize a MorphClip to a JSON-compatible dict."""
    tracks = []
    for track in clip.tracks:
        data = {
            "name": track.name,
            "times": track.times.tolist(),
            "values": track.values.tolist(),
            "interpolation": track.interpolation,
        }
        if isinstance(track, NumberTrack):
            data["type"] = "number"
            data["index"] = track.index
        else:
            data["type"] = "boolean"
            data["part"] = track.part
        tracks.append(data)
    return {"name": clip.name, "duration": clip.duration, "tracks": tracks}


def load_clip_from_dict(d: dict) -> MorphClip:
    """Deserialize a MorphClip from a JSON-compatible dict."""
    tracks: list[Track] = []
    for data in d.get("tracks", []):
        times = np.asarray(data["times"], dtype=np.float64)
        if data.get("type") == "boolean":
            tracks.append(BooleanTrack(
                name=data["name"],
                part=data.get("part", data["name"].split(".")[0]),
                times=times,
                values=np.asarray(data["values"], dtype=bool),
            ))
        else:
            tracks.append(NumberTrack(
                name=data["name"],
                index=data["index"],
                times=times,
                values=np.asarray(data["values"], dtype=np.float64),
                interpolation=data.get("interpolation", LINEAR),
            ))
    return MorphClip(name=d.get("name", CLIP_NAME), tracks=tracks)
