"""Tests for clip playback onto the morph state."""

import pytest

from faceex.animation.keyframes import Keyframe
from faceex.animation.player import LoopMode, MorphAnimationPlayer
from faceex.animation.tracks import synthesize
from faceex.core.events import EventBus, EventType
from faceex.core.state import MorphState


def _kf(position, duration, value):
    influences = [1.0] * 52 if value is None else [value] * 52
    return Keyframe(position=position, duration=duration, influences=influences, thumbnail="AAAA")


def _player(*pairs, bus=None):
    state = MorphState()
    player = MorphAnimationPlayer(state, bus)
    player.load(synthesize([_kf(i, d, v) for i, (d, v) in enumerate(pairs)]))
    return state, player


def test_play_requires_clip():
    player = MorphAnimationPlayer(MorphState())
    assert not player.play()
    assert not player.is_playing


def test_tick_interpolates():
    state, player = _player((0, 0.0), (1000, 0.8))
    assert player.play()
    player.tick(0.25)
    assert state.influences()[0] == pytest.approx(0.2)
    assert player.progress == pytest.approx(0.25)


def test_play_once_clamps_final_pose():
    bus = EventBus()
    finished = []
    bus.subscribe(EventType.ANIM_FINISHED, lambda **kw: finished.append(1))
    state, player = _player((0, 0.0), (500, 0.8), bus=bus)
    completed = []
    player.on_complete = lambda: completed.append(1)
    player.play(LoopMode.ONCE, clamp_when_finished=True)
    player.tick(1.0)
    assert not player.is_playing
    assert state.influences()[7] == pytest.approx(0.8)
    assert finished == [1]
    assert completed == [1]


def test_play_once_without_clamp_restores_pose():
    state, player = _player((0, 0.0), (500, 0.8))
    state.set_influence_at(0, 0.33)
    player.play(LoopMode.ONCE, clamp_when_finished=False)
    player.tick(1.0)
    assert state.influences()[0] == pytest.approx(0.33)
    assert state.influences()[1] == 0.0


def test_repeat_wraps():
    state, player = _player((0, 0.0), (1000, 0.8))
    player.play(LoopMode.REPEAT)
    player.tick(1.25)
    assert player.is_playing
    assert player.current_time == pytest.approx(0.25)
    assert state.influences()[0] == pytest.approx(0.2)


def test_stop_restores_pre_play_pose():
    bus = EventBus()
    stopped = []
    bus.subscribe(EventType.ANIM_STOP, lambda **kw: stopped.append(1))
    state, player = _player((0, 0.5), (1000, 0.9), bus=bus)
    state.set_influence_at(3, 0.2)
    before = state.influences()
    player.play()
    player.tick(0.5)
    assert state.influences() != before
    player.stop()
    assert state.influences() == before
    assert player.current_time == 0.0
    assert stopped == [1]


def test_stop_after_clamped_finish_restores_pose():
    state, player = _player((0, 0.0), (100, 0.9))
    player.play()
    player.tick(1.0)
    assert state.influences()[0] == pytest.approx(0.9)
    player.stop()
    assert state.influences()[0] == 0.0


def test_isi_hides_and_shows_mesh():
    state, player = _player((0, 0.3), (400, None), (400, 0.7))
    changes = []
    player.on_visibility = lambda part, visible: changes.append((part, visible))
    player.play()
    player.tick(0.4)
    assert state.visibility["mesh_0"] is False
    assert state.influences()[0] == pytest.approx(0.3)
    player.tick(0.4)
    assert all(state.visibility.values())
    assert ("mesh_2", False) in changes
    assert ("mesh_2", True) in changes


def test_stop_shows_hidden_mesh():
    state, player = _player((0, 0.3), (400, None), (400, 0.7))
    player.play(LoopMode.REPEAT)
    player.tick(0.5)
    assert state.visibility["mesh_1"] is False
    player.stop()
    assert state.visibility["mesh_1"] is True


def test_pause_and_resume():
    state, player = _player((0, 0.0), (1000, 0.8))
    player.play()
    player.tick(0.25)
    player.pause()
    player.tick(0.5)
    assert player.current_time == pytest.approx(0.25)
    player.play()
    player.tick(0.25)
    assert player.current_time == pytest.approx(0.5)


def test_seek_and_speed():
    state, player = _player((0, 0.0), (2000, 0.8))
    player.seek(0.5)
    assert player.current_time == pytest.approx(1.0)
    assert state.influences()[0] == pytest.approx(0.4)
    player.set_speed(0.0)
    assert player.speed == pytest.approx(0.01)


def test_play_publishes_loop_mode():
    bus = EventBus()
    seen = []
    bus.subscribe(EventType.ANIM_PLAY, lambda **kw: seen.append(kw["loop"]))
    _, player = _player((0, 0.0), (100, 0.8), bus=bus)
    player.play(LoopMode.REPEAT)
    assert seen == [LoopMode.REPEAT]


def test_blank_frame_holds_earlier_pose_during_playback():
    state, player = _player((0, 0.0), (1000, 0.6), (1000, None))
    player.play()
    player.tick(1.5)
    assert state.influences()[0] == pytest.approx(0.6)
    assert state.visibility["mesh_2"] is True
    player.tick(0.5)
    assert state.influences()[0] == pytest.approx(0.6)
    assert state.visibility["mesh_2"] is False
