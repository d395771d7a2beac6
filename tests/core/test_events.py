"""Tests for the event bus and the events the stores put on it."""

from faceex.animation.config_store import ConfigurationStore
from faceex.animation.keyframes import KeyframeStore
from faceex.coordination.session import FaceExSession
from faceex.core.events import EventBus, EventType
from faceex.export.thumbnails import blank_thumbnail


def test_keyframe_store_publishes_positions():
    bus = EventBus()
    seen = []
    bus.subscribe(EventType.KEYFRAME_ADDED, lambda **kw: seen.append(("added", kw["position"])))
    bus.subscribe(EventType.KEYFRAME_REMOVED, lambda **kw: seen.append(("removed", kw["position"])))
    store = KeyframeStore(bus)
    store.add_keyframe(0, [0.1] * 52, blank_thumbnail((4, 4)))
    store.add_isi_keyframe(200)
    store.remove_keyframe(0)
    assert seen == [("added", 0), ("added", 1), ("removed", 0)]


def test_config_load_reaches_every_listener():
    bus = EventBus()
    counts, forced = [], []
    bus.subscribe(EventType.CONFIG_LOADED, lambda **kw: counts.append(kw["action_units"]))
    bus.subscribe(EventType.CONFIG_LOADED, lambda **kw: forced.append(kw["forced"]))
    assert ConfigurationStore(bus).load_default()
    assert counts == [11]
    assert forced == [False]


def test_subscribe_returns_detach_handle():
    bus = EventBus()
    seen = []
    detach = bus.subscribe(EventType.CONFIG_CLEARED, lambda **kw: seen.append(1))
    store = ConfigurationStore(bus)
    store.clear()
    detach()
    detach()
    store.clear()
    assert seen == [1]


def test_handler_may_unsubscribe_while_published():
    bus = EventBus()
    finished = []

    def once(**kw):
        finished.append(1)
        bus.unsubscribe(EventType.ANIM_FINISHED, once)

    bus.subscribe(EventType.ANIM_FINISHED, once)
    bus.subscribe(EventType.ANIM_FINISHED, lambda **kw: finished.append(2))
    bus.publish(EventType.ANIM_FINISHED)
    bus.publish(EventType.ANIM_FINISHED)
    assert finished == [1, 2, 2]


def test_unrelated_events_stay_quiet():
    bus = EventBus()
    seen = []
    bus.subscribe(EventType.KEYFRAMES_LOADED, lambda **kw: seen.append(kw))
    KeyframeStore(bus).clear()
    bus.publish(EventType.FACE_RESET)
    assert seen == []
    bus.clear()
    bus.publish(EventType.KEYFRAMES_LOADED, count=3)
    assert seen == []


def test_session_resets_face_when_config_is_replaced():
    bus = EventBus()
    session = FaceExSession(bus=bus, alert=lambda message: None)
    assert session.load_default_config()
    session.set_action_unit_level("12", 3)
    assert session.facs_code() == "12C"

    other = ConfigurationStore(bus)
    assert other.load_default()
    assert session.facs_code() == ""
    assert not any(session.state.influences())


def test_closed_session_ignores_config_events():
    bus = EventBus()
    session = FaceExSession(bus=bus, alert=lambda message: None)
    assert session.load_default_config()
    session.set_action_unit_level("12", 3)
    session.close()
    bus.publish(EventType.CONFIG_CLEARED)
    assert session.facs_code() == "12C"
