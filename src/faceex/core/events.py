"""EventBus for decoupled publish/subscribe communication."""

from enum import Enum, auto
from typing import Any, Callable
from collections import defaultdict


class EventType(Enum):
    # Configuration store
    ACTION_UNIT_ADDED = auto()    # data: action_unit (ActionUnit)
    EXPRESSION_ADDED = auto()     # data: expression (Expression)
    STRENGTHS_CHANGED = auto()    # data: au_key (str), channel (str)
    CONFIG_LOADED = auto()        # data: action_units (int), expressions (int), forced (bool)
    CONFIG_CLEARED = auto()

    # Keyframe store
    KEYFRAME_ADDED = auto()       # data: position (int)
    KEYFRAME_REMOVED = auto()     # data: position (int)
    KEYFRAME_CHANGED = auto()     # data: position (int)
    KEYFRAMES_CLEARED = auto()
    KEYFRAMES_LOADED = auto()     # data: count (int)

    # Face state
    FACE_RESET = auto()
    AU_LEVEL_CHANGED = auto()     # data: number (str), level (int)
    EXPRESSION_SET = auto()       # data: identifier (str), intensity (float)

    # Animation
    ANIMATION_CREATED = auto()    # data: clip (MorphClip)
    ANIM_PLAY = auto()            # data: loop (LoopMode)
    ANIM_STOP = auto()
    ANIM_FINISHED = auto()


class EventBus:
    """Simple publish/subscribe event system."""

    def __init__(self):
        self._handlers: dict[EventType, list[Callable]] = defaultdict(list)

    def subscribe(self, event_type: EventType, handler: Callable) -> Callable[[], None]:
        """Register ``handler``; the returned callable unsubscribes it again."""
        self._handlers[event_type].append(handler)
        return lambda: self.unsubscribe(event_type, handler)

    def unsubscribe(self, event_type: EventType, handler: Callable) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event_type: EventType, **data: Any) -> None:
        # copy, handlers may unsubscribe while being called
        for handler in list(self._handlers.get(event_type, ())):
            handler(**data)

    def clear(self) -> None:
        self._handlers.clear()
