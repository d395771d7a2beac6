"""Live morph target state of the face mesh."""

import logging
from typing import Iterable, Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from faceex.constants import CHANNEL_NAMES, MESH_PARTS

logger = logging.getLogger(__name__)


class MorphState:
    """Current influence of every morph target channel plus mesh-part visibility.

    This is the only place channel values are written; the FACS driver and
    the animation player both go through it.
    """

    def __init__(
        self,
        channel_names: Sequence[str] = CHANNEL_NAMES,
        mesh_parts: Iterable[str] = MESH_PARTS,
    ):
        self._names: tuple[str, ...] = tuple(channel_names)
        self._index: dict[str, int] = {name: i for i, name in enumerate(self._names)}
        self._influences: NDArray[np.float64] = np.zeros(len(self._names), dtype=np.float64)
        self.visibility: dict[str, bool] = {part: True for part in mesh_parts}

    @property
    def channel_names(self) -> list[str]:
        return list(self._names)

    @property
    def channel_count(self) -> int:
        return len(self._names)

    def index_of(self, name: str) -> Optional[int]:
        return self._index.get(name)

    def get_influence(self, name: str) -> float:
        i = self._index.get(name)
        if i is None:
            return 0.0
        return float(self._influences[i])

    def set_influence(self, name: str, value: float) -> bool:
        i = self._index.get(name)
        if i is None:
            logger.warning("Unknown morph target channel: %s", name)
            return False
        self._influences[i] = value
        return True

    def set_influence_at(self, index: int, value: float) -> None:
        self._influences[index] = value

    def influences(self) -> list[float]:
        """Copy of all channel values in channel order."""
        return [float(v) for v in self._influences]

    def set_influences(self, values: Sequence[float]) -> None:
        if len(values) != len(self._names):
            raise ValueError(
                f"Expected {len(self._names)} influences, got {len(values)}"
            )
        self._influences[:] = np.asarray(values, dtype=np.float64)

    def set_visible(self, part: str, visible: bool) -> None:
        self.visibility[part] = bool(visible)

    def reset(self) -> None:
        """Neutral face: every influence 0, every mesh part visible."""
        self._influences[:] = 0.0
        for part in self.visibility:
            self.visibility[part] = True
