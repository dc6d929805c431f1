import bisect
import logging
from collections.abc import Iterator
from dataclasses import dataclass, replace

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Cue:
    id: int
    text: str
    start_time: float
    end_time: float

    def __post_init__(self) -> None:
        if self.start_time > self.end_time:
            raise ValueError(
                f"Cue {self.id} starts after it ends ({self.start_time} > {self.end_time})"
            )

    def is_active_at(self, t: float) -> bool:
        return self.start_time <= t < self.end_time


class CueStore:
    """Cues kept sorted by start time.

    Equal start times keep insertion order. Text edits replace the cue in
    its slot and never move it.
    """

    def __init__(self) -> None:
        self._cues: list[Cue] = []

    @property
    def cues(self) -> tuple[Cue, ...]:
        return tuple(self._cues)

    def __len__(self) -> int:
        return len(self._cues)

    def __iter__(self) -> Iterator[Cue]:
        return iter(tuple(self._cues))

    def insert(self, cue: Cue) -> None:
        index = bisect.bisect_right(self._cues, cue.start_time, key=lambda c: c.start_time)
        self._cues.insert(index, cue)
        logger.debug("Inserted cue %d at position %d", cue.id, index)

    def get(self, cue_id: int) -> Cue | None:
        for cue in self._cues:
            if cue.id == cue_id:
                return cue
        return None

    def update_text(self, cue_id: int, text: str) -> bool:
        for index, cue in enumerate(self._cues):
            if cue.id == cue_id:
                self._cues[index] = replace(cue, text=text)
                return True
        logger.debug("No cue with id %d to update", cue_id)
        return False

    def active_at(self, t: float) -> Cue | None:
        for cue in self._cues:
            if cue.is_active_at(t):
                return cue
        return None

    def clear(self) -> None:
        self._cues.clear()
