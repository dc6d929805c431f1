import logging
import time
from dataclasses import dataclass

from voice_subtitles.domain.cues import Cue
from voice_subtitles.domain.state import AggregatorState
from voice_subtitles.ports.clock import PlaybackClockPort

logger = logging.getLogger(__name__)


@dataclass
class UtteranceBuffer:
    text: str = ""
    anchor_time: float | None = None

    def clear(self) -> None:
        self.text = ""
        self.anchor_time = None


class CueIdSequence:
    """Millisecond creation timestamps, bumped so ids never repeat."""

    def __init__(self) -> None:
        self._last = 0

    def next(self) -> int:
        candidate = time.time_ns() // 1_000_000
        self._last = max(candidate, self._last + 1)
        return self._last


class TranscriptAggregator:
    """Turns partial transcript fragments into finished cues.

    Fragments of one turn are concatenated verbatim. The playback clock is
    read once when the first fragment of a turn arrives (the cue start) and
    again when the turn completes (the cue end). Turns are assumed not to
    interleave; a second utterance arriving before the first one's
    turn-complete is folded into the first.
    """

    def __init__(self, clock: PlaybackClockPort, ids: CueIdSequence | None = None) -> None:
        self._clock = clock
        self._ids = ids or CueIdSequence()
        self._utterance = UtteranceBuffer()

    @property
    def state(self) -> AggregatorState:
        if self._utterance.text:
            return AggregatorState.ACCUMULATING
        return AggregatorState.IDLE

    @property
    def utterance(self) -> UtteranceBuffer:
        return UtteranceBuffer(self._utterance.text, self._utterance.anchor_time)

    def append(self, text: str) -> None:
        if not text:
            return
        if self.state == AggregatorState.IDLE:
            self._utterance.anchor_time = self._clock.current_time
            logger.debug("Utterance anchored at %.2fs", self._utterance.anchor_time)
        self._utterance.text += text

    def complete_turn(self) -> Cue | None:
        text = self._utterance.text.strip()
        anchor = self._utterance.anchor_time
        self._utterance.clear()

        if not text:
            return None

        end_time = self._clock.current_time
        start_time = anchor if anchor is not None else end_time
        # the clock may have been seeked backwards mid-utterance
        end_time = max(end_time, start_time)
        return Cue(id=self._ids.next(), text=text, start_time=start_time, end_time=end_time)

    def cancel(self) -> None:
        if self.state == AggregatorState.ACCUMULATING:
            logger.info("Discarding interrupted utterance (%d chars)", len(self._utterance.text))
        self._utterance.clear()
