from typing import Protocol


class PlaybackClockPort(Protocol):
    @property
    def current_time(self) -> float: ...
    def play(self) -> None: ...
    def pause(self) -> None: ...
    def seek(self, position: float) -> None: ...
