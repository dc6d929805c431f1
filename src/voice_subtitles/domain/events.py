from dataclasses import dataclass, field
from time import time


@dataclass(frozen=True)
class SessionEvent:
    timestamp: float = field(default_factory=time)


@dataclass(frozen=True)
class SessionOpened(SessionEvent):
    pass


@dataclass(frozen=True)
class MessageReceived(SessionEvent):
    partial_text: str | None = None
    turn_complete: bool = False


@dataclass(frozen=True)
class SessionErrored(SessionEvent):
    cause: BaseException | None = None


@dataclass(frozen=True)
class SessionClosed(SessionEvent):
    pass
