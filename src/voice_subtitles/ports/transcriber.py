from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Protocol

from voice_subtitles.domain.frames import EncodedFrame


@dataclass(frozen=True)
class ConnectOptions:
    model: str
    input_transcription: bool = True
    response_modality: str = "AUDIO"


@dataclass(frozen=True)
class ServiceMessage:
    partial_text: str | None = None
    turn_complete: bool = False


class LiveConnection(Protocol):
    async def send(self, frame: EncodedFrame) -> None: ...
    def messages(self) -> AsyncIterator[ServiceMessage]: ...
    async def close(self) -> None: ...


class TranscriptionServicePort(Protocol):
    async def connect(self, options: ConnectOptions) -> LiveConnection: ...
