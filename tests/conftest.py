import asyncio
from collections.abc import AsyncIterator

import numpy as np
import pytest

from voice_subtitles.domain.cues import CueStore
from voice_subtitles.domain.frames import EncodedFrame
from voice_subtitles.ports.transcriber import ConnectOptions, ServiceMessage


SAMPLE_RATE = 16000
BLOCK_SIZE = 4096


def generate_silence_block(block_size: int = BLOCK_SIZE) -> np.ndarray:
    return np.zeros(block_size, dtype=np.float32)


def generate_sine_block(
    frequency: float = 440.0,
    amplitude: float = 0.8,
    block_size: int = BLOCK_SIZE,
    sample_rate: int = SAMPLE_RATE,
) -> np.ndarray:
    t = np.arange(block_size) / sample_rate
    return (np.sin(2 * np.pi * frequency * t) * amplitude).astype(np.float32)


async def settle(rounds: int = 20) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


class ManualClock:
    def __init__(self, position: float = 0.0) -> None:
        self.current_time = position
        self.playing = False
        self.play_calls = 0
        self.pause_calls = 0

    def play(self) -> None:
        self.playing = True
        self.play_calls += 1

    def pause(self) -> None:
        self.playing = False
        self.pause_calls += 1

    def seek(self, position: float) -> None:
        self.current_time = position


class FakeAudioCapture:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.gate: asyncio.Event | None = None
        self.start_calls = 0
        self.stop_calls = 0
        self._on_block = None

    @property
    def active(self) -> bool:
        return self._on_block is not None

    async def start(self, on_block) -> None:
        self.start_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        self._on_block = on_block

    def stop(self) -> None:
        self.stop_calls += 1
        self._on_block = None

    def emit(self, block: np.ndarray) -> None:
        if self._on_block is not None:
            self._on_block(block)


class FakeConnection:
    def __init__(self, send_error: Exception | None = None) -> None:
        self.sent: list[EncodedFrame] = []
        self.closed = False
        self.close_calls = 0
        self._send_error = send_error
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def send(self, frame: EncodedFrame) -> None:
        if self._send_error is not None:
            raise self._send_error
        self.sent.append(frame)

    async def messages(self) -> AsyncIterator[ServiceMessage]:
        while True:
            item = await self._inbox.get()
            if item is None:
                return
            if isinstance(item, BaseException):
                raise item
            yield item

    async def close(self) -> None:
        self.closed = True
        self.close_calls += 1

    def push(self, partial_text: str | None = None, turn_complete: bool = False) -> None:
        self._inbox.put_nowait(ServiceMessage(partial_text=partial_text, turn_complete=turn_complete))

    def end(self) -> None:
        self._inbox.put_nowait(None)

    def fail(self, exc: BaseException) -> None:
        self._inbox.put_nowait(exc)


class FakeTranscriptionService:
    def __init__(self, error: Exception | None = None, send_error: Exception | None = None) -> None:
        self.error = error
        self.send_error = send_error
        self.gate: asyncio.Event | None = None
        self.connect_calls: list[ConnectOptions] = []
        self.connections: list[FakeConnection] = []

    @property
    def connection(self) -> FakeConnection:
        return self.connections[-1]

    async def connect(self, options: ConnectOptions) -> FakeConnection:
        self.connect_calls.append(options)
        connection = FakeConnection(send_error=self.send_error)
        self.connections.append(connection)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return connection


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def cue_store():
    return CueStore()


@pytest.fixture
def fake_capture():
    return FakeAudioCapture()


@pytest.fixture
def fake_service():
    return FakeTranscriptionService()


@pytest.fixture
def connect_options():
    return ConnectOptions(model="test-model")


@pytest.fixture
def sine_block():
    return generate_sine_block()


@pytest.fixture
def silence_block():
    return generate_silence_block()
