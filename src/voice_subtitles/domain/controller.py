import asyncio
import logging

import numpy as np

from voice_subtitles.domain.aggregator import TranscriptAggregator
from voice_subtitles.domain.cues import CueStore
from voice_subtitles.domain.errors import AcquisitionError, StreamConnectionError
from voice_subtitles.domain.events import (
    MessageReceived,
    SessionClosed,
    SessionErrored,
    SessionEvent,
    SessionOpened,
)
from voice_subtitles.domain.frames import encode_frame
from voice_subtitles.domain.state import SessionState
from voice_subtitles.domain.stream_session import StreamSession
from voice_subtitles.ports.audio import AudioCapturePort
from voice_subtitles.ports.clock import PlaybackClockPort
from voice_subtitles.ports.transcriber import ConnectOptions, TranscriptionServicePort

logger = logging.getLogger(__name__)

STATUS_READY = "Ready to generate subtitles."
STATUS_INITIALIZING = "Initializing..."
STATUS_CONNECTING_MICROPHONE = "Connecting to microphone..."
STATUS_RECORDING = "Recording... Speak to create subtitles."


def error_status(error: BaseException) -> str:
    return f"Error: {error}. Please try again."


class SessionController:
    """Owns one recording session from microphone to cue store.

    Every stop path (user stop, service error, remote close, media reload)
    goes through ``teardown()``, which is synchronous, idempotent and safe to
    call from any partial state. Only the remote close it schedules runs
    asynchronously.
    """

    def __init__(
        self,
        capture: AudioCapturePort,
        service: TranscriptionServicePort,
        clock: PlaybackClockPort,
        cues: CueStore,
        options: ConnectOptions,
        aggregator: TranscriptAggregator | None = None,
    ) -> None:
        self._capture = capture
        self._service = service
        self._clock = clock
        self._cues = cues
        self._options = options
        self._aggregator = aggregator or TranscriptAggregator(clock)

        self._status = STATUS_READY
        self._session: StreamSession | None = None
        self._event_task: asyncio.Task | None = None
        self._closing_tasks: set[asyncio.Task] = set()
        self._send_wired = False
        self._starting = False
        self._generation = 0

    @property
    def status(self) -> str:
        return self._status

    @property
    def cues(self) -> CueStore:
        return self._cues

    @property
    def aggregator(self) -> TranscriptAggregator:
        return self._aggregator

    @property
    def session(self) -> StreamSession | None:
        return self._session

    @property
    def is_recording(self) -> bool:
        return self._session is not None and self._session.state == SessionState.OPEN

    @property
    def is_active(self) -> bool:
        return self._starting or self._session is not None

    def _set_status(self, status: str) -> None:
        if status == self._status:
            return
        logger.info("Status: %s", status)
        self._status = status

    async def start(self) -> None:
        if self.is_active:
            logger.debug("Start ignored, a session is already active")
            return

        self._starting = True
        generation = self._generation
        self._set_status(STATUS_INITIALIZING)
        self._set_status(STATUS_CONNECTING_MICROPHONE)
        try:
            await self._capture.start(self._on_block)
        except AcquisitionError as exc:
            logger.error("Microphone unavailable: %s", exc)
            self._starting = False
            self.teardown(error=exc)
            return
        except Exception as exc:
            logger.exception("Audio capture failed to start")
            self._starting = False
            self.teardown(error=exc)
            return

        if generation != self._generation:
            logger.info("Stopped while acquiring the microphone")
            self._capture.stop()
            return

        session = StreamSession(self._service)
        self._session = session
        self._starting = False
        self._send_wired = True
        self._event_task = asyncio.create_task(self._consume_events(session))

        state = await session.connect(self._options)
        if session is self._session and state != SessionState.OPEN:
            self.teardown(error=session.error or StreamConnectionError("session did not open"))

    async def stop(self) -> None:
        self.teardown()
        await self.wait_closed()

    async def wait_closed(self) -> None:
        if self._closing_tasks:
            await asyncio.gather(*self._closing_tasks, return_exceptions=True)

    async def load_media(self) -> None:
        await self.stop()
        self._cues.clear()
        self._clock.seek(0.0)
        self._set_status(STATUS_READY)
        logger.info("Media reloaded, cues cleared")

    def teardown(self, error: BaseException | None = None) -> None:
        was_active = self.is_active
        self._generation += 1
        self._starting = False

        self._capture.stop()
        self._send_wired = False

        session, self._session = self._session, None
        if session is not None:
            task = asyncio.ensure_future(session.close())
            self._closing_tasks.add(task)
            task.add_done_callback(self._closing_tasks.discard)

        self._aggregator.cancel()
        self._cancel_event_task()
        self._clock.pause()

        # an error status stays until the next start replaces it
        if error is not None:
            self._set_status(error_status(error))
        elif was_active:
            self._set_status(STATUS_READY)

    def _cancel_event_task(self) -> None:
        if self._event_task and not self._event_task.done():
            if self._event_task is not asyncio.current_task():
                self._event_task.cancel()
        self._event_task = None

    def _on_block(self, block: np.ndarray) -> None:
        if not self._send_wired or self._session is None:
            return
        self._session.send(encode_frame(block))

    async def _consume_events(self, session: StreamSession) -> None:
        async for event in session.events():
            if session is not self._session:
                logger.debug("Ignoring %s from a stale session", type(event).__name__)
                return
            self._handle_event(event)

    def _handle_event(self, event: SessionEvent) -> None:
        if isinstance(event, SessionOpened):
            self._set_status(STATUS_RECORDING)
            self._clock.play()
        elif isinstance(event, MessageReceived):
            self._handle_message(event)
        elif isinstance(event, SessionErrored):
            logger.error("Transcription service error: %s", event.cause)
            self.teardown(error=event.cause or StreamConnectionError("unknown error"))
        elif isinstance(event, SessionClosed):
            logger.info("Transcription session closed by the service")
            self.teardown()

    def _handle_message(self, event: MessageReceived) -> None:
        if event.partial_text:
            logger.debug("Transcript (partial): %s", event.partial_text)
            self._aggregator.append(event.partial_text)
        if event.turn_complete:
            cue = self._aggregator.complete_turn()
            if cue is None:
                return
            self._cues.insert(cue)
            logger.info(
                "Cue: [%.2f - %.2f] %s", cue.start_time, cue.end_time, cue.text
            )
