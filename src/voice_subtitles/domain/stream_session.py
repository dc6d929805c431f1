import asyncio
import logging
from collections.abc import AsyncIterator

from voice_subtitles.domain.errors import StreamConnectionError, StreamError, SubtitlerError
from voice_subtitles.domain.events import (
    MessageReceived,
    SessionClosed,
    SessionErrored,
    SessionEvent,
    SessionOpened,
)
from voice_subtitles.domain.frames import EncodedFrame
from voice_subtitles.domain.state import SessionState, validate_transition
from voice_subtitles.ports.transcriber import (
    ConnectOptions,
    LiveConnection,
    TranscriptionServicePort,
)

logger = logging.getLogger(__name__)


class StreamSession:
    """One streaming connection to the transcription service.

    Lifecycle events are published on an ordered channel read through
    ``events()``. ``send()`` never blocks: frames submitted before the
    connection resolves wait in a FIFO outbox that the sender task drains
    once the session is open.
    """

    def __init__(self, service: TranscriptionServicePort) -> None:
        self._service = service
        self._state = SessionState.IDLE
        self._connection: LiveConnection | None = None
        self._outbox: asyncio.Queue[EncodedFrame] = asyncio.Queue()
        self._events: asyncio.Queue[SessionEvent | None] = asyncio.Queue()
        self._sender_task: asyncio.Task | None = None
        self._receiver_task: asyncio.Task | None = None
        self._close_requested = False
        self._dropped_frames = 0
        self._error: SubtitlerError | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def error(self) -> SubtitlerError | None:
        return self._error

    @property
    def pending_frames(self) -> int:
        return self._outbox.qsize()

    @property
    def dropped_frames(self) -> int:
        return self._dropped_frames

    def _transition_to(self, target: SessionState) -> None:
        validate_transition(self._state, target)
        logger.info("Session: %s -> %s", self._state.name, target.name)
        self._state = target

    async def connect(self, options: ConnectOptions) -> SessionState:
        self._transition_to(SessionState.CONNECTING)
        try:
            connection = await self._service.connect(options)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("Failed to open streaming session: %s", exc)
            self._discard_outbox()
            if self._close_requested:
                self._transition_to(SessionState.CLOSED)
                self._emit(SessionClosed())
            else:
                self._transition_to(SessionState.FAILED)
                self._error = _wrap(StreamConnectionError, exc)
                self._emit(SessionErrored(cause=self._error))
            self._end_events()
            return self._state

        self._connection = connection
        if self._close_requested:
            logger.info("Close requested while connecting, dropping new connection")
            await self._release()
            self._transition_to(SessionState.CLOSED)
            self._emit(SessionClosed())
            self._end_events()
            return self._state

        self._transition_to(SessionState.OPEN)
        self._emit(SessionOpened())
        self._sender_task = asyncio.create_task(self._send_loop())
        self._receiver_task = asyncio.create_task(self._receive_loop())
        return self._state

    def send(self, frame: EncodedFrame) -> None:
        if self._state in (SessionState.CONNECTING, SessionState.OPEN):
            self._outbox.put_nowait(frame)
            return
        self._dropped_frames += 1
        if self._dropped_frames == 1:
            logger.debug("Dropping audio frame, session is %s", self._state.name)

    async def close(self) -> None:
        if self._state in (SessionState.CLOSING, SessionState.CLOSED, SessionState.FAILED):
            return
        if self._state == SessionState.IDLE:
            self._transition_to(SessionState.CLOSED)
            self._end_events()
            return
        if self._state == SessionState.CONNECTING:
            self._close_requested = True
            self._transition_to(SessionState.CLOSING)
            return

        self._transition_to(SessionState.CLOSING)
        await self._release()
        self._transition_to(SessionState.CLOSED)
        self._emit(SessionClosed())
        self._end_events()

    async def events(self) -> AsyncIterator[SessionEvent]:
        while True:
            event = await self._events.get()
            if event is None:
                return
            yield event

    async def _send_loop(self) -> None:
        while True:
            frame = await self._outbox.get()
            try:
                await self._connection.send(frame)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("Failed to send audio frame: %s", exc)
                await self._fail(_wrap(StreamConnectionError, exc))
                return

    async def _receive_loop(self) -> None:
        try:
            async for message in self._connection.messages():
                if self._state != SessionState.OPEN:
                    return
                self._emit(
                    MessageReceived(
                        partial_text=message.partial_text,
                        turn_complete=message.turn_complete,
                    )
                )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("Streaming session error: %s", exc)
            await self._fail(_wrap(StreamError, exc))
            return

        logger.info("Streaming session ended by the service")
        await self.close()

    async def _fail(self, error: SubtitlerError) -> None:
        if self._state != SessionState.OPEN:
            return
        self._error = error
        self._emit(SessionErrored(cause=error))
        await self.close()

    async def _release(self) -> None:
        current = asyncio.current_task()
        tasks = [
            task
            for task in (self._sender_task, self._receiver_task)
            if task is not None and not task.done() and task is not current
        ]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._sender_task = None
        self._receiver_task = None
        self._discard_outbox()

        connection, self._connection = self._connection, None
        if connection is not None:
            try:
                await connection.close()
            except Exception:
                logger.warning("Error closing streaming connection", exc_info=True)

    def _discard_outbox(self) -> None:
        while not self._outbox.empty():
            self._outbox.get_nowait()

    def _emit(self, event: SessionEvent) -> None:
        self._events.put_nowait(event)

    def _end_events(self) -> None:
        self._events.put_nowait(None)


def _wrap(error_type: type[SubtitlerError], exc: BaseException) -> SubtitlerError:
    error = error_type(str(exc) or type(exc).__name__)
    error.__cause__ = exc
    return error
