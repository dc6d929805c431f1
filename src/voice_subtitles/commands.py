import asyncio
import logging

from voice_subtitles.domain.controller import SessionController
from voice_subtitles.domain.cues import Cue
from voice_subtitles.ports.clock import PlaybackClockPort
from voice_subtitles.ports.control import ControlCommand

logger = logging.getLogger(__name__)


def format_timestamp(seconds: float) -> str:
    total = max(0, int(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"


def cue_to_dict(cue: Cue) -> dict:
    return {
        "id": cue.id,
        "text": cue.text,
        "start": cue.start_time,
        "end": cue.end_time,
        "range": f"{format_timestamp(cue.start_time)} - {format_timestamp(cue.end_time)}",
    }


class CommandHandler:
    """Answers control-socket commands against a running controller."""

    def __init__(self, controller: SessionController, clock: PlaybackClockPort) -> None:
        self._controller = controller
        self._clock = clock
        self._tasks: set[asyncio.Task] = set()

    async def handle(self, command: ControlCommand) -> dict:
        payload = command.payload or {}
        action = command.action

        if action == "toggle":
            if self._controller.is_active:
                await self._controller.stop()
                return self._ok(action, recording=False)
            self._start_in_background()
            return self._ok(action, recording=True)
        if action == "start":
            self._start_in_background()
            return self._ok(action)
        if action == "stop":
            await self._controller.stop()
            return self._ok(action)
        if action == "status":
            return self._ok(
                action,
                phase=self._controller.status,
                recording=self._controller.is_recording,
                cues=len(self._controller.cues),
                position=self._clock.current_time,
            )
        if action == "cues":
            return self._ok(action, cues=[cue_to_dict(c) for c in self._controller.cues])
        if action == "edit":
            try:
                cue_id = int(payload["id"])
                text = str(payload["text"])
            except (KeyError, TypeError, ValueError):
                return self._error(action, "edit needs an integer 'id' and a 'text'")
            updated = self._controller.cues.update_text(cue_id, text)
            return self._ok(action, updated=updated)
        if action == "active":
            try:
                at = float(payload.get("time", self._clock.current_time))
            except (TypeError, ValueError):
                return self._error(action, "'time' must be a number")
            cue = self._controller.cues.active_at(at)
            return self._ok(action, time=at, cue=cue_to_dict(cue) if cue else None)
        if action == "load":
            await self._controller.load_media()
            return self._ok(action)

        return self._error(action, f"unknown action '{action}'")

    def _start_in_background(self) -> None:
        task = asyncio.create_task(self._controller.start())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _ok(self, action: str, **fields) -> dict:
        return {"status": "ok", "action": action, **fields}

    def _error(self, action: str, message: str) -> dict:
        logger.warning("Control command %s rejected: %s", action, message)
        return {"status": "error", "action": action, "error": message}
