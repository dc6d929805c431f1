import logging
from collections.abc import AsyncIterator

from google import genai
from google.genai import types
from websockets.exceptions import ConnectionClosedOK

from voice_subtitles.domain.frames import EncodedFrame
from voice_subtitles.ports.transcriber import ConnectOptions, ServiceMessage

logger = logging.getLogger(__name__)


def build_live_config(options: ConnectOptions) -> types.LiveConnectConfig:
    fields = {"response_modalities": [types.Modality(options.response_modality.upper())]}
    if options.input_transcription:
        fields["input_audio_transcription"] = types.AudioTranscriptionConfig()
    return types.LiveConnectConfig(**fields)


def to_service_message(message: types.LiveServerMessage) -> ServiceMessage | None:
    content = message.server_content
    if content is None:
        return None
    text = None
    if content.input_transcription is not None:
        text = content.input_transcription.text
    turn_complete = bool(content.turn_complete)
    if not text and not turn_complete:
        return None
    return ServiceMessage(partial_text=text, turn_complete=turn_complete)


class GeminiLiveConnection:
    def __init__(self, context_manager, session) -> None:
        self._context_manager = context_manager
        self._session = session

    async def send(self, frame: EncodedFrame) -> None:
        await self._session.send_realtime_input(
            audio=types.Blob(data=frame.pcm_bytes, mime_type=frame.mime_type)
        )

    async def messages(self) -> AsyncIterator[ServiceMessage]:
        # receive() stops after every turn_complete, so re-enter it per turn
        while True:
            received_any = False
            try:
                async for message in self._session.receive():
                    received_any = True
                    converted = to_service_message(message)
                    if converted is not None:
                        yield converted
            except ConnectionClosedOK:
                return
            if not received_any:
                return

    async def close(self) -> None:
        await self._context_manager.__aexit__(None, None, None)


class GeminiLiveTranscriptionService:
    def __init__(self, api_key: str) -> None:
        self._api_key = api_key

    async def connect(self, options: ConnectOptions) -> GeminiLiveConnection:
        client = genai.Client(api_key=self._api_key)
        context_manager = client.aio.live.connect(
            model=options.model,
            config=build_live_config(options),
        )
        session = await context_manager.__aenter__()
        logger.info("Gemini Live session started (model=%s)", options.model)
        return GeminiLiveConnection(context_manager, session)
