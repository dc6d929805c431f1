import logging

from voice_subtitles.adapters.media_clock import MonotonicMediaClock
from voice_subtitles.adapters.sounddevice_audio import SounddeviceCapture
from voice_subtitles.adapters.unix_control import UnixSocketControlServer
from voice_subtitles.commands import CommandHandler
from voice_subtitles.config import SubtitlerConfig
from voice_subtitles.domain.controller import SessionController
from voice_subtitles.domain.cues import CueStore
from voice_subtitles.ports.clock import PlaybackClockPort
from voice_subtitles.ports.transcriber import ConnectOptions, TranscriptionServicePort

logger = logging.getLogger(__name__)


def create_capture(config: SubtitlerConfig) -> SounddeviceCapture:
    return SounddeviceCapture(
        device=config.capture_device or None,
        sample_rate=config.sample_rate,
        block_size=config.block_size,
    )


def create_transcription_service(config: SubtitlerConfig) -> TranscriptionServicePort:
    from voice_subtitles.adapters.gemini_live import GeminiLiveTranscriptionService

    return GeminiLiveTranscriptionService(api_key=config.resolve_api_key())


def create_connect_options(config: SubtitlerConfig) -> ConnectOptions:
    return ConnectOptions(
        model=config.model,
        input_transcription=config.input_transcription,
        response_modality=config.response_modality,
    )


def create_controller(
    config: SubtitlerConfig,
    clock: PlaybackClockPort | None = None,
) -> SessionController:
    return SessionController(
        capture=create_capture(config),
        service=create_transcription_service(config),
        clock=clock or MonotonicMediaClock(),
        cues=CueStore(),
        options=create_connect_options(config),
    )


def create_app(
    config: SubtitlerConfig,
) -> tuple[SessionController, UnixSocketControlServer, CommandHandler]:
    clock = MonotonicMediaClock()
    controller = create_controller(config, clock)
    control = UnixSocketControlServer(socket_path=config.socket_path)
    logger.debug("Created controller (model=%s)", config.model)
    return controller, control, CommandHandler(controller, clock)
