from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict


class SubtitlerConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="VOICE_SUBTITLES_")

    api_key: str = ""
    api_key_file: str = ""
    model: str = "gemini-2.5-flash-native-audio-preview-09-2025"
    response_modality: Literal["AUDIO", "TEXT"] = "AUDIO"
    input_transcription: bool = True

    capture_device: str = ""
    sample_rate: int = 16000
    block_size: int = 4096

    record_on_start: bool = False

    socket_path: str = "/tmp/voice-subtitles.sock"
    log_file: str = "/tmp/voice-subtitles.log"

    def read_secret(self, path: str) -> str:
        if not path:
            return ""
        try:
            with open(path) as f:
                return f.read().strip()
        except FileNotFoundError:
            return ""

    def resolve_api_key(self) -> str:
        return self.api_key or self.read_secret(self.api_key_file)
