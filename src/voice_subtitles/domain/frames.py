import base64
from dataclasses import dataclass

import numpy as np

PCM_MIME_TYPE = "audio/pcm;rate=16000"

_NEGATIVE_SCALE = 32768.0
_POSITIVE_SCALE = 32767.0


@dataclass(frozen=True)
class EncodedFrame:
    data: str
    mime_type: str = PCM_MIME_TYPE

    @property
    def pcm_bytes(self) -> bytes:
        return base64.b64decode(self.data)

    def to_wire(self) -> dict[str, str]:
        return {"data": self.data, "mimeType": self.mime_type}


def quantize(block: np.ndarray) -> np.ndarray:
    """Map float samples onto signed 16-bit PCM.

    NaN becomes silence, everything else is clamped to [-1, 1] first, so
    the result always fits in int16 without wrapping.
    """
    samples = np.nan_to_num(np.asarray(block, dtype=np.float64), nan=0.0)
    samples = np.clip(samples, -1.0, 1.0)
    scaled = np.where(samples < 0, samples * _NEGATIVE_SCALE, samples * _POSITIVE_SCALE)
    return np.rint(scaled).astype("<i2")


def encode_frame(block: np.ndarray) -> EncodedFrame:
    pcm = quantize(block).tobytes()
    return EncodedFrame(data=base64.b64encode(pcm).decode("ascii"))


def decode_frame(frame: EncodedFrame) -> np.ndarray:
    pcm = np.frombuffer(frame.pcm_bytes, dtype="<i2").astype(np.float32)
    return np.where(pcm < 0, pcm / _NEGATIVE_SCALE, pcm / _POSITIVE_SCALE).astype(np.float32)
