import asyncio
import logging
import os

import janus
import numpy as np
import sounddevice as sd

from voice_subtitles.domain.errors import AcquisitionError
from voice_subtitles.domain.resampler import BlockResampler
from voice_subtitles.ports.audio import BlockCallback

logger = logging.getLogger(__name__)


class SounddeviceCapture:
    def __init__(
        self,
        device: str | int | None = None,
        sample_rate: int = 16000,
        block_size: int = 4096,
    ) -> None:
        self._device = device
        self._sample_rate = sample_rate
        self._block_size = block_size
        self._stream: sd.InputStream | None = None
        self._queue: janus.Queue[np.ndarray] | None = None
        self._pump_task: asyncio.Task | None = None
        self._resampler: BlockResampler | None = None

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def block_size(self) -> int:
        return self._block_size

    @property
    def active(self) -> bool:
        return self._stream is not None

    async def start(self, on_block: BlockCallback) -> None:
        if self._stream is not None:
            return

        device = self._resolve_device()
        input_rate = self._choose_input_rate(device)
        queue: janus.Queue[np.ndarray] = janus.Queue(maxsize=64)

        def audio_callback(indata: np.ndarray, frames: int, time_info, status) -> None:
            if status:
                logger.warning("Audio capture status: %s", status)
            try:
                queue.sync_q.put_nowait(indata[:, 0].copy())
            except janus.SyncQueueFull:
                logger.warning("Audio capture queue full, dropping %d samples", frames)

        try:
            stream = sd.InputStream(
                device=device,
                samplerate=input_rate,
                channels=1,
                dtype="float32",
                callback=audio_callback,
            )
        except (sd.PortAudioError, ValueError) as exc:
            queue.close()
            raise AcquisitionError(f"Could not open input device: {exc}") from exc
        try:
            stream.start()
        except (sd.PortAudioError, ValueError) as exc:
            stream.close()
            queue.close()
            raise AcquisitionError(f"Could not start input device: {exc}") from exc

        self._queue = queue
        self._stream = stream
        self._resampler = BlockResampler(input_rate, self._sample_rate, self._block_size)
        self._pump_task = asyncio.create_task(self._pump(queue, self._resampler, on_block))
        logger.info(
            "Audio capture started (device=%s, input rate=%d, output rate=%d, block=%d)",
            device, input_rate, self._sample_rate, self._block_size,
        )

    def stop(self) -> None:
        if self._pump_task and not self._pump_task.done():
            self._pump_task.cancel()
        self._pump_task = None
        if self._stream:
            self._stream.stop()
            self._stream.close()
            self._stream = None
            logger.info("Audio capture stopped")
        if self._queue:
            self._queue.close()
            self._queue = None
        self._resampler = None

    async def _pump(
        self,
        queue: janus.Queue[np.ndarray],
        resampler: BlockResampler,
        on_block: BlockCallback,
    ) -> None:
        while True:
            try:
                chunk = await queue.async_q.get()
            except janus.AsyncQueueShutDown:
                break
            for block in resampler.process(chunk):
                on_block(block)

    def _choose_input_rate(self, device: str | int | None) -> int:
        try:
            sd.check_input_settings(device=device, samplerate=self._sample_rate, channels=1)
            return self._sample_rate
        except (sd.PortAudioError, ValueError):
            pass
        try:
            info = sd.query_devices(device, kind="input")
        except (sd.PortAudioError, ValueError) as exc:
            raise AcquisitionError(f"No input device available: {exc}") from exc
        native_rate = int(info["default_samplerate"])
        logger.info(
            "Device does not accept %d Hz, resampling from %d Hz",
            self._sample_rate, native_rate,
        )
        return native_rate

    def _resolve_device(self) -> str | int | None:
        if self._device is None or self._device == "":
            return None
        if isinstance(self._device, int):
            return self._device
        try:
            return int(self._device)
        except ValueError:
            pass
        try:
            devices = sd.query_devices()
        except (sd.PortAudioError, ValueError) as exc:
            raise AcquisitionError(f"Could not list input devices: {exc}") from exc
        for i, dev in enumerate(devices):
            if self._device.lower() in dev["name"].lower() and dev["max_input_channels"] > 0:
                logger.info("Resolved device '%s' -> %d (%s)", self._device, i, dev["name"])
                return i
        os.environ["PIPEWIRE_NODE"] = self._device
        logger.info("Device '%s' not in PortAudio, set PIPEWIRE_NODE for PipeWire routing", self._device)
        return None
