import numpy as np


class BlockResampler:
    """Streaming linear-interpolation resampler that emits fixed-size blocks.

    Input chunks of any length at ``source_rate`` go in; mono float32 blocks
    of exactly ``block_size`` samples at ``target_rate`` come out. Leftover
    samples carry over to the next call.
    """

    def __init__(self, source_rate: float, target_rate: int = 16000, block_size: int = 4096) -> None:
        self._step = float(source_rate) / target_rate
        self._block_size = block_size
        self._pending = np.zeros(0, dtype=np.float32)
        self._position = 0.0
        self._output = np.zeros(0, dtype=np.float32)

    @property
    def passthrough(self) -> bool:
        return self._step == 1.0

    def process(self, samples: np.ndarray) -> list[np.ndarray]:
        samples = np.asarray(samples, dtype=np.float32).reshape(-1)
        if self.passthrough:
            resampled = samples
        else:
            resampled = self._interpolate(samples)
        self._output = np.concatenate([self._output, resampled])

        blocks = []
        while len(self._output) >= self._block_size:
            blocks.append(self._output[: self._block_size].copy())
            self._output = self._output[self._block_size :]
        return blocks

    def reset(self) -> None:
        self._pending = np.zeros(0, dtype=np.float32)
        self._position = 0.0
        self._output = np.zeros(0, dtype=np.float32)

    def _interpolate(self, samples: np.ndarray) -> np.ndarray:
        pending = np.concatenate([self._pending, samples])
        last_index = len(pending) - 1
        if last_index < self._position:
            self._pending = pending
            return np.zeros(0, dtype=np.float32)

        count = int(np.floor((last_index - self._position) / self._step)) + 1
        positions = self._position + np.arange(count) * self._step
        resampled = np.interp(positions, np.arange(len(pending)), pending).astype(np.float32)

        next_position = self._position + count * self._step
        consumed = min(int(np.floor(next_position)), len(pending))
        self._pending = pending[consumed:]
        self._position = next_position - consumed
        return resampled
