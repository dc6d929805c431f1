from collections.abc import Callable
from typing import Protocol

import numpy as np

BlockCallback = Callable[[np.ndarray], None]


class AudioCapturePort(Protocol):
    @property
    def active(self) -> bool: ...
    async def start(self, on_block: BlockCallback) -> None: ...
    def stop(self) -> None: ...
