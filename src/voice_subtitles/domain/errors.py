class SubtitlerError(Exception):
    pass


class AcquisitionError(SubtitlerError):
    """Microphone permission denied, or no usable input device."""


class StreamConnectionError(SubtitlerError):
    """The streaming session failed to open, or a send failed."""


class StreamError(SubtitlerError):
    """The streaming session failed after it was open."""
