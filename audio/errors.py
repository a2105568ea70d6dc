"""Error types raised by the audio and capture layers."""


class OndasError(Exception):
    """Base error for Ondas."""


class DeviceUnavailableError(OndasError):
    """Raised when an input or output audio device cannot be opened."""


class DecodeError(OndasError):
    """Raised when captured audio cannot be turned into PCM samples."""


class CaptureCancelled(OndasError):
    """Raised when a recording is cancelled before it finished."""
