"""Error taxonomy shared by the capture, transcription and relay layers."""


class NebulaError(Exception):
    """Base class for all Nebula errors."""


class DeviceUnavailable(NebulaError):
    """Audio capture could not start (permission denied or no input device)."""


class MissingAudio(NebulaError):
    """A transcription request carried no audio payload."""


class TranscriptionFailed(NebulaError):
    """The transcription backend or gateway failed internally."""


class RelayUnreachable(NebulaError):
    """No room broadcast relay could be reached within the grace period."""
