"""Exception types shared across transcribe-tracks."""


class TranscribeError(Exception):
    """Base class for errors that end an operation or a job."""


class ConfigError(TranscribeError):
    """Store credentials or local tool paths are missing or unusable."""


class StoreError(TranscribeError):
    """An object store request failed."""


class ToolError(TranscribeError):
    """An external tool could not be started or exited with an error."""


class ParseError(TranscribeError):
    """Recognizer output did not match any known shape."""


class PipelineError(TranscribeError):
    """The transcription pipeline cannot continue."""
