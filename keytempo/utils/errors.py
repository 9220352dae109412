"""
Custom exceptions for the keytempo analysis pipeline.

This module defines a hierarchy of exceptions for the fatal error
conditions of a run. Supersession is not an error and has no exception.
"""

from typing import Any, Optional


class KeyTempoError(Exception):
    """Base exception for all keytempo errors."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class ConfigurationError(KeyTempoError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message)
        self.config_key = config_key
        self.details = {"config_key": config_key}


class PipelineError(KeyTempoError):
    """
    Raised when a pipeline run fails.

    Every subclass names the phase (open, probe, decode, analyze) it
    belongs to, so the message alone tells the caller where a run died.
    """

    phase: str = "pipeline"

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        original_error: Optional[BaseException] = None,
    ):
        if file_path is not None:
            message = f"{self.phase} failed for '{file_path}': {message}"
        super().__init__(message)
        self.file_path = file_path
        self.original_error = original_error
        self.details = {
            "phase": self.phase,
            "original_error": str(original_error) if original_error else None,
        }


class OpenError(PipelineError):
    """Raised when the audio file cannot be opened."""

    phase = "open"


class ProbeError(PipelineError):
    """Raised when the container is unrecognized or corrupt."""

    phase = "probe"


class NoTrackError(ProbeError):
    """Raised when the container has no decodable audio track."""


class MissingSampleRateError(ProbeError):
    """Raised when the selected track does not declare a sample rate."""


class DecoderInitError(PipelineError):
    """Raised when no decoder can be built for the track's codec."""

    phase = "decode"


class DecodeError(PipelineError):
    """Raised on a fatal mid-stream decode failure."""

    phase = "decode"


class AnalysisError(PipelineError):
    """Raised when the analysis engine fails."""

    phase = "analyze"

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        original_error: Optional[BaseException] = None,
        analyzer_name: Optional[str] = None,
    ):
        super().__init__(message, file_path=file_path, original_error=original_error)
        self.analyzer_name = analyzer_name
        self.details["analyzer_name"] = analyzer_name
