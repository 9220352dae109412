"""
Utility modules for configuration, logging, and error handling.
"""

from keytempo.utils.errors import (
    KeyTempoError,
    ConfigurationError,
    PipelineError,
    OpenError,
    ProbeError,
    NoTrackError,
    MissingSampleRateError,
    DecoderInitError,
    DecodeError,
    AnalysisError,
)
from keytempo.utils.logging import (
    JSONFormatter,
    get_logger,
    setup_logging,
    setup_logging_from_config,
)
from keytempo.utils.config import ConfigManager, load_config

__all__ = [
    "KeyTempoError",
    "ConfigurationError",
    "PipelineError",
    "OpenError",
    "ProbeError",
    "NoTrackError",
    "MissingSampleRateError",
    "DecoderInitError",
    "DecodeError",
    "AnalysisError",
    "get_logger",
    "setup_logging",
    "setup_logging_from_config",
    "JSONFormatter",
    "ConfigManager",
    "load_config",
]
