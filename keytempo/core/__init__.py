"""
Core module: data models, cancellation, decoding and the analysis pipeline.

Nothing here imports the native audio libraries; backends are injected.
"""

from keytempo.core.models import (
    AudioBuffer,
    KeyMode,
    KeyEstimate,
    RawAnalysis,
    AnalysisConfig,
    AnalysisResult,
    validate_confidence,
)
from keytempo.core.cancellation import CancellationToken
from keytempo.core.downmix import downmix
from keytempo.core.key_labels import NOTE_NAMES, key_label
from keytempo.core.decoder import (
    Decoder,
    DecoderLibrary,
    EndOfStream,
    FormatReader,
    Packet,
    RecoverableDecodeError,
    Track,
)
from keytempo.core.analyzer_base import AnalysisEngine, BaseAnalysisEngine
from keytempo.core.decode_stage import DecodeStage
from keytempo.core.pipeline import AnalysisPipeline, create_analysis_pipeline

__all__ = [
    "AudioBuffer",
    "KeyMode",
    "KeyEstimate",
    "RawAnalysis",
    "AnalysisConfig",
    "AnalysisResult",
    "validate_confidence",
    "CancellationToken",
    "downmix",
    "NOTE_NAMES",
    "key_label",
    "Decoder",
    "DecoderLibrary",
    "EndOfStream",
    "FormatReader",
    "Packet",
    "RecoverableDecodeError",
    "Track",
    "AnalysisEngine",
    "BaseAnalysisEngine",
    "DecodeStage",
    "AnalysisPipeline",
    "create_analysis_pipeline",
]
