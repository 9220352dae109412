"""
keytempo - cancellable tempo and key analysis of audio files.

Example:
    from keytempo import create_analysis_pipeline, load_config, setup_logging_from_config

    config = load_config()
    setup_logging_from_config(config)
    pipeline = create_analysis_pipeline(config)
    result = pipeline.analyze("track.mp3")
    if result is not None:
        print(result.get_summary())
"""

from keytempo.core import (
    AnalysisPipeline,
    AnalysisResult,
    CancellationToken,
    create_analysis_pipeline,
)
from keytempo.utils import load_config, setup_logging, setup_logging_from_config

__version__ = "0.1.0"

__all__ = [
    "AnalysisPipeline",
    "AnalysisResult",
    "CancellationToken",
    "create_analysis_pipeline",
    "load_config",
    "setup_logging",
    "setup_logging_from_config",
    "__version__",
]
