"""
Analysis pipeline for keytempo.

Public entry point: decode a file to mono, run the analysis engine on
it, and map the raw engine output to a presentation-ready result. Runs
superseded by a newer run or by cancel() return None.
"""

import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

from keytempo.core.analyzer_base import AnalysisEngine
from keytempo.core.cancellation import CancellationToken
from keytempo.core.decode_stage import DecodeStage
from keytempo.core.key_labels import key_label
from keytempo.core.models import AnalysisConfig, AnalysisResult, AudioBuffer, RawAnalysis
from keytempo.utils.errors import AnalysisError, DecodeError, PipelineError
from keytempo.utils.logging import create_logger_with_context


class AnalysisPipeline:
    """
    Decode stage + analysis engine under a shared cancellation token.

    Design:
    - Dependency Injection: stage, engine and token are injected (testable)
    - Sequential: each analyze() runs entirely on the calling thread
    - Cooperative cancellation: the token is checked per packet during
      decode, before the engine runs, inside the engine between tempo and
      key, and once more before returning
    """

    def __init__(
        self,
        decode_stage: DecodeStage,
        engine: AnalysisEngine,
        token: Optional[CancellationToken] = None,
        config: Optional[AnalysisConfig] = None,
    ):
        """
        Initialize analysis pipeline.

        Args:
            decode_stage: DecodeStage instance
            engine: Analysis engine
            token: Cancellation token; share one between pipelines that
                should supersede each other
            config: Fixed engine configuration used for every run
        """
        self.decode_stage = decode_stage
        self.engine = engine
        self.token = token or CancellationToken()
        self.config = config or AnalysisConfig()
        self.logger = logging.getLogger('pipeline')

    def analyze(self, file_path: Union[str, Path]) -> Optional[AnalysisResult]:
        """
        Analyze tempo and key of an audio file.

        Starting a run supersedes every run already in flight on the same
        token.

        Args:
            file_path: Path to audio file

        Returns:
            AnalysisResult, or None if this run was superseded

        Raises:
            PipelineError: Open, probe, decode or analysis failure; the
                message names the phase and the file
        """
        file_path = Path(file_path)
        start_time = time.time()
        identity = self.token.begin_run()
        log = create_logger_with_context(
            'pipeline', {'run_id': identity, 'file': str(file_path)}
        )

        # Step 1: Decode to mono
        log.info(f"Decoding: {file_path}")
        buffer = self._decode(file_path, identity, log)
        if buffer is None:
            log.info("Superseded during decode")
            return None

        # Step 2: Skip the engine if nobody wants the result any more
        if not self.token.is_current(identity):
            log.info("Superseded before analysis")
            return None

        # Step 3: Analyze
        raw = self._run_engine(file_path, buffer, identity, log)

        # Step 4: Never hand out a superseded result
        if raw is None or not self.token.is_current(identity):
            log.info("Superseded during analysis, result discarded")
            return None

        # Step 5: Map to display result
        processing_time = time.time() - start_time
        result = self._create_result(raw, buffer, file_path, processing_time, log)
        log.info(f"Analysis complete in {processing_time:.3f}s: {result.get_summary()}")
        return result

    def cancel(self) -> None:
        """Supersede every run in flight. Returns immediately."""
        self.logger.info("Cancelling in-flight analyses")
        self.token.cancel()

    cancel_analyze = cancel

    def _decode(
        self, file_path: Path, identity: int, log: logging.LoggerAdapter
    ) -> Optional[AudioBuffer]:
        try:
            return self.decode_stage.decode(file_path, self.token, identity)
        except PipelineError as e:
            log.error(f"Decode failed: {e}", extra={'phase': e.phase})
            raise
        except Exception as e:
            log.error(f"Decode failed: {e}", extra={'phase': 'decode'})
            raise DecodeError(str(e), file_path=str(file_path), original_error=e) from e

    def _run_engine(
        self,
        file_path: Path,
        buffer: AudioBuffer,
        identity: int,
        log: logging.LoggerAdapter,
    ) -> Optional[RawAnalysis]:
        log.debug(
            f"Running {self.engine.name} on {len(buffer)} samples "
            f"({buffer.duration:.1f}s at {buffer.sample_rate} Hz)"
        )
        try:
            return self.engine.analyze_audio(
                buffer.samples,
                buffer.sample_rate,
                self.config,
                is_current=lambda: self.token.is_current(identity),
            )
        except Exception as e:
            log.error(f"Analysis failed: {e}", extra={'phase': 'analyze'})
            raise AnalysisError(
                getattr(e, 'message', str(e)),
                file_path=str(file_path),
                original_error=e,
                analyzer_name=getattr(self.engine, 'name', None),
            ) from e

    def _create_result(
        self,
        raw: RawAnalysis,
        buffer: AudioBuffer,
        file_path: Path,
        processing_time: float,
        log: logging.LoggerAdapter,
    ) -> AnalysisResult:
        """Render the key label and attach run metadata."""
        return AnalysisResult(
            bpm=float(raw.bpm),
            bpm_confidence=_clamp_confidence(raw.bpm_confidence, 'bpm', log),
            key=key_label(raw.key),
            key_confidence=_clamp_confidence(raw.key_confidence, 'key', log),
            metadata={
                'file': str(file_path),
                'sample_rate': buffer.sample_rate,
                'duration': buffer.duration,
                'engine': f"{self.engine.name}/{self.engine.version}",
                'decoder': self.decode_stage.library.name,
                'processing_time': processing_time,
            },
        )


def _clamp_confidence(value: float, what: str, log: logging.LoggerAdapter) -> float:
    value = float(value)
    if value != value:  # NaN
        log.warning(f"Engine returned NaN {what} confidence, using 0.0")
        return 0.0
    if not 0.0 <= value <= 1.0:
        log.warning(f"Engine returned out-of-range {what} confidence {value}, clamping")
        return min(1.0, max(0.0, value))
    return value


def create_analysis_pipeline(
    config: Optional[Dict[str, Any]] = None,
    token: Optional[CancellationToken] = None,
) -> AnalysisPipeline:
    """
    Factory function to create a fully configured pipeline.

    Args:
        config: Configuration dict (see keytempo.utils.config.load_config)
        token: Optional shared cancellation token

    Returns:
        AnalysisPipeline: Pipeline with the configured decoder backend and
        the librosa engine
    """
    from keytempo.analyzers import create_librosa_engine
    from keytempo.decoders import create_decoder_library

    if config is None:
        config = {}

    decoder_config = config.get('decoder', {})
    decode_stage = DecodeStage(
        library=create_decoder_library(decoder_config),
        max_consecutive_skips=decoder_config.get('max_consecutive_skips'),
    )

    return AnalysisPipeline(
        decode_stage=decode_stage,
        engine=create_librosa_engine(),
        token=token,
        config=AnalysisConfig.from_dict(config.get('analysis', {})),
    )
