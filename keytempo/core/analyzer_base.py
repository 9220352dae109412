"""
Analysis engine interface for keytempo.

Defines the contract for tempo/key engines using Protocol (structural
subtyping), plus a template-method base class.
"""

import logging
import time
from abc import abstractmethod
from typing import Callable, Optional, Protocol

import numpy as np

from keytempo.core.models import AnalysisConfig, RawAnalysis
from keytempo.utils.errors import AnalysisError

# Returns False once the caller no longer wants the result
StillWanted = Callable[[], bool]


class AnalysisEngine(Protocol):
    """
    Protocol for tempo and key engines.

    A class doesn't need to inherit from AnalysisEngine to be compatible,
    it just needs these members.
    """

    @property
    def name(self) -> str:
        """Engine name (e.g., 'librosa')."""
        ...

    @property
    def version(self) -> str:
        """Engine version for result tracking."""
        ...

    def analyze_audio(
        self,
        samples: np.ndarray,
        sample_rate: int,
        config: AnalysisConfig,
        is_current: Optional[StillWanted] = None,
    ) -> Optional[RawAnalysis]:
        """
        Estimate tempo and key of mono samples.

        Args:
            samples: Mono float32 samples (may be empty)
            sample_rate: Sample rate in Hz
            config: Engine configuration
            is_current: Optional checkpoint; when it returns False the
                engine may stop early

        Returns:
            RawAnalysis, or None if stopped at a checkpoint

        Raises:
            AnalysisError: If analysis fails
        """
        ...


class BaseAnalysisEngine:
    """
    Optional base class providing timing, logging and error wrapping.

    analyze_audio() is the template; subclasses implement _analyze_impl().
    """

    def __init__(self, name: str, version: str):
        self._name = name
        self._version = version
        self.logger = logging.getLogger(f"engine.{name}")

    @property
    def name(self) -> str:
        """Return engine name."""
        return self._name

    @property
    def version(self) -> str:
        """Return engine version."""
        return self._version

    def analyze_audio(
        self,
        samples: np.ndarray,
        sample_rate: int,
        config: AnalysisConfig,
        is_current: Optional[StillWanted] = None,
    ) -> Optional[RawAnalysis]:
        """
        Template method with timing and error handling.

        Raises:
            AnalysisError: If analysis fails
        """
        start_time = time.time()
        samples = np.asarray(samples, dtype=np.float32).reshape(-1)

        try:
            self.logger.debug(
                f"Starting analysis: {samples.size} samples at {sample_rate} Hz"
            )

            result = self._analyze_impl(samples, sample_rate, config, is_current)

            elapsed = time.time() - start_time
            if result is None:
                self.logger.info(f"Analysis abandoned after {elapsed:.3f}s")
            else:
                self.logger.info(f"Analysis complete in {elapsed:.3f}s")

            return result

        except AnalysisError:
            raise

        except Exception as e:
            self.logger.error(f"Analysis failed: {e}")
            raise AnalysisError(
                f"{self.name} analysis failed: {e}",
                analyzer_name=self.name,
                original_error=e
            ) from e

    @abstractmethod
    def _analyze_impl(
        self,
        samples: np.ndarray,
        sample_rate: int,
        config: AnalysisConfig,
        is_current: Optional[StillWanted],
    ) -> Optional[RawAnalysis]:
        """Subclasses implement the actual estimation."""
        raise NotImplementedError
