"""
Librosa analysis engine for keytempo.

Estimates tempo (BPM) and musical key of a mono signal.
"""

from typing import Optional, Tuple

import librosa
import numpy as np

from keytempo.core.analyzer_base import BaseAnalysisEngine, StillWanted
from keytempo.core.models import AnalysisConfig, KeyEstimate, KeyMode, RawAnalysis


# Key profiles (Krumhansl-Schmuckler), index 0 = tonic
MAJOR_PROFILE = np.array([6.35, 2.23, 3.48, 2.33, 4.38, 4.09, 2.52, 5.19, 2.39, 3.66, 2.29, 2.88])
MINOR_PROFILE = np.array([6.33, 2.68, 3.52, 5.38, 2.60, 3.53, 2.54, 4.75, 3.98, 2.69, 3.34, 3.17])

SILENCE_RMS = 1e-6

# Returned for input too short or too quiet to analyze
UNKNOWN_KEY = KeyEstimate.major(-1)


class LibrosaAnalysisEngine(BaseAnalysisEngine):
    """
    Librosa-based tempo and key estimation.

    Analyzes:
    - Tempo via beat tracking on the onset envelope
    - Tempo confidence via onset autocorrelation at the beat period
    - Key via chroma correlation with major/minor key profiles
    """

    def __init__(self):
        """Initialize librosa engine."""
        super().__init__("librosa", "1.0.0")

    def _analyze_impl(
        self,
        samples: np.ndarray,
        sample_rate: int,
        config: AnalysisConfig,
        is_current: Optional[StillWanted],
    ) -> Optional[RawAnalysis]:
        if samples.size < config.min_samples:
            self.logger.warning(
                f"Too few samples to analyze ({samples.size} < {config.min_samples})"
            )
            return self._unknown_result()

        rms = float(np.sqrt(np.mean(samples.astype(np.float64) ** 2)))
        if rms < SILENCE_RMS:
            self.logger.warning("Audio appears to be silent")
            return self._unknown_result()

        # Step 1: Tempo
        bpm, bpm_confidence = self._estimate_tempo(samples, sample_rate, config)

        # Step 2: Stop here if the result is no longer wanted
        if is_current is not None and not is_current():
            return None

        # Step 3: Key
        key, key_confidence = self._estimate_key(samples, sample_rate, config)

        return RawAnalysis(
            bpm=bpm,
            bpm_confidence=bpm_confidence,
            key=key,
            key_confidence=key_confidence,
        )

    def _estimate_tempo(
        self, samples: np.ndarray, sample_rate: int, config: AnalysisConfig
    ) -> Tuple[float, float]:
        """
        Estimate tempo and its confidence.

        Returns:
            (bpm, confidence); (0.0, 0.0) when no beat is found
        """
        hop = config.hop_length
        onset_env = librosa.onset.onset_strength(y=samples, sr=sample_rate, hop_length=hop)

        tempo, _ = librosa.beat.beat_track(
            onset_envelope=onset_env,
            sr=sample_rate,
            hop_length=hop,
            start_bpm=config.start_bpm,
        )
        # librosa >= 0.10 returns a 1-element array
        bpm = float(np.atleast_1d(tempo)[0])
        if not np.isfinite(bpm) or bpm <= 0:
            return 0.0, 0.0

        bpm = fold_tempo(bpm, config.tempo_range)
        confidence = self._tempo_confidence(onset_env, bpm, sample_rate, hop)
        self.logger.debug(f"BPM: {bpm:.1f} (confidence: {confidence:.2f})")
        return bpm, confidence

    def _tempo_confidence(
        self, onset_env: np.ndarray, bpm: float, sample_rate: int, hop_length: int
    ) -> float:
        """Normalized onset autocorrelation at the beat period, in [0, 1]."""
        envelope = onset_env - np.mean(onset_env)
        ac = librosa.autocorrelate(envelope)
        if ac.size == 0 or ac[0] <= 0:
            return 0.0

        lag = int(round(60.0 * sample_rate / (hop_length * bpm)))
        if lag <= 0 or lag >= ac.size:
            return 0.0

        return float(np.clip(ac[lag] / ac[0], 0.0, 1.0))

    def _estimate_key(
        self, samples: np.ndarray, sample_rate: int, config: AnalysisConfig
    ) -> Tuple[KeyEstimate, float]:
        """
        Estimate musical key using chroma correlation.

        Uses the Krumhansl-Schmuckler key-finding algorithm. STFT chroma
        works at any sample rate, unlike CQT chroma.

        Returns:
            (key, confidence) with confidence mapped from [-1, 1] to [0, 1]
        """
        chroma = librosa.feature.chroma_stft(
            y=samples,
            sr=sample_rate,
            hop_length=config.hop_length,
        )
        chroma_mean = np.mean(chroma, axis=1)

        if np.sum(chroma_mean) <= 0 or np.std(chroma_mean) == 0:
            return UNKNOWN_KEY, 0.0

        best_key = UNKNOWN_KEY
        best_corr = -1.0

        for pitch_class in range(12):
            for mode, profile in ((KeyMode.MAJOR, MAJOR_PROFILE), (KeyMode.MINOR, MINOR_PROFILE)):
                corr = np.corrcoef(chroma_mean, np.roll(profile, pitch_class))[0, 1]
                if np.isfinite(corr) and corr > best_corr:
                    best_corr = float(corr)
                    best_key = KeyEstimate(mode, pitch_class)

        confidence = float(np.clip((best_corr + 1) / 2, 0.0, 1.0))
        self.logger.debug(f"Key: {best_key} (strength: {confidence:.2f})")
        return best_key, confidence

    @staticmethod
    def _unknown_result() -> RawAnalysis:
        return RawAnalysis(
            bpm=0.0,
            bpm_confidence=0.0,
            key=UNKNOWN_KEY,
            key_confidence=0.0,
        )


def fold_tempo(bpm: float, tempo_range: Tuple[float, float]) -> float:
    """Double or halve ``bpm`` until it falls inside ``tempo_range``."""
    low, high = tempo_range
    while bpm < low:
        bpm *= 2
    while bpm > high:
        bpm /= 2
    return bpm


def create_librosa_engine() -> LibrosaAnalysisEngine:
    """Factory function for the default engine."""
    return LibrosaAnalysisEngine()
