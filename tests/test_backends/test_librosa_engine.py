"""Tests for the librosa analysis engine."""

import numpy as np
import pytest

librosa = pytest.importorskip("librosa")

from keytempo.analyzers.librosa_engine import LibrosaAnalysisEngine, UNKNOWN_KEY, fold_tempo
from keytempo.core.models import AnalysisConfig, KeyMode, RawAnalysis
from keytempo.utils.errors import AnalysisError

SR = 22050


def _click_track(bpm: float, seconds: float = 12.0, sr: int = SR) -> np.ndarray:
    """Decaying noise bursts on every beat."""
    rng = np.random.default_rng(3)
    signal = np.zeros(int(seconds * sr), dtype=np.float32)
    burst_len = int(0.03 * sr)
    burst = rng.uniform(-1, 1, burst_len) * np.exp(-np.linspace(0, 8, burst_len))
    period = 60.0 / bpm
    for onset in np.arange(0.0, seconds - 0.05, period):
        start = int(onset * sr)
        signal[start:start + burst_len] += burst.astype(np.float32)
    return signal * 0.8


def _a_major_chord(seconds: float = 4.0, sr: int = SR) -> np.ndarray:
    t = np.arange(int(seconds * sr)) / sr
    freqs = (220.0, 440.0, 554.37, 659.25)
    amps = (1.0, 0.8, 0.5, 0.6)
    return sum(a * np.sin(2 * np.pi * f * t) for f, a in zip(freqs, amps)).astype(np.float32) * 0.2


@pytest.fixture
def engine():
    return LibrosaAnalysisEngine()


class TestTempo:
    def test_click_track_tempo(self, engine):
        raw = engine.analyze_audio(_click_track(120.0), SR, AnalysisConfig())
        assert isinstance(raw, RawAnalysis)
        assert raw.bpm == pytest.approx(120.0, abs=5.0)
        assert 0.0 < raw.bpm_confidence <= 1.0
        assert 0.0 <= raw.key_confidence <= 1.0

    def test_fold_tempo_into_range(self):
        assert fold_tempo(45.0, (60.0, 200.0)) == 90.0
        assert fold_tempo(240.0, (60.0, 200.0)) == 120.0
        assert fold_tempo(128.0, (60.0, 200.0)) == 128.0


class TestKey:
    def test_a_major_chord(self, engine):
        raw = engine.analyze_audio(_a_major_chord(), SR, AnalysisConfig())
        # Chord tones A, C#, E
        assert raw.key.pitch_class in (9, 1, 4)
        assert raw.key.mode in (KeyMode.MAJOR, KeyMode.MINOR)
        assert 0.5 < raw.key_confidence <= 1.0


class TestDegenerateInput:
    def test_empty_input(self, engine):
        raw = engine.analyze_audio(np.zeros(0, dtype=np.float32), SR, AnalysisConfig())
        assert raw.bpm == 0.0
        assert raw.key == UNKNOWN_KEY
        assert raw.bpm_confidence == 0.0
        assert raw.key_confidence == 0.0

    def test_silence(self, engine):
        raw = engine.analyze_audio(np.zeros(SR, dtype=np.float32), SR, AnalysisConfig())
        assert raw.key == UNKNOWN_KEY
        assert raw.bpm == 0.0


class TestCheckpoint:
    def test_stops_between_tempo_and_key(self, engine, monkeypatch):
        calls = []
        monkeypatch.setattr(
            librosa.feature, "chroma_stft",
            lambda **kwargs: calls.append(kwargs) or np.ones((12, 10)),
        )
        raw = engine.analyze_audio(_click_track(100.0, seconds=4.0), SR, AnalysisConfig(), is_current=lambda: False)
        assert raw is None
        assert calls == []

    def test_runs_to_completion_while_current(self, engine):
        raw = engine.analyze_audio(_click_track(100.0, seconds=4.0), SR, AnalysisConfig(), is_current=lambda: True)
        assert raw is not None


class TestErrors:
    def test_librosa_failure_is_wrapped(self, engine, monkeypatch):
        def broken(**kwargs):
            raise RuntimeError("beat tracker exploded")

        monkeypatch.setattr(librosa.beat, "beat_track", broken)
        with pytest.raises(AnalysisError) as exc_info:
            engine.analyze_audio(_click_track(120.0, seconds=2.0), SR, AnalysisConfig())
        assert exc_info.value.analyzer_name == "librosa"
        assert "beat tracker exploded" in str(exc_info.value)

    def test_name_and_version(self, engine):
        assert engine.name == "librosa"
        assert engine.version == "1.0.0"
