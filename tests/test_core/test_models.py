"""Tests for core data models and key labels."""

import json

import numpy as np
import pytest

from keytempo.core.key_labels import NOTE_NAMES, key_label, pitch_class_name
from keytempo.core.models import (
    AnalysisConfig,
    AnalysisResult,
    AudioBuffer,
    KeyEstimate,
    KeyMode,
)


class TestKeyLabel:
    def test_c_major(self):
        assert key_label(KeyEstimate.major(0)) == "C Major"

    def test_b_minor(self):
        assert key_label(KeyEstimate.minor(11)) == "B Minor"

    def test_sharps(self):
        assert key_label(KeyEstimate.minor(6)) == "F# Minor"
        assert key_label(KeyEstimate.major(10)) == "A# Major"

    @pytest.mark.parametrize("pitch_class", [-1, 12, 99])
    def test_out_of_range_is_unknown(self, pitch_class):
        assert key_label(KeyEstimate.major(pitch_class)) == "Unknown Major"
        assert key_label(KeyEstimate.minor(pitch_class)) == "Unknown Minor"

    def test_table_has_twelve_pitch_classes(self):
        assert len(NOTE_NAMES) == 12
        assert [pitch_class_name(i) for i in range(12)] == NOTE_NAMES


class TestAudioBuffer:
    def test_duration(self):
        buffer = AudioBuffer(samples=np.zeros(22050), sample_rate=44100)
        assert buffer.duration == pytest.approx(0.5)
        assert len(buffer) == 22050
        assert not buffer.is_empty

    def test_samples_are_float32_and_read_only(self):
        buffer = AudioBuffer(samples=[0.0, 1.0], sample_rate=8000)
        assert buffer.samples.dtype == np.float32
        with pytest.raises(ValueError):
            buffer.samples[0] = 2.0

    def test_empty_buffer(self):
        buffer = AudioBuffer(samples=np.zeros(0), sample_rate=44100)
        assert buffer.is_empty
        assert buffer.duration == 0.0

    def test_non_empty_needs_sample_rate(self):
        with pytest.raises(ValueError, match="Sample rate"):
            AudioBuffer(samples=np.ones(4), sample_rate=0)


class TestAnalysisConfig:
    def test_defaults(self):
        config = AnalysisConfig()
        assert config.hop_length == 512
        assert config.tempo_range == (60.0, 200.0)

    def test_from_dict_accepts_list_range(self):
        config = AnalysisConfig.from_dict({"tempo_range": [70, 180], "hop_length": 256})
        assert config.tempo_range == (70.0, 180.0)
        assert config.hop_length == 256
        assert config.start_bpm == 120.0

    @pytest.mark.parametrize("tempo_range", [(0, 100), (150, 100), (100, 150)])
    def test_rejects_bad_tempo_range(self, tempo_range):
        with pytest.raises(ValueError):
            AnalysisConfig(tempo_range=tempo_range)


class TestAnalysisResult:
    def test_rejects_confidence_out_of_range(self):
        with pytest.raises(ValueError):
            AnalysisResult(bpm=120.0, bpm_confidence=1.5, key="C Major", key_confidence=0.5)
        with pytest.raises(ValueError):
            AnalysisResult(bpm=120.0, bpm_confidence=0.5, key="C Major", key_confidence=-0.1)

    def test_to_json(self):
        result = AnalysisResult(
            bpm=128.0, bpm_confidence=0.9, key="A Minor", key_confidence=0.7,
            metadata={"file": "x.mp3"},
        )
        data = json.loads(result.to_json())
        assert data["bpm"] == 128.0
        assert data["key"] == "A Minor"
        assert data["metadata"] == {"file": "x.mp3"}

    def test_summary(self):
        result = AnalysisResult(bpm=95.5, bpm_confidence=0.5, key="D Major", key_confidence=0.25)
        assert result.get_summary() == "Tempo: 95.50 BPM (50%) | Key: D Major (25%)"

    def test_key_mode_label(self):
        assert KeyMode.MAJOR.label == "Major"
        assert KeyMode.MINOR.label == "Minor"
