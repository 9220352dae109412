"""
Core data models for keytempo.

Immutable domain models for decoded audio, raw engine output, and the
presentation-ready analysis result.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple

import numpy as np


@dataclass(frozen=True)
class AudioBuffer:
    """
    Complete mono decode of one file.

    Produced only by the decode stage and handed straight to the
    analysis engine.
    """

    samples: np.ndarray  # float32, shape (n,)
    sample_rate: int

    def __post_init__(self) -> None:
        samples = np.array(self.samples, dtype=np.float32).reshape(-1)
        samples.setflags(write=False)
        object.__setattr__(self, 'samples', samples)
        if samples.size and self.sample_rate <= 0:
            raise ValueError(
                f"Sample rate must be positive for non-empty audio, got {self.sample_rate}"
            )

    @property
    def is_empty(self) -> bool:
        return self.samples.size == 0

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        if self.sample_rate <= 0:
            return 0.0
        return self.samples.size / self.sample_rate

    def __len__(self) -> int:
        return int(self.samples.size)


class KeyMode(Enum):
    """Major/minor tag of a key estimate."""

    MAJOR = "major"
    MINOR = "minor"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class KeyEstimate:
    """Tagged key encoding: mode plus pitch class (0 = C ... 11 = B)."""

    mode: KeyMode
    pitch_class: int

    @classmethod
    def major(cls, pitch_class: int) -> "KeyEstimate":
        return cls(KeyMode.MAJOR, pitch_class)

    @classmethod
    def minor(cls, pitch_class: int) -> "KeyEstimate":
        return cls(KeyMode.MINOR, pitch_class)


@dataclass(frozen=True)
class RawAnalysis:
    """Raw engine output, before the key is rendered for display."""

    bpm: float
    bpm_confidence: float
    key: KeyEstimate
    key_confidence: float


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Engine configuration.

    The pipeline always runs the engine with one fixed instance of this.
    """

    hop_length: int = 512
    start_bpm: float = 120.0
    tempo_range: Tuple[float, float] = (60.0, 200.0)
    min_samples: int = 2048

    def __post_init__(self) -> None:
        low, high = self.tempo_range
        if not 0 < low < high:
            raise ValueError(f"Invalid tempo range: {self.tempo_range}")
        # Folding by octaves needs at least a 2x span
        if high < 2 * low:
            raise ValueError(
                f"Tempo range must span at least one octave, got {self.tempo_range}"
            )
        object.__setattr__(self, 'tempo_range', (float(low), float(high)))

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "AnalysisConfig":
        defaults = cls()
        return cls(
            hop_length=config.get('hop_length', defaults.hop_length),
            start_bpm=config.get('start_bpm', defaults.start_bpm),
            tempo_range=tuple(config.get('tempo_range', defaults.tempo_range)),
            min_samples=config.get('min_samples', defaults.min_samples),
        )


@dataclass(frozen=True)
class AnalysisResult:
    """Presentation-ready tempo and key for one file."""

    bpm: float
    bpm_confidence: float  # [0.0, 1.0]
    key: str  # e.g. "F# Minor"
    key_confidence: float  # [0.0, 1.0]
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        """Validate fields."""
        validate_confidence(self.bpm_confidence)
        validate_confidence(self.key_confidence)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'bpm': self.bpm,
            'bpm_confidence': self.bpm_confidence,
            'key': self.key,
            'key_confidence': self.key_confidence,
            'metadata': dict(self.metadata),
        }

    def to_json(self, indent: int = 2) -> str:
        """Export as JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def get_summary(self) -> str:
        """Get human-readable summary."""
        return (
            f"Tempo: {self.bpm:.2f} BPM ({self.bpm_confidence:.0%}) | "
            f"Key: {self.key} ({self.key_confidence:.0%})"
        )


# Validation helpers

def validate_confidence(confidence: float) -> None:
    """Validate confidence score is in valid range."""
    if not (0.0 <= confidence <= 1.0):
        raise ValueError(f"Confidence must be in [0.0, 1.0], got {confidence}")
