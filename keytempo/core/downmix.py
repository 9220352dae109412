"""
Downmixer: interleaved N-channel samples to mono.

Plain per-frame arithmetic mean. No resampling, windowing, clipping or
loudness weighting.
"""

import numpy as np


def downmix(interleaved: np.ndarray, channels: int) -> np.ndarray:
    """
    Average each frame of an interleaved batch into one mono sample.

    Args:
        interleaved: 1-D samples laid out as frame0ch0, frame0ch1, ...
        channels: Channel count of the batch

    Returns:
        np.ndarray: float32 mono samples, one per frame, in time order

    Raises:
        ValueError: If channels < 1 or the batch is not whole frames
    """
    samples = np.asarray(interleaved, dtype=np.float32).reshape(-1)

    if channels < 1:
        raise ValueError(f"Channel count must be positive, got {channels}")
    if channels == 1:
        return samples
    if samples.size % channels:
        raise ValueError(
            f"Batch of {samples.size} samples is not a whole number "
            f"of {channels}-channel frames"
        )

    frames = samples.reshape(-1, channels)
    # Accumulate in float64 and divide by C, as in sum(frame) / C
    return (frames.sum(axis=1, dtype=np.float64) / channels).astype(np.float32)


class MonoAccumulator:
    """Collects downmixed batches for one decode run."""

    def __init__(self, channels: int):
        self.channels = channels
        self._chunks: list = []
        self._length = 0

    def append(self, interleaved: np.ndarray) -> int:
        """Downmix a batch, keep it, and return how many mono samples it added."""
        mono = downmix(interleaved, self.channels)
        if mono.size:
            self._chunks.append(mono)
            self._length += mono.size
        return int(mono.size)

    def __len__(self) -> int:
        return self._length

    def to_array(self) -> np.ndarray:
        if not self._chunks:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate(self._chunks)
