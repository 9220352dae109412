"""
Generation-based cancellation for pipeline runs.

A run captures the generation when it starts and polls it at its
checkpoints. Starting a newer run or cancelling bumps the generation,
which makes every older run stale for good.
"""

import logging
import threading

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Monotonic generation counter shared by every run of a pipeline.

    Thread-safe. One instance is usually created per application and
    passed to every pipeline that should supersede each other.
    """

    def __init__(self) -> None:
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        """Live generation value."""
        with self._lock:
            return self._generation

    def begin_run(self) -> int:
        """Start a run and return its identity (the new generation)."""
        with self._lock:
            self._generation += 1
            identity = self._generation
        logger.debug(f"Run {identity} started")
        return identity

    def is_current(self, identity: int) -> bool:
        """Return True while no newer run or cancel happened since ``identity``."""
        with self._lock:
            return self._generation == identity

    def cancel(self) -> None:
        """Invalidate every run in flight."""
        with self._lock:
            self._generation += 1
            generation = self._generation
        logger.debug(f"Cancelled all runs before generation {generation}")
