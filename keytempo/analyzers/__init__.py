"""
Analysis engine implementations.
"""

from keytempo.analyzers.librosa_engine import LibrosaAnalysisEngine, create_librosa_engine

__all__ = [
    "LibrosaAnalysisEngine",
    "create_librosa_engine",
]
