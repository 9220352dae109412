"""
Display labels for key estimates.
"""

from keytempo.core.models import KeyEstimate

# Musical note names, indexed by pitch class
NOTE_NAMES = ['C', 'C#', 'D', 'D#', 'E', 'F', 'F#', 'G', 'G#', 'A', 'A#', 'B']

UNKNOWN_NOTE = "Unknown"


def pitch_class_name(pitch_class: int) -> str:
    """Return the note name for a pitch class, or "Unknown" when out of range."""
    if 0 <= pitch_class < len(NOTE_NAMES):
        return NOTE_NAMES[pitch_class]
    return UNKNOWN_NOTE


def key_label(key: KeyEstimate) -> str:
    """Render a key estimate as e.g. "C Major" or "B Minor"."""
    return f"{pitch_class_name(key.pitch_class)} {key.mode.label}"
