"""
Decoder library backends.

Backends import heavy native libraries, so they are loaded on demand by
create_decoder_library().
"""

from typing import Any, Dict, Optional

from keytempo.core.decoder import DecoderLibrary
from keytempo.utils.errors import ConfigurationError

BACKENDS = ("pyav", "soundfile")


def create_decoder_library(config: Optional[Dict[str, Any]] = None) -> DecoderLibrary:
    """
    Factory function to create the configured decoder backend.

    Args:
        config: Optional "decoder" configuration section

    Returns:
        DecoderLibrary: Backend instance

    Raises:
        ConfigurationError: Unknown backend name
    """
    if config is None:
        config = {}

    backend = config.get('backend', 'pyav')

    if backend == 'pyav':
        from keytempo.decoders.pyav_backend import PyAVDecoderLibrary
        return PyAVDecoderLibrary()
    if backend == 'soundfile':
        from keytempo.decoders.soundfile_backend import (
            DEFAULT_BLOCK_FRAMES,
            SoundFileDecoderLibrary,
        )
        return SoundFileDecoderLibrary(
            block_frames=config.get('block_frames', DEFAULT_BLOCK_FRAMES)
        )

    raise ConfigurationError(
        f"Unknown decoder backend: {backend!r} (expected one of {', '.join(BACKENDS)})",
        config_key="decoder.backend",
    )


__all__ = ["BACKENDS", "create_decoder_library"]
