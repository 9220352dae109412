"""
SoundFile (libsndfile) decoder library backend.

Covers WAV, AIFF, FLAC, Ogg/Vorbis and, with libsndfile >= 1.1, MP3.
libsndfile decodes while reading, so a "packet" here is a block of
already decoded frames.
"""

import logging
from typing import BinaryIO, Optional

import numpy as np
import soundfile as sf

from keytempo.core.decoder import EndOfStream, Packet, Track

logger = logging.getLogger(__name__)

TRACK_ID = 0
DEFAULT_BLOCK_FRAMES = 4096


class SoundFileReader:
    """Reads fixed-size frame blocks from a single-track file."""

    def __init__(self, sound_file: sf.SoundFile, block_frames: int):
        self._file = sound_file
        self._block_frames = block_frames

    def default_track(self) -> Optional[Track]:
        return Track(
            track_id=TRACK_ID,
            codec=f"{self._file.format}/{self._file.subtype}",
            sample_rate=self._file.samplerate or None,
            channel_count=self._file.channels or None,
        )

    def next_packet(self) -> Packet:
        block = self._file.read(self._block_frames, dtype='float32', always_2d=True)
        if block.shape[0] == 0:
            raise EndOfStream()
        return Packet(track_id=TRACK_ID, payload=block)

    def close(self) -> None:
        self._file.close()


class SoundFileDecoder:
    """Flattens (frames, channels) blocks into interleaved samples."""

    def decode(self, packet: Packet) -> np.ndarray:
        # Row-major flattening of (frames, channels) is interleaved order
        return np.asarray(packet.payload, dtype=np.float32).reshape(-1)


class SoundFileDecoderLibrary:
    """DecoderLibrary backed by soundfile."""

    name = "soundfile"

    def __init__(self, block_frames: int = DEFAULT_BLOCK_FRAMES):
        if block_frames <= 0:
            raise ValueError(f"block_frames must be positive, got {block_frames}")
        self.block_frames = block_frames

    def probe(self, stream: BinaryIO, hint: Optional[str] = None) -> SoundFileReader:
        # libsndfile sniffs the header itself; the hint is only logged
        sound_file = sf.SoundFile(stream, mode='r')
        logger.debug(
            f"Probed {sound_file.format}/{sound_file.subtype} "
            f"(extension hint: {hint or 'none'})"
        )
        return SoundFileReader(sound_file, self.block_frames)

    def make_decoder(self, track: Track) -> SoundFileDecoder:
        return SoundFileDecoder()
