"""
Decoder library interface for keytempo.

Defines the contract the decode stage needs from a container/codec
library using Protocol (structural subtyping). Concrete backends live in
keytempo.decoders.
"""

from dataclasses import dataclass, field
from typing import Any, BinaryIO, Optional, Protocol, runtime_checkable

import numpy as np


class EndOfStream(Exception):
    """Raised by FormatReader.next_packet() at transport-level end of stream."""


class RecoverableDecodeError(Exception):
    """Raised by Decoder.decode() for a bad packet that can be skipped."""


@dataclass(frozen=True)
class Track:
    """
    One audio stream inside a container.

    ``sample_rate`` and ``channel_count`` are None when the container
    does not declare them. ``codec_params`` is whatever the backend
    needs to build a decoder for this track.
    """

    track_id: int
    codec: str
    sample_rate: Optional[int] = None
    channel_count: Optional[int] = None
    codec_params: Any = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class Packet:
    """One demuxed, not yet decoded unit of audio data."""

    track_id: int
    payload: Any = field(default=None, repr=False, compare=False)


@runtime_checkable
class FormatReader(Protocol):
    """Demuxer over a probed container."""

    def default_track(self) -> Optional[Track]:
        """First decodable audio track, or None."""
        ...

    def next_packet(self) -> Packet:
        """
        Return the next packet of any track.

        Raises:
            EndOfStream: No packets remain
        """
        ...

    def close(self) -> None:
        """Release the container and its byte stream."""
        ...


@runtime_checkable
class Decoder(Protocol):
    """Codec decoder for a single track."""

    def decode(self, packet: Packet) -> np.ndarray:
        """
        Decode one packet to interleaved float32 samples.

        May return an empty array when the codec needs more input.

        Raises:
            RecoverableDecodeError: This packet is bad, the stream is not
            Exception: Anything else is fatal for the run
        """
        ...


@runtime_checkable
class DecoderLibrary(Protocol):
    """
    Container probing and decoder construction.

    Each method raises on failure; the decode stage maps the failure to
    the matching pipeline error.
    """

    @property
    def name(self) -> str:
        """Backend name (e.g., 'pyav', 'soundfile')."""
        ...

    def probe(self, stream: BinaryIO, hint: Optional[str] = None) -> FormatReader:
        """
        Identify the container in ``stream`` and open a reader on it.

        Args:
            stream: Readable, seekable byte stream
            hint: Lowercase file extension without the dot, if known
        """
        ...

    def make_decoder(self, track: Track) -> Decoder:
        """Build a decoder for ``track``'s codec."""
        ...
