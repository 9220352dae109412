"""
PyAV (FFmpeg) decoder library backend.

Handles any container and codec the bundled FFmpeg can demux/decode
(MP3, AAC/M4A, FLAC, Ogg/Opus, WAV, AIFF, ...).
"""

import logging
from typing import BinaryIO, Iterator, Optional

import av
import av.error
import numpy as np

from keytempo.core.decoder import EndOfStream, Packet, RecoverableDecodeError, Track

logger = logging.getLogger(__name__)

# File extension -> FFmpeg demuxer name, tried when generic probing fails
EXTENSION_FORMATS = {
    'mp3': 'mp3',
    'wav': 'wav',
    'flac': 'flac',
    'ogg': 'ogg',
    'oga': 'ogg',
    'opus': 'ogg',
    'm4a': 'mp4',
    'mp4': 'mp4',
    'aac': 'aac',
    'aif': 'aiff',
    'aiff': 'aiff',
    'mka': 'matroska',
    'webm': 'matroska',
    'wma': 'asf',
}


class PyAVFormatReader:
    """Demuxes every stream of an open container, one packet at a time."""

    def __init__(self, container):
        self._container = container
        self._packets: Iterator = container.demux()

    def default_track(self) -> Optional[Track]:
        for stream in self._container.streams.audio:
            context = stream.codec_context
            if context is None:
                continue
            return Track(
                track_id=stream.index,
                codec=context.name,
                sample_rate=context.sample_rate or None,
                channel_count=context.channels or None,
                codec_params=stream,
            )
        return None

    def next_packet(self) -> Packet:
        try:
            packet = next(self._packets)
        except (StopIteration, av.error.EOFError):
            raise EndOfStream()
        return Packet(track_id=packet.stream.index, payload=packet)

    def close(self) -> None:
        self._container.close()


class PyAVDecoder:
    """Decodes one audio stream to interleaved float32."""

    def __init__(self, stream):
        self._context = stream.codec_context
        # Format conversion only: keep rate and layout, make samples packed float
        self._resampler = av.AudioResampler(format='flt')
        self._resampler_started = False

    def decode(self, packet: Packet) -> np.ndarray:
        try:
            frames = self._context.decode(packet.payload)
        except av.error.InvalidDataError as e:
            raise RecoverableDecodeError(str(e)) from e

        converted = []
        for frame in frames:
            converted.extend(self._resampler.resample(frame))
            self._resampler_started = True

        # An empty packet is the demuxer's end-of-stream flush for this track
        if packet.payload.size == 0 and self._resampler_started:
            converted.extend(self._resampler.resample(None))

        # Packed formats come back as shape (1, samples * channels)
        chunks = [out.to_ndarray().reshape(-1) for out in converted]

        if not chunks:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate(chunks).astype(np.float32, copy=False)


class PyAVDecoderLibrary:
    """DecoderLibrary backed by PyAV."""

    name = "pyav"

    def probe(self, stream: BinaryIO, hint: Optional[str] = None) -> PyAVFormatReader:
        try:
            container = av.open(stream, mode='r')
        except av.error.FFmpegError as e:
            format_name = EXTENSION_FORMATS.get(hint or '')
            if format_name is None:
                raise
            logger.debug(f"Generic probe failed ({e}), retrying as '{format_name}'")
            stream.seek(0)
            container = av.open(stream, mode='r', format=format_name)
        return PyAVFormatReader(container)

    def make_decoder(self, track: Track) -> PyAVDecoder:
        stream = track.codec_params
        if stream is None or stream.codec_context is None:
            raise ValueError(f"track {track.track_id} has no codec parameters")
        # Raises if this FFmpeg build has no decoder for the codec
        av.Codec(track.codec, 'r')
        return PyAVDecoder(stream)
