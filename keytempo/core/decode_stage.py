"""
Decode stage for keytempo.

Turns a file path into a complete mono AudioBuffer under a cancellation
token, or None when the run is superseded mid-decode.
"""

import logging
import time
from pathlib import Path
from typing import Optional, Union

from keytempo.core.cancellation import CancellationToken
from keytempo.core.decoder import (
    DecoderLibrary,
    EndOfStream,
    FormatReader,
    RecoverableDecodeError,
    Track,
)
from keytempo.core.downmix import MonoAccumulator
from keytempo.core.models import AudioBuffer
from keytempo.utils.errors import (
    DecodeError,
    DecoderInitError,
    MissingSampleRateError,
    NoTrackError,
    OpenError,
    ProbeError,
)


class DecodeStage:
    """
    Decodes and downmixes one file per call.

    Stateless between calls, so one instance can serve concurrent runs.
    The token is polled once per packet; that is the only place where a
    decode spends meaningful time.
    """

    def __init__(
        self,
        library: DecoderLibrary,
        max_consecutive_skips: Optional[int] = None,
    ):
        """
        Initialize decode stage.

        Args:
            library: Decoder library backend
            max_consecutive_skips: Fail the run after this many bad packets
                in a row. None skips bad packets without limit.
        """
        if max_consecutive_skips is not None and max_consecutive_skips < 0:
            raise ValueError(
                f"max_consecutive_skips must be >= 0, got {max_consecutive_skips}"
            )
        self.library = library
        self.max_consecutive_skips = max_consecutive_skips
        self.logger = logging.getLogger('decode_stage')

    def decode(
        self,
        file_path: Union[str, Path],
        token: CancellationToken,
        identity: int,
    ) -> Optional[AudioBuffer]:
        """
        Decode ``file_path`` to mono.

        Args:
            file_path: Audio file; its extension is passed on as a probe hint
            token: Cancellation token shared with the caller
            identity: Run identity from ``token.begin_run()``

        Returns:
            AudioBuffer, or None if the run was superseded

        Raises:
            OpenError: File cannot be opened
            ProbeError: Container unrecognized or corrupt
            NoTrackError: No decodable audio track
            MissingSampleRateError: Track has no sample rate
            DecoderInitError: No decoder for the track's codec
            DecodeError: Fatal failure while decoding packets
        """
        path = Path(file_path)
        hint = path.suffix.lstrip('.').lower() or None

        try:
            stream = open(path, 'rb')
        except OSError as e:
            raise OpenError(str(e), file_path=str(path), original_error=e) from e

        with stream:
            try:
                reader = self.library.probe(stream, hint)
            except Exception as e:
                raise ProbeError(
                    f"unrecognized or corrupt container: {e}",
                    file_path=str(path),
                    original_error=e,
                ) from e

            try:
                return self._decode_track(reader, path, token, identity)
            finally:
                reader.close()

    def _decode_track(
        self,
        reader: FormatReader,
        path: Path,
        token: CancellationToken,
        identity: int,
    ) -> Optional[AudioBuffer]:
        track = self._select_track(reader, path)
        sample_rate = track.sample_rate
        channels = track.channel_count or 1

        try:
            decoder = self.library.make_decoder(track)
        except Exception as e:
            raise DecoderInitError(
                f"cannot create decoder for codec '{track.codec}': {e}",
                file_path=str(path),
                original_error=e,
            ) from e

        self.logger.debug(
            f"Run {identity}: decoding {path.name} with {self.library.name} "
            f"({track.codec}, {sample_rate} Hz, {channels} ch)"
        )

        start_time = time.time()
        accumulator = MonoAccumulator(channels)
        skipped = 0
        consecutive_skips = 0

        while True:
            if not token.is_current(identity):
                self.logger.info(
                    f"Run {identity} superseded after {len(accumulator)} samples: {path}"
                )
                return None

            try:
                packet = reader.next_packet()
            except EndOfStream:
                break
            except Exception as e:
                raise DecodeError(
                    f"failed to read packet: {e}",
                    file_path=str(path),
                    original_error=e,
                ) from e

            if packet.track_id != track.track_id:
                continue

            try:
                interleaved = decoder.decode(packet)
            except RecoverableDecodeError as e:
                skipped += 1
                consecutive_skips += 1
                self.logger.debug(f"Skipping bad packet in {path.name}: {e}")
                if (
                    self.max_consecutive_skips is not None
                    and consecutive_skips > self.max_consecutive_skips
                ):
                    raise DecodeError(
                        f"{consecutive_skips} consecutive packets failed to decode",
                        file_path=str(path),
                        original_error=e,
                    ) from e
                continue
            except Exception as e:
                raise DecodeError(
                    f"failed to decode packet: {e}",
                    file_path=str(path),
                    original_error=e,
                ) from e

            consecutive_skips = 0
            try:
                accumulator.append(interleaved)
            except ValueError as e:
                raise DecodeError(str(e), file_path=str(path), original_error=e) from e

        buffer = AudioBuffer(samples=accumulator.to_array(), sample_rate=sample_rate)
        elapsed = time.time() - start_time
        if skipped:
            self.logger.warning(f"Skipped {skipped} undecodable packets in {path}")
        self.logger.info(
            f"Decoded {len(buffer)} samples ({buffer.duration:.1f} seconds) "
            f"at {sample_rate} Hz in {elapsed:.3f}s: {path.name}"
        )
        return buffer

    def _select_track(self, reader: FormatReader, path: Path) -> Track:
        track = reader.default_track()
        if track is None:
            raise NoTrackError("no supported audio track found", file_path=str(path))
        if not track.sample_rate or track.sample_rate <= 0:
            raise MissingSampleRateError(
                f"track {track.track_id} has no sample rate", file_path=str(path)
            )
        return track
