"""Shared fixtures and test doubles for keytempo tests."""

from typing import Callable, List, Optional, Sequence

import numpy as np
import pytest

from keytempo.core.cancellation import CancellationToken
from keytempo.core.decode_stage import DecodeStage
from keytempo.core.decoder import EndOfStream, Packet, Track
from keytempo.core.models import AnalysisConfig, KeyEstimate, RawAnalysis
from keytempo.core.pipeline import AnalysisPipeline


# ---------------------------------------------------------------------------
# Fake decoder library
# ---------------------------------------------------------------------------


class FakeFormatReader:
    """Replays a scripted packet list, then raises EndOfStream.

    A packet payload that is an exception is raised by FakeDecoder.decode();
    an entry of the script that is an exception is raised by next_packet().
    """

    def __init__(self, track: Optional[Track], script: Sequence, on_next_packet=None):
        self._track = track
        self._script = list(script)
        self._on_next_packet = on_next_packet
        self.packets_read = 0
        self.closed = False

    def default_track(self) -> Optional[Track]:
        return self._track

    def next_packet(self) -> Packet:
        if self._on_next_packet is not None:
            self._on_next_packet(self.packets_read)
        if self.packets_read >= len(self._script):
            raise EndOfStream()
        item = self._script[self.packets_read]
        self.packets_read += 1
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


class FakeDecoder:
    def __init__(self):
        self.decoded = 0

    def decode(self, packet: Packet) -> np.ndarray:
        self.decoded += 1
        if isinstance(packet.payload, BaseException):
            raise packet.payload
        return np.asarray(packet.payload, dtype=np.float32)


class FakeDecoderLibrary:
    """DecoderLibrary test double with switchable failures."""

    name = "fake"

    def __init__(
        self,
        track: Optional[Track] = None,
        script: Sequence = (),
        probe_error: Optional[Exception] = None,
        decoder_error: Optional[Exception] = None,
        on_next_packet: Optional[Callable[[int], None]] = None,
    ):
        self.track = track
        self.script = script
        self.probe_error = probe_error
        self.decoder_error = decoder_error
        self.on_next_packet = on_next_packet
        self.hints: List[Optional[str]] = []
        self.readers: List[FakeFormatReader] = []
        self.decoder: Optional[FakeDecoder] = None

    def probe(self, stream, hint=None) -> FakeFormatReader:
        self.hints.append(hint)
        stream.read()
        if self.probe_error is not None:
            raise self.probe_error
        reader = FakeFormatReader(self.track, self.script, self.on_next_packet)
        self.readers.append(reader)
        return reader

    def make_decoder(self, track: Track) -> FakeDecoder:
        if self.decoder_error is not None:
            raise self.decoder_error
        self.decoder = FakeDecoder()
        return self.decoder


def mono_track(sample_rate: Optional[int] = 44100, channels: Optional[int] = 1, track_id: int = 1) -> Track:
    return Track(track_id=track_id, codec="pcm_f32le", sample_rate=sample_rate, channel_count=channels)


def packet(samples, track_id: int = 1) -> Packet:
    """Packet with float samples, or with an exception FakeDecoder will raise."""
    if isinstance(samples, BaseException):
        return Packet(track_id=track_id, payload=samples)
    return Packet(track_id=track_id, payload=np.asarray(samples, dtype=np.float32))


# ---------------------------------------------------------------------------
# Fake analysis engine
# ---------------------------------------------------------------------------

DEFAULT_RAW = RawAnalysis(
    bpm=128.0,
    bpm_confidence=0.8,
    key=KeyEstimate.minor(9),
    key_confidence=0.6,
)


class FakeEngine:
    """Records every invocation; returns a canned result or raises."""

    def __init__(self, result: Optional[RawAnalysis] = DEFAULT_RAW, error: Optional[Exception] = None, on_call=None):
        self._result = result
        self._error = error
        self._on_call = on_call
        self.call_count = 0
        self.calls: list = []
        self.checkpoint_values: list = []

    @property
    def name(self) -> str:
        return "fake"

    @property
    def version(self) -> str:
        return "0.0.1"

    def analyze_audio(self, samples, sample_rate, config, is_current=None):
        self.call_count += 1
        self.calls.append((np.array(samples, copy=True), sample_rate, config))
        if is_current is not None:
            self.checkpoint_values.append(is_current())
        if self._error is not None:
            raise self._error
        if self._on_call is not None:
            self._on_call()
        return self._result


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def audio_file(tmp_path):
    """An existing file whose bytes the fake library ignores."""
    path = tmp_path / "track.flac"
    path.write_bytes(b"not really audio")
    return path


@pytest.fixture
def token():
    return CancellationToken()


@pytest.fixture
def make_library():
    """Factory for FakeDecoderLibrary."""
    return FakeDecoderLibrary


@pytest.fixture
def make_track():
    return mono_track


@pytest.fixture
def make_packet():
    return packet


@pytest.fixture
def make_engine():
    """Factory for FakeEngine."""
    return FakeEngine


@pytest.fixture
def make_pipeline(token):
    """Build a pipeline around a fake library and engine."""

    def _make(library: FakeDecoderLibrary, engine: FakeEngine, max_consecutive_skips=None):
        stage = DecodeStage(library, max_consecutive_skips=max_consecutive_skips)
        return AnalysisPipeline(stage, engine, token=token, config=AnalysisConfig())

    return _make
