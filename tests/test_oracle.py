"""Tests for detection backends and the oracle factory."""

import sys
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from notesplit.oracle import (
    AubioOracle,
    AutocorrOracle,
    AutocorrPitchDetector,
    OnsetDetector,
    RmsOnsetDetector,
    compute_rms,
    estimate_f0,
    get_oracle,
    scan_onsets,
)
from notesplit.types import Frame, SampleBuffer


def _make_sine(freq: float, n: int, sr: int = 44100, amp: float = 0.5) -> np.ndarray:
    t = np.arange(n) / sr
    return amp * np.sin(2 * np.pi * freq * t)


class _AtIndices(OnsetDetector):
    def __init__(self, indices):
        self.indices = set(indices)
        self.seen = []

    def process(self, frame):
        self.seen.append(frame.start)
        return frame.start in self.indices


# ===========================================================================
# autocorr backend
# ===========================================================================

class TestComputeRms:
    def test_empty(self):
        assert compute_rms(np.array([])) == 0.0

    def test_constant(self):
        assert compute_rms(np.full(100, 0.5)) == pytest.approx(0.5)


class TestEstimateF0:
    def test_sine_440(self):
        f0, strength = estimate_f0(_make_sine(440, 2048), 44100)
        assert abs(f0 - 440) < 5
        assert 0.3 <= strength <= 1.0

    def test_sine_220(self):
        f0, _ = estimate_f0(_make_sine(220, 2048), 44100)
        assert abs(f0 - 220) < 3

    def test_silence(self):
        assert estimate_f0(np.zeros(2048), 44100) == (0.0, 0.0)

    def test_empty(self):
        assert estimate_f0(np.array([]), 44100) == (0.0, 0.0)

    def test_frame_too_short_for_range(self):
        assert estimate_f0(_make_sine(440, 10), 44100) == (0.0, 0.0)


class TestRmsOnsetDetector:
    def test_silence_never_fires(self):
        det = RmsOnsetDetector()
        assert not any(det.process(Frame(i, np.zeros(512))) for i in range(5))

    def test_fires_on_attack_only(self):
        det = RmsOnsetDetector()
        tone = _make_sine(440, 512)
        assert det.process(Frame(0, np.zeros(512))) is False
        assert det.process(Frame(512, tone)) is True
        assert det.process(Frame(1024, tone)) is False

    def test_fires_on_loud_jump(self):
        det = RmsOnsetDetector(ratio=2.0)
        det.process(Frame(0, _make_sine(440, 512, amp=0.05)))
        assert det.process(Frame(512, _make_sine(440, 512, amp=0.5))) is True


class TestAutocorrPitchDetector:
    def test_reports_confidence(self):
        det = AutocorrPitchDetector(44100)
        f0 = det.process(Frame(0, _make_sine(440, 2048)))
        assert f0 > 0
        assert det.confidence() > 0.3

    def test_silence_zero_confidence(self):
        det = AutocorrPitchDetector(44100)
        assert det.process(Frame(0, np.zeros(2048))) == 0.0
        assert det.confidence() == 0.0

    def test_tolerance_sets_threshold(self):
        det = AutocorrPitchDetector(44100)
        det.set_tolerance(0.1)
        assert det.threshold == pytest.approx(0.9)
        det.set_tolerance(1.0)
        assert det.threshold == AutocorrPitchDetector.MIN_PERIODICITY


def test_autocorr_oracle_builds_detectors():
    oracle = AutocorrOracle()
    assert oracle.name == "autocorr"
    assert isinstance(oracle.init_onset_detector(1024, 341, 44100), RmsOnsetDetector)
    assert isinstance(oracle.init_pitch_detector(1024, 341, 44100), AutocorrPitchDetector)


# ===========================================================================
# aubio backend
# ===========================================================================

class TestAubioOracle:
    def test_feeds_hop_sized_float32_chunks(self):
        fake = MagicMock()
        fake.pitch.return_value.return_value = np.array([440.0], dtype=np.float32)
        fake.pitch.return_value.get_confidence.return_value = 0.9
        fake.onset.return_value.return_value = np.array([1.0], dtype=np.float32)
        with patch.dict(sys.modules, {"aubio": fake}):
            oracle = AubioOracle()
            onset = oracle.init_onset_detector(1024, 341, 44100)
            pitch = oracle.init_pitch_detector(1024, 341, 44100)

        fake.onset.assert_called_once_with("default", 1024, 341, 44100)
        fake.pitch.assert_called_once_with("yinfft", 1024, 341, 44100)
        fake.pitch.return_value.set_unit.assert_called_once_with("Hz")

        frame = Frame(0, np.ones(1024))
        assert onset.process(frame) is True
        assert pitch.process(frame) == pytest.approx(440.0)
        assert pitch.confidence() == pytest.approx(0.9)

        chunk = fake.pitch.return_value.call_args[0][0]
        assert chunk.dtype == np.float32
        assert len(chunk) == 341

    def test_set_tolerance_forwarded(self):
        fake = MagicMock()
        with patch.dict(sys.modules, {"aubio": fake}):
            pitch = AubioOracle().init_pitch_detector(1024, 341, 44100)
        pitch.set_tolerance(0.2)
        fake.pitch.return_value.set_tolerance.assert_called_once_with(0.2)

    def test_name_is_pitch_method(self):
        assert AubioOracle().name == "yinfft"
        assert AubioOracle(pitch_method="yin").name == "yin"


# ===========================================================================
# get_oracle
# ===========================================================================

def test_get_oracle_autocorr():
    assert isinstance(get_oracle("autocorr"), AutocorrOracle)


def test_get_oracle_unknown():
    with pytest.raises(ValueError, match="Unknown oracle"):
        get_oracle("nonexistent")


def test_get_oracle_auto_falls_back():
    with patch("notesplit.oracle._aubio_available", return_value=False):
        assert isinstance(get_oracle("auto"), AutocorrOracle)


def test_get_oracle_auto_uses_aubio():
    with patch("notesplit.oracle._aubio_available", return_value=True):
        assert isinstance(get_oracle("auto"), AubioOracle)


def test_get_oracle_aubio_missing():
    with patch("notesplit.oracle._aubio_available", return_value=False):
        with pytest.raises(ImportError, match="aubio"):
            get_oracle("aubio")


# ===========================================================================
# scan_onsets
# ===========================================================================

def test_scan_onsets_records_time_and_index():
    buf = SampleBuffer(np.zeros(8000), 8000)
    det = _AtIndices([0, 2000, 5000])
    onsets = scan_onsets(buf, det, 400, 100)
    assert [o.index for o in onsets] == [0, 2000, 5000]
    assert [o.time for o in onsets] == [0.0, 0.25, 0.625]
    assert det.seen == list(range(0, 8000, 100))


def test_scan_onsets_short_buffer():
    buf = SampleBuffer(np.zeros(50), 8000)
    assert scan_onsets(buf, _AtIndices([0]), 400, 100) == []
