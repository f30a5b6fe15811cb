"""Onset/pitch detection backends.

The pipeline only talks to the ``Oracle`` interface: one factory method per
detector, each detector consuming one frame at a time. Backends:

    "autocorr" -- numpy RMS-jump onsets + normalized autocorrelation pitch.
    "aubio"    -- aubio's onset and pitch objects (optional dependency).
    "auto"     -- aubio when importable, otherwise autocorr.
"""

import logging
from abc import ABC, abstractmethod

import numpy as np

from notesplit.frames import extract_frames
from notesplit.types import Frame, OnsetEvent, SampleBuffer

logger = logging.getLogger(__name__)


class OnsetDetector(ABC):
    """Per-frame onset decision."""

    @abstractmethod
    def process(self, frame: Frame) -> bool:
        """Return True if a note starts in this frame."""


class PitchDetector(ABC):
    """Per-frame fundamental frequency estimate."""

    @abstractmethod
    def process(self, frame: Frame) -> float:
        """Return the frequency in Hz, or 0 when no pitch is found."""

    def confidence(self) -> float:
        """Confidence of the last estimate, in [0, 1]."""
        return 1.0


class Oracle(ABC):
    """Factory for a matched onset/pitch detector pair."""

    name: str = "base"

    @abstractmethod
    def init_onset_detector(
        self, frame_size: int, hop_size: int, sample_rate: int,
    ) -> OnsetDetector:
        ...

    @abstractmethod
    def init_pitch_detector(
        self, frame_size: int, hop_size: int, sample_rate: int,
    ) -> PitchDetector:
        ...


# ---------------------------------------------------------------------------
# Built-in numpy backend
# ---------------------------------------------------------------------------

def compute_rms(samples: np.ndarray) -> float:
    """Compute RMS energy of the entire signal."""
    if len(samples) == 0:
        return 0.0
    return float(np.sqrt(np.mean(samples ** 2)))


def estimate_f0(
    samples: np.ndarray,
    sr: int,
    f0_min: float = 50.0,
    f0_max: float = 2000.0,
    threshold: float = 0.3,
) -> tuple[float, float]:
    """Estimate fundamental frequency using autocorrelation.

    Finds the first autocorrelation peak above ``threshold``, searching from
    the shortest lag (highest frequency) to avoid octave errors.

    Returns (f0_hz, peak_height); (0.0, 0.0) for silence, noise, or weak
    periodicity.
    """
    if len(samples) == 0:
        return 0.0, 0.0

    if compute_rms(samples) < 1e-6:
        return 0.0, 0.0

    # lag_min -> f0_max, lag_max -> f0_min
    lag_min = max(1, int(sr / f0_max))
    lag_max = min(int(sr / f0_min), len(samples) - 1)
    if lag_min >= lag_max:
        return 0.0, 0.0

    x = samples - np.mean(samples)
    autocorr_0 = np.sum(x ** 2)
    if autocorr_0 < 1e-12:
        return 0.0, 0.0

    full = np.correlate(x, x, mode="full")[len(x) - 1:]
    autocorr = full[lag_min:lag_max + 1] / autocorr_0

    # A peak is an interior local maximum. The decaying slope at lag_min is
    # not a peak: low notes would otherwise report f0_max.
    for i in range(1, len(autocorr) - 1):
        if (autocorr[i] >= threshold
                and autocorr[i] >= autocorr[i - 1]
                and autocorr[i] >= autocorr[i + 1]):
            return float(sr / (lag_min + i)), float(min(1.0, autocorr[i]))

    return 0.0, 0.0


class RmsOnsetDetector(OnsetDetector):
    """Flags frames whose RMS jumps by ``ratio`` over the previous frame."""

    def __init__(self, silence_rms: float = 1e-3, ratio: float = 2.0):
        self.silence_rms = silence_rms
        self.ratio = ratio
        self._prev_rms = 0.0

    def process(self, frame: Frame) -> bool:
        rms = compute_rms(frame.samples)
        prev = self._prev_rms
        self._prev_rms = rms
        if rms < self.silence_rms:
            return False
        return prev < self.silence_rms or rms >= prev * self.ratio


class AutocorrPitchDetector(PitchDetector):
    """Autocorrelation F0; confidence is the normalized peak height."""

    # Peaks below this are never reported, whatever the tolerance.
    MIN_PERIODICITY = 0.3

    def __init__(self, sample_rate: int, f0_min: float = 50.0, f0_max: float = 2000.0):
        self.sample_rate = sample_rate
        self.f0_min = f0_min
        self.f0_max = f0_max
        self.threshold = self.MIN_PERIODICITY
        self._confidence = 0.0

    def set_tolerance(self, tolerance: float) -> None:
        self.threshold = max(self.MIN_PERIODICITY, 1.0 - tolerance)

    def process(self, frame: Frame) -> float:
        f0, strength = estimate_f0(
            frame.samples, self.sample_rate,
            f0_min=self.f0_min, f0_max=self.f0_max, threshold=self.threshold,
        )
        self._confidence = strength
        return f0

    def confidence(self) -> float:
        return self._confidence


class AutocorrOracle(Oracle):
    """Dependency-free backend built on numpy."""

    name = "autocorr"

    def __init__(self, f0_min: float = 50.0, f0_max: float = 2000.0, **kwargs):
        self.f0_min = f0_min
        self.f0_max = f0_max

    def init_onset_detector(self, frame_size, hop_size, sample_rate):
        return RmsOnsetDetector()

    def init_pitch_detector(self, frame_size, hop_size, sample_rate):
        return AutocorrPitchDetector(sample_rate, f0_min=self.f0_min, f0_max=self.f0_max)


# ---------------------------------------------------------------------------
# aubio backend
# ---------------------------------------------------------------------------

def _hop_chunk(frame: Frame, hop_size: int) -> np.ndarray:
    # aubio keeps its own frame_size window and wants only the newest hop.
    return frame.samples[:hop_size].astype(np.float32)


class AubioOnsetDetector(OnsetDetector):

    def __init__(self, method: str, frame_size: int, hop_size: int, sample_rate: int):
        import aubio
        self.hop_size = hop_size
        self._onset = aubio.onset(method, frame_size, hop_size, sample_rate)

    def process(self, frame: Frame) -> bool:
        return bool(self._onset(_hop_chunk(frame, self.hop_size))[0])


class AubioPitchDetector(PitchDetector):

    def __init__(self, method: str, frame_size: int, hop_size: int, sample_rate: int):
        import aubio
        self.hop_size = hop_size
        self._pitch = aubio.pitch(method, frame_size, hop_size, sample_rate)
        self._pitch.set_unit("Hz")

    def set_tolerance(self, tolerance: float) -> None:
        self._pitch.set_tolerance(tolerance)

    def process(self, frame: Frame) -> float:
        return float(self._pitch(_hop_chunk(frame, self.hop_size))[0])

    def confidence(self) -> float:
        return float(min(1.0, max(0.0, self._pitch.get_confidence())))


class AubioOracle(Oracle):
    """aubio onset ("default") and pitch ("yinfft") detectors."""

    def __init__(self, pitch_method: str = "yinfft", onset_method: str = "default", **kwargs):
        self.pitch_method = pitch_method
        self.onset_method = onset_method

    @property
    def name(self) -> str:
        return self.pitch_method

    def init_onset_detector(self, frame_size, hop_size, sample_rate):
        return AubioOnsetDetector(self.onset_method, frame_size, hop_size, sample_rate)

    def init_pitch_detector(self, frame_size, hop_size, sample_rate):
        return AubioPitchDetector(self.pitch_method, frame_size, hop_size, sample_rate)


def _aubio_available() -> bool:
    """Check if the aubio package can be imported."""
    try:
        import aubio  # noqa: F401
    except ImportError:
        return False
    return True


_ORACLES = {
    "autocorr": AutocorrOracle,
    "aubio": AubioOracle,
}


def get_oracle(name: str = "auto", **kwargs) -> Oracle:
    """Get a detection backend by name ("autocorr", "aubio" or "auto")."""
    if name == "auto":
        if _aubio_available():
            logger.info("Auto-detected aubio, using aubio detectors")
            return AubioOracle(**kwargs)
        logger.info("aubio not available, falling back to autocorrelation detectors")
        return AutocorrOracle(**kwargs)

    if name not in _ORACLES:
        raise ValueError(
            f"Unknown oracle: {name!r}. Available: {list(_ORACLES.keys()) + ['auto']}"
        )
    if name == "aubio" and not _aubio_available():
        raise ImportError("aubio oracle requires the 'aubio' package")

    return _ORACLES[name](**kwargs)


def scan_onsets(
    buffer: SampleBuffer,
    detector: OnsetDetector,
    frame_size: int,
    hop_size: int,
) -> list[OnsetEvent]:
    """Run the onset detector over every frame of the buffer."""
    onsets = []
    for frame in extract_frames(buffer.samples, frame_size, hop_size):
        if detector.process(frame):
            onsets.append(OnsetEvent(time=frame.start / buffer.sample_rate, index=frame.start))
    return onsets
