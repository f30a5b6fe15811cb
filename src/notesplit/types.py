"""Core data types for notesplit."""

from dataclasses import dataclass, field

import numpy as np


@dataclass
class SampleBuffer:
    """Decoded mono audio."""
    samples: np.ndarray     # float64, nominally in [-1, 1]
    sample_rate: int        # Hz

    def __post_init__(self):
        self.samples = np.asarray(self.samples, dtype=np.float64)

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def duration(self) -> float:
        """Length in seconds."""
        if self.sample_rate <= 0:
            return 0.0
        return len(self.samples) / self.sample_rate


@dataclass
class Frame:
    """A fixed-length analysis window, zero-padded past its bound."""
    start: int              # sample index of the first sample
    samples: np.ndarray


@dataclass
class OnsetEvent:
    """A detected (or synthetic) note start."""
    time: float             # seconds
    index: int              # sample index


@dataclass
class FrameAnalysis:
    """Pitch estimate for one frame."""
    time: float             # seconds
    frequency: float        # Hz, 0 = no pitch
    confidence: float       # [0, 1]
    segment_index: int


@dataclass
class Segment:
    """A span of samples between two consecutive onset events."""
    index: int              # position of the starting onset event
    start_time: float       # seconds
    end_time: float         # seconds
    start: int              # first sample index (inclusive)
    end: int                # last sample index (exclusive)
    dominant_frequency: float = 0.0

    @property
    def length(self) -> int:
        return self.end - self.start


@dataclass
class ExportSegment:
    """A segment rendered for export."""
    segment_index: int
    dominant_frequency: float
    start_time: float
    end_time: float
    samples: np.ndarray
    sample_rate: int
    file_name: str


@dataclass
class AnalysisOptions:
    """Optional knobs for ``analyze``."""
    save_segments: bool = False
    reference_pitch: float = 440.0
    base_name: str = "audio"
    segment_policy: str = "skip"


@dataclass
class AnalysisResult:
    """Output of the analysis pipeline.

    ``times``, ``frequencies``, ``notes``, ``confidences`` and
    ``segment_indices`` are parallel: one entry per analysed frame.
    """
    times: list[float] = field(default_factory=list)
    frequencies: list[float] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    confidences: list[float] = field(default_factory=list)
    segment_indices: list[int] = field(default_factory=list)
    onsets: list[float] = field(default_factory=list)
    segments: list[Segment] = field(default_factory=list)
    sample_rate: int = 0
    frame_size: int = 0
    hop_size: int = 0
    archive: bytes | None = None
    archive_name: str | None = None

    def to_dict(self) -> dict:
        """JSON-safe manifest of the analysis (archive bytes excluded)."""
        return {
            "sample_rate": self.sample_rate,
            "frame_size": self.frame_size,
            "hop_size": self.hop_size,
            "onsets": list(self.onsets),
            "segments": [
                {
                    "index": s.index,
                    "start_time": s.start_time,
                    "end_time": s.end_time,
                    "start": s.start,
                    "end": s.end,
                    "dominant_frequency": s.dominant_frequency,
                }
                for s in self.segments
            ],
            "frames": [
                {
                    "time": t,
                    "frequency": f,
                    "note": n,
                    "confidence": c,
                    "segment_index": i,
                }
                for t, f, n, c, i in zip(
                    self.times, self.frequencies, self.notes,
                    self.confidences, self.segment_indices,
                )
            ],
            "archive_name": self.archive_name,
        }
