"""Per-segment pitch aggregation and contour smoothing."""

import logging

import numpy as np

from notesplit.frames import extract_frames
from notesplit.oracle import PitchDetector
from notesplit.types import FrameAnalysis, SampleBuffer, Segment

logger = logging.getLogger(__name__)


def positive_median(values) -> float:
    """Median of the strictly positive values, 0.0 if there are none.

    Even counts take the element at ``n // 2`` of the sorted values.
    """
    positive = sorted(v for v in values if v > 0)
    if not positive:
        return 0.0
    return float(positive[len(positive) // 2])


def median_filter(values: list[float], size: int) -> list[float]:
    """Median-smooth a frequency contour, ignoring unvoiced (<= 0) frames.

    The window shrinks at the edges instead of padding. A position whose
    window holds no voiced frame keeps its original value.
    """
    values = list(values)
    if size <= 1:
        return values

    half = size // 2
    n = len(values)
    smoothed = []
    for i in range(n):
        lo, hi = max(0, i - half), min(n, i + half + 1)
        window = [v for v in values[lo:hi] if v > 0]
        if not window:
            smoothed.append(values[i])
        else:
            window.sort()
            smoothed.append(window[len(window) // 2])
    return smoothed


def aggregate_segment(
    buffer: SampleBuffer,
    segment: Segment,
    detector: PitchDetector,
    frame_size: int,
    hop_size: int,
    confidence_threshold: float = 0.0,
) -> list[FrameAnalysis]:
    """Run the pitch detector over one segment.

    Sets ``segment.dominant_frequency`` and returns one FrameAnalysis per
    frame. Non-finite estimates and those below ``confidence_threshold``
    count as unvoiced.
    """
    frames = []
    for frame in extract_frames(buffer.samples, frame_size, hop_size,
                                start=segment.start, end=segment.end):
        frequency = float(detector.process(frame))
        confidence = float(detector.confidence())
        if not np.isfinite(frequency) or frequency <= 0 or confidence < confidence_threshold:
            frequency = 0.0
        frames.append(FrameAnalysis(
            time=frame.start / buffer.sample_rate,
            frequency=frequency,
            confidence=confidence,
            segment_index=segment.index,
        ))

    segment.dominant_frequency = positive_median(f.frequency for f in frames)
    logger.debug(
        f"Segment {segment.index}: {segment.start_time:.2f}s - {segment.end_time:.2f}s, "
        f"{len(frames)} frames, dominant {segment.dominant_frequency:.2f} Hz"
    )
    return frames


def aggregate_segments(
    buffer: SampleBuffer,
    segments: list[Segment],
    detector: PitchDetector,
    frame_size: int,
    hop_size: int,
    confidence_threshold: float = 0.0,
) -> list[FrameAnalysis]:
    """Aggregate every segment in order and log summary statistics."""
    per_segment: list[list[FrameAnalysis]] = [[] for _ in segments]
    for pos, seg in enumerate(segments):
        per_segment[pos] = aggregate_segment(
            buffer, seg, detector, frame_size, hop_size, confidence_threshold,
        )
    frames = [f for seg_frames in per_segment for f in seg_frames]

    if frames:
        voiced = sum(1 for f in frames if f.frequency > 0)
        confidences = np.array([f.confidence for f in frames])
        logger.info(
            f"Pitch: {voiced}/{len(frames)} voiced frames "
            f"(threshold {confidence_threshold}); confidence "
            f"min={confidences.min():.2f} max={confidences.max():.2f} "
            f"mean={confidences.mean():.2f}"
        )
    return frames
