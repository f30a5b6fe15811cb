"""Slice a sample array into hop-spaced, zero-padded analysis frames."""

import numpy as np

from notesplit.types import Frame


def frame_count(length: int, hop_size: int) -> int:
    """Number of frames that fit a span of ``length`` samples."""
    if length <= 0:
        return 0
    return length // hop_size


class FrameSequence:
    """Lazy, restartable sequence of frames over ``samples[start:end]``.

    Frames start every ``hop_size`` samples. Each frame holds
    ``frame_size`` samples; anything past ``end`` is zero-filled, so a
    segment-bounded scan never reads into the next segment.
    """

    def __init__(
        self,
        samples: np.ndarray,
        frame_size: int,
        hop_size: int,
        start: int = 0,
        end: int | None = None,
    ):
        self.samples = samples
        self.frame_size = frame_size
        self.hop_size = hop_size
        self.start = start
        self.end = len(samples) if end is None else min(end, len(samples))

    def __len__(self) -> int:
        return frame_count(self.end - self.start, self.hop_size)

    def __iter__(self):
        for i in range(len(self)):
            frame_start = self.start + i * self.hop_size
            n = min(self.frame_size, self.end - frame_start)
            buf = np.zeros(self.frame_size, dtype=np.float64)
            buf[:n] = self.samples[frame_start:frame_start + n]
            yield Frame(start=frame_start, samples=buf)


def extract_frames(
    samples: np.ndarray,
    frame_size: int,
    hop_size: int,
    start: int = 0,
    end: int | None = None,
) -> FrameSequence:
    """Return the frames covering ``samples[start:end]``."""
    return FrameSequence(samples, frame_size, hop_size, start=start, end=end)
