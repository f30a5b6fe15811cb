"""Turn an onset stream into note segments covering the recording."""

import logging
from abc import ABC, abstractmethod

from notesplit.types import OnsetEvent, Segment

logger = logging.getLogger(__name__)


def _boundaries(onsets: list[OnsetEvent], length: int, sample_rate: int) -> list[OnsetEvent]:
    """Onsets plus a start marker (if none) and the end-of-buffer marker."""
    events: list[OnsetEvent] = []
    seen: set[int] = set()
    for onset in sorted(onsets, key=lambda e: e.index):
        if onset.index in seen:
            continue
        seen.add(onset.index)
        events.append(onset)

    if not events:
        events.append(OnsetEvent(time=0.0, index=0))
    events.append(OnsetEvent(time=length / sample_rate, index=length))
    return events


def build_segments(
    onsets: list[OnsetEvent],
    length: int,
    sample_rate: int,
) -> list[Segment]:
    """Candidate segments between consecutive onsets.

    The result is gapless and ends at ``length``. Each segment's ``index`` is
    the position of its starting event, so later filtering leaves gaps in the
    index sequence rather than renumbering.
    """
    events = _boundaries(onsets, length, sample_rate)
    segments = []
    for i in range(len(events) - 1):
        start, end = events[i], events[i + 1]
        if end.index <= start.index:
            continue
        segments.append(Segment(
            index=i,
            start_time=start.time,
            end_time=end.time,
            start=start.index,
            end=end.index,
        ))
    return segments


class SegmentPolicy(ABC):
    """Decides what happens to candidate segments shorter than ``min_length``."""

    name: str = "base"

    @abstractmethod
    def apply(self, segments: list[Segment], min_length: int) -> list[Segment]:
        ...


class SkipShortSegments(SegmentPolicy):
    """Drop short segments; their span is not given to any neighbor."""

    name = "skip"

    def apply(self, segments, min_length):
        kept = []
        for seg in segments:
            if seg.length < min_length:
                logger.debug(
                    f"Skipping short segment {seg.index}: "
                    f"{seg.start_time:.2f}s - {seg.end_time:.2f}s ({seg.length} samples)"
                )
                continue
            kept.append(seg)
        return kept


class MergeShortSegments(SegmentPolicy):
    """Fold short segments into the following one.

    A short span at the very end extends the previous survivor instead.
    """

    name = "merge"

    def apply(self, segments, min_length):
        kept: list[Segment] = []
        carry: Segment | None = None
        for seg in segments:
            if carry is not None:
                seg = Segment(
                    index=seg.index,
                    start_time=carry.start_time,
                    end_time=seg.end_time,
                    start=carry.start,
                    end=seg.end,
                )
                carry = None
            if seg.length < min_length:
                carry = seg
                continue
            kept.append(seg)

        if carry is not None:
            if kept:
                last = kept[-1]
                last.end = carry.end
                last.end_time = carry.end_time
            else:
                logger.debug(f"Dropping short recording ({carry.length} samples)")
        return kept


_POLICIES = {
    "skip": SkipShortSegments,
    "merge": MergeShortSegments,
}


def get_policy(name: str) -> SegmentPolicy:
    """Get a short-segment policy by name ("skip" or "merge")."""
    if name not in _POLICIES:
        raise ValueError(
            f"Unknown segment policy: {name!r}. Available: {list(_POLICIES.keys())}"
        )
    return _POLICIES[name]()


def segment(
    onsets: list[OnsetEvent],
    length: int,
    sample_rate: int,
    min_length: int,
    policy: SegmentPolicy | str = "skip",
) -> list[Segment]:
    """Build candidate segments and apply the short-segment policy."""
    if isinstance(policy, str):
        policy = get_policy(policy)
    candidates = build_segments(onsets, length, sample_rate)
    kept = policy.apply(candidates, min_length)
    logger.info(f"Segments: {len(kept)} of {len(candidates)} kept ({policy.name} policy)")
    return kept
