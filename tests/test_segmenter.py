"""Tests for onset-to-segment conversion and short-segment policies."""

import pytest

from notesplit.segmenter import (
    MergeShortSegments,
    SkipShortSegments,
    build_segments,
    get_policy,
    segment,
)
from notesplit.types import OnsetEvent

SR = 8000


def _onsets(*indices):
    return [OnsetEvent(time=i / SR, index=i) for i in indices]


def _spans(segments):
    return [(s.index, s.start, s.end) for s in segments]


class TestBuildSegments:
    def test_no_onsets_covers_whole_buffer(self):
        segs = build_segments([], 8000, SR)
        assert _spans(segs) == [(0, 0, 8000)]
        assert segs[0].start_time == 0.0
        assert segs[0].end_time == 1.0

    def test_onsets_split_buffer(self):
        segs = build_segments(_onsets(0, 2000, 5000), 8000, SR)
        assert _spans(segs) == [(0, 0, 2000), (1, 2000, 5000), (2, 5000, 8000)]

    def test_first_onset_not_at_zero(self):
        """Audio before the first onset is not part of any segment."""
        segs = build_segments(_onsets(1000, 4000), 8000, SR)
        assert _spans(segs) == [(0, 1000, 4000), (1, 4000, 8000)]

    def test_gapless_and_ends_at_length(self):
        segs = build_segments(_onsets(0, 123, 3000, 3001, 7999), 8000, SR)
        for a, b in zip(segs, segs[1:]):
            assert a.end == b.start
        assert segs[-1].end == 8000
        assert all(s.start < s.end for s in segs)

    def test_duplicate_indices_keep_first(self):
        onsets = [OnsetEvent(0.25, 2000), OnsetEvent(99.0, 2000), OnsetEvent(0.5, 4000)]
        segs = build_segments(onsets, 8000, SR)
        assert _spans(segs) == [(0, 2000, 4000), (1, 4000, 8000)]
        assert segs[0].start_time == 0.25

    def test_empty_buffer(self):
        assert build_segments([], 0, SR) == []


class TestSkipShortSegments:
    def test_short_segment_dropped_index_gap_kept(self):
        candidates = build_segments(_onsets(0, 2000, 2100, 5000), 8000, SR)
        kept = SkipShortSegments().apply(candidates, 400)
        assert _spans(kept) == [(0, 0, 2000), (2, 2100, 5000), (3, 5000, 8000)]

    def test_short_span_not_redistributed(self):
        candidates = build_segments(_onsets(0, 2000, 2100), 8000, SR)
        kept = SkipShortSegments().apply(candidates, 400)
        assert kept[0].end == 2000
        assert kept[1].start == 2100

    def test_exact_min_length_kept(self):
        candidates = build_segments([], 400, SR)
        assert len(SkipShortSegments().apply(candidates, 400)) == 1

    def test_monotonic(self):
        candidates = build_segments(_onsets(0, 10, 500, 520, 3000, 7900), 8000, SR)
        kept = SkipShortSegments().apply(candidates, 100)
        bounds = [b for s in kept for b in (s.start, s.end)]
        assert bounds == sorted(bounds)


class TestMergeShortSegments:
    def test_short_segment_merges_into_next(self):
        candidates = build_segments(_onsets(0, 2000, 2100, 5000), 8000, SR)
        kept = MergeShortSegments().apply(candidates, 400)
        assert _spans(kept) == [(0, 0, 2000), (2, 2000, 5000), (3, 5000, 8000)]
        assert kept[1].start_time == 0.25

    def test_consecutive_short_segments_accumulate(self):
        candidates = build_segments(_onsets(0, 100, 200, 300), 8000, SR)
        kept = MergeShortSegments().apply(candidates, 400)
        assert _spans(kept) == [(3, 0, 8000)]

    def test_trailing_short_extends_previous(self):
        candidates = build_segments(_onsets(0, 7900), 8000, SR)
        kept = MergeShortSegments().apply(candidates, 400)
        assert _spans(kept) == [(0, 0, 8000)]
        assert kept[0].end_time == 1.0

    def test_stays_gapless(self):
        candidates = build_segments(_onsets(0, 50, 3000, 3020, 6000, 7990), 8000, SR)
        kept = MergeShortSegments().apply(candidates, 400)
        for a, b in zip(kept, kept[1:]):
            assert a.end == b.start
        assert kept[0].start == 0
        assert kept[-1].end == 8000

    def test_everything_short(self):
        candidates = build_segments([], 100, SR)
        assert MergeShortSegments().apply(candidates, 400) == []


class TestSegment:
    def test_zero_onsets_long_buffer(self):
        segs = segment([], 8000, SR, min_length=400)
        assert _spans(segs) == [(0, 0, 8000)]

    def test_zero_onsets_short_buffer(self):
        assert segment([], 300, SR, min_length=400) == []

    def test_policy_by_name(self):
        segs = segment(_onsets(0, 2000, 2100), 8000, SR, min_length=400, policy="merge")
        assert _spans(segs) == [(0, 0, 2000), (2, 2000, 8000)]

    def test_policy_instance(self):
        segs = segment(_onsets(0, 2000, 2100), 8000, SR, min_length=400,
                       policy=SkipShortSegments())
        assert _spans(segs) == [(0, 0, 2000), (2, 2100, 8000)]


def test_get_policy():
    assert isinstance(get_policy("skip"), SkipShortSegments)
    assert isinstance(get_policy("merge"), MergeShortSegments)


def test_get_policy_unknown():
    with pytest.raises(ValueError, match="Unknown segment policy"):
        get_policy("nonexistent")
