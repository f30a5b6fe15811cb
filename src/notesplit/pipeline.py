"""Analysis pipeline: onsets -> segments -> pitch track -> notes (-> export)."""

import logging

from notesplit.errors import ExportFailure, InvalidConfiguration, OracleInitializationFailure
from notesplit.export import ZipBundleWriter, archive_name, export_segments
from notesplit.frames import frame_count
from notesplit.notes import note_names
from notesplit.oracle import Oracle, get_oracle, scan_onsets
from notesplit.pitch import aggregate_segments, median_filter
from notesplit.segmenter import segment
from notesplit.types import AnalysisOptions, AnalysisResult, SampleBuffer

logger = logging.getLogger(__name__)


def _validate(
    buffer: SampleBuffer,
    frame_size: int,
    hop_size: int,
    confidence_threshold: float,
    reference_pitch: float,
) -> None:
    if frame_size <= 0:
        raise InvalidConfiguration(f"frame_size must be positive, got {frame_size}")
    if hop_size <= 0:
        raise InvalidConfiguration(f"hop_size must be positive, got {hop_size}")
    if buffer.sample_rate <= 0:
        raise InvalidConfiguration(f"sample_rate must be positive, got {buffer.sample_rate}")
    if not 0.0 <= confidence_threshold <= 1.0:
        raise InvalidConfiguration(
            f"confidence_threshold must be in [0, 1], got {confidence_threshold}"
        )
    if reference_pitch <= 0:
        raise InvalidConfiguration(f"reference_pitch must be positive, got {reference_pitch}")


def _init_detectors(oracle: Oracle, frame_size: int, hop_size: int, sample_rate: int):
    try:
        onset_detector = oracle.init_onset_detector(frame_size, hop_size, sample_rate)
        pitch_detector = oracle.init_pitch_detector(frame_size, hop_size, sample_rate)
    except Exception as e:
        raise OracleInitializationFailure(
            f"Could not initialize {oracle.name!r} detectors: {e}"
        ) from e
    return onset_detector, pitch_detector


def analyze(
    buffer: SampleBuffer,
    frame_size: int,
    hop_size: int | None = None,
    confidence_threshold: float = 0.0,
    median_filter_size: int = 1,
    options: AnalysisOptions | None = None,
    oracle: Oracle | None = None,
    bundle_writer=None,
) -> AnalysisResult:
    """Segment a recording at its onsets and label every frame with a note.

    Args:
        buffer: Decoded mono samples.
        frame_size: Analysis window in samples; also the shortest segment kept.
        hop_size: Stride between frames (default: frame_size // 3).
        confidence_threshold: Pitch estimates below this count as unvoiced.
        median_filter_size: Contour smoothing window (<= 1 disables).
        options: Export and note-naming options.
        oracle: Detection backend (default: get_oracle("auto")).
        bundle_writer: Archive writer for exports (default: ZipBundleWriter).

    Returns:
        AnalysisResult; ``archive`` holds the bundle when
        ``options.save_segments`` is set.

    Raises:
        InvalidConfiguration: before any frame is processed.
        OracleInitializationFailure: if the detectors cannot be created.
        ExportFailure: if bundling fails; the analysis is on ``.result``.
    """
    options = options or AnalysisOptions()
    if hop_size is None:
        hop_size = frame_size // 3
    _validate(buffer, frame_size, hop_size, confidence_threshold, options.reference_pitch)

    if oracle is None:
        oracle = get_oracle("auto")
    onset_detector, pitch_detector = _init_detectors(
        oracle, frame_size, hop_size, buffer.sample_rate,
    )
    if hasattr(pitch_detector, "set_tolerance"):
        pitch_detector.set_tolerance(1.0 - confidence_threshold)

    logger.info(
        f"Analyzing {buffer.duration:.2f}s at {buffer.sample_rate} Hz "
        f"({frame_count(len(buffer), hop_size)} frames, frame={frame_size}, hop={hop_size})"
    )

    onsets = scan_onsets(buffer, onset_detector, frame_size, hop_size)
    logger.info(f"Detected {len(onsets)} onset(s)")

    segments = segment(
        onsets, len(buffer), buffer.sample_rate,
        min_length=frame_size, policy=options.segment_policy,
    )
    frames = aggregate_segments(
        buffer, segments, pitch_detector, frame_size, hop_size, confidence_threshold,
    )

    frequencies = median_filter([f.frequency for f in frames], median_filter_size)
    result = AnalysisResult(
        times=[f.time for f in frames],
        frequencies=frequencies,
        notes=note_names(frequencies, options.reference_pitch),
        confidences=[f.confidence for f in frames],
        segment_indices=[f.segment_index for f in frames],
        onsets=[o.time for o in onsets],
        segments=segments,
        sample_rate=buffer.sample_rate,
        frame_size=frame_size,
        hop_size=hop_size,
    )

    if options.save_segments:
        writer = bundle_writer or ZipBundleWriter()
        name = archive_name(options.base_name, oracle.name, frame_size, hop_size)
        try:
            result.archive = export_segments(buffer, segments, writer, name)
        except Exception as e:
            raise ExportFailure(f"Failed to write {name}: {e}", result=result) from e
        result.archive_name = name

    return result
