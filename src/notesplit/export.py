"""Segment export: file naming, WAV rendering, and archive bundling."""

import io
import logging
import zipfile
from abc import ABC, abstractmethod
from pathlib import PurePath

from notesplit.types import ExportSegment, SampleBuffer, Segment
from notesplit.wav import encode_wav

logger = logging.getLogger(__name__)


def segment_file_name(
    segment_index: int,
    dominant_frequency: float,
    start_time: float,
    end_time: float,
) -> str:
    """File name like '3_440.00_1.250_1.750.wav'."""
    return (
        f"{segment_index}_{dominant_frequency:.2f}_"
        f"{start_time:.3f}_{end_time:.3f}.wav"
    )


def archive_name(base_name: str, algorithm: str, frame_size: int, hop_size: int) -> str:
    """Archive/directory name like 'take1_yinfft_2048_682'.

    The extension of ``base_name`` is dropped.
    """
    stem = PurePath(base_name).stem or base_name
    return f"{stem}_{algorithm}_{frame_size}_{hop_size}"


def build_export_segments(buffer: SampleBuffer, segments: list[Segment]) -> list[ExportSegment]:
    """Slice the buffer for each segment and name the resulting clip."""
    exports = []
    for seg in segments:
        exports.append(ExportSegment(
            segment_index=seg.index,
            dominant_frequency=seg.dominant_frequency,
            start_time=seg.start_time,
            end_time=seg.end_time,
            samples=buffer.samples[seg.start:seg.end],
            sample_rate=buffer.sample_rate,
            file_name=segment_file_name(
                seg.index, seg.dominant_frequency, seg.start_time, seg.end_time,
            ),
        ))
    return exports


class BundleWriter(ABC):
    """Packages named byte blobs into a single archive."""

    @abstractmethod
    def write(self, entries: list[tuple[str, bytes]], archive_name: str) -> bytes:
        """Return the archive bytes for ``entries`` of (path, data)."""


class ZipBundleWriter(BundleWriter):
    """In-memory ZIP; entries live under an ``archive_name/`` directory."""

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED):
        self.compression = compression

    def write(self, entries, archive_name):
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", self.compression) as zf:
            for path, data in entries:
                zf.writestr(f"{archive_name}/{path}", data)
        return buf.getvalue()


def export_segments(
    buffer: SampleBuffer,
    segments: list[Segment],
    writer: BundleWriter,
    name: str,
) -> bytes:
    """Encode every segment as WAV and bundle them with ``writer``."""
    exports = build_export_segments(buffer, segments)
    entries = [(e.file_name, encode_wav(e.samples, e.sample_rate)) for e in exports]
    logger.info(f"Bundling {len(entries)} segment(s) into {name}")
    return writer.write(entries, name)
