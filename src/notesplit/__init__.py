"""notesplit: split melodic recordings into pitch-labelled note segments."""

from notesplit.pipeline import analyze
from notesplit.types import AnalysisOptions, AnalysisResult, SampleBuffer

__all__ = ["analyze", "AnalysisOptions", "AnalysisResult", "SampleBuffer"]
