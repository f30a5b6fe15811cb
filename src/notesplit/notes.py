"""Frequency to note-name mapping in 12-tone equal temperament."""

import math

NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

# A is 9 semitones above C in the same octave
_A_OFFSET = 9


def frequency_to_note(frequency: float | None, reference: float = 440.0) -> str:
    """Map a frequency to a name like 'A4', relative to A4 = ``reference``.

    Returns '' for zero, negative, infinite or missing frequencies.
    """
    if not frequency or frequency <= 0 or not math.isfinite(frequency):
        return ""

    # round half up
    semitones = math.floor(12 * math.log2(frequency / reference) + 0.5)
    note_index = (semitones + _A_OFFSET) % 12
    octave = (semitones + _A_OFFSET) // 12 + 4
    return f"{NOTE_NAMES[note_index]}{octave}"


def note_names(frequencies: list[float], reference: float = 440.0) -> list[str]:
    """Map each frequency to a note name."""
    return [frequency_to_note(f, reference) for f in frequencies]
