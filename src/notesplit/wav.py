"""WAV I/O: 16-bit PCM encoding for export, reading for the CLI.

Both directions go through scipy.io.wavfile; encoding targets an in-memory
buffer so the pipeline itself never touches the filesystem.
"""

import io
from pathlib import Path

import numpy as np
import scipy.io.wavfile as wavfile

# Headroom applied before quantization
VOLUME_SCALE = 0.8


def read_wav(path: str | Path) -> tuple[np.ndarray, int]:
    """Read a WAV file and return (samples, sample_rate).

    - Normalizes uint8/int16/int32 to float64 in [-1, 1]
    - Passes through float WAVs as float64
    - Takes the first channel if stereo

    Raises:
        FileNotFoundError: if the file does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    sr, data = wavfile.read(str(path))

    if data.ndim > 1:
        data = data[:, 0]

    if data.dtype == np.uint8:
        # 8-bit PCM is unsigned, centred on 128
        samples = (data.astype(np.float64) - 128) / 128
    elif np.issubdtype(data.dtype, np.integer):
        info = np.iinfo(data.dtype)
        samples = data.astype(np.float64) / max(abs(info.min), abs(info.max))
    else:
        samples = data.astype(np.float64)

    return samples, sr


def quantize(samples: np.ndarray, volume: float = VOLUME_SCALE) -> np.ndarray:
    """Convert float samples to int16.

    NaN becomes 0. Clips to [-1, 1], scales by ``volume``, then maps
    negatives by 32768 and non-negatives by 32767, truncating toward zero.
    """
    finite = np.nan_to_num(np.asarray(samples, dtype=np.float64), nan=0.0)
    scaled = np.clip(finite, -1.0, 1.0) * volume
    ints = np.where(scaled < 0, scaled * 32768, scaled * 32767)
    return np.trunc(ints).astype(np.int16)


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """Encode mono float samples as a 44-byte-header 16-bit PCM WAV."""
    buf = io.BytesIO()
    wavfile.write(buf, sample_rate, quantize(samples))
    return buf.getvalue()
