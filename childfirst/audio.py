"""
ChildFirst Audio Utilities

Conversion of buffered microphone audio into the PCM the speech
service expects.

Library Stack:
    - numpy: Array operations
    - scipy.signal.resample_poly: Deterministic polyphase resampling

INVARIANTS:
    - All operations are deterministic
    - Resampling runs once per segment
    - Output is mono, 16 kHz, float32 in [-1, 1] (or PCM-16 bytes)
    - No amplitude normalization / AGC
"""

from math import gcd

import numpy as np
from scipy.signal import resample_poly


# =============================================================================
# Constants (FROZEN)
# =============================================================================

CANONICAL_SAMPLE_RATE = 16000
SAMPLE_WIDTH = 2  # bytes per PCM-16 sample
EPS = 1e-10


# =============================================================================
# Segment preparation
# =============================================================================


def to_mono(samples: np.ndarray) -> np.ndarray:
    """Average the channels of a (frames, channels) block into float32 mono."""
    block = np.asarray(samples, dtype=np.float32)
    if block.ndim > 1:
        block = block.mean(axis=1, dtype=np.float32)
    return block


def resample(samples: np.ndarray, rate: int, target: int = CANONICAL_SAMPLE_RATE) -> np.ndarray:
    """
    Polyphase resample of a whole segment.

    Call once per complete segment; resampling capture blocks one at a
    time leaves a seam at every block boundary.
    """
    rate, target = int(rate), int(target)
    if rate == target:
        return samples.astype(np.float32, copy=False)
    factor = gcd(rate, target)
    return resample_poly(samples, target // factor, rate // factor).astype(np.float32)


def prepare_segment(samples: np.ndarray, rate: int) -> np.ndarray:
    """Mono 16 kHz float32 audio for one recognition request."""
    return resample(to_mono(samples), rate)


def to_pcm16_bytes(samples: np.ndarray) -> bytes:
    """Hard-clip to [-1, 1] and pack as little-endian PCM-16."""
    clipped = np.clip(samples, -1.0, 1.0)
    return (clipped * 32767).astype("<i2").tobytes()


# =============================================================================
# Metrics
# =============================================================================


def compute_rms(samples: np.ndarray) -> float:
    """Compute RMS of entire signal (0.0 for an empty array)."""
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(samples.astype(np.float64) ** 2) + EPS))
