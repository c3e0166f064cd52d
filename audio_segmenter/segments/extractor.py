"""Slice sample ranges out of an original (un-resampled) buffer.

Out-of-range intervals are clamped rather than rejected, so a caller
always gets one slice per interval, possibly empty.
"""

import math

import numpy as np

from audio_segmenter.audio.vad.interface import TimeInterval
from audio_segmenter.audio.wav_codec import SampleBuffer
from audio_segmenter.utils.errors import InputError


def sample_index(seconds: float, buffer: SampleBuffer) -> int:
    """Convert a time offset to an interleaved sample index.

    The index is ``round(seconds * sample_rate * num_channels)``, aligned
    down to the start of its frame so channel order is preserved. Python's
    ``round`` rounds halves to even, so ``2.5`` becomes 2 and ``3.5``
    becomes 4; this is not truncation toward zero.

    Offsets before the buffer give 0 and offsets past it (including
    ``inf``) give the buffer length.

    Raises:
        InputError: If ``seconds`` is NaN.
    """
    if math.isnan(seconds):
        raise InputError("Time offset must be a number, got NaN", field="segments")

    total = len(buffer.samples)
    position = seconds * buffer.sample_rate * buffer.num_channels
    if position <= 0:
        return 0
    if position >= total:
        return total

    index = round(position)
    return index - index % buffer.num_channels


def extract_segment(buffer: SampleBuffer, interval: TimeInterval) -> np.ndarray:
    """Return the interleaved samples covered by ``interval``.

    Negative starts clamp to 0 and ends past the buffer clamp to its
    length. An interval that ends at or before its start yields an empty
    array. Never raises for out-of-range bounds.

    Args:
        buffer: The decoded source buffer, in its native format.
        interval: Time bounds in seconds.

    Returns:
        A view into ``buffer.samples``.
    """
    start = sample_index(interval.start_seconds, buffer)
    end = sample_index(interval.end_seconds, buffer)
    if end <= start:
        return buffer.samples[0:0]
    return buffer.samples[start:end]
