"""Collapse interleaved multi-channel PCM to mono."""

import numpy as np

from audio_segmenter.audio.wav_codec import SampleBuffer


def to_mono(buffer: SampleBuffer) -> SampleBuffer:
    """Average each frame's channels into a single mono sample.

    Uses integer division truncated toward zero, so a stereo frame
    ``(-3, 0)`` becomes ``-1`` rather than ``-2``. This is a plain mean,
    not a perceptual downmix.

    Args:
        buffer: Interleaved integer samples with any channel count.

    Returns:
        A new single-channel buffer with the same rate and bit depth.
    """
    channels = buffer.num_channels
    if channels == 1:
        mono = buffer.samples.copy()
    else:
        totals = buffer.samples.reshape(-1, channels).sum(axis=1)
        mono = np.sign(totals) * (np.abs(totals) // channels)

    return SampleBuffer(
        samples=mono,
        sample_rate=buffer.sample_rate,
        num_channels=1,
        bit_depth=buffer.bit_depth,
    )
