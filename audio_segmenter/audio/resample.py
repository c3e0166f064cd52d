"""Frequency-domain resampler used to bring audio to the detector's rate.

The signal is transformed with an FFT, the spectrum is truncated (or
zero-padded) to the target length, and the inverse FFT's real part is
truncated to integers. There is no anti-aliasing filter or window, so
content above the new Nyquist frequency folds back. That is acceptable
for speech detection at 16 kHz but not for general-purpose resampling.
"""

from collections.abc import Sequence

import numpy as np


def output_length(input_length: int, input_rate: int, output_rate: int) -> int:
    """Number of samples produced for ``input_length`` samples."""
    return (input_length * output_rate) // input_rate


def resample(
    samples: Sequence[float] | np.ndarray, input_rate: int, output_rate: int
) -> np.ndarray:
    """Resample a mono signal from ``input_rate`` to ``output_rate``.

    Args:
        samples: Mono samples (integer-valued floats or ints).
        input_rate: Native sample rate in Hz.
        output_rate: Target sample rate in Hz.

    Returns:
        int64 array of length ``floor(len(samples) * output_rate / input_rate)``.
        Empty when that length is zero.

    Raises:
        ValueError: If either rate is not positive.
    """
    if input_rate <= 0 or output_rate <= 0:
        raise ValueError(
            f"Sample rates must be positive, got {input_rate} -> {output_rate}"
        )

    signal = np.asarray(samples, dtype=np.float64)
    target = output_length(len(signal), input_rate, output_rate)
    if target == 0:
        return np.zeros(0, dtype=np.int64)

    spectrum = np.fft.fft(signal)
    if target <= len(spectrum):
        spectrum = spectrum[:target]
    else:
        spectrum = np.concatenate(
            [spectrum, np.zeros(target - len(spectrum), dtype=spectrum.dtype)]
        )

    restored = np.fft.ifft(spectrum).real
    return np.trunc(restored).astype(np.int64)
