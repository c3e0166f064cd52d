"""In-memory PCM WAV codec and the SampleBuffer data model.

Decodes WAV bytes of any channel count, sample rate and 8/16/24/32-bit
linear PCM into an interleaved integer buffer, and encodes such a buffer
back into a standalone WAV file. No file paths are involved; scratch
storage is an in-memory target scoped to each call.
"""

from __future__ import annotations

import io
import wave
from dataclasses import dataclass

import numpy as np

from audio_segmenter.utils.errors import DecodeError, EncodeError, FormatError, ResourceError

SUPPORTED_BIT_DEPTHS = (8, 16, 24, 32)

# 8-bit WAV is stored unsigned around this midpoint
_UINT8_OFFSET = 128


@dataclass
class SampleBuffer:
    """Interleaved integer PCM samples plus their format.

    Samples are channel-major per frame: ``[L0, R0, L1, R1, ...]``.
    """

    samples: np.ndarray
    sample_rate: int
    num_channels: int
    bit_depth: int

    def __post_init__(self) -> None:
        self.samples = np.asarray(self.samples, dtype=np.int64).reshape(-1)
        if self.sample_rate <= 0:
            raise FormatError(f"Sample rate must be positive, got {self.sample_rate}")
        if self.num_channels <= 0:
            raise FormatError(
                f"Channel count must be positive, got {self.num_channels}"
            )
        if len(self.samples) % self.num_channels != 0:
            raise FormatError(
                f"{len(self.samples)} samples do not divide into "
                f"{self.num_channels} channels"
            )

    @property
    def num_frames(self) -> int:
        return len(self.samples) // self.num_channels

    @property
    def duration_seconds(self) -> float:
        return self.num_frames / self.sample_rate

    @property
    def full_scale(self) -> int:
        """Magnitude of the most negative representable sample."""
        return 1 << (self.bit_depth - 1)

    def as_float(self) -> np.ndarray:
        """Return samples normalized to [-1.0, 1.0) as float64."""
        return self.samples.astype(np.float64) / self.full_scale

    def as_float32(self) -> np.ndarray:
        return self.as_float().astype(np.float32)


def decode(data: bytes) -> SampleBuffer:
    """Decode a linear-PCM WAV byte stream.

    Both WAVE_FORMAT_PCM and WAVE_FORMAT_EXTENSIBLE headers with a PCM
    subformat are accepted (the latter needs Python 3.12's ``wave``).

    Args:
        data: Complete WAV file contents.

    Returns:
        SampleBuffer with the stream's native channels, rate and bit depth.

    Raises:
        DecodeError: If the stream is empty, not RIFF/WAVE, not linear PCM,
            or uses an unsupported sample width.
    """
    if not data:
        raise DecodeError("Audio payload is empty")

    try:
        with wave.open(io.BytesIO(data), "rb") as wf:
            num_channels = wf.getnchannels()
            sample_width = wf.getsampwidth()
            sample_rate = wf.getframerate()
            raw = wf.readframes(wf.getnframes())
    except (wave.Error, EOFError) as exc:
        raise DecodeError(f"Invalid WAV file: {exc}") from exc

    bit_depth = sample_width * 8
    if bit_depth not in SUPPORTED_BIT_DEPTHS:
        raise DecodeError(f"Unsupported PCM bit depth: {bit_depth}")
    if num_channels <= 0 or sample_rate <= 0:
        raise DecodeError(
            f"Invalid WAV format: channels={num_channels}, rate={sample_rate}"
        )

    # Drop a trailing partial frame from a truncated data chunk
    frame_bytes = sample_width * num_channels
    raw = raw[: len(raw) - len(raw) % frame_bytes]

    return SampleBuffer(
        samples=_unpack(raw, sample_width),
        sample_rate=sample_rate,
        num_channels=num_channels,
        bit_depth=bit_depth,
    )


def encode(buffer: SampleBuffer, allow_empty: bool = False) -> bytes:
    """Encode a SampleBuffer as a standalone PCM WAV file.

    Args:
        buffer: Samples and format to write.
        allow_empty: Permit a header-only file for a zero-length buffer.

    Returns:
        The WAV file contents.

    Raises:
        EncodeError: On unsupported bit depth, an empty buffer (unless
            allow_empty), or samples outside the bit depth's range.
        ResourceError: If the in-memory target cannot be written.
    """
    if buffer.bit_depth not in SUPPORTED_BIT_DEPTHS:
        raise EncodeError(
            f"Unsupported PCM bit depth: {buffer.bit_depth}",
            bit_depth=buffer.bit_depth,
        )
    if len(buffer.samples) == 0 and not allow_empty:
        raise EncodeError("Cannot encode an empty sample buffer")

    if len(buffer.samples):
        low, high = -buffer.full_scale, buffer.full_scale - 1
        if buffer.samples.min() < low or buffer.samples.max() > high:
            raise EncodeError(
                f"Sample values exceed the {buffer.bit_depth}-bit range",
                bit_depth=buffer.bit_depth,
            )

    raw = _pack(buffer.samples, buffer.bit_depth // 8)
    try:
        with io.BytesIO() as target:
            with wave.open(target, "wb") as wf:
                wf.setnchannels(buffer.num_channels)
                wf.setsampwidth(buffer.bit_depth // 8)
                wf.setframerate(buffer.sample_rate)
                wf.writeframes(raw)
            return target.getvalue()
    except (wave.Error, OSError, ValueError) as exc:
        raise ResourceError(
            "Failed to write WAV data to scratch buffer", detail=str(exc)
        ) from exc


def _unpack(raw: bytes, sample_width: int) -> np.ndarray:
    """Convert little-endian PCM bytes to signed int64 samples."""
    if sample_width == 1:
        return np.frombuffer(raw, dtype=np.uint8).astype(np.int64) - _UINT8_OFFSET
    if sample_width == 2:
        return np.frombuffer(raw, dtype="<i2").astype(np.int64)
    if sample_width == 4:
        return np.frombuffer(raw, dtype="<i4").astype(np.int64)

    # 24-bit: assemble three bytes and sign-extend
    triples = np.frombuffer(raw, dtype=np.uint8).reshape(-1, 3).astype(np.int64)
    values = triples[:, 0] | (triples[:, 1] << 8) | (triples[:, 2] << 16)
    return np.where(values >= 1 << 23, values - (1 << 24), values)


def _pack(samples: np.ndarray, sample_width: int) -> bytes:
    """Convert signed int64 samples to little-endian PCM bytes."""
    if sample_width == 1:
        return (samples + _UINT8_OFFSET).astype(np.uint8).tobytes()
    if sample_width == 2:
        return samples.astype("<i2").tobytes()
    if sample_width == 4:
        return samples.astype("<i4").tobytes()

    unsigned = samples & 0xFFFFFF
    triples = np.stack(
        [unsigned & 0xFF, (unsigned >> 8) & 0xFF, (unsigned >> 16) & 0xFF], axis=1
    )
    return triples.astype(np.uint8).tobytes()
