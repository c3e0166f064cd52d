"""Abstract voice activity detector interface and data models.

Defines the VoiceActivityDetector ABC, its configuration, and the
TimeInterval result type. Concrete detectors (e.g., Silero, Null)
subclass VoiceActivityDetector.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import numpy as np

from audio_segmenter.utils.cancellation import CancellationToken
from audio_segmenter.utils.errors import DetectionError

DEFAULT_SAMPLE_RATE = 16000
DEFAULT_THRESHOLD = 0.5
DEFAULT_MIN_SILENCE_DURATION_MS = 100
DEFAULT_SPEECH_PAD_MS = 30


@dataclass(frozen=True)
class TimeInterval:
    """A span of audio in seconds, ``[start_seconds, end_seconds]``."""

    start_seconds: float
    end_seconds: float

    @property
    def duration_seconds(self) -> float:
        return max(0.0, self.end_seconds - self.start_seconds)

    def to_dict(self) -> dict[str, float]:
        return {"start-time": self.start_seconds, "end-time": self.end_seconds}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TimeInterval:
        """Build from a wire record.

        Infinite bounds are kept (extraction clamps them); NaN raises
        ValueError.
        """
        start = float(data["start-time"])
        end = float(data["end-time"])
        if math.isnan(start) or math.isnan(end):
            raise ValueError(f"Interval bounds must not be NaN: {start}, {end}")
        return cls(start_seconds=start, end_seconds=end)


@dataclass
class DetectorConfig:
    """Detection parameters resolved for a single request.

    Attributes:
        min_silence_duration_ms: Silence needed to split two speech runs.
        speech_pad_ms: Padding added to both sides of each speech run.
        threshold: Speech probability cutoff in (0, 1).
        sample_rate: Rate the model expects its input at.
    """

    min_silence_duration_ms: int = DEFAULT_MIN_SILENCE_DURATION_MS
    speech_pad_ms: int = DEFAULT_SPEECH_PAD_MS
    threshold: float = DEFAULT_THRESHOLD
    sample_rate: int = DEFAULT_SAMPLE_RATE

    def validate(self) -> None:
        """Raise DetectionError if any parameter is out of range."""
        if self.min_silence_duration_ms < 0:
            raise DetectionError(
                f"min_silence_duration_ms must be >= 0, got {self.min_silence_duration_ms}"
            )
        if self.speech_pad_ms < 0:
            raise DetectionError(
                f"speech_pad_ms must be >= 0, got {self.speech_pad_ms}"
            )
        if not 0.0 < self.threshold < 1.0:
            raise DetectionError(
                f"threshold must be between 0 and 1, got {self.threshold}"
            )
        if self.sample_rate <= 0:
            raise DetectionError(
                f"sample_rate must be positive, got {self.sample_rate}"
            )


class VoiceActivityDetector(ABC):
    """Abstract base class for voice activity detectors.

    Lifecycle: configure() once, detect() any number of times, then
    release(). Instances are also context managers that release on exit.
    """

    def __init__(self) -> None:
        self._config: DetectorConfig | None = None

    @property
    def config(self) -> DetectorConfig:
        if self._config is None:
            raise DetectionError("Detector used before configure()")
        return self._config

    def configure(self, config: DetectorConfig) -> None:
        """Validate and store the configuration, acquiring any resources.

        Raises:
            DetectionError: If the configuration is invalid or the model
                cannot be initialized.
        """
        config.validate()
        self._config = config

    @abstractmethod
    def detect(
        self,
        samples: np.ndarray,
        cancel_token: CancellationToken | None = None,
    ) -> list[TimeInterval]:
        """Detect speech in mono float samples at ``config.sample_rate``.

        Args:
            samples: Mono float32 samples normalized to [-1, 1].
            cancel_token: Optional token checked between units of work.

        Returns:
            Ascending, non-overlapping intervals within the input's duration.
        """

    def release(self) -> None:
        """Free any resources held by the detector. Safe to call twice."""
        self._config = None

    def __enter__(self) -> VoiceActivityDetector:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.release()
