"""Runtime settings for the segmentation operations.

Every setting can be passed explicitly; anything left unset falls back
to an environment variable and then to a built-in default.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from audio_segmenter.audio.vad.interface import (
    DEFAULT_MIN_SILENCE_DURATION_MS,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_SPEECH_PAD_MS,
    DEFAULT_THRESHOLD,
)
from audio_segmenter.utils.errors import InputError

N = TypeVar("N", int, float)

DEFAULT_VAD_PROVIDER = "silero"


@dataclass
class Settings:
    """Resolved configuration for detector construction and defaults."""

    vad_provider: str = DEFAULT_VAD_PROVIDER
    vad_model_path: str | None = None
    vad_threshold: float = DEFAULT_THRESHOLD
    detector_sample_rate: int = DEFAULT_SAMPLE_RATE
    min_silence_duration_ms: int = DEFAULT_MIN_SILENCE_DURATION_MS
    speech_pad_ms: int = DEFAULT_SPEECH_PAD_MS
    detection_timeout_seconds: float | None = None

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from environment variables.

        Reads VAD_PROVIDER, VAD_MODEL_PATH, VAD_THRESHOLD,
        VAD_MIN_SILENCE_DURATION_MS, VAD_SPEECH_PAD_MS and VAD_TIMEOUT_SECONDS.

        Raises:
            InputError: If a numeric variable cannot be parsed.
        """
        timeout = _env_number("VAD_TIMEOUT_SECONDS", float)
        return cls(
            vad_provider=os.environ.get("VAD_PROVIDER", DEFAULT_VAD_PROVIDER),
            vad_model_path=os.environ.get("VAD_MODEL_PATH") or None,
            vad_threshold=_env_number("VAD_THRESHOLD", float, DEFAULT_THRESHOLD),
            min_silence_duration_ms=_env_number(
                "VAD_MIN_SILENCE_DURATION_MS", int, DEFAULT_MIN_SILENCE_DURATION_MS
            ),
            speech_pad_ms=_env_number("VAD_SPEECH_PAD_MS", int, DEFAULT_SPEECH_PAD_MS),
            detection_timeout_seconds=timeout,
        )

    def detector_kwargs(self) -> dict[str, object]:
        """Constructor options for the configured provider."""
        if self.vad_provider == "silero" and self.vad_model_path:
            return {"model_path": self.vad_model_path}
        return {}


def _env_number(
    name: str, cast: Callable[[str], N], default: N | None = None
) -> N | None:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise InputError(
            f"Environment variable {name} is not a valid number: {raw!r}",
            field=name,
        ) from exc
