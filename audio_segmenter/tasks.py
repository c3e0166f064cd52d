"""Voice activity detection and segment extraction operations.

Each operation consumes a request record (a dict with hyphenated wire
field names), runs decode -> transform -> detect/extract -> encode, and
returns a response record. Operations are synchronous and stateless:
buffers, intervals and the detector instance live only for one call.

Detection: decode -> downmix -> resample -> detect -> intervals.
Extraction: decode -> slice original buffer -> encode one WAV per interval.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, TypeVar

import numpy as np

from audio_segmenter.audio.downmix import to_mono
from audio_segmenter.audio.resample import resample
from audio_segmenter.audio.vad import (
    DetectorConfig,
    TimeInterval,
    VoiceActivityDetector,
    get_detector,
)
from audio_segmenter.audio.wav_codec import SampleBuffer, decode
from audio_segmenter.config import Settings
from audio_segmenter.observability.logger import bind
from audio_segmenter.observability.metrics import (
    RequestMetrics,
    StageTimer,
    failed_stage,
    log_request_metrics,
)
from audio_segmenter.segments.encoder import EncodedClip, encode_segment
from audio_segmenter.segments.extractor import extract_segment
from audio_segmenter.utils.cancellation import CancellationToken
from audio_segmenter.utils.datauri import decode_base64_audio
from audio_segmenter.utils.errors import InputError, SegmentationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TASK_DETECT_VOICE_ACTIVITY = "TASK_DETECT_VOICE_ACTIVITY"
TASK_EXTRACT_AUDIO_SEGMENTS = "TASK_EXTRACT_AUDIO_SEGMENTS"

_DETECT = "detect_voice_activity"
_EXTRACT = "extract_audio_segments"


@dataclass
class DetectVoiceActivityInput:
    """Request record for voice activity detection."""

    audio: str
    min_silence_duration_ms: int | None = None
    speech_pad_ms: int | None = None
    threshold: float | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> DetectVoiceActivityInput:
        return cls(
            audio=_audio_field(record, _DETECT),
            min_silence_duration_ms=_optional_int(
                record, "min-silence-duration-ms", _DETECT
            ),
            speech_pad_ms=_optional_int(record, "speech-pad-ms", _DETECT),
            threshold=_optional_float(record, "threshold", _DETECT),
        )

    def detector_config(self, settings: Settings) -> DetectorConfig:
        """Merge request overrides with the configured defaults."""
        return DetectorConfig(
            min_silence_duration_ms=_first(
                self.min_silence_duration_ms, settings.min_silence_duration_ms
            ),
            speech_pad_ms=_first(self.speech_pad_ms, settings.speech_pad_ms),
            threshold=_first(self.threshold, settings.vad_threshold),
            sample_rate=settings.detector_sample_rate,
        )


@dataclass
class DetectVoiceActivityOutput:
    """Response record for voice activity detection."""

    segments: list[TimeInterval]

    def to_record(self) -> dict[str, Any]:
        return {"segments": [segment.to_dict() for segment in self.segments]}


@dataclass
class ExtractAudioSegmentsInput:
    """Request record for segment extraction."""

    audio: str
    segments: list[TimeInterval]

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> ExtractAudioSegmentsInput:
        raw_segments = record.get("segments")
        if not isinstance(raw_segments, list):
            raise InputError(
                "Field 'segments' must be a list", _EXTRACT, field="segments"
            )

        segments: list[TimeInterval] = []
        for i, raw in enumerate(raw_segments):
            try:
                segments.append(TimeInterval.from_dict(raw))
            except (KeyError, TypeError, ValueError, OverflowError) as exc:
                raise InputError(
                    f"Segment {i} must have numeric 'start-time' and 'end-time'",
                    _EXTRACT,
                    field="segments",
                ) from exc

        return cls(audio=_audio_field(record, _EXTRACT), segments=segments)


@dataclass
class ExtractAudioSegmentsOutput:
    """Response record for segment extraction."""

    audio_segments: list[str]

    def to_record(self) -> dict[str, Any]:
        return {"audio-segments": list(self.audio_segments)}


def detect_voice_activity(
    record: dict[str, Any],
    settings: Settings | None = None,
    detector: VoiceActivityDetector | None = None,
    cancel_token: CancellationToken | None = None,
) -> dict[str, Any]:
    """Detect speech intervals in a base64 PCM WAV payload.

    Args:
        record: ``{"audio", "min-silence-duration-ms", "speech-pad-ms"}``
            plus an optional ``"threshold"``.
        settings: Defaults and detector selection (environment if omitted).
        detector: Unconfigured detector to use instead of the configured
            provider. It is configured and released by this call.
        cancel_token: Cancels detection mid-run. When omitted and a
            detection timeout is configured, a deadline token is created.

    Returns:
        ``{"segments": [{"start-time", "end-time"}, ...]}`` ascending.

    Raises:
        SegmentationError: Any decode, config or detection failure.
    """
    settings = settings or Settings.from_env()
    metrics = RequestMetrics(operation=_DETECT)

    with _operation(metrics):
        if detector is None:
            detector = get_detector(settings.vad_provider, **settings.detector_kwargs())

        # Released on every exit, including request and decode failures
        with detector:
            request = DetectVoiceActivityInput.from_record(record)
            config = request.detector_config(settings)
            buffer = _decode_audio(request.audio, metrics)

            if cancel_token is None and settings.detection_timeout_seconds is not None:
                cancel_token = CancellationToken(settings.detection_timeout_seconds)

            intervals = detect_intervals(
                buffer, config, detector, cancel_token, metrics.stage_timings
            )
        metrics.segment_count = len(intervals)

    bind(logger, operation=_DETECT).info(
        "Detected %d speech segments",
        len(intervals),
        extra={"segment_count": len(intervals)},
    )
    return DetectVoiceActivityOutput(segments=intervals).to_record()


def extract_audio_segments(record: dict[str, Any]) -> dict[str, Any]:
    """Cut a base64 PCM WAV payload into one WAV clip per segment.

    Clips keep the source's sample rate, channel count and bit depth.
    Output order and length match the input segments; if any clip fails
    to encode, the whole call fails.

    Args:
        record: ``{"audio", "segments": [{"start-time", "end-time"}, ...]}``.

    Returns:
        ``{"audio-segments": ["data:audio/wav;base64,...", ...]}``.

    Raises:
        SegmentationError: Any decode or encode failure.
    """
    metrics = RequestMetrics(operation=_EXTRACT)

    with _operation(metrics):
        request = ExtractAudioSegmentsInput.from_record(record)
        buffer = _decode_audio(request.audio, metrics)
        clips = extract_clips(buffer, request.segments, metrics.stage_timings)
        metrics.segment_count = len(clips)

    bind(logger, operation=_EXTRACT).info(
        "Extracted %d audio segments",
        len(clips),
        extra={"segment_count": len(clips)},
    )
    return ExtractAudioSegmentsOutput(
        audio_segments=[clip.data_uri for clip in clips]
    ).to_record()


def execute(task: str, record: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
    """Dispatch a request record to the operation named by ``task``.

    Raises:
        InputError: If the task name is unknown.
    """
    if task == TASK_DETECT_VOICE_ACTIVITY:
        return detect_voice_activity(record, **kwargs)
    if task == TASK_EXTRACT_AUDIO_SEGMENTS:
        return extract_audio_segments(record)
    raise InputError(f"Unsupported task: '{task}'", field="task")


def detect_intervals(
    buffer: SampleBuffer,
    config: DetectorConfig,
    detector: VoiceActivityDetector,
    cancel_token: CancellationToken | None = None,
    timings: dict[str, float] | None = None,
) -> list[TimeInterval]:
    """Normalize a decoded buffer and run the detector on it.

    The detector is configured here and always released before return,
    including when configuration or detection raises.
    """
    with detector:
        with StageTimer("downmix", timings):
            mono = to_mono(buffer) if buffer.num_channels > 1 else buffer

        with StageTimer("resample", timings):
            if mono.sample_rate == config.sample_rate:
                resampled = mono.samples
            else:
                resampled = resample(mono.samples, mono.sample_rate, config.sample_rate)
            model_input = resampled.astype(np.float32) / np.float32(mono.full_scale)

        with StageTimer("detect", timings):
            detector.configure(config)
            return detector.detect(model_input, cancel_token)


def extract_clips(
    buffer: SampleBuffer,
    intervals: list[TimeInterval],
    timings: dict[str, float] | None = None,
) -> list[EncodedClip]:
    """Slice and encode one clip per interval, in order."""
    clips: list[EncodedClip] = []
    with StageTimer("encode", timings):
        for interval in intervals:
            samples = extract_segment(buffer, interval)
            clips.append(encode_segment(samples, buffer))
    return clips


def _decode_audio(audio: str, metrics: RequestMetrics) -> SampleBuffer:
    with StageTimer("decode", metrics.stage_timings):
        data = decode_base64_audio(audio)
        buffer = decode(data)

    metrics.input_size_bytes = len(data)
    metrics.audio_duration_seconds = buffer.duration_seconds
    metrics.sample_rate = buffer.sample_rate
    metrics.num_channels = buffer.num_channels
    return buffer


@contextmanager
def _operation(metrics: RequestMetrics) -> Iterator[None]:
    """Time an operation, tag and log its failure, and emit metrics."""
    wall_start = time.monotonic()
    try:
        yield
    except SegmentationError as exc:
        if exc.operation is None:
            exc.operation = metrics.operation
        _record_failure(metrics, exc)
        raise
    except Exception as exc:
        _record_failure(metrics, exc)
        raise
    finally:
        metrics.wall_time_seconds = time.monotonic() - wall_start
        log_request_metrics(metrics)


def _record_failure(metrics: RequestMetrics, exc: Exception) -> None:
    metrics.status = "failed"
    metrics.error_stage = failed_stage(metrics.stage_timings) or "input"
    metrics.error_message = str(exc)
    bind(logger, operation=metrics.operation, stage=metrics.error_stage).error(
        "%s failed at stage '%s': %s",
        metrics.operation,
        metrics.error_stage,
        exc,
        exc_info=True,
    )


def _audio_field(record: dict[str, Any], operation: str) -> str:
    audio = record.get("audio")
    if not isinstance(audio, str) or not audio:
        raise InputError(
            "Field 'audio' must be a non-empty base64 string", operation, field="audio"
        )
    return audio


def _optional_int(record: dict[str, Any], name: str, operation: str) -> int | None:
    value = _optional_float(record, name, operation)
    return None if value is None else int(value)


def _optional_float(record: dict[str, Any], name: str, operation: str) -> float | None:
    value = record.get(name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InputError(f"Field '{name}' must be a number", operation, field=name)
    try:
        number = float(value)
    except OverflowError:
        number = math.inf
    if not math.isfinite(number):
        raise InputError(
            f"Field '{name}' must be a finite number, got {value}", operation, field=name
        )
    return number


def _first(value: T | None, default: T) -> T:
    return default if value is None else value
