"""Pluggable voice activity detectors.

Public API:
    VoiceActivityDetector — Abstract base class for detector implementations.
    DetectorConfig        — Per-request detection parameters.
    TimeInterval          — A detected (or requested) span in seconds.
    NullDetector          — Passthrough detector (marks entire audio as speech).
    SileroDetector        — Silero VAD using ONNX runtime.
    get_detector          — Factory to create detectors by provider name.
"""

from audio_segmenter.audio.vad.interface import (
    DetectorConfig,
    TimeInterval,
    VoiceActivityDetector,
)
from audio_segmenter.audio.vad.null import NullDetector
from audio_segmenter.audio.vad.registry import get_detector
from audio_segmenter.audio.vad.silero import SileroDetector

__all__ = [
    "VoiceActivityDetector",
    "DetectorConfig",
    "TimeInterval",
    "NullDetector",
    "SileroDetector",
    "get_detector",
]
