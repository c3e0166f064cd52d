"""Detector registry with configuration-driven provider selection.

Maps provider name strings to detector classes. Use get_detector() to
instantiate a detector by name with detector-specific configuration.
"""

from audio_segmenter.audio.vad.interface import VoiceActivityDetector
from audio_segmenter.audio.vad.null import NullDetector
from audio_segmenter.audio.vad.silero import SileroDetector
from audio_segmenter.utils.errors import DetectionError

DETECTORS: dict[str, type[VoiceActivityDetector]] = {
    "null": NullDetector,
    "silero": SileroDetector,
}


def get_detector(provider: str, **kwargs: object) -> VoiceActivityDetector:
    """Create an unconfigured detector instance by provider name.

    Args:
        provider: Provider name (e.g., "silero", "null").
        **kwargs: Detector-specific options passed to the constructor.

    Returns:
        A VoiceActivityDetector; call configure() before detect().

    Raises:
        DetectionError: If the provider name is not registered.
    """
    detector_cls = DETECTORS.get(provider)
    if not detector_cls:
        available = ", ".join(sorted(DETECTORS.keys()))
        raise DetectionError(
            f"Unknown VAD provider: '{provider}'. Available: {available}"
        )
    return detector_cls(**kwargs)
