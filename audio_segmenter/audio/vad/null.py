"""Null detector that marks the entire input as speech.

Used when VAD is disabled or for testing.
"""

import numpy as np

from audio_segmenter.audio.vad.interface import TimeInterval, VoiceActivityDetector
from audio_segmenter.utils.cancellation import CancellationToken


class NullDetector(VoiceActivityDetector):
    """Passthrough detector that treats all audio as a single speech run."""

    def detect(
        self,
        samples: np.ndarray,
        cancel_token: CancellationToken | None = None,
    ) -> list[TimeInterval]:
        """Return one interval spanning the input, or none if it is empty."""
        config = self.config
        if cancel_token is not None:
            cancel_token.check("detect")
        if len(samples) == 0:
            return []
        return [TimeInterval(0.0, len(samples) / config.sample_rate)]
