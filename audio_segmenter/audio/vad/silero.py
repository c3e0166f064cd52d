"""Silero VAD detector using ONNX runtime inference.

Scores mono float audio in fixed-size windows with the Silero ONNX model,
then turns the per-window speech probabilities into padded speech runs.
"""

from pathlib import Path

import numpy as np
import onnxruntime as ort

from audio_segmenter.audio.vad.interface import (
    DetectorConfig,
    TimeInterval,
    VoiceActivityDetector,
)
from audio_segmenter.utils.cancellation import CancellationToken
from audio_segmenter.utils.errors import DetectionError

# Window size in samples per supported model rate
FRAME_SIZES = {16000: 512, 8000: 256}
# A run ends only once probability drops this far below the threshold
NEGATIVE_THRESHOLD_OFFSET = 0.15
STATE_SHAPE = (2, 1, 128)

_MODEL_PATH = Path(__file__).parent / "models" / "silero_vad.onnx"


class SileroDetector(VoiceActivityDetector):
    """Silero VAD with ONNX runtime inference.

    Args:
        model_path: Path to the ONNX model file. Defaults to the bundled model.
    """

    def __init__(self, model_path: str | None = None) -> None:
        super().__init__()
        self.model_path = model_path or str(_MODEL_PATH)
        self._session: ort.InferenceSession | None = None

    @property
    def frame_size(self) -> int:
        return FRAME_SIZES[self.config.sample_rate]

    def configure(self, config: DetectorConfig) -> None:
        """Validate the config and load the ONNX session.

        Raises:
            DetectionError: On an unsupported rate or model load failure.
        """
        if config.sample_rate not in FRAME_SIZES:
            supported = ", ".join(str(rate) for rate in sorted(FRAME_SIZES))
            raise DetectionError(
                f"Silero VAD supports sample rates {supported}, got {config.sample_rate}"
            )
        super().configure(config)
        try:
            self._session = ort.InferenceSession(self.model_path)
        except Exception as exc:
            self._config = None
            raise DetectionError(
                f"Failed to load Silero VAD model: {self.model_path}",
                detail=str(exc),
            ) from exc

    def release(self) -> None:
        self._session = None
        super().release()

    def detect(
        self,
        samples: np.ndarray,
        cancel_token: CancellationToken | None = None,
    ) -> list[TimeInterval]:
        """Run Silero VAD over mono float samples.

        Args:
            samples: Mono float32 samples at ``config.sample_rate``.
            cancel_token: Checked before every inference window.

        Returns:
            Padded, merged speech intervals in ascending order.

        Raises:
            DetectionError: On inference failure or use after release().
            DetectionCancelledError: If the token fires mid-detection.
        """
        config = self.config
        if self._session is None:
            raise DetectionError("Silero session is not loaded")

        total_samples = len(samples)
        if total_samples == 0:
            return []

        probabilities = self._speech_probabilities(samples, cancel_token)
        runs = self._probabilities_to_runs(probabilities, total_samples)
        padded = self._pad_and_merge(runs, total_samples)

        return [
            TimeInterval(start / config.sample_rate, end / config.sample_rate)
            for start, end in padded
        ]

    def _speech_probabilities(
        self, samples: np.ndarray, cancel_token: CancellationToken | None
    ) -> list[float]:
        """Score each window, zero-padding the final partial window."""
        frame_size = self.frame_size
        float_samples = np.asarray(samples, dtype=np.float32)
        state = np.zeros(STATE_SHAPE, dtype=np.float32)
        sr = np.array(self.config.sample_rate, dtype=np.int64)

        probabilities: list[float] = []
        for offset in range(0, len(float_samples), frame_size):
            if cancel_token is not None:
                cancel_token.check("detect")

            window = float_samples[offset : offset + frame_size]
            if len(window) < frame_size:
                window = np.pad(window, (0, frame_size - len(window)))
            chunk = window.reshape(1, -1)
            try:
                output, state = self._session.run(
                    ["output", "stateN"],
                    {"input": chunk, "state": state, "sr": sr},
                )
            except Exception as exc:
                raise DetectionError(
                    f"ONNX inference failed at offset {offset}",
                    detail=str(exc),
                ) from exc

            probabilities.append(float(output[0][0]))

        return probabilities

    def _probabilities_to_runs(
        self, probabilities: list[float], total_samples: int
    ) -> list[tuple[int, int]]:
        """Apply threshold hysteresis and minimum silence to window scores.

        Returns unpadded ``(start_sample, end_sample)`` runs.
        """
        config = self.config
        frame_size = self.frame_size
        threshold = config.threshold
        negative_threshold = max(threshold - NEGATIVE_THRESHOLD_OFFSET, 0.01)
        min_silence_samples = config.sample_rate * config.min_silence_duration_ms // 1000

        runs: list[tuple[int, int]] = []
        triggered = False
        start = 0
        silence_start: int | None = None

        for i, prob in enumerate(probabilities):
            current = i * frame_size

            if prob >= threshold:
                silence_start = None
                if not triggered:
                    triggered = True
                    start = current
                continue

            if triggered and prob < negative_threshold:
                if silence_start is None:
                    silence_start = current
                if current - silence_start < min_silence_samples:
                    continue
                runs.append((start, silence_start))
                triggered = False
                silence_start = None

        if triggered:
            runs.append((start, total_samples))

        return runs

    def _pad_and_merge(
        self, runs: list[tuple[int, int]], total_samples: int
    ) -> list[tuple[int, int]]:
        """Pad each run, clamp to the input, and merge overlaps."""
        pad = self.config.sample_rate * self.config.speech_pad_ms // 1000

        merged: list[tuple[int, int]] = []
        for start, end in runs:
            start = max(0, start - pad)
            end = min(total_samples, end + pad)
            if merged and start <= merged[-1][1]:
                merged[-1] = (merged[-1][0], max(merged[-1][1], end))
            else:
                merged.append((start, end))

        return merged
