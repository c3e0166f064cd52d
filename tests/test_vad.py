"""Tests for the detector interface, NullDetector, SileroDetector, and registry."""

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from audio_segmenter.audio.vad import (
    DetectorConfig,
    NullDetector,
    SileroDetector,
    TimeInterval,
    VoiceActivityDetector,
    get_detector,
)
from audio_segmenter.audio.vad.registry import DETECTORS
from audio_segmenter.audio.vad.silero import FRAME_SIZES
from audio_segmenter.utils.cancellation import CancellationToken
from audio_segmenter.utils.errors import DetectionCancelledError, DetectionError

FRAME_SIZE = FRAME_SIZES[16000]


def _config(**overrides) -> DetectorConfig:
    defaults = {
        "min_silence_duration_ms": 0,
        "speech_pad_ms": 0,
        "threshold": 0.5,
        "sample_rate": 16000,
    }
    defaults.update(overrides)
    return DetectorConfig(**defaults)


def _make_mock_session(probabilities: list[float]) -> MagicMock:
    """Create a mock ONNX InferenceSession returning predetermined probabilities.

    Each call to session.run() returns the next probability and a fresh state tensor.
    """
    mock_session = MagicMock()
    call_count = [0]

    def mock_run(output_names, feed_dict):
        idx = call_count[0]
        call_count[0] += 1
        prob = probabilities[idx] if idx < len(probabilities) else 0.0
        output = np.array([[prob]], dtype=np.float32)
        new_state = np.zeros((2, 1, 128), dtype=np.float32)
        return [output, new_state]

    mock_session.run = MagicMock(side_effect=mock_run)
    return mock_session


def _run_silero(
    probabilities: list[float], num_samples: int | None = None, **config
) -> tuple[list[TimeInterval], MagicMock]:
    """Configure a SileroDetector on a mocked session and run detect()."""
    if num_samples is None:
        num_samples = FRAME_SIZE * len(probabilities)
    mock_session = _make_mock_session(probabilities)
    with patch("audio_segmenter.audio.vad.silero.ort") as mock_ort:
        mock_ort.InferenceSession.return_value = mock_session
        detector = SileroDetector(model_path="/models/silero_vad.onnx")
        detector.configure(_config(**config))
        intervals = detector.detect(np.zeros(num_samples, dtype=np.float32))
    return intervals, mock_session


class TestTimeInterval:
    """Tests for TimeInterval wire conversion."""

    def test_to_dict_uses_wire_names(self) -> None:
        assert TimeInterval(1.5, 2.0).to_dict() == {"start-time": 1.5, "end-time": 2.0}

    def test_from_dict_accepts_integers(self) -> None:
        interval = TimeInterval.from_dict({"start-time": 1, "end-time": 3})
        assert interval == TimeInterval(1.0, 3.0)

    def test_from_dict_keeps_infinite_bounds(self) -> None:
        interval = TimeInterval.from_dict({"start-time": 0, "end-time": float("inf")})
        assert interval.end_seconds == float("inf")

    def test_from_dict_rejects_nan(self) -> None:
        with pytest.raises(ValueError, match="NaN"):
            TimeInterval.from_dict({"start-time": float("nan"), "end-time": 1.0})

    def test_duration_never_negative(self) -> None:
        assert TimeInterval(2.0, 1.0).duration_seconds == 0.0


class TestDetectorConfig:
    """Tests for DetectorConfig validation."""

    def test_defaults_are_valid(self) -> None:
        DetectorConfig().validate()

    @pytest.mark.parametrize(
        "overrides",
        [
            {"min_silence_duration_ms": -1},
            {"speech_pad_ms": -5},
            {"threshold": 0.0},
            {"threshold": 1.0},
            {"sample_rate": 0},
        ],
    )
    def test_invalid_values_raise(self, overrides: dict) -> None:
        with pytest.raises(DetectionError):
            _config(**overrides).validate()


class TestVoiceActivityDetectorABC:
    """Tests for the VoiceActivityDetector abstract base class."""

    def test_cannot_instantiate_abc(self) -> None:
        """VoiceActivityDetector cannot be instantiated directly."""
        with pytest.raises(TypeError, match="abstract"):
            VoiceActivityDetector()  # type: ignore[abstract]

    def test_context_manager_releases(self) -> None:
        """Leaving a with-block releases the detector, even on error."""
        detector = NullDetector()
        detector.configure(_config())

        with pytest.raises(RuntimeError):
            with detector:
                raise RuntimeError("boom")

        with pytest.raises(DetectionError, match="before configure"):
            detector.detect(np.zeros(10, dtype=np.float32))


class TestNullDetector:
    """Tests for NullDetector passthrough behavior."""

    def test_returns_single_interval_spanning_all_audio(self) -> None:
        detector = NullDetector()
        detector.configure(_config())

        intervals = detector.detect(np.zeros(24000, dtype=np.float32))

        assert intervals == [TimeInterval(0.0, 1.5)]

    def test_empty_input_has_no_speech(self) -> None:
        detector = NullDetector()
        detector.configure(_config())

        assert detector.detect(np.zeros(0, dtype=np.float32)) == []

    def test_detect_before_configure_raises(self) -> None:
        with pytest.raises(DetectionError, match="before configure"):
            NullDetector().detect(np.zeros(10, dtype=np.float32))

    def test_cancelled_token_fails_fast(self) -> None:
        detector = NullDetector()
        detector.configure(_config())
        token = CancellationToken()
        token.cancel()

        with pytest.raises(DetectionCancelledError):
            detector.detect(np.zeros(10, dtype=np.float32), token)


class TestSileroDetector:
    """Tests for SileroDetector with mocked ONNX session."""

    def test_short_dip_stays_one_segment(self) -> None:
        """A silent frame shorter than min silence does not split the run."""
        intervals, _ = _run_silero([0.8, 0.9, 0.1, 0.7], min_silence_duration_ms=100)

        assert intervals == [TimeInterval(0.0, FRAME_SIZE * 4 / 16000)]

    def test_long_silence_splits_segments(self) -> None:
        """Silence of at least min_silence_duration_ms ends a run."""
        probabilities = [0.9, 0.9] + [0.0] * 6 + [0.9, 0.9]
        intervals, _ = _run_silero(probabilities, min_silence_duration_ms=100)

        assert len(intervals) == 2
        assert intervals[0].start_seconds == pytest.approx(0.0)
        assert intervals[0].end_seconds == pytest.approx(2 * FRAME_SIZE / 16000)
        assert intervals[1].start_seconds == pytest.approx(8 * FRAME_SIZE / 16000)
        assert intervals[1].end_seconds == pytest.approx(10 * FRAME_SIZE / 16000)

    def test_speech_pad_extends_and_clamps(self) -> None:
        """Padding widens each run but never leaves [0, duration]."""
        probabilities = [0.9, 0.9] + [0.0] * 6 + [0.9, 0.9]
        intervals, _ = _run_silero(
            probabilities, min_silence_duration_ms=100, speech_pad_ms=30
        )

        assert intervals[0].start_seconds == pytest.approx(0.0)
        assert intervals[0].end_seconds == pytest.approx((1024 + 480) / 16000)
        assert intervals[1].start_seconds == pytest.approx((4096 - 480) / 16000)
        assert intervals[1].end_seconds == pytest.approx(5120 / 16000)

    def test_overlapping_padded_runs_merge(self) -> None:
        intervals, _ = _run_silero([0.9, 0.0, 0.0, 0.9], speech_pad_ms=50)

        assert intervals == [TimeInterval(0.0, FRAME_SIZE * 4 / 16000)]

    def test_probability_between_thresholds_does_not_end_run(self) -> None:
        """Scores just below the threshold keep an active run going."""
        intervals, _ = _run_silero([0.9, 0.4, 0.4, 0.9])

        assert len(intervals) == 1

    def test_intervals_are_sorted_and_disjoint(self) -> None:
        probabilities = [0.9, 0.0, 0.9, 0.0, 0.0, 0.9, 0.0, 0.9]
        intervals, _ = _run_silero(probabilities, speech_pad_ms=10)

        for interval in intervals:
            assert interval.end_seconds >= interval.start_seconds
        for previous, current in zip(intervals, intervals[1:]):
            assert current.start_seconds > previous.end_seconds

    def test_all_silence_produces_no_segments(self) -> None:
        intervals, _ = _run_silero([0.0, 0.0, 0.0, 0.0])

        assert intervals == []

    def test_partial_final_frame_is_zero_padded(self) -> None:
        """Tail samples are scored in a padded window, not dropped."""
        intervals, session = _run_silero([0.0, 0.9], num_samples=FRAME_SIZE + 100)

        assert session.run.call_count == 2
        last_feed = session.run.call_args_list[-1].args[1]
        assert last_feed["input"].shape == (1, FRAME_SIZE)
        assert intervals[-1].end_seconds == pytest.approx((FRAME_SIZE + 100) / 16000)

    def test_empty_input_skips_inference(self) -> None:
        intervals, session = _run_silero([], num_samples=0)

        assert intervals == []
        session.run.assert_not_called()

    def test_model_load_failure_raises_detection_error(self) -> None:
        """DetectionError raised when the ONNX model cannot be loaded."""
        with patch("audio_segmenter.audio.vad.silero.ort") as mock_ort:
            mock_ort.InferenceSession.side_effect = RuntimeError("bad model")
            detector = SileroDetector(model_path="/nonexistent/model.onnx")
            with pytest.raises(DetectionError, match="Failed to load Silero VAD model") as exc_info:
                detector.configure(_config())

        assert exc_info.value.detail == "bad model"

    def test_inference_failure_raises_detection_error(self) -> None:
        mock_session = MagicMock()
        mock_session.run.side_effect = RuntimeError("shape mismatch")
        with patch("audio_segmenter.audio.vad.silero.ort") as mock_ort:
            mock_ort.InferenceSession.return_value = mock_session
            detector = SileroDetector()
            detector.configure(_config())
            with pytest.raises(DetectionError, match="ONNX inference failed at offset 0"):
                detector.detect(np.zeros(FRAME_SIZE, dtype=np.float32))

    def test_unsupported_sample_rate_raises(self) -> None:
        with pytest.raises(DetectionError, match="supports sample rates"):
            SileroDetector().configure(_config(sample_rate=44100))

    def test_cancel_token_stops_inference(self) -> None:
        mock_session = _make_mock_session([0.9] * 4)
        token = CancellationToken()
        token.cancel()
        with patch("audio_segmenter.audio.vad.silero.ort") as mock_ort:
            mock_ort.InferenceSession.return_value = mock_session
            detector = SileroDetector()
            detector.configure(_config())
            with pytest.raises(DetectionCancelledError, match="cancelled"):
                detector.detect(np.zeros(FRAME_SIZE * 4, dtype=np.float32), token)

        mock_session.run.assert_not_called()

    def test_expired_deadline_stops_inference(self) -> None:
        token = CancellationToken(timeout_seconds=0.0)
        with patch("audio_segmenter.audio.vad.silero.ort") as mock_ort:
            mock_ort.InferenceSession.return_value = _make_mock_session([0.9])
            detector = SileroDetector()
            detector.configure(_config())
            with pytest.raises(DetectionCancelledError, match="deadline"):
                detector.detect(np.zeros(FRAME_SIZE, dtype=np.float32), token)

    def test_release_drops_session(self) -> None:
        with patch("audio_segmenter.audio.vad.silero.ort") as mock_ort:
            mock_ort.InferenceSession.return_value = MagicMock()
            detector = SileroDetector()
            detector.configure(_config())
            detector.release()
            detector.release()

        with pytest.raises(DetectionError):
            detector.detect(np.zeros(FRAME_SIZE, dtype=np.float32))


class TestDetectorRegistry:
    """Tests for the detector registry."""

    def test_get_null_detector(self) -> None:
        assert isinstance(get_detector("null"), NullDetector)

    def test_get_silero_detector_with_model_path(self) -> None:
        detector = get_detector("silero", model_path="/models/custom.onnx")

        assert isinstance(detector, SileroDetector)
        assert detector.model_path == "/models/custom.onnx"

    def test_unknown_provider_raises_detection_error(self) -> None:
        with pytest.raises(DetectionError, match="Unknown VAD provider: 'unknown'"):
            get_detector("unknown")

    def test_error_lists_available_providers(self) -> None:
        with pytest.raises(DetectionError) as exc_info:
            get_detector("nonexistent")
        message = str(exc_info.value)
        for name in DETECTORS:
            assert name in message
        assert "Available:" in message
