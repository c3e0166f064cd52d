"""Per-request metrics collection and reporting.

Provides RequestMetrics for structured observability data, StageTimer
for measuring stage durations, and log_request_metrics() for emitting
metrics as a single structured JSON line.
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime


@dataclass
class RequestMetrics:
    """All metrics collected for a single segmentation operation."""

    operation: str
    status: str = "completed"
    input_size_bytes: int = 0
    audio_duration_seconds: float = 0.0
    sample_rate: int = 0
    num_channels: int = 0
    segment_count: int = 0
    wall_time_seconds: float = 0.0
    stage_timings: dict[str, float] = field(default_factory=dict)
    error_stage: str | None = None
    error_message: str | None = None


class StageTimer:
    """Context manager that records the wall-clock duration of a stage.

    When given a timings dict, the duration is stored under the stage
    name, or under ``_<stage>_failed`` if the block raised.

    Usage:
        with StageTimer("decode", metrics.stage_timings):
            buffer = decode(data)
    """

    def __init__(self, stage_name: str, timings: dict[str, float] | None = None) -> None:
        self.stage_name = stage_name
        self.duration_seconds: float = 0.0
        self._timings = timings
        self._mono_start: float = 0.0

    def __enter__(self) -> StageTimer:
        self._mono_start = time.monotonic()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.duration_seconds = time.monotonic() - self._mono_start
        if self._timings is None:
            return
        if exc_type is not None:
            self._timings[f"_{self.stage_name}_failed"] = self.duration_seconds
        else:
            self._timings[self.stage_name] = self.duration_seconds


def failed_stage(timings: dict[str, float]) -> str | None:
    """Return the name of the stage recorded as failed, if any."""
    for key in timings:
        if key.startswith("_") and key.endswith("_failed"):
            return key[1 : -len("_failed")]
    return None


def log_request_metrics(metrics: RequestMetrics) -> None:
    """Emit request metrics as a single structured JSON line to stdout.

    Args:
        metrics: Populated RequestMetrics dataclass.
    """
    entry = {
        "timestamp": datetime.now(UTC).isoformat(),
        "severity": "INFO" if metrics.status == "completed" else "ERROR",
        "metric_type": "segmentation_request",
        **asdict(metrics),
    }
    print(json.dumps(entry))
