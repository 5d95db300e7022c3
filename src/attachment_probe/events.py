"""Probe event emission interface and JSONL persistence."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from attachment_probe.contracts import ProbeFailure
from attachment_probe.schema import ProbeReport, TrialOutcome

# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

TRIAL_COMPLETED = "TrialCompleted"
GATING_FAILED = "GatingFailed"
ASSERTION_COMPLETED = "AssertionCompleted"


# ---------------------------------------------------------------------------
# ProbeEventEmitter protocol
# ---------------------------------------------------------------------------

class ProbeEventEmitter(Protocol):
    """Interface for observing a probe as it runs.

    Emitters are called synchronously, in trial order, from the thread
    running the assertion.
    """

    def emit_trial_completed(self, field_name: str, outcome: TrialOutcome) -> None: ...

    def emit_gating_failed(self, failure: ProbeFailure) -> None: ...

    def emit_assertion_completed(self, report: ProbeReport) -> None: ...


# ---------------------------------------------------------------------------
# NullEmitter
# ---------------------------------------------------------------------------

class NullEmitter:
    """No-op emitter used when the caller does not observe probes."""

    def __init__(self, correlation_id: str = "") -> None:
        self.correlation_id = correlation_id

    def emit_trial_completed(self, field_name: str, outcome: TrialOutcome) -> None:
        pass

    def emit_gating_failed(self, failure: ProbeFailure) -> None:
        pass

    def emit_assertion_completed(self, report: ProbeReport) -> None:
        pass


# ---------------------------------------------------------------------------
# JsonlEventLog (append-only JSONL persistence)
# ---------------------------------------------------------------------------

class JsonlEventLog:
    """Append-only JSONL log. Writes dicts with sort_keys for determinism.

    Also usable directly as a ``ProbeEventEmitter``.
    """

    def __init__(self, path: Path, correlation_id: str = "") -> None:
        self._path = path
        self.correlation_id = correlation_id

    @property
    def path(self) -> Path:
        return self._path

    def append(self, record: dict[str, Any]) -> None:
        """Append a single record as a JSON line."""
        line = json.dumps(record, sort_keys=True, separators=(",", ":"), default=str)
        with open(self._path, "a", encoding="utf-8") as handle:
            handle.write(line + "\n")

    def read_all(self) -> list[dict[str, Any]]:
        """Read all records from the log file."""
        if not self._path.exists():
            return []
        records: list[dict[str, Any]] = []
        with open(self._path, "r", encoding="utf-8") as handle:
            for line in handle:
                stripped = line.strip()
                if stripped:
                    records.append(json.loads(stripped))
        return records

    def _emit(self, event_type: str, payload: dict[str, Any]) -> None:
        self.append(
            {
                "event_type": event_type,
                "correlation_id": self.correlation_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "payload": payload,
            }
        )

    def emit_trial_completed(self, field_name: str, outcome: TrialOutcome) -> None:
        payload = outcome.model_dump(mode="json")
        payload["field_name"] = field_name
        payload["matched"] = outcome.matched
        self._emit(TRIAL_COMPLETED, payload)

    def emit_gating_failed(self, failure: ProbeFailure) -> None:
        self._emit(GATING_FAILED, failure.model_dump(mode="json"))

    def emit_assertion_completed(self, report: ProbeReport) -> None:
        self._emit(
            ASSERTION_COMPLETED,
            {
                "field_name": report.field_name,
                "kind": report.kind,
                "passed": report.passed,
                "trial_count": report.trial_count,
                "failure_codes": [failure.code for failure in report.failures],
            },
        )
