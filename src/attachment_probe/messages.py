"""Custom error message verification."""

from __future__ import annotations

import logging
from typing import Any

from attachment_probe.adapters.backend import ValidationBackend
from attachment_probe.contracts import ProbeFailure
from attachment_probe.engine import run_trial
from attachment_probe.events import NullEmitter, ProbeEventEmitter
from attachment_probe.planner import plan_message_trial
from attachment_probe.schema import (
    ContextSpec,
    ProbeSettings,
    RangeRule,
    RuleKind,
    SetRule,
    TrialOutcome,
)

logger = logging.getLogger(__name__)


def verify_custom_message(
    backend: ValidationBackend,
    record: Any,
    field_name: str,
    kind: RuleKind,
    rule: SetRule | RangeRule,
    expected: str,
    context: ContextSpec = None,
    settings: ProbeSettings | None = None,
    emitter: ProbeEventEmitter | None = None,
) -> tuple[TrialOutcome, ProbeFailure | None]:
    """Run the guaranteed-invalid trial and compare its error text to ``expected``.

    One of the field's errors must equal ``expected``; substrings and
    patterns do not count.
    """
    emitter = emitter or NullEmitter()
    trial = plan_message_trial(kind, rule, settings)
    outcome = run_trial(backend, record, field_name, kind, trial, context, settings)
    emitter.emit_trial_completed(field_name, outcome)

    if expected in outcome.errors:
        return outcome, None

    failure = ProbeFailure.custom_message_mismatch(field_name, expected, list(outcome.errors))
    logger.info("Custom message mismatch on %s: %s", field_name, failure.detail)
    return outcome, failure
