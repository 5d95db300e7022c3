"""Trial execution for attachment rule probes."""

from __future__ import annotations

import logging
from typing import Any

from attachment_probe.adapters.backend import ValidationBackend
from attachment_probe.attachments import attach_synthetic
from attachment_probe.events import NullEmitter, ProbeEventEmitter
from attachment_probe.metadata import mocked_metadata
from attachment_probe.planner import plan_trials
from attachment_probe.schema import (
    ContextSpec,
    ProbeSettings,
    RangeRule,
    RuleKind,
    SetRule,
    Trial,
    TrialOutcome,
    ValidationOutcome,
)

logger = logging.getLogger(__name__)


def execute_trial(
    backend: ValidationBackend,
    record: Any,
    field_name: str,
    trial: Trial,
    context: ContextSpec,
    settings: ProbeSettings | None = None,
) -> ValidationOutcome:
    """Attach a fresh file, open the metadata scope, validate once, close the scope."""
    attachment = attach_synthetic(
        backend,
        record,
        field_name,
        content_type=trial.content_type,
        filename=trial.filename,
        settings=settings,
    )
    with mocked_metadata(attachment.handle, **trial.mocked()) as metadata:
        return backend.run_validations(record, context, metadata)


def run_trial(
    backend: ValidationBackend,
    record: Any,
    field_name: str,
    kind: RuleKind,
    trial: Trial,
    context: ContextSpec = None,
    settings: ProbeSettings | None = None,
) -> TrialOutcome:
    """Run one trial and record whether validation of ``kind`` passed on the field."""
    result = execute_trial(backend, record, field_name, trial, context, settings)
    outcome = TrialOutcome(
        trial=trial,
        ran=True,
        validation_passed=result.passes(field_name, kind),
        errors=result.errors_for(field_name, kind),
    )
    logger.debug(
        "Trial %r on %s: expected %s, validation %s",
        trial.label,
        field_name,
        "pass" if trial.expect_pass else "fail",
        "passed" if outcome.validation_passed else "failed",
    )
    return outcome


def run_trials(
    backend: ValidationBackend,
    record: Any,
    field_name: str,
    kind: RuleKind,
    trials: list[Trial],
    context: ContextSpec = None,
    settings: ProbeSettings | None = None,
    emitter: ProbeEventEmitter | None = None,
) -> list[TrialOutcome]:
    """Run every trial in order. A mismatch never stops the remaining trials."""
    emitter = emitter or NullEmitter()
    outcomes: list[TrialOutcome] = []
    for trial in trials:
        outcome = run_trial(backend, record, field_name, kind, trial, context, settings)
        emitter.emit_trial_completed(field_name, outcome)
        outcomes.append(outcome)
    return outcomes


def probe_rule(
    backend: ValidationBackend,
    record: Any,
    field_name: str,
    kind: RuleKind,
    rule: SetRule | RangeRule,
    context: ContextSpec = None,
    settings: ProbeSettings | None = None,
    emitter: ProbeEventEmitter | None = None,
) -> list[TrialOutcome]:
    """Plan and run the trials proving ``rule`` on ``field_name``."""
    trials = plan_trials(kind, rule, settings)
    return run_trials(backend, record, field_name, kind, trials, context, settings, emitter)


def summarize_set_outcomes(outcomes: list[TrialOutcome]) -> tuple[list[str], list[str]]:
    """Split mismatched token trials into (allowed_but_rejected, rejected_but_allowed)."""
    allowed_but_rejected = [
        str(outcome.trial.token)
        for outcome in outcomes
        if outcome.trial.expect_pass and not outcome.validation_passed
    ]
    rejected_but_allowed = [
        str(outcome.trial.token)
        for outcome in outcomes
        if not outcome.trial.expect_pass and outcome.validation_passed
    ]
    return allowed_but_rejected, rejected_but_allowed


def mismatched(outcomes: list[TrialOutcome]) -> list[Trial]:
    return [outcome.trial for outcome in outcomes if not outcome.matched]
