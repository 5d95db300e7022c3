"""Fluent assertion matchers for attachment validation rules.

Matchers are frozen: every chain call returns a new matcher, so a partially
configured matcher can be shared and specialised safely::

    base = validate_content_type_of(backend, "avatar").on("create")
    base.allowing("image/png").rejecting("image/gif").matches(from_factory(User))
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from attachment_probe.adapters.backend import ValidationBackend
from attachment_probe.contracts import ProbeFailure
from attachment_probe.engine import mismatched, probe_rule, summarize_set_outcomes
from attachment_probe.events import NullEmitter, ProbeEventEmitter
from attachment_probe.gating import check_gates, normalize_context
from attachment_probe.messages import verify_custom_message
from attachment_probe.reporting import describe, render_failure_message
from attachment_probe.schema import (
    DIMENSION_AXES,
    SIZE_AXES,
    AttachmentProbeError,
    Bounds,
    ContextSpec,
    FromFactory,
    FromInstance,
    ProbeAssertionError,
    ProbeReport,
    ProbeSettings,
    RangeRule,
    RuleKind,
    SetRule,
    Subject,
    empty_range_rule,
)

logger = logging.getLogger(__name__)


def _flatten(tokens: tuple[Any, ...]) -> tuple[str, ...]:
    flat: list[str] = []
    for token in tokens:
        if isinstance(token, (set, frozenset)):
            flat.extend(sorted(str(item) for item in token))
        elif isinstance(token, (list, tuple)):
            flat.extend(str(item) for item in token)
        else:
            flat.append(str(token))
    return tuple(flat)


# ---------------------------------------------------------------------------
# Base matcher
# ---------------------------------------------------------------------------

class AttachmentMatcher(BaseModel):
    """Shared configuration and evaluation order for every matcher.

    Evaluation runs gating, then every rule trial, then the custom message
    check (only when all rule trials matched).
    """

    model_config = ConfigDict(frozen=True)

    kind: ClassVar[RuleKind]

    backend: Any
    field_name: str = Field(..., min_length=1)
    context: ContextSpec = None
    custom_message: str | None = None
    settings: ProbeSettings = Field(default_factory=ProbeSettings)

    @field_validator("backend")
    @classmethod
    def _validate_backend(cls, value: Any) -> Any:
        if not isinstance(value, ValidationBackend):
            raise ValueError(f"backend does not implement ValidationBackend: {value!r}")
        return value

    # Subclasses declare ``rule`` as a SetRule or RangeRule field.

    def _with(self, **changes: Any) -> Any:
        values = dict(self)
        values.update(changes)
        return type(self)(**values)

    # -- chain methods -----------------------------------------------------

    def on(self, context: Any) -> Any:
        """Probe under a named validation context (or several)."""
        return self._with(context=normalize_context(context))

    def with_message(self, message: str) -> Any:
        return self._with(custom_message=message)

    def with_settings(self, settings: ProbeSettings) -> Any:
        return self._with(settings=settings)

    # -- terminal operations ---------------------------------------------

    @property
    def description(self) -> str:
        return describe(self.kind, self.field_name)

    def evaluate(self, subject: Subject, emitter: ProbeEventEmitter | None = None) -> ProbeReport:
        """Probe ``subject`` and return the full report."""
        if not isinstance(subject, (FromFactory, FromInstance)):
            raise AttachmentProbeError(
                f"Subject must be from_factory(...) or from_instance(...), got {subject!r}"
            )
        emitter = emitter or NullEmitter()
        record = subject.resolve()

        gate = check_gates(self.backend, record, self.field_name, self.kind, self.context)
        if gate is not None:
            emitter.emit_gating_failed(gate)
            report = self._report(failures=[gate])
            emitter.emit_assertion_completed(report)
            return report

        outcomes = probe_rule(
            self.backend,
            record,
            self.field_name,
            self.kind,
            self.rule,
            self.context,
            self.settings,
            emitter,
        )
        mismatches = mismatched(outcomes)
        allowed_but_rejected: list[str] = []
        rejected_but_allowed: list[str] = []
        if isinstance(self.rule, SetRule):
            allowed_but_rejected, rejected_but_allowed = summarize_set_outcomes(outcomes)

        failures: list[ProbeFailure] = []
        message_checked = False
        if mismatches:
            failures.append(
                ProbeFailure.rule_mismatch(self.field_name, [trial.label for trial in mismatches])
            )
        elif self.custom_message is not None:
            message_outcome, message_failure = verify_custom_message(
                self.backend,
                record,
                self.field_name,
                self.kind,
                self.rule,
                self.custom_message,
                self.context,
                self.settings,
                emitter,
            )
            outcomes.append(message_outcome)
            message_checked = True
            if message_failure is not None:
                failures.append(message_failure)

        report = self._report(
            failures=failures,
            outcomes=outcomes,
            allowed_but_rejected=allowed_but_rejected,
            rejected_but_allowed=rejected_but_allowed,
            mismatched_trials=mismatches,
            message_checked=message_checked,
        )
        logger.info(
            "%s: %s after %d trials",
            report.description,
            "passed" if report.passed else "failed",
            report.trial_count,
        )
        emitter.emit_assertion_completed(report)
        return report

    def matches(self, subject: Subject, emitter: ProbeEventEmitter | None = None) -> bool:
        return self.evaluate(subject, emitter).passed

    def failure_message(self, report: ProbeReport) -> str:
        return render_failure_message(report)

    def assert_matches(self, subject: Subject, emitter: ProbeEventEmitter | None = None) -> ProbeReport:
        """Like ``evaluate`` but raise ``ProbeAssertionError`` on failure."""
        report = self.evaluate(subject, emitter)
        if not report.passed:
            raise ProbeAssertionError(render_failure_message(report))
        return report

    def _report(self, **values: Any) -> ProbeReport:
        return ProbeReport(
            field_name=self.field_name,
            kind=self.kind,
            rule=self.rule,
            description=self.description,
            **values,
        )


# ---------------------------------------------------------------------------
# Set-rule matchers
# ---------------------------------------------------------------------------

class _SetRuleMatcher(AttachmentMatcher):
    rule: SetRule = Field(default_factory=SetRule)

    def allowing(self, *tokens: Any) -> Any:
        return self._with(rule=SetRule(allowed=_flatten(tokens), rejected=self.rule.rejected))

    def rejecting(self, *tokens: Any) -> Any:
        return self._with(rule=SetRule(allowed=self.rule.allowed, rejected=_flatten(tokens)))


class ContentTypeMatcher(_SetRuleMatcher):
    kind: ClassVar[RuleKind] = "content_type"


class AspectRatioMatcher(_SetRuleMatcher):
    """Tokens: ``square``, ``portrait``, ``landscape`` or ``W:H`` (also ``is_W_H``)."""

    kind: ClassVar[RuleKind] = "aspect_ratio"


# ---------------------------------------------------------------------------
# Range-rule matchers
# ---------------------------------------------------------------------------

class DimensionMatcher(AttachmentMatcher):
    kind: ClassVar[RuleKind] = "dimensions"

    rule: RangeRule = Field(default_factory=lambda: empty_range_rule(DIMENSION_AXES))

    def _bounds(self, axis: str, minimum: int | None, maximum: int | None) -> DimensionMatcher:
        return self._with(rule=self.rule.with_bounds(axis, minimum, maximum))

    def width(self, width: int) -> DimensionMatcher:
        return self._bounds("width", width, width)

    def width_min(self, width: int) -> DimensionMatcher:
        return self._bounds("width", width, self.rule.width.maximum)

    def width_max(self, width: int) -> DimensionMatcher:
        return self._bounds("width", self.rule.width.minimum, width)

    def width_between(self, minimum: int, maximum: int) -> DimensionMatcher:
        return self._bounds("width", minimum, maximum)

    def height(self, height: int) -> DimensionMatcher:
        return self._bounds("height", height, height)

    def height_min(self, height: int) -> DimensionMatcher:
        return self._bounds("height", height, self.rule.height.maximum)

    def height_max(self, height: int) -> DimensionMatcher:
        return self._bounds("height", self.rule.height.minimum, height)

    def height_between(self, minimum: int, maximum: int) -> DimensionMatcher:
        return self._bounds("height", minimum, maximum)


class SizeMatcher(AttachmentMatcher):
    """Byte-size bounds; exclusive comparisons are converted to inclusive bounds."""

    kind: ClassVar[RuleKind] = "size"

    rule: RangeRule = Field(default_factory=lambda: empty_range_rule(SIZE_AXES))

    def _bounds(self, minimum: int | None, maximum: int | None) -> SizeMatcher:
        return self._with(rule=self.rule.with_bounds("byte_size", minimum, maximum))

    @property
    def _current(self) -> Bounds:
        return self.rule.axes["byte_size"]

    def less_than(self, size: int) -> SizeMatcher:
        return self._bounds(self._current.minimum, size - 1)

    def less_than_or_equal_to(self, size: int) -> SizeMatcher:
        return self._bounds(self._current.minimum, size)

    def greater_than(self, size: int) -> SizeMatcher:
        return self._bounds(size + 1, self._current.maximum)

    def greater_than_or_equal_to(self, size: int) -> SizeMatcher:
        return self._bounds(size, self._current.maximum)

    def between(self, minimum: int, maximum: int) -> SizeMatcher:
        return self._bounds(minimum, maximum)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def validate_content_type_of(backend: ValidationBackend, field_name: str) -> ContentTypeMatcher:
    return ContentTypeMatcher(backend=backend, field_name=field_name)


def validate_aspect_ratio_of(backend: ValidationBackend, field_name: str) -> AspectRatioMatcher:
    return AspectRatioMatcher(backend=backend, field_name=field_name)


def validate_dimensions_of(backend: ValidationBackend, field_name: str) -> DimensionMatcher:
    return DimensionMatcher(backend=backend, field_name=field_name)


def validate_size_of(backend: ValidationBackend, field_name: str) -> SizeMatcher:
    return SizeMatcher(backend=backend, field_name=field_name)
