"""Declarative probe plans: many attachment assertions in one YAML file.

Example::

    settings:
      default_ceiling: 4000
    assertions:
      - record: User
        field: avatar
        kind: content_type
        allowing: [image/png, image/jpeg]
        rejecting: [image/gif]
        on: create
        message: must be a PNG or JPEG
      - record: User
        field: banner
        kind: dimensions
        width: {min: 800, max: 1600}
        height: {exact: 400}

Aspect tokens such as ``"16:9"`` must be quoted, otherwise YAML reads them
as sexagesimal integers.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

from attachment_probe.adapters.backend import ValidationBackend
from attachment_probe.events import ProbeEventEmitter
from attachment_probe.matchers import (
    AttachmentMatcher,
    validate_aspect_ratio_of,
    validate_content_type_of,
    validate_dimensions_of,
    validate_size_of,
)
from attachment_probe.reporting import render_failure_message, render_summary
from attachment_probe.schema import (
    AttachmentProbeError,
    ProbeReport,
    ProbeSettings,
    RuleKind,
    from_factory,
)

logger = logging.getLogger(__name__)


class PlanBounds(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    min: int | None = None
    max: int | None = None
    exact: int | None = None

    @model_validator(mode="after")
    def _validate_exact(self) -> PlanBounds:
        if self.exact is not None and (self.min is not None or self.max is not None):
            raise ValueError("'exact' cannot be combined with 'min' or 'max'")
        return self

    def resolved(self) -> tuple[int | None, int | None]:
        if self.exact is not None:
            return self.exact, self.exact
        return self.min, self.max


_SET_KINDS = frozenset({"content_type", "aspect_ratio"})
_AXES_BY_KIND: dict[str, frozenset[str]] = {
    "dimensions": frozenset({"width", "height"}),
    "size": frozenset({"byte_size"}),
}


class PlanAssertion(BaseModel):
    """One matcher declaration inside a probe plan."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    record: str = Field(..., min_length=1)
    field: str = Field(..., min_length=1)
    kind: RuleKind
    allowing: list[str] = Field(default_factory=list)
    rejecting: list[str] = Field(default_factory=list)
    width: PlanBounds | None = None
    height: PlanBounds | None = None
    byte_size: PlanBounds | None = None
    context: str | list[str] | None = Field(default=None, alias="on")
    message: str | None = None

    @model_validator(mode="after")
    def _validate_shape(self) -> PlanAssertion:
        declared_axes = {
            axis
            for axis in ("width", "height", "byte_size")
            if getattr(self, axis) is not None
        }
        if self.kind in _SET_KINDS:
            if declared_axes:
                raise ValueError(f"{self.kind} assertions take allowing/rejecting, not {sorted(declared_axes)}")
            if not self.allowing and not self.rejecting:
                raise ValueError(f"{self.kind} assertion needs 'allowing' or 'rejecting'")
        else:
            if self.allowing or self.rejecting:
                raise ValueError(f"{self.kind} assertions take bounds, not allowing/rejecting")
            extra = declared_axes - _AXES_BY_KIND[self.kind]
            if extra:
                raise ValueError(f"{self.kind} assertions do not accept {sorted(extra)}")
        return self

    @property
    def key(self) -> tuple[str, str, str]:
        return self.record, self.field, self.kind


class ProbePlan(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    settings: ProbeSettings = Field(default_factory=ProbeSettings)
    assertions: list[PlanAssertion] = Field(default_factory=list)


class PlanEntryResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    record: str
    report: ProbeReport

    @property
    def passed(self) -> bool:
        return self.report.passed


class PlanRunReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    results: list[PlanEntryResult] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(result.passed for result in self.results)

    @property
    def failed(self) -> list[PlanEntryResult]:
        return [result for result in self.results if not result.passed]

    def render(self) -> str:
        lines: list[str] = []
        for result in self.results:
            lines.append(f"{result.record}: {render_summary(result.report)}")
            if not result.passed:
                for line in render_failure_message(result.report).splitlines():
                    lines.append(f"    {line}")
        return "\n".join(lines)


def parse_probe_plan(raw: Any) -> ProbePlan:
    """Validate already-parsed YAML data as a probe plan."""
    if raw is None:
        raw = {}
    if isinstance(raw, list):
        raw = {"assertions": raw}
    if not isinstance(raw, dict):
        raise AttachmentProbeError("Probe plan must be a mapping or a list of assertions")

    assertions = raw.get("assertions")
    if isinstance(assertions, list):
        raw = dict(raw)
        raw["assertions"] = [normalize_assertion_keys(entry) for entry in assertions]
    return ProbePlan.model_validate(raw)


def normalize_assertion_keys(entry: Any) -> Any:
    # YAML 1.1 loads a bare ``on:`` key as the boolean True.
    if isinstance(entry, dict) and True in entry and "on" not in entry:
        entry = dict(entry)
        entry["on"] = entry.pop(True)
    return entry


def load_probe_plan(path: Path | str) -> ProbePlan:
    """Load a probe plan from a YAML file."""
    plan_path = Path(path)
    if not plan_path.exists():
        raise AttachmentProbeError(f"Probe plan not found: {plan_path}")

    with open(plan_path, "r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle)

    plan = parse_probe_plan(raw)
    if not plan.assertions:
        raise AttachmentProbeError(f"Probe plan has no assertions: {plan_path}")
    return plan


def build_matcher(
    entry: PlanAssertion,
    backend: ValidationBackend,
    settings: ProbeSettings | None = None,
) -> AttachmentMatcher:
    """Turn one plan entry into a configured matcher."""
    matcher: Any
    if entry.kind == "content_type":
        matcher = validate_content_type_of(backend, entry.field)
    elif entry.kind == "aspect_ratio":
        matcher = validate_aspect_ratio_of(backend, entry.field)
    elif entry.kind == "dimensions":
        matcher = validate_dimensions_of(backend, entry.field)
    else:
        matcher = validate_size_of(backend, entry.field)

    if entry.kind in _SET_KINDS:
        matcher = matcher.allowing(*entry.allowing).rejecting(*entry.rejecting)
    elif entry.kind == "dimensions":
        if entry.width is not None:
            matcher = matcher.width_between(*entry.width.resolved())
        if entry.height is not None:
            matcher = matcher.height_between(*entry.height.resolved())
    elif entry.byte_size is not None:
        matcher = matcher.between(*entry.byte_size.resolved())

    if entry.context is not None:
        matcher = matcher.on(entry.context)
    if entry.message is not None:
        matcher = matcher.with_message(entry.message)
    if settings is not None:
        matcher = matcher.with_settings(settings)
    return matcher


def run_probe_plan(
    plan: ProbePlan,
    backend: ValidationBackend,
    factories: dict[str, Callable[[], Any]],
    emitter: ProbeEventEmitter | None = None,
) -> PlanRunReport:
    """Evaluate every assertion against a fresh record from ``factories``."""
    missing = sorted({entry.record for entry in plan.assertions} - set(factories))
    if missing:
        raise AttachmentProbeError(f"No record factory registered for: {', '.join(missing)}")

    results: list[PlanEntryResult] = []
    for entry in plan.assertions:
        matcher = build_matcher(entry, backend, plan.settings)
        report = matcher.evaluate(from_factory(factories[entry.record]), emitter)
        results.append(PlanEntryResult(record=entry.record, report=report))

    run_report = PlanRunReport(results=results)
    logger.info(
        "Probe plan finished: %d assertions, %d failed",
        len(run_report.results),
        len(run_report.failed),
    )
    return run_report
