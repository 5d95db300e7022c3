"""Compatibility diagnostics for probe-plan files.

``check_probe_plan_file`` validates a plan without running any probe. It
never raises; every problem becomes an issue in the returned report.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from attachment_probe.plan import PlanAssertion, normalize_assertion_keys
from attachment_probe.schema import ProbeSettings


class PlanIssue(BaseModel):
    """A single problem found in a probe-plan file."""

    model_config = ConfigDict(frozen=True)

    code: str
    field: str
    message: str
    severity: Literal["error", "warning"]


class PlanCheckReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    is_valid: bool
    assertion_count: int
    issues: list[PlanIssue]

    @property
    def errors(self) -> list[PlanIssue]:
        return [issue for issue in self.issues if issue.severity == "error"]


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


def check_probe_plan_file(path: Path | str) -> PlanCheckReport:
    """Validate a probe-plan YAML file.

    Checks, in order:
    1. YAML parses and the root is a mapping (or a bare list of assertions)
    2. ``settings``, when present, is a valid settings mapping
    3. At least one assertion is declared
    4. Each assertion is well formed for its kind
    5. No two assertions share the same record, field and kind (warning)
    """
    path_str = str(path)
    issues: list[PlanIssue] = []

    try:
        data: Any = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
        issues.append(PlanIssue(
            code="YAML_PARSE_ERROR",
            field="<root>",
            message=f"YAML parse failed: {exc}",
            severity="error",
        ))
        return _build_report(path_str, 0, issues)

    if isinstance(data, list):
        data = {"assertions": data}
    if data is None:
        data = {}
    if not isinstance(data, dict):
        issues.append(PlanIssue(
            code="YAML_PARSE_ERROR",
            field="<root>",
            message="YAML root must be a mapping or a list of assertions",
            severity="error",
        ))
        return _build_report(path_str, 0, issues)

    if "settings" in data:
        try:
            ProbeSettings.model_validate(data["settings"] or {})
        except ValidationError as exc:
            issues.append(PlanIssue(
                code="INVALID_SETTINGS",
                field="settings",
                message=_first_error(exc),
                severity="error",
            ))

    raw_assertions = data.get("assertions") or []
    if not isinstance(raw_assertions, list):
        raw_assertions = []
    if not raw_assertions:
        issues.append(PlanIssue(
            code="NO_ASSERTIONS",
            field="assertions",
            message="Probe plan must declare at least one assertion",
            severity="error",
        ))

    seen: set[tuple[str, str, str]] = set()
    for i, raw_entry in enumerate(raw_assertions):
        try:
            entry = PlanAssertion.model_validate(normalize_assertion_keys(raw_entry))
        except ValidationError as exc:
            issues.append(PlanIssue(
                code="INVALID_ASSERTION",
                field=f"assertions[{i}]",
                message=_first_error(exc),
                severity="error",
            ))
            continue

        if entry.key in seen:
            issues.append(PlanIssue(
                code="DUPLICATE_ASSERTION",
                field=f"assertions[{i}]",
                message=(
                    f"assertions[{i}] repeats {entry.kind} on {entry.record}.{entry.field}"
                ),
                severity="warning",
            ))
        seen.add(entry.key)

    return _build_report(path_str, len(raw_assertions), issues)


def _build_report(path_str: str, assertion_count: int, issues: list[PlanIssue]) -> PlanCheckReport:
    return PlanCheckReport(
        path=path_str,
        is_valid=not any(issue.severity == "error" for issue in issues),
        assertion_count=assertion_count,
        issues=issues,
    )
