"""Human-readable descriptions and failure diagnostics for probe reports."""

from __future__ import annotations

from attachment_probe.schema import ProbeReport, RangeRule, RuleKind, SetRule

_SET_NOUNS: dict[str, str] = {
    "content_type": "content types",
    "aspect_ratio": "aspect ratios",
}

_RANGE_SUBJECTS: dict[str, str] = {
    "dimensions": "dimensions",
    "size": "file size",
}

_AXIS_LABELS: dict[str, str] = {
    "width": "width",
    "height": "height",
    "byte_size": "size",
}


def describe(kind: RuleKind, field_name: str) -> str:
    if kind == "content_type":
        return f"validate the content types allowed on attachment {field_name}"
    if kind == "aspect_ratio":
        return f"validate the aspect ratios allowed on attachment {field_name}"
    if kind == "dimensions":
        return f"validate image dimensions of {field_name}"
    return f"validate file size of {field_name}"


def _set_lines(report: ProbeReport, rule: SetRule) -> list[str]:
    noun = _SET_NOUNS.get(report.kind, "values")
    lines = [f"Expected {report.field_name}"]
    if report.allowed_but_rejected:
        lines.append(f"Accept {noun}: {', '.join(rule.allowed)}")
        lines.append(f"{', '.join(report.allowed_but_rejected)} were rejected")
    if report.rejected_but_allowed:
        lines.append(f"Reject {noun}: {', '.join(rule.rejected)}")
        lines.append(f"{', '.join(report.rejected_but_allowed)} were accepted")
    return lines


def _range_lines(report: ProbeReport, rule: RangeRule) -> list[str]:
    subject = _RANGE_SUBJECTS.get(report.kind, report.kind)
    lines = [f"is expected to validate {subject} of {report.field_name}"]
    for axis, bounds in rule.axes.items():
        lines.append(f"  {_AXIS_LABELS.get(axis, axis)} {bounds.describe()}")
    for trial in report.mismatched_trials:
        observed = "failed" if trial.expect_pass else "passed"
        lines.append(f"  {trial.label}: validation {observed}")
    return lines


def render_failure_message(report: ProbeReport) -> str:
    """Render every failure in ``report``; empty string when it passed."""
    if report.passed:
        return ""

    fatal = [failure for failure in report.failures if failure.fatal]
    if fatal:
        return "\n".join([f"Expected {report.field_name}", fatal[0].detail])

    lines: list[str] = []
    if report.mismatched_trials:
        if isinstance(report.rule, SetRule):
            lines.extend(_set_lines(report, report.rule))
        else:
            lines.extend(_range_lines(report, report.rule))

    for failure in report.failures:
        if failure.code == "CUSTOM_MESSAGE_MISMATCH":
            if not lines:
                lines.append(f"Expected {report.field_name}")
            lines.append(failure.detail)

    return "\n".join(lines)


def render_summary(report: ProbeReport) -> str:
    """One-line status, e.g. for plan runs."""
    status = "PASS" if report.passed else "FAIL"
    return f"[{status}] {report.description} ({report.trial_count} trials)"
