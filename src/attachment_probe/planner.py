"""Deterministic trial planning for declared attachment rules.

A SetRule becomes one trial per token. A RangeRule becomes boundary trials
per bounded axis:

=====================  ==========  ======
Bound set              Value       Must
=====================  ==========  ======
min                    min - 1     fail
min, min != max        min + 1     pass
max, min != max        max - 1     pass
max                    max + 1     fail
min, min == max        min         pass
=====================  ==========  ======

Axes that are not being probed are held at their midpoint, with open bounds
defaulting to ``ProbeSettings.default_floor``/``default_ceiling``.
"""

from __future__ import annotations

import re

from attachment_probe.attachments import filename_for
from attachment_probe.schema import (
    Bounds,
    ProbeSettings,
    RangeRule,
    RuleKind,
    SetRule,
    Trial,
)

ASPECT_RATIO_PATTERN = re.compile(r"^(?:is_(\d+)_(\d+)|(\d+):(\d+))$")

_NAMED_ASPECTS: dict[str, tuple[int, int]] = {
    "square": (1, 1),
    "portrait": (1, 2),
    "landscape": (2, 1),
}


def representative_dimensions(token: str, settings: ProbeSettings | None = None) -> tuple[int, int]:
    """Width and height satisfying an aspect token, or the sentinel pair."""
    settings = settings or ProbeSettings()
    unit = settings.aspect_unit
    token = str(token).strip()

    if token in _NAMED_ASPECTS:
        x, y = _NAMED_ASPECTS[token]
        return unit * x, unit * y

    match = ASPECT_RATIO_PATTERN.match(token)
    if match:
        groups = [g for g in match.groups() if g is not None]
        x, y = int(groups[0]), int(groups[1])
        return unit * x, unit * y

    return settings.sentinel, settings.sentinel


def _set_trial(kind: RuleKind, token: str, expect_pass: bool, settings: ProbeSettings) -> Trial:
    verb = "accept" if expect_pass else "reject"
    if kind == "content_type":
        return Trial(
            label=f"{verb} {token}",
            content_type=token,
            filename=filename_for(token),
            token=token,
            expect_pass=expect_pass,
        )
    width, height = representative_dimensions(token, settings)
    return Trial(
        label=f"{verb} {token} ({width}x{height})",
        content_type=settings.content_type,
        filename=settings.filename,
        width=width,
        height=height,
        token=token,
        expect_pass=expect_pass,
    )


def plan_set_trials(kind: RuleKind, rule: SetRule, settings: ProbeSettings | None = None) -> list[Trial]:
    """One passing trial per allowed token, then one failing trial per rejected token."""
    settings = settings or ProbeSettings()
    trials = [_set_trial(kind, token, True, settings) for token in rule.allowed]
    trials.extend(_set_trial(kind, token, False, settings) for token in rule.rejected)
    return trials


def _boundary_values(bounds: Bounds) -> list[tuple[int, bool]]:
    if not bounds.is_set:
        return []
    minimum, maximum = bounds.minimum, bounds.maximum
    if bounds.fixed:
        return [(minimum - 1, False), (maximum + 1, False), (minimum, True)]

    values: list[tuple[int, bool]] = []
    if minimum is not None:
        values.extend([(minimum - 1, False), (minimum + 1, True)])
    if maximum is not None:
        values.extend([(maximum - 1, True), (maximum + 1, False)])
    return values


def midpoints(rule: RangeRule, settings: ProbeSettings | None = None) -> dict[str, int]:
    settings = settings or ProbeSettings()
    return {
        axis: bounds.midpoint(settings.default_floor, settings.default_ceiling)
        for axis, bounds in rule.axes.items()
    }


def plan_range_trials(rule: RangeRule, settings: ProbeSettings | None = None) -> list[Trial]:
    """Boundary trials for every bounded axis, in axis declaration order."""
    settings = settings or ProbeSettings()
    held = midpoints(rule, settings)
    trials: list[Trial] = []

    for axis, bounds in rule.axes.items():
        for value, expect_pass in _boundary_values(bounds):
            mocked = dict(held)
            mocked[axis] = value
            verb = "accept" if expect_pass else "reject"
            trials.append(
                Trial(
                    label=f"{verb} {axis} {value}",
                    content_type=settings.content_type,
                    filename=settings.filename,
                    axis=axis,
                    value=value,
                    expect_pass=expect_pass,
                    **mocked,
                )
            )
    return trials


def plan_message_trial(kind: RuleKind, rule: SetRule | RangeRule, settings: ProbeSettings | None = None) -> Trial:
    """A trial no real validator can accept, used to elicit the error message."""
    settings = settings or ProbeSettings()
    if kind == "content_type":
        invalid = settings.invalid_content_type
        return Trial(
            label=f"reject {invalid}",
            content_type=invalid,
            filename=filename_for(invalid),
            token=invalid,
            expect_pass=False,
        )

    mocked: dict[str, int]
    if isinstance(rule, RangeRule):
        mocked = {axis: settings.sentinel for axis in rule.axes}
    else:
        mocked = {"width": settings.sentinel, "height": settings.sentinel}
    return Trial(
        label="reject sentinel metadata",
        content_type=settings.content_type,
        filename=settings.filename,
        expect_pass=False,
        **mocked,
    )


def plan_trials(kind: RuleKind, rule: SetRule | RangeRule, settings: ProbeSettings | None = None) -> list[Trial]:
    if isinstance(rule, SetRule):
        return plan_set_trials(kind, rule, settings)
    return plan_range_trials(rule, settings)
