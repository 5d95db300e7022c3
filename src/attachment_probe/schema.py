"""Core probe types and YAML settings loading."""

from __future__ import annotations

import io
import os
from pathlib import Path
from typing import Any, Callable, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from attachment_probe.contracts import ProbeFailure


class AttachmentProbeError(RuntimeError):
    """Raised when a probe is misconfigured or its inputs cannot be loaded."""


class ProbeAssertionError(AssertionError):
    """Raised by ``assert_matches`` when observed behaviour differs from the rule."""


RuleKind = Literal["content_type", "aspect_ratio", "dimensions", "size"]

ContextSpec = str | tuple[str, ...] | None

SETTINGS_ENV_VAR = "ATTACHMENT_PROBE_SETTINGS"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class ProbeSettings(BaseModel):
    """Constants used when synthesizing attachments and boundary trials."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    default_floor: int = 0
    default_ceiling: int = 2000
    sentinel: int = -1
    aspect_unit: int = Field(default=100, gt=0)
    payload: bytes = b"Hello world!"
    filename: str = Field(default="test.png", min_length=1)
    content_type: str = Field(default="image/png", min_length=1)
    invalid_content_type: str = Field(default="fake/fake", min_length=1)

    @model_validator(mode="after")
    def _validate_default_range(self) -> ProbeSettings:
        if self.default_floor > self.default_ceiling:
            raise ValueError(
                f"default_floor ({self.default_floor}) > default_ceiling ({self.default_ceiling})"
            )
        return self


def load_probe_settings(path: Path | str | None = None) -> ProbeSettings:
    """Load probe settings from a YAML mapping.

    With no path, ``ATTACHMENT_PROBE_SETTINGS`` is consulted; when that is
    unset too the defaults are returned.
    """
    if path is None:
        env_value = os.environ.get(SETTINGS_ENV_VAR, "").strip()
        if not env_value:
            return ProbeSettings()
        path = env_value

    settings_path = Path(path)
    if not settings_path.exists():
        raise AttachmentProbeError(f"Probe settings not found: {settings_path}")

    with open(settings_path, "r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    if not isinstance(raw, dict):
        raise AttachmentProbeError(f"Probe settings must be a mapping: {settings_path}")

    # Allow the settings to be nested under a ``probe`` key.
    if isinstance(raw.get("probe"), dict):
        raw = raw["probe"]
    return ProbeSettings.model_validate(raw)


# ---------------------------------------------------------------------------
# Declared rules
# ---------------------------------------------------------------------------

class SetRule(BaseModel):
    """Discrete allow/reject rule over MIME types or aspect tokens."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed: tuple[str, ...] = ()
    rejected: tuple[str, ...] = ()

    @field_validator("allowed", "rejected", mode="before")
    @classmethod
    def _coerce_tokens(cls, value: Any) -> Any:
        if isinstance(value, str):
            return (value,)
        if isinstance(value, (set, frozenset)):
            return tuple(sorted(str(token) for token in value))
        if isinstance(value, list):
            return tuple(str(token) for token in value)
        return value


class Bounds(BaseModel):
    """Inclusive bounds on one numeric axis; either side may be open."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    minimum: int | None = None
    maximum: int | None = None

    @model_validator(mode="after")
    def _validate_order(self) -> Bounds:
        if self.minimum is not None and self.maximum is not None and self.minimum > self.maximum:
            raise ValueError(f"minimum ({self.minimum}) > maximum ({self.maximum})")
        return self

    @property
    def is_set(self) -> bool:
        return self.minimum is not None or self.maximum is not None

    @property
    def fixed(self) -> bool:
        return self.minimum is not None and self.minimum == self.maximum

    def midpoint(self, floor: int, ceiling: int) -> int:
        low = self.minimum if self.minimum is not None else floor
        high = self.maximum if self.maximum is not None else ceiling
        return (low + high) // 2

    def describe(self) -> str:
        low = "any" if self.minimum is None else str(self.minimum)
        high = "any" if self.maximum is None else str(self.maximum)
        return f"between {low} and {high}"


DIMENSION_AXES: tuple[str, ...] = ("width", "height")
SIZE_AXES: tuple[str, ...] = ("byte_size",)


class RangeRule(BaseModel):
    """Inclusive numeric bounds per metadata axis.

    Dimension rules carry ``width`` and ``height``; size rules carry
    ``byte_size``. Axes without bounds produce no trials but are still
    mocked at their midpoint while other axes are probed.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    axes: dict[str, Bounds] = Field(
        default_factory=lambda: {axis: Bounds() for axis in DIMENSION_AXES}
    )

    @field_validator("axes")
    @classmethod
    def _validate_axes(cls, value: dict[str, Bounds]) -> dict[str, Bounds]:
        unknown = set(value) - set(DIMENSION_AXES + SIZE_AXES)
        if unknown:
            raise ValueError(f"Unknown axes: {sorted(unknown)}")
        return value

    @property
    def width(self) -> Bounds:
        return self.axes.get("width", Bounds())

    @property
    def height(self) -> Bounds:
        return self.axes.get("height", Bounds())

    def with_bounds(self, axis: str, minimum: int | None, maximum: int | None) -> RangeRule:
        if axis not in self.axes:
            raise AttachmentProbeError(f"Unknown axis {axis!r}; expected one of {sorted(self.axes)}")
        axes = dict(self.axes)
        axes[axis] = Bounds(minimum=minimum, maximum=maximum)
        return RangeRule(axes=axes)


def empty_range_rule(axes: tuple[str, ...]) -> RangeRule:
    return RangeRule(axes={axis: Bounds() for axis in axes})


# ---------------------------------------------------------------------------
# Subjects
# ---------------------------------------------------------------------------

class FromFactory(BaseModel):
    """Subject built by calling a zero-argument factory (usually a record class)."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["factory"] = "factory"
    factory: Callable[[], Any]

    def resolve(self) -> Any:
        return self.factory()


class FromInstance(BaseModel):
    """Subject that is an already constructed record."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["instance"] = "instance"
    record: Any

    def resolve(self) -> Any:
        return self.record


Subject = FromFactory | FromInstance


def from_factory(factory: Callable[[], Any]) -> FromFactory:
    return FromFactory(factory=factory)


def from_instance(record: Any) -> FromInstance:
    return FromInstance(record=record)


# ---------------------------------------------------------------------------
# Synthetic attachments and trials
# ---------------------------------------------------------------------------

class AttachmentDescriptor(BaseModel):
    """What gets handed to the backend's ``attach``."""

    model_config = ConfigDict(frozen=True)

    payload: bytes
    filename: str = Field(..., min_length=1)
    content_type: str = Field(..., min_length=1)

    def open(self) -> io.BytesIO:
        return io.BytesIO(self.payload)


class SyntheticAttachment(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    field_name: str
    record: Any
    descriptor: AttachmentDescriptor
    handle: Any

    @property
    def declared_type(self) -> str:
        return self.descriptor.content_type

    @property
    def declared_name(self) -> str:
        return self.descriptor.filename


class Trial(BaseModel):
    """One synthetic attachment plus mocked metadata and the expected verdict."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    label: str
    content_type: str
    filename: str
    width: int | None = None
    height: int | None = None
    byte_size: int | None = None
    token: str | None = None
    axis: str | None = None
    value: int | None = None
    expect_pass: bool

    def mocked(self) -> dict[str, int]:
        """Metadata overrides for this trial, omitting axes it does not mock."""
        values = {"width": self.width, "height": self.height, "byte_size": self.byte_size}
        return {key: value for key, value in values.items() if value is not None}


class TrialOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    trial: Trial
    ran: bool = True
    validation_passed: bool
    errors: list[str] = Field(default_factory=list)

    @property
    def matched(self) -> bool:
        return self.validation_passed == self.trial.expect_pass


# ---------------------------------------------------------------------------
# Validation results reported by the backend
# ---------------------------------------------------------------------------

class FieldError(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    kind: str | None = None


class ValidationOutcome(BaseModel):
    """Errors produced by one validation run, keyed by field name."""

    model_config = ConfigDict(frozen=True)

    errors: dict[str, list[FieldError]] = Field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not any(self.errors.values())

    def errors_for(self, name: str, kind: str | None = None) -> list[str]:
        """Messages on ``name``; with ``kind``, only that validator's and untagged ones."""
        return [
            error.message
            for error in self.errors.get(name, [])
            if kind is None or error.kind is None or error.kind == kind
        ]

    def passes(self, name: str, kind: str | None = None) -> bool:
        return not self.errors_for(name, kind)


# ---------------------------------------------------------------------------
# Assertion report
# ---------------------------------------------------------------------------

class ProbeReport(BaseModel):
    """Everything observed while evaluating one matcher against one subject."""

    model_config = ConfigDict(frozen=True)

    field_name: str
    kind: RuleKind
    rule: SetRule | RangeRule
    description: str
    failures: list[ProbeFailure] = Field(default_factory=list)
    outcomes: list[TrialOutcome] = Field(default_factory=list)
    allowed_but_rejected: list[str] = Field(default_factory=list)
    rejected_but_allowed: list[str] = Field(default_factory=list)
    mismatched_trials: list[Trial] = Field(default_factory=list)
    message_checked: bool = False

    @property
    def passed(self) -> bool:
        return not self.failures

    @property
    def trial_count(self) -> int:
        return len(self.outcomes)
