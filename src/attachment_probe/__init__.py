"""Public API for attachment-probe."""

from attachment_probe.adapters.backend import MetadataProvider, ValidationBackend
from attachment_probe.attachments import attach_synthetic, filename_for
from attachment_probe.contracts import ProbeFailure
from attachment_probe.diagnostics import PlanCheckReport, PlanIssue, check_probe_plan_file
from attachment_probe.engine import probe_rule, run_trial, run_trials, summarize_set_outcomes
from attachment_probe.events import JsonlEventLog, NullEmitter, ProbeEventEmitter
from attachment_probe.gating import check_gates, normalize_context
from attachment_probe.matchers import (
    AspectRatioMatcher,
    AttachmentMatcher,
    ContentTypeMatcher,
    DimensionMatcher,
    SizeMatcher,
    validate_aspect_ratio_of,
    validate_content_type_of,
    validate_dimensions_of,
    validate_size_of,
)
from attachment_probe.messages import verify_custom_message
from attachment_probe.metadata import MockedMetadata, mocked_metadata, with_mocked_metadata
from attachment_probe.plan import (
    PlanAssertion,
    PlanRunReport,
    ProbePlan,
    build_matcher,
    load_probe_plan,
    parse_probe_plan,
    run_probe_plan,
)
from attachment_probe.planner import (
    plan_message_trial,
    plan_range_trials,
    plan_set_trials,
    representative_dimensions,
)
from attachment_probe.reporting import describe, render_failure_message
from attachment_probe.schema import (
    AttachmentDescriptor,
    AttachmentProbeError,
    Bounds,
    FieldError,
    FromFactory,
    FromInstance,
    ProbeAssertionError,
    ProbeReport,
    ProbeSettings,
    RangeRule,
    SetRule,
    SyntheticAttachment,
    Trial,
    TrialOutcome,
    ValidationOutcome,
    from_factory,
    from_instance,
    load_probe_settings,
)

__all__ = [
    # Collaborator protocols
    "MetadataProvider",
    "ValidationBackend",
    # Value objects
    "AttachmentDescriptor",
    "Bounds",
    "FieldError",
    "FromFactory",
    "FromInstance",
    "ProbeFailure",
    "ProbeReport",
    "RangeRule",
    "SetRule",
    "SyntheticAttachment",
    "Trial",
    "TrialOutcome",
    "ValidationOutcome",
    "from_factory",
    "from_instance",
    # Errors
    "AttachmentProbeError",
    "ProbeAssertionError",
    # Settings
    "ProbeSettings",
    "load_probe_settings",
    # Metadata mocking
    "MockedMetadata",
    "mocked_metadata",
    "with_mocked_metadata",
    # Synthetic attachments
    "attach_synthetic",
    "filename_for",
    # Trial planning and execution
    "plan_message_trial",
    "plan_range_trials",
    "plan_set_trials",
    "representative_dimensions",
    "probe_rule",
    "run_trial",
    "run_trials",
    "summarize_set_outcomes",
    # Gating and messages
    "check_gates",
    "normalize_context",
    "verify_custom_message",
    # Matchers
    "AspectRatioMatcher",
    "AttachmentMatcher",
    "ContentTypeMatcher",
    "DimensionMatcher",
    "SizeMatcher",
    "validate_aspect_ratio_of",
    "validate_content_type_of",
    "validate_dimensions_of",
    "validate_size_of",
    # Reporting
    "describe",
    "render_failure_message",
    # Events
    "JsonlEventLog",
    "NullEmitter",
    "ProbeEventEmitter",
    # Probe plans
    "PlanAssertion",
    "PlanCheckReport",
    "PlanIssue",
    "PlanRunReport",
    "ProbePlan",
    "build_matcher",
    "check_probe_plan_file",
    "load_probe_plan",
    "parse_probe_plan",
    "run_probe_plan",
]
