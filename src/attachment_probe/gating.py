"""Checks that decide whether a field can be probed at all."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from attachment_probe.adapters.backend import ValidationBackend
from attachment_probe.contracts import ProbeFailure
from attachment_probe.schema import AttachmentProbeError, ContextSpec, RuleKind

logger = logging.getLogger(__name__)


def normalize_context(context: Any) -> ContextSpec:
    """Accept None, a context name, or a non-empty sequence of names."""
    if context is None:
        return None
    if isinstance(context, str):
        if not context.strip():
            raise AttachmentProbeError("Validation context name must not be empty")
        return context
    if isinstance(context, Sequence) and context:
        names = tuple(context)
        if all(isinstance(name, str) and name.strip() for name in names):
            return names
    raise AttachmentProbeError(
        f"Validation context must be a name or a sequence of names, got {context!r}"
    )


def check_gates(
    backend: ValidationBackend,
    record: Any,
    field_name: str,
    kind: RuleKind,
    context: ContextSpec = None,
) -> ProbeFailure | None:
    """Return the first gating failure, or None when probing may proceed.

    If/unless predicates on the validator are not evaluated here; they act
    through the record state and context the caller supplied.
    """
    if not backend.is_attachment_field(record, field_name):
        failure = ProbeFailure.not_an_attachment_field(field_name)
        logger.warning("Gating failed: %s", failure.detail)
        return failure

    if not backend.supports_context(record, field_name, context, kind):
        failure = ProbeFailure.unsupported_context(field_name, context)
        logger.warning("Gating failed: %s", failure.detail)
        return failure

    return None
