"""Synthetic attachment construction."""

from __future__ import annotations

from typing import Any

from attachment_probe.adapters.backend import ValidationBackend
from attachment_probe.schema import AttachmentDescriptor, ProbeSettings, SyntheticAttachment


def filename_for(content_type: str) -> str:
    """``image/png`` -> ``test.png``; the subtype becomes the extension."""
    suffix = content_type.split("/")[-1] or "bin"
    return f"test.{suffix}"


def attach_synthetic(
    backend: ValidationBackend,
    record: Any,
    field_name: str,
    *,
    content_type: str | None = None,
    filename: str | None = None,
    settings: ProbeSettings | None = None,
) -> SyntheticAttachment:
    """Attach the fixed payload to ``field_name``, replacing any previous attachment."""
    settings = settings or ProbeSettings()
    descriptor = AttachmentDescriptor(
        payload=settings.payload,
        filename=filename or settings.filename,
        content_type=content_type or settings.content_type,
    )
    handle = backend.attach(record, field_name, descriptor)
    return SyntheticAttachment(
        field_name=field_name,
        record=record,
        descriptor=descriptor,
        handle=handle,
    )
