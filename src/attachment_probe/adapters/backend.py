"""Protocols for the record/validation framework being probed."""

from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable

from attachment_probe.schema import AttachmentDescriptor, ContextSpec, ValidationOutcome


@runtime_checkable
class MetadataProvider(Protocol):
    """Answers metadata lookups (width, height, byte_size) during a validation run."""

    def resolve(self, attachment: Any, key: str, fallback: Callable[[], Any]) -> Any: ...


@runtime_checkable
class ValidationBackend(Protocol):
    """Protocol for the host framework that owns attachment fields and validators.

    ``run_validations`` must route every metadata lookup through ``metadata``
    when one is given, passing its own extraction as the fallback.
    """

    def is_attachment_field(self, record: Any, name: str) -> bool: ...

    def attach(self, record: Any, name: str, descriptor: AttachmentDescriptor) -> Any: ...

    def run_validations(
        self,
        record: Any,
        context: ContextSpec,
        metadata: MetadataProvider | None = None,
    ) -> ValidationOutcome: ...

    def supports_context(
        self,
        record: Any,
        name: str,
        context: ContextSpec,
        kind: str | None = None,
    ) -> bool: ...
