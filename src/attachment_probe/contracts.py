"""Failure payloads produced while probing an attachment rule."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ProbeFailure(BaseModel):
    """Structured cause of a failed assertion."""

    model_config = ConfigDict(frozen=True)

    code: Literal[
        "NOT_AN_ATTACHMENT_FIELD",
        "UNSUPPORTED_CONTEXT",
        "RULE_MISMATCH",
        "CUSTOM_MESSAGE_MISMATCH",
    ] = Field(..., description="Kind of failure")
    field_name: str = Field(..., min_length=1)
    detail: str = Field(..., min_length=1, description="Single-line explanation")
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def fatal(self) -> bool:
        """Gating failures stop the assertion before any trial runs."""
        return self.code in {"NOT_AN_ATTACHMENT_FIELD", "UNSUPPORTED_CONTEXT"}

    @staticmethod
    def not_an_attachment_field(field_name: str) -> ProbeFailure:
        return ProbeFailure(
            code="NOT_AN_ATTACHMENT_FIELD",
            field_name=field_name,
            detail=f"{field_name} is not an attachment field",
        )

    @staticmethod
    def unsupported_context(field_name: str, context: Any) -> ProbeFailure:
        """Create an UNSUPPORTED_CONTEXT failure.

        Args:
            field_name: The probed attachment field
            context: The context the matcher declared (None for the default)
        """
        shown = "the default context" if context is None else f"context {context!r}"
        return ProbeFailure(
            code="UNSUPPORTED_CONTEXT",
            field_name=field_name,
            detail=f"validation of {field_name} is not declared for {shown}",
            data={"context": list(context) if isinstance(context, tuple) else context},
        )

    @staticmethod
    def rule_mismatch(field_name: str, mismatches: list[str]) -> ProbeFailure:
        """Create a RULE_MISMATCH failure listing every mismatched trial label."""
        count = len(mismatches)
        noun = "trial" if count == 1 else "trials"
        return ProbeFailure(
            code="RULE_MISMATCH",
            field_name=field_name,
            detail=f"{count} {noun} on {field_name} did not behave as declared",
            data={"mismatches": mismatches},
        )

    @staticmethod
    def custom_message_mismatch(
        field_name: str,
        expected: str,
        observed: list[str],
    ) -> ProbeFailure:
        """Create a CUSTOM_MESSAGE_MISMATCH failure.

        Args:
            field_name: The probed attachment field
            expected: The declared custom message
            observed: Messages actually produced on the field
        """
        return ProbeFailure(
            code="CUSTOM_MESSAGE_MISMATCH",
            field_name=field_name,
            detail=f"expected error message {expected!r} on {field_name}, got {observed!r}",
            data={"expected": expected, "observed": observed},
        )
