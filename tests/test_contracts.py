"""Tests for probe failure payloads."""

import pytest
from pydantic import ValidationError

from attachment_probe.contracts import ProbeFailure


def test_not_an_attachment_field() -> None:
    failure = ProbeFailure.not_an_attachment_field("title")
    assert failure.code == "NOT_AN_ATTACHMENT_FIELD"
    assert failure.fatal is True
    assert failure.data == {}


@pytest.mark.parametrize(
    ("context", "shown", "data"),
    [
        (None, "the default context", None),
        ("create", "context 'create'", "create"),
        (("create", "update"), "context ('create', 'update')", ["create", "update"]),
    ],
)
def test_unsupported_context(context, shown, data) -> None:
    failure = ProbeFailure.unsupported_context("avatar", context)
    assert failure.fatal is True
    assert failure.detail == f"validation of avatar is not declared for {shown}"
    assert failure.data == {"context": data}


def test_rule_mismatch() -> None:
    one = ProbeFailure.rule_mismatch("avatar", ["accept image/png"])
    many = ProbeFailure.rule_mismatch("avatar", ["accept image/png", "reject image/gif"])

    assert one.fatal is False
    assert one.detail == "1 trial on avatar did not behave as declared"
    assert many.detail == "2 trials on avatar did not behave as declared"
    assert many.data["mismatches"] == ["accept image/png", "reject image/gif"]


def test_custom_message_mismatch() -> None:
    failure = ProbeFailure.custom_message_mismatch("avatar", "bad file", [])
    assert failure.fatal is False
    assert failure.data == {"expected": "bad file", "observed": []}


def test_unknown_code_rejected() -> None:
    with pytest.raises(ValidationError):
        ProbeFailure(code="SOMETHING_ELSE", field_name="avatar", detail="x")


def test_failures_are_frozen() -> None:
    failure = ProbeFailure.not_an_attachment_field("title")
    with pytest.raises(ValidationError):
        failure.detail = "changed"  # type: ignore[misc]
