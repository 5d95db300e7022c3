"""End-to-end tests for the fluent matchers."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from fakes import FakeBackend, FakeRecord, aspect_ratio, content_type, dimensions, size
from attachment_probe.matchers import (
    AspectRatioMatcher,
    ContentTypeMatcher,
    DimensionMatcher,
    SizeMatcher,
    validate_aspect_ratio_of,
    validate_content_type_of,
    validate_dimensions_of,
    validate_size_of,
)
from attachment_probe.schema import (
    AttachmentProbeError,
    Bounds,
    ProbeAssertionError,
    ProbeSettings,
    from_factory,
    from_instance,
)


class User(FakeRecord):
    attachment_fields = ("avatar", "photo", "icon", "cover", "banner", "resume", "greeting")
    validators = [
        content_type("avatar", "image/png"),
        dimensions("photo", width_min=50, width_max=100),
        dimensions("icon", width_min=32, width_max=32, height_min=32, height_max=32),
        aspect_ratio("cover", "square"),
        aspect_ratio("banner", "16:9", message="must be 16:9"),
        size("resume", min=1, max=1023),
        content_type("greeting", "image/png", message="bad file"),
    ]
    name = "anonymous"


class LenientUser(FakeRecord):
    attachment_fields = ("avatar",)
    validators = [content_type("avatar", "image/png", "image/gif")]


class Account(FakeRecord):
    attachment_fields = ("logo", "contract")
    validators = [
        content_type("logo", "image/png", on="create"),
        content_type("contract", "application/pdf", on=("create", "update")),
    ]


class WithUnless(FakeRecord):
    attachment_fields = ("with_unless",)
    validators = [content_type("with_unless", "image/png", unless=lambda record: record.rating >= 4)]
    rating = 0


class WithIf(FakeRecord):
    attachment_fields = ("with_if",)
    validators = [content_type("with_if", "image/png", if_=lambda record: record.title == "Right title")]
    title = ""


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


# ============================================================================
# Content type
# ============================================================================


class TestContentType:
    def test_scenario_b_png_only(self, backend: FakeBackend) -> None:
        matcher = validate_content_type_of(backend, "avatar").allowing("image/png").rejecting("image/gif")
        report = matcher.evaluate(from_factory(User))

        assert report.passed is True
        assert report.trial_count == 2
        assert matcher.failure_message(report) == ""

    def test_scenario_c_gif_also_allowed(self, backend: FakeBackend) -> None:
        matcher = validate_content_type_of(backend, "avatar").allowing("image/png").rejecting("image/gif")
        report = matcher.evaluate(from_factory(LenientUser))

        assert report.passed is False
        assert report.rejected_but_allowed == ["image/gif"]
        assert report.allowed_but_rejected == []
        assert [failure.code for failure in report.failures] == ["RULE_MISMATCH"]
        assert matcher.failure_message(report) == (
            "Expected avatar\n"
            "Reject content types: image/gif\n"
            "image/gif were accepted"
        )

    def test_allowed_type_rejected(self, backend: FakeBackend) -> None:
        matcher = validate_content_type_of(backend, "avatar").allowing("image/png", "image/jpeg")
        report = matcher.evaluate(from_factory(User))

        assert report.allowed_but_rejected == ["image/jpeg"]
        assert matcher.failure_message(report) == (
            "Expected avatar\n"
            "Accept content types: image/png, image/jpeg\n"
            "image/jpeg were rejected"
        )

    def test_every_mismatch_reported(self, backend: FakeBackend) -> None:
        matcher = (
            validate_content_type_of(backend, "avatar")
            .allowing("image/jpeg", "image/webp")
            .rejecting("image/gif", "image/png")
        )
        report = matcher.evaluate(from_factory(LenientUser))

        assert report.trial_count == 4
        assert report.allowed_but_rejected == ["image/jpeg", "image/webp"]
        assert report.rejected_but_allowed == ["image/gif", "image/png"]

    def test_allowing_accepts_lists(self, backend: FakeBackend) -> None:
        matcher = validate_content_type_of(backend, "avatar").allowing(["image/png", "image/jpeg"], "image/gif")
        assert matcher.rule.allowed == ("image/png", "image/jpeg", "image/gif")

    def test_set_tokens_reported_in_sorted_order(self, backend: FakeBackend) -> None:
        matcher = validate_content_type_of(backend, "avatar").rejecting({"image/webp", "image/bmp", "image/gif"})
        report = matcher.evaluate(from_factory(LenientUser))

        assert matcher.rule.rejected == ("image/bmp", "image/gif", "image/webp")
        assert matcher.failure_message(report).splitlines()[-2:] == [
            "Reject content types: image/bmp, image/gif, image/webp",
            "image/gif were accepted",
        ]

    def test_description(self, backend: FakeBackend) -> None:
        matcher = validate_content_type_of(backend, "avatar")
        assert matcher.description == "validate the content types allowed on attachment avatar"


# ============================================================================
# Dimensions
# ============================================================================


class TestDimensions:
    def test_scenario_a_width_range(self, backend: FakeBackend) -> None:
        matcher = validate_dimensions_of(backend, "photo").width_between(50, 100)
        report = matcher.evaluate(from_factory(User))

        assert report.passed is True
        observed = {o.trial.value: o.validation_passed for o in report.outcomes}
        assert observed == {49: False, 51: True, 99: True, 101: False}

    def test_width_min_and_max_chain(self, backend: FakeBackend) -> None:
        matcher = validate_dimensions_of(backend, "photo").width_min(50).width_max(100)
        assert matcher.rule.width == Bounds(minimum=50, maximum=100)
        assert matcher.matches(from_factory(User)) is True

    def test_fixed_dimensions(self, backend: FakeBackend) -> None:
        matcher = validate_dimensions_of(backend, "icon").width(32).height(32)
        report = matcher.evaluate(from_factory(User))

        assert report.passed is True
        assert report.trial_count == 6
        width_trials = [o.trial for o in report.outcomes if o.trial.axis == "width"]
        assert {t.height for t in width_trials} == {32}

    def test_declared_range_wider_than_validator(self, backend: FakeBackend) -> None:
        matcher = validate_dimensions_of(backend, "photo").width_between(40, 100)
        report = matcher.evaluate(from_factory(User))

        assert report.passed is False
        assert [t.label for t in report.mismatched_trials] == ["accept width 41"]
        assert matcher.failure_message(report) == (
            "is expected to validate dimensions of photo\n"
            "  width between 40 and 100\n"
            "  height between any and any\n"
            "  accept width 41: validation failed"
        )

    def test_declared_range_narrower_than_validator(self, backend: FakeBackend) -> None:
        matcher = validate_dimensions_of(backend, "photo").width_between(50, 90)
        report = matcher.evaluate(from_factory(User))

        assert [t.label for t in report.mismatched_trials] == ["reject width 91"]
        assert "reject width 91: validation passed" in matcher.failure_message(report)

    def test_height_bounds(self, backend: FakeBackend) -> None:
        matcher = validate_dimensions_of(backend, "photo").width_between(50, 100).height_min(10).height_max(20)
        report = matcher.evaluate(from_factory(User))
        # The photo validator leaves height unconstrained.
        assert [t.label for t in report.mismatched_trials] == ["reject height 9", "reject height 21"]

    def test_unbounded_rule_trivially_passes(self, backend: FakeBackend) -> None:
        report = validate_dimensions_of(backend, "photo").evaluate(from_factory(User))
        assert report.passed is True
        assert report.trial_count == 0

    def test_min_above_max_rejected(self, backend: FakeBackend) -> None:
        with pytest.raises(ValidationError):
            validate_dimensions_of(backend, "photo").width_between(100, 50)

    def test_description(self, backend: FakeBackend) -> None:
        assert validate_dimensions_of(backend, "photo").description == "validate image dimensions of photo"


# ============================================================================
# Aspect ratio
# ============================================================================


class TestAspectRatio:
    def test_square(self, backend: FakeBackend) -> None:
        matcher = (
            validate_aspect_ratio_of(backend, "cover")
            .allowing("square")
            .rejecting("portrait", "landscape", "16:9")
        )
        assert matcher.matches(from_factory(User)) is True

    def test_ratio_tokens(self, backend: FakeBackend) -> None:
        matcher = validate_aspect_ratio_of(backend, "banner").allowing("16:9", "is_16_9").rejecting("square")
        assert matcher.matches(from_factory(User)) is True

    def test_unrecognized_token_is_rejected(self, backend: FakeBackend) -> None:
        matcher = validate_aspect_ratio_of(backend, "cover").allowing("square", "wide")
        report = matcher.evaluate(from_factory(User))

        assert report.allowed_but_rejected == ["wide"]
        assert "Accept aspect ratios: square, wide" in matcher.failure_message(report)

    def test_custom_message(self, backend: FakeBackend) -> None:
        matcher = validate_aspect_ratio_of(backend, "banner").allowing("16:9").with_message("must be 16:9")
        report = matcher.evaluate(from_factory(User))
        assert report.passed is True
        assert report.message_checked is True


# ============================================================================
# Size
# ============================================================================


class TestSize:
    def test_exclusive_bounds(self, backend: FakeBackend) -> None:
        matcher = validate_size_of(backend, "resume").greater_than(0).less_than(1024)
        assert matcher.rule.axes["byte_size"] == Bounds(minimum=1, maximum=1023)
        assert matcher.matches(from_factory(User)) is True

    def test_inclusive_bounds(self, backend: FakeBackend) -> None:
        matcher = validate_size_of(backend, "resume").greater_than_or_equal_to(1).less_than_or_equal_to(1023)
        assert matcher.matches(from_factory(User)) is True

    def test_between_mismatch(self, backend: FakeBackend) -> None:
        matcher = validate_size_of(backend, "resume").between(1, 2048)
        report = matcher.evaluate(from_factory(User))
        assert [t.label for t in report.mismatched_trials] == ["accept byte_size 2047"]
        assert "size between 1 and 2048" in matcher.failure_message(report)

    def test_description(self, backend: FakeBackend) -> None:
        assert validate_size_of(backend, "resume").description == "validate file size of resume"


# ============================================================================
# Custom messages
# ============================================================================


class TestCustomMessage:
    def test_scenario_d_message_matches(self, backend: FakeBackend) -> None:
        matcher = validate_content_type_of(backend, "greeting").allowing("image/png").with_message("bad file")
        report = matcher.evaluate(from_factory(User))

        assert report.passed is True
        assert report.message_checked is True
        assert report.trial_count == 2

    def test_scenario_d_message_differs(self, backend: FakeBackend) -> None:
        matcher = validate_content_type_of(backend, "avatar").allowing("image/png").with_message("bad file")
        report = matcher.evaluate(from_factory(User))

        assert report.passed is False
        assert [failure.code for failure in report.failures] == ["CUSTOM_MESSAGE_MISMATCH"]
        assert matcher.failure_message(report) == (
            "Expected avatar\n"
            "expected error message 'bad file' on avatar, "
            "got ['has an invalid content type fake/fake']"
        )

    def test_message_declared_on_two_validators(self, backend: FakeBackend) -> None:
        class Gallery(FakeRecord):
            attachment_fields = ("photo",)
            validators = [
                dimensions("photo", width_min=50, message="bad file"),
                dimensions("photo", width_max=100, message="bad file"),
            ]

        matcher = validate_dimensions_of(backend, "photo").width_between(50, 100).with_message("bad file")
        report = matcher.evaluate(from_factory(Gallery))

        assert report.outcomes[-1].errors == ["bad file", "bad file"]
        assert report.failures == []
        assert report.passed is True

    def test_message_skipped_when_rule_mismatches(self, backend: FakeBackend) -> None:
        matcher = validate_content_type_of(backend, "greeting").allowing("image/gif").with_message("bad file")
        report = matcher.evaluate(from_factory(User))

        assert report.message_checked is False
        assert [failure.code for failure in report.failures] == ["RULE_MISMATCH"]
        assert report.trial_count == 1


# ============================================================================
# Gating
# ============================================================================


class TestGating:
    def test_scenario_e_not_an_attachment_field(self, backend: FakeBackend) -> None:
        matcher = validate_content_type_of(backend, "name").allowing("image/png")
        report = matcher.evaluate(from_factory(User))

        assert report.passed is False
        assert [failure.code for failure in report.failures] == ["NOT_AN_ATTACHMENT_FIELD"]
        assert report.trial_count == 0
        assert backend.attach_calls == 0
        assert backend.validation_runs == 0
        assert matcher.failure_message(report) == "Expected name\nname is not an attachment field"

    def test_context_required(self, backend: FakeBackend) -> None:
        matcher = validate_content_type_of(backend, "logo").allowing("image/png").rejecting("image/gif")
        report = matcher.evaluate(from_factory(Account))

        assert [failure.code for failure in report.failures] == ["UNSUPPORTED_CONTEXT"]
        assert backend.validation_runs == 0

    def test_context_threaded_into_trials(self, backend: FakeBackend) -> None:
        matcher = validate_content_type_of(backend, "logo").allowing("image/png").rejecting("image/gif").on("create")
        assert matcher.matches(from_factory(Account)) is True

    def test_wrong_context(self, backend: FakeBackend) -> None:
        matcher = validate_content_type_of(backend, "logo").allowing("image/png").on("update")
        assert matcher.matches(from_factory(Account)) is False

    def test_multiple_contexts(self, backend: FakeBackend) -> None:
        matcher = (
            validate_content_type_of(backend, "contract")
            .allowing("application/pdf")
            .rejecting("image/png")
            .on(["update", "create"])
        )
        assert matcher.context == ("update", "create")
        assert matcher.matches(from_factory(Account)) is True

    def test_malformed_context_raises(self, backend: FakeBackend) -> None:
        with pytest.raises(AttachmentProbeError):
            validate_content_type_of(backend, "logo").on(42)


# ============================================================================
# Conditional validators
# ============================================================================


class TestConditionalValidators:
    def test_unless_false_validator_runs(self, backend: FakeBackend) -> None:
        matcher = validate_content_type_of(backend, "with_unless").rejecting("image/gif")
        assert matcher.matches(from_instance(WithUnless(rating=1))) is True

    def test_unless_true_validator_skipped(self, backend: FakeBackend) -> None:
        matcher = validate_content_type_of(backend, "with_unless").rejecting("image/gif")
        assert matcher.matches(from_instance(WithUnless(rating=5))) is False

    def test_if_predicate(self, backend: FakeBackend) -> None:
        matcher = validate_content_type_of(backend, "with_if").rejecting("image/gif")
        assert matcher.matches(from_instance(WithIf(title="Right title"))) is True
        assert matcher.matches(from_instance(WithIf(title="Wrong title"))) is False


# ============================================================================
# Facade behaviour
# ============================================================================


class TestFacade:
    def test_chain_calls_return_new_matchers(self, backend: FakeBackend) -> None:
        base = validate_content_type_of(backend, "avatar")
        allowing = base.allowing("image/png")
        rejecting = allowing.rejecting("image/gif")

        assert base.rule.allowed == ()
        assert allowing.rule.allowed == ("image/png",)
        assert allowing.rule.rejected == ()
        assert rejecting.rule.allowed == ("image/png",)
        assert rejecting.rule.rejected == ("image/gif",)
        assert isinstance(rejecting, ContentTypeMatcher)

    def test_matchers_are_frozen(self, backend: FakeBackend) -> None:
        matcher = validate_content_type_of(backend, "avatar")
        with pytest.raises(Exception):
            matcher.field_name = "photo"  # type: ignore

    def test_entry_points_return_expected_types(self, backend: FakeBackend) -> None:
        assert isinstance(validate_content_type_of(backend, "a"), ContentTypeMatcher)
        assert isinstance(validate_aspect_ratio_of(backend, "a"), AspectRatioMatcher)
        assert isinstance(validate_dimensions_of(backend, "a"), DimensionMatcher)
        assert isinstance(validate_size_of(backend, "a"), SizeMatcher)

    def test_backend_must_implement_protocol(self) -> None:
        with pytest.raises(ValidationError):
            validate_content_type_of(object(), "avatar")  # type: ignore[arg-type]

    def test_raw_class_subject_rejected(self, backend: FakeBackend) -> None:
        matcher = validate_content_type_of(backend, "avatar").allowing("image/png")
        with pytest.raises(AttachmentProbeError, match="from_factory"):
            matcher.evaluate(User)  # type: ignore[arg-type]

    def test_factory_called_once_per_evaluation(self, backend: FakeBackend) -> None:
        created = []

        def build() -> User:
            record = User()
            created.append(record)
            return record

        validate_content_type_of(backend, "avatar").allowing("image/png").rejecting("image/gif").evaluate(
            from_factory(build)
        )
        assert len(created) == 1

    def test_idempotent_on_fresh_records(self, backend: FakeBackend) -> None:
        matcher = validate_dimensions_of(backend, "photo").width_between(40, 100)
        first = matcher.evaluate(from_factory(User))
        second = matcher.evaluate(from_factory(User))

        assert first.passed == second.passed
        assert [o.validation_passed for o in first.outcomes] == [o.validation_passed for o in second.outcomes]

    def test_reused_instance_gives_same_outcomes(self, backend: FakeBackend) -> None:
        record = User()
        matcher = validate_content_type_of(backend, "avatar").allowing("image/png").rejecting("image/gif")
        first = matcher.evaluate(from_instance(record))
        second = matcher.evaluate(from_instance(record))
        assert [o.validation_passed for o in first.outcomes] == [o.validation_passed for o in second.outcomes]

    def test_assert_matches(self, backend: FakeBackend) -> None:
        matcher = validate_content_type_of(backend, "avatar").allowing("image/png").rejecting("image/gif")
        assert matcher.assert_matches(from_factory(User)).passed is True
        with pytest.raises(ProbeAssertionError, match="image/gif were accepted"):
            matcher.assert_matches(from_factory(LenientUser))

    def test_backend_exception_propagates(self, backend: FakeBackend) -> None:
        backend.raise_on_validate = RuntimeError("validator crashed")
        matcher = validate_content_type_of(backend, "avatar").allowing("image/png")
        with pytest.raises(RuntimeError, match="validator crashed"):
            matcher.evaluate(from_factory(User))

    def test_custom_settings(self, backend: FakeBackend) -> None:
        matcher = validate_dimensions_of(backend, "photo").width_between(50, 100).with_settings(
            ProbeSettings(default_floor=0, default_ceiling=400)
        )
        report = matcher.evaluate(from_factory(User))
        assert {o.trial.height for o in report.outcomes} == {200}
