"""Tests for document validation and normalization."""

import math
from datetime import timezone
from uuid import UUID

import pytest

from advocate_etl.core.exceptions import ValidationError
from advocate_etl.schemas.canonical import MAX_COUNT, Platform, coerce_amount, coerce_count
from advocate_etl.services.validation import assess_data_quality, validate_user_document


def _task(**overrides):
    task = {
        "task_id": "9a1b2c3d-4e5f-4a6b-8c7d-9e0f1a2b3c4d",
        "platform": "Facebook",
        "post_url": "https://facebook.com/posts/1",
        "likes": 1,
        "comments": 1,
        "shares": 1,
        "reach": 10,
    }
    task.update(overrides)
    return task


def _program(tasks, **overrides):
    program = {
        "program_id": "prog-1",
        "brand": "Acme",
        "total_sales_attributed": 10,
        "tasks_completed": tasks,
    }
    program.update(overrides)
    return program


def _paths(result):
    return [issue.path for issue in result.issues]


class TestFieldNormalization:
    """Transform-then-check rules on individual fields."""

    def test_valid_document_is_normalized(self, make_document):
        result = validate_user_document(make_document())

        assert result.is_valid
        user = result.user
        assert user.user_id == UUID("0b7d7c9e-3f1a-4d8e-9a52-6c1f2e3d4a5b")
        assert user.email == "jane.advocate@example.com"
        assert user.instagram_handle == "janeinsta"
        assert user.tiktok_handle == "janetok"
        assert user.joined_at.tzinfo is not None

        program = user.programs[0]
        assert program.brand_name == "Acme Outdoors"
        assert program.total_sales_attributed == 120.5

        first, second = program.tasks
        assert first.comments == 20
        assert first.engagement_rate == pytest.approx(0.15)
        assert (second.likes, second.comments, second.shares, second.reach) == (0, 0, 0, 0)
        assert second.engagement_rate == 0.0

    def test_sentinel_name_is_rejected(self, make_document):
        result = validate_user_document(make_document(name="???"))

        assert not result.is_valid
        assert _paths(result) == ["name"]

    def test_empty_name_is_rejected(self, make_document):
        result = validate_user_document(make_document(name="   "))

        assert _paths(result) == ["name"]

    def test_sentinel_email_is_rejected(self, make_document):
        result = validate_user_document(make_document(email="invalid-email"))

        assert _paths(result) == ["email"]

    def test_malformed_email_is_rejected(self, make_document):
        result = validate_user_document(make_document(email="jane-at-example"))

        assert _paths(result) == ["email"]

    def test_error_handle_maps_to_null(self, make_document):
        document = make_document(
            tiktok_handle="#error_handle",
            advocacy_programs=[_program([_task(platform="Facebook")])],
        )

        result = validate_user_document(document)

        assert result.is_valid
        assert result.user.tiktok_handle is None

    def test_bare_at_sign_handle_becomes_null(self, make_document):
        document = make_document(
            instagram_handle="  @  ",
            advocacy_programs=[_program([_task(platform="Facebook")])],
        )

        result = validate_user_document(document)

        assert result.user.instagram_handle is None

    def test_not_a_date_maps_to_null(self, make_document):
        result = validate_user_document(make_document(joined_at="not-a-date"))

        assert result.is_valid
        assert result.user.joined_at is None

    def test_naive_timestamp_is_treated_as_utc(self, make_document):
        result = validate_user_document(make_document(joined_at="2024-01-05T08:30:00"))

        assert result.user.joined_at.tzinfo == timezone.utc

    def test_unparseable_date_is_rejected(self, make_document):
        result = validate_user_document(make_document(joined_at="last tuesday"))

        assert _paths(result) == ["joined_at"]

    def test_invalid_user_id_is_rejected(self, make_document):
        result = validate_user_document(make_document(user_id="not-a-uuid"))

        assert _paths(result) == ["user_id"]

    @pytest.mark.parametrize(
        "user_id",
        [
            "urn:uuid:0b7d7c9e-3f1a-4d8e-9a52-6c1f2e3d4a5b",
            "0b7d7c9e3f1a4d8e9a526c1f2e3d4a5b",
            "{0b7d7c9e-3f1a-4d8e-9a52-6c1f2e3d4a5b}",
            12345,
        ],
    )
    def test_non_canonical_user_id_forms_are_rejected(self, make_document, user_id):
        result = validate_user_document(make_document(user_id=user_id))

        assert _paths(result) == ["user_id"]

    def test_upper_case_user_id_is_accepted(self, make_document):
        result = validate_user_document(make_document(user_id="0B7D7C9E-3F1A-4D8E-9A52-6C1F2E3D4A5B"))

        assert result.user.user_id == UUID("0b7d7c9e-3f1a-4d8e-9a52-6c1f2e3d4a5b")

    @pytest.mark.parametrize("joined_at", [1700000000, 1.7e9, True])
    def test_numeric_joined_at_is_rejected(self, make_document, joined_at):
        result = validate_user_document(make_document(joined_at=joined_at))

        assert _paths(result) == ["joined_at"]

    def test_missing_required_key_is_reported(self, make_document):
        document = make_document()
        del document["instagram_handle"]

        result = validate_user_document(document)

        assert _paths(result) == ["instagram_handle"]
        assert result.issues[0].message == "Field required"

    def test_every_field_violation_is_reported(self, make_document):
        document = make_document(name="???", email="invalid-email", user_id="nope")

        result = validate_user_document(document)

        assert sorted(_paths(result)) == ["email", "name", "user_id"]

    def test_non_object_document_is_rejected(self):
        result = validate_user_document(["not", "an", "object"])

        assert not result.is_valid
        assert len(result.issues) == 1


class TestProgramAndTaskRules:
    """Nested program and task rules."""

    def test_numeric_brand_becomes_null(self, make_document):
        document = make_document(advocacy_programs=[_program([_task()], brand=12345)])

        result = validate_user_document(document)

        assert result.user.programs[0].brand_name is None

    def test_no_data_sales_becomes_zero(self, make_document):
        document = make_document(
            advocacy_programs=[_program([_task()], total_sales_attributed="no-data")]
        )

        result = validate_user_document(document)

        assert result.user.programs[0].total_sales_attributed == 0

    def test_empty_program_id_is_rejected(self, make_document):
        document = make_document(advocacy_programs=[_program([_task()], program_id="")])

        result = validate_user_document(document)

        assert _paths(result) == ["advocacy_programs.0.program_id"]

    def test_numeric_platform_becomes_null(self, make_document):
        document = make_document(advocacy_programs=[_program([_task(platform=42)])])

        result = validate_user_document(document)

        assert result.is_valid
        assert result.user.programs[0].tasks[0].platform is None

    @pytest.mark.parametrize("platform", ["MySpace", "instagram", True])
    def test_unknown_platform_is_rejected(self, make_document, platform):
        document = make_document(
            advocacy_programs=[_program([_task(), _task(platform=platform)])]
        )

        result = validate_user_document(document)

        assert _paths(result) == ["advocacy_programs.0.tasks_completed.1.platform"]

    def test_broken_link_becomes_null(self, make_document):
        document = make_document(advocacy_programs=[_program([_task(post_url="broken_link")])])

        result = validate_user_document(document)

        assert result.user.programs[0].tasks[0].post_url is None

    def test_malformed_url_is_rejected(self, make_document):
        document = make_document(advocacy_programs=[_program([_task(post_url="not a url")])])

        result = validate_user_document(document)

        assert _paths(result) == ["advocacy_programs.0.tasks_completed.0.post_url"]

    def test_null_task_id_is_allowed(self, make_document):
        document = make_document(advocacy_programs=[_program([_task(task_id=None)])])

        result = validate_user_document(document)

        assert result.user.programs[0].tasks[0].task_id is None

    def test_invalid_task_id_is_rejected(self, make_document):
        document = make_document(advocacy_programs=[_program([_task(task_id="task-1")])])

        result = validate_user_document(document)

        assert _paths(result) == ["advocacy_programs.0.tasks_completed.0.task_id"]

    @pytest.mark.parametrize("task_id", [42, "9a1b2c3d4e5f4a6b8c7d9e0f1a2b3c4d"])
    def test_non_string_or_unhyphenated_task_id_is_rejected(self, make_document, task_id):
        document = make_document(advocacy_programs=[_program([_task(task_id=task_id)])])

        result = validate_user_document(document)

        assert _paths(result) == ["advocacy_programs.0.tasks_completed.0.task_id"]

    def test_counters_default_to_zero_when_absent(self, make_document):
        task = _task()
        for key in ("likes", "comments", "shares", "reach"):
            del task[key]
        document = make_document(advocacy_programs=[_program([task])])

        result = validate_user_document(document)

        parsed = result.user.programs[0].tasks[0]
        assert (parsed.likes, parsed.comments, parsed.shares, parsed.reach) == (0, 0, 0, 0)


class TestCoercion:
    """Counter and amount coercion."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (5, 5),
            ("12", 12),
            ("12.9", 12),
            (7.6, 7),
            ("NaN", 0),
            (math.nan, 0),
            (math.inf, 0),
            ("inf", 0),
            (-3, 0),
            ("abc", 0),
            (None, 0),
            (True, 0),
            ([1], 0),
            (10 ** 20, MAX_COUNT),
            ("1e30", MAX_COUNT),
            (-(10 ** 20), 0),
        ],
    )
    def test_coerce_count(self, value, expected):
        assert coerce_count(value) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [("99.5", 99.5), (10, 10.0), ("no-data", 0.0), (math.nan, 0.0), (-1, 0.0)],
    )
    def test_coerce_amount(self, value, expected):
        assert coerce_amount(value) == expected


class TestCrossFieldRule:
    """Platforms used by tasks require the matching handle."""

    def test_tiktok_task_requires_tiktok_handle(self, make_document):
        result = validate_user_document(make_document(tiktok_handle=None))

        assert _paths(result) == ["tiktok_handle"]
        assert "TikTok" in result.issues[0].message

    def test_instagram_task_requires_instagram_handle(self, make_document):
        document = make_document(
            instagram_handle="",
            advocacy_programs=[_program([_task(platform="Instagram")])],
        )

        result = validate_user_document(document)

        assert _paths(result) == ["instagram_handle"]

    def test_facebook_task_requires_no_handle(self, make_document):
        document = make_document(
            instagram_handle=None,
            tiktok_handle=None,
            advocacy_programs=[_program([_task(platform="Facebook")])],
        )

        assert validate_user_document(document).is_valid

    def test_platforms_collected_across_programs(self, make_document):
        document = make_document(
            tiktok_handle=None,
            advocacy_programs=[
                _program([_task(platform="Facebook")]),
                _program([_task(platform="TikTok")], program_id="prog-2"),
            ],
        )

        result = validate_user_document(document)

        assert _paths(result) == ["tiktok_handle"]

    def test_cross_field_rule_skipped_when_fields_invalid(self, make_document):
        result = validate_user_document(make_document(name="???", tiktok_handle=None))

        assert _paths(result) == ["name"]


class TestValidationResult:
    """Typed result and data-quality summary."""

    def test_unwrap_returns_user(self, make_document):
        user = validate_user_document(make_document()).unwrap()

        assert user.platforms_used() == {Platform.INSTAGRAM, Platform.TIKTOK}

    def test_unwrap_raises_with_field_pathed_message(self, make_document):
        result = validate_user_document(make_document(name="???", email="invalid-email"))

        with pytest.raises(ValidationError) as exc_info:
            result.unwrap()

        message = str(exc_info.value)
        assert message.startswith("Validation failed:\n")
        assert "name: " in message
        assert "email: " in message
        assert len(exc_info.value.issues) == 2

    def test_user_without_programs_gets_warning(self, make_document):
        user = validate_user_document(make_document(advocacy_programs=[])).unwrap()

        quality = assess_data_quality(user)

        assert quality.is_clean is False
        assert quality.issues == ["no_programs"]
        assert quality.severity == "warning"

    def test_user_with_programs_is_clean(self, make_document):
        user = validate_user_document(make_document()).unwrap()

        assert assess_data_quality(user).severity == "clean"
