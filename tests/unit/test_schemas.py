# tests/unit/test_schemas.py
"""
Tests for the pydantic schemas and payload validation helpers.

Covers camelCase aliasing, the static intake form, generated-output models
and the FieldIssue reporting used by the API's 400 responses.
"""

import pytest

from formiq.errors import FieldIssue, PayloadValidationError
from formiq.schemas import (
    INTAKE_FORMS,
    PROJECT_INTAKE_FORM,
    FocusQuestionsDefinition,
    ProjectIntakeAnswers,
    TaskSchedule,
    format_issues,
    parse_json_payload,
    parse_payload,
)
from formiq.schemas.enums import Commitment, QuestionType, WorkStyle
from formiq.schemas.inputs import CreateProjectInput, FocusResponsesRequest
from formiq.schemas.validation import ROOT_PATH, issues_from_errors


class TestCamelModel:
    """Snake_case attributes, camelCase wire keys."""

    def test_accepts_camel_case_keys(self):
        answers = ProjectIntakeAnswers.model_validate(
            {
                "goal": "Launch an EP",
                "commitment": "moderate",
                "familiarity": "some_experience",
                "workStyle": "flexible_or_varies",
            }
        )
        assert answers.work_style == WorkStyle.FLEXIBLE_OR_VARIES

    def test_accepts_snake_case_keys(self):
        answers = ProjectIntakeAnswers(
            goal="Launch an EP",
            commitment="heavy",
            familiarity="completely_new",
            work_style="short_daily_sessions",
        )
        assert answers.commitment == Commitment.HEAVY

    def test_to_wire_uses_camel_case(self):
        answers = ProjectIntakeAnswers(
            goal="Launch an EP",
            commitment="heavy",
            familiarity="completely_new",
            work_style="short_daily_sessions",
        )
        assert answers.to_wire() == {
            "goal": "Launch an EP",
            "commitment": "heavy",
            "familiarity": "completely_new",
            "workStyle": "short_daily_sessions",
        }

    def test_strips_whitespace_from_required_strings(self):
        data = CreateProjectInput(
            user_id="u1",
            title="  Launch an EP  ",
            commitment="light",
            familiarity="some_experience",
            work_style="flexible_or_varies",
        )
        assert data.title == "Launch an EP"

    def test_unknown_keys_are_ignored(self):
        answers = ProjectIntakeAnswers.model_validate(
            {
                "goal": "Run a 10k",
                "commitment": "light",
                "familiarity": "completely_new",
                "workStyle": "short_daily_sessions",
                "favouriteColour": "green",
            }
        )
        assert not hasattr(answers, "favouriteColour")


class TestIntakeForm:
    """The fixed project intake form."""

    def test_question_order_and_ids(self):
        ids = [q.id for q in PROJECT_INTAKE_FORM.questions]
        assert ids == ["goal", "time_commitment", "familiarity", "work_style"]
        assert [q.position for q in PROJECT_INTAKE_FORM.questions] == [1, 2, 3, 4]

    def test_goal_is_free_text_without_options(self):
        goal = PROJECT_INTAKE_FORM.question("goal")
        assert goal.question_type == QuestionType.FREE_TEXT
        assert goal.options == []

    def test_select_options_cover_enums(self):
        commitment = PROJECT_INTAKE_FORM.question("time_commitment")
        assert [o.value for o in commitment.options] == [c.value for c in Commitment]

    def test_unknown_question_returns_none(self):
        assert PROJECT_INTAKE_FORM.question("favourite_colour") is None

    def test_registered_by_name(self):
        assert INTAKE_FORMS["project_intake"] is PROJECT_INTAKE_FORM


class TestGeneratedOutput:
    """Models that validate provider output."""

    def test_focus_questions_require_at_least_one(self):
        with pytest.raises(PayloadValidationError) as exc_info:
            parse_payload(FocusQuestionsDefinition, {"questions": []})
        assert exc_info.value.issues[0].path == "questions"

    def test_task_schedule_rejects_day_zero(self):
        payload = {
            "tasks": [
                {
                    "day": 0,
                    "title": "Warm up",
                    "objective": "Loosen up",
                    "body": "Stretch",
                    "estimatedMinutes": 10,
                }
            ]
        }
        with pytest.raises(PayloadValidationError) as exc_info:
            parse_payload(TaskSchedule, payload)
        assert exc_info.value.issues[0].path == "tasks.0.day"


class TestValidationHelpers:
    """parse_payload / parse_json_payload / format_issues."""

    def test_reports_every_missing_field(self):
        with pytest.raises(PayloadValidationError) as exc_info:
            parse_payload(ProjectIntakeAnswers, {"goal": "Run a 10k"})
        paths = {issue.path for issue in exc_info.value.issues}
        assert paths == {"commitment", "familiarity", "workStyle"}

    def test_invalid_enum_value_names_the_field(self):
        with pytest.raises(PayloadValidationError) as exc_info:
            parse_payload(
                ProjectIntakeAnswers,
                {
                    "goal": "Run a 10k",
                    "commitment": "all_the_time",
                    "familiarity": "completely_new",
                    "workStyle": "short_daily_sessions",
                },
            )
        assert [i.path for i in exc_info.value.issues] == ["commitment"]

    def test_malformed_json_is_a_root_issue(self):
        with pytest.raises(PayloadValidationError) as exc_info:
            parse_json_payload(ProjectIntakeAnswers, "{not json")
        assert exc_info.value.issues[0].path == ROOT_PATH

    def test_nested_list_paths(self):
        with pytest.raises(PayloadValidationError) as exc_info:
            parse_payload(FocusResponsesRequest, {"responses": [{"answer": "yes"}]})
        assert exc_info.value.issues[0].path == "responses.0.focusItemId"

    def test_strip_prefix(self):
        errors = [{"loc": ("body", "goal"), "msg": "Field required"}]
        assert issues_from_errors(errors, strip_prefix=("body",)) == [
            FieldIssue(path="goal", reason="Field required")
        ]

    def test_format_issues(self):
        issues = [FieldIssue("goal", "Field required"), FieldIssue("commitment", "bad")]
        assert format_issues(issues) == "goal: Field required; commitment: bad"
