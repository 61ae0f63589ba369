# tests/unit/test_ai_service.py
"""
Tests for structured generation and the AI service.

Uses the scripted LLM client from conftest; no provider is contacted.
"""

import json

import pytest

from formiq.ai.prompts import load_prompt
from formiq.ai.service import AIService, build_user_prompt
from formiq.ai.structured import build_repair_prompt, request_structured_json
from formiq.errors import GenerationError
from formiq.schemas.generation import PROJECT_OUTLINE_JSON_SCHEMA, ProjectOutline
from formiq.schemas.intake import ProjectIntakeAnswers

from .fakes import FOCUS_QUESTIONS, PROJECT_OUTLINE, ScriptedLLMClient

INTAKE = ProjectIntakeAnswers(
    goal="Launch an EP",
    commitment="moderate",
    familiarity="some_experience",
    work_style="flexible_or_varies",
)


async def _outline(client: ScriptedLLMClient) -> ProjectOutline:
    return await request_structured_json(
        client,
        system_prompt="system",
        user_prompt="user",
        schema_name="project_outline",
        schema=PROJECT_OUTLINE_JSON_SCHEMA,
        description="outline",
        output_model=ProjectOutline,
    )


class TestRequestStructuredJson:
    """Validation with exactly one repair call."""

    @pytest.mark.asyncio
    async def test_valid_first_answer(self):
        client = ScriptedLLMClient()
        outline = await _outline(client)

        assert [m.title for m in outline.milestones] == ["Finish the songs", "Record the EP"]
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_repairs_once(self):
        client = ScriptedLLMClient({"project_outline": ['{"milestones": []}']})
        outline = await _outline(client)

        assert len(outline.milestones) == 2
        assert len(client.calls) == 2
        repair_prompt = client.calls[1]["user_prompt"]
        assert repair_prompt.startswith("user\n\nThe last response failed schema validation: ")
        assert "milestones" in repair_prompt
        assert repair_prompt.endswith("Return only JSON that matches the project_outline schema.")

    @pytest.mark.asyncio
    async def test_second_failure_raises(self):
        client = ScriptedLLMClient({"project_outline": ["not json", '{"milestones": []}']})
        with pytest.raises(GenerationError, match="Structured output invalid after retry"):
            await _outline(client)
        assert len(client.calls) == 2

    @pytest.mark.asyncio
    async def test_provider_error_propagates_without_repair(self):
        class FailingClient(ScriptedLLMClient):
            async def generate_structured(self, **kwargs):
                raise GenerationError("OpenAI returned an empty response body")

        with pytest.raises(GenerationError, match="empty response body"):
            await _outline(FailingClient())

    def test_build_repair_prompt(self):
        prompt = build_repair_prompt("ctx", "tasks: Field required", "task_schedule")
        assert prompt.splitlines() == [
            "ctx",
            "",
            "The last response failed schema validation: tasks: Field required.",
            "Return only JSON that matches the task_schedule schema.",
        ]


class TestBuildUserPrompt:
    def test_schema_lines_then_context(self):
        prompt = build_user_prompt({"A_SCHEMA": {"type": "object"}}, "CTX", {"k": 1})
        assert prompt == "\n".join(
            [
                'A_SCHEMA: {\n  "type": "object"\n}',
                "CTX:",
                '{\n  "k": 1\n}',
            ]
        )


class TestAIService:
    """Generation operations."""

    @pytest.mark.asyncio
    async def test_focus_questions_sorted_and_free_text_cleared(self):
        questions = [
            {
                "id": "sound",
                "prompt": "Describe the sound",
                "questionType": "free_text",
                "options": ["ignored"],
                "position": 2,
            },
            {
                "id": "format",
                "prompt": "Which format?",
                "questionType": "single_select",
                "options": ["Vinyl", "Streaming"],
                "position": 0,
            },
        ]
        client = ScriptedLLMClient({"focus_questions": [json.dumps({"questions": questions})]})
        definition = await AIService(client).generate_focus_questions(INTAKE)

        assert [q.id for q in definition.questions] == ["format", "sound"]
        assert definition.questions[0].options == ["Vinyl", "Streaming"]
        assert definition.questions[1].options == []

    @pytest.mark.asyncio
    async def test_focus_questions_prompt(self, llm_client, ai_service):
        await ai_service.generate_focus_questions(INTAKE)

        call = llm_client.calls[0]
        assert call["schema_name"] == "focus_questions"
        assert call["system_prompt"] == load_prompt("focus_questions")
        assert call["user_prompt"].startswith("PROJECT_INTAKE_JSON_SCHEMA: ")
        assert "FOCUS_QUESTIONS_JSON_SCHEMA: " in call["user_prompt"]
        assert call["user_prompt"].endswith(json.dumps(INTAKE.to_wire(), indent=2))

    @pytest.mark.asyncio
    async def test_canned_focus_questions(self, ai_service):
        definition = await ai_service.generate_focus_questions(INTAKE)
        assert len(definition.questions) == len(FOCUS_QUESTIONS["questions"])

    def test_model_comes_from_client(self, ai_service):
        assert ai_service.model == "test-model"

    @pytest.mark.asyncio
    async def test_check_provider(self, llm_client, ai_service):
        await ai_service.check_provider()

        llm_client.healthy = False
        with pytest.raises(ConnectionError, match="health check failed"):
            await ai_service.check_provider()

    def test_prompts_are_packaged(self):
        for name in ("focus_questions", "project_outline", "task_generation"):
            assert load_prompt(name)

    def test_outline_fixture_is_valid(self):
        assert ProjectOutline.model_validate(PROJECT_OUTLINE).milestones
