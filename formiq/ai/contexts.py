# formiq/ai/contexts.py
"""
Prompt-context builders.

Pure mappings from persisted entities to the JSON documents sent to the
model. Unanswered questions are left out; a select question's options are
folded into its text ("<prompt> Options: a, b, c").
"""

import json
from typing import Any

from formiq.schemas.dtos import (
    FocusFormDto,
    FocusItemDto,
    MilestoneDto,
    ProjectContextDto,
    ProjectDto,
)
from formiq.schemas.enums import QuestionType


def describe_question(prompt: str, question_type: QuestionType, options: list[str]) -> str:
    """Fold a question's options into its prompt, unless it is free text."""
    if question_type != QuestionType.FREE_TEXT and options:
        return f"{prompt} Options: {', '.join(options)}"
    return prompt


def decode_answer(item: FocusItemDto) -> list[str]:
    """Split a stored focus answer back into its answer values."""
    if item.answer is None:
        return []
    if item.question_type == QuestionType.MULTI_SELECT:
        try:
            values = json.loads(item.answer)
        except json.JSONDecodeError:
            return [item.answer]
        if isinstance(values, list):
            return [str(v) for v in values]
    return [item.answer]


class ProjectContext:
    """Project title, intake enums and every answered question."""

    def __init__(self, project: ProjectDto, focus_form: FocusFormDto | None = None):
        self.project = project
        self.focus_form = focus_form

    @classmethod
    def from_details(cls, details: ProjectContextDto) -> "ProjectContext":
        return cls(details.project, details.project.focus_form)

    def focus_items(self) -> list[dict[str, Any]]:
        items = [
            {
                "question": describe_question(
                    entry.question.prompt,
                    entry.question.question_type,
                    entry.question.options,
                ),
                "answers": list(entry.answer.values),
            }
            for entry in self.project.responses
            if entry.answer.values
        ]
        if self.focus_form is not None:
            items.extend(
                {
                    "question": describe_question(
                        item.question, item.question_type, item.options
                    ),
                    "answers": decode_answer(item),
                }
                for item in self.focus_form.items
                if item.answer is not None
            )
        return items

    def to_json(self) -> dict[str, Any]:
        return {
            "project": {
                "title": self.project.title,
                "commitment": self.project.commitment.value,
                "familiarity": self.project.familiarity.value,
                "workStyle": self.project.work_style.value,
                "focusItems": self.focus_items(),
            }
        }


class MilestoneContext:
    def __init__(self, milestone: MilestoneDto):
        self.milestone = milestone

    def to_json(self) -> dict[str, Any]:
        return {
            "title": self.milestone.title,
            "summary": self.milestone.summary,
            "position": self.milestone.position,
        }


class MilestoneTaskContext:
    """Project context plus the milestone tasks are generated for."""

    def __init__(self, project_context: ProjectContext, milestone_context: MilestoneContext):
        self.project_context = project_context
        self.milestone_context = milestone_context

    def to_json(self) -> dict[str, Any]:
        return {
            "projectContext": self.project_context.to_json(),
            "milestone": self.milestone_context.to_json(),
        }
