"""AI service: prompt contexts, structured generation and the operations built on them."""

from .contexts import MilestoneContext, MilestoneTaskContext, ProjectContext
from .service import AIService, build_user_prompt
from .structured import build_repair_prompt, request_structured_json

__all__ = [
    "AIService",
    "MilestoneContext",
    "MilestoneTaskContext",
    "ProjectContext",
    "build_repair_prompt",
    "build_user_prompt",
    "request_structured_json",
]
