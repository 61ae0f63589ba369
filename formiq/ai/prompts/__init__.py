# formiq/ai/prompts/__init__.py
"""Prompt loading utilities for generation requests."""

from functools import lru_cache
from pathlib import Path


@lru_cache(maxsize=None)
def load_prompt(name: str) -> str:
    """Load a system prompt by name.

    Args:
        name: Prompt filename without .txt extension
              (e.g., 'focus_questions', 'project_outline', 'task_generation')

    Returns:
        Prompt content with surrounding whitespace stripped

    Raises:
        FileNotFoundError: If prompt file doesn't exist
    """
    prompt_path = Path(__file__).parent / f"{name}.txt"
    if not prompt_path.exists():
        raise FileNotFoundError(f"Prompt not found: {prompt_path}")

    return prompt_path.read_text(encoding="utf-8").strip()


__all__ = ["load_prompt"]
